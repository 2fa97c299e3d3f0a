import asyncio
import logging
from typing import Dict, Iterable, List

from storage_sweeper.models import ScanItem, ScanSummary, summarize


class ResultAggregator:
    """
    Collects classified items for one scan.

    Items are keyed by path (first one wins) and only appended, never
    modified. Once sealed (on cancellation) further adds are ignored, so
    results of in-flight work that finishes after the signal are dropped.
    """

    def __init__(self):
        self._items: Dict[str, ScanItem] = {}
        self._lock = asyncio.Lock()
        self._sealed = False
        self.dropped_after_seal = 0

    async def add(self, item: ScanItem) -> bool:
        async with self._lock:
            if self._sealed:
                self.dropped_after_seal += 1
                return False
            if item.path in self._items:
                return False
            self._items[item.path] = item
            return True

    async def add_all(self, items: Iterable[ScanItem]) -> int:
        added = 0
        for item in items:
            if await self.add(item):
                added += 1
        return added

    async def seal(self) -> None:
        async with self._lock:
            if not self._sealed:
                self._sealed = True
                logging.debug(f"Result aggregator sealed with {len(self._items)} items")

    async def count(self) -> int:
        async with self._lock:
            return len(self._items)

    async def results(self) -> List[ScanItem]:
        """Items sorted by size, largest first (path breaks ties)."""
        async with self._lock:
            items = list(self._items.values())
        return sorted(items, key=lambda item: (-item.size, item.path))

    async def summary(self) -> ScanSummary:
        return summarize(await self.results())
