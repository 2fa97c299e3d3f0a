"""
Scan Result Repository - in-memory sink for finished scan outcomes.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from storage_sweeper.core.events.scan_events import ItemsDeletedEvent, ScanCompletedEvent
from storage_sweeper.models import DeletionStatus, DuplicateGroup, ScanOutcome, summarize


class ScanResultRepository:
    """
    Keeps the latest outcome per feature, stored verbatim.

    Fed by ScanCompletedEvent; cancelled and failed outcomes replace the
    previous entry as well, so callers always see the most recent run.
    """

    def __init__(self):
        self._outcomes: Dict[str, ScanOutcome] = {}
        self._lock = asyncio.Lock()
        logging.info("ScanResultRepository initialized")

    async def save(self, outcome: ScanOutcome) -> None:
        async with self._lock:
            self._outcomes[outcome.feature] = outcome

    async def get(self, feature: str) -> Optional[ScanOutcome]:
        async with self._lock:
            return self._outcomes.get(feature)

    async def get_all(self) -> List[ScanOutcome]:
        async with self._lock:
            return list(self._outcomes.values())

    async def clear(self, feature: str) -> bool:
        async with self._lock:
            return self._outcomes.pop(feature, None) is not None

    async def handle_scan_completed(self, event: ScanCompletedEvent) -> None:
        await self.save(event.outcome)
        logging.debug(
            f"Stored {event.outcome.status.value} outcome for '{event.outcome.feature}' "
            f"({len(event.outcome.items)} items)"
        )

    async def handle_items_deleted(self, event: ItemsDeletedEvent) -> None:
        """Drop deleted (or already missing) paths from every stored outcome."""
        gone = {
            path
            for path, result in event.report.results.items()
            if result.status != DeletionStatus.FAILED
        }
        if not gone:
            return

        async with self._lock:
            for feature, outcome in list(self._outcomes.items()):
                self._outcomes[feature] = prune_outcome(outcome, gone)


def prune_outcome(outcome: ScanOutcome, gone: Set[str]) -> ScanOutcome:
    items = [item for item in outcome.items if item.path not in gone]
    groups = []
    for group in outcome.groups:
        files = [item for item in group.files if item.path not in gone]
        if len(files) >= 2:
            groups.append(DuplicateGroup(group_id=group.group_id, files=files))
    return outcome.model_copy(
        update={"items": items, "groups": groups, "summary": summarize(items)}
    )
