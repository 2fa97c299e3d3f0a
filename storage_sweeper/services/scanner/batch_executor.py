import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from storage_sweeper.core.cancellation import CancellationToken
from storage_sweeper.services.scanner.filesystem import FileEntry, stat_path

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class MapResult(Generic[R]):
    values: List[R] = field(default_factory=list)
    failed: int = 0  # Raised or returned None
    cancelled: bool = False  # At least one batch was not started


@dataclass
class EntryBatchResult:
    files: List[FileEntry] = field(default_factory=list)
    subdirectories: List[str] = field(default_factory=list)
    failed: int = 0
    cancelled: bool = False


class BatchExecutor:
    """
    Bounded-concurrency fan-out.

    Items are split into chunks of ``batch_size``; at most
    ``max_concurrent_batches`` chunks run at a time and every item inside a
    chunk runs concurrently. A failing item is counted and dropped, never
    raised. The cancellation token is checked before each chunk starts; chunks
    already running are allowed to finish.
    """

    def __init__(self, batch_size: int = 32, max_concurrent_batches: int = 3):
        if batch_size < 1 or max_concurrent_batches < 1:
            raise ValueError("batch_size and max_concurrent_batches must be positive")
        self.batch_size = batch_size
        self.max_concurrent_batches = max_concurrent_batches

    def chunk(self, items: Sequence[T]) -> List[Sequence[T]]:
        return [items[i:i + self.batch_size] for i in range(0, len(items), self.batch_size)]

    async def map(
        self,
        items: Sequence[T],
        func: Callable[[T], Awaitable[Optional[R]]],
        token: Optional[CancellationToken] = None,
    ) -> MapResult[R]:
        result: MapResult[R] = MapResult()
        if not items:
            return result

        semaphore = asyncio.Semaphore(self.max_concurrent_batches)

        async def run_chunk(chunk: Sequence[T]) -> Optional[list]:
            async with semaphore:
                if token is not None and token.is_cancelled:
                    return None
                return await asyncio.gather(*(func(item) for item in chunk), return_exceptions=True)

        chunk_outputs = await asyncio.gather(*(run_chunk(c) for c in self.chunk(items)))

        for output in chunk_outputs:
            if output is None:
                result.cancelled = True
                continue
            for value in output:
                if isinstance(value, Exception):
                    logging.debug(f"Batch item failed: {value}")
                    result.failed += 1
                elif value is None:
                    result.failed += 1
                else:
                    result.values.append(value)
        return result

    async def stat_entries(
        self,
        paths: Sequence[str],
        token: Optional[CancellationToken] = None,
    ) -> EntryBatchResult:
        """Stat every path, splitting the readable ones into files and subdirectories."""
        mapped = await self.map(paths, stat_path, token)
        batch = EntryBatchResult(failed=mapped.failed, cancelled=mapped.cancelled)
        for entry in mapped.values:
            if entry.is_dir:
                batch.subdirectories.append(entry.path)
            else:
                batch.files.append(entry)
        return batch
