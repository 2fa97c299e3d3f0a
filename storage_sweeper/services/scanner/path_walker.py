import logging
from collections import deque
from typing import AsyncIterator, Callable, Deque, Iterable, Optional, Set

from storage_sweeper.services.scanner.filesystem import canonical_path

SkipPredicate = Callable[[str], bool]


class PathWalker:
    """
    Breadth-first traversal of a directory forest.

    The walker is owned by a single coordinating task: it yields one directory
    at a time and the coordinator reports that directory's subdirectories back
    through ``enqueue`` before asking for the next one. Revisits are prevented
    by canonical path, so symlink cycles and mounts reached twice terminate.

    ``processed`` counts every directory taken off the queue (visited or
    dropped), so ``processed + queued`` equals the number of directories
    ever accepted into the queue and never decreases.
    """

    def __init__(self, roots: Iterable[str], skip: Optional[SkipPredicate] = None):
        self._skip = skip or (lambda _path: False)
        self._queue: Deque[str] = deque()
        self._seen: Set[str] = set()  # raw paths ever queued
        self._visited: Set[str] = set()  # canonical paths yielded
        self.processed = 0
        self.enqueue(roots)

    @property
    def queued(self) -> int:
        return len(self._queue)

    def enqueue(self, paths: Iterable[str]) -> int:
        """Queue unseen directories. Returns how many were added."""
        added = 0
        for path in paths:
            if path in self._seen:
                continue
            self._seen.add(path)
            self._queue.append(path)
            added += 1
        return added

    async def next_directory(self) -> Optional[str]:
        """Next directory to process, or None when the forest is exhausted."""
        while self._queue:
            path = self._queue.popleft()
            self.processed += 1

            if self._skip(path):
                logging.debug(f"Skipping {path} (skip rule)")
                continue

            real = await canonical_path(path)
            if real is None:
                continue
            if real in self._visited:
                logging.debug(f"Skipping {path} (already visited as {real})")
                continue
            if real != path and self._skip(real):
                continue

            self._visited.add(real)
            return path
        return None

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            directory = await self.next_directory()
            if directory is None:
                return
            yield directory
