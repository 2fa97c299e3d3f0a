"""
Duplicate-content grouping.

Three stages: bucket candidates by size (no I/O), fingerprint only the files
whose size is shared, then group by fingerprint. The fingerprint function is
injected; the default hashes a size-prefixed partial read of the file.
"""

import hashlib
import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

import aiofiles

from storage_sweeper.core.cancellation import CancellationToken
from storage_sweeper.models import DuplicateGroup, ScanCategory, ScanItem
from storage_sweeper.services.scanner.batch_executor import BatchExecutor
from storage_sweeper.services.scanner.filesystem import FileEntry

PARTIAL_CHUNK_SIZE = 1024 * 1024  # 1 MiB from each end
FULL_HASH_LIMIT = 2 * PARTIAL_CHUNK_SIZE

ORIGINAL_LOCATION_KEYWORDS = ("sdcard", "downloads", "dcim", "camera", "whatsapp")
APP_PRIVATE_MARKER = "android/data"


class FileHasher(Protocol):
    async def hash_file(self, path: str, size: int) -> str:
        ...


class PartialContentHasher:
    """
    SHA-1 over the file size plus its content; files above 2 MiB only
    contribute their first and last MiB.
    """

    def __init__(self, chunk_size: int = PARTIAL_CHUNK_SIZE):
        self.chunk_size = chunk_size

    async def hash_file(self, path: str, size: int) -> str:
        digest = hashlib.sha1()
        digest.update(str(size).encode("ascii"))
        async with aiofiles.open(path, "rb") as f:
            if size <= 2 * self.chunk_size:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    digest.update(chunk)
            else:
                digest.update(await f.read(self.chunk_size))
                await f.seek(size - self.chunk_size)
                digest.update(await f.read(self.chunk_size))
        return digest.hexdigest()


@dataclass(frozen=True)
class FingerprintedFile:
    path: str
    fingerprint: str
    size: int
    modified_at: int


def group_id_for(fingerprint: str) -> str:
    return "dup-" + hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:16]


def group_by_fingerprint(records: Sequence[FingerprintedFile]) -> List[DuplicateGroup]:
    """Groups of two or more records sharing a fingerprint, in first-seen order."""
    buckets: "OrderedDict[str, List[FingerprintedFile]]" = OrderedDict()
    for record in records:
        buckets.setdefault(record.fingerprint, []).append(record)

    groups = []
    for fingerprint, members in buckets.items():
        if len(members) < 2:
            continue
        group_id = group_id_for(fingerprint)
        groups.append(
            DuplicateGroup(
                group_id=group_id,
                files=[
                    ScanItem(
                        path=m.path,
                        size=m.size,
                        modified_at=m.modified_at,
                        category=ScanCategory.DUPLICATE_MEMBER,
                        group_id=group_id,
                    )
                    for m in members
                ],
            )
        )
    return groups


class Deduplicator:
    def __init__(
        self,
        hasher: Optional[FileHasher] = None,
        executor: Optional[BatchExecutor] = None,
        min_size: int = 0,
    ):
        self.hasher = hasher or PartialContentHasher()
        self.executor = executor or BatchExecutor(batch_size=50, max_concurrent_batches=1)
        self.min_size = min_size
        self._candidates: List[FileEntry] = []
        self.failed = 0

    def add(self, entry: FileEntry) -> None:
        if entry.size >= self.min_size and entry.size > 0:
            self._candidates.append(entry)

    def size_buckets(self) -> List[FileEntry]:
        """Candidates whose size is shared with at least one other candidate."""
        by_size: Dict[int, List[FileEntry]] = defaultdict(list)
        seen_paths = set()
        for entry in self._candidates:
            if entry.path in seen_paths:
                continue
            seen_paths.add(entry.path)
            by_size[entry.size].append(entry)
        return [e for bucket in by_size.values() if len(bucket) > 1 for e in bucket]

    async def find_groups(self, token: Optional[CancellationToken] = None) -> List[DuplicateGroup]:
        """Hash the size-colliding candidates and return duplicate groups.

        Returns [] when cancelled before or during hashing.
        """
        if token is not None and token.is_cancelled:
            return []

        to_hash = self.size_buckets()
        logging.debug(f"Deduplicator: {len(to_hash)} of {len(self._candidates)} candidates share a size")

        async def fingerprint(entry: FileEntry) -> Optional[FingerprintedFile]:
            digest = await self.hasher.hash_file(entry.path, entry.size)
            return FingerprintedFile(entry.path, digest, entry.size, entry.modified_at)

        mapped = await self.executor.map(to_hash, fingerprint, token)
        self.failed += mapped.failed
        if mapped.cancelled or (token is not None and token.is_cancelled):
            return []

        # Fingerprints only collide within one size bucket
        records = [
            FingerprintedFile(r.path, f"{r.size}:{r.fingerprint}", r.size, r.modified_at)
            for r in mapped.values
        ]
        return group_by_fingerprint(records)


def choose_original(group: DuplicateGroup) -> ScanItem:
    """Member to keep: preferred location keyword, then first non app-private path, then first."""
    for keyword in ORIGINAL_LOCATION_KEYWORDS:
        for item in group.files:
            if keyword in item.path.lower():
                return item
    for item in group.files:
        if APP_PRIVATE_MARKER not in item.path.lower():
            return item
    return group.files[0]


def select_deletable(groups: Sequence[DuplicateGroup]) -> List[ScanItem]:
    """Every member except each group's original."""
    deletable = []
    for group in groups:
        original = choose_original(group)
        deletable.extend(item for item in group.files if item.path != original.path)
    return deletable
