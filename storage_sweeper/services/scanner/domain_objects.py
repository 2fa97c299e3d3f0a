import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional

from storage_sweeper.services.scanner.classifier import FileClassifier
from storage_sweeper.services.scanner.deduplicator import FileHasher

SkipPredicate = Callable[[str], bool]


class ScanMode(str, Enum):
    FILES = "files"  # Classify every file under the roots
    APP_DATA = "app_data"  # Per-package directories: corpses and app caches
    DUPLICATES = "duplicates"  # Candidates grouped by content fingerprint


class PackageMode(str, Enum):
    """Whether the installed-package list is available for corpse detection."""

    RESOLVED = "resolved"
    DEGRADED = "degraded"  # List unavailable: no corpse verdicts, all package dirs are cache candidates

    @classmethod
    def for_installed(cls, installed_packages: Iterable[str]) -> "PackageMode":
        return cls.RESOLVED if any(True for _ in installed_packages) else cls.DEGRADED


@dataclass
class ScanRequest:
    """Everything one scan needs. No global state is read during a scan."""

    feature: str
    roots: List[str]
    classifier: FileClassifier
    mode: ScanMode = ScanMode.FILES
    skip: Optional[SkipPredicate] = None

    installed_packages: FrozenSet[str] = frozenset()
    package_mode: PackageMode = PackageMode.DEGRADED

    batch_size: int = 32
    max_concurrent_batches: int = 3
    progress_interval_ms: int = 120

    hasher: Optional[FileHasher] = None
    hash_batch_size: int = 50
    hash_concurrency: int = 1

    scan_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        self.installed_packages = frozenset(self.installed_packages)
        if self.package_mode == PackageMode.RESOLVED and not self.installed_packages:
            raise ValueError("PackageMode.RESOLVED requires a non-empty installed package set")
