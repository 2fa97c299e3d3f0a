import os
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from storage_sweeper.utils.progress_utils import calculate_ratio


class ScanCategory(str, Enum):
    """
    Closed set of classifications a scanned entry can receive.

    The first nine are produced by the junk/cache/duplicate pipeline, the
    media categories by the category-browsing features.
    """

    CACHE = "cache"
    TEMP = "temp"
    LOG = "log"
    APK = "apk"
    LARGE = "large"
    OLD = "old"
    OTHER = "other"
    CORPSE = "corpse"
    DUPLICATE_MEMBER = "duplicate-member"

    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"


class ScanStage(str, Enum):
    SCANNING = "scanning"
    CLASSIFYING = "classifying"
    FINALIZING = "finalizing"


class ScanStatus(str, Enum):
    """
    Lifecycle of a single scan.

    Workflow: Idle -> Running -> Completed | Cancelled | Failed
    """

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.CANCELLED, ScanStatus.FAILED)


class DeletionStatus(str, Enum):
    DELETED = "deleted"
    MISSING = "missing"  # Already gone when deletion was attempted
    FAILED = "failed"


class ScanItem(BaseModel):
    """One classified filesystem entry. Identity is the path."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the entry")
    size: int = Field(..., ge=0, description="Size in bytes (recursive for directories)")
    modified_at: int = Field(..., description="Last modification, epoch milliseconds")
    category: ScanCategory
    group_id: Optional[str] = Field(None, description="Duplicate group, only for duplicate members")
    package_name: Optional[str] = Field(None, description="Owning package for corpse/cache items")
    is_directory: bool = False

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep)) or self.path


class DuplicateGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: str
    files: List[ScanItem] = Field(..., min_length=2)

    @computed_field
    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.files)

    @computed_field
    @property
    def reclaimable_size(self) -> int:
        """Bytes freed by keeping exactly one copy."""
        return self.total_size - self.files[0].size


class ScanProgress(BaseModel):
    """Progress snapshot. processed+queued and matched never decrease within a scan."""

    model_config = ConfigDict(frozen=True)

    processed_dirs: int = 0
    queued_dirs: int = 0
    matched_items: int = 0
    current_path: Optional[str] = None
    stage: ScanStage = ScanStage.SCANNING

    @computed_field
    @property
    def total(self) -> int:
        return self.processed_dirs + self.queued_dirs

    @computed_field
    @property
    def ratio(self) -> float:
        if self.stage == ScanStage.FINALIZING:
            return 1.0
        return calculate_ratio(self.processed_dirs, self.total)


class CategorySummary(BaseModel):
    count: int = 0
    size: int = 0


class ScanSummary(BaseModel):
    total_count: int = 0
    total_size: int = 0
    by_category: Dict[ScanCategory, CategorySummary] = Field(default_factory=dict)


class ScanStats(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed_dirs: int = 0
    skipped_entries: int = 0

    @computed_field
    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class ScanOutcome(BaseModel):
    """
    Result of one scan.

    "No results" is COMPLETED with no items, "failed" carries an error message
    and "cancelled" carries whatever was accumulated before the signal.
    """

    feature: str
    status: ScanStatus
    items: List[ScanItem] = Field(default_factory=list)
    groups: List[DuplicateGroup] = Field(default_factory=list)
    summary: ScanSummary = Field(default_factory=ScanSummary)
    stats: Optional[ScanStats] = None
    error: Optional[str] = None


class DeletionResult(BaseModel):
    status: DeletionStatus
    freed_bytes: int = 0
    error: Optional[str] = None


class DeletionReport(BaseModel):
    results: Dict[str, DeletionResult] = Field(default_factory=dict)

    @computed_field
    @property
    def deleted_count(self) -> int:
        return sum(1 for r in self.results.values() if r.status == DeletionStatus.DELETED)

    @computed_field
    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results.values() if r.status == DeletionStatus.FAILED)

    @computed_field
    @property
    def freed_bytes(self) -> int:
        return sum(r.freed_bytes for r in self.results.values())


def summarize(items: List[ScanItem]) -> ScanSummary:
    """Per-category count and size for a list of items."""
    summary = ScanSummary()
    for item in items:
        bucket = summary.by_category.setdefault(item.category, CategorySummary())
        bucket.count += 1
        bucket.size += item.size
        summary.total_count += 1
        summary.total_size += item.size
    return summary
