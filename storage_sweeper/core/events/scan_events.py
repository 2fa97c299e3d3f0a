# storage_sweeper/core/events/scan_events.py
from dataclasses import dataclass
from typing import Optional

from storage_sweeper.core.events.domain_event import DomainEvent
from storage_sweeper.models import DeletionReport, ScanOutcome, ScanStatus


@dataclass(frozen=True, kw_only=True)
class ScanStatusChangedEvent(DomainEvent):
    """Published on every accepted scan status transition."""
    scan_id: str
    feature: str
    old_status: ScanStatus
    new_status: ScanStatus
    error: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class ScanCompletedEvent(DomainEvent):
    """Published once per scan with its terminal outcome (completed, cancelled or failed)."""
    scan_id: str
    outcome: ScanOutcome


@dataclass(frozen=True, kw_only=True)
class ItemsDeletedEvent(DomainEvent):
    report: DeletionReport
