import asyncio
import logging
from typing import Dict, Optional, Set

from storage_sweeper.core.events.event_bus import DomainEventBus
from storage_sweeper.core.events.scan_events import ScanStatusChangedEvent
from storage_sweeper.core.exceptions import InvalidScanTransitionError
from storage_sweeper.models import ScanStatus


class ScanStateMachine:
    """
    Gatekeeper for the status of one scan.

    This is the only place a scan's status changes. Every accepted
    transition is announced as a ScanStatusChangedEvent.
    """

    _transitions: Dict[ScanStatus, Set[ScanStatus]] = {
        ScanStatus.IDLE: {ScanStatus.RUNNING, ScanStatus.CANCELLED},
        ScanStatus.RUNNING: {
            ScanStatus.COMPLETED,
            ScanStatus.CANCELLED,
            ScanStatus.FAILED,
        },
        ScanStatus.COMPLETED: set(),
        ScanStatus.CANCELLED: set(),
        ScanStatus.FAILED: set(),
    }

    def __init__(
        self,
        scan_id: str,
        feature: str,
        event_bus: Optional[DomainEventBus] = None,
    ):
        self.scan_id = scan_id
        self.feature = feature
        self._event_bus = event_bus
        self._status = ScanStatus.IDLE
        self._lock = asyncio.Lock()

    @property
    def status(self) -> ScanStatus:
        return self._status

    def can_transition(self, new_status: ScanStatus) -> bool:
        return new_status in self._transitions[self._status]

    async def transition(self, new_status: ScanStatus, *, error: Optional[str] = None) -> ScanStatus:
        """
        Move the scan to ``new_status``.

        Raises:
            InvalidScanTransitionError: If the move is not in the transition table.
        """
        async with self._lock:
            old_status = self._status
            if new_status not in self._transitions[old_status]:
                raise InvalidScanTransitionError(self.scan_id, old_status.value, new_status.value)

            self._status = new_status
            logging.info(f"Scan {self.scan_id} ({self.feature}): {old_status.value} -> {new_status.value}")

        # Announce outside the lock
        if self._event_bus is not None:
            await self._event_bus.publish(
                ScanStatusChangedEvent(
                    scan_id=self.scan_id,
                    feature=self.feature,
                    old_status=old_status,
                    new_status=new_status,
                    error=error,
                )
            )
        return new_status
