"""
Scan sessions: run feature scans in the background, stream their progress,
cancel them and delete what they found.
"""

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Sequence, Union

from storage_sweeper.config import Settings
from storage_sweeper.core.cancellation import CancellationToken
from storage_sweeper.core.events.event_bus import DomainEventBus
from storage_sweeper.core.events.scan_events import ItemsDeletedEvent, ScanCompletedEvent
from storage_sweeper.core.exceptions import UnknownScanError
from storage_sweeper.core.scan_state_machine import ScanStateMachine
from storage_sweeper.models import DeletionReport, ScanItem, ScanOutcome, ScanProgress, ScanStatus
from storage_sweeper.services.deletion.deletion_executor import DeletionExecutor
from storage_sweeper.services.features import FeatureKind, build_scan_request, get_profile, parse_feature
from storage_sweeper.services.ports import (
    PackageProvider,
    PermissionGate,
    RootPathProvider,
    StaticPackageProvider,
    StaticPermissionGate,
    StorageLayout,
)
from storage_sweeper.services.scanner.deduplicator import FileHasher
from storage_sweeper.services.scanner.domain_objects import ScanMode, ScanRequest
from storage_sweeper.services.scanner.scan_engine import ScanEngine

_PROGRESS_DONE = None
PROGRESS_BUFFER = 256  # Oldest snapshots are dropped when nobody consumes them


class ScanSession:
    """Handle on one running or finished scan."""

    def __init__(self, request: ScanRequest, event_bus: Optional[DomainEventBus] = None):
        self.request = request
        self.scan_id = request.scan_id
        self.feature = request.feature
        self.token = CancellationToken()
        self.state_machine = ScanStateMachine(request.scan_id, request.feature, event_bus)
        self.latest_progress: Optional[ScanProgress] = None
        self.outcome: Optional[ScanOutcome] = None
        self._progress_queue: "asyncio.Queue[Optional[ScanProgress]]" = asyncio.Queue(maxsize=PROGRESS_BUFFER)
        self.task: Optional[asyncio.Task] = None

    @property
    def status(self) -> ScanStatus:
        return self.state_machine.status

    @property
    def is_running(self) -> bool:
        return not self.status.is_terminal

    def cancel(self) -> None:
        """Request cooperative cancellation. Safe to call repeatedly and from any thread."""
        self.token.cancel()

    def on_progress(self, snapshot: ScanProgress) -> None:
        self.latest_progress = snapshot
        self._enqueue(snapshot)

    def close_progress(self) -> None:
        self._enqueue(_PROGRESS_DONE)

    def _enqueue(self, snapshot: Optional[ScanProgress]) -> None:
        if self._progress_queue.full():
            self._progress_queue.get_nowait()
        self._progress_queue.put_nowait(snapshot)

    async def progress(self) -> AsyncIterator[ScanProgress]:
        """
        Progress snapshots until the scan ends.

        Snapshots are handed out once; a consumer attaching after another one
        has drained the stream (or after the scan finished) only sees the end.
        """
        while True:
            snapshot = await self._progress_queue.get()
            if snapshot is _PROGRESS_DONE:
                # Put the end marker back so every later consumer ends too
                self._enqueue(_PROGRESS_DONE)
                return
            yield snapshot

    async def result(self) -> ScanOutcome:
        if self.task is None:
            raise RuntimeError(f"Scan {self.scan_id} was never started")
        return await asyncio.shield(self.task)


class ScanService:
    def __init__(
        self,
        settings: Settings,
        event_bus: Optional[DomainEventBus] = None,
        root_provider: Optional[RootPathProvider] = None,
        package_provider: Optional[PackageProvider] = None,
        permission_gate: Optional[PermissionGate] = None,
        hasher: Optional[FileHasher] = None,
    ):
        self._settings = settings
        self._event_bus = event_bus
        self._root_provider = root_provider or StorageLayout(settings.external_storage_root)
        self._package_provider = package_provider or StaticPackageProvider(settings.installed_packages)
        self._engine = ScanEngine(permission_gate or StaticPermissionGate(settings.storage_permission_granted))
        self._deletion_executor = DeletionExecutor(settings.delete_concurrency)
        self._hasher = hasher
        self._sessions: Dict[str, ScanSession] = {}
        self._finished: Deque[str] = deque()  # scan ids in the order they ended
        logging.info("ScanService initialized")

    async def start_scan(self, feature: Union[FeatureKind, str]) -> ScanSession:
        """Start a scan in the background, or return the one already running for the feature."""
        kind = feature if isinstance(feature, FeatureKind) else parse_feature(feature)

        running = self._running_session_for(kind)
        if running is not None:
            logging.info(f"Scan for '{kind.value}' already running as {running.scan_id}")
            return running

        request = await self.build_request(kind)
        session = ScanSession(request, self._event_bus)
        self._sessions[session.scan_id] = session
        session.task = asyncio.create_task(self._run(session))
        return session

    async def build_request(self, kind: FeatureKind) -> ScanRequest:
        roots = await self._root_provider.list_root_paths(kind)
        installed: List[str] = []
        if get_profile(kind).mode == ScanMode.APP_DATA:
            installed = sorted(await self._installed_packages())
        return build_scan_request(kind, self._settings, roots, installed, hasher=self._hasher)

    async def _installed_packages(self) -> set:
        try:
            return await self._package_provider.list_installed_packages()
        except OSError as e:
            logging.warning(f"Installed package list unavailable, using degraded mode: {e}")
            return set()

    async def _run(self, session: ScanSession) -> ScanOutcome:
        try:
            outcome = await self._engine.run(
                session.request,
                token=session.token,
                on_progress=session.on_progress,
                state_machine=session.state_machine,
            )
            if self._event_bus is not None:
                await self._event_bus.publish(ScanCompletedEvent(scan_id=session.scan_id, outcome=outcome))
            # Set last: a visible outcome means the result sinks are up to date
            session.outcome = outcome
            return outcome
        finally:
            session.close_progress()
            self._release_finished(session)

    def _release_finished(self, session: ScanSession) -> None:
        """Remember ``session`` as finished; forget the ones that finished longest ago."""
        self._finished.append(session.scan_id)
        keep = max(1, self._settings.session_history_size)
        while len(self._finished) > keep:
            released = self._sessions.pop(self._finished.popleft(), None)
            if released is not None:
                logging.debug(f"Released finished scan {released.scan_id} ({released.feature})")

    def _running_session_for(self, kind: FeatureKind) -> Optional[ScanSession]:
        for session in self._sessions.values():
            if session.feature == kind.value and session.is_running:
                return session
        return None

    def get_session(self, scan_id: str) -> ScanSession:
        session = self._sessions.get(scan_id)
        if session is None:
            raise UnknownScanError(scan_id)
        return session

    def list_sessions(self) -> List[ScanSession]:
        return list(self._sessions.values())

    def cancel(self, scan_id: str) -> ScanSession:
        session = self.get_session(scan_id)
        session.cancel()
        logging.info(f"Cancellation requested for scan {scan_id}")
        return session

    async def delete_items(self, items: Sequence[ScanItem]) -> DeletionReport:
        report = await self._deletion_executor.delete_items(items)
        if self._event_bus is not None:
            await self._event_bus.publish(ItemsDeletedEvent(report=report))
        return report

    async def stop(self) -> None:
        """Cancel every running scan and wait for them to settle."""
        tasks = []
        for session in self._sessions.values():
            session.cancel()
            if session.task is not None:
                tasks.append(session.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logging.info("All scans stopped")
