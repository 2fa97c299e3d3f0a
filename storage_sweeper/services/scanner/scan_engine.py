import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from storage_sweeper.core.cancellation import CancellationToken
from storage_sweeper.core.scan_state_machine import ScanStateMachine
from storage_sweeper.models import (
    DuplicateGroup,
    ScanCategory,
    ScanItem,
    ScanOutcome,
    ScanProgress,
    ScanStage,
    ScanStats,
    ScanStatus,
    summarize,
)
from storage_sweeper.services.ports import PermissionGate, StaticPermissionGate
from storage_sweeper.services.scanner.batch_executor import BatchExecutor
from storage_sweeper.services.scanner.corpse_resolver import CorpseResolver, CorpseVerdict
from storage_sweeper.services.scanner.deduplicator import Deduplicator
from storage_sweeper.services.scanner.domain_objects import PackageMode, ScanMode, ScanRequest
from storage_sweeper.services.scanner.filesystem import (
    FileEntry,
    directory_size,
    is_directory,
    read_dir,
    stat_path,
)
from storage_sweeper.services.scanner.path_walker import PathWalker
from storage_sweeper.services.scanner.progress_reporter import ProgressCallback, ProgressReporter
from storage_sweeper.services.scanner.result_aggregator import ResultAggregator
from storage_sweeper.utils.progress_utils import format_bytes_human_readable


@dataclass
class _AppDataCandidate:
    path: str
    package_name: str
    category: ScanCategory
    modified_at: int


class _ScanContext:
    """Per-scan state. Owned by the coordinating task only."""

    def __init__(self, request: ScanRequest, token: CancellationToken, reporter: ProgressReporter):
        self.request = request
        self.token = token
        self.reporter = reporter
        self.aggregator = ResultAggregator()
        self.executor = BatchExecutor(request.batch_size, request.max_concurrent_batches)
        self.walker: Optional[PathWalker] = None
        self.matched = 0
        self.skipped = 0
        self.stage = ScanStage.SCANNING
        self.current_path: Optional[str] = None
        self.groups: List[DuplicateGroup] = []

    def snapshot(self) -> ScanProgress:
        return ScanProgress(
            processed_dirs=self.walker.processed if self.walker else 0,
            queued_dirs=self.walker.queued if self.walker else 0,
            matched_items=self.matched,
            current_path=self.current_path,
            stage=self.stage,
        )

    def report(self, stage: Optional[ScanStage] = None) -> None:
        if stage is not None:
            self.stage = stage
        self.reporter.emit(self.snapshot())


class ScanEngine:
    """
    Runs one scan from a ScanRequest to a ScanOutcome.

    A single coordinating task owns the walker, the counters and the
    progress reporter; only directory listing, stat, hashing and size
    computation fan out through the BatchExecutor. The returned outcome is
    always terminal: completed, cancelled or failed.
    """

    def __init__(self, permission_gate: Optional[PermissionGate] = None):
        self._permission_gate = permission_gate or StaticPermissionGate(True)

    async def run(
        self,
        request: ScanRequest,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        state_machine: Optional[ScanStateMachine] = None,
    ) -> ScanOutcome:
        token = token or CancellationToken()
        state = state_machine or ScanStateMachine(request.scan_id, request.feature)
        reporter = ProgressReporter(on_progress, request.progress_interval_ms)
        ctx = _ScanContext(request, token, reporter)
        stats = ScanStats(started_at=datetime.now(timezone.utc))

        if state.status == ScanStatus.IDLE and token.is_cancelled:
            await state.transition(ScanStatus.CANCELLED)
            return self._finish(ctx, stats, ScanStatus.CANCELLED)

        await state.transition(ScanStatus.RUNNING)
        logging.info(f"Scan {request.scan_id} started: feature={request.feature}, mode={request.mode.value}")

        try:
            roots = await self._prepare_roots(request)
            if roots:
                ctx.report()
                if request.mode == ScanMode.APP_DATA:
                    await self._scan_app_data(ctx, roots)
                elif request.mode == ScanMode.DUPLICATES:
                    await self._scan_duplicates(ctx, roots)
                else:
                    await self._scan_files(ctx, roots)

        except asyncio.CancelledError:
            token.cancel()
            await ctx.aggregator.seal()
            if state.can_transition(ScanStatus.CANCELLED):
                await state.transition(ScanStatus.CANCELLED)
            raise

        except Exception as e:
            logging.error(f"Scan {request.scan_id} ({request.feature}) failed: {e}", exc_info=True)
            token.cancel()
            await ctx.aggregator.seal()
            await state.transition(ScanStatus.FAILED, error=str(e))
            return self._finish(ctx, stats, ScanStatus.FAILED, error=str(e), items=[])

        if token.is_cancelled:
            await ctx.aggregator.seal()
            if request.mode == ScanMode.DUPLICATES:
                ctx.groups = []
            await state.transition(ScanStatus.CANCELLED)
            status = ScanStatus.CANCELLED
        else:
            await state.transition(ScanStatus.COMPLETED)
            status = ScanStatus.COMPLETED

        items = await ctx.aggregator.results()
        if status == ScanStatus.CANCELLED and request.mode == ScanMode.DUPLICATES:
            items = []
        return self._finish(ctx, stats, status, items=items)

    async def _prepare_roots(self, request: ScanRequest) -> List[str]:
        if not await self._permission_gate.request_storage_permission():
            logging.warning(f"Storage permission denied, scan {request.scan_id} returns no results")
            return []

        roots = []
        for root in dict.fromkeys(request.roots):
            if await is_directory(root):
                roots.append(root)
            else:
                logging.debug(f"Root does not exist or is not a directory: {root}")

        if not roots:
            logging.info(f"No accessible roots for scan {request.scan_id} ({request.feature})")
        return roots

    def _finish(
        self,
        ctx: _ScanContext,
        stats: ScanStats,
        status: ScanStatus,
        error: Optional[str] = None,
        items: Optional[List[ScanItem]] = None,
    ) -> ScanOutcome:
        ctx.stage = ScanStage.FINALIZING
        ctx.reporter.finish(ctx.snapshot())

        stats.finished_at = datetime.now(timezone.utc)
        stats.processed_dirs = ctx.walker.processed if ctx.walker else 0
        stats.skipped_entries = ctx.skipped

        items = items or []
        outcome = ScanOutcome(
            feature=ctx.request.feature,
            status=status,
            items=items,
            groups=ctx.groups if status == ScanStatus.COMPLETED else [],
            summary=summarize(items),
            stats=stats,
            error=error,
        )
        logging.info(
            f"Scan {ctx.request.scan_id} {status.value}: {len(items)} items, "
            f"{format_bytes_human_readable(outcome.summary.total_size)}, "
            f"{stats.processed_dirs} dirs in {stats.duration_seconds:.2f}s"
        )
        return outcome

    async def _walk(
        self,
        ctx: _ScanContext,
        roots: List[str],
        on_file: Callable[[FileEntry], Awaitable[None]],
    ) -> None:
        """Breadth-first traversal; every readable file is handed to ``on_file``."""
        ctx.walker = PathWalker(roots, ctx.request.skip)

        while not ctx.token.is_cancelled:
            directory = await ctx.walker.next_directory()
            if directory is None:
                break
            ctx.current_path = directory

            children = await read_dir(directory)
            batch = await ctx.executor.stat_entries(children, ctx.token)
            ctx.skipped += batch.failed
            ctx.walker.enqueue(batch.subdirectories)

            # Entries observed after the signal are discarded
            if ctx.token.is_cancelled:
                break

            for entry in batch.files:
                await on_file(entry)
            ctx.report()

    async def _scan_files(self, ctx: _ScanContext, roots: List[str]) -> None:
        classifier = ctx.request.classifier

        async def classify(entry: FileEntry) -> None:
            category = classifier.classify(entry.path, entry.size, entry.modified_at, entry.extension)
            if category is None:
                return
            item = ScanItem(
                path=entry.path,
                size=entry.size,
                modified_at=entry.modified_at,
                category=category,
            )
            if await ctx.aggregator.add(item):
                ctx.matched += 1

        await self._walk(ctx, roots, classify)

    async def _scan_duplicates(self, ctx: _ScanContext, roots: List[str]) -> None:
        request = ctx.request
        deduplicator = Deduplicator(
            hasher=request.hasher,
            executor=BatchExecutor(request.hash_batch_size, request.hash_concurrency),
        )

        async def collect(entry: FileEntry) -> None:
            if request.classifier.classify(entry.path, entry.size, entry.modified_at, entry.extension) is None:
                return
            deduplicator.add(entry)
            ctx.matched += 1

        await self._walk(ctx, roots, collect)
        if ctx.token.is_cancelled:
            return

        ctx.report(ScanStage.CLASSIFYING)
        groups = await deduplicator.find_groups(ctx.token)
        ctx.skipped += deduplicator.failed
        if ctx.token.is_cancelled:
            return

        ctx.groups = groups
        for group in groups:
            await ctx.aggregator.add_all(group.files)

    async def _scan_app_data(self, ctx: _ScanContext, roots: List[str]) -> None:
        """One level below each app-data root: corpse directories and per-package caches."""
        request = ctx.request
        resolver = CorpseResolver(
            request.installed_packages if request.package_mode == PackageMode.RESOLVED else ()
        )
        ctx.walker = PathWalker(roots, request.skip)
        candidates: List[_AppDataCandidate] = []

        while not ctx.token.is_cancelled:
            root = await ctx.walker.next_directory()
            if root is None:
                break
            ctx.current_path = root

            batch = await ctx.executor.stat_entries(await read_dir(root), ctx.token)
            ctx.skipped += batch.failed
            if ctx.token.is_cancelled:
                break

            for package_dir in sorted(batch.subdirectories):
                if request.skip is not None and request.skip(package_dir):
                    continue
                candidate = await self._app_data_candidate(package_dir, resolver, request)
                if candidate is not None:
                    candidates.append(candidate)
            ctx.report()

        if ctx.token.is_cancelled or not candidates:
            return

        ctx.report(ScanStage.CLASSIFYING)
        size_executor = BatchExecutor(request.batch_size, 2)

        async def measure(candidate: _AppDataCandidate) -> Optional[ScanItem]:
            size = await directory_size(candidate.path)
            if size <= 0:
                return None
            return ScanItem(
                path=candidate.path,
                size=size,
                modified_at=candidate.modified_at,
                category=candidate.category,
                package_name=candidate.package_name,
                is_directory=True,
            )

        measured = await size_executor.map(candidates, measure, ctx.token)
        if ctx.token.is_cancelled:
            return
        for item in measured.values:
            if await ctx.aggregator.add(item):
                ctx.matched += 1
        ctx.report()

    async def _app_data_candidate(
        self,
        package_dir: str,
        resolver: CorpseResolver,
        request: ScanRequest,
    ) -> Optional[_AppDataCandidate]:
        name = os.path.basename(package_dir)
        verdict = resolver.resolve(name)

        if verdict == CorpseVerdict.CORPSE:
            target, category = package_dir, ScanCategory.CORPSE
        elif name in request.installed_packages or verdict == CorpseVerdict.UNKNOWN or (
            request.package_mode == PackageMode.DEGRADED and verdict == CorpseVerdict.SYSTEM
        ):
            target, category = os.path.join(package_dir, "cache"), ScanCategory.CACHE
        else:
            return None

        entry = await stat_path(target)
        if entry is None or not entry.is_dir:
            return None
        return _AppDataCandidate(target, name, category, entry.modified_at)
