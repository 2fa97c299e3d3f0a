import logging
import time
from typing import Callable, Optional

from storage_sweeper.models import ScanProgress
from storage_sweeper.utils.progress_utils import should_emit_progress

ProgressCallback = Callable[[ScanProgress], None]


class ProgressReporter:
    """
    Rate-limits progress snapshots to one delivery per interval.

    A change of stage or of the known total (processed + queued) is always
    delivered immediately, and ``finish`` always delivers the last snapshot.
    Errors raised by the consumer callback are logged and swallowed.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        interval_ms: int = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._callback = callback
        self._interval = interval_ms / 1000.0
        self._clock = clock
        self._last_emitted_at: Optional[float] = None
        self._last: Optional[ScanProgress] = None
        self._finished = False
        self.delivered = 0

    def emit(self, snapshot: ScanProgress) -> bool:
        """Deliver ``snapshot`` if the throttle allows it. Returns True when delivered."""
        if self._finished:
            return False
        return self._maybe_deliver(snapshot, is_final=False)

    def finish(self, snapshot: ScanProgress) -> bool:
        if self._finished:
            return False
        delivered = self._maybe_deliver(snapshot, is_final=True)
        self._finished = True
        return delivered

    def _maybe_deliver(self, snapshot: ScanProgress, is_final: bool) -> bool:
        now = self._clock()
        last = self._last
        if not should_emit_progress(
            now,
            self._last_emitted_at,
            self._interval,
            stage_changed=last is not None and last.stage != snapshot.stage,
            total_changed=last is not None and last.total != snapshot.total,
            is_final=is_final,
        ):
            return False

        self._last_emitted_at = now
        self._last = snapshot
        self.delivered += 1
        if self._callback is not None:
            try:
                self._callback(snapshot)
            except Exception as e:
                logging.warning(f"Progress callback raised: {e}")
        return True
