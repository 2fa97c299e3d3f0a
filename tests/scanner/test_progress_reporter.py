import pytest

from storage_sweeper.models import ScanProgress, ScanStage
from storage_sweeper.services.scanner.progress_reporter import ProgressReporter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestProgressReporter:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def delivered(self):
        return []

    @pytest.fixture
    def reporter(self, clock, delivered):
        return ProgressReporter(delivered.append, interval_ms=100, clock=clock)

    def test_throttles_within_interval(self, reporter, clock, delivered):
        snapshot = ScanProgress(processed_dirs=1, queued_dirs=1)
        assert reporter.emit(snapshot)
        clock.advance(0.05)
        assert not reporter.emit(ScanProgress(processed_dirs=1, queued_dirs=1, matched_items=3))
        clock.advance(0.06)
        assert reporter.emit(ScanProgress(processed_dirs=1, queued_dirs=1, matched_items=4))
        assert [s.matched_items for s in delivered] == [0, 4]

    def test_stage_change_is_forced(self, reporter, clock, delivered):
        reporter.emit(ScanProgress(processed_dirs=2))
        assert reporter.emit(ScanProgress(processed_dirs=2, stage=ScanStage.CLASSIFYING))
        assert delivered[-1].stage == ScanStage.CLASSIFYING

    def test_total_change_is_forced(self, reporter, delivered):
        reporter.emit(ScanProgress(processed_dirs=1, queued_dirs=0))
        assert reporter.emit(ScanProgress(processed_dirs=1, queued_dirs=5))
        assert len(delivered) == 2

    def test_finish_always_delivers_once(self, reporter, delivered):
        reporter.emit(ScanProgress(processed_dirs=1))
        final = ScanProgress(processed_dirs=1, stage=ScanStage.FINALIZING)
        assert reporter.finish(final)
        assert not reporter.finish(final)
        assert not reporter.emit(ScanProgress(processed_dirs=9))
        assert delivered[-1] == final
        assert final.ratio == 1.0

    def test_callback_errors_are_swallowed(self, clock):
        def broken(_snapshot):
            raise RuntimeError("ui went away")

        reporter = ProgressReporter(broken, interval_ms=100, clock=clock)
        assert reporter.emit(ScanProgress())
        assert reporter.delivered == 1
