import pytest

from storage_sweeper.core.events.scan_events import ItemsDeletedEvent, ScanCompletedEvent
from storage_sweeper.core.scan_result_repository import ScanResultRepository, prune_outcome
from storage_sweeper.models import (
    DeletionReport,
    DeletionResult,
    DeletionStatus,
    DuplicateGroup,
    ScanCategory,
    ScanItem,
    ScanOutcome,
    ScanStatus,
    summarize,
)


def _item(path, size=100, category=ScanCategory.TEMP, group_id=None):
    return ScanItem(path=path, size=size, modified_at=0, category=category, group_id=group_id)


def _outcome(feature, items, groups=None, status=ScanStatus.COMPLETED):
    return ScanOutcome(feature=feature, status=status, items=items, groups=groups or [], summary=summarize(items))


@pytest.fixture
def repository():
    return ScanResultRepository()


class TestScanResultRepository:
    @pytest.mark.asyncio
    async def test_latest_outcome_per_feature(self, repository):
        await repository.save(_outcome("junk", [_item("/a")]))
        await repository.save(_outcome("junk", [_item("/b")], status=ScanStatus.CANCELLED))
        await repository.save(_outcome("images", []))

        latest = await repository.get("junk")
        assert latest.status == ScanStatus.CANCELLED
        assert [i.path for i in latest.items] == ["/b"]
        assert len(await repository.get_all()) == 2
        assert await repository.get("videos") is None

    @pytest.mark.asyncio
    async def test_clear(self, repository):
        await repository.save(_outcome("junk", []))
        assert await repository.clear("junk")
        assert not await repository.clear("junk")

    @pytest.mark.asyncio
    async def test_scan_completed_event_is_stored(self, repository):
        outcome = _outcome("junk", [_item("/a")])
        await repository.handle_scan_completed(ScanCompletedEvent(scan_id="s1", outcome=outcome))
        assert await repository.get("junk") == outcome

    @pytest.mark.asyncio
    async def test_deleted_paths_are_pruned_but_failures_kept(self, repository):
        await repository.save(_outcome("junk", [_item("/a", 10), _item("/b", 20), _item("/c", 30)]))
        report = DeletionReport(
            results={
                "/a": DeletionResult(status=DeletionStatus.DELETED, freed_bytes=10),
                "/b": DeletionResult(status=DeletionStatus.MISSING),
                "/c": DeletionResult(status=DeletionStatus.FAILED, error="busy"),
            }
        )

        await repository.handle_items_deleted(ItemsDeletedEvent(report=report))

        outcome = await repository.get("junk")
        assert [i.path for i in outcome.items] == ["/c"]
        assert outcome.summary.total_size == 30


class TestPruneOutcome:
    def test_groups_below_two_members_disappear(self):
        dup = ScanCategory.DUPLICATE_MEMBER
        g1 = DuplicateGroup(group_id="g1", files=[_item("/x1", category=dup, group_id="g1"), _item("/x2", category=dup, group_id="g1")])
        g2 = DuplicateGroup(
            group_id="g2",
            files=[_item(f"/y{i}", category=dup, group_id="g2") for i in range(3)],
        )
        outcome = _outcome("duplicates", g1.files + g2.files, groups=[g1, g2])

        pruned = prune_outcome(outcome, {"/x1", "/y0"})

        assert [g.group_id for g in pruned.groups] == ["g2"]
        assert [f.path for f in pruned.groups[0].files] == ["/y1", "/y2"]
        assert "/x2" in {i.path for i in pruned.items}
        assert pruned.summary.total_count == 3
