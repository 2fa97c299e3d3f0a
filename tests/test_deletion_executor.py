import aiofiles.os
import pytest
from unittest.mock import patch

from storage_sweeper.core.exceptions import MalformedDeletionRequestError
from storage_sweeper.models import DeletionStatus, ScanCategory, ScanItem
from storage_sweeper.services.deletion.deletion_executor import DeletionExecutor


def _item(path, size=10, is_directory=False) -> ScanItem:
    return ScanItem(path=str(path), size=size, modified_at=0, category=ScanCategory.TEMP, is_directory=is_directory)


class TestDeletionExecutor:
    @pytest.mark.asyncio
    async def test_partial_failure_does_not_stop_others(self, storage_root, make_file):
        deletable = make_file(storage_root / "a.tmp", 10)
        locked = make_file(storage_root / "locked.tmp", 20)
        folder = storage_root / "Android" / "data" / "com.gone"
        make_file(folder / "files" / "x.bin", 30)
        missing = storage_root / "never-existed.tmp"

        real_remove = aiofiles.os.remove

        async def flaky_remove(path, *args, **kwargs):
            if str(path) == str(locked):
                raise PermissionError(13, "Permission denied", str(path))
            return await real_remove(path, *args, **kwargs)

        with patch("aiofiles.os.remove", new=flaky_remove):
            report = await DeletionExecutor(max_concurrent=2).delete_items([
                _item(deletable),
                _item(locked, 20),
                _item(folder, 30, is_directory=True),
                _item(missing),
            ])

        assert report.results[str(deletable)].status == DeletionStatus.DELETED
        assert report.results[str(folder)].status == DeletionStatus.DELETED
        assert report.results[str(missing)].status == DeletionStatus.MISSING
        locked_result = report.results[str(locked)]
        assert locked_result.status == DeletionStatus.FAILED
        assert "Permission denied" in locked_result.error

        assert not deletable.exists()
        assert not folder.exists()
        assert locked.exists()
        assert report.deleted_count == 2
        assert report.failed_count == 1
        assert report.freed_bytes == 40

    @pytest.mark.asyncio
    async def test_duplicate_paths_attempted_once(self, storage_root, make_file):
        path = make_file(storage_root / "a.tmp", 10)
        report = await DeletionExecutor().delete_items([_item(path), _item(path)])

        assert len(report.results) == 1
        assert report.results[str(path)].status == DeletionStatus.DELETED

    @pytest.mark.asyncio
    async def test_empty_request(self):
        report = await DeletionExecutor().delete_items([])
        assert report.results == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", ["/a/path", None, 42, [{"path": "/a"}]])
    async def test_malformed_request_raises(self, bad):
        with pytest.raises(MalformedDeletionRequestError):
            await DeletionExecutor().delete_items(bad)
