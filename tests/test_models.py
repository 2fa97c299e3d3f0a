import os

from storage_sweeper.models import ScanCategory, ScanItem, summarize


def _item(path, size=10, category=ScanCategory.TEMP):
    return ScanItem(path=path, size=size, modified_at=0, category=category)


class TestScanItem:
    def test_name_uses_platform_separator(self):
        path = os.path.join(os.sep, "storage", "Download", "a.tmp")
        assert _item(path).name == "a.tmp"

    def test_name_of_directory_item(self):
        path = os.path.join(os.sep, "storage", "Android", "data", "com.example.gone") + os.sep
        assert _item(path, category=ScanCategory.CORPSE).name == "com.example.gone"


def test_summarize_groups_by_category():
    summary = summarize([_item("/a", 10), _item("/b", 5), _item("/c", 7, ScanCategory.LOG)])

    assert summary.total_count == 3
    assert summary.total_size == 22
    assert summary.by_category[ScanCategory.TEMP].count == 2
    assert summary.by_category[ScanCategory.LOG].size == 7
