"""
Tests for the pure file classifiers.
"""

import pytest

from storage_sweeper.models import ScanCategory
from storage_sweeper.services.scanner.classifier import (
    DAY_MS,
    MB,
    CacheLogsClassifier,
    ExtensionClassifier,
    JunkClassifier,
    LargeFileClassifier,
    OldFileClassifier,
    WhatsAppClassifier,
)
from storage_sweeper.services.scanner.category_rules import VIDEO_EXTENSIONS

NOW = 1_700_000_000_000
BASE = "/storage/emulated/0/Download"


class TestJunkClassifier:
    @pytest.fixture
    def classifier(self):
        return JunkClassifier(large_threshold=500 * MB, stale_days=45, min_size=1024, now=NOW)

    def test_temp_extension(self, classifier):
        assert classifier.classify(f"{BASE}/a.tmp", 2048, NOW) == ScanCategory.TEMP

    def test_cache_extension(self, classifier):
        assert classifier.classify(f"{BASE}/c.cache", 10 * 1024, NOW) == ScanCategory.CACHE

    def test_media_is_excluded(self, classifier):
        assert classifier.classify(f"{BASE}/b.jpg", 5 * 1024, NOW - 400 * DAY_MS) is None

    def test_below_minimum_size_is_excluded(self, classifier):
        assert classifier.classify(f"{BASE}/d.txt", 500, NOW) is None
        assert classifier.classify(f"{BASE}/tiny.tmp", 1023, NOW) is None

    def test_large_threshold_is_strict(self, classifier):
        assert classifier.classify(f"{BASE}/blob.bin", 500 * MB, NOW) is None
        assert classifier.classify(f"{BASE}/blob.bin", 500 * MB + 1, NOW) == ScanCategory.LARGE

    def test_large_wins_over_name_rules(self, classifier):
        assert classifier.classify(f"{BASE}/huge.log", 600 * MB, NOW) == ScanCategory.LARGE

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("~lock.docx.swp", ScanCategory.TEMP),
            ("segment.0", ScanCategory.TEMP),
            ("app.log", ScanCategory.LOG),
            ("app.log.3", ScanCategory.LOG),
            ("crash.trace", ScanCategory.LOG),
            ("movie.crdownload", ScanCategory.TEMP),
            ("file.download", ScanCategory.TEMP),
            ("settings.bak", ScanCategory.OTHER),
            ("thing.old", ScanCategory.OTHER),
            (".thumbdata3--1967290299", ScanCategory.CACHE),
            ("game.apk", ScanCategory.APK),
        ],
    )
    def test_name_rules(self, classifier, name, expected):
        assert classifier.classify(f"{BASE}/{name}", 4096, NOW) == expected

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/storage/emulated/0/Android/data/com.app/cache/blob.bin", ScanCategory.CACHE),
            ("/storage/emulated/0/.cache/blob.bin", ScanCategory.CACHE),
            ("/storage/emulated/0/temp/blob.bin", ScanCategory.TEMP),
            ("/storage/emulated/0/tmp/blob.bin", ScanCategory.TEMP),
            ("/storage/emulated/0/Android/data/com.app/files/logs/blob.bin", ScanCategory.LOG),
        ],
    )
    def test_path_segment_rules(self, classifier, path, expected):
        assert classifier.classify(path, 4096, NOW) == expected

    def test_segment_must_match_whole_directory_name(self, classifier):
        assert classifier.classify("/storage/emulated/0/cachedimages/blob.bin", 4096, NOW) is None

    def test_stale_fallback(self, classifier):
        assert classifier.classify(f"{BASE}/blob.bin", 4096, NOW - 46 * DAY_MS) == ScanCategory.OTHER
        assert classifier.classify(f"{BASE}/blob.bin", 4096, NOW - 44 * DAY_MS) is None

    def test_explicit_extension_overrides_path(self, classifier):
        assert classifier.classify(f"{BASE}/noext", 4096, NOW, extension=".TMP") == ScanCategory.TEMP

    def test_classification_is_idempotent(self, classifier):
        args = (f"{BASE}/blob.bin", 4096, NOW - 60 * DAY_MS)
        assert {classifier.classify(*args) for _ in range(5)} == {ScanCategory.OTHER}


class TestFeatureClassifiers:
    def test_large_file_threshold_is_independent_and_strict(self):
        classifier = LargeFileClassifier(threshold=512 * MB, now=NOW)
        assert classifier.classify("/x/a.bin", 512 * MB, NOW) is None
        assert classifier.classify("/x/a.bin", 512 * MB + 1, NOW) == ScanCategory.LARGE
        # 600 MB image is large for this feature even though junk excludes media
        assert classifier.classify("/x/a.jpg", 600 * MB, NOW) == ScanCategory.LARGE

    def test_old_file_age(self):
        classifier = OldFileClassifier(age_days=30, now=NOW)
        assert classifier.classify("/x/a.bin", 10, NOW - 30 * DAY_MS) == ScanCategory.OLD
        assert classifier.classify("/x/a.bin", 10, NOW - 29 * DAY_MS) is None

    def test_extension_classifier(self):
        classifier = ExtensionClassifier(VIDEO_EXTENSIONS, ScanCategory.VIDEO, min_size=100, now=NOW)
        assert classifier.classify("/x/clip.MP4", 200, NOW) == ScanCategory.VIDEO
        assert classifier.classify("/x/clip.mp4", 50, NOW) is None
        assert classifier.classify("/x/song.mp3", 200, NOW) is None

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("image_cache.db", ScanCategory.CACHE),
            ("debug.log", ScanCategory.LOG),
            ("anr.trace", ScanCategory.LOG),
            ("state.tmp", ScanCategory.CACHE),
            ("state.bak", ScanCategory.CACHE),
            ("photo.jpg", None),
        ],
    )
    def test_cache_logs_classifier(self, name, expected):
        assert CacheLogsClassifier(now=NOW).classify(f"/x/{name}", 100, NOW) == expected

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/s/WhatsApp/Media/WhatsApp Images/IMG-1.jpg", ScanCategory.IMAGE),
            ("/s/WhatsApp/Media/WhatsApp Video/VID-1.mp4", ScanCategory.VIDEO),
            ("/s/WhatsApp/Media/WhatsApp Voice Notes/202401/PTT-1.opus", ScanCategory.AUDIO),
            ("/s/WhatsApp/Media/WhatsApp Documents/report.pdf", ScanCategory.DOCUMENT),
            ("/s/WhatsApp/Media/.Statuses/abc.mp4", ScanCategory.VIDEO),
            ("/s/WhatsApp/Backups/msgstore.db.crypt14", ScanCategory.OTHER),
            ("/s/WhatsApp/Media/WhatsApp Images/.nomedia", ScanCategory.TEMP),
            ("/s/WhatsApp/Backups/.nomedia", ScanCategory.TEMP),
            ("/s/WhatsApp/Media/.Statuses/abc.jpg", ScanCategory.IMAGE),
            ("/s/WhatsApp/Media/WhatsApp Video/partial.tmp", ScanCategory.TEMP),
        ],
    )
    def test_whatsapp_classifier(self, path, expected):
        assert WhatsAppClassifier(now=NOW).classify(path, 100, NOW) == expected
