"""
Pure file classifiers.

A classifier maps (path, size, modified_at, extension) to one ScanCategory or
None. The reference "now" is captured at construction so repeated calls over
an unchanged file always give the same answer.
"""

import os
import time
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Iterable, List, Optional

from storage_sweeper.models import ScanCategory
from storage_sweeper.services.scanner.category_rules import (
    CACHE_SEGMENTS,
    JUNK_EXCLUDED_EXTENSIONS,
    JUNK_EXTENSION_CATEGORIES,
    LOG_ROTATION_PATTERN,
    LOG_SEGMENTS,
    MEDIA_EXTENSION_CATEGORIES,
    TEMP_SEGMENTS,
    THUMBDATA_PATTERN,
    WHATSAPP_FOLDER_CATEGORIES,
)

DAY_MS = 24 * 60 * 60 * 1000
MB = 1024 * 1024


def now_ms() -> int:
    return int(time.time() * 1000)


def file_extension(path: str) -> str:
    return os.path.splitext(path)[1].lower()


def directory_segments(path: str) -> List[str]:
    """Lowercased directory components of ``path`` (the file name excluded)."""
    parent = os.path.dirname(path)
    return [segment.lower() for segment in parent.replace("\\", "/").split("/") if segment]


class FileClassifier(ABC):
    def __init__(self, now: Optional[int] = None):
        self.now = now if now is not None else now_ms()

    @abstractmethod
    def classify(
        self,
        path: str,
        size: int,
        modified_at: int,
        extension: Optional[str] = None,
    ) -> Optional[ScanCategory]:
        ...

    def age_ms(self, modified_at: int) -> int:
        return self.now - modified_at


class JunkClassifier(FileClassifier):
    """
    Generic junk rules, first match wins:

    1. exclusion: below ``min_size`` or a media/document extension
    2. size: strictly above ``large_threshold`` -> LARGE
    3. name: ``~`` prefix, ``.0`` suffix, junk extension table, rotated logs,
       thumbdata files
    4. path: cache / temp / log directory segments
    5. age: older than ``stale_days`` (or under a cache segment) -> OTHER
    """

    def __init__(
        self,
        large_threshold: int = 500 * MB,
        stale_days: int = 45,
        min_size: int = 1024,
        now: Optional[int] = None,
    ):
        super().__init__(now)
        self.large_threshold = large_threshold
        self.stale_window_ms = stale_days * DAY_MS
        self.min_size = min_size

    def classify(self, path, size, modified_at, extension=None):
        ext = extension.lower() if extension is not None else file_extension(path)
        name = os.path.basename(path)

        if size < self.min_size or ext in JUNK_EXCLUDED_EXTENSIONS:
            return None

        if size > self.large_threshold:
            return ScanCategory.LARGE

        category = self._classify_by_name(name, ext)
        if category is not None:
            return category

        segments = directory_segments(path)
        category = self._classify_by_segments(segments)
        if category is not None:
            return category

        if self.age_ms(modified_at) > self.stale_window_ms:
            return ScanCategory.OTHER
        return None

    @staticmethod
    def _classify_by_name(name: str, ext: str) -> Optional[ScanCategory]:
        if name.startswith("~") or name.endswith(".0"):
            return ScanCategory.TEMP
        if LOG_ROTATION_PATTERN.search(name):
            return ScanCategory.LOG
        if THUMBDATA_PATTERN.match(name):
            return ScanCategory.CACHE
        return JUNK_EXTENSION_CATEGORIES.get(ext)

    @staticmethod
    def _classify_by_segments(segments: Iterable[str]) -> Optional[ScanCategory]:
        segments = list(segments)
        if any(s in CACHE_SEGMENTS for s in segments):
            return ScanCategory.CACHE
        if any(s in TEMP_SEGMENTS for s in segments):
            return ScanCategory.TEMP
        if any(s in LOG_SEGMENTS for s in segments):
            return ScanCategory.LOG
        return None


class LargeFileClassifier(FileClassifier):
    """Anything strictly larger than the threshold."""

    def __init__(self, threshold: int = 512 * MB, now: Optional[int] = None):
        super().__init__(now)
        self.threshold = threshold

    def classify(self, path, size, modified_at, extension=None):
        return ScanCategory.LARGE if size > self.threshold else None


class OldFileClassifier(FileClassifier):
    def __init__(self, age_days: int = 30, min_size: int = 0, now: Optional[int] = None):
        super().__init__(now)
        self.age_ms_threshold = age_days * DAY_MS
        self.min_size = min_size

    def classify(self, path, size, modified_at, extension=None):
        if size < self.min_size:
            return None
        return ScanCategory.OLD if self.age_ms(modified_at) >= self.age_ms_threshold else None


class ExtensionClassifier(FileClassifier):
    """Maps a fixed extension set to one category (videos, images, apks, ...)."""

    def __init__(
        self,
        extensions: FrozenSet[str],
        category: ScanCategory,
        min_size: int = 0,
        now: Optional[int] = None,
    ):
        super().__init__(now)
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.category = category
        self.min_size = min_size

    def classify(self, path, size, modified_at, extension=None):
        ext = extension.lower() if extension is not None else file_extension(path)
        if size < self.min_size or ext not in self.extensions:
            return None
        return self.category


class CacheLogsClassifier(FileClassifier):
    """Leftover cache and log files inside app directories."""

    def classify(self, path, size, modified_at, extension=None):
        ext = extension.lower() if extension is not None else file_extension(path)
        name = os.path.basename(path).lower()
        if "cache" in name:
            return ScanCategory.CACHE
        if ext in (".log", ".trace") or LOG_ROTATION_PATTERN.search(name):
            return ScanCategory.LOG
        if ext in (".tmp", ".bak"):
            return ScanCategory.CACHE
        return None


class WhatsAppClassifier(FileClassifier):
    """Media under a WhatsApp base directory, categorized by folder then extension."""

    def __init__(self, folder_categories: Optional[Dict[str, ScanCategory]] = None, now: Optional[int] = None):
        super().__init__(now)
        self.folder_categories = folder_categories or WHATSAPP_FOLDER_CATEGORIES

    def classify(self, path, size, modified_at, extension=None):
        ext = extension.lower() if extension is not None else file_extension(path)
        name = os.path.basename(path).lower()
        if name == ".nomedia" or ext in (".tmp", ".part"):
            return ScanCategory.TEMP

        for segment in reversed(directory_segments(path)):
            category = self.folder_categories.get(segment)
            if category is not None:
                return category
        return MEDIA_EXTENSION_CATEGORIES.get(ext)
