"""
Feature profiles: each user-facing feature is one configuration of the
scan engine (roots, skip rules, classifier and batch tuning).
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Tuple

from storage_sweeper.config import Settings
from storage_sweeper.core.exceptions import UnknownFeatureError
from storage_sweeper.models import ScanCategory
from storage_sweeper.services.scanner.category_rules import (
    APK_EXTENSIONS,
    AUDIO_EXTENSIONS,
    DOCUMENT_EXTENSIONS,
    IMAGE_EXTENSIONS,
    VIDEO_EXTENSIONS,
)
from storage_sweeper.services.scanner.classifier import (
    CacheLogsClassifier,
    ExtensionClassifier,
    FileClassifier,
    JunkClassifier,
    LargeFileClassifier,
    OldFileClassifier,
    WhatsAppClassifier,
)
from storage_sweeper.services.scanner.deduplicator import FileHasher
from storage_sweeper.services.scanner.domain_objects import (
    PackageMode,
    ScanMode,
    ScanRequest,
    SkipPredicate,
)


class FeatureKind(str, Enum):
    JUNK = "junk"
    CACHES = "caches"
    CACHE_LOGS = "cache_logs"
    LARGE_FILES = "large_files"
    OLD_FILES = "old_files"
    DUPLICATES = "duplicates"
    VIDEOS = "videos"
    IMAGES = "images"
    AUDIOS = "audios"
    DOCUMENTS = "documents"
    APKS = "apks"
    WHATSAPP = "whatsapp"


ClassifierFactory = Callable[[Settings, Optional[int]], FileClassifier]

WHOLE_STORAGE = ("",)
SYSTEM_SKIPS = ("/proc", "/system", "/dev")
DEFAULT_SKIPS = (
    "/.thumbnails", "/.cache", "/.trash", "/proc", "/system", "/dev",
    "/Android/data", "/Android/obb",
)
MEDIA_FOLDER_SKIPS = ("/DCIM", "/Movies", "/Music", "/Pictures")


@dataclass(frozen=True)
class FeatureProfile:
    kind: FeatureKind
    description: str
    mode: ScanMode
    build_classifier: ClassifierFactory
    root_subpaths: Tuple[str, ...] = WHOLE_STORAGE
    skip_patterns: Tuple[str, ...] = DEFAULT_SKIPS
    keep_patterns: Tuple[str, ...] = ()
    batch_size: Optional[int] = None  # None -> Settings.batch_size
    max_concurrent_batches: Optional[int] = None


def build_skip_predicate(
    base: str,
    patterns: Iterable[str],
    keep: Iterable[str] = (),
) -> SkipPredicate:
    """
    Skip rule over path segments relative to ``base``.

    ``"/Android/data"`` matches ``<base>/Android/data`` and everything below
    it, case-insensitively, but not ``<base>/Android/database``. A path
    matching any ``keep`` pattern is never skipped.
    """
    base = os.path.normpath(base)

    def normalize(pattern: str) -> str:
        return "/" + pattern.strip("/").lower() + "/"

    skip_patterns = tuple(normalize(p) for p in patterns)
    keep_patterns = tuple(normalize(p) for p in keep)

    def skip(path: str) -> bool:
        relative = path[len(base):] if path == base or path.startswith(base + os.sep) else path
        probe = "/" + relative.replace("\\", "/").strip("/").lower() + "/"
        if any(p in probe for p in keep_patterns):
            return False
        return any(p in probe for p in skip_patterns)

    return skip


def _extension_profile(kind: FeatureKind, description: str, extensions, category: ScanCategory, **kwargs) -> FeatureProfile:
    return FeatureProfile(
        kind=kind,
        description=description,
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: ExtensionClassifier(extensions, category, s.media_min_size_bytes, now),
        **kwargs,
    )


PROFILES: Dict[FeatureKind, FeatureProfile] = {
    FeatureKind.JUNK: FeatureProfile(
        kind=FeatureKind.JUNK,
        description="Temporary, log, cache and stale leftovers in well-known junk locations",
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: JunkClassifier(
            large_threshold=s.junk_large_threshold_bytes,
            stale_days=s.junk_stale_days,
            min_size=s.min_file_size_bytes,
            now=now,
        ),
        root_subpaths=(
            "Android/data", "Android/media", "Android/obb",
            "Download", "Downloads", "cache", "tmp", "temp",
            "WhatsApp/.Statuses", "WhatsApp/Media/.Statuses",
            "Telegram/.cache", "DCIM/.thumbnails", "Pictures/.thumbnails",
        ),
        skip_patterns=SYSTEM_SKIPS + MEDIA_FOLDER_SKIPS,
        keep_patterns=("/.thumbnails", "/.Statuses"),
    ),
    FeatureKind.CACHES: FeatureProfile(
        kind=FeatureKind.CACHES,
        description="App cache directories and leftovers of uninstalled apps",
        mode=ScanMode.APP_DATA,
        build_classifier=lambda s, now: CacheLogsClassifier(now),
        root_subpaths=("Android/data", "Android/obb"),
        skip_patterns=SYSTEM_SKIPS,
        batch_size=50,
        max_concurrent_batches=3,
    ),
    FeatureKind.CACHE_LOGS: FeatureProfile(
        kind=FeatureKind.CACHE_LOGS,
        description="Cache and log files written by apps",
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: CacheLogsClassifier(now),
        root_subpaths=("Android/data", "Android/media"),
        skip_patterns=SYSTEM_SKIPS,
    ),
    FeatureKind.LARGE_FILES: FeatureProfile(
        kind=FeatureKind.LARGE_FILES,
        description="Files above the large-file threshold",
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: LargeFileClassifier(s.large_file_threshold_bytes, now),
        skip_patterns=SYSTEM_SKIPS + ("/Android",),
    ),
    FeatureKind.OLD_FILES: FeatureProfile(
        kind=FeatureKind.OLD_FILES,
        description="Files not modified within the configured age",
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: OldFileClassifier(s.old_file_age_days, s.min_file_size_bytes, now),
        skip_patterns=SYSTEM_SKIPS + (
            "/Android", "/DCIM/.thumbnails", "/WhatsApp/.Shared", "/.Trash", "/.RecycleBin",
        ),
        batch_size=24,
    ),
    FeatureKind.DUPLICATES: FeatureProfile(
        kind=FeatureKind.DUPLICATES,
        description="Images with identical content",
        mode=ScanMode.DUPLICATES,
        build_classifier=lambda s, now: ExtensionClassifier(
            IMAGE_EXTENSIONS, ScanCategory.DUPLICATE_MEMBER, s.duplicate_min_size_bytes, now
        ),
    ),
    FeatureKind.VIDEOS: _extension_profile(
        FeatureKind.VIDEOS, "Video files", VIDEO_EXTENSIONS, ScanCategory.VIDEO, batch_size=20
    ),
    FeatureKind.IMAGES: _extension_profile(
        FeatureKind.IMAGES, "Image files", IMAGE_EXTENSIONS, ScanCategory.IMAGE
    ),
    FeatureKind.AUDIOS: _extension_profile(
        FeatureKind.AUDIOS, "Audio files", AUDIO_EXTENSIONS, ScanCategory.AUDIO
    ),
    FeatureKind.DOCUMENTS: _extension_profile(
        FeatureKind.DOCUMENTS, "Documents", DOCUMENT_EXTENSIONS, ScanCategory.DOCUMENT
    ),
    FeatureKind.APKS: _extension_profile(
        FeatureKind.APKS, "Installer packages", APK_EXTENSIONS, ScanCategory.APK,
        skip_patterns=DEFAULT_SKIPS + MEDIA_FOLDER_SKIPS,
    ),
    FeatureKind.WHATSAPP: FeatureProfile(
        kind=FeatureKind.WHATSAPP,
        description="WhatsApp media, statuses and backups",
        mode=ScanMode.FILES,
        build_classifier=lambda s, now: WhatsAppClassifier(now=now),
        root_subpaths=(
            "Android/media/com.whatsapp/WhatsApp",
            "Android/media/com.whatsapp.w4b/WhatsApp Business",
            "WhatsApp",
        ),
        skip_patterns=SYSTEM_SKIPS,
    ),
}


def parse_feature(name: str) -> FeatureKind:
    try:
        return FeatureKind(name)
    except ValueError:
        raise UnknownFeatureError(name) from None


def get_profile(feature: FeatureKind) -> FeatureProfile:
    return PROFILES[feature]


def build_scan_request(
    feature: FeatureKind,
    settings: Settings,
    roots: Iterable[str],
    installed_packages: Iterable[str] = (),
    hasher: Optional[FileHasher] = None,
    now: Optional[int] = None,
) -> ScanRequest:
    """Turn a feature profile plus resolved collaborator data into a ScanRequest."""
    profile = get_profile(feature)
    installed = frozenset(installed_packages)
    return ScanRequest(
        feature=feature.value,
        roots=list(dict.fromkeys(roots)),
        classifier=profile.build_classifier(settings, now),
        mode=profile.mode,
        skip=build_skip_predicate(settings.external_storage_root, profile.skip_patterns, profile.keep_patterns),
        installed_packages=installed,
        package_mode=PackageMode.for_installed(installed),
        batch_size=profile.batch_size or settings.batch_size,
        max_concurrent_batches=profile.max_concurrent_batches or settings.max_concurrent_batches,
        progress_interval_ms=settings.progress_interval_ms,
        hasher=hasher,
        hash_concurrency=settings.hash_concurrency,
    )
