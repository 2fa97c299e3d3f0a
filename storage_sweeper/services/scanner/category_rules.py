"""
Rule tables shared by the classifiers and feature profiles.

Extensions are lowercase with the leading dot. Directory names are matched
case-insensitively against single path segments.
"""

import re
from typing import Dict, FrozenSet

from storage_sweeper.models import ScanCategory

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif", ".bmp", ".dng", ".raw",
})
VIDEO_EXTENSIONS: FrozenSet[str] = frozenset({
    ".mp4", ".mkv", ".avi", ".mov", ".webm", ".3gp", ".m4v", ".flv", ".wmv", ".ts",
})
AUDIO_EXTENSIONS: FrozenSet[str] = frozenset({
    ".mp3", ".wav", ".flac", ".aac", ".m4a", ".ogg", ".opus", ".amr", ".wma",
})
DOCUMENT_EXTENSIONS: FrozenSet[str] = frozenset({
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".rtf",
    ".odt", ".ods", ".odp", ".csv", ".epub",
})
APK_EXTENSIONS: FrozenSet[str] = frozenset({".apk", ".apks", ".xapk"})

# Never reported by the generic junk classifier; the media features own them.
JUNK_EXCLUDED_EXTENSIONS: FrozenSet[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif",
    ".mp4", ".mkv", ".avi", ".mov", ".mp3", ".wav", ".flac",
}) | DOCUMENT_EXTENSIONS

JUNK_EXTENSION_CATEGORIES: Dict[str, ScanCategory] = {
    ".tmp": ScanCategory.TEMP,
    ".temp": ScanCategory.TEMP,
    ".download": ScanCategory.TEMP,
    ".part": ScanCategory.TEMP,
    ".partial": ScanCategory.TEMP,
    ".crdownload": ScanCategory.TEMP,
    ".!qb": ScanCategory.TEMP,
    ".log": ScanCategory.LOG,
    ".trace": ScanCategory.LOG,
    ".crash": ScanCategory.LOG,
    ".error": ScanCategory.LOG,
    ".cache": ScanCategory.CACHE,
    ".bak": ScanCategory.OTHER,
    ".old": ScanCategory.OTHER,
    ".dump": ScanCategory.OTHER,
    ".lock": ScanCategory.OTHER,
    ".pid": ScanCategory.OTHER,
    ".swp": ScanCategory.OTHER,
    ".apk": ScanCategory.APK,
    ".apks": ScanCategory.APK,
    ".xapk": ScanCategory.APK,
}

LOG_ROTATION_PATTERN = re.compile(r"\.log\.\d+$", re.IGNORECASE)
THUMBDATA_PATTERN = re.compile(r"^\.?thumbdata", re.IGNORECASE)

CACHE_SEGMENTS: FrozenSet[str] = frozenset({
    "cache", ".cache", "thumbnails", ".thumbnails", ".thumb", "code_cache",
})
TEMP_SEGMENTS: FrozenSet[str] = frozenset({"temp", "tmp", ".tmp"})
LOG_SEGMENTS: FrozenSet[str] = frozenset({"log", "logs"})

# Media folder name -> category for the WhatsApp feature
WHATSAPP_FOLDER_CATEGORIES: Dict[str, ScanCategory] = {
    "whatsapp images": ScanCategory.IMAGE,
    "whatsapp stickers": ScanCategory.IMAGE,
    "whatsapp animated gifs": ScanCategory.IMAGE,
    "whatsapp video": ScanCategory.VIDEO,
    "whatsapp voice notes": ScanCategory.AUDIO,
    "whatsapp audio": ScanCategory.AUDIO,
    "whatsapp documents": ScanCategory.DOCUMENT,
    "backups": ScanCategory.OTHER,
    "databases": ScanCategory.OTHER,
}

MEDIA_EXTENSION_CATEGORIES: Dict[str, ScanCategory] = {
    **{ext: ScanCategory.IMAGE for ext in IMAGE_EXTENSIONS},
    **{ext: ScanCategory.VIDEO for ext in VIDEO_EXTENSIONS},
    **{ext: ScanCategory.AUDIO for ext in AUDIO_EXTENSIONS},
    **{ext: ScanCategory.DOCUMENT for ext in DOCUMENT_EXTENSIONS},
}
