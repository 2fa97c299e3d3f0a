"""
Best-effort filesystem primitives used by the scan pipeline.

Every function here turns permission errors, vanished entries and broken
links into "no result" (None / empty list) instead of raising.
"""

import asyncio
import logging
import os
import stat as stat_module
from dataclasses import dataclass
from typing import List, Optional

import aiofiles.os


@dataclass(frozen=True)
class FileEntry:
    path: str
    name: str
    size: int
    modified_at: int  # epoch milliseconds
    is_dir: bool

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()


async def stat_path(path: str) -> Optional[FileEntry]:
    """Stat one path (following symlinks). Returns None if it cannot be read."""
    try:
        st = await aiofiles.os.stat(path)
    except (OSError, ValueError) as e:
        logging.debug(f"stat failed for {path}: {e}")
        return None

    return FileEntry(
        path=path,
        name=os.path.basename(path.rstrip(os.sep)) or path,
        size=st.st_size,
        modified_at=int(st.st_mtime * 1000),
        is_dir=stat_module.S_ISDIR(st.st_mode),
    )


async def read_dir(path: str) -> List[str]:
    """Absolute child paths of a directory, or [] when it cannot be listed."""
    try:
        names = await aiofiles.os.listdir(path)
    except (OSError, ValueError) as e:
        logging.debug(f"Cannot list {path}: {e}")
        return []
    return [os.path.join(path, name) for name in names]


async def canonical_path(path: str) -> Optional[str]:
    """Resolve symlinks so the same directory reached twice compares equal."""
    try:
        return await asyncio.to_thread(os.path.realpath, path, strict=True)
    except (OSError, ValueError) as e:
        logging.debug(f"Cannot canonicalize {path}: {e}")
        return None


async def is_directory(path: str) -> bool:
    return await aiofiles.os.path.isdir(path)


def _directory_size_sync(root: str) -> int:
    total = 0
    pending = [root]
    seen = set()
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            st = entry.stat(follow_symlinks=False)
                            key = (st.st_dev, st.st_ino)
                            if key not in seen:
                                seen.add(key)
                                pending.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        continue
        except OSError as e:
            logging.debug(f"Skipping unreadable directory {current}: {e}")
    return total


async def directory_size(path: str) -> int:
    """Recursive size of a directory tree in bytes. Symlinks are not followed."""
    return await asyncio.to_thread(_directory_size_sync, path)
