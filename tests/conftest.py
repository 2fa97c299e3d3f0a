"""
Pytest configuration and shared fixtures.
"""

import os
import time
from pathlib import Path
from typing import Callable

import pytest

from storage_sweeper.dependencies import reset_singletons

DAY_SECONDS = 24 * 60 * 60


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before each test."""
    reset_singletons()
    yield
    reset_singletons()


def write_file(path: Path, size: int, age_days: float = 0, content: bytes = None) -> Path:
    """Create ``path`` with ``size`` bytes (or ``content``) and backdate its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if content is None:
        content = b"x" * size
    path.write_bytes(content)
    if age_days:
        mtime = time.time() - age_days * DAY_SECONDS
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def make_file() -> Callable[..., Path]:
    return write_file


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "storage"
    root.mkdir()
    return root
