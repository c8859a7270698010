"""Shared fixtures for File Relay tests."""
from pathlib import Path

import pytest


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    """An existing, empty source directory."""
    path = tmp_path / "dir_src"
    path.mkdir()
    return path


@pytest.fixture
def dst_dir(tmp_path: Path) -> Path:
    """A destination directory path that does not exist yet."""
    return tmp_path / "dir_target"
