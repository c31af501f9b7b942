"""Platform compatibility utilities for comparing workspace paths."""

from __future__ import annotations

import functools
import logging
import os
import sys
import tempfile

IS_WIN = sys.platform == "win32"

LOGGER = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def fs_is_case_sensitive() -> bool:
    with tempfile.NamedTemporaryFile(prefix="TmP") as tmp_file:
        result = not os.path.exists(tmp_file.name.lower())
    LOGGER.debug("filesystem is %scase-sensitive", "" if result else "not ")
    return result


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Absolute, normalized form of a file or folder location, as shown to users."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def fs_path_id(path: str | os.PathLike[str]) -> str:
    """Identity of a location: two paths naming the same file or folder map to the same id."""
    path = normalize_path(path)
    return path.casefold() if not fs_is_case_sensitive() else path


def is_within(path: str | os.PathLike[str], folder: str | os.PathLike[str]) -> bool:
    path_id, folder_id = fs_path_id(path), fs_path_id(folder)
    return path_id == folder_id or path_id.startswith(folder_id.rstrip(os.sep) + os.sep)


__all__ = [
    "IS_WIN",
    "fs_is_case_sensitive",
    "fs_path_id",
    "is_within",
    "normalize_path",
]
