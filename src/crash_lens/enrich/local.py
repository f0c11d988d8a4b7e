"""Local source reads confined to configured roots.

A read is refused unless the absolute file path sits under a configured root, neither the
root nor any directory between it and the file is a symlink or reparse point, and the
fully resolved path still lands inside the resolved root.
"""

import logging
import os
import stat
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

_REPARSE_POINT = getattr(stat, "FILE_ATTRIBUTE_REPARSE_POINT", 0x400)


def is_link_or_reparse_point(path: str) -> bool:
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return False
    if stat.S_ISLNK(st.st_mode):
        return True
    return bool(getattr(st, "st_file_attributes", 0) & _REPARSE_POINT)


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def find_root(full_path: str, roots: Sequence[str]) -> str | None:
    for root in roots:
        normalized = os.path.normpath(root)
        if _is_within(full_path, normalized):
            return normalized
    return None


def resolve_local_path(source_file: str | None, roots: Sequence[str]) -> str | None:
    """Return the path to read when the read is permitted, otherwise None."""
    if not roots or not source_file or not source_file.strip():
        return None
    if not os.path.isabs(source_file):
        logger.debug("Local read refused, path is not absolute: %s", source_file)
        return None

    full = os.path.normpath(source_file)
    root = find_root(full, roots)
    if root is None:
        logger.debug("Local read refused, %s is outside every source root", full)
        return None
    if is_link_or_reparse_point(root):
        logger.debug("Local read refused, source root %s is a link", root)
        return None

    current = root
    for part in Path(os.path.relpath(full, root)).parts:
        current = os.path.join(current, part)
        if is_link_or_reparse_point(current):
            logger.debug("Local read refused, %s is a link", current)
            return None

    if not _is_within(os.path.realpath(full), os.path.realpath(root)):
        logger.debug("Local read refused, %s resolves outside %s", full, root)
        return None
    if not os.path.isfile(full):
        return None
    return full


def read_local_source(source_file: str | None, roots: Sequence[str]) -> str | None:
    """Read a permitted local file as text. Raises OSError when a permitted read fails."""
    path = resolve_local_path(source_file, roots)
    if path is None:
        return None
    return Path(path).read_text(encoding="utf-8", errors="replace")
