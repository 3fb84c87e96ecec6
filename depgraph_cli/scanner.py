"""Source tree scanning and bounded file reads."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Set, Union

from .errors import FileAccessError, ScanRootError

logger = logging.getLogger(__name__)


def normalize_path(path: Union[str, Path]) -> str:
    """Absolute, normalized POSIX path used as module identity.

    Symlinks are deliberately left unresolved so that identities stay
    consistent with the paths the scanner produced.
    """
    return Path(os.path.normpath(os.path.abspath(os.fspath(path)))).as_posix()


def scan(root: Path, exclude_dirs: Iterable[str], extensions: Iterable[str]) -> List[Path]:
    """Depth-first listing of source files under *root*.

    Dot-prefixed and excluded directories are skipped. Symlinked
    directories pointing back inside *root* are skipped in favour of the
    real path; the rest are visited once per real path so symlink loops
    terminate. Unreadable
    subdirectories are logged and skipped; an unreadable root raises
    :class:`ScanRootError`.
    """
    root = Path(os.path.abspath(root))
    if not root.is_dir():
        raise ScanRootError(f"Source directory not found: {root}")

    excluded = set(exclude_dirs)
    allowed = {ext if ext.startswith(".") else f".{ext}" for ext in extensions}
    visited: Set[str] = set()
    files: List[Path] = []

    try:
        root_entries = _list_dir(root)
    except OSError as exc:
        raise ScanRootError(f"Cannot read source directory {root}: {exc}") from exc
    root_real = os.path.realpath(root)
    visited.add(root_real)

    # Stack of pending directory listings; reversed so pops follow name order.
    stack: List[List[os.DirEntry]] = [list(reversed(root_entries))]
    while stack:
        pending = stack[-1]
        if not pending:
            stack.pop()
            continue
        entry = pending.pop()
        try:
            if entry.is_dir():
                if entry.name.startswith(".") or entry.name in excluded:
                    continue
                real = os.path.realpath(entry.path)
                if entry.is_symlink() and _is_within(real, root_real):
                    # The target is walked under its own name.
                    logger.debug("Skipping symlinked directory %s -> %s", entry.path, real)
                    continue
                if real in visited:
                    logger.debug("Skipping already visited directory %s", entry.path)
                    continue
                visited.add(real)
                try:
                    children = _list_dir(Path(entry.path))
                except OSError as exc:
                    logger.warning("Cannot read directory %s: %s", entry.path, exc)
                    continue
                stack.append(list(reversed(children)))
            elif entry.is_file() and os.path.splitext(entry.name)[1] in allowed:
                files.append(Path(entry.path))
        except OSError as exc:
            logger.warning("Cannot stat %s: %s", entry.path, exc)
    return files


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _list_dir(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def read_source(path: Path, max_bytes: int, errors: str = "replace") -> str:
    """Read a source file as text, refusing files larger than *max_bytes*.

    Pass ``errors="surrogateescape"`` when the text will be written back so
    that undecodable bytes survive the round trip.
    """
    try:
        size = os.stat(path).st_size
        if size > max_bytes:
            raise FileAccessError(str(path), f"file is {size} bytes, limit is {max_bytes}")
        with open(path, "r", encoding="utf-8", errors=errors, newline="") as f:
            return f.read(max_bytes + 1)
    except OSError as exc:
        raise FileAccessError(str(path), exc.strerror or str(exc)) from exc
