from __future__ import annotations

import logging
from pathlib import Path
from typing import Collection, Optional

from asset_site.indexer.models import FileEntry

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.html"


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_directory(path: Path) -> bool:
    # Symlinked directories are listed as plain entries and never descended into.
    return path.is_dir() and not path.is_symlink()


def _relative(base_rel: str, name: str) -> str:
    return f"{base_rel}/{name}" if base_rel else name


def list_directory(
    dir_path: Path,
    *,
    rel_path: str,
    index_filename: str = INDEX_FILENAME,
) -> Optional[list[FileEntry]]:
    """
    List the immediate children of ``dir_path`` for a listing page.

    Directories come first, then files, each group sorted by name. Hidden
    entries and the generated index file are left out. Returns None when the
    directory cannot be read.
    """
    try:
        children = list(dir_path.iterdir())
    except OSError as e:
        logger.warning("Failed to read directory. path=%s error=%s", dir_path, e)
        return None

    entries: list[FileEntry] = []
    for child in children:
        if child.name == index_filename or is_hidden(child.name):
            continue
        entries.append(
            FileEntry(
                path=_relative(rel_path, child.name),
                is_directory=_is_directory(child),
            )
        )
    entries.sort(key=lambda entry: (not entry.is_directory, entry.name))
    return entries


def collect_files(
    root: Path,
    *,
    excluded_names: Collection[str] = ("node_modules",),
    index_filename: str = INDEX_FILENAME,
) -> list[FileEntry]:
    """
    Recursively collect every file below ``root`` with its size.

    Generated index files are skipped everywhere except at the root itself.
    Unreadable directories and files are logged and skipped.
    """
    files: list[FileEntry] = []
    _collect_into(root, "", files, excluded_names=excluded_names, index_filename=index_filename)
    files.sort(key=lambda entry: entry.path)
    return files


def _collect_into(
    dir_path: Path,
    rel_path: str,
    files: list[FileEntry],
    *,
    excluded_names: Collection[str],
    index_filename: str,
) -> None:
    try:
        children = sorted(dir_path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.error("Error reading directory. path=%s error=%s", dir_path, e)
        return

    for child in children:
        if is_hidden(child.name) or child.name in excluded_names:
            continue

        child_rel = _relative(rel_path, child.name)
        if _is_directory(child):
            _collect_into(child, child_rel, files, excluded_names=excluded_names, index_filename=index_filename)
            continue

        if child.name == index_filename and rel_path:
            continue

        try:
            size = child.stat().st_size
        except OSError as e:
            logger.error("Error reading file size. path=%s error=%s", child, e)
            continue
        files.append(FileEntry(path=child_rel, is_directory=False, size=size))
