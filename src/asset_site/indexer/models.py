from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Sequence

NO_EXTENSION = "no-extension"


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A scanned filesystem entry. ``path`` is relative to the site root, POSIX separators."""

    path: str
    is_directory: bool
    size: int = 0

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def parent(self) -> str:
        parent = PurePosixPath(self.path).parent.as_posix()
        return "" if parent == "." else parent

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix

    @property
    def href(self) -> str:
        url = "/" + self.path
        return url + "/" if self.is_directory else url


@dataclass(frozen=True, slots=True)
class ExtensionStat:
    extension: str
    count: int
    size: int
    percent: float


@dataclass(frozen=True, slots=True)
class AuditReport:
    files: Sequence[FileEntry]
    total_files: int
    total_size: int
    average_size: int
    largest_files: Sequence[FileEntry]
    extensions: Sequence[ExtensionStat]

    @property
    def largest_size(self) -> int | None:
        if not self.largest_files:
            return None
        return self.largest_files[0].size
