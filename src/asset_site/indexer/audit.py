from __future__ import annotations

from typing import Sequence

from asset_site.indexer.models import NO_EXTENSION, AuditReport, ExtensionStat, FileEntry

SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_file_size(size_bytes: int) -> str:
    """Human readable size in base-1024 units, e.g. ``1.5 KB``."""
    if size_bytes <= 0:
        return "0 B"
    exponent = 0
    while exponent < len(SIZE_UNITS) - 1 and size_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size_bytes / (1024 ** exponent), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[exponent]}"


def format_percent(part: int, total: int) -> str:
    return f"{percent_of(part, total):.1f}%"


def percent_of(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return part / total * 100


def build_audit(files: Sequence[FileEntry], *, largest_limit: int = 50) -> AuditReport:
    files = sorted((f for f in files if not f.is_directory), key=lambda f: f.path)
    total_size = sum(f.size for f in files)
    total_files = len(files)

    largest = sorted(files, key=lambda f: (-f.size, f.path))[:largest_limit]

    by_extension: dict[str, list[int]] = {}
    for entry in files:
        ext = entry.extension or NO_EXTENSION
        bucket = by_extension.setdefault(ext, [0, 0])
        bucket[0] += 1
        bucket[1] += entry.size

    extensions = [
        ExtensionStat(extension=ext, count=count, size=size, percent=percent_of(size, total_size))
        for ext, (count, size) in by_extension.items()
    ]
    extensions.sort(key=lambda stat: (-stat.size, stat.extension))

    return AuditReport(
        files=tuple(files),
        total_files=total_files,
        total_size=total_size,
        average_size=round(total_size / total_files) if total_files else 0,
        largest_files=tuple(largest),
        extensions=tuple(extensions),
    )
