from __future__ import annotations

import logging
from pathlib import Path

from asset_site.config.models import IndexerSettings
from asset_site.core.io import atomic_write_text
from asset_site.indexer.audit import build_audit, format_file_size
from asset_site.indexer.render import render_directory_page, render_root_page
from asset_site.indexer.scanner import collect_files, is_hidden, list_directory

logger = logging.getLogger(__name__)


class IndexGenerator:
    """Writes directory listing pages and the root audit page for a site tree."""

    def __init__(self, config: IndexerSettings):
        self.config = config
        self._root = Path(config.root_dir)

    def _require_root(self) -> None:
        if not self._root.is_dir():
            raise FileNotFoundError(f"Index root directory not found: {self._root}")

    def generate_directory_indexes(self) -> list[Path]:
        """
        Write one listing page into every directory below the root.

        Excluded and hidden top-level directories are skipped entirely. A
        directory that cannot be read is logged and its subtree skipped.
        Returns the written paths in walk order.
        """
        self._require_root()
        logger.info("indexer.directory_indexes_start root=%s", self._root)

        try:
            top_level = sorted(self._root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.error("Failed to read index root. path=%s error=%s", self._root, e)
            return []

        written: list[Path] = []
        excluded = set(self.config.excluded_dirs)
        for entry in top_level:
            if not entry.is_dir() or entry.is_symlink():
                continue
            if entry.name in excluded or is_hidden(entry.name):
                continue
            self._index_tree(entry, entry.name, written)

        logger.info("indexer.directory_indexes_done count=%d", len(written))
        return written

    def _index_tree(self, dir_path: Path, rel_path: str, written: list[Path]) -> None:
        entries = list_directory(dir_path, rel_path=rel_path, index_filename=self.config.index_filename)
        if entries is None:
            return

        index_path = dir_path / self.config.index_filename
        try:
            atomic_write_text(index_path, render_directory_page(f"/{rel_path}", entries))
        except OSError as e:
            logger.error("Failed to write directory index. path=%s error=%s", index_path, e)
        else:
            written.append(index_path)
            logger.info("indexer.directory_index_written url=/%s/", rel_path)

        for entry in entries:
            if entry.is_directory:
                self._index_tree(dir_path / entry.name, entry.path, written)

    def generate_root_index(self) -> Path:
        """Write the root page: complete file list plus the size audit."""
        self._require_root()
        files = collect_files(
            self._root,
            excluded_names=self.config.audit_excluded_dirs,
            index_filename=self.config.index_filename,
        )
        report = build_audit(files, largest_limit=self.config.largest_files_limit)
        html = render_root_page(
            report,
            site_title=self.config.site_title,
            quick_links=self.config.quick_links,
        )

        index_path = self._root / self.config.index_filename
        atomic_write_text(index_path, html)
        logger.info(
            "indexer.root_index_written path=%s files=%d total_size=%s",
            index_path,
            report.total_files,
            format_file_size(report.total_size),
        )
        return index_path
