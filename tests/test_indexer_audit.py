import tempfile
import unittest
from pathlib import Path

from bs4 import BeautifulSoup

from asset_site.config.models import IndexerSettings
from asset_site.indexer.audit import build_audit, format_file_size, format_percent
from asset_site.indexer.generator import IndexGenerator
from asset_site.indexer.models import FileEntry
from asset_site.indexer.scanner import collect_files


def _write(path: Path, size: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"a" * size)


class FormatFileSizeTests(unittest.TestCase):
    def test_units(self) -> None:
        self.assertEqual(format_file_size(0), "0 B")
        self.assertEqual(format_file_size(512), "512 B")
        self.assertEqual(format_file_size(1023), "1023 B")
        self.assertEqual(format_file_size(1024), "1 KB")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(1024 * 1024), "1 MB")
        self.assertEqual(format_file_size(3 * 1024 ** 3), "3 GB")
        self.assertEqual(format_file_size(2 * 1024 ** 4), "2048 GB")

    def test_percent_of_empty_total(self) -> None:
        self.assertEqual(format_percent(0, 0), "0.0%")
        self.assertEqual(format_percent(1, 3), "33.3%")


class BuildAuditTests(unittest.TestCase):
    def test_extension_totals_match_overall_totals(self) -> None:
        files = [
            FileEntry("models/dog.glb", False, 5000),
            FileEntry("models/cat.glb", False, 3000),
            FileEntry("music/theme.mp3", False, 2000),
            FileEntry("LICENSE", False, 100),
            FileEntry("textures/a.png", False, 900),
        ]
        report = build_audit(files, largest_limit=3)

        self.assertEqual(report.total_files, 5)
        self.assertEqual(report.total_size, 11000)
        self.assertEqual(sum(s.size for s in report.extensions), report.total_size)
        self.assertEqual(sum(s.count for s in report.extensions), report.total_files)
        self.assertEqual(report.average_size, 2200)
        self.assertEqual([f.path for f in report.largest_files], ["models/dog.glb", "models/cat.glb", "music/theme.mp3"])
        self.assertEqual(report.largest_size, 5000)

        by_ext = {s.extension: s for s in report.extensions}
        self.assertEqual(by_ext[".glb"].count, 2)
        self.assertEqual(by_ext[".glb"].size, 8000)
        self.assertIn("no-extension", by_ext)
        self.assertEqual([s.extension for s in report.extensions][0], ".glb")
        self.assertAlmostEqual(sum(s.percent for s in report.extensions), 100.0)

    def test_empty_tree(self) -> None:
        report = build_audit([])
        self.assertEqual(report.total_files, 0)
        self.assertEqual(report.total_size, 0)
        self.assertEqual(report.average_size, 0)
        self.assertIsNone(report.largest_size)
        self.assertEqual(report.extensions, ())


class CollectFilesTests(unittest.TestCase):
    def test_skips_hidden_node_modules_and_nested_indexes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "index.html", 10)
            _write(root / "models" / "index.html", 10)
            _write(root / "models" / "dog.glb", 40)
            _write(root / ".git" / "HEAD", 5)
            _write(root / ".env", 5)
            _write(root / "node_modules" / "x.js", 5)

            files = collect_files(root)

            self.assertEqual([(f.path, f.size) for f in files], [("index.html", 10), ("models/dog.glb", 40)])


class RootIndexTests(unittest.TestCase):
    def test_root_page_contains_audit_and_grouped_file_list(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root / "models" / "dog.glb", 2048)
            _write(root / "music" / "theme.mp3", 1024)
            _write(root / "favicon.ico", 10)

            generator = IndexGenerator(IndexerSettings(root_dir=str(root), site_title="Test Assets"))
            path = generator.generate_root_index()

            self.assertEqual(path, root / "index.html")
            soup = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
            self.assertEqual(soup.h1.get_text(), "Test Assets")

            cards = {
                card.select_one(".label").get_text(): card.select_one(".value").get_text()
                for card in soup.select(".stat-card")
            }
            self.assertEqual(cards["Total Files"], "3")
            self.assertEqual(cards["Total Size"], format_file_size(3082))
            self.assertEqual(cards["Largest File"], "2 KB")

            tables = soup.select("#audit table")
            largest = [tr.find("a")["href"] for tr in tables[0].select("tbody tr")]
            self.assertEqual(largest, ["/models/dog.glb", "/music/theme.mp3", "/favicon.ico"])
            extensions = [tr.find("td").get_text() for tr in tables[1].select("tbody tr")]
            self.assertEqual(extensions, [".glb", ".mp3", ".ico"])

            headers = [tr.get_text() for tr in soup.select("#files tr.dir-header")]
            self.assertEqual(headers, ["models/", "music/", "root/"])

    def test_root_index_is_deterministic(self) -> None:
        pages = []
        for _ in range(2):
            with tempfile.TemporaryDirectory() as tmp:
                root = Path(tmp)
                _write(root / "b" / "z.txt", 3)
                _write(root / "a" / "b.txt", 7)
                path = IndexGenerator(IndexerSettings(root_dir=str(root))).generate_root_index()
                pages.append(path.read_text(encoding="utf-8"))

        self.assertEqual(pages[0], pages[1])


if __name__ == "__main__":
    unittest.main()
