from __future__ import annotations

from html import escape
from typing import Sequence

from asset_site.config.models import QuickLink
from asset_site.indexer.audit import format_file_size, format_percent
from asset_site.indexer.models import AuditReport, FileEntry

DIR_ICON = "\U0001F4C1"
FILE_ICON = "\U0001F4C4"
ROOT_GROUP = "root"

_BASE_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            padding: 20px;
            background: #f5f5f5;
        }
        h1 { margin-bottom: 30px; color: #333; }
        table {
            width: 100%;
            border-collapse: collapse;
            background: white;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        th {
            background: #f9f9f9;
            border-bottom: 2px solid #ddd;
            padding: 12px;
            text-align: left;
            font-weight: 600;
            color: #555;
        }
        td { padding: 12px; border-bottom: 1px solid #eee; }
        tr:hover { background: #f9f9f9; }
        a { color: #0066cc; text-decoration: none; }
        a:hover { text-decoration: underline; }
"""

_LISTING_STYLE = _BASE_STYLE + """
        .parent { margin-bottom: 20px; }
        .parent a {
            padding: 8px 12px;
            background: #f0f0f0;
            border-radius: 4px;
            display: inline-block;
        }
"""

_ROOT_STYLE = _BASE_STYLE + """
        body { max-width: 1200px; margin: 0 auto; }
        h1 { margin-bottom: 10px; }
        h2 {
            margin-top: 30px;
            margin-bottom: 15px;
            color: #444;
            border-bottom: 2px solid #0066cc;
            padding-bottom: 8px;
        }
        table { margin-bottom: 20px; }
        th { position: sticky; top: 0; }
        .info {
            background: #f0f0f0;
            padding: 12px;
            border-radius: 4px;
            margin-bottom: 20px;
            font-size: 14px;
            color: #666;
        }
        .quick-links { display: flex; gap: 8px; margin-bottom: 20px; flex-wrap: wrap; }
        .quick-links a {
            padding: 8px 12px;
            background: #0066cc;
            color: white;
            border-radius: 4px;
            font-size: 14px;
        }
        .quick-links a:hover { background: #0052a3; }
        .stats-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 15px;
            margin-bottom: 20px;
        }
        .stat-card {
            background: white;
            padding: 15px;
            border-radius: 4px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .stat-card .label { font-size: 12px; color: #666; text-transform: uppercase; margin-bottom: 5px; }
        .stat-card .value { font-size: 24px; font-weight: bold; color: #0066cc; }
        .dir-header td { background: #e8f4f8; font-weight: bold; }
        .section-separator { margin-top: 40px; padding-top: 20px; border-top: 3px solid #ddd; }
"""


def _page(title: str, style: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
    <style>{style}    </style>
</head>
<body>
{body}
</body>
</html>
"""


def _table(headers: Sequence[str], rows: Sequence[str]) -> str:
    head = "".join(f"<th>{escape(h)}</th>" for h in headers)
    body = "\n".join(rows)
    return f"""    <table>
        <thead>
            <tr>{head}</tr>
        </thead>
        <tbody>
{body}
        </tbody>
    </table>"""


def render_listing_row(entry: FileEntry) -> str:
    icon = DIR_ICON if entry.is_directory else FILE_ICON
    kind = "[DIR]" if entry.is_directory else "file"
    return (
        f'<tr><td>{icon}</td><td><a href="{escape(entry.href)}">{escape(entry.name)}</a></td>'
        f"<td>{kind}</td></tr>"
    )


def render_directory_page(url_path: str, entries: Sequence[FileEntry]) -> str:
    """Render the listing page for the directory served at ``url_path`` (e.g. ``/models``)."""
    title = f"Index of {url_path}"
    parent = ""
    if url_path != "/":
        parent = '    <div class="parent"><a href="../">↑ Parent Directory</a></div>\n'
    body = (
        f"    <h1>{escape(title)}</h1>\n"
        f"{parent}"
        f"{_table(('', 'Name', 'Type'), [render_listing_row(e) for e in entries])}"
    )
    return _page(title, _LISTING_STYLE, body)


def group_by_directory(files: Sequence[FileEntry]) -> dict[str, list[FileEntry]]:
    grouped: dict[str, list[FileEntry]] = {}
    for entry in files:
        grouped.setdefault(entry.parent or ROOT_GROUP, []).append(entry)
    return {key: grouped[key] for key in sorted(grouped)}


def _stat_card(label: str, value: str) -> str:
    return (
        '        <div class="stat-card">'
        f'<div class="label">{escape(label)}</div>'
        f'<div class="value">{escape(value)}</div></div>'
    )


def render_root_page(report: AuditReport, *, site_title: str, quick_links: Sequence[QuickLink] = ()) -> str:
    largest_value = format_file_size(report.largest_size) if report.largest_size is not None else "N/A"
    cards = "\n".join(
        [
            _stat_card("Total Files", str(report.total_files)),
            _stat_card("Total Size", format_file_size(report.total_size)),
            _stat_card("Average File", format_file_size(report.average_size)),
            _stat_card("Largest File", largest_value),
        ]
    )

    largest_rows = [
        f'<tr><td><a href="{escape(f.href)}">{escape(f.path)}</a></td>'
        f"<td>{format_file_size(f.size)}</td><td>{escape(f.extension or 'n/a')}</td></tr>"
        for f in report.largest_files
    ]
    extension_rows = [
        f"<tr><td>{escape(stat.extension)}</td><td>{stat.count}</td>"
        f"<td>{format_file_size(stat.size)}</td><td>{format_percent(stat.size, report.total_size)}</td></tr>"
        for stat in report.extensions
    ]

    file_rows: list[str] = []
    for directory, files in group_by_directory(report.files).items():
        file_rows.append(f'<tr class="dir-header"><td colspan="3">{escape(directory)}/</td></tr>')
        for f in files:
            file_rows.append(
                f'<tr><td>{FILE_ICON}</td><td><a href="{escape(f.href)}">{escape(f.name)}</a></td>'
                f"<td>{format_file_size(f.size)}</td></tr>"
            )

    links = ['        <a href="#audit">Assets Audit</a>', '        <a href="#files">Complete File List</a>']
    links.extend(f'        <a href="{escape(link.href)}">{escape(link.label)}</a>' for link in quick_links)
    links_html = "\n".join(links)

    body = f"""    <h1>{escape(site_title)}</h1>
    <div class="info">
        <strong>Complete File Index &amp; Assets Audit</strong> - All files are listed below with a size audit. This index is regenerated on each build.
    </div>
    <div class="quick-links">
{links_html}
    </div>
    <div id="audit" class="section-separator">
        <h2>Assets Audit</h2>
        <div class="stats-grid">
{cards}
        </div>
        <h3>Largest Files (Top {len(report.largest_files)})</h3>
{_table(("File Path", "Size", "Type"), largest_rows)}
        <h3>File Type Breakdown</h3>
{_table(("Extension", "Count", "Total Size", "% of Total"), extension_rows)}
    </div>
    <div id="files" class="section-separator">
        <h2>Complete File List</h2>
{_table(("", "File Path", "Size"), file_rows)}
    </div>"""
    return _page(f"{site_title} - Complete File Index", _ROOT_STYLE, body)
