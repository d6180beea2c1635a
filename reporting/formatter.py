"""
Report rendering for the command line.

Text output groups occurrences by file, followed by a summary:

    /src/a.txt (2):
      - /src/a.txt:1:1
      - /src/a.txt:2:4

    Search completed in: 0.012s
    Scanned files: 1
    Scanned directories: 1
"""

import json

from scanning.models import Report


def format_matches(report: Report) -> list[str]:
    """Lines for the grouped match listing."""
    lines = []
    for path, locations in report.matches_by_file.items():
        lines.append(f"{path} ({len(locations)}):")
        for location in locations:
            lines.append(f"  - {location}")
    return lines


def format_summary(report: Report, show_skipped: bool = False) -> list[str]:
    """Lines for the trailing statistics block."""
    stats = report.stats
    lines = [
        f"Search completed in: {stats.elapsed_seconds:.3f}s",
        f"Scanned files: {stats.files_scanned}",
        f"Scanned directories: {stats.directories_scanned}",
    ]

    if stats.walk_errors:
        lines.append(f"Walk errors: {stats.walk_errors}")

    if report.cancelled:
        lines.append("Search cancelled before completion")

    if show_skipped:
        lines.append(f"Skipped files: {stats.files_skipped}")
        if stats.files_skipped > 0:
            lines.append("Skipped directories:")
            for record in report.skipped:
                lines.append(f"  - {record.directory} ({record.count})")

    return lines


def format_report(report: Report, show_skipped: bool = False) -> str:
    """Render a report as grouped text."""
    lines = format_matches(report)
    lines.append("")
    lines.extend(format_summary(report, show_skipped))
    return "\n".join(lines)


def format_report_json(report: Report, show_skipped: bool = False) -> str:
    """Render a report as indented JSON. Skip detail only when requested."""
    return json.dumps(report.to_dict(include_skipped=show_skipped), indent=2)
