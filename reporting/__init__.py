"""Reporting module for rendering search results."""

from reporting.formatter import format_report, format_report_json

__all__ = [
    "format_report",
    "format_report_json",
]
