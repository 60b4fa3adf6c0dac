"""Reporters that persist results and render reports."""

from __future__ import annotations

from .base import Reporter
from .file_reporter import DEFAULT_RESULTS_DIR, FileReporter
from .markdown import print_summary, render_markdown_report

__all__ = [
    "Reporter",
    "FileReporter",
    "DEFAULT_RESULTS_DIR",
    "render_markdown_report",
    "print_summary",
]
