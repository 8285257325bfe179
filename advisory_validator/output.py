"""Standardized terminal output utilities.

All user-facing CLI messages should use these functions for consistent
formatting across the application.

Basic Usage:
    from advisory_validator.output import success, info, error, detail

    success("No issues found.")
    info("Checking 1,204 advisories")
    error("Found 3 issues in 2 files.")
    detail("Using repository https://repo.packagist.org")

Findings are rendered as a two-column table (File, Issues) with one row per
issue and a separator between files:

    render_findings_table(report)
"""

from __future__ import annotations

import sys
from typing import TextIO

import click
from rich.console import Console
from rich.table import Table

from advisory_validator.validation.results import FindingReport

# ANSI color codes via click's style system
_STYLES = {
    "success": {"fg": "green"},
    "info": {"fg": "blue"},
    "warn": {"fg": "yellow"},
    "error": {"fg": "red"},
    "detail": {"fg": "bright_black"},  # Dimmed/gray
}

_PREFIXES = {
    "success": "✓",  # checkmark
    "info": "→",  # arrow
    "warn": "⚠",  # warning
    "error": "✗",  # X
    "detail": " ",  # space (no prefix, just indent)
}


def _output(message: str, style: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Internal helper for styled output."""
    fg_color = _STYLES[style]["fg"]
    styled_prefix = click.style(_PREFIXES[style], fg=fg_color)
    styled_message = click.style(message, fg=fg_color)
    click.echo(f"{styled_prefix} {styled_message}", file=file, nl=nl)


def success(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("No issues found.")
        ✓ No issues found.
    """
    _output(message, "success", file=file, nl=nl)


def info(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print an info message with blue arrow."""
    _output(message, "info", file=file, nl=nl)


def warn(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print a warning message with yellow warning symbol (default: stderr)."""
    _output(message, "warn", file=file or sys.stderr, nl=nl)


def error(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print an error message with red X (default: stderr).

    Example:
        >>> error("Found 1 issue in 1 file.")
        ✗ Found 1 issue in 1 file.
    """
    _output(message, "error", file=file or sys.stderr, nl=nl)


def detail(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print a detail/progress message in dimmed text."""
    _output(message, "detail", file=file, nl=nl)


def pluralize(count: int, word: str) -> str:
    """Format a count with its noun, e.g. ``1 issue`` or ``3 files``."""
    return f"{count} {word}{'' if count == 1 else 's'}"


def summary_line(report: FindingReport) -> str:
    """One-line summary of a report with findings."""
    return (
        f"Found {pluralize(report.issue_count, 'issue')} "
        f"in {pluralize(report.file_count, 'file')}."
    )


def build_findings_table(report: FindingReport) -> Table:
    """Build the File/Issues table for a report.

    The file name is only shown on the first row of its issues, and
    files are separated by a rule.
    """
    table = Table("File", "Issues", show_lines=False)

    for path, findings in report.findings.items():
        for index, finding in enumerate(findings):
            table.add_row(path if index == 0 else "", finding.message)
        table.add_section()

    return table


def render_findings_table(report: FindingReport, *, file: TextIO | None = None) -> None:
    """Print the findings table to file (default: stdout)."""
    console = Console(file=file, highlight=False)
    console.print(build_findings_table(report))
