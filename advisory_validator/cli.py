"""Advisory validator CLI - validate a corpus of security advisories.

The CLI is a thin wrapper around the validation engine (see
advisory_validator.validation). It discovers files, shows progress, renders
the findings and turns them into an exit status.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click

from advisory_validator.config import get_setting, get_timeout
from advisory_validator.discovery import discover_advisory_paths, iter_advisory_files
from advisory_validator.errors import (
    AdvisoryError,
    AdvisoryFileError,
    ConfigError,
    RepositoryError,
)
from advisory_validator.json_output import ErrorDetail, error_envelope, report_envelope
from advisory_validator.output import (
    detail,
    error,
    info,
    pluralize,
    render_findings_table,
    success,
    summary_line,
    warn,
)
from advisory_validator.repository import RepositoryCache
from advisory_validator.validation import FindingReport, validate_advisories

# Exit statuses wrap around at 256, so a large failing corpus must not read as success
MAX_EXIT_STATUS = 255


def should_output_json(ctx: click.Context, json_flag: bool = False) -> bool:
    """Determine if JSON output should be used.

    Global --format=json takes precedence, but the per-command --json
    flag also works.
    """
    obj = ctx.find_root().obj or {}
    return obj.get("format", "text") == "json" or json_flag


def output_json_envelope(envelope: Any) -> None:
    """Output a JSON envelope to stdout."""
    click.echo(envelope.to_json())


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@click.group()
@click.version_option(package_name="advisory-validator")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format (json for machine parsing, text for humans).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show the settings in use and log debug details to stderr.",
)
@click.pass_context
def cli(ctx: click.Context, output_format: str, verbose: bool) -> None:
    """Validate security advisory files."""
    ctx.ensure_object(dict)
    ctx.obj["format"] = output_format
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


def _abort(use_json: bool, err: AdvisoryError) -> None:
    """Report a run-level failure and exit with status 1."""
    if use_json:
        envelope = error_envelope(
            "validate",
            [ErrorDetail(type=type(err).__name__, message=err.message, code=err.code)],
        )
        output_json_envelope(envelope)
    else:
        error(err.message)
    raise SystemExit(1) from err


def _run(
    root: Path,
    paths: list[Path],
    *,
    repositories: RepositoryCache,
    default_repository: str,
    show_progress: bool,
) -> FindingReport:
    advisories = iter_advisory_files(root, paths)

    if not show_progress:
        return validate_advisories(
            advisories, repositories=repositories, default_repository=default_repository
        )

    with click.progressbar(length=len(paths), label="Checking advisories", file=sys.stderr) as bar:
        return validate_advisories(
            advisories,
            repositories=repositories,
            default_repository=default_repository,
            on_advisory=lambda _path: bar.update(1),
        )


@cli.command()
@click.argument(
    "root",
    type=click.Path(path_type=Path, file_okay=False),
    default=".",
)
@click.option(
    "--repository",
    default=None,
    help=(
        "Repository for advisories without composer-repository "
        "(default: https://repo.packagist.org). An empty value skips the lookup."
    ),
)
@click.option("--timeout", type=float, default=None, help="Repository request timeout in seconds.")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.pass_context
def validate(
    ctx: click.Context,
    root: Path,
    repository: str | None,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Validate every advisory below ROOT.

    Hidden directories, the vendor directory and files at the root are
    skipped. The exit status is the number of files with issues (0 when
    everything is valid), or 1 if the run itself fails.

    ROOT is the advisory corpus directory (default: current directory).
    """
    use_json = should_output_json(ctx, json_output)

    if not root.is_dir():
        _abort(use_json, ConfigError("root", str(root), "directory does not exist"))

    try:
        default_repository = get_setting("repository", cli_value=repository, root=root)
        request_timeout = get_timeout(cli_value=timeout, root=root)
    except ConfigError as err:
        _abort(use_json, err)

    paths = discover_advisory_paths(root)

    if not use_json:
        if not paths:
            warn(f"No advisory files found below {root}")
        else:
            info(f"Checking {pluralize(len(paths), 'file')} below {root}")
        if (ctx.find_root().obj or {}).get("verbose"):
            detail(f"Default repository: {default_repository or 'none (lookups skipped)'}")
            detail(f"Request timeout: {request_timeout:g}s")

    try:
        with RepositoryCache(timeout=request_timeout) as repositories:
            report = _run(
                root,
                paths,
                repositories=repositories,
                default_repository=str(default_repository),
                show_progress=not use_json,
            )
    except (RepositoryError, AdvisoryFileError) as err:
        _abort(use_json, err)

    if use_json:
        output_json_envelope(report_envelope("validate", report))
    elif report.passed:
        success("No issues found.")
    else:
        error(summary_line(report))
        render_findings_table(report)

    if not report.passed:
        raise SystemExit(min(report.file_count, MAX_EXIT_STATUS))


if __name__ == "__main__":
    cli()
