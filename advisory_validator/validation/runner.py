"""Validation runner that executes all rules against advisory files."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence

from advisory_validator.constants import ADVISORY_EXTENSION, DEFAULT_REPOSITORY
from advisory_validator.document import parse_document
from advisory_validator.errors import RecordParseError
from advisory_validator.repository import RepositoryCache
from advisory_validator.validation.results import Finding, FindingReport
from advisory_validator.validation.rules import (
    AdvisoryContext,
    AdvisoryRule,
    BranchesRule,
    CveFilenameRule,
    CveFormatRule,
    ReferenceRule,
    RequiredKeysRule,
    SupportedKeysRule,
)

logger = logging.getLogger(__name__)

# Rules in reporting order
# Immutable tuple to prevent accidental mutation
DEFAULT_RULES: tuple[AdvisoryRule, ...] = (
    SupportedKeysRule(),
    RequiredKeysRule(),
    ReferenceRule(),
    CveFormatRule(),
    BranchesRule(),
    CveFilenameRule(),
)


def normalize_path(path: str) -> str:
    """Use ``/`` as the separator so paths compare against package names."""
    return path.replace("\\", "/")


def validate_advisory(
    path: str,
    text: str,
    *,
    repositories: RepositoryCache,
    now: float | None = None,
    default_repository: str = DEFAULT_REPOSITORY,
    rules: Sequence[AdvisoryRule] | None = None,
) -> list[Finding]:
    """Validate one advisory file.

    Args:
        path: Path of the advisory relative to the corpus root.
        text: Raw content of the file.
        repositories: Run-wide cache of package repository clients.
        now: Current UNIX time. Defaults to the wall clock.
        default_repository: Repository for advisories that name none.
        rules: Rules to run. Defaults to DEFAULT_RULES.

    Returns:
        Findings for this advisory, in discovery order.

    Raises:
        RepositoryError: If a package repository lookup fails.
    """
    path = normalize_path(path)

    if not path.endswith(ADVISORY_EXTENSION):
        return [
            Finding(
                path=path,
                message=f'The file extension should be "{ADVISORY_EXTENSION}".',
                rule_name="extension",
            )
        ]

    try:
        document = parse_document(text)
    except RecordParseError as e:
        logger.debug("Cannot parse %s: %s", path, e.reason)
        return [Finding(path=path, message=f"YAML is not valid ({e.reason}).", rule_name="yaml")]

    ctx = AdvisoryContext(
        path=path,
        document=document,
        repositories=repositories,
        now=time.time() if now is None else now,
        default_repository=default_repository,
    )

    findings: list[Finding] = []
    for rule in DEFAULT_RULES if rules is None else rules:
        findings.extend(rule.check(ctx))
    return findings


def validate_advisories(
    advisories: Iterable[tuple[str, str]],
    *,
    repositories: RepositoryCache | None = None,
    now: float | None = None,
    default_repository: str = DEFAULT_REPOSITORY,
    rules: Sequence[AdvisoryRule] | None = None,
    on_advisory: Callable[[str], None] | None = None,
) -> FindingReport:
    """Validate a corpus of advisories in a single pass.

    Args:
        advisories: (relative path, raw text) pairs.
        repositories: Cache of package repository clients. A private cache
            is created (and closed) when not given.
        now: Current UNIX time, shared by every advisory of the pass.
            Defaults to the wall clock at the start of the pass.
        default_repository: Repository for advisories that name none.
        rules: Rules to run. Defaults to DEFAULT_RULES.
        on_advisory: Called with each path once it has been checked.

    Returns:
        FindingReport grouping the findings by advisory path.

    Raises:
        RepositoryError: If a package repository lookup fails. Findings
            gathered so far are lost with the run.
    """
    if now is None:
        now = time.time()

    owned = repositories is None
    cache = RepositoryCache() if repositories is None else repositories

    report = FindingReport()
    checked = 0
    try:
        for path, text in advisories:
            report.extend(
                validate_advisory(
                    path,
                    text,
                    repositories=cache,
                    now=now,
                    default_repository=default_repository,
                    rules=rules,
                )
            )
            checked += 1
            if on_advisory is not None:
                on_advisory(path)
    finally:
        if owned:
            cache.close()

    logger.debug(
        "Checked %d advisories: %d issues in %d files",
        checked,
        report.issue_count,
        report.file_count,
    )
    return report
