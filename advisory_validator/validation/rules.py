"""Advisory validation rules.

Each rule checks one aspect of a parsed advisory and returns the findings
it produced, in discovery order. Rules only see the advisory through
AdvisoryContext, so they can be unit-tested in isolation and composed into
a pipeline by the runner.

A rule whose prerequisite field is missing returns early with no findings;
the missing field itself is reported by RequiredKeysRule.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone

from dateutil import parser as date_parser

from advisory_validator.constants import (
    ADVISORY_EXTENSION,
    BRANCH_NAME_PATTERN,
    CVE_PREFIX,
    DEFAULT_REPOSITORY,
    REFERENCE_PREFIX,
    REQUIRED_KEYS,
    SUPPORTED_BRANCH_KEYS,
    SUPPORTED_KEYS,
)
from advisory_validator.document import (
    Absent,
    Mapping,
    Node,
    Scalar,
    Sequence,
    as_str,
    display,
    is_null,
    is_set,
)
from advisory_validator.repository import RepositoryCache, has_package
from advisory_validator.validation.results import Finding
from advisory_validator.validation.versions import OmittedLowerBoundTracker, check_versions


@dataclass
class AdvisoryContext:
    """Everything a rule may look at while checking one advisory.

    Attributes:
        path: Advisory path relative to the corpus root, ``/``-separated.
        document: Parsed top-level mapping of the advisory.
        repositories: Run-wide cache of package repository clients.
        now: Current time as a UNIX timestamp; times after it are rejected.
        default_repository: Repository used when the advisory names none.
    """

    path: str
    document: Mapping
    repositories: RepositoryCache
    now: float
    default_repository: str = DEFAULT_REPOSITORY

    @property
    def folder(self) -> str:
        """Directory of the advisory, i.e. the package it belongs to."""
        return posixpath.dirname(self.path)

    @property
    def stem(self) -> str:
        """File name without the .yaml extension."""
        name = posixpath.basename(self.path)
        if name.endswith(ADVISORY_EXTENSION):
            return name[: -len(ADVISORY_EXTENSION)]
        return name


class AdvisoryRule(ABC):
    """Base class for all advisory rules.

    Subclasses must define:
        name: Unique identifier for the rule
        description: Human-readable explanation for --verbose

    Subclasses must implement:
        check(): Run the rule and return its findings
    """

    name: str
    description: str

    @abstractmethod
    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        """Run this rule against one advisory.

        Args:
            ctx: The advisory and the run-wide collaborators.

        Returns:
            Findings in discovery order; empty when the rule passes.
        """
        ...

    def _finding(self, ctx: AdvisoryContext, message: str) -> Finding:
        """Helper to create a finding for the current advisory."""
        return Finding(path=ctx.path, message=message, rule_name=self.name)


class SupportedKeysRule(AdvisoryRule):
    """Reject top-level keys outside the advisory schema."""

    name = "supported_keys"
    description = "Verify the advisory only uses supported top-level keys"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        return [
            self._finding(ctx, f'Key "{key}" is not supported.')
            for key in ctx.document.keys()
            if key not in SUPPORTED_KEYS
        ]


class RequiredKeysRule(AdvisoryRule):
    """Check that reference, title, link and branches are set.

    A key holding null counts as missing.
    """

    name = "required_keys"
    description = "Verify the advisory sets every required top-level key"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        return [
            self._finding(ctx, f'Key "{key}" is required.')
            for key in REQUIRED_KEYS
            if not is_set(ctx.document.get(key))
        ]


class ReferenceRule(AdvisoryRule):
    """Check the composer reference of an advisory.

    The reference must look like ``composer://vendor/package``, the package
    must match the folder the advisory is stored in, and the package must
    exist in the advisory's repository (Packagist unless
    ``composer-repository`` says otherwise).

    Repository errors are not caught here: they abort the run.
    """

    name = "reference"
    description = "Verify the reference names an existing package matching the folder"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        node = ctx.document.get("reference")
        if not is_set(node):
            return []

        reference = as_str(node)
        if reference is None or not reference.startswith(REFERENCE_PREFIX):
            return [self._finding(ctx, f'Reference must start with "{REFERENCE_PREFIX}"')]

        findings: list[Finding] = []
        package = reference[len(REFERENCE_PREFIX) :]

        if ctx.folder != package:
            findings.append(
                self._finding(ctx, "Reference composer package must match the folder name")
            )

        repository_node = ctx.document.get("composer-repository")
        if isinstance(repository_node, Absent) or is_null(repository_node):
            repository_url = ctx.default_repository
        elif isinstance(repository_node, Scalar) and isinstance(repository_node.value, str):
            repository_url = repository_node.value
        else:
            findings.append(self._finding(ctx, '"composer-repository" must be a URL.'))
            return findings

        # An empty repository opts the advisory out of the existence lookup
        if not repository_url:
            return findings

        repository = ctx.repositories.get(repository_url)
        if not has_package(repository, package):
            findings.append(
                self._finding(
                    ctx, f"Invalid composer package (not found in repository {repository_url})"
                )
            )

        return findings


class CveFormatRule(AdvisoryRule):
    """Check that a provided cve looks like a CVE identifier."""

    name = "cve_format"
    description = "Verify cve starts with CVE-"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        node = ctx.document.get("cve")
        if not is_set(node):
            return []

        cve = as_str(node)
        if cve is None or not cve.startswith(CVE_PREFIX):
            return [self._finding(ctx, '"cve" must be a valid CVE number when provided.')]
        return []


class CveFilenameRule(AdvisoryRule):
    """Check that an advisory with a cve is stored as <cve>.yaml."""

    name = "cve_filename"
    description = "Verify the file name matches the cve"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        node = ctx.document.get("cve")
        if not is_set(node):
            return []

        cve = display(node)
        if as_str(node) != ctx.stem:
            return [self._finding(ctx, f"The filename should be {cve}{ADVISORY_EXTENSION}.")]
        return []


def parse_branch_time(node: Scalar) -> float | None:
    """Convert a branch ``time`` value to a UNIX timestamp.

    Integers are taken as timestamps. YAML dates and datetimes, and strings
    dateutil can parse, are converted; values without a timezone are read
    as UTC.

    Returns:
        The timestamp, or None if the value is not a usable time.
    """
    value = node.value

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return float(value)
    if isinstance(value, str):
        try:
            value = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    return None


class BranchesRule(AdvisoryRule):
    """Check every branch of an advisory.

    Per branch: the name, the supported keys, ``time`` (required, valid,
    not in the future) and ``versions`` (required, a list of well-formed
    constraints with the right bounds). Branches that omit a lower bound
    are checked against each other to prevent overlapping ranges.
    """

    name = "branches"
    description = "Verify branch names, times and version constraints"

    def check(self, ctx: AdvisoryContext) -> list[Finding]:
        branches = ctx.document.get("branches")
        if not is_set(branches):
            return []

        if not isinstance(branches, Mapping):
            return [self._finding(ctx, '"branches" must be an array.')]

        messages: list[str] = []
        tracker = OmittedLowerBoundTracker()

        for name, branch in branches.items():
            messages.extend(self._check_branch(ctx, name, branch, tracker))

        return [self._finding(ctx, message) for message in messages]

    def _check_branch(
        self,
        ctx: AdvisoryContext,
        name: str,
        branch: Node,
        tracker: OmittedLowerBoundTracker,
    ) -> list[str]:
        messages: list[str] = []

        if not BRANCH_NAME_PATTERN.match(name):
            messages.append(f'Invalid branch name "{name}".')

        if not isinstance(branch, Mapping):
            messages.append(f'Branch "{name}" must be a mapping.')
            return messages

        for key in branch.keys():
            if key not in SUPPORTED_BRANCH_KEYS:
                messages.append(f'Key "{key}" is not supported for branch "{name}".')

        messages.extend(self._check_time(ctx, name, branch.get("time")))

        versions = branch.get("versions")
        if not is_set(versions):
            messages.append(f'Key "versions" is required for branch "{name}".')
        elif not isinstance(versions, Sequence):
            messages.append(f'"versions" must be an array for branch "{name}".')
        else:
            messages.extend(check_versions(name, versions, tracker))

        return messages

    def _check_time(self, ctx: AdvisoryContext, name: str, node: Node) -> list[str]:
        if isinstance(node, Absent):
            return [f'Key "time" is required for branch "{name}".']
        if is_null(node):
            return []

        timestamp = parse_branch_time(node) if isinstance(node, Scalar) else None
        given = display(node)
        if timestamp is None:
            return [f'"time" is invalid for branch "{name}", given "{given}".']
        if timestamp > ctx.now:
            return [f'"time" cannot be in the future for branch "{name}", given "{given}".']
        return []
