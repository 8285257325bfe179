"""Advisory validator - check security advisory files before they are published."""

from advisory_validator.cli import cli
from advisory_validator.errors import AdvisoryError, RecordParseError, RepositoryError
from advisory_validator.repository import ComposerRepositoryClient, RepositoryCache
from advisory_validator.validation import (
    Finding,
    FindingReport,
    validate_advisories,
    validate_advisory,
)

__all__ = [
    "AdvisoryError",
    "ComposerRepositoryClient",
    "Finding",
    "FindingReport",
    "RecordParseError",
    "RepositoryCache",
    "RepositoryError",
    "cli",
    "validate_advisories",
    "validate_advisory",
]
