"""Validation engine for security advisories.

This module provides the public API for validating advisories:
- validate_advisories(): Run every rule over a corpus in one pass
- validate_advisory(): Run every rule over a single advisory
- FindingReport: Findings grouped by advisory path
- AdvisoryRule: Base class for custom rules
"""

from advisory_validator.validation.results import Finding, FindingReport
from advisory_validator.validation.rules import AdvisoryContext, AdvisoryRule
from advisory_validator.validation.runner import (
    DEFAULT_RULES,
    validate_advisories,
    validate_advisory,
)

__all__ = [
    "DEFAULT_RULES",
    "AdvisoryContext",
    "AdvisoryRule",
    "Finding",
    "FindingReport",
    "validate_advisories",
    "validate_advisory",
]
