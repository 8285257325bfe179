"""JSON output envelope for machine-readable CLI output.

Every command run with ``--format json`` prints exactly one envelope:

    {
        "success": true|false,
        "command": "validate",
        "data": { ... },
        "errors": [ ... ]  # Only present when success=false
    }

For ``validate``, ``data`` is FindingReport.to_dict() and ``errors`` holds
one entry per finding (type "Finding", with the advisory path), or a single
entry describing a run-level failure such as an unreachable repository.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from advisory_validator.validation.results import FindingReport


@dataclass
class ErrorDetail:
    """Structure for individual error entries in the errors array.

    Attributes:
        type: Error kind ("Finding", or an exception class name)
        message: Human-readable error description
        path: Advisory path, for findings
        code: Structured error code, for AdvisoryError exceptions
    """

    type: str
    message: str
    path: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization, omitting unset fields."""
        d = {"type": self.type, "message": self.message}
        if self.path is not None:
            d["path"] = self.path
        if self.code is not None:
            d["code"] = self.code
        return d


@dataclass
class OutputEnvelope:
    """The consistent wrapper structure for all JSON command output.

    Attributes:
        success: True if command completed without errors, False otherwise
        command: Name of the command that produced this output
        data: Command-specific payload
        errors: Array of error objects; present only when success=False
    """

    success: bool
    command: str
    data: dict[str, Any] | None
    errors: list[ErrorDetail] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        The errors field is excluded when None (for success cases).
        """
        result: dict[str, Any] = {
            "success": self.success,
            "command": self.command,
            "data": self.data,
        }

        if self.errors is not None:
            result["errors"] = [e.to_dict() for e in self.errors]

        return result

    def to_json(self, *, indent: int | None = 2) -> str:
        """Convert to JSON string (pretty-printed unless indent is None)."""
        return json.dumps(self.to_dict(), indent=indent)


def success_envelope(command: str, data: dict[str, Any]) -> OutputEnvelope:
    """Create a success envelope with the given command and data."""
    return OutputEnvelope(success=True, command=command, data=data)


def error_envelope(
    command: str,
    errors: list[ErrorDetail],
    *,
    data: dict[str, Any] | None = None,
) -> OutputEnvelope:
    """Create an error envelope with the given command and errors.

    Args:
        command: Name of the command
        errors: List of ErrorDetail objects describing the errors
        data: Optional partial data to include (default: empty dict)

    Returns:
        OutputEnvelope with success=False and the provided errors
    """
    return OutputEnvelope(
        success=False,
        command=command,
        data=data if data is not None else {},
        errors=errors,
    )


def report_envelope(command: str, report: FindingReport) -> OutputEnvelope:
    """Wrap a validation report: success when clean, one error per finding otherwise."""
    data = report.to_dict()
    if report.passed:
        return success_envelope(command, data)

    errors = [
        ErrorDetail(type="Finding", message=finding.message, path=finding.path)
        for findings in report.findings.values()
        for finding in findings
    ]
    return error_envelope(command, errors, data=data)
