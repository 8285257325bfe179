"""Structured error codes for the advisory validator.

All errors follow the format ADV-{category}{number}:
- ADV-PAR*: Advisory document parse errors
- ADV-REP*: Package repository errors
- ADV-CFG*: Configuration errors
- ADV-FIL*: Advisory file access errors

Only parse errors are recovered from during a run (they become findings).
Repository errors abort the run: a broken lookup would otherwise hide every
referential finding that follows it. A file that disappears or becomes
unreadable during the walk aborts the run too.
"""

from __future__ import annotations

from typing import Any


class AdvisoryError(Exception):
    """Base class for all advisory validator errors.

    All errors have:
    - code: Structured error code (e.g., ADV-REP001)
    - message: Human-readable error message
    """

    code: str = "ADV-000"

    # Reserved attribute names that cannot be overwritten by context
    _RESERVED_ATTRS = frozenset({"code", "message", "context", "args"})

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize an advisory validator error.

        Args:
            message: Human-readable error message.
            **context: Additional context stored as error attributes.
                Reserved keys (code, message, context, args) are ignored.
        """
        self.message = message
        self.context = context
        for key, value in context.items():
            if key not in self._RESERVED_ATTRS:
                setattr(self, key, value)
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# Parse Errors (ADV-PAR*)
class RecordParseError(AdvisoryError):
    """Raised when an advisory document cannot be parsed.

    Error code: ADV-PAR001

    The ``reason`` attribute holds the parser diagnostic without the code
    prefix, which is what ends up in the finding message.
    """

    code = "ADV-PAR001"

    def __init__(self, reason: str, *, line: int | None = None) -> None:
        super().__init__(f"Document is not valid: {reason}", reason=reason, line=line)


# Repository Errors (ADV-REP*)
class RepositoryError(AdvisoryError):
    """Base class for package repository errors."""

    code = "ADV-REP000"


class RepositoryUnreachableError(RepositoryError):
    """Raised when a package repository cannot be reached.

    Error code: ADV-REP001
    """

    code = "ADV-REP001"

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Cannot reach package repository {url}: {reason}", url=url, reason=reason)


class RepositoryResponseError(RepositoryError):
    """Raised when a package repository answers with an unusable response.

    Error code: ADV-REP002
    """

    code = "ADV-REP002"

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            f"Unexpected response from package repository {url}: {reason}",
            url=url,
            reason=reason,
        )


# Configuration Errors (ADV-CFG*)
class ConfigError(AdvisoryError):
    """Raised when a configuration value is invalid.

    Error code: ADV-CFG001
    """

    code = "ADV-CFG001"

    def __init__(self, key: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid value for '{key}' ({value!r}): {reason}", key=key, value=value)


# File Errors (ADV-FIL*)
class AdvisoryFileError(AdvisoryError):
    """Raised when an advisory file found by discovery cannot be read.

    Error code: ADV-FIL001
    """

    code = "ADV-FIL001"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read advisory {path}: {reason}", path=path, reason=reason)
