"""Finding data structures.

A Finding is one reported problem with one advisory file. The
FindingReport aggregates findings per file, in the order files were
first reported, for CLI display and JSON export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Finding:
    """One validation failure attached to an advisory file.

    Attributes:
        path: Path of the advisory relative to the corpus root.
        message: Human-readable description of the problem.
        rule_name: Identifier of the rule that produced the finding.
    """

    path: str
    message: str
    rule_name: str = "engine"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "path": self.path,
            "rule_name": self.rule_name,
            "message": self.message,
        }


@dataclass
class FindingReport:
    """Findings of a validation pass, grouped by advisory path.

    Paths keep the order in which they first received a finding and
    messages keep discovery order. Nothing is deduplicated.

    Attributes:
        findings: Ordered mapping of path to its findings.
    """

    findings: dict[str, list[Finding]] = field(default_factory=dict)

    def add(self, finding: Finding) -> None:
        """Append a finding under its path."""
        self.findings.setdefault(finding.path, []).append(finding)

    def extend(self, findings: list[Finding]) -> None:
        for finding in findings:
            self.add(finding)

    @property
    def passed(self) -> bool:
        """True if no advisory has a finding."""
        return not self.findings

    @property
    def messages(self) -> dict[str, list[str]]:
        """Return the plain path -> messages mapping."""
        return {path: [f.message for f in items] for path, items in self.findings.items()}

    @property
    def file_count(self) -> int:
        """Number of advisories with at least one finding."""
        return len(self.findings)

    @property
    def issue_count(self) -> int:
        return sum(len(items) for items in self.findings.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict for --format json output."""
        return {
            "passed": self.passed,
            "issue_count": self.issue_count,
            "file_count": self.file_count,
            "files": {
                path: [f.to_dict() for f in items] for path, items in self.findings.items()
            },
        }
