"""Version constraint checks for advisory branches.

Each branch lists version constraints such as ``>=1.0.0`` and ``<1.4.2``.
Checks happen at two levels:

- Per constraint: the lexical grammar (operator, dotted numeric version,
  optional stability suffix like ``-beta2`` or ``-p1``).
- Per branch: exactly one upper bound and at most one lower bound.

A third check spans the whole advisory. A branch may leave out its lower
bound ("every version below X is affected") only when all branches that
do so share the same X. Otherwise the open-ended ranges would overlap.
"""

from __future__ import annotations

from dataclasses import dataclass

from advisory_validator.constants import VERSION_CONSTRAINT_PATTERN
from advisory_validator.document import Sequence, as_str, display


def is_acceptable_constraint(constraint: str) -> bool:
    """Return True if constraint matches the accepted version grammar."""
    return VERSION_CONSTRAINT_PATTERN.match(constraint) is not None


def is_upper_bound(constraint: str) -> bool:
    return constraint.startswith("<")


def is_lower_bound(constraint: str) -> bool:
    return constraint.startswith(">")


@dataclass
class BranchBounds:
    """Bounds found while scanning one branch's constraints.

    Attributes:
        upper_bound: The first upper-bound constraint, or None.
        has_lower_bound: Whether a lower-bound constraint was seen.
    """

    upper_bound: str | None = None
    has_lower_bound: bool = False


class OmittedLowerBoundTracker:
    """Upper bound shared by the branches of one advisory that omit a lower bound.

    The first branch without a lower bound sets the reference value (a
    branch that also lacks an upper bound leaves it unset). Every later
    branch without a lower bound must match it.
    """

    def __init__(self) -> None:
        self.reference: str | None = None

    def accepts(self, upper_bound: str | None) -> bool:
        """Register a branch without lower bound and tell whether it fits."""
        if self.reference is None:
            self.reference = upper_bound
        return self.reference == upper_bound


def scan_constraints(branch_name: str, versions: Sequence) -> tuple[BranchBounds, list[str]]:
    """Check each constraint of a branch and collect its bounds.

    Malformed constraints are reported but still classified by their
    leading operator, so bound-count errors surface even for typos.

    Args:
        branch_name: Name of the branch, used in messages.
        versions: The branch's ``versions`` sequence.

    Returns:
        The bounds found, and the messages produced in scan order.
    """
    bounds = BranchBounds()
    messages: list[str] = []

    for item in versions:
        constraint = as_str(item)
        if constraint is None:
            messages.append(f'Version constraint "{display(item)}" is not in an acceptable format.')
            continue

        if not is_acceptable_constraint(constraint):
            messages.append(f'Version constraint "{constraint}" is not in an acceptable format.')

        if is_upper_bound(constraint):
            if bounds.upper_bound is not None:
                messages.append(
                    f'"versions" cannot have multiple upper bounds for branch "{branch_name}".'
                )
                continue
            bounds.upper_bound = constraint
        elif is_lower_bound(constraint):
            if bounds.has_lower_bound:
                messages.append(
                    f'"versions" cannot have multiple lower bounds for branch "{branch_name}".'
                )
                continue
            bounds.has_lower_bound = True

    return bounds, messages


def check_versions(
    branch_name: str,
    versions: Sequence,
    tracker: OmittedLowerBoundTracker,
) -> list[str]:
    """Run all constraint checks for one branch.

    Args:
        branch_name: Name of the branch, used in messages.
        versions: The branch's ``versions`` sequence.
        tracker: Advisory-wide state for branches without a lower bound.

    Returns:
        Messages for every problem found, in discovery order.
    """
    bounds, messages = scan_constraints(branch_name, versions)

    if bounds.upper_bound is None:
        messages.append(f'"versions" must have an upper bound for branch "{branch_name}".')

    if not bounds.has_lower_bound and not tracker.accepts(bounds.upper_bound):
        messages.append(
            f'"versions" must have a lower bound for branch "{branch_name}" '
            "to avoid overlapping lower branches."
        )

    return messages
