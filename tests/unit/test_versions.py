"""Tests for version constraint and branch bound checks."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from advisory_validator.document import Scalar, Sequence
from advisory_validator.validation.versions import (
    OmittedLowerBoundTracker,
    check_versions,
    is_acceptable_constraint,
    scan_constraints,
)


def constraints(*values: object) -> Sequence:
    """Build a versions sequence from plain values."""
    return Sequence(items=tuple(Scalar(value=v, text=str(v)) for v in values))


versions_numbers = st.lists(st.integers(min_value=0, max_value=999), min_size=1, max_size=4).map(
    lambda parts: ".".join(str(p) for p in parts)
)


class TestConstraintGrammar:
    """Tests for is_acceptable_constraint()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "constraint",
        [
            "<1.0.0",
            "<=2.3",
            ">1",
            ">=0.0.1",
            "<1.0.0-beta2",
            "<1.0.0-alpha1",
            "<1.0.0-rc10",
            ">=3.1.2-p1",
            ">=3.1.2-patch3",
            "<10.20.30.40",
        ],
    )
    def test_accepts_valid_constraints(self, constraint: str) -> None:
        assert is_acceptable_constraint(constraint)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "constraint",
        [
            "1.0.0",
            "=1.0.0",
            "~1.0",
            "^1.0",
            "<01.0",
            "<1.00",
            "<1.0.",
            "<1.0-beta",
            "<1.0-beta0",
            "<1.0-dev1",
            "< 1.0",
            "<v1.0",
            "<1.0.x",
            "",
        ],
    )
    def test_rejects_invalid_constraints(self, constraint: str) -> None:
        assert not is_acceptable_constraint(constraint)

    @pytest.mark.unit
    @given(op=st.sampled_from(["<", "<=", ">", ">="]), version=versions_numbers)
    @settings(max_examples=100)
    def test_any_operator_with_dotted_number_is_accepted(self, op: str, version: str) -> None:
        """Operator plus dotted numbers without leading zeros is always valid."""
        assert is_acceptable_constraint(f"{op}{version}")


class TestScanConstraints:
    """Tests for per-branch bound scanning."""

    @pytest.mark.unit
    def test_collects_bounds(self) -> None:
        bounds, messages = scan_constraints("1.0.x", constraints(">=1.0.0", "<2.0.0"))

        assert bounds.upper_bound == "<2.0.0"
        assert bounds.has_lower_bound
        assert messages == []

    @pytest.mark.unit
    def test_first_upper_bound_wins(self) -> None:
        bounds, messages = scan_constraints("1.0.x", constraints("<2.0.0", "<3.0.0"))

        assert bounds.upper_bound == "<2.0.0"
        assert messages == ['"versions" cannot have multiple upper bounds for branch "1.0.x".']

    @pytest.mark.unit
    def test_duplicate_lower_bound(self) -> None:
        _, messages = scan_constraints("1.0.x", constraints(">1.0", ">=1.1", "<2.0"))

        assert messages == ['"versions" cannot have multiple lower bounds for branch "1.0.x".']

    @pytest.mark.unit
    def test_malformed_constraint_is_still_classified(self) -> None:
        """A typo is reported, and still counts as the upper bound."""
        bounds, messages = scan_constraints("1.0.x", constraints("<2.0.0-dev", "<3.0.0"))

        assert bounds.upper_bound == "<2.0.0-dev"
        assert messages == [
            'Version constraint "<2.0.0-dev" is not in an acceptable format.',
            '"versions" cannot have multiple upper bounds for branch "1.0.x".',
        ]

    @pytest.mark.unit
    def test_non_string_constraint(self) -> None:
        bounds, messages = scan_constraints("1.0.x", constraints(1.5, "<2.0"))

        assert bounds.upper_bound == "<2.0"
        assert messages == ['Version constraint "1.5" is not in an acceptable format.']


class TestOmittedLowerBoundTracker:
    """Tests for the overlap check across branches."""

    @pytest.mark.unit
    def test_first_branch_sets_reference(self) -> None:
        tracker = OmittedLowerBoundTracker()

        assert tracker.accepts("<2.0")
        assert tracker.reference == "<2.0"
        assert tracker.accepts("<2.0")
        assert not tracker.accepts("<3.0")

    @pytest.mark.unit
    def test_branch_without_upper_bound_does_not_set_reference(self) -> None:
        tracker = OmittedLowerBoundTracker()

        assert tracker.accepts(None)
        assert tracker.reference is None
        assert tracker.accepts("<3.0")
        assert tracker.reference == "<3.0"

    @pytest.mark.unit
    @given(upper_bounds=st.lists(st.sampled_from(["<1.0", "<2.0", "<3.0"]), min_size=1))
    def test_all_accepted_iff_all_equal(self, upper_bounds: list[str]) -> None:
        """No branch is rejected exactly when every upper bound is the same."""
        tracker = OmittedLowerBoundTracker()

        accepted = [tracker.accepts(bound) for bound in upper_bounds]

        assert all(accepted) == (len(set(upper_bounds)) == 1)


class TestCheckVersions:
    """Tests for check_versions()."""

    @pytest.mark.unit
    def test_valid_branch_has_no_messages(self) -> None:
        tracker = OmittedLowerBoundTracker()

        assert check_versions("1.0.x", constraints(">=1.0.0", "<2.0.0"), tracker) == []

    @pytest.mark.unit
    def test_missing_upper_bound(self) -> None:
        tracker = OmittedLowerBoundTracker()

        messages = check_versions("1.0.x", constraints(">=1.0.0"), tracker)

        assert messages == ['"versions" must have an upper bound for branch "1.0.x".']

    @pytest.mark.unit
    def test_empty_versions(self) -> None:
        """No constraint at all: missing upper bound, and no lower bound to compare."""
        tracker = OmittedLowerBoundTracker()

        messages = check_versions("1.0.x", constraints(), tracker)

        assert messages == ['"versions" must have an upper bound for branch "1.0.x".']

    @pytest.mark.unit
    def test_overlapping_lower_branches(self) -> None:
        tracker = OmittedLowerBoundTracker()

        first = check_versions("1.0.x", constraints("<1.0.5"), tracker)
        second = check_versions("2.0.x", constraints("<2.0.3"), tracker)

        assert first == []
        assert second == [
            '"versions" must have a lower bound for branch "2.0.x" '
            "to avoid overlapping lower branches."
        ]

    @pytest.mark.unit
    def test_shared_upper_bound_without_lower_bound(self) -> None:
        tracker = OmittedLowerBoundTracker()

        assert check_versions("1.x", constraints("<2.0"), tracker) == []
        assert check_versions("master", constraints("<2.0"), tracker) == []

    @pytest.mark.unit
    def test_branches_with_lower_bound_do_not_affect_reference(self) -> None:
        tracker = OmittedLowerBoundTracker()

        assert check_versions("2.0.x", constraints(">=2.0", "<2.5"), tracker) == []
        assert check_versions("1.0.x", constraints("<1.5"), tracker) == []
        assert tracker.reference == "<1.5"

    @pytest.mark.unit
    @given(n_upper=st.integers(min_value=0, max_value=4))
    def test_exactly_one_upper_bound_or_a_message(self, n_upper: int) -> None:
        """Zero or several upper bounds always produce a message."""
        tracker = OmittedLowerBoundTracker()
        values = [">=1.0"] + [f"<{i + 2}.0" for i in range(n_upper)]

        messages = check_versions("1.0.x", constraints(*values), tracker)

        assert (messages == []) == (n_upper == 1)
