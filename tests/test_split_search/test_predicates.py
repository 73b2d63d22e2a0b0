"""Tests for the split-search models: RowPredicate and Candidate."""

from __future__ import annotations

import math

import polars as pl
import pytest
from pydantic import ValidationError
from pytest_check import check

from splitkit.frame import SplitFrame
from splitkit.split_search.models import Candidate, RowPredicate


@pytest.fixture
def accounts() -> SplitFrame:
    """Frame with one column per predicate family, each with a missing value at row 3.

    Returns:
        SplitFrame: The encoded frame.
    """
    df = pl.DataFrame({
        "balance": [120.0, 40.5, 300.0, None],
        "plan": ["basic", "premium", "standard", None],
        "active": [True, False, True, None],
    })
    return SplitFrame(df)


class TestRowPredicateConstruction:
    """Tests for factories and operator/value validation."""

    def test_factories_set_operator_and_value(self) -> None:
        """Verify each factory builds the expected operator and value type."""
        # Act
        predicates = [
            RowPredicate.num_less_equal("balance", 100),
            RowPredicate.num_greater("balance", 100),
            RowPredicate.nom_equal("plan", "basic"),
            RowPredicate.nom_not_equal("plan", "basic"),
            RowPredicate.nom_in("plan", {"basic", "standard"}),
            RowPredicate.nom_not_in("plan", {"basic"}),
            RowPredicate.bin_equal("active", True),
        ]

        # Assert
        with check:
            assert [p.operator for p in predicates] == ["<=", ">", "==", "!=", "in", "not in", "=="]
        with check:
            assert predicates[0].value == 100.0
        with check:
            assert isinstance(predicates[0].value, float)
        with check:
            assert predicates[4].value == frozenset({"basic", "standard"})
        with check:
            assert predicates[6].value is True

    @pytest.mark.parametrize(
        ("operator", "value"),
        [
            ("<=", "basic"),
            (">", True),
            ("==", frozenset({"a"})),
            ("!=", False),
            ("in", "basic"),
        ],
        ids=["threshold-with-level", "threshold-with-flag", "equal-with-set", "not-equal-with-flag", "in-with-level"],
    )
    def test_incompatible_operator_value_rejected(self, operator: str, value: object) -> None:
        """Verify mismatched operator and value types raise ValidationError.

        Args:
            operator (str): Predicate operator.
            value (object): Incompatible value.
        """
        # Act & Assert
        with pytest.raises(ValidationError):
            RowPredicate(variable="x", operator=operator, value=value)  # type: ignore[arg-type]

    def test_predicates_are_frozen_and_hashable(self) -> None:
        """Verify predicates cannot be mutated and compare by value."""
        # Arrange
        predicate = RowPredicate.nom_in("plan", {"basic"})

        # Act & Assert
        with check:
            assert predicate == RowPredicate.nom_in("plan", frozenset({"basic"}))
        with check:
            assert hash(predicate) == hash(RowPredicate.nom_in("plan", {"basic"}))
        with pytest.raises(ValidationError):
            predicate.variable = "other"  # type: ignore[misc]


class TestRowPredicateEvaluation:
    """Tests for str, eval, test, and mask."""

    @pytest.mark.parametrize(
        ("predicate", "expected"),
        [
            (RowPredicate.num_less_equal("balance", 100.25), "balance <= 100.25"),
            (RowPredicate.nom_in("plan", {"standard", "basic"}), "plan in {basic, standard}"),
            (RowPredicate.nom_not_equal("plan", "basic"), "plan != basic"),
            (RowPredicate.bin_equal("active", False), "active == False"),
        ],
        ids=["threshold", "set", "not-equal", "flag"],
    )
    def test_str(self, predicate: RowPredicate, expected: str) -> None:
        """Verify the human-readable rendering.

        Args:
            predicate (RowPredicate): Predicate under test.
            expected (str): Expected rendering.
        """
        # Act / Assert
        assert str(predicate) == expected

    @pytest.mark.parametrize(
        ("predicate", "expected_rows"),
        [
            (RowPredicate.num_less_equal("balance", 120.0), [True, True, False, False]),
            (RowPredicate.num_greater("balance", 120.0), [False, False, True, False]),
            (RowPredicate.nom_equal("plan", "basic"), [True, False, False, False]),
            (RowPredicate.nom_not_equal("plan", "basic"), [False, True, True, False]),
            (RowPredicate.nom_in("plan", {"basic", "premium"}), [True, True, False, False]),
            (RowPredicate.nom_not_in("plan", {"basic", "premium"}), [False, False, True, False]),
            (RowPredicate.bin_equal("active", True), [True, False, True, False]),
            (RowPredicate.bin_equal("active", False), [False, True, False, False]),
        ],
        ids=["le", "gt", "eq", "ne", "in", "not-in", "flag-true", "flag-false"],
    )
    def test_row_test_and_mask_agree_and_exclude_missing(
        self,
        accounts: SplitFrame,
        predicate: RowPredicate,
        expected_rows: list[bool],
    ) -> None:
        """Verify row-wise and vectorized evaluation agree, and missing rows satisfy nothing.

        Args:
            accounts (SplitFrame): Frame whose row 3 is missing in every column.
            predicate (RowPredicate): Predicate under test.
            expected_rows (list[bool]): Expected membership per row.
        """
        # Act
        row_results = [predicate.test(accounts, row) for row in range(accounts.row_count())]
        mask_results = predicate.mask(accounts).tolist()

        # Assert
        with check:
            assert row_results == expected_rows
        with check:
            assert mask_results == expected_rows

    def test_level_outside_catalog_matches_nothing(self, accounts: SplitFrame) -> None:
        """Verify an unseen level never matches, so its negation matches every known row."""
        # Act
        equal_mask = RowPredicate.nom_equal("plan", "enterprise").mask(accounts)
        not_equal_mask = RowPredicate.nom_not_equal("plan", "enterprise").mask(accounts)

        # Assert
        with check:
            assert not equal_mask.any()
        with check:
            assert not_equal_mask.tolist() == [True, True, True, False]

    def test_eval_treats_none_and_nan_as_missing(self) -> None:
        """Verify eval on a missing scalar is always False."""
        # Arrange
        predicate = RowPredicate.num_greater("balance", 0.0)

        # Act / Assert
        with check:
            assert predicate.eval(None) is False
        with check:
            assert predicate.eval(math.nan) is False
        with check:
            assert predicate.eval(1.0) is True


class TestCandidate:
    """Tests for the Candidate model."""

    def test_construction_and_str(self) -> None:
        """Verify fields and rendering of a two-group candidate."""
        # Act
        candidate = Candidate(
            score=0.25,
            test_name="balance",
            group_predicates=(
                RowPredicate.num_less_equal("balance", 80.0),
                RowPredicate.num_greater("balance", 80.0),
            ),
        )

        # Assert
        with check:
            assert candidate.test_name == "balance"
        with check:
            assert len(candidate.group_predicates) == 2
        with check:
            assert str(candidate) == "balance [0.25]: balance <= 80.0 | balance > 80.0"

    def test_nan_score_is_allowed(self) -> None:
        """Verify NaN scores can be represented."""
        # Act
        candidate = Candidate(score=math.nan, test_name="plan", group_predicates=())

        # Assert
        assert math.isnan(candidate.score)

    def test_predicates_must_test_candidate_variable(self) -> None:
        """Verify predicates on another variable are rejected."""
        # Act & Assert
        with pytest.raises(ValidationError, match="must test 'balance'"):
            Candidate(
                score=0.1,
                test_name="balance",
                group_predicates=(RowPredicate.nom_equal("plan", "basic"),),
            )
