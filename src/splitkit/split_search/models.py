"""Pydantic models for row predicates and split candidates."""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import Any, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from splitkit.frame import SplitFrame

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

type PredicateOp = Literal["<=", ">", "==", "!=", "in", "not in"]

type PredicateValue = bool | float | str | frozenset[str]

# ---------------------------------------------------------------------------
# Public models
# ---------------------------------------------------------------------------


class RowPredicate(BaseModel):
    """A pure boolean test on one variable of a row, defining membership in a split group.

    Seven variants exist, told apart by operator and value type:

    - numeric `<= threshold` and `> threshold` (float value),
    - nominal `== level` and `!= level` (str value),
    - nominal `in levels` and `not in levels` (frozenset value),
    - binary `== flag` (bool value).

    A row whose tested value is missing satisfies no predicate, including the
    negated variants, so missing rows never fall into an emitted group.

    Attributes:
        variable (str): Variable the predicate tests.
        operator (PredicateOp): Comparison operator.
        value (PredicateValue): Threshold, level, level set, or boolean flag.

    Examples:
        >>> p = RowPredicate.num_less_equal("petal_length", 2.45)
        >>> str(p)
        'petal_length <= 2.45'
        >>> p.eval(1.4)
        True
        >>> RowPredicate.nom_in("color", {"red", "blue"}).eval("green")
        False
    """

    model_config = ConfigDict(frozen=True)

    variable: str = Field(description="Variable the predicate tests, e.g. 'petal_length'.")
    operator: PredicateOp = Field(
        description=(
            "Comparison operator: '<=' / '>' for numeric thresholds, '==' / '!=' for a "
            "single level or flag, 'in' / 'not in' for a set of levels."
        ),
    )
    value: PredicateValue = Field(
        description="Numeric threshold, nominal level, set of nominal levels, or boolean flag.",
    )

    @model_validator(mode="after")
    def _validate_operator_value_compatibility(self) -> RowPredicate:
        """Validate that the operator and value type are compatible.

        Returns:
            RowPredicate: The validated model instance.

        Raises:
            ValueError: If the value type does not match the operator.
        """
        try:
            _validate_operator_value_types(self.operator, self.value)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc
        return self

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def num_less_equal(cls, variable: str, threshold: float) -> RowPredicate:
        return cls(variable=variable, operator="<=", value=float(threshold))

    @classmethod
    def num_greater(cls, variable: str, threshold: float) -> RowPredicate:
        return cls(variable=variable, operator=">", value=float(threshold))

    @classmethod
    def nom_equal(cls, variable: str, level: str) -> RowPredicate:
        return cls(variable=variable, operator="==", value=level)

    @classmethod
    def nom_not_equal(cls, variable: str, level: str) -> RowPredicate:
        return cls(variable=variable, operator="!=", value=level)

    @classmethod
    def nom_in(cls, variable: str, levels: set[str] | frozenset[str]) -> RowPredicate:
        return cls(variable=variable, operator="in", value=frozenset(levels))

    @classmethod
    def nom_not_in(cls, variable: str, levels: set[str] | frozenset[str]) -> RowPredicate:
        return cls(variable=variable, operator="not in", value=frozenset(levels))

    @classmethod
    def bin_equal(cls, variable: str, flag: bool) -> RowPredicate:
        return cls(variable=variable, operator="==", value=flag)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        """Return a human-readable representation of this predicate.

        Returns:
            str: The predicate as `"<variable> <operator> <value>"`,
                e.g. `"color in {blue, red}"` or `"age <= 30.5"`.
        """
        if isinstance(self.value, frozenset):
            sorted_values = ", ".join(sorted(self.value))
            return f"{self.variable} {self.operator} {{{sorted_values}}}"
        return f"{self.variable} {self.operator} {self.value}"

    def eval(self, x: bool | float | str | None) -> bool:
        """Evaluate this predicate against a single decoded value.

        Args:
            x (bool | float | str | None): The tested value; `None` (or NaN for
                numeric predicates) stands for missing.

        Returns:
            bool: `True` if the predicate holds for `x`, `False` otherwise.
        """
        if x is None or (isinstance(x, float) and np.isnan(x)):
            return False
        return _apply_operator(self.operator, x, self.value)

    def test(self, frame: SplitFrame, row: int) -> bool:
        """Evaluate this predicate on one row of a frame.

        Args:
            frame (SplitFrame): Source rows.
            row (int): Row position.

        Returns:
            bool: `True` if the row belongs to this predicate's group.
        """
        if frame.is_missing(row, self.variable):
            return False
        if isinstance(self.value, bool):
            return self.eval(frame.get_bool(row, self.variable))
        if isinstance(self.value, float):
            return self.eval(frame.get_double(row, self.variable))
        return self.eval(frame.get_label(row, self.variable))

    def mask(self, frame: SplitFrame) -> np.ndarray:
        """Evaluate this predicate on every row of a frame at once.

        Args:
            frame (SplitFrame): Source rows.

        Returns:
            np.ndarray: Boolean array, `True` for rows in this predicate's group;
                always `False` for rows with a missing tested value.
        """
        values = frame.values(self.variable)
        known = ~frame.missing_mask(self.variable)
        if isinstance(self.value, bool):
            return known & (values == (2 if self.value else 1))
        if isinstance(self.value, float):
            with np.errstate(invalid="ignore"):
                return known & _SCALAR_OPS[self.operator](values, self.value)
        levels = frame.levels(self.variable)
        selected = self.value if isinstance(self.value, frozenset) else frozenset({self.value})
        codes = [index for index, label in enumerate(levels) if index > 0 and label in selected]
        member = np.isin(values, codes)
        if self.operator in {"==", "in"}:
            return known & member
        return known & ~member


class Candidate(BaseModel):
    """A scored split proposal for one variable at one tree node.

    Groups are disjoint and, apart from rows whose tested value is missing,
    exhaustive over the node's rows. Candidates are immutable once built.

    Attributes:
        score (float): Purity score of the split; higher is better.
        test_name (str): Variable the split tests.
        group_predicates (tuple[RowPredicate, ...]): One predicate per child
            group, in child order.

    Examples:
        >>> candidate = Candidate(
        ...     score=0.12,
        ...     test_name="age",
        ...     group_predicates=(
        ...         RowPredicate.num_less_equal("age", 30.5),
        ...         RowPredicate.num_greater("age", 30.5),
        ...     ),
        ... )
        >>> str(candidate)
        'age [0.12]: age <= 30.5 | age > 30.5'
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(description="Purity score of the split; higher is better. May be NaN.")
    test_name: str = Field(description="Variable the split tests.")
    group_predicates: tuple[RowPredicate, ...] = Field(
        description="One predicate per child group, in child order.",
    )

    @model_validator(mode="after")
    def _validate_predicates_test_variable(self) -> Candidate:
        """Validate that every group predicate tests `test_name`.

        Returns:
            Candidate: The validated model instance.

        Raises:
            ValueError: If a predicate tests a different variable.
        """
        foreign = sorted({p.variable for p in self.group_predicates if p.variable != self.test_name})
        if foreign:
            raise ValueError(f"group predicates must test '{self.test_name}', found {foreign}")
        return self

    def __str__(self) -> str:
        groups = " | ".join(str(p) for p in self.group_predicates)
        return f"{self.test_name} [{self.score:g}]: {groups}"


# ---------------------------------------------------------------------------
# Private helpers -- Predicate operator evaluation
# ---------------------------------------------------------------------------

_SCALAR_OPS: dict[str, Callable[[Any, Any], Any]] = {
    "<=": operator.le,
    ">": operator.gt,
    "==": operator.eq,
    "!=": operator.ne,
}


def _apply_operator(op: PredicateOp, x: bool | float | str, value: PredicateValue) -> bool:
    """Apply a comparison operator between a row value and a predicate value.

    Raises:
        ValueError: If `op` is not a recognized `PredicateOp` value.
    """
    if op in _SCALAR_OPS:
        return bool(_SCALAR_OPS[op](x, value))
    if op == "in" and isinstance(value, frozenset):
        return x in value
    if op == "not in" and isinstance(value, frozenset):
        return x not in value
    raise ValueError(f"Unexpected operator: {op!r}")


def _validate_operator_value_types(op: PredicateOp, value: PredicateValue) -> None:
    """Raise TypeError when operator and value types are incompatible.

    Raises:
        TypeError: If a threshold operator is not paired with a float, an
            equality operator is paired with a set or a threshold, `!=` is
            paired with a boolean, or a membership operator is paired with a
            non-set value.
    """
    if op in {"<=", ">"} and (isinstance(value, bool) or not isinstance(value, float)):
        raise TypeError(f"Threshold operator '{op}' requires a numeric value")
    if op in {"==", "!="} and not isinstance(value, (bool, str)):
        raise TypeError(f"Equality operator '{op}' requires a level or a boolean flag")
    if op == "!=" and isinstance(value, bool):
        raise TypeError("Operator '!=' is not defined for boolean flags")
    if op in {"in", "not in"} and not isinstance(value, frozenset):
        raise TypeError(f"Membership operator '{op}' requires a set of levels")
