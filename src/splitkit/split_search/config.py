"""Configuration of the split search: thresholds, purity function, and per-kind strategies."""

from __future__ import annotations

from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from splitkit.frame import VariableKind
from splitkit.split_search.purity import PurityName

# ---------------------------------------------------------------------------
# Public type aliases and constants
# ---------------------------------------------------------------------------

type SplitTestName = Literal[
    "ignore",
    "numeric_random",
    "numeric_binary",
    "binary",
    "nominal_full",
    "nominal_binary",
]

type MissingPolicy = Literal["ignored", "to_majority", "to_all_weighted", "to_random"]

DEFAULT_TESTS: Final[dict[VariableKind, SplitTestName]] = {
    "numeric": "numeric_binary",
    "binary": "binary",
    "nominal": "nominal_binary",
    "excluded": "ignore",
}

# Strategies each variable kind may be routed to; "ignore" fits every kind.
COMPATIBLE_TESTS: Final[dict[VariableKind, frozenset[SplitTestName]]] = {
    "numeric": frozenset({"ignore", "numeric_random", "numeric_binary"}),
    "binary": frozenset({"ignore", "binary"}),
    "nominal": frozenset({"ignore", "nominal_full", "nominal_binary"}),
    "excluded": frozenset({"ignore"}),
}


# ---------------------------------------------------------------------------
# Public interface -- SplitConfig
# ---------------------------------------------------------------------------


class SplitConfig(BaseModel):
    """Settings shared by every strategy evaluated at a tree node.

    Attributes:
        min_count (int): Minimum number of rows each child group must hold.
        missing_penalty (bool): Scale scores by the share of rows whose tested
            value is known.
        purity (PurityName): Purity function used to score candidates.
        tests (dict[VariableKind, SplitTestName]): Strategy used per variable kind.
        missing_policy (MissingPolicy): How rows with a missing tested value
            are routed when a node is partitioned.
        min_gain (float): A selected candidate must score strictly above this.
        max_workers (int): Worker threads used to evaluate variables; 1 runs
            sequentially.
        random_state (int | None): Seed for the randomized strategy and the
            `"to_random"` missing policy.

    Examples:
        >>> config = SplitConfig(min_count=5, missing_penalty=True)
        >>> config.tests["numeric"]
        'numeric_binary'
        >>> SplitConfig.cart().purity
        'gini_gain'
    """

    model_config = ConfigDict(frozen=True)

    min_count: int = Field(default=1, gt=0, description="Minimum number of rows per child group.")
    missing_penalty: bool = Field(
        default=False,
        description="Multiply scores by (known weight - missing weight) / known weight.",
    )
    purity: PurityName = Field(default="info_gain", description="Purity function used to score splits.")
    tests: dict[VariableKind, SplitTestName] = Field(
        default_factory=lambda: dict(DEFAULT_TESTS),
        description="Strategy per variable kind; kinds left out keep their default.",
    )
    missing_policy: MissingPolicy = Field(
        default="ignored",
        description="Routing of rows whose tested value is missing when partitioning.",
    )
    min_gain: float = Field(default=-1000.0, description="Scores must exceed this to be selected.")
    max_workers: int = Field(default=1, ge=1, description="Threads used to evaluate variables.")
    random_state: int | None = Field(default=None, description="Seed for randomized choices.")

    @field_validator("tests", mode="after")
    @classmethod
    def _validate_tests(cls, tests: dict[VariableKind, SplitTestName]) -> dict[VariableKind, SplitTestName]:
        """Fill in default strategies and reject strategies that cannot test a kind.

        Returns:
            dict[VariableKind, SplitTestName]: Strategy for every variable kind.

        Raises:
            ValueError: If a strategy is routed to a kind it cannot test.
        """
        merged = {**DEFAULT_TESTS, **tests}
        for kind, test in merged.items():
            if test not in COMPATIBLE_TESTS[kind]:
                allowed = sorted(COMPATIBLE_TESTS[kind])
                raise ValueError(f"Strategy '{test}' cannot test {kind} variables; expected one of {allowed}")
        return merged

    def test_for(self, kind: VariableKind) -> SplitTestName:
        """Return the strategy configured for variables of `kind`."""
        return self.tests[kind]

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    @classmethod
    def id3(cls, **overrides: object) -> SplitConfig:
        """Multi-way nominal splits scored by information gain; numeric variables are ignored."""
        settings: dict[str, object] = {
            "tests": {"nominal": "nominal_full", "numeric": "ignore"},
            "purity": "info_gain",
            "missing_policy": "ignored",
        }
        return cls.model_validate({**settings, **overrides})

    @classmethod
    def c45(cls, **overrides: object) -> SplitConfig:
        """Multi-way nominal and binary numeric splits scored by gain ratio."""
        settings: dict[str, object] = {
            "tests": {"nominal": "nominal_full", "numeric": "numeric_binary"},
            "purity": "gain_ratio",
            "missing_policy": "to_all_weighted",
        }
        return cls.model_validate({**settings, **overrides})

    @classmethod
    def cart(cls, **overrides: object) -> SplitConfig:
        """Binary splits everywhere, scored by Gini gain."""
        settings: dict[str, object] = {
            "tests": {"nominal": "nominal_binary", "numeric": "numeric_binary"},
            "purity": "gini_gain",
            "missing_policy": "to_all_weighted",
        }
        return cls.model_validate({**settings, **overrides})

    @classmethod
    def decision_stump(cls, **overrides: object) -> SplitConfig:
        settings: dict[str, object] = {
            "tests": {"nominal": "nominal_binary", "numeric": "numeric_binary"},
            "purity": "gain_ratio",
            "missing_policy": "to_all_weighted",
        }
        return cls.model_validate({**settings, **overrides})
