"""Split strategies: each proposes the best split of one variable at one tree node.

A strategy receives the node's rows, their weights, the tested variable and the
nominal target, and returns a scored `Candidate` or `None` when the variable
offers no usable split (too few rows, every value missing, a single level).
Rows whose target value is missing never contribute to a score.

All mutable scratch (density tables, sort orders) is local to a call, so
strategies may run concurrently over a shared `SplitFrame`.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Final

import numpy as np
from loguru import logger
from sklearn.utils import check_random_state

from splitkit.frame import SplitFrame, VariableKind, Weights, resolve_weights
from splitkit.logging import SEARCH_LEVEL
from splitkit.split_search.config import SplitConfig, SplitTestName
from splitkit.split_search.density import (
    BINARY_GROUP_LABELS,
    NUMERIC_GROUP_LABELS,
    SUBSET_GROUP_LABELS,
    DensityTable,
)
from splitkit.split_search.models import Candidate, RowPredicate
from splitkit.split_search.purity import PurityFunction

type RandomState = int | np.random.RandomState | None

type SplitStrategy = Callable[
    [SplitConfig, SplitFrame, np.ndarray, str, str, PurityFunction, RandomState],
    Candidate | None,
]

TARGET_KINDS: Final[tuple[VariableKind, ...]] = ("binary", "nominal")

# ---------------------------------------------------------------------------
# Public interface -- Strategies
# ---------------------------------------------------------------------------


def ignore(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Never propose a split."""
    return None


def numeric_random(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Split a numeric variable at the value of one randomly chosen row.

    The threshold row is drawn uniformly among rows with a known tested value.
    No `min_count` check is made, so either group may be empty.

    Args:
        config (SplitConfig): Search settings; only `missing_penalty` is used.
        frame (SplitFrame): Rows of the node.
        weights (np.ndarray): Per-row weights.
        test_variable (str): Numeric variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Seed or generator for the threshold draw.

    Returns:
        Candidate | None: A `<= t` / `> t` candidate, or `None` when every
            tested value is missing.
    """
    values = frame.values(test_variable)
    candidate_rows = np.flatnonzero(~frame.missing_mask(test_variable))
    if candidate_rows.size == 0:
        return None
    rng = check_random_state(random_state)
    threshold = float(values[candidate_rows[rng.randint(candidate_rows.size)]])

    target_codes, known_target = _target_codes(frame, target_variable)
    counted = known_target & ~frame.missing_mask(test_variable)
    table = DensityTable.empty(NUMERIC_GROUP_LABELS, frame.levels(target_variable)[1:])
    groups = np.where(values[counted] <= threshold, 0, 1)
    table.increment_many(groups, target_codes[counted] - 1, weights[counted])

    score = _apply_missing_penalty(purity(table), config, frame, weights, test_variable, known_target)
    return Candidate(
        score=score,
        test_name=test_variable,
        group_predicates=(
            RowPredicate.num_less_equal(test_variable, threshold),
            RowPredicate.num_greater(test_variable, threshold),
        ),
    )


def numeric_binary(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Find the best binary threshold of a numeric variable by a sorted sweep.

    Rows with a known tested value are stably sorted by value and moved one at
    a time from the right group to the left group. A boundary after sorted
    position `i` is evaluated only when `min_count <= i < n - min_count` and the
    value strictly increases across the boundary, so the left group holds more
    than `min_count` rows and the right group at least `min_count`. The first
    maximum wins; NaN scores never win. The threshold is the midpoint of the
    two values around the winning boundary.

    Args:
        config (SplitConfig): Search settings.
        frame (SplitFrame): Rows of the node.
        weights (np.ndarray): Per-row weights.
        test_variable (str): Numeric variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Unused.

    Returns:
        Candidate | None: The best `<= t` / `> t` candidate, or `None` when no
            boundary satisfies `min_count` (in particular when fewer than
            `2 * min_count + 1` rows have a known value).
    """
    target_codes, known_target = _target_codes(frame, target_variable)
    counted = np.flatnonzero(known_target & ~frame.missing_mask(test_variable))
    values = frame.values(test_variable)[counted]
    order = np.argsort(values, kind="stable")
    sorted_values = values[order]
    sorted_codes = target_codes[counted][order] - 1
    sorted_weights = weights[counted][order]

    row_count = sorted_values.size
    col_labels = frame.levels(target_variable)[1:]
    boundaries = np.arange(max(row_count - 1, 0))
    valid = (
        (boundaries >= config.min_count)
        & (boundaries < row_count - config.min_count)
        & (sorted_values[:-1] < sorted_values[1:])
    )
    if not valid.any():
        return None

    per_row = np.zeros((row_count, len(col_labels)), dtype=np.float64)
    per_row[np.arange(row_count), sorted_codes] = sorted_weights
    left_totals = np.cumsum(per_row, axis=0)
    overall = left_totals[-1]

    best_score: float | None = None
    best_boundary = -1
    for boundary in np.flatnonzero(valid):
        table = DensityTable.from_array(
            NUMERIC_GROUP_LABELS,
            col_labels,
            np.vstack([left_totals[boundary], overall - left_totals[boundary]]),
        )
        score = purity(table)
        if _improves(score, best_score):
            best_score = score
            best_boundary = int(boundary)
    if best_score is None:
        return None

    threshold = float((sorted_values[best_boundary] + sorted_values[best_boundary + 1]) / 2)
    score = _apply_missing_penalty(best_score, config, frame, weights, test_variable, known_target)
    return Candidate(
        score=score,
        test_name=test_variable,
        group_predicates=(
            RowPredicate.num_less_equal(test_variable, threshold),
            RowPredicate.num_greater(test_variable, threshold),
        ),
    )


def binary(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Split a binary variable into its `True` and `False` rows.

    Args:
        config (SplitConfig): Search settings.
        frame (SplitFrame): Rows of the node.
        weights (np.ndarray): Per-row weights.
        test_variable (str): Binary variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Unused.

    Returns:
        Candidate | None: A `== True` / `== False` candidate, or `None` unless
            both groups carry at least `min_count` weight.
    """
    target_codes, known_target = _target_codes(frame, target_variable)
    flags = frame.values(test_variable)
    counted = known_target & (flags > 0)
    table = DensityTable.empty(BINARY_GROUP_LABELS, frame.levels(target_variable)[1:])
    # Code 2 is "true" in the binary catalog; group 0 collects the true rows.
    groups = np.where(flags[counted] == 2, 0, 1)
    table.increment_many(groups, target_codes[counted] - 1, weights[counted])
    if not table.has_cols_with_minimum_count(config.min_count, 2):
        return None

    score = _apply_missing_penalty(purity(table), config, frame, weights, test_variable, known_target)
    return Candidate(
        score=score,
        test_name=test_variable,
        group_predicates=(
            RowPredicate.bin_equal(test_variable, True),
            RowPredicate.bin_equal(test_variable, False),
        ),
    )


def nominal_full(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Split a nominal variable into one group per level.

    Args:
        config (SplitConfig): Search settings.
        frame (SplitFrame): Rows of the node.
        weights (np.ndarray): Per-row weights.
        test_variable (str): Nominal variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Unused.

    Returns:
        Candidate | None: One `== level` group per catalog level, in catalog
            order, or `None` unless at least two levels hold `min_count` rows.
    """
    counts = DensityTable.from_level_counts(frame, test_variable, target_variable)
    if not counts.has_cols_with_minimum_count(config.min_count, 2):
        return None

    table = DensityTable.from_level_weights(frame, test_variable, target_variable, weights)
    _, known_target = _target_codes(frame, target_variable)
    score = _apply_missing_penalty(purity(table), config, frame, weights, test_variable, known_target)
    return Candidate(
        score=score,
        test_name=test_variable,
        group_predicates=tuple(RowPredicate.nom_equal(test_variable, level) for level in table.row_labels),
    )


def nominal_binary(
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    random_state: RandomState = None,
) -> Candidate | None:
    """Find the best two-way grouping of a nominal variable's levels.

    With a two-level target, levels are ordered by their share of weight on the
    first target level (descending, ties kept in catalog order) and every
    prefix of that order is evaluated as the test group. For two classes the
    best prefix is also the best subset over all groupings.

    With more target levels, only "one level versus the rest" groupings are
    evaluated. This is an approximation rather than an exhaustive search.

    Args:
        config (SplitConfig): Search settings.
        frame (SplitFrame): Rows of the node.
        weights (np.ndarray): Per-row weights.
        test_variable (str): Nominal variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Unused.

    Returns:
        Candidate | None: An `in` / `not in` candidate for two-level targets,
            an `==` / `!=` candidate otherwise, or `None` when no grouping
            satisfies `min_count`.
    """
    counts = DensityTable.from_level_counts(frame, test_variable, target_variable)
    if not counts.has_cols_with_minimum_count(config.min_count, 2):
        return None

    table = DensityTable.from_level_weights(frame, test_variable, target_variable, weights)
    if len(table.col_labels) == 2:
        best = _best_level_prefix(config, counts, table, purity)
    else:
        best = _best_single_level(config, counts, table, purity)
    if best is None:
        return None

    best_score, test_levels = best
    _, known_target = _target_codes(frame, target_variable)
    score = _apply_missing_penalty(best_score, config, frame, weights, test_variable, known_target)
    if len(table.col_labels) == 2:
        predicates = (
            RowPredicate.nom_in(test_variable, test_levels),
            RowPredicate.nom_not_in(test_variable, test_levels),
        )
    else:
        (level,) = test_levels
        predicates = (
            RowPredicate.nom_equal(test_variable, level),
            RowPredicate.nom_not_equal(test_variable, level),
        )
    return Candidate(score=score, test_name=test_variable, group_predicates=predicates)


# ---------------------------------------------------------------------------
# Public interface -- Registry and dispatch
# ---------------------------------------------------------------------------

SPLIT_TESTS: Final[dict[SplitTestName, SplitStrategy]] = {
    "ignore": ignore,
    "numeric_random": numeric_random,
    "numeric_binary": numeric_binary,
    "binary": binary,
    "nominal_full": nominal_full,
    "nominal_binary": nominal_binary,
}

# Variable kinds each strategy can test.
ACCEPTED_KINDS: Final[dict[SplitTestName, tuple[VariableKind, ...]]] = {
    "ignore": ("numeric", "binary", "nominal", "excluded"),
    "numeric_random": ("numeric",),
    "numeric_binary": ("numeric",),
    "binary": ("binary",),
    "nominal_full": ("nominal",),
    "nominal_binary": ("nominal",),
}


def compute_candidate(
    test: SplitTestName,
    config: SplitConfig,
    frame: SplitFrame,
    weights: Weights | None,
    test_variable: str,
    target_variable: str,
    purity: PurityFunction,
    *,
    random_state: RandomState = None,
) -> Candidate | None:
    """Validate the inputs and run one strategy on one variable.

    Args:
        test (SplitTestName): Strategy to run.
        config (SplitConfig): Search settings.
        frame (SplitFrame): Rows of the node.
        weights (Weights | None): Per-row weights; `None` weighs every row 1.
        test_variable (str): Variable to split.
        target_variable (str): Binary or nominal target.
        purity (PurityFunction): Scoring function.
        random_state (RandomState): Seed or generator for randomized
            strategies; falls back to `config.random_state`.

    Returns:
        Candidate | None: The strategy's best candidate, or `None` when the
            variable offers no usable split.

    Raises:
        ValueError: If `test` is not a known strategy.
        ColumnsNotFoundError: If either variable is absent from the frame.
        VariableKindError: If the target is not binary or nominal, or the
            strategy cannot test the variable's kind.
        WeightsLengthError: If `weights` does not cover every row.
        InvalidWeightsError: If any weight is negative or non-finite.

    Examples:
        >>> import polars as pl
        >>> from splitkit.split_search.purity import info_gain
        >>> frame = SplitFrame(pl.DataFrame({"x": [1.0, 2.0, 3.0, 4.0], "y": ["a", "a", "b", "b"]}))
        >>> candidate = compute_candidate("numeric_binary", SplitConfig(), frame, None, "x", "y", info_gain)
        >>> str(candidate)
        'x [1]: x <= 2.5 | x > 2.5'
    """
    strategy = SPLIT_TESTS.get(test)
    if strategy is None:
        raise ValueError(f"Unknown split test {test!r}; expected one of {sorted(SPLIT_TESTS)}")
    frame.require([target_variable], kinds=TARGET_KINDS)
    frame.require([test_variable], kinds=ACCEPTED_KINDS[test])
    weight_array = resolve_weights(weights, frame.row_count())
    seed = config.random_state if random_state is None else random_state

    logger.log(
        SEARCH_LEVEL,
        "Evaluating split strategy",
        test=test,
        variable=test_variable,
        target=target_variable,
        rows=frame.row_count(),
    )
    candidate = strategy(config, frame, weight_array, test_variable, target_variable, purity, seed)
    if candidate is None:
        logger.debug("No usable split", test=test, variable=test_variable)
    else:
        logger.debug(
            "Computed split candidate",
            test=test,
            variable=test_variable,
            score=candidate.score,
            groups=len(candidate.group_predicates),
        )
    return candidate


# ---------------------------------------------------------------------------
# Private helpers -- Shared scoring
# ---------------------------------------------------------------------------


def _target_codes(frame: SplitFrame, target_variable: str) -> tuple[np.ndarray, np.ndarray]:
    codes = frame.values(target_variable)
    return codes, codes > 0


def _improves(score: float, best_score: float | None) -> bool:
    return not math.isnan(score) and (best_score is None or score > best_score)


def _apply_missing_penalty(
    score: float,
    config: SplitConfig,
    frame: SplitFrame,
    weights: np.ndarray,
    test_variable: str,
    known_target: np.ndarray,
) -> float:
    """Scale `score` by the share of known-target weight whose tested value is known.

    Returns:
        float: `score * (total - missing) / total` when the penalty is enabled
            and the known-target weight is positive, otherwise `score`.
    """
    if not config.missing_penalty:
        return score
    total = float(weights[known_target].sum())
    if total <= 0:
        return score
    missing = float(weights[known_target & frame.missing_mask(test_variable)].sum())
    return score * (total - missing) / total


# ---------------------------------------------------------------------------
# Private helpers -- Nominal groupings
# ---------------------------------------------------------------------------


def _best_level_prefix(
    config: SplitConfig,
    counts: DensityTable,
    table: DensityTable,
    purity: PurityFunction,
) -> tuple[float, frozenset[str]] | None:
    """Sweep levels ordered by first-target-level share; return the best prefix.

    The key is the row-normalised share rather than the raw weight on the first
    target level, which makes the best prefix the best subset overall.
    """
    shares = table.normalize_on_rows().values[:, 0]
    order = np.argsort(-shares, kind="stable")
    level_counts = counts.row_totals()
    level_weights = table.values
    total_count = float(level_counts.sum())
    total_weights = level_weights.sum(axis=0)

    best: tuple[float, frozenset[str]] | None = None
    test_count = 0.0
    test_weights = np.zeros(len(table.col_labels), dtype=np.float64)
    for position, level in enumerate(order[:-1], start=1):
        test_count += float(level_counts[level])
        test_weights = test_weights + level_weights[level]
        if test_count < config.min_count or total_count - test_count < config.min_count:
            continue
        split = DensityTable.from_array(
            SUBSET_GROUP_LABELS,
            table.col_labels,
            np.vstack([test_weights, total_weights - test_weights]),
        )
        score = purity(split)
        if _improves(score, None if best is None else best[0]):
            best = (score, frozenset(table.row_labels[index] for index in order[:position]))
    return best


def _best_single_level(
    config: SplitConfig,
    counts: DensityTable,
    table: DensityTable,
    purity: PurityFunction,
) -> tuple[float, frozenset[str]] | None:
    """Evaluate each sufficiently populated level against all others; return the best."""
    level_counts = counts.row_totals()
    level_weights = table.values
    total_weights = level_weights.sum(axis=0)

    best: tuple[float, frozenset[str]] | None = None
    for level, label in enumerate(table.row_labels):
        if level_counts[level] < config.min_count:
            continue
        split = DensityTable.from_array(
            SUBSET_GROUP_LABELS,
            table.col_labels,
            np.vstack([level_weights[level], total_weights - level_weights[level]]),
        )
        score = purity(split)
        if _improves(score, None if best is None else best[0]):
            best = (score, frozenset({label}))
    return best
