"""Node-level split search: evaluate every variable, pick the winner, route the rows."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import numpy as np
from loguru import logger
from sklearn.utils import check_random_state

from splitkit.frame import SplitFrame, Weights, resolve_weights
from splitkit.split_search.config import MissingPolicy, SplitConfig, SplitTestName
from splitkit.split_search.models import Candidate, RowPredicate
from splitkit.split_search.purity import get_purity_function
from splitkit.split_search.strategies import TARGET_KINDS, RandomState, compute_candidate

_SEED_UPPER_BOUND: int = np.iinfo(np.int32).max  # Per-variable seeds are drawn below this bound.
_MISSING_POLICIES: frozenset[str] = frozenset({"ignored", "to_majority", "to_all_weighted", "to_random"})


class RowGroup(NamedTuple):
    """Rows routed to one child group of a split.

    Attributes:
        predicate (RowPredicate): Predicate defining the group.
        rows (np.ndarray): Row positions in the parent frame, ascending.
        weights (np.ndarray): Weight of each row in the group, parallel to `rows`.
    """

    predicate: RowPredicate
    rows: np.ndarray
    weights: np.ndarray


# ---------------------------------------------------------------------------
# Public interface -- Candidate search
# ---------------------------------------------------------------------------


def compute_candidates(
    frame: SplitFrame,
    target: str,
    *,
    weights: Weights | None = None,
    config: SplitConfig | None = None,
    variables: Sequence[str] | None = None,
) -> list[Candidate | None]:
    """Run the configured strategy on every variable of a node.

    The target itself is evaluated with the `"ignore"` strategy, as are
    variables of the `"excluded"` kind unless configured otherwise.

    Args:
        frame (SplitFrame): Rows of the node.
        target (str): Binary or nominal target variable.
        weights (Weights | None): Per-row weights; `None` weighs every row 1.
        config (SplitConfig | None): Search settings; defaults to `SplitConfig()`.
        variables (Sequence[str] | None): Variables to evaluate; defaults to
            every column of `frame`.

    Returns:
        list[Candidate | None]: One result per variable, in variable order.

    Raises:
        ColumnsNotFoundError: If the target or a variable is absent from the frame.
        DuplicateColumnsError: If `variables` contains duplicates.
        VariableKindError: If the target is not binary or nominal.
        WeightsLengthError: If `weights` does not cover every row.
        InvalidWeightsError: If any weight is negative or non-finite.
    """
    config = config or SplitConfig()
    names = list(frame.columns if variables is None else variables)
    frame.require([target], kinds=TARGET_KINDS)
    if names:
        frame.require(names)
    weight_array = resolve_weights(weights, frame.row_count())
    purity = get_purity_function(config.purity)
    seeds = check_random_state(config.random_state).randint(_SEED_UPPER_BOUND, size=len(names))

    def evaluate(name: str, seed: int) -> Candidate | None:
        test: SplitTestName = "ignore" if name == target else config.test_for(frame.kind(name))
        return compute_candidate(
            test,
            config,
            frame,
            weight_array,
            name,
            target,
            purity,
            random_state=int(seed),
        )

    if config.max_workers > 1 and len(names) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            return list(executor.map(evaluate, names, seeds))
    return [evaluate(name, seed) for name, seed in zip(names, seeds, strict=True)]


def select_best_candidate(
    candidates: Iterable[Candidate | None],
    *,
    min_gain: float = -1000.0,
) -> Candidate | None:
    """Pick the highest-scoring candidate.

    `None` entries are skipped and NaN scores never win. The first candidate
    reaching the maximum wins ties, and the winner must score strictly above
    `min_gain`.

    Args:
        candidates (Iterable[Candidate | None]): Strategy results for one node.
        min_gain (float): Scores must exceed this to be selected.

    Returns:
        Candidate | None: The winning candidate, or `None` when nothing qualifies.

    Examples:
        >>> select_best_candidate([None]) is None
        True
    """
    best: Candidate | None = None
    for candidate in candidates:
        if candidate is None:
            continue
        if math.isnan(candidate.score):
            logger.warning("Skipping candidate with NaN score", variable=candidate.test_name)
            continue
        if candidate.score <= min_gain:
            continue
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def find_best_split(
    frame: SplitFrame,
    target: str,
    *,
    weights: Weights | None = None,
    config: SplitConfig | None = None,
    variables: Sequence[str] | None = None,
) -> Candidate | None:
    """Evaluate every variable of a node and return the winning split.

    Args:
        frame (SplitFrame): Rows of the node.
        target (str): Binary or nominal target variable.
        weights (Weights | None): Per-row weights; `None` weighs every row 1.
        config (SplitConfig | None): Search settings; defaults to `SplitConfig()`.
        variables (Sequence[str] | None): Variables to evaluate; defaults to
            every column of `frame`.

    Returns:
        Candidate | None: The best split, or `None` when the node should
            become a leaf.
    """
    config = config or SplitConfig()
    candidates = compute_candidates(frame, target, weights=weights, config=config, variables=variables)
    best = select_best_candidate(candidates, min_gain=config.min_gain)
    if best is None:
        logger.info("No split selected", target=target, rows=frame.row_count())
    else:
        logger.info(
            "Selected split",
            variable=best.test_name,
            score=best.score,
            groups=[str(p) for p in best.group_predicates],
        )
    return best


# ---------------------------------------------------------------------------
# Public interface -- Row partitioning
# ---------------------------------------------------------------------------


def partition_rows(
    frame: SplitFrame,
    candidate: Candidate,
    *,
    weights: Weights | None = None,
    config: SplitConfig | None = None,
    policy: MissingPolicy | None = None,
    random_state: RandomState = None,
) -> list[RowGroup]:
    """Route a node's rows to the child groups of a split.

    Each row goes to the first group whose predicate it satisfies. Rows that
    satisfy no predicate (their tested value is missing) follow `policy`,
    which defaults to `config.missing_policy`:

    - `"ignored"`: dropped from every group.
    - `"to_majority"`: sent to the group holding the most rows (first on ties).
    - `"to_all_weighted"`: sent to every group, with weight scaled by the
      group's share of the routed weight.
    - `"to_random"`: sent to one group drawn uniformly at random.

    Args:
        frame (SplitFrame): Rows of the node.
        candidate (Candidate): The split to apply.
        weights (Weights | None): Per-row weights; `None` weighs every row 1.
        config (SplitConfig | None): Settings supplying the default policy and
            seed; defaults to `SplitConfig()`.
        policy (MissingPolicy | None): Routing of rows matching no group;
            overrides `config.missing_policy`.
        random_state (RandomState): Seed or generator for `"to_random"`;
            falls back to `config.random_state`.

    Returns:
        list[RowGroup]: One group per predicate, in predicate order.

    Raises:
        ValueError: If `policy` is not a known missing policy.
        WeightsLengthError: If `weights` does not cover every row.
        InvalidWeightsError: If any weight is negative or non-finite.
    """
    config = config or SplitConfig()
    policy = config.missing_policy if policy is None else policy
    if random_state is None:
        random_state = config.random_state
    if policy not in _MISSING_POLICIES:
        raise ValueError(f"Unknown missing policy {policy!r}; expected one of {sorted(_MISSING_POLICIES)}")
    weight_array = resolve_weights(weights, frame.row_count())
    group_count = len(candidate.group_predicates)
    masks = np.vstack([p.mask(frame) for p in candidate.group_predicates]).reshape(group_count, -1)
    matched = masks.any(axis=0)
    assignment = np.where(matched, masks.argmax(axis=0), -1)
    unmatched = np.flatnonzero(~matched)

    rows: list[list[np.ndarray]] = [[np.flatnonzero(assignment == g)] for g in range(group_count)]
    group_weights: list[list[np.ndarray]] = [[weight_array[r[0]]] for r in rows]

    if unmatched.size and policy == "to_majority":
        majority = int(np.argmax([r[0].size for r in rows]))
        rows[majority].append(unmatched)
        group_weights[majority].append(weight_array[unmatched])
    elif unmatched.size and policy == "to_all_weighted":
        routed = np.array([w[0].sum() for w in group_weights])
        shares = routed / routed.sum() if routed.sum() > 0 else np.full(group_count, 1.0 / group_count)
        for g in range(group_count):
            rows[g].append(unmatched)
            group_weights[g].append(weight_array[unmatched] * shares[g])
    elif unmatched.size and policy == "to_random":
        draws = check_random_state(random_state).randint(group_count, size=unmatched.size)
        for g in range(group_count):
            rows[g].append(unmatched[draws == g])
            group_weights[g].append(weight_array[unmatched[draws == g]])

    groups = [
        _build_row_group(predicate, np.concatenate(rows[g]), np.concatenate(group_weights[g]))
        for g, predicate in enumerate(candidate.group_predicates)
    ]
    logger.debug(
        "Partitioned rows",
        variable=candidate.test_name,
        policy=policy,
        sizes=[group.rows.size for group in groups],
        unmatched=int(unmatched.size),
    )
    return groups


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _build_row_group(predicate: RowPredicate, rows: np.ndarray, weights: np.ndarray) -> RowGroup:
    order = np.argsort(rows, kind="stable")
    return RowGroup(predicate=predicate, rows=rows[order].astype(np.int64), weights=weights[order].astype(np.float64))
