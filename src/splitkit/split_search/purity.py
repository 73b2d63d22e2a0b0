"""Purity functions scoring a density table; higher scores mean better separated groups.

All functions measure in bits and return NaN for degenerate tables (zero total
weight, or zero split information for the gain ratio). Callers must never
select a NaN-scoring split.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Literal

import numpy as np

from splitkit.split_search.density import DensityTable

type PurityFunction = Callable[[DensityTable], float]

type PurityName = Literal["info_gain", "gain_ratio", "gini_gain"]


def info_gain(table: DensityTable) -> float:
    """Entropy of the target minus the weighted average entropy of the groups.

    Args:
        table (DensityTable): Groups on rows, target levels on columns.

    Returns:
        float: Information gain in bits, or NaN if the table is empty.

    Examples:
        >>> table = DensityTable.empty(["l", "r"], ["a", "b"])
        >>> table.increment(0, 0, 2.0)
        >>> table.increment(1, 1, 2.0)
        >>> info_gain(table)
        1.0
    """
    total = table.total()
    if total <= 0:
        return math.nan
    return _entropy(table.col_totals(), total) - _row_average_entropy(table.values, total)


def gain_ratio(table: DensityTable) -> float:
    """Information gain divided by the intrinsic information of the group sizes.

    Args:
        table (DensityTable): Groups on rows, target levels on columns.

    Returns:
        float: Gain ratio, or NaN if the table is empty or every row falls
            into a single group.
    """
    total = table.total()
    if total <= 0:
        return math.nan
    split_info = _entropy(table.row_totals(), total)
    if split_info <= 0:
        return math.nan
    return info_gain(table) / split_info


def gini_gain(table: DensityTable) -> float:
    """Gini impurity of the target minus the weighted average Gini impurity of the groups.

    Args:
        table (DensityTable): Groups on rows, target levels on columns.

    Returns:
        float: Gini gain, or NaN if the table is empty.
    """
    total = table.total()
    if total <= 0:
        return math.nan
    values = table.values
    row_totals = table.row_totals()
    gini = 1.0 - float(np.sum((table.col_totals() / total) ** 2))
    for row, row_total in zip(values, row_totals, strict=True):
        if row_total <= 0:
            continue
        row_gini = 1.0 - float(np.sum((row / row_total) ** 2))
        gini -= row_gini * row_total / total
    return gini


PURITY_FUNCTIONS: dict[PurityName, PurityFunction] = {
    "info_gain": info_gain,
    "gain_ratio": gain_ratio,
    "gini_gain": gini_gain,
}


def get_purity_function(name: PurityName) -> PurityFunction:
    """Look up a purity function by name.

    Raises:
        ValueError: If `name` is not a known purity function.
    """
    try:
        return PURITY_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown purity function {name!r}; expected one of {sorted(PURITY_FUNCTIONS)}") from None


def _entropy(totals: np.ndarray, total: float) -> float:
    probabilities = totals[totals > 0] / total
    return float(-np.sum(probabilities * np.log2(probabilities)))


def _row_average_entropy(values: np.ndarray, total: float) -> float:
    average = 0.0
    for row in values:
        row_total = float(row.sum())
        if row_total <= 0:
            continue
        average += row_total / total * _entropy(row, row_total)
    return average
