"""Split search sub-package: density tables, purity functions, strategies, and node search."""

from __future__ import annotations

from splitkit.split_search.config import (
    DEFAULT_TESTS,
    MissingPolicy,
    SplitConfig,
    SplitTestName,
)
from splitkit.split_search.density import DensityTable
from splitkit.split_search.models import Candidate, PredicateOp, RowPredicate
from splitkit.split_search.node import (
    RowGroup,
    compute_candidates,
    find_best_split,
    partition_rows,
    select_best_candidate,
)
from splitkit.split_search.purity import (
    PURITY_FUNCTIONS,
    PurityFunction,
    PurityName,
    gain_ratio,
    get_purity_function,
    gini_gain,
    info_gain,
)
from splitkit.split_search.strategies import (
    SPLIT_TESTS,
    SplitStrategy,
    binary,
    compute_candidate,
    ignore,
    nominal_binary,
    nominal_full,
    numeric_binary,
    numeric_random,
)

__all__ = [
    "DEFAULT_TESTS",
    "PURITY_FUNCTIONS",
    "SPLIT_TESTS",
    "Candidate",
    "DensityTable",
    "MissingPolicy",
    "PredicateOp",
    "PurityFunction",
    "PurityName",
    "RowGroup",
    "RowPredicate",
    "SplitConfig",
    "SplitStrategy",
    "SplitTestName",
    "binary",
    "compute_candidate",
    "compute_candidates",
    "find_best_split",
    "gain_ratio",
    "get_purity_function",
    "gini_gain",
    "ignore",
    "info_gain",
    "nominal_binary",
    "nominal_full",
    "numeric_binary",
    "numeric_random",
    "partition_rows",
    "select_best_candidate",
]
