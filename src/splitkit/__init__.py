"""splitkit: split-candidate search for decision-tree learners over Polars DataFrames."""

from loguru import logger

from splitkit.frame import SplitFrame
from splitkit.logging import PACKAGE_NAME, enable_logging
from splitkit.split_search import (
    Candidate,
    DensityTable,
    RowPredicate,
    SplitConfig,
    compute_candidate,
    compute_candidates,
    find_best_split,
    partition_rows,
)

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the splitkit module by default

__all__ = [
    "Candidate",
    "DensityTable",
    "RowPredicate",
    "SplitConfig",
    "SplitFrame",
    "compute_candidate",
    "compute_candidates",
    "enable_logging",
    "find_best_split",
    "partition_rows",
]
