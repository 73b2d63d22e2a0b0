"""Weighted contingency table between partition groups and target levels."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

import numpy as np
import polars as pl

from splitkit.frame import SplitFrame
from splitkit.polars_utils import to_markdown_table

NUMERIC_GROUP_LABELS: Final[tuple[str, str]] = ("less-equals", "greater")
BINARY_GROUP_LABELS: Final[tuple[str, str]] = ("true", "false")
SUBSET_GROUP_LABELS: Final[tuple[str, str]] = ("test", "other")


class DensityTable:
    """Two-way table of accumulated weights: partition groups by target levels.

    Rows are the partition groups a split produces (for example
    `"less-equals"` / `"greater"`, or one row per nominal level) and columns
    are the target levels, without the missing sentinel. Cells only ever grow
    by non-negative increments while a table is built; once scoring begins the
    table is treated as read-only.

    Attributes:
        row_labels (tuple[str, ...]): Partition group labels.
        col_labels (tuple[str, ...]): Target level labels.

    Examples:
        >>> table = DensityTable.empty(["left", "right"], ["yes", "no"])
        >>> table.increment(0, 1, 2.0)
        >>> table.row_totals().tolist()
        [2.0, 0.0]
        >>> table.has_cols_with_minimum_count(1, 2)
        False
    """

    def __init__(self, row_labels: Sequence[str], col_labels: Sequence[str]) -> None:
        self.row_labels: tuple[str, ...] = tuple(row_labels)
        self.col_labels: tuple[str, ...] = tuple(col_labels)
        self._values = np.zeros((len(self.row_labels), len(self.col_labels)), dtype=np.float64)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls, row_labels: Sequence[str], col_labels: Sequence[str]) -> DensityTable:
        """Build a zero-filled table with the given group and target labels."""
        return cls(row_labels, col_labels)

    @classmethod
    def from_array(cls, row_labels: Sequence[str], col_labels: Sequence[str], values: np.ndarray) -> DensityTable:
        """Build a table from a `(groups, target levels)` array of weights.

        Raises:
            ValueError: If the array shape does not match the labels.
        """
        table = cls(row_labels, col_labels)
        weights = np.asarray(values, dtype=np.float64)
        if weights.shape != table.shape:
            raise ValueError(f"values shape {weights.shape} does not match table shape {table.shape}")
        table._values[:] = np.maximum(weights, 0.0)
        return table

    @classmethod
    def from_level_counts(cls, frame: SplitFrame, row_name: str, col_name: str) -> DensityTable:
        """Build a table of row counts between two leveled variables.

        Rows whose row or column value is missing are skipped.

        Args:
            frame (SplitFrame): Source rows.
            row_name (str): Binary or nominal variable laid out on rows.
            col_name (str): Binary or nominal variable laid out on columns.

        Returns:
            DensityTable: Table over levels `[1:]` of both variables.
        """
        return cls.from_level_weights(frame, row_name, col_name, None)

    @classmethod
    def from_level_weights(
        cls,
        frame: SplitFrame,
        row_name: str,
        col_name: str,
        weights: np.ndarray | None,
    ) -> DensityTable:
        """Build a table of accumulated weights between two leveled variables.

        Args:
            frame (SplitFrame): Source rows.
            row_name (str): Binary or nominal variable laid out on rows.
            col_name (str): Binary or nominal variable laid out on columns.
            weights (np.ndarray | None): Per-row weights; `None` counts rows.

        Returns:
            DensityTable: Table over levels `[1:]` of both variables.
        """
        table = cls(frame.levels(row_name)[1:], frame.levels(col_name)[1:])
        row_codes = frame.values(row_name)
        col_codes = frame.values(col_name)
        known = (row_codes > 0) & (col_codes > 0)
        row_weights = np.ones(frame.row_count()) if weights is None else weights
        table.increment_many(row_codes[known] - 1, col_codes[known] - 1, row_weights[known])
        return table

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def increment(self, row: int, col: int, weight: float) -> None:
        """Add `weight` to cell `(row, col)`."""
        self._values[row, col] += weight

    def increment_many(self, rows: np.ndarray, cols: np.ndarray, weights: np.ndarray) -> None:
        """Add each `weights[i]` to cell `(rows[i], cols[i])`; repeated cells accumulate.

        Args:
            rows (np.ndarray): Group indices.
            cols (np.ndarray): Target level indices.
            weights (np.ndarray): Weights to add, parallel to `rows` and `cols`.
        """
        np.add.at(self._values, (rows, cols), weights)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self.row_labels), len(self.col_labels))

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the cell weights, shaped `(groups, target levels)`."""
        view = self._values.view()
        view.flags.writeable = False
        return view

    def get(self, row: int, col: int) -> float:
        return float(self._values[row, col])

    def row_totals(self) -> np.ndarray:
        """Return the total weight of each partition group."""
        return self._values.sum(axis=1)

    def col_totals(self) -> np.ndarray:
        """Return the total weight of each target level."""
        return self._values.sum(axis=0)

    def total(self) -> float:
        return float(self._values.sum())

    def has_cols_with_minimum_count(self, min_count: float, required_groups: int) -> bool:
        """Check whether enough partition groups carry at least `min_count` weight.

        Used as a cheap rejection test before scoring: a split is only worth
        evaluating when at least `required_groups` of its groups are large
        enough on their own.

        Args:
            min_count (float): Minimum total weight of a qualifying group.
            required_groups (int): Number of qualifying groups needed.

        Returns:
            bool: `True` if at least `required_groups` groups have a row total
                `>= min_count`.
        """
        qualifying = int(np.count_nonzero(self.row_totals() >= min_count))
        return qualifying >= required_groups

    def normalize_on_rows(self) -> DensityTable:
        """Return a copy where each non-empty group row sums to 1."""
        normalized = DensityTable(self.row_labels, self.col_labels)
        totals = self.row_totals()
        nonzero = totals > 0
        normalized._values[nonzero] = self._values[nonzero] / totals[nonzero, np.newaxis]
        return normalized

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_polars(self) -> pl.DataFrame:
        """Render the table, with row and column totals, as a Polars DataFrame.

        Returns:
            pl.DataFrame: One row per group plus a `"total"` row; a `"group"`
                label column, one column per target level and a `"total"` column.
        """
        col_totals = self.col_totals()
        data: dict[str, list[str] | list[float]] = {"group": [*self.row_labels, "total"]}
        for index, label in enumerate(self.col_labels):
            data[label] = [*self._values[:, index].tolist(), float(col_totals[index])]
        data["total"] = [*self.row_totals().tolist(), self.total()]
        return pl.DataFrame(data)

    def to_markdown(self) -> str:
        """Render the table as a markdown string."""
        return to_markdown_table(self.to_polars(), num_rows=len(self.row_labels) + 1)

    def __repr__(self) -> str:
        return f"DensityTable(rows={list(self.row_labels)}, cols={list(self.col_labels)}, total={self.total():g})"

    def __str__(self) -> str:
        return self.to_markdown()
