"""Tests for DensityTable construction, totals, and rendering."""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest
from pytest_check import check

from splitkit.frame import SplitFrame
from splitkit.split_search.density import NUMERIC_GROUP_LABELS, DensityTable


@pytest.fixture
def scenario_table() -> DensityTable:
    """Two groups by two target levels: [[3, 2], [1, 4]].

    Returns:
        DensityTable: The filled table.
    """
    return DensityTable.from_array(NUMERIC_GROUP_LABELS, ["yes", "no"], np.array([[3.0, 2.0], [1.0, 4.0]]))


class TestDensityTableTotals:
    """Tests for accumulation and totals."""

    def test_totals(self, scenario_table: DensityTable) -> None:
        """Verify row, column, and grand totals."""
        # Act / Assert
        with check:
            assert scenario_table.row_totals().tolist() == [5.0, 5.0]
        with check:
            assert scenario_table.col_totals().tolist() == [4.0, 6.0]
        with check:
            assert scenario_table.total() == 10.0
        with check:
            assert scenario_table.shape == (2, 2)

    def test_increment_many_accumulates_repeated_cells(self) -> None:
        """Verify repeated cells in one batch accumulate rather than overwrite."""
        # Arrange
        table = DensityTable.empty(["a", "b"], ["x", "y", "z"])

        # Act
        table.increment_many(np.array([0, 0, 1]), np.array([2, 2, 0]), np.array([1.5, 2.0, 0.5]))
        table.increment(1, 1, 1.0)

        # Assert
        with check:
            assert table.get(0, 2) == 3.5
        with check:
            assert table.get(1, 0) == 0.5
        with check:
            assert table.get(1, 1) == 1.0

    def test_values_view_is_read_only(self, scenario_table: DensityTable) -> None:
        """Verify the exposed cell view cannot be written."""
        # Act & Assert
        with pytest.raises(ValueError, match="read-only"):
            scenario_table.values[0, 0] = 9.0

    def test_from_array_rejects_wrong_shape(self) -> None:
        """Verify a mis-shaped array is rejected."""
        # Act & Assert
        with pytest.raises(ValueError, match="does not match table shape"):
            DensityTable.from_array(["a"], ["x", "y"], np.zeros((2, 2)))


class TestHasColsWithMinimumCount:
    """Tests for the min-count rejection test."""

    @pytest.mark.parametrize(
        ("min_count", "required_groups", "expected"),
        [
            (5, 2, True),
            (6, 1, False),
            (5, 3, False),
            (1, 2, True),
        ],
        ids=["both-groups-qualify", "none-qualify", "too-few-groups", "small-min-count"],
    )
    def test_group_thresholds(
        self,
        scenario_table: DensityTable,
        min_count: int,
        required_groups: int,
        expected: bool,
    ) -> None:
        """Verify whole-row totals, across every target level, are compared to min_count.

        Args:
            scenario_table (DensityTable): Table with row totals [5, 5].
            min_count (int): Minimum row total.
            required_groups (int): Groups needed.
            expected (bool): Expected result.
        """
        # Act / Assert
        assert scenario_table.has_cols_with_minimum_count(min_count, required_groups) is expected

    def test_counts_weight_on_every_target_level(self) -> None:
        """Verify a group whose weight sits only on the second target level still qualifies."""
        # Arrange
        table = DensityTable.from_array(["a", "b"], ["x", "y"], np.array([[0.0, 3.0], [3.0, 0.0]]))

        # Act / Assert
        assert table.has_cols_with_minimum_count(3, 2)


class TestNormalizeOnRows:
    """Tests for normalize_on_rows."""

    def test_rows_sum_to_one_and_empty_rows_stay_zero(self) -> None:
        """Verify non-empty rows are normalized and empty rows are left at zero."""
        # Arrange
        table = DensityTable.from_array(["a", "b"], ["x", "y"], np.array([[1.0, 3.0], [0.0, 0.0]]))

        # Act
        normalized = table.normalize_on_rows()

        # Assert
        with check:
            assert normalized.values[0].tolist() == [0.25, 0.75]
        with check:
            assert normalized.values[1].tolist() == [0.0, 0.0]
        with check:
            assert table.get(0, 0) == 1.0, "Source table must be unchanged"


class TestFromLevels:
    """Tests for building tables from a frame's leveled columns."""

    def test_counts_and_weights_skip_missing(self) -> None:
        """Verify rows with a missing row or column value are skipped and weights are summed."""
        # Arrange
        frame = SplitFrame(
            pl.DataFrame({
                "color": ["red", "blue", "red", None, "blue"],
                "label": ["pos", "neg", None, "pos", "pos"],
            })
        )
        weights = np.array([2.0, 1.0, 5.0, 7.0, 0.5])

        # Act
        counts = DensityTable.from_level_counts(frame, "color", "label")
        weighted = DensityTable.from_level_weights(frame, "color", "label", weights)

        # Assert
        with check:
            assert counts.row_labels == ("blue", "red")
        with check:
            assert counts.col_labels == ("neg", "pos")
        with check:
            assert counts.values.tolist() == [[1.0, 1.0], [0.0, 1.0]]
        with check:
            assert weighted.values.tolist() == [[1.0, 0.5], [0.0, 2.0]]


class TestRendering:
    """Tests for Polars and markdown rendering."""

    def test_to_polars_includes_totals(self, scenario_table: DensityTable) -> None:
        """Verify the rendered frame carries group labels and both totals."""
        # Act
        df = scenario_table.to_polars()

        # Assert
        with check:
            assert df.columns == ["group", "yes", "no", "total"]
        with check:
            assert df["group"].to_list() == ["less-equals", "greater", "total"]
        with check:
            assert df["total"].to_list() == [5.0, 5.0, 10.0]
        with check:
            assert df["yes"].to_list() == [3.0, 1.0, 4.0]

    def test_str_is_markdown(self, scenario_table: DensityTable) -> None:
        """Verify str() renders a markdown table."""
        # Act
        rendered = str(scenario_table)

        # Assert
        with check:
            assert "| group" in rendered
        with check:
            assert "less-equals" in rendered
