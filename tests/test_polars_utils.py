"""Tests for polars_utils module: to_markdown_table and validate_columns."""

from __future__ import annotations

import polars as pl
import pytest
from pytest_check import check

from splitkit.exceptions import ColumnsNotFoundError, DuplicateColumnsError
from splitkit.polars_utils import to_markdown_table, validate_columns


class TestToMarkdownTable:
    """Test suite for to_markdown_table function."""

    def test_default_returns_markdown_string(self) -> None:
        """Given DataFrame, When called with defaults, Then returns string with markdown table markers and data."""
        # Arrange
        df = pl.DataFrame({"group": ["less-equals", "greater"], "yes": [3.0, 1.0], "no": [2.0, 4.0]})

        # Act
        result = to_markdown_table(df)

        # Assert
        with check:
            assert "|" in result
        with check:
            assert "---" in result
        with check:
            assert "less-equals" in result
        with check:
            assert "4.0" in result

    def test_columns_filter_includes_only_specified(self) -> None:
        """Given DataFrame, When columns given, Then only those columns appear."""
        # Arrange
        df = pl.DataFrame({"group": ["a", "b"], "yes": [1.0, 2.0], "total": [5.0, 6.0]})

        # Act
        result = to_markdown_table(df, columns=["group", "yes"])

        # Assert
        with check:
            assert "yes" in result
        with check:
            assert "total" not in result

    def test_num_rows_limits_output(self) -> None:
        """Given a tall DataFrame, When num_rows is small, Then trailing rows are elided."""
        # Arrange
        df = pl.DataFrame({"level": [f"level_{i}" for i in range(20)]})

        # Act
        result = to_markdown_table(df, num_rows=4)

        # Assert
        with check:
            assert "level_0" in result
        with check:
            assert "level_10" not in result

    def test_hides_shape_and_dtypes(self) -> None:
        """Given DataFrame, When rendered, Then neither the shape nor the dtypes are shown."""
        # Arrange
        df = pl.DataFrame({"x": [1.5, 2.5]})

        # Act
        result = to_markdown_table(df)

        # Assert
        with check:
            assert "shape" not in result
        with check:
            assert "f64" not in result

    @pytest.mark.parametrize("num_rows", [0, -3], ids=["zero", "negative"])
    def test_num_rows_below_one_raises_value_error(self, num_rows: int) -> None:
        """Given DataFrame, When num_rows < 1, Then raises ValueError.

        Args:
            num_rows (int): Invalid row limit.
        """
        # Arrange
        df = pl.DataFrame({"x": [1]})

        # Act & Assert
        with pytest.raises(ValueError, match="num_rows must be at least 1"):
            to_markdown_table(df, num_rows=num_rows)


class TestValidateColumns:
    """Test suite for validate_columns function."""

    def test_valid_columns_pass(self) -> None:
        """Given existing unique columns, When validated, Then nothing is raised."""
        # Act & Assert
        validate_columns(["b", "a"], ["a", "b", "c"])

    def test_empty_list_raises_value_error(self) -> None:
        """Given an empty list, When validated, Then raises ValueError."""
        # Act & Assert
        with pytest.raises(ValueError, match="must not be empty"):
            validate_columns([], ["a"])

    def test_duplicates_raise_duplicate_columns_error(self) -> None:
        """Given repeated names, When validated, Then raises DuplicateColumnsError naming the repeats."""
        # Act
        with pytest.raises(DuplicateColumnsError) as exc_info:
            validate_columns(["a", "a"], ["a"])

        # Assert
        with check:
            assert exc_info.value.duplicate_columns == ["a"]

    def test_unknown_columns_raise_columns_not_found_error(self) -> None:
        """Given unknown names, When validated, Then raises ColumnsNotFoundError with sorted missing names."""
        # Act
        with pytest.raises(ColumnsNotFoundError) as exc_info:
            validate_columns(["z", "a", "y"], ["a", "b"])

        # Assert
        with check:
            assert exc_info.value.missing_columns == ["y", "z"]
        with check:
            assert exc_info.value.available_columns == ["a", "b"]
