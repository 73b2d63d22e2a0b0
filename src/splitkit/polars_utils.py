"""Utility functions for working with Polars DataFrames."""

from __future__ import annotations

from collections.abc import Sequence

import polars as pl

from splitkit.exceptions import ColumnsNotFoundError, DuplicateColumnsError


def to_markdown_table(
    df: pl.DataFrame,
    columns: Sequence[str] | None = None,
    num_rows: int = 10,
) -> str:
    """Convert a Polars DataFrame to a markdown table string.

    This function temporarily modifies global ``pl.Config`` state to render
    the table. It is not thread-safe: concurrent calls from different threads
    may observe each other's configuration.

    Args:
        df (pl.DataFrame): The DataFrame to convert.
        columns (Sequence[str] | None): Optional list of column names to include.
            If None, all columns are included.
        num_rows (int): Maximum number of rows to display. Defaults to 10.

    Returns:
        str: Markdown-formatted table string.

    Raises:
        ValueError: If num_rows is less than 1.

    Examples:
        >>> df = pl.DataFrame({"a": [1, 2, 3], "b": [4, 5, 6]})
        >>> print(to_markdown_table(df, num_rows=3))
        | a | b |
        |---|---|
        | 1 | 4 |
        | 2 | 5 |
        | 3 | 6 |
    """
    if num_rows < 1:
        raise ValueError(f"num_rows must be at least 1, got {num_rows}")
    if columns is not None:
        validate_columns(columns, df.columns)
        df = df.select(columns)

    with pl.Config(
        tbl_formatting="MARKDOWN",
        tbl_hide_column_data_types=True,
        tbl_hide_column_names=False,
        tbl_hide_dataframe_shape=True,
        tbl_rows=num_rows,
        tbl_cols=df.width,
    ):
        return str(df)


def validate_columns(columns: Sequence[str], df_columns: Sequence[str]) -> None:
    """Validate that columns exist in the DataFrame and contain no duplicates.

    Args:
        columns (Sequence[str]): Column names to validate.
        df_columns (Sequence[str]): Column names present in the DataFrame.

    Raises:
        ValueError: If columns list is empty.
        DuplicateColumnsError: If columns contain duplicates.
        ColumnsNotFoundError: If any columns do not exist in the DataFrame.
    """
    if len(columns) == 0:
        msg = "columns list must not be empty; pass None to include all columns"
        raise ValueError(msg)
    if len(columns) != len(set(columns)):
        raise DuplicateColumnsError(columns=list(columns))
    extra_columns = set(columns) - set(df_columns)
    if extra_columns:
        raise ColumnsNotFoundError(
            missing_columns=sorted(extra_columns),
            available_columns=list(df_columns),
        )
