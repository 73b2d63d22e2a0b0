"""Encoded, read-only view of a Polars DataFrame consumed by the split search.

A `SplitFrame` classifies each column into a variable kind and encodes it
once, at construction, into numpy arrays:

- `"numeric"` → `float64` values, with nulls and NaN treated as missing.
  Datetime and duration columns are encoded as microseconds.
- `"binary"` → integer codes over the catalog `["?", "false", "true"]`.
- `"nominal"` → integer codes over the catalog `["?", *labels]`, produced by an
  sklearn `OrdinalEncoder`.
- `"excluded"` → unsupported dtypes; every row is missing.

Slot 0 of every level catalog is reserved for the missing sentinel `"?"`.
The frame is never mutated after construction, so worker threads may share it.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Literal

import numpy as np
import polars as pl
from sklearn.preprocessing import OrdinalEncoder

from splitkit.exceptions import InvalidWeightsError, VariableKindError, WeightsLengthError
from splitkit.polars_utils import validate_columns

# ---------------------------------------------------------------------------
# Public type aliases and constants
# ---------------------------------------------------------------------------

type VariableKind = Literal["numeric", "binary", "nominal", "excluded"]

type Weights = Sequence[float] | np.ndarray | pl.Series

MISSING_LEVEL: Final[str] = "?"
BINARY_LEVELS: Final[tuple[str, ...]] = (MISSING_LEVEL, "false", "true")

# ---------------------------------------------------------------------------
# Private helpers -- Column kind classification
# ---------------------------------------------------------------------------

_DTYPE_TO_KIND: dict[type[pl.DataType] | pl.DataType, VariableKind] = {
    pl.Int8: "numeric",
    pl.Int16: "numeric",
    pl.Int32: "numeric",
    pl.Int64: "numeric",
    pl.UInt8: "numeric",
    pl.UInt16: "numeric",
    pl.UInt32: "numeric",
    pl.UInt64: "numeric",
    pl.Float32: "numeric",
    pl.Float64: "numeric",
    pl.Date: "numeric",
    pl.Datetime: "numeric",
    pl.Duration: "numeric",
    pl.Boolean: "binary",
    pl.String: "nominal",
    pl.Categorical: "nominal",
    pl.Enum: "nominal",
}


def classify_column(dtype: pl.DataType) -> VariableKind:
    """Classify a Polars column dtype into a variable kind.

    The lookup map uses bare class references as keys, which works for
    singleton dtypes but not for parameterized instances such as
    `Datetime("us")` or `Enum([...])`. An `isinstance` fallback handles those.

    Args:
        dtype (pl.DataType): The Polars data type of the column to classify.

    Returns:
        VariableKind: One of `"numeric"`, `"binary"`, `"nominal"` or `"excluded"`.
    """
    result = _DTYPE_TO_KIND.get(dtype)
    if result is not None:
        return result
    if dtype.is_numeric() or isinstance(dtype, (pl.Datetime, pl.Date, pl.Duration)):
        return "numeric"
    if isinstance(dtype, (pl.Enum, pl.Categorical)):
        return "nominal"
    return "excluded"


# ---------------------------------------------------------------------------
# Private helpers -- Column encoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _EncodedColumn:
    """One encoded column.

    Attributes:
        kind (VariableKind): Variable kind of the column.
        values (np.ndarray): `float64` values for numeric columns, `int64`
            level codes (0 = missing) for binary and nominal columns.
        missing (np.ndarray): Boolean mask, `True` where the value is missing.
        levels (tuple[str, ...]): Level catalog; empty for numeric columns.
    """

    kind: VariableKind
    values: np.ndarray
    missing: np.ndarray
    levels: tuple[str, ...]

    def take(self, rows: np.ndarray) -> _EncodedColumn:
        return _EncodedColumn(
            kind=self.kind,
            values=_read_only(self.values[rows]),
            missing=_read_only(self.missing[rows]),
            levels=self.levels,
        )


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def _encode_column(series: pl.Series) -> _EncodedColumn:
    kind = classify_column(series.dtype)
    if kind == "numeric":
        values = _encode_numeric_series(series)
        return _EncodedColumn(kind, _read_only(values), _read_only(np.isnan(values)), ())
    if kind == "binary":
        codes = series.cast(pl.Int8).fill_null(-1).to_numpy(allow_copy=True).astype(np.int64) + 1
        return _EncodedColumn(kind, _read_only(codes), _read_only(codes == 0), BINARY_LEVELS)
    if kind == "nominal":
        codes, labels = _encode_nominal_series(series)
        return _EncodedColumn(kind, _read_only(codes), _read_only(codes == 0), (MISSING_LEVEL, *labels))
    values = np.full(len(series), np.nan, dtype=np.float64)
    return _EncodedColumn(kind, _read_only(values), _read_only(np.ones(len(series), dtype=bool)), ())


def _encode_numeric_series(series: pl.Series) -> np.ndarray:
    """Convert a numeric or temporal Polars Series to a float64 array with NaN for nulls.

    Args:
        series (pl.Series): A numeric, Date, Datetime or Duration Series.

    Returns:
        np.ndarray: A 1-D float64 array.
    """
    if isinstance(series.dtype, (pl.Datetime, pl.Date)):
        series = series.cast(pl.Datetime("us")).dt.epoch("us")
    elif isinstance(series.dtype, pl.Duration):
        series = series.cast(pl.Duration("us")).dt.total_microseconds()
    return series.cast(pl.Float64).to_numpy(allow_copy=True).astype(np.float64)


def _encode_nominal_series(series: pl.Series) -> tuple[np.ndarray, list[str]]:
    """Ordinal-encode a nominal Polars Series, reserving code 0 for missing values.

    Enum columns keep their declared category order, including categories that
    never occur in the data. All other nominal columns use the sorted set of
    observed labels.

    Args:
        series (pl.Series): A String, Categorical, or Enum Polars Series.

    Returns:
        tuple[np.ndarray, list[str]]: A 1-D int64 array of codes (0 for
            missing, `k + 1` for the k-th label) and the ordered label list.
    """
    categories: str | list[np.ndarray] = "auto"
    if isinstance(series.dtype, pl.Enum):
        categories = [np.array(series.dtype.categories.to_list(), dtype=object)]
    if series.len() == 0 or series.null_count() == series.len():
        # OrdinalEncoder rejects empty input, and all-missing columns observe no labels.
        labels = [] if isinstance(categories, str) else [str(label) for label in categories[0]]
        return np.zeros(series.len(), dtype=np.int64), labels
    ordinal_encoder = OrdinalEncoder(
        categories=categories,
        handle_unknown="use_encoded_value",
        unknown_value=np.nan,
        encoded_missing_value=np.nan,
    )
    raw_column = series.cast(pl.String).to_numpy(allow_copy=True).astype(object).reshape(-1, 1)
    encoded_column = ordinal_encoder.fit_transform(raw_column).astype(np.float64).ravel()
    codes = np.where(np.isnan(encoded_column), 0, encoded_column + 1).astype(np.int64)
    # Missing values sort last in the fitted categories, so dropping them keeps code order.
    labels = [str(label) for label in ordinal_encoder.categories_[0] if not _is_missing_label(label)]
    return codes, labels


def _is_missing_label(label: object) -> bool:
    return label is None or (isinstance(label, float) and math.isnan(label))


# ---------------------------------------------------------------------------
# Public interface -- SplitFrame
# ---------------------------------------------------------------------------


class SplitFrame:
    """Immutable, encoded table of training rows.

    Attributes:
        columns (list[str]): Variable names, in DataFrame order.

    Examples:
        >>> frame = SplitFrame(pl.DataFrame({"x": [1.0, None], "c": ["b", "a"]}))
        >>> frame.kind("x"), frame.kind("c")
        ('numeric', 'nominal')
        >>> frame.levels("c")
        ['?', 'a', 'b']
        >>> frame.is_missing(1, "x")
        True
    """

    def __init__(self, df: pl.DataFrame) -> None:
        """Encode every column of `df`.

        Args:
            df (pl.DataFrame): The source training rows.
        """
        self._columns: dict[str, _EncodedColumn] = {name: _encode_column(df[name]) for name in df.columns}
        self._row_count: int = df.height

    @classmethod
    def _from_encoded(cls, columns: dict[str, _EncodedColumn], row_count: int) -> SplitFrame:
        frame = cls.__new__(cls)
        frame._columns = columns
        frame._row_count = row_count
        return frame

    def __repr__(self) -> str:
        kinds = ", ".join(f"{name}:{col.kind}" for name, col in self._columns.items())
        return f"SplitFrame(rows={self._row_count}, columns=[{kinds}])"

    @property
    def columns(self) -> list[str]:
        """Variable names, in DataFrame order."""
        return list(self._columns)

    def row_count(self) -> int:
        """Return the number of rows."""
        return self._row_count

    def require(self, names: Sequence[str], *, kinds: Sequence[VariableKind] | None = None) -> None:
        """Validate that variables exist and, optionally, have an accepted kind.

        Args:
            names (Sequence[str]): Variable names to check.
            kinds (Sequence[VariableKind] | None): Accepted kinds, or `None`
                to accept any kind.

        Raises:
            DuplicateColumnsError: If `names` contains duplicates.
            ColumnsNotFoundError: If any variable is absent from the frame.
            VariableKindError: If a variable's kind is not in `kinds`.
        """
        validate_columns(names, self.columns)
        if kinds is None:
            return
        for name in names:
            kind = self._columns[name].kind
            if kind not in kinds:
                raise VariableKindError(variable=name, kind=kind, expected=list(kinds))

    def kind(self, name: str) -> VariableKind:
        """Return the variable kind of column `name`."""
        return self._column(name).kind

    def levels(self, name: str) -> list[str]:
        """Return the level catalog of a binary or nominal column; slot 0 is `"?"`.

        Raises:
            VariableKindError: If the column is numeric or excluded.
        """
        column = self._column(name)
        if column.kind not in {"binary", "nominal"}:
            raise VariableKindError(variable=name, kind=column.kind, expected=["binary", "nominal"])
        return list(column.levels)

    def values(self, name: str) -> np.ndarray:
        """Return the read-only encoded array of column `name`.

        Numeric columns yield `float64` values with NaN for missing; binary and
        nominal columns yield `int64` level codes with 0 for missing.
        """
        return self._column(name).values

    def missing_mask(self, name: str) -> np.ndarray:
        """Return the read-only boolean mask of missing values in column `name`."""
        return self._column(name).missing

    def is_missing(self, row: int, name: str) -> bool:
        return bool(self._column(name).missing[row])

    def get_double(self, row: int, name: str) -> float:
        return float(self._column(name).values[row])

    def get_index(self, row: int, name: str) -> int:
        return int(self._column(name).values[row])

    def get_label(self, row: int, name: str) -> str:
        column = self._column(name)
        return column.levels[int(column.values[row])]

    def get_bool(self, row: int, name: str) -> bool | None:
        """Return the boolean value of a binary column, or `None` if missing."""
        code = int(self._column(name).values[row])
        return None if code == 0 else code == 2

    def take(self, rows: Sequence[int] | np.ndarray) -> SplitFrame:
        """Return a frame holding the given rows, keeping every level catalog.

        Args:
            rows (Sequence[int] | np.ndarray): Row positions to keep, in order.

        Returns:
            SplitFrame: The row subset.
        """
        row_array = np.asarray(rows, dtype=np.int64)
        columns = {name: column.take(row_array) for name, column in self._columns.items()}
        return SplitFrame._from_encoded(columns, len(row_array))

    def _column(self, name: str) -> _EncodedColumn:
        column = self._columns.get(name)
        if column is None:
            self.require([name])
        return self._columns[name]


# ---------------------------------------------------------------------------
# Public interface -- Weights
# ---------------------------------------------------------------------------


def resolve_weights(weights: Weights | None, row_count: int) -> np.ndarray:
    """Validate a per-row weight vector, defaulting to all ones.

    Args:
        weights (Weights | None): Per-row weights, or `None` for unit weights.
        row_count (int): Number of rows the weights must cover.

    Returns:
        np.ndarray: A read-only 1-D float64 array of length `row_count`.

    Raises:
        WeightsLengthError: If the length differs from `row_count`.
        InvalidWeightsError: If any weight is negative, NaN, or infinite.
    """
    if weights is None:
        return _read_only(np.ones(row_count, dtype=np.float64))
    if isinstance(weights, pl.Series):
        weights = weights.cast(pl.Float64).to_numpy(allow_copy=True)
    weight_array = np.array(weights, dtype=np.float64).ravel()
    if len(weight_array) != row_count:
        raise WeightsLengthError(expected=row_count, actual=len(weight_array))
    invalid = ~np.isfinite(weight_array) | (weight_array < 0)
    if invalid.any():
        raise InvalidWeightsError(invalid_rows=np.flatnonzero(invalid).tolist())
    return _read_only(weight_array)
