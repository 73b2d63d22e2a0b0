"""Custom exceptions for the split-search engine.

Every exception here signals structural misuse of the engine (a configuration
error) and subclasses ``ValueError``. Ordinary data sparsity never raises; the
search strategies return ``None`` instead.

- ColumnsNotFoundError: Raised when requested variables do not exist in a frame.
- DuplicateColumnsError: Raised when duplicate variable names are provided.
- WeightsLengthError: Raised when a weight vector does not match the row count.
- InvalidWeightsError: Raised when a weight vector holds negative or non-finite values.
- VariableKindError: Raised when a variable has the wrong kind for an operation.
"""

from __future__ import annotations


class ColumnsNotFoundError(ValueError):
    """Raised when requested variables do not exist in a frame.

    Attributes:
        missing_columns (list[str]): Variable names that were not found.
        available_columns (list[str]): Variable names present in the frame.

    Examples:
        >>> err = ColumnsNotFoundError(
        ...     missing_columns=["x", "y"],
        ...     available_columns=["a", "b", "c"],
        ... )
        >>> err.missing_columns
        ['x', 'y']
    """

    missing_columns: list[str]
    available_columns: list[str]

    def __init__(
        self,
        missing_columns: list[str],
        available_columns: list[str],
    ) -> None:
        """Initialize ColumnsNotFoundError.

        Args:
            missing_columns (list[str]): Variable names not found in the frame.
            available_columns (list[str]): Variable names present in the frame.
        """
        super().__init__(f"Columns not found in frame: {sorted(missing_columns)}")
        self.missing_columns = missing_columns
        self.available_columns = available_columns


class DuplicateColumnsError(ValueError):
    """Raised when duplicate variable names are provided.

    Attributes:
        columns (list[str]): The variable list that contains duplicates.
        duplicate_columns (list[str]): The specific names that are duplicated
            (each listed once).

    Examples:
        >>> err = DuplicateColumnsError(columns=["a", "a", "b"])
        >>> err.duplicate_columns
        ['a']
    """

    columns: list[str]
    duplicate_columns: list[str]

    def __init__(self, columns: list[str]) -> None:
        """Initialize DuplicateColumnsError.

        Args:
            columns (list[str]): The variable list containing duplicates.
        """
        super().__init__("Duplicate column names are not allowed")
        self.columns = columns
        seen: set[str] = set()
        self.duplicate_columns = []
        for col in columns:
            if col in seen and col not in self.duplicate_columns:
                self.duplicate_columns.append(col)
            seen.add(col)


class WeightsLengthError(ValueError):
    """Raised when a weight vector length differs from the frame row count.

    Attributes:
        expected (int): Number of rows in the frame.
        actual (int): Length of the supplied weight vector.

    Examples:
        >>> err = WeightsLengthError(expected=10, actual=9)
        >>> str(err)
        'Weight vector length 9 does not match frame row count 10'
    """

    expected: int
    actual: int

    def __init__(self, expected: int, actual: int) -> None:
        """Initialize WeightsLengthError.

        Args:
            expected (int): Number of rows in the frame.
            actual (int): Length of the supplied weight vector.
        """
        super().__init__(f"Weight vector length {actual} does not match frame row count {expected}")
        self.expected = expected
        self.actual = actual


class InvalidWeightsError(ValueError):
    """Raised when a weight vector holds negative, NaN, or infinite values.

    Attributes:
        invalid_rows (list[int]): Row positions holding invalid weights.
    """

    invalid_rows: list[int]

    def __init__(self, invalid_rows: list[int]) -> None:
        """Initialize InvalidWeightsError.

        Args:
            invalid_rows (list[int]): Row positions holding invalid weights.
        """
        preview = invalid_rows[:10]
        super().__init__(f"Weights must be finite and non-negative; invalid rows: {preview}")
        self.invalid_rows = invalid_rows


class VariableKindError(ValueError):
    """Raised when a variable's kind is not accepted by an operation.

    Attributes:
        variable (str): The offending variable name.
        kind (str): The kind the variable was classified as.
        expected (list[str]): Kinds the operation accepts.

    Examples:
        >>> err = VariableKindError(variable="city", kind="nominal", expected=["numeric"])
        >>> str(err)
        "Variable 'city' has kind 'nominal', expected one of ['numeric']"
    """

    variable: str
    kind: str
    expected: list[str]

    def __init__(self, variable: str, kind: str, expected: list[str]) -> None:
        """Initialize VariableKindError.

        Args:
            variable (str): The offending variable name.
            kind (str): The kind the variable was classified as.
            expected (list[str]): Kinds the operation accepts.
        """
        super().__init__(f"Variable '{variable}' has kind '{kind}', expected one of {expected}")
        self.variable = variable
        self.kind = kind
        self.expected = expected

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including variable, kind and expected kinds.
        """
        return (
            f"{self.__class__.__name__}("
            f"variable={self.variable!r}, kind={self.kind!r}, expected={self.expected!r})"
        )
