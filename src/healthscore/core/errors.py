"""Exception hierarchy for the scoring and prediction engine.

Only malformed-input contracts raise. Sparse but valid data (unknown metrics,
short series, zero baselines) resolves to neutral values instead, so nothing
here should be raised for those states.
"""

from __future__ import annotations

from typing import Any


class HealthScoreError(Exception):
    """Base class for all engine errors."""


class ContractError(HealthScoreError, ValueError):
    """Raised when a caller hands the engine malformed input."""

    def __init__(self, message: str, *, field: str | None = None, index: int | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.index = index


class InsufficientDataError(ContractError):
    """A statistical routine was given fewer points than it needs."""


class InvalidWindowError(ContractError):
    """Moving-average window is non-positive or longer than the series."""

    def __init__(self, window_size: Any, length: int) -> None:
        super().__init__(
            f"Invalid window size {window_size!r} for {length} values",
            field="window_size",
        )
        self.window_size = window_size
        self.length = length


class LengthMismatchError(ContractError):
    """Paired sequences (actual/predicted, x/y) differ in length."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Sequences must have the same length (got {left} and {right})")
        self.left = left
        self.right = right


class InvalidConfidenceLevelError(ContractError):
    """Confidence level outside the open interval (0, 1)."""


class InvalidNumberError(ContractError):
    """A numeric argument was missing, non-numeric or non-finite."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Invalid {field}: {value!r} must be a finite number", field=field)
        self.value = value


class InvalidDateError(ContractError):
    """A timestamp could not be parsed into a valid instant."""

    def __init__(self, value: Any, *, field: str = "recorded_at", index: int | None = None) -> None:
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"Invalid {field}{where}: {value!r}", field=field, index=index)
        self.value = value


class InvalidSeriesPointError(ContractError):
    """A point in a prediction series is malformed."""

    def __init__(self, index: int, field: str, reason: str) -> None:
        super().__init__(f"Invalid series point at index {index}: {field} {reason}", field=field, index=index)


class RecordValidationError(ContractError):
    """A health record is missing a field or carries an invalid value."""

    def __init__(self, index: int, field: str, reason: str) -> None:
        super().__init__(f"Invalid record at index {index}: {field} {reason}", field=field, index=index)


class GoalValidationError(ContractError):
    """A health goal is missing a field or carries an invalid value."""

    def __init__(self, index: int, field: str, reason: str) -> None:
        super().__init__(f"Invalid goal at index {index}: {field} {reason}", field=field, index=index)
