"""
slmpc Exception Classes
=======================

Custom exceptions for slmpc error handling.
"""

from typing import Optional


class SlmpcError(Exception):
    """Base exception for all slmpc errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NumericDivergenceError(SlmpcError):
    """
    Raised when integration or linearization produces non-finite values.

    The plant has left a physically meaningful regime; the run is aborted.
    """

    def __init__(self, message: str = "Non-finite values encountered") -> None:
        super().__init__(message)


class IllConditionedCostError(SlmpcError):
    """
    Raised when the QP Hessian is not symmetric positive definite.

    This almost always means Q, R or P are misconfigured.
    """

    def __init__(self, message: str = "Hessian is not positive definite") -> None:
        super().__init__(message)


class InfeasibleError(SlmpcError):
    """
    Raised when the QP of a control tick is infeasible.

    This means there is no input sequence that satisfies all constraints.
    """

    def __init__(
        self,
        message: str = "Problem is infeasible",
        tick: Optional[int] = None,
    ) -> None:
        self.tick = tick
        if tick is not None:
            message = f"{message} (tick {tick})"
        super().__init__(message)


class IterationLimitError(SlmpcError):
    """
    Raised when the active-set solver exceeds its iteration limit.
    """

    def __init__(
        self,
        message: str = "Iteration limit exceeded",
        iterations: Optional[int] = None,
    ) -> None:
        self.iterations = iterations
        super().__init__(message)


class DimensionError(SlmpcError):
    """
    Raised when matrix/vector dimensions are incompatible.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(SlmpcError):
    """
    Raised when input data is invalid.

    Examples: NaN weights, non-positive horizon, unknown method name.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")
