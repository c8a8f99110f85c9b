"""
slmpc Result Classes
====================

Status codes and the result record of one active-set QP solve.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

import numpy as np


class Status(Enum):
    """
    Outcome of an active-set solve.

    Attributes:
        OPTIMAL: No constraint violated beyond the tolerance, all multipliers >= 0
        INFEASIBLE: A violated row cannot be added to the working set
        MAX_ITERATIONS: Working-set change limit reached first
        UNSOLVED: Solve has not terminated
    """
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    MAX_ITERATIONS = "max_iterations"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """Whether the input sequence may be applied."""
        return self is Status.OPTIMAL


@dataclass
class QPResult:
    """
    Result of an active-set QP solve.

    Attributes:
        status: Solver status
        x: Minimizer of 0.5 x'Hx + f'x (last iterate unless OPTIMAL)
        objective: Value of 0.5 x'Hx + f'x at ``x``
        active_set: Boolean flag per constraint row, True where binding
        multipliers: Lagrange multiplier per constraint row (zero if inactive)
        iterations: Number of working-set changes performed
        solve_time: Seconds spent in the solver
        info: Row counts seen by the solver

    Example:
        >>> result = solve_qp(Linv, f, F, rhs, active_set=previous.active_set)
        >>> if result.status.is_successful:
        ...     u0 = result.x[:n_u]
    """

    status: Status
    x: np.ndarray
    objective: float
    active_set: np.ndarray
    multipliers: np.ndarray
    iterations: int
    solve_time: float = 0.0
    info: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"QPResult({self.status}, objective={self.objective:.6g}, "
            f"iterations={self.iterations}, active={self.n_active}/{self.active_set.size}, "
            f"{self.solve_time * 1e3:.3f}ms)"
        )

    @property
    def n_active(self) -> int:
        """Number of binding constraint rows."""
        return int(np.count_nonzero(self.active_set))

    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        width = 50
        lines = [
            "-" * width,
            "slmpc active-set QP",
            "-" * width,
            f"Status:       {self.status}",
            f"Objective:    {self.objective:.10g}",
            f"Iterations:   {self.iterations}",
            f"Active rows:  {self.n_active} of {self.active_set.size}",
            f"Solve time:   {self.solve_time * 1e3:.3f} ms",
            "-" * width,
        ]
        return "\n".join(lines)
