"""
slmpc: Successive-Linearization Model Predictive Control
========================================================

slmpc stabilizes nonlinear plants around a time-varying reference by
linearizing them at every control tick, building a constrained QP over
a finite horizon and solving it with a warm-started active-set method.

Quick Start
-----------
>>> from slmpc.mpc import SuccessiveLinearizationMPC, pendulum_scenario
>>> plant, config, reference = pendulum_scenario()
>>> run = SuccessiveLinearizationMPC(plant, config).run(reference)
>>> print(run.summary())

The QP solver can also be used on its own:

>>> import numpy as np
>>> import slmpc
>>> Linv = slmpc.factor_hessian(np.eye(2))
>>> result = slmpc.solve_qp(Linv, f=[-1.0, -1.0], F=[[1.0, 1.0]], rhs=[1.0])
>>> print(result.status, result.x)
optimal [0.5 0.5]
"""

__version__ = "0.1.0"
__author__ = "slmpc Contributors"

from .solver import factor_hessian, solve_qp
from .result import QPResult, Status
from .exceptions import (
    SlmpcError,
    NumericDivergenceError,
    IllConditionedCostError,
    InfeasibleError,
    IterationLimitError,
    DimensionError,
    InvalidInputError,
)

__all__ = [
    # Version
    "__version__",

    # Solving
    "factor_hessian",
    "solve_qp",

    # Results
    "QPResult",
    "Status",

    # Exceptions
    "SlmpcError",
    "NumericDivergenceError",
    "IllConditionedCostError",
    "InfeasibleError",
    "IterationLimitError",
    "DimensionError",
    "InvalidInputError",
]


def info() -> str:
    """Return information about the slmpc installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"slmpc version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
