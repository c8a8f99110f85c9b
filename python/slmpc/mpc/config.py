"""
MPC Configuration
=================

Immutable tuning structure handed to the controller at construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union
import numpy as np

from ..exceptions import InvalidInputError
from ..utils.validation import as_matrix, as_vector, check_finite, check_square

DISCRETIZATIONS = ("zoh", "euler")
LINEARIZATIONS = ("frozen", "per_step")

Bound = Union[float, np.ndarray]


def _readonly(a: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if a is None:
        return None
    a = np.array(a, dtype=np.float64)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class MPCConfig:
    """
    Tuning of the successive-linearization MPC.

    Args:
        horizon: Prediction horizon N
        dt: Sample period Ts (s)
        t_final: Simulation duration (s); the loop runs round(t_final/dt) ticks
        Q: Stage state weight (n_x, n_x)
        R: Input weight (n_u, n_u) or scalar for a single input
        P: Terminal state weight (default: Q)
        Dcon: Constrained state combinations (n_c, n_x); None for none
        cl: Lower bounds on Dcon x (scalar or (n_c,))
        ch: Upper bounds on Dcon x (scalar or (n_c,))
        u_min: Input lower bounds (scalar or (n_u,))
        u_max: Input upper bounds (scalar or (n_u,))
        C: Output matrix (default: identity)
        D: Feedthrough matrix (default: zero)
        x0: Initial state (default: zero)
        u0: Initial input (default: zero)
        discretization: 'zoh' or 'euler'
        linearization: 'frozen' (one model per tick) or 'per_step'
        warm_start: Seed each QP with the previous active set
        max_iterations: Active-set iteration limit per tick
        tolerance: Constraint violation tolerance of the QP solver

    Example:
        >>> config = MPCConfig(
        ...     horizon=40, dt=1e-3, t_final=0.5,
        ...     Q=np.diag([1e4, 1.0]), R=1e-5,
        ...     Dcon=np.array([[0.0, 1.0]]), cl=-4.0, ch=4.0,
        ...     u_min=-20.0, u_max=80.0,
        ... )
    """
    horizon: int
    dt: float
    t_final: float
    Q: np.ndarray
    R: Union[float, np.ndarray]
    P: Optional[np.ndarray] = None
    Dcon: Optional[np.ndarray] = None
    cl: Bound = -np.inf
    ch: Bound = np.inf
    u_min: Bound = -np.inf
    u_max: Bound = np.inf
    C: Optional[np.ndarray] = None
    D: Optional[np.ndarray] = None
    x0: Optional[np.ndarray] = None
    u0: Optional[np.ndarray] = None
    discretization: str = "zoh"
    linearization: str = "frozen"
    warm_start: bool = True
    max_iterations: int = 500
    tolerance: float = 1e-9

    def __post_init__(self):
        if int(self.horizon) != self.horizon or self.horizon < 1:
            raise InvalidInputError(f"horizon must be a positive integer, got {self.horizon}")
        if not self.dt > 0:
            raise InvalidInputError(f"dt must be positive, got {self.dt}")
        if not self.t_final >= 0:
            raise InvalidInputError(f"t_final must be non-negative, got {self.t_final}")
        if self.discretization not in DISCRETIZATIONS:
            raise InvalidInputError(
                f"discretization must be one of {DISCRETIZATIONS}, got '{self.discretization}'"
            )
        if self.linearization not in LINEARIZATIONS:
            raise InvalidInputError(
                f"linearization must be one of {LINEARIZATIONS}, got '{self.linearization}'"
            )
        if self.max_iterations < 1:
            raise InvalidInputError("max_iterations must be positive")
        if not self.tolerance > 0:
            raise InvalidInputError("tolerance must be positive")

        object.__setattr__(self, "horizon", int(self.horizon))
        for name in ("Q", "R", "P", "Dcon", "C", "D", "x0", "u0"):
            value = getattr(self, name)
            if value is not None:
                check_finite(name, np.asarray(value, dtype=np.float64))
            object.__setattr__(self, name, _readonly(value))
        for name in ("cl", "ch", "u_min", "u_max"):
            value = getattr(self, name)
            if not np.isscalar(value):
                value = _readonly(np.ravel(value))
            object.__setattr__(self, name, value)

    @property
    def n_steps(self) -> int:
        """Number of control ticks in a run."""
        return int(round(self.t_final / self.dt))

    def resolve(self, n_x: int, n_u: int) -> "ResolvedConfig":
        """
        Check every matrix against the plant dimensions and fill defaults.

        Raises:
            DimensionError: On any shape inconsistency
            InvalidInputError: On NaN, inverted or unsatisfiable bounds
        """
        Q = check_square("Q", self.Q, n_x)
        R = check_square("R", np.atleast_2d(self.R), n_u)
        P = Q if self.P is None else check_square("P", self.P, n_x)

        if self.Dcon is None:
            Dcon = np.zeros((0, n_x))
        else:
            Dcon = as_matrix("Dcon", np.atleast_2d(self.Dcon), (None, n_x))
        n_c = Dcon.shape[0]

        C = np.eye(n_x) if self.C is None else as_matrix("C", self.C, (None, n_x))
        n_y = C.shape[0]
        D = np.zeros((n_y, n_u)) if self.D is None else as_matrix("D", self.D, (n_y, n_u))

        x0 = np.zeros(n_x) if self.x0 is None else as_vector("x0", self.x0, n_x)
        u0 = np.zeros(n_u) if self.u0 is None else as_vector("u0", self.u0, n_u)

        cl = as_vector("cl", self.cl, n_c)
        ch = as_vector("ch", self.ch, n_c)
        u_min = as_vector("u_min", self.u_min, n_u)
        u_max = as_vector("u_max", self.u_max, n_u)
        if np.any(cl > ch) or np.any(u_min > u_max):
            raise InvalidInputError("lower bound exceeds upper bound")
        if np.any(np.isnan(cl)) or np.any(np.isnan(ch)) or np.any(np.isnan(u_min)) or np.any(np.isnan(u_max)):
            raise InvalidInputError("bounds must not be NaN")
        if (np.any(np.isposinf(cl)) or np.any(np.isneginf(ch))
                or np.any(np.isposinf(u_min)) or np.any(np.isneginf(u_max))):
            raise InvalidInputError("bounds exclude every value (+inf lower or -inf upper)")

        return ResolvedConfig(
            Q=Q, R=R, P=P, Dcon=Dcon, cl=cl, ch=ch,
            u_min=u_min, u_max=u_max, C=C, D=D, x0=x0, u0=u0,
        )


@dataclass(frozen=True, eq=False)
class ResolvedConfig:
    """Configuration matrices checked against a specific plant."""
    Q: np.ndarray
    R: np.ndarray
    P: np.ndarray
    Dcon: np.ndarray
    cl: np.ndarray
    ch: np.ndarray
    u_min: np.ndarray
    u_max: np.ndarray
    C: np.ndarray
    D: np.ndarray
    x0: np.ndarray
    u0: np.ndarray

    @property
    def n_constraints(self) -> int:
        """Stage constraint rows."""
        return 2 * self.Dcon.shape[0] + 2 * self.u_min.shape[0]

