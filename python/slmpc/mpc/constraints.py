"""
MPC Constraints
===============

Constraint handling for Model Predictive Control.

Per-step bounds

    cl <= Dcon x <= ch,    u_min <= u <= u_max

are written as one-sided stage inequalities ``Dt x + Et u <= bt``,
replicated over the horizon into ``DD X + EE U <= bb`` and finally
expressed in the input sequence alone by substituting the prediction
``X = Phi x0 + Gamma U``:

    F U <= bb + J x0 + L,   F = DD Gamma + EE,  J = -DD Phi

Infinite bounds are kept as infinite right-hand sides; the QP solver
ignores those rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union
import numpy as np

from ..exceptions import DimensionError, InvalidInputError
from ..utils.validation import as_matrix, as_vector


@dataclass
class BoxConstraints:
    """
    Box (bound) constraints.

    Represents: lb <= x <= ub

    Args:
        lower: Lower bound (scalar or vector)
        upper: Upper bound (scalar or vector)
        dim: Dimension (required if bounds are scalar)

    Example:
        >>> # Angular velocity limits
        >>> box = BoxConstraints(-4.0, 4.0, dim=1)
        >>>
        >>> # Per-dimension bounds, one side open
        >>> box = BoxConstraints(
        ...     lower=np.array([-1, -np.inf]),
        ...     upper=np.array([1, 2])
        ... )
    """
    lower: Union[float, np.ndarray]
    upper: Union[float, np.ndarray]
    dim: Optional[int] = None

    def __post_init__(self):
        """Process bounds."""
        if np.isscalar(self.lower):
            if self.dim is None:
                raise InvalidInputError("dim required when bounds are scalar")
            self.lower = np.full(self.dim, self.lower, dtype=np.float64)
        else:
            self.lower = np.asarray(self.lower, dtype=np.float64).ravel()
            if self.dim is None:
                self.dim = len(self.lower)

        if np.isscalar(self.upper):
            self.upper = np.full(self.dim, self.upper, dtype=np.float64)
        else:
            self.upper = np.asarray(self.upper, dtype=np.float64).ravel()

        if len(self.lower) != self.dim or len(self.upper) != self.dim:
            raise DimensionError("lower and upper must have same length")
        if np.any(np.isnan(self.lower)) or np.any(np.isnan(self.upper)):
            raise InvalidInputError("bounds must not be NaN")
        if np.any(self.lower > self.upper):
            raise InvalidInputError("lower bound exceeds upper bound")


@dataclass
class StageConstraints:
    """
    Single-step constraints ``Dt x + Et u <= bt``.

    Row blocks, in order: ``Dcon x <= ch``, ``-Dcon x <= -cl``,
    ``u <= u_max``, ``-u <= -u_min``.
    """
    Dt: np.ndarray
    Et: np.ndarray
    bt: np.ndarray

    @property
    def n_rows(self) -> int:
        return len(self.bt)


@dataclass
class TrajectoryConstraints:
    """
    Horizon constraints ``DD X + EE U <= bb``.

    Row block k pairs the predicted state x_{k+1} with the input u_k.
    """
    DD: np.ndarray
    EE: np.ndarray
    bb: np.ndarray
    horizon: int

    @property
    def n_rows(self) -> int:
        return len(self.bb)


@dataclass
class QPConstraints:
    """
    Constraints on the input sequence: ``F U <= b + J x0 + L``.
    """
    F: np.ndarray
    J: np.ndarray
    L: np.ndarray
    b: np.ndarray

    @property
    def n_rows(self) -> int:
        return self.F.shape[0]

    def rhs(self, x0: np.ndarray) -> np.ndarray:
        """Right-hand side at the current state; infinite rows stay infinite."""
        x0 = np.asarray(x0, dtype=np.float64).ravel()
        if x0.shape != (self.J.shape[1],):
            raise DimensionError(
                f"x0 must have {self.J.shape[1]} elements, got {x0.size}"
            )
        return self.b + self.J @ x0 + self.L


def stage_constraints(
    A: np.ndarray,
    B: np.ndarray,
    Dcon: np.ndarray,
    cl: Union[float, np.ndarray],
    ch: Union[float, np.ndarray],
    u_min: Union[float, np.ndarray],
    u_max: Union[float, np.ndarray],
) -> StageConstraints:
    """
    Build stage inequality matrices.

    Args:
        A: Discrete state matrix (n_x, n_x), used for dimensions only
        B: Discrete input matrix (n_x, n_u), used for dimensions only
        Dcon: Constrained combinations of the state (n_c, n_x)
        cl: Lower bounds on Dcon x (n_c,), may be -inf
        ch: Upper bounds on Dcon x (n_c,), may be +inf
        u_min: Input lower bounds (n_u,)
        u_max: Input upper bounds (n_u,)

    Returns:
        StageConstraints with 2 n_c + 2 n_u rows
    """
    A = as_matrix("A", A)
    n_x = A.shape[0]
    A = as_matrix("A", A, (n_x, n_x))
    B = as_matrix("B", B, (n_x, None))
    n_u = B.shape[1]

    Dcon = as_matrix("Dcon", Dcon, (None, n_x))
    n_c = Dcon.shape[0]

    states = BoxConstraints(as_vector("cl", cl, n_c), as_vector("ch", ch, n_c))
    inputs = BoxConstraints(
        as_vector("u_min", u_min, n_u), as_vector("u_max", u_max, n_u)
    )

    I_u = np.eye(n_u)
    Dt = np.vstack([
        Dcon,
        -Dcon,
        np.zeros((2 * n_u, n_x)),
    ])
    Et = np.vstack([
        np.zeros((2 * n_c, n_u)),
        I_u,
        -I_u,
    ])
    bt = np.concatenate([
        states.upper,
        -states.lower,
        inputs.upper,
        -inputs.lower,
    ])

    return StageConstraints(Dt=Dt, Et=Et, bt=bt)


def trajectory_constraints(
    stage: StageConstraints,
    horizon: int,
) -> TrajectoryConstraints:
    """
    Replicate stage constraints over the horizon (block diagonal).

    Args:
        stage: Stage constraints
        horizon: Number of steps N

    Returns:
        TrajectoryConstraints with N * stage.n_rows rows
    """
    if horizon < 1:
        raise InvalidInputError(f"horizon must be positive, got {horizon}")

    I_N = np.eye(horizon)
    return TrajectoryConstraints(
        DD=np.kron(I_N, stage.Dt),
        EE=np.kron(I_N, stage.Et),
        bb=np.tile(stage.bt, horizon),
        horizon=horizon,
    )


def assemble_qp_constraints(
    traj: TrajectoryConstraints,
    Gamma: np.ndarray,
    Phi: np.ndarray,
) -> QPConstraints:
    """
    Substitute the prediction into the trajectory constraints.

    Args:
        traj: Trajectory constraints
        Gamma: Input-to-state prediction matrix (n_x N, n_u N)
        Phi: State-to-state prediction matrix (n_x N, n_x)

    Returns:
        QPConstraints in the input sequence only
    """
    DD, EE = traj.DD, traj.EE

    if Gamma.shape[0] != Phi.shape[0]:
        raise DimensionError(
            f"Gamma rows ({Gamma.shape[0]}) must match Phi rows ({Phi.shape[0]})"
        )
    if DD.shape[1] != Gamma.shape[0]:
        raise DimensionError(
            f"DD columns ({DD.shape[1]}) must match stacked states ({Gamma.shape[0]})"
        )
    if EE.shape != (DD.shape[0], Gamma.shape[1]):
        raise DimensionError(
            f"EE must be ({DD.shape[0]}, {Gamma.shape[1]}), got {EE.shape}"
        )

    F = DD @ Gamma + EE
    J = -DD @ Phi
    L = np.zeros(F.shape[0])

    return QPConstraints(F=F, J=J, L=L, b=traj.bb.copy())
