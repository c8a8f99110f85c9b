"""
System Dynamics Models
======================

Plant models and discrete linear systems used by the MPC pipeline.

Supported models:
- Nonlinear continuous plants: dx/dt = f(x, u), with closed-form Jacobians
- Discrete Linear Time-Invariant (LTI): x_{k+1} = A x_k + B u_k
- Fixed-step RK4 integration of continuous plants
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import numpy as np
from scipy.linalg import expm

from ..exceptions import DimensionError, InvalidInputError


def rk4_step(
    f: Callable[[np.ndarray, np.ndarray], np.ndarray],
    x: np.ndarray,
    u: np.ndarray,
    dt: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Advance ``dx/dt = f(x, u)`` by one classical Runge-Kutta step.

    The input is held constant over the step. Non-finite values are
    returned as-is; callers decide whether they are fatal.

    Args:
        f: Continuous dynamics
        x: Current state (n_x,)
        u: Input held over the step (n_u,)
        dt: Step size

    Returns:
        Tuple of (next state, averaged slope ``(x_next - x) / dt``)
    """
    k1 = f(x, u)
    k2 = f(x + 0.5 * dt * k1, u)
    k3 = f(x + 0.5 * dt * k2, u)
    k4 = f(x + dt * k3, u)

    dx = (k1 + 2 * k2 + 2 * k3 + k4) / 6
    return x + dt * dx, dx


class Plant(ABC):
    """
    Continuous-time plant ``dx/dt = f(x, u)``.

    Subclasses provide the dynamics and their closed-form Jacobians; the
    integrator and the linearizer are shared.
    """

    n_states: int
    n_inputs: int

    @abstractmethod
    def derivative(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """State derivative at (x, u)."""

    @abstractmethod
    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Continuous Jacobians (df/dx, df/du) at (x, u)."""

    def integrate(
        self,
        x: np.ndarray,
        u: np.ndarray,
        dt: float,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """One RK4 step of size ``dt``; see :func:`rk4_step`."""
        x = self.as_state(x)
        u = self.as_input(u)
        return rk4_step(self.derivative, x, u, dt)

    def as_state(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64).ravel()
        if x.shape != (self.n_states,):
            raise DimensionError(
                f"state must have {self.n_states} elements, got {x.size}"
            )
        return x

    def as_input(self, u: np.ndarray) -> np.ndarray:
        u = np.asarray(u, dtype=np.float64).ravel()
        if u.shape != (self.n_inputs,):
            raise DimensionError(
                f"input must have {self.n_inputs} elements, got {u.size}"
            )
        return u


@dataclass(frozen=True)
class Pendulum(Plant):
    """
    Damped pendulum driven by a torque-like input.

    States: [angle, angular_velocity]
    Input: scaled torque

        theta'' = -(g / l) sin(theta) - b theta' + input_gain * u

    Args:
        g: Gravitational acceleration (m/s^2)
        l: Pendulum length (m)
        b: Viscous damping coefficient (1/s)
        input_gain: Input scaling

    Example:
        >>> plant = Pendulum(g=9.81, l=0.1, b=0.2)
        >>> x_next, _ = plant.integrate(np.array([0.1, 0.0]), np.array([0.0]), 1e-3)
    """
    g: float = 9.81
    l: float = 0.1
    b: float = 0.2
    input_gain: float = 1.0

    n_states = 2
    n_inputs = 1

    def __post_init__(self):
        if self.l <= 0:
            raise InvalidInputError(f"pendulum length must be positive, got {self.l}")

    def derivative(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        theta, omega = x[0], x[1]
        return np.array([
            omega,
            -(self.g / self.l) * np.sin(theta) - self.b * omega + self.input_gain * u[0],
        ])

    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        Ac = np.array([
            [0.0, 1.0],
            [-(self.g / self.l) * np.cos(x[0]), -self.b],
        ])
        Bc = np.array([
            [0.0],
            [self.input_gain],
        ])
        return Ac, Bc


@dataclass(frozen=True)
class GantryCrane(Plant):
    """
    Two-axis gantry crane with a suspended payload.

    States: [x, x_dot, y, y_dot, theta, theta_dot, phi, phi_dot]
    Inputs: [motor voltage x, motor voltage y]

    The model is linear in (x, u), so its Jacobians are constant and the
    linearizer reproduces the zero-order-hold sampled crane exactly.

    Args:
        m: Payload mass (kg)
        M: Cart mass (kg)
        MR: Rail mass (kg)
        r: Rope length (m)
        g: Gravitational acceleration (m/s^2)
        Tx: Damping coefficient along x (N s/m)
        Ty: Damping coefficient along y (N s/m)
        Vm: Motor input multiplier (same motor on both axes)
    """
    m: float = 0.2
    M: float = 0.5
    MR: float = 0.25
    r: float = 0.5
    g: float = 9.81
    Tx: float = 10.0
    Ty: float = 10.0
    Vm: float = 5.0

    n_states = 8
    n_inputs = 2

    def __post_init__(self):
        for name in ("M", "r"):
            if getattr(self, name) <= 0:
                raise InvalidInputError(f"{name} must be positive")

    def jacobian(self, x: np.ndarray, u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        m, M, MR, r, g = self.m, self.M, self.MR, self.r, self.g
        Mx = M + MR

        Ac = np.zeros((8, 8))
        Ac[0, 1] = 1.0
        Ac[1, 1] = -self.Tx / Mx
        Ac[1, 4] = g * m / Mx
        Ac[2, 3] = 1.0
        Ac[3, 3] = -self.Ty / M
        Ac[3, 6] = g * m / M
        Ac[4, 5] = 1.0
        Ac[5, 1] = self.Tx / (r * Mx)
        Ac[5, 4] = -g * (Mx + m) / (r * Mx)
        Ac[6, 7] = 1.0
        Ac[7, 3] = self.Ty / (M * r)
        Ac[7, 6] = -g * (M + m) / (M * r)

        Bc = np.zeros((8, 2))
        Bc[1, 0] = self.Vm / Mx
        Bc[3, 1] = self.Vm / M
        Bc[5, 0] = -self.Vm / (r * Mx)
        Bc[7, 1] = -self.Vm / (M * r)
        return Ac, Bc

    def derivative(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        Ac, Bc = self.jacobian(x, u)
        return Ac @ x + Bc @ u


@dataclass
class LinearSystem:
    """
    Discrete linear model ``x+ = A x + B u`` with output ``y = C x + D u``.

    This is what the linearizer hands to the QP builders: the plant
    sampled with period ``dt`` around one operating point.

    Args:
        A: Discrete state matrix (n_x, n_x)
        B: Discrete input matrix (n_x, n_u)
        C: Output matrix (n_y, n_x); states are measured directly if None
        D: Feedthrough (n_y, n_u); zero if None
        dt: Sample period the matrices were built for

    Example:
        >>> Ac, Bc = Pendulum().jacobian(np.zeros(2), np.zeros(1))
        >>> system = LinearSystem.from_continuous(Ac, Bc, dt=1e-3)
        >>> system.A.shape
        (2, 2)
    """
    A: np.ndarray
    B: np.ndarray
    C: Optional[np.ndarray] = None
    D: Optional[np.ndarray] = None
    dt: float = 1.0

    def __post_init__(self):
        A = np.asarray(self.A, dtype=np.float64)
        B = np.asarray(self.B, dtype=np.float64)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise DimensionError(f"A must be square, got shape {A.shape}")
        if B.ndim != 2:
            raise DimensionError(f"B must be 2D, got shape {B.shape}")
        if B.shape[0] != A.shape[0]:
            raise DimensionError(f"B rows ({B.shape[0]}) must match A ({A.shape[0]})")
        self.A, self.B = A, B

        if self.C is not None:
            self.C = np.atleast_2d(np.asarray(self.C, dtype=np.float64))
            if self.C.shape[1] != self.n_states:
                raise DimensionError(
                    f"C has {self.C.shape[1]} columns, model has {self.n_states} states"
                )
        if self.D is not None:
            self.D = np.atleast_2d(np.asarray(self.D, dtype=np.float64))
            expected = (self.n_outputs, self.n_inputs)
            if self.D.shape != expected:
                raise DimensionError(f"D must be {expected}, got {self.D.shape}")

    @property
    def n_states(self) -> int:
        return self.A.shape[0]

    @property
    def n_inputs(self) -> int:
        return self.B.shape[1]

    @property
    def n_outputs(self) -> int:
        return self.n_states if self.C is None else self.C.shape[0]

    @classmethod
    def from_continuous(
        cls,
        Ac: np.ndarray,
        Bc: np.ndarray,
        dt: float,
        method: str = "zoh",
    ) -> "LinearSystem":
        """
        Sample ``dx/dt = Ac x + Bc u`` with period ``dt``.

        Args:
            Ac: Continuous state Jacobian (n_x, n_x)
            Bc: Continuous input Jacobian (n_x, n_u)
            dt: Sample period
            method: 'zoh' holds the input over the period (exact for a
                linear plant); 'euler' is the first-order forward step

        Returns:
            LinearSystem with ``dt`` recorded
        """
        Ac = np.asarray(Ac, dtype=np.float64)
        Bc = np.asarray(Bc, dtype=np.float64)
        n, m = Bc.shape

        if dt <= 0:
            raise InvalidInputError(f"sampling time must be positive, got {dt}")

        if method == "zoh":
            # expm([[Ac, Bc], [0, 0]] dt) = [[A, B], [0, I]]
            M = np.zeros((n + m, n + m))
            M[:n, :n] = Ac
            M[:n, n:] = Bc
            E = expm(M * dt)
            A, B = E[:n, :n], E[:n, n:]
        elif method == "euler":
            A = np.eye(n) + dt * Ac
            B = dt * Bc
        else:
            raise InvalidInputError(f"Unknown method '{method}'")

        return cls(A, B, dt=dt)
