"""
Successive Linearization
========================

Linearize a nonlinear plant at an operating point and discretize the
result with the sampling time of the controller.

Two modes are supported by the controller:
- frozen: one (A, B) pair at the current state, reused for every step
  of the horizon
- per-step: a (A_k, B_k) pair at each point of a nominal trajectory
"""

from __future__ import annotations

from typing import Tuple
import numpy as np

from ..exceptions import NumericDivergenceError
from .dynamics import LinearSystem, Plant


def linearize(
    plant: Plant,
    x: np.ndarray,
    u: np.ndarray,
    dt: float,
    method: str = "zoh",
) -> LinearSystem:
    """
    Discrete linear model of ``plant`` around ``(x, u)``.

    Args:
        plant: Continuous plant
        x: Operating state (n_x,)
        u: Operating input (n_u,)
        dt: Sampling time
        method: 'zoh' (matrix exponential) or 'euler' (I + Ac*dt, Bc*dt)

    Returns:
        Discrete LinearSystem valid for the upcoming horizon

    Raises:
        NumericDivergenceError: If the operating point or the Jacobians
            are not finite
    """
    x = plant.as_state(x)
    u = plant.as_input(u)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(u))):
        raise NumericDivergenceError(f"non-finite operating point x={x}, u={u}")

    Ac, Bc = plant.jacobian(x, u)
    if not (np.all(np.isfinite(Ac)) and np.all(np.isfinite(Bc))):
        raise NumericDivergenceError("plant Jacobian is not finite")

    return LinearSystem.from_continuous(Ac, Bc, dt, method=method)


def linearize_along(
    plant: Plant,
    x: np.ndarray,
    u_nominal: np.ndarray,
    dt: float,
    method: str = "zoh",
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Linearize at every point of a nominal trajectory.

    The nominal states are obtained by integrating the plant from ``x``
    under ``u_nominal``.

    Args:
        plant: Continuous plant
        x: Current state (n_x,)
        u_nominal: Nominal input sequence (N, n_u)
        dt: Sampling time
        method: Discretization method

    Returns:
        Tuple of (A stack (N, n_x, n_x), B stack (N, n_x, n_u))
    """
    u_nominal = np.asarray(u_nominal, dtype=np.float64).reshape(-1, plant.n_inputs)
    N = len(u_nominal)

    A = np.zeros((N, plant.n_states, plant.n_states))
    B = np.zeros((N, plant.n_states, plant.n_inputs))

    x_k = plant.as_state(x)
    for k in range(N):
        system = linearize(plant, x_k, u_nominal[k], dt, method=method)
        A[k] = system.A
        B[k] = system.B
        x_k, _ = plant.integrate(x_k, u_nominal[k], dt)

    return A, B
