"""
Prediction Matrices
===================

Lifted dynamics over the horizon. For

    x_{k+1} = A_k x_k + B_k u_k

define X = [x_1; ...; x_N] and U = [u_0; ...; u_{N-1}]. Then

    X = Phi x_0 + Gamma U

with Phi stacking the state transition products and Gamma block lower
triangular. For a frozen model, block (i, j) of Gamma (0-based, j <= i)
is A^(i-j) B.
"""

from __future__ import annotations

from typing import Tuple
import numpy as np

from ..exceptions import DimensionError, InvalidInputError


def prediction_matrices(
    A: np.ndarray,
    B: np.ndarray,
    horizon: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the prediction matrices for a horizon of ``horizon`` steps.

    Args:
        A: State matrix (n_x, n_x), or a stack (horizon, n_x, n_x)
        B: Input matrix (n_x, n_u), or a stack (horizon, n_x, n_u)
        horizon: Number of predicted steps N >= 1

    Returns:
        Gamma: (n_x N, n_u N) block lower triangular
        Phi: (n_x N, n_x)
    """
    if horizon < 1:
        raise InvalidInputError(f"horizon must be positive, got {horizon}")

    A_seq = _as_stack("A", A, horizon)
    B_seq = _as_stack("B", B, horizon)

    nx = A_seq.shape[1]
    nu = B_seq.shape[2]
    if A_seq.shape[1:] != (nx, nx):
        raise DimensionError(f"A must be square, got shape {A_seq.shape[1:]}")
    if B_seq.shape[1] != nx:
        raise DimensionError(
            f"B rows ({B_seq.shape[1]}) must match A ({nx})"
        )

    Phi = np.zeros((nx * horizon, nx))
    Gamma = np.zeros((nx * horizon, nu * horizon))

    # Row block i predicts x_{i+1} = A_i x_i + B_i u_i.
    Phi_prev = np.eye(nx)
    row_prev = np.zeros((nx, nu * horizon))
    for i in range(horizon):
        rows = slice(i * nx, (i + 1) * nx)

        Phi_prev = A_seq[i] @ Phi_prev
        Phi[rows] = Phi_prev

        row = A_seq[i] @ row_prev
        row[:, i * nu:(i + 1) * nu] = B_seq[i]
        Gamma[rows] = row
        row_prev = row

    return Gamma, Phi


def predict(
    Gamma: np.ndarray,
    Phi: np.ndarray,
    x0: np.ndarray,
    U: np.ndarray,
) -> np.ndarray:
    """
    Stacked prediction ``X = Phi x0 + Gamma U``.

    Returns:
        Predicted states (N, n_x)
    """
    x0 = np.asarray(x0, dtype=np.float64).ravel()
    U = np.asarray(U, dtype=np.float64).ravel()
    nx = Phi.shape[1]
    if x0.shape != (nx,):
        raise DimensionError(f"x0 must have {nx} elements, got {x0.size}")
    if U.shape != (Gamma.shape[1],):
        raise DimensionError(
            f"U must have {Gamma.shape[1]} elements, got {U.size}"
        )
    return (Phi @ x0 + Gamma @ U).reshape(-1, nx)


def _as_stack(name: str, M: np.ndarray, horizon: int) -> np.ndarray:
    M = np.asarray(M, dtype=np.float64)
    if M.ndim == 2:
        return np.broadcast_to(M, (horizon,) + M.shape)
    if M.ndim == 3:
        if M.shape[0] != horizon:
            raise DimensionError(
                f"{name} stack has {M.shape[0]} matrices, expected {horizon}"
            )
        return M
    raise DimensionError(f"{name} must be 2D or 3D, got shape {M.shape}")
