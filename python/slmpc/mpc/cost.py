"""
QP Cost Matrices
================

Substituting the prediction ``X = Phi x0 + Gamma U`` into the tracking
objective

    sum_{k=1}^{N-1} (x_k - r_k)' Q (x_k - r_k) + (x_N - r_N)' P (x_N - r_N)
        + sum_{k=0}^{N-1} u_k' R u_k

gives, up to a constant and a factor of two,

    (1/2) U' H U + (G x0 - S rr)' U

with H = Gamma' Qbar Gamma + Rbar, G = Gamma' Qbar Phi and S = Gamma' Qbar.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from scipy.linalg import block_diag

from ..exceptions import DimensionError
from ..utils.validation import check_square


@dataclass
class QPCost:
    """
    Horizon cost matrices.

    Attributes:
        H: Hessian (n_u N, n_u N)
        G: Linear term factor for x0 (n_u N, n_x)
        S: Linear term factor for the stacked reference (n_u N, n_x N)
    """
    H: np.ndarray
    G: np.ndarray
    S: np.ndarray

    def linear_term(self, x0: np.ndarray, rr: np.ndarray) -> np.ndarray:
        """Linear cost ``G x0 - S rr``."""
        x0 = np.asarray(x0, dtype=np.float64).ravel()
        rr = np.asarray(rr, dtype=np.float64).ravel()
        if x0.shape != (self.G.shape[1],):
            raise DimensionError(
                f"x0 must have {self.G.shape[1]} elements, got {x0.size}"
            )
        if rr.shape != (self.S.shape[1],):
            raise DimensionError(
                f"reference window must have {self.S.shape[1]} elements, got {rr.size}"
            )
        return self.G @ x0 - self.S @ rr


def qp_cost(
    Gamma: np.ndarray,
    Phi: np.ndarray,
    Q: np.ndarray,
    R: np.ndarray,
    P: np.ndarray,
    horizon: int,
) -> QPCost:
    """
    Build the QP cost over the horizon.

    Args:
        Gamma: Input-to-state prediction matrix (n_x N, n_u N)
        Phi: State-to-state prediction matrix (n_x N, n_x)
        Q: Stage state weight (n_x, n_x), positive semi-definite
        R: Input weight (n_u, n_u), positive definite
        P: Terminal state weight (n_x, n_x), positive semi-definite
        horizon: Number of steps N

    Returns:
        QPCost with symmetric H
    """
    n_x = Phi.shape[1]
    if Phi.shape[0] != n_x * horizon:
        raise DimensionError(
            f"Phi must have {n_x * horizon} rows for horizon {horizon}, got {Phi.shape[0]}"
        )
    if Gamma.shape[0] != Phi.shape[0] or Gamma.shape[1] % horizon:
        raise DimensionError(f"Gamma shape {Gamma.shape} incompatible with Phi {Phi.shape}")
    n_u = Gamma.shape[1] // horizon

    Q = check_square("Q", Q, n_x)
    R = check_square("R", R, n_u)
    P = check_square("P", P, n_x)

    Qbar = block_diag(*([Q] * (horizon - 1) + [P]))
    Rbar = block_diag(*([R] * horizon))

    S = Gamma.T @ Qbar
    H = S @ Gamma + Rbar
    H = 0.5 * (H + H.T)
    G = S @ Phi

    return QPCost(H=H, G=G, S=S)
