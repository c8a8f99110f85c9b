"""
slmpc QP Solver
===============

Dense dual active-set QP solver (Goldfarb-Idnani) for the MPC subproblem

    minimize    (1/2) x' H x + f' x
    subject to  F x <= rhs

The Hessian is passed pre-factored as ``Linv = inv(chol(H))`` so that the
factorization is done once per control tick. With ``y = L' x`` the problem
becomes the projection of ``-Linv f`` onto ``{y : W y >= b}``, which is
what the iterations below work on.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

import numpy as np
from scipy import linalg

from .exceptions import DimensionError, IllConditionedCostError, InvalidInputError
from .result import QPResult, Status
from .utils.validation import as_matrix, as_vector, check_finite

logger = logging.getLogger(__name__)

# Rows of F with a smaller norm carry no information about x.
_ZERO_ROW = 1e-14
# Relative residual below which a constraint normal is treated as
# linearly dependent on the working set.
_DEPENDENT = 1e-10


def factor_hessian(H: np.ndarray) -> np.ndarray:
    """
    Factor the QP Hessian for the active-set solver.

    Args:
        H: Symmetric positive definite matrix (n, n)

    Returns:
        Inverse of the lower Cholesky factor, ``Linv`` with ``H = inv(Linv' Linv)``

    Raises:
        IllConditionedCostError: If H is not symmetric positive definite
    """
    H = as_matrix("H", H)
    n = H.shape[0]
    if H.shape != (n, n):
        raise DimensionError(f"H must be square, got shape {H.shape}")
    check_finite("H", H)

    scale = max(1.0, float(np.max(np.abs(H))))
    if not np.allclose(H, H.T, rtol=0.0, atol=1e-10 * scale):
        raise IllConditionedCostError("Hessian is not symmetric")

    try:
        L = linalg.cholesky(H, lower=True)
    except linalg.LinAlgError as e:
        raise IllConditionedCostError(
            f"Cholesky factorization of the Hessian failed: {e}"
        ) from e

    return linalg.solve_triangular(L, np.eye(n), lower=True)


def solve_qp(
    Linv: np.ndarray,
    f: np.ndarray,
    F: np.ndarray,
    rhs: np.ndarray,
    active_set: Optional[np.ndarray] = None,
    max_iterations: int = 500,
    tolerance: float = 1e-9,
) -> QPResult:
    """
    Solve a strictly convex QP with inequality constraints.

    Rows whose right-hand side is ``+inf`` are dropped before solving and
    are never reported as active. The warm start only seeds the working
    set; rows that are dependent or carry a negative multiplier are
    released, so the optimum does not depend on ``active_set``.

    Args:
        Linv: Inverse lower Cholesky factor of H (n, n)
        f: Linear cost term (n,)
        F: Constraint matrix (m, n)
        rhs: Constraint right-hand side (m,), may contain +inf
        active_set: Boolean flags (m,) from a previous solve
        max_iterations: Maximum number of working-set changes
        tolerance: Allowed violation of a row-normalized constraint

    Returns:
        QPResult with solution, status and updated active set
    """
    start_time = time.perf_counter()

    Linv = as_matrix("Linv", Linv)
    n = Linv.shape[0]
    if Linv.shape != (n, n):
        raise DimensionError(f"Linv must be square, got shape {Linv.shape}")
    f = check_finite("f", as_vector("f", f, n))
    F = check_finite("F", as_matrix("F", F, (None, n)))
    m = F.shape[0]
    rhs = as_vector("rhs", rhs, m)
    if np.any(np.isnan(rhs)) or np.any(rhs == -np.inf):
        raise InvalidInputError("rhs must not contain NaN or -inf")

    if active_set is None:
        active_set = np.zeros(m, dtype=bool)
    else:
        active_set = np.asarray(active_set, dtype=bool).ravel()
        if active_set.shape != (m,):
            raise DimensionError(
                f"active_set has {active_set.size} flags, expected {m}"
            )
    if max_iterations < 0:
        raise InvalidInputError("max_iterations must be non-negative")

    # Row-normalized constraints in >= form: N x >= b.
    norms = np.linalg.norm(F, axis=1)
    finite = np.isfinite(rhs)
    empty = finite & (norms <= _ZERO_ROW)
    rows = np.flatnonzero(finite & ~empty)
    N = -F[rows] / norms[rows, None]
    b = -rhs[rows] / norms[rows]

    W = N @ Linv.T
    c = Linv @ f
    y = -c

    working: List[int] = []
    u = np.zeros(0)
    iterations = 0
    status = Status.UNSOLVED

    if np.any(rhs[empty] < -tolerance):
        status = Status.INFEASIBLE
    else:
        seeds = np.flatnonzero(active_set[rows])
        if seeds.size:
            working, u, y = _seed_working_set(W, b, c, seeds)

    while status == Status.UNSOLVED:
        slack = W @ y - b
        slack[working] = np.inf
        p = int(np.argmin(slack)) if slack.size else -1
        if p < 0 or slack[p] >= -tolerance:
            status = Status.OPTIMAL
            break

        w = W[p]
        u_p = 0.0
        while True:
            if iterations >= max_iterations:
                status = Status.MAX_ITERATIONS
                break
            iterations += 1

            if working:
                B = W[working].T
                r = np.linalg.lstsq(B, w, rcond=None)[0]
                z = w - B @ r
            else:
                r = np.zeros(0)
                z = w

            # Largest dual step keeping the working-set multipliers >= 0.
            t1 = np.inf
            k = -1
            for j in np.flatnonzero(r > 0):
                ratio = u[j] / r[j]
                if ratio < t1:
                    t1 = ratio
                    k = int(j)

            if np.linalg.norm(z) <= _DEPENDENT * max(1.0, np.linalg.norm(w)):
                if k < 0:
                    status = Status.INFEASIBLE
                    break
                u = u - t1 * r
                u_p += t1
                del working[k]
                u = np.delete(u, k)
                continue

            t2 = -(w @ y - b[p]) / (z @ w)
            if t2 <= t1:
                y = y + t2 * z
                u = np.append(u - t2 * r, u_p + t2)
                working.append(p)
                break

            y = y + t1 * z
            u = u - t1 * r
            u_p += t1
            del working[k]
            u = np.delete(u, k)

    x = Linv.T @ y
    objective = float(0.5 * y @ y + c @ y)

    flags = np.zeros(m, dtype=bool)
    multipliers = np.zeros(m)
    if status == Status.OPTIMAL and working:
        idx = rows[working]
        flags[idx] = True
        multipliers[idx] = u / norms[idx]

    solve_time = time.perf_counter() - start_time
    if status != Status.OPTIMAL:
        logger.debug("QP solve ended with status %s after %d iterations", status, iterations)

    return QPResult(
        status=status,
        x=x,
        objective=objective,
        active_set=flags,
        multipliers=multipliers,
        iterations=iterations,
        solve_time=solve_time,
        info={"n_rows": m, "n_finite_rows": int(rows.size)},
    )


def _seed_working_set(W, b, c, seeds):
    """
    Build a dual-feasible starting point from warm-start flags.

    Keeps a linearly independent subset of the seeded rows and releases
    the row with the most negative multiplier until all are >= 0.
    """
    n = W.shape[1]
    working: List[int] = []
    for i in seeds:
        if len(working) == n:
            break
        w = W[i]
        if working:
            B = W[working].T
            res = w - B @ np.linalg.lstsq(B, w, rcond=None)[0]
        else:
            res = w
        if np.linalg.norm(res) > _DEPENDENT * max(1.0, np.linalg.norm(w)):
            working.append(int(i))

    while working:
        B = W[working].T
        u = np.linalg.solve(B.T @ B, b[working] + B.T @ c)
        j = int(np.argmin(u))
        if u[j] >= 0:
            return working, u, -c + B @ u
        del working[j]

    return working, np.zeros(0), -c
