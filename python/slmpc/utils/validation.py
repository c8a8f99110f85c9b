"""Input validation utilities."""

from typing import Optional, Tuple, Union

import numpy as np

from ..exceptions import DimensionError, InvalidInputError


def as_matrix(
    name: str,
    M: np.ndarray,
    shape: Optional[Tuple[Optional[int], Optional[int]]] = None,
) -> np.ndarray:
    """
    Convert to a 2D float array and check its shape.

    ``None`` entries in ``shape`` match any size.
    """
    M = np.asarray(M, dtype=np.float64)
    if M.ndim == 0:
        M = M.reshape(1, 1)
    if M.ndim != 2:
        raise DimensionError(f"{name} must be 2D, got shape {M.shape}")
    if shape is not None:
        for axis, expected in enumerate(shape):
            if expected is not None and M.shape[axis] != expected:
                raise DimensionError(
                    f"{name} must have shape {_fmt(shape)}, got {M.shape}"
                )
    return M


def as_vector(
    name: str,
    v: Union[float, np.ndarray],
    size: Optional[int] = None,
) -> np.ndarray:
    """
    Convert to a 1D float array, broadcasting scalars when ``size`` is given.
    """
    if np.isscalar(v):
        if size is None:
            return np.array([v], dtype=np.float64)
        return np.full(size, v, dtype=np.float64)

    v = np.asarray(v, dtype=np.float64).ravel()
    if size is not None and v.shape != (size,):
        raise DimensionError(f"{name} must have {size} elements, got {v.size}")
    return v


def check_finite(name: str, value: np.ndarray) -> np.ndarray:
    """Reject NaN/inf entries."""
    if not np.all(np.isfinite(value)):
        raise InvalidInputError(f"{name} contains non-finite values")
    return value


def check_square(name: str, M: np.ndarray, n: int) -> np.ndarray:
    """Check ``M`` is ``n x n`` and finite."""
    M = as_matrix(name, M, (n, n))
    return check_finite(name, M)


def _fmt(shape: Tuple[Optional[int], ...]) -> str:
    return "(" + ", ".join("*" if s is None else str(s) for s in shape) + ")"
