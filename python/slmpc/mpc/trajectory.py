"""
Reference Trajectories
======================

Reference signals consumed by the control loop, one state sample per
tick. The loop slices a window of ``horizon`` samples per tick; samples
past the end of the reference repeat the last one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import numpy as np

from ..exceptions import InvalidInputError


@dataclass
class Trajectory:
    """
    Tick-indexed state reference.

    Args:
        states: Reference samples (n_samples, n_x); a 1D array is one state
        time: Sample times (n_samples,), informational only

    Example:
        >>> x_ref = np.zeros((500, 2))
        >>> x_ref[:, 0] = 0.5  # hold the angle at 0.5 rad
        >>> reference = Trajectory(x_ref)
        >>> rr = reference.window(10, 40)  # (40 * 2,) stacked reference
    """
    states: np.ndarray
    time: Optional[np.ndarray] = None

    def __post_init__(self):
        states = np.asarray(self.states, dtype=np.float64)
        if states.ndim == 1:
            states = states[:, None]
        if states.ndim != 2 or states.shape[0] == 0:
            raise InvalidInputError("reference must be a non-empty (N, n_x) array")
        self.states = states

        if self.time is not None:
            self.time = np.asarray(self.time, dtype=np.float64)
            if self.time.shape != (states.shape[0],):
                raise InvalidInputError("time must have one stamp per sample")

    @property
    def n_samples(self) -> int:
        """Number of samples."""
        return self.states.shape[0]

    @property
    def n_states(self) -> int:
        """Dimension of each sample."""
        return self.states.shape[1]

    def get_state(self, k: int) -> np.ndarray:
        """Sample ``k``, clipped to the first and last sample."""
        return self.states[int(np.clip(k, 0, self.n_samples - 1))]

    def get_window(self, start: int, length: int) -> "Trajectory":
        """Samples ``start .. start+length-1`` as a new Trajectory, holding the last sample."""
        idx = np.clip(np.arange(start, start + length), 0, self.n_samples - 1)
        return Trajectory(states=self.states[idx])

    def window(self, start: int, length: int) -> np.ndarray:
        """Stacked reference ``[r_start; ...; r_{start+length-1}]`` (length * n_x,)."""
        return self.get_window(start, length).states.ravel()


def constant_reference(x_ref: np.ndarray, n_samples: int) -> Trajectory:
    """
    Hold ``x_ref`` for ``n_samples`` samples.

    Example:
        >>> reference = constant_reference(np.array([0.5, 0.0]), n_samples=500)
    """
    x_ref = np.asarray(x_ref, dtype=np.float64).ravel()
    return Trajectory(states=np.repeat(x_ref[None, :], n_samples, axis=0))


def step_reference(
    x_initial: np.ndarray,
    x_final: np.ndarray,
    n_samples: int,
    step_time: int = 0,
) -> Trajectory:
    """
    Switch from ``x_initial`` to ``x_final`` at sample ``step_time``.

    Args:
        x_initial: Setpoint before the step (n_x,)
        x_final: Setpoint from ``step_time`` on (n_x,)
        n_samples: Number of samples
        step_time: First sample of the new setpoint

    Returns:
        Trajectory with a single step
    """
    x_initial = np.asarray(x_initial, dtype=np.float64).ravel()
    x_final = np.asarray(x_final, dtype=np.float64).ravel()

    after = (np.arange(n_samples) >= step_time)[:, None]
    return Trajectory(states=np.where(after, x_final, x_initial))
