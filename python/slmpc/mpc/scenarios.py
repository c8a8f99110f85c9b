"""
Example Scenarios
=================

Ready-made plant/configuration/reference triples.
"""

from __future__ import annotations

from typing import Tuple
import numpy as np

from .config import MPCConfig
from .dynamics import GantryCrane, Pendulum
from .trajectory import Trajectory, constant_reference


def pendulum_scenario(
    horizon: int = 40,
    dt: float = 0.001,
    t_final: float = 0.5,
    **overrides,
) -> Tuple[Pendulum, MPCConfig, Trajectory]:
    """
    Swing the damped pendulum from rest to 0.5 rad.

    Angular velocity is limited to [-4, 4] rad/s and the input to
    [-20, 80]. Extra keyword arguments override MPCConfig fields.

    Returns:
        Tuple of (plant, config, reference)
    """
    plant = Pendulum(g=9.81, l=0.1, b=0.2)

    settings = dict(
        horizon=horizon,
        dt=dt,
        t_final=t_final,
        Q=np.diag([10000.0, 1.0]),
        R=np.array([[1e-5]]),
        Dcon=np.array([[0.0, 1.0]]),
        cl=-4.0,
        ch=4.0,
        u_min=-20.0,
        u_max=80.0,
        x0=np.array([0.001, 0.0]),
        u0=np.zeros(1),
    )
    settings.update(overrides)
    config = MPCConfig(**settings)

    n_ref = config.n_steps + config.horizon + 2
    reference = constant_reference(np.array([0.5, 0.0]), n_ref)
    return plant, config, reference


def crane_scenario(
    horizon: int = 30,
    dt: float = 0.02,
    t_final: float = 2.0,
    **overrides,
) -> Tuple[GantryCrane, MPCConfig, Trajectory]:
    """
    Move the gantry crane payload to (0.3, 0.2) m.

    Cart positions are kept within [-0.05, 0.5] m and both motor inputs
    within [-1, 1]. Extra keyword arguments override MPCConfig fields.

    Returns:
        Tuple of (plant, config, reference)
    """
    plant = GantryCrane()

    Dcon = np.zeros((2, 8))
    Dcon[0, 0] = 1.0
    Dcon[1, 2] = 1.0

    settings = dict(
        horizon=horizon,
        dt=dt,
        t_final=t_final,
        Q=np.diag([100.0, 1.0, 100.0, 1.0, 10.0, 1.0, 10.0, 1.0]),
        R=0.01 * np.eye(2),
        Dcon=Dcon,
        cl=-0.05,
        ch=0.5,
        u_min=-1.0,
        u_max=1.0,
    )
    settings.update(overrides)
    config = MPCConfig(**settings)

    target = np.zeros(8)
    target[0] = 0.3
    target[2] = 0.2
    reference = constant_reference(target, config.n_steps + config.horizon + 2)
    return plant, config, reference
