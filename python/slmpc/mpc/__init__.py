"""
slmpc Model Predictive Control
==============================

Successive-linearization MPC for nonlinear plants.

At every tick the plant is linearized at the current state, the horizon
QP is built in condensed form (inputs only) and solved by a warm-started
dual active-set method. Only the first input is applied.

Quick Start
-----------
>>> from slmpc.mpc import SuccessiveLinearizationMPC, pendulum_scenario
>>>
>>> plant, config, reference = pendulum_scenario()
>>> mpc = SuccessiveLinearizationMPC(plant, config)
>>> run = mpc.run(reference)
>>> run.y[:, 0]    # angle output per tick
>>> run.u[:, 0]    # applied input per tick

Building Blocks
---------------
>>> system = linearize(plant, x, u, dt=1e-3)
>>> Gamma, Phi = prediction_matrices(system.A, system.B, horizon=40)
>>> stage = stage_constraints(system.A, system.B, Dcon, cl, ch, u_min, u_max)
>>> qp = assemble_qp_constraints(trajectory_constraints(stage, 40), Gamma, Phi)
>>> cost = qp_cost(Gamma, Phi, Q, R, P, horizon=40)

Theory
------
With X = Phi x0 + Gamma U the tracking problem

    minimize    sum_k (x_k - r_k)' Q (x_k - r_k) + u_k' R u_k   (P at k = N)
    subject to  cl <= Dcon x_k <= ch,  u_min <= u_k <= u_max

becomes the dense QP

    minimize    (1/2) U' H U + (G x0 - S rr)' U
    subject to  F U <= bb + J x0

See Also
--------
- Maciejowski (2002): "Predictive Control with Constraints"
- Goldfarb & Idnani (1983): "A numerically stable dual method for
  solving strictly convex quadratic programs"
"""

from .dynamics import GantryCrane, LinearSystem, Pendulum, Plant, rk4_step
from .linearize import linearize, linearize_along
from .prediction import predict, prediction_matrices
from .constraints import (
    BoxConstraints,
    QPConstraints,
    StageConstraints,
    TrajectoryConstraints,
    assemble_qp_constraints,
    stage_constraints,
    trajectory_constraints,
)
from .cost import QPCost, qp_cost
from .config import MPCConfig
from .controller import SimulationResult, SuccessiveLinearizationMPC, TickResult
from .trajectory import Trajectory, constant_reference, step_reference
from .scenarios import crane_scenario, pendulum_scenario

__all__ = [
    # Controller
    "SuccessiveLinearizationMPC",
    "TickResult",
    "SimulationResult",
    "MPCConfig",
    # Dynamics
    "Plant",
    "Pendulum",
    "GantryCrane",
    "LinearSystem",
    "rk4_step",
    "linearize",
    "linearize_along",
    # QP building
    "prediction_matrices",
    "predict",
    "BoxConstraints",
    "StageConstraints",
    "TrajectoryConstraints",
    "QPConstraints",
    "stage_constraints",
    "trajectory_constraints",
    "assemble_qp_constraints",
    "QPCost",
    "qp_cost",
    # Trajectories
    "Trajectory",
    "constant_reference",
    "step_reference",
    # Scenarios
    "pendulum_scenario",
    "crane_scenario",
]
