"""
MPC Controllers
===============

Successive-linearization Model Predictive Control.

At every tick the plant is linearized at the freshly integrated state,
the horizon QP is rebuilt from scratch and solved with a warm-started
active-set method; only the first input of the solution is applied.

Classes:
- SuccessiveLinearizationMPC: receding-horizon control loop
- TickResult: outcome of one QP solve
- SimulationResult: recorded time series of a closed-loop run
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from ..exceptions import (
    DimensionError,
    InfeasibleError,
    IterationLimitError,
    NumericDivergenceError,
)
from ..result import Status
from ..solver import factor_hessian, solve_qp
from .config import MPCConfig
from .constraints import assemble_qp_constraints, stage_constraints, trajectory_constraints
from .cost import qp_cost
from .dynamics import Plant
from .linearize import linearize, linearize_along
from .prediction import prediction_matrices
from .trajectory import Trajectory

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """
    Outcome of one MPC solve.

    Attributes:
        u: Optimal control sequence (N, n_u)
        status: Solver status
        iterations: Active-set iterations
        active_set: Binding constraint rows, reused as the next warm start
        cost: Optimal QP objective (constant term dropped)
        solve_time: QP solve time (seconds)
        A: Discrete state matrix used for the horizon (or stack per step)
        B: Discrete input matrix used for the horizon (or stack per step)
    """
    u: np.ndarray
    status: Status
    iterations: int
    active_set: np.ndarray
    cost: float
    solve_time: float
    A: np.ndarray
    B: np.ndarray

    @property
    def optimal_control(self) -> np.ndarray:
        """First control action to apply (n_u,)."""
        return self.u[0]

    @property
    def is_optimal(self) -> bool:
        """Whether solution is optimal."""
        return self.status == Status.OPTIMAL

    def __repr__(self) -> str:
        return (
            f"TickResult(\n"
            f"  status={self.status},\n"
            f"  cost={self.cost:.4g},\n"
            f"  iterations={self.iterations},\n"
            f"  solve_time={self.solve_time*1000:.2f}ms,\n"
            f"  horizon={len(self.u)}\n"
            f")"
        )


@dataclass
class SimulationResult:
    """
    Closed-loop time series.

    Attributes:
        time: Tick times (n_steps,)
        x: Plant states (n_steps + 1, n_x), including the initial state
        y: Measured outputs y = C x + D u recorded at each tick (n_steps, n_y)
        u: Applied inputs (n_steps, n_u)
        iterations: Active-set iterations per tick (n_steps,)
        latency: Wall time per tick in seconds (n_steps,)
        deadline_misses: Ticks whose latency exceeded the sample period
    """
    time: np.ndarray
    x: np.ndarray
    y: np.ndarray
    u: np.ndarray
    iterations: np.ndarray
    latency: np.ndarray
    deadline_misses: int

    @property
    def n_steps(self) -> int:
        """Number of ticks."""
        return len(self.time)

    def summary(self) -> str:
        """Return a formatted summary of the run."""
        if self.n_steps == 0:
            return "SimulationResult(empty)"
        lines = [
            f"Ticks:            {self.n_steps}",
            f"Mean iterations:  {self.iterations.mean():.2f}",
            f"Max iterations:   {self.iterations.max()}",
            f"Mean latency:     {self.latency.mean() * 1000:.3f} ms",
            f"Max latency:      {self.latency.max() * 1000:.3f} ms",
            f"Deadline misses:  {self.deadline_misses}",
        ]
        return "\n".join(lines)


class SuccessiveLinearizationMPC:
    """
    Receding-horizon controller for a nonlinear plant.

    Each tick:
        1. slice the reference window for the horizon
        2. record the measured output
        3. integrate the plant with the previously applied input
        4. linearize at the new state
        5. build prediction, cost and constraint matrices
        6. factor the Hessian
        7. solve the QP, warm-started from the previous active set
        8. apply the first input of the solution

    Args:
        plant: Continuous plant with closed-form Jacobians
        config: Tuning configuration

    Example:
        >>> plant = Pendulum(g=9.81, l=0.1, b=0.2)
        >>> mpc = SuccessiveLinearizationMPC(plant, config)
        >>> run = mpc.run(constant_reference([0.5, 0.0], config.n_steps))
        >>> run.y[-1, 0]
    """

    def __init__(self, plant: Plant, config: MPCConfig) -> None:
        self.plant = plant
        self.config = config

        # Dimensions
        self.n_x = plant.n_states
        self.n_u = plant.n_inputs
        self.horizon = config.horizon

        self.params = config.resolve(self.n_x, self.n_u)
        self.n_rows = self.horizon * self.params.n_constraints

        logger.info(
            "MPC initialized: n_x=%d n_u=%d horizon=%d rows=%d (%s, %s)",
            self.n_x, self.n_u, self.horizon, self.n_rows,
            config.discretization, config.linearization,
        )

    def output(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Measured output ``C x + D u``."""
        return self.params.C @ x + self.params.D @ u

    def solve(
        self,
        x: np.ndarray,
        u: np.ndarray,
        rr: np.ndarray,
        active_set: Optional[np.ndarray] = None,
        u_nominal: Optional[np.ndarray] = None,
        tick: Optional[int] = None,
    ) -> TickResult:
        """
        Solve the horizon QP linearized at ``(x, u)``.

        Args:
            x: Current state (n_x,)
            u: Input at the operating point (n_u,)
            rr: Stacked reference window (N * n_x,)
            active_set: Warm-start flags from the previous tick
            u_nominal: Nominal inputs (N, n_u) for per-step linearization
            tick: Tick index, used in error reports

        Returns:
            TickResult with the optimal input sequence

        Raises:
            InfeasibleError: If the QP has no feasible input sequence
            IterationLimitError: If the solver hits its iteration limit
        """
        cfg = self.config
        p = self.params
        N = self.horizon

        x = self.plant.as_state(x)
        u = self.plant.as_input(u)

        if cfg.linearization == "per_step":
            if u_nominal is None:
                u_nominal = np.tile(u, (N, 1))
            A, B = linearize_along(self.plant, x, u_nominal, cfg.dt, cfg.discretization)
            A_stage, B_stage = A[0], B[0]
        else:
            system = linearize(self.plant, x, u, cfg.dt, cfg.discretization)
            A = A_stage = system.A
            B = B_stage = system.B

        Gamma, Phi = prediction_matrices(A, B, N)

        stage = stage_constraints(A_stage, B_stage, p.Dcon, p.cl, p.ch, p.u_min, p.u_max)
        traj = trajectory_constraints(stage, N)
        constraints = assemble_qp_constraints(traj, Gamma, Phi)

        cost = qp_cost(Gamma, Phi, p.Q, p.R, p.P, N)
        Linv = factor_hessian(cost.H)

        if active_set is not None and not cfg.warm_start:
            active_set = None

        result = solve_qp(
            Linv,
            cost.linear_term(x, rr),
            constraints.F,
            constraints.rhs(x),
            active_set=active_set,
            max_iterations=cfg.max_iterations,
            tolerance=cfg.tolerance,
        )

        if result.status == Status.INFEASIBLE:
            logger.warning("QP infeasible at tick %s", tick)
            raise InfeasibleError("MPC problem is infeasible", tick=tick)
        if result.status == Status.MAX_ITERATIONS:
            logger.warning("QP hit the iteration limit at tick %s", tick)
            raise IterationLimitError(
                f"Active-set solver exceeded {cfg.max_iterations} iterations",
                iterations=result.iterations,
            )

        return TickResult(
            u=result.x.reshape(N, self.n_u),
            status=result.status,
            iterations=result.iterations,
            active_set=result.active_set,
            cost=result.objective,
            solve_time=result.solve_time,
            A=A,
            B=B,
        )

    def tick(
        self,
        k: int,
        x: np.ndarray,
        u_prev: np.ndarray,
        reference: Trajectory,
        active_set: Optional[np.ndarray] = None,
        u_nominal: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray, TickResult]:
        """
        Run one control tick.

        The QP predicts x(1)..x(N) from the integrated state, i.e. the
        samples k+2 .. k+N+1 of the reference.

        Args:
            k: Tick index
            x: Plant state at the start of the tick
            u_prev: Input applied during the previous tick
            reference: Reference trajectory
            active_set: Warm-start flags
            u_nominal: Nominal inputs for per-step linearization

        Returns:
            Tuple of (integrated state, recorded output, TickResult)

        Raises:
            NumericDivergenceError: If the integrated state is not finite
        """
        rr = reference.window(k + 2, self.horizon)
        y = self.output(x, u_prev)

        x_next, _ = self.plant.integrate(x, u_prev, self.config.dt)
        if not np.all(np.isfinite(x_next)):
            raise NumericDivergenceError(
                f"plant state diverged at tick {k}: {x_next}"
            )

        result = self.solve(
            x_next, u_prev, rr,
            active_set=active_set,
            u_nominal=u_nominal,
            tick=k,
        )
        return x_next, y, result

    def run(
        self,
        reference: Trajectory,
        x0: Optional[np.ndarray] = None,
        u0: Optional[np.ndarray] = None,
        n_steps: Optional[int] = None,
    ) -> SimulationResult:
        """
        Simulate the closed loop.

        Args:
            reference: Reference trajectory (states per tick)
            x0: Initial state (default: config.x0)
            u0: Initial input (default: config.u0)
            n_steps: Number of ticks (default: round(t_final / dt))

        Returns:
            SimulationResult with outputs, inputs and per-tick statistics
        """
        if reference.n_states != self.n_x:
            raise DimensionError(
                f"reference has {reference.n_states} states, plant has {self.n_x}"
            )

        cfg = self.config
        n_steps = cfg.n_steps if n_steps is None else int(n_steps)
        x = self.plant.as_state(self.params.x0 if x0 is None else x0).copy()
        u = self.plant.as_input(self.params.u0 if u0 is None else u0).copy()

        n_y = self.params.C.shape[0]
        states = np.zeros((n_steps + 1, self.n_x))
        outputs = np.zeros((n_steps, n_y))
        inputs = np.zeros((n_steps, self.n_u))
        iterations = np.zeros(n_steps, dtype=int)
        latency = np.zeros(n_steps)
        states[0] = x

        active_set = None
        u_nominal = np.tile(u, (self.horizon, 1)) if cfg.linearization == "per_step" else None
        misses = 0

        for k in range(n_steps):
            start = time.perf_counter()
            x, outputs[k], result = self.tick(
                k, x, u, reference,
                active_set=active_set,
                u_nominal=u_nominal,
            )
            u = result.optimal_control.copy()
            active_set = result.active_set
            if u_nominal is not None:
                u_nominal = np.vstack([result.u[1:], result.u[-1:]])

            latency[k] = time.perf_counter() - start
            if latency[k] > cfg.dt:
                misses += 1

            states[k + 1] = x
            inputs[k] = u
            iterations[k] = result.iterations
            logger.debug(
                "tick %d: u=%s iterations=%d active=%d latency=%.3fms",
                k, u, result.iterations, int(active_set.sum()), latency[k] * 1000,
            )

        if misses:
            logger.warning(
                "%d of %d ticks exceeded the %.3g s sample period",
                misses, n_steps, cfg.dt,
            )
        logger.info("MPC run finished: %d ticks", n_steps)

        return SimulationResult(
            time=np.arange(n_steps) * cfg.dt,
            x=states,
            y=outputs,
            u=inputs,
            iterations=iterations,
            latency=latency,
            deadline_misses=misses,
        )
