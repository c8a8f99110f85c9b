"""
Tests for MPC constraint construction.
"""

import pytest
import numpy as np


@pytest.fixture
def pendulum_stage():
    from slmpc.mpc import stage_constraints

    return stage_constraints(
        A=np.eye(2),
        B=np.ones((2, 1)),
        Dcon=np.array([[0.0, 1.0]]),
        cl=-4.0,
        ch=4.0,
        u_min=-20.0,
        u_max=80.0,
    )


class TestBoxConstraints:
    """Test box constraints."""

    def test_scalar_bounds(self):
        """Scalar bounds broadcast to dim."""
        from slmpc.mpc import BoxConstraints

        box = BoxConstraints(-1.0, 1.0, dim=3)

        np.testing.assert_array_equal(box.lower, [-1, -1, -1])
        np.testing.assert_array_equal(box.upper, [1, 1, 1])

    def test_scalar_without_dim(self):
        from slmpc import InvalidInputError
        from slmpc.mpc import BoxConstraints

        with pytest.raises(InvalidInputError, match="dim"):
            BoxConstraints(-1.0, 1.0)

    def test_inverted_bounds(self):
        from slmpc import InvalidInputError
        from slmpc.mpc import BoxConstraints

        with pytest.raises(InvalidInputError, match="exceeds"):
            BoxConstraints(np.array([1.0]), np.array([0.0]))

    def test_nan_bound(self):
        from slmpc import InvalidInputError
        from slmpc.mpc import BoxConstraints

        with pytest.raises(InvalidInputError, match="NaN"):
            BoxConstraints(np.array([np.nan]), np.array([0.0]))

    def test_length_mismatch(self):
        from slmpc import DimensionError
        from slmpc.mpc import BoxConstraints

        with pytest.raises(DimensionError):
            BoxConstraints(np.zeros(2), np.ones(3))


class TestStageConstraints:
    """Test single-step constraint rows."""

    def test_rows(self, pendulum_stage):
        """Rows are Dcon x <= ch, -Dcon x <= -cl, u <= u_max, -u <= -u_min."""
        np.testing.assert_array_equal(
            pendulum_stage.Dt, [[0, 1], [0, -1], [0, 0], [0, 0]]
        )
        np.testing.assert_array_equal(pendulum_stage.Et, [[0], [0], [1], [-1]])
        np.testing.assert_array_equal(pendulum_stage.bt, [4, 4, 80, 20])
        assert pendulum_stage.n_rows == 4

    def test_infinite_bounds(self):
        """Open bounds become infinite right-hand sides."""
        from slmpc.mpc import stage_constraints

        stage = stage_constraints(
            np.eye(2), np.ones((2, 1)), np.eye(2),
            cl=np.array([-np.inf, 0.0]),
            ch=np.inf,
            u_min=-1.0,
            u_max=1.0,
        )

        assert stage.n_rows == 6
        assert np.isposinf(stage.bt[[0, 1, 2]]).all()
        assert stage.bt[3] == 0.0

    def test_multiple_inputs(self):
        """Per-input bounds keep their order."""
        from slmpc.mpc import stage_constraints

        stage = stage_constraints(
            np.eye(8), np.ones((8, 2)), np.zeros((0, 8)),
            cl=np.zeros(0), ch=np.zeros(0),
            u_min=np.array([-1.0, -2.0]),
            u_max=np.array([1.0, 3.0]),
        )

        np.testing.assert_array_equal(stage.Et, [[1, 0], [0, 1], [-1, 0], [0, -1]])
        np.testing.assert_array_equal(stage.bt, [1, 3, 1, 2])

    def test_bad_dcon(self):
        from slmpc import DimensionError
        from slmpc.mpc import stage_constraints

        with pytest.raises(DimensionError, match="Dcon"):
            stage_constraints(np.eye(2), np.ones((2, 1)), np.ones((1, 3)), -1, 1, -1, 1)

    def test_bad_bound_length(self):
        from slmpc import DimensionError
        from slmpc.mpc import stage_constraints

        with pytest.raises(DimensionError, match="u_max"):
            stage_constraints(np.eye(2), np.ones((2, 1)), np.eye(2), -1, 1, -1, np.ones(2))


class TestTrajectoryConstraints:
    """Test horizon replication."""

    def test_block_diagonal(self, pendulum_stage):
        from slmpc.mpc import trajectory_constraints

        traj = trajectory_constraints(pendulum_stage, 3)

        assert traj.DD.shape == (12, 6)
        assert traj.EE.shape == (12, 3)
        assert traj.n_rows == 12
        np.testing.assert_array_equal(traj.DD[4:8, 2:4], pendulum_stage.Dt)
        np.testing.assert_array_equal(traj.DD[4:8, 0:2], 0.0)
        np.testing.assert_array_equal(traj.EE[8:12, 2:3], pendulum_stage.Et)
        np.testing.assert_array_equal(traj.bb, np.tile(pendulum_stage.bt, 3))

    def test_invalid_horizon(self, pendulum_stage):
        from slmpc import InvalidInputError
        from slmpc.mpc import trajectory_constraints

        with pytest.raises(InvalidInputError):
            trajectory_constraints(pendulum_stage, 0)


class TestAssembly:
    """Test substitution of the prediction."""

    def _setup(self, horizon=4):
        from slmpc.mpc import (
            prediction_matrices,
            stage_constraints,
            trajectory_constraints,
        )

        A = np.array([[1.0, 0.001], [-0.098, 0.9998]])
        B = np.array([[0.0], [0.001]])
        stage = stage_constraints(A, B, np.array([[0.0, 1.0]]), -4.0, 4.0, -20.0, 80.0)
        traj = trajectory_constraints(stage, horizon)
        Gamma, Phi = prediction_matrices(A, B, horizon)
        return traj, Gamma, Phi

    def test_shapes(self):
        from slmpc.mpc import assemble_qp_constraints

        traj, Gamma, Phi = self._setup()
        qp = assemble_qp_constraints(traj, Gamma, Phi)

        assert qp.F.shape == (16, 4)
        assert qp.J.shape == (16, 2)
        np.testing.assert_array_equal(qp.L, 0.0)
        assert qp.n_rows == 16

    def test_equivalent_to_trajectory_form(self):
        """F U - rhs(x0) equals DD X + EE U - bb for the predicted X."""
        from slmpc.mpc import assemble_qp_constraints

        traj, Gamma, Phi = self._setup()
        qp = assemble_qp_constraints(traj, Gamma, Phi)

        rng = np.random.default_rng(1)
        x0 = rng.standard_normal(2)
        U = 30 * rng.standard_normal(4)
        X = Phi @ x0 + Gamma @ U

        np.testing.assert_allclose(
            qp.F @ U - qp.rhs(x0),
            traj.DD @ X + traj.EE @ U - traj.bb,
            atol=1e-12,
        )

    def test_row_pairs_next_state_with_input(self):
        """Block k constrains x_{k+1} and u_k."""
        from slmpc.mpc import assemble_qp_constraints

        traj, Gamma, Phi = self._setup(horizon=3)
        qp = assemble_qp_constraints(traj, Gamma, Phi)

        # Velocity rows of block 0 depend on u_0 only.
        np.testing.assert_allclose(qp.F[0], [0.001, 0.0, 0.0])
        # Input rows of block 2 select u_2.
        np.testing.assert_array_equal(qp.F[10], [0.0, 0.0, 1.0])
        np.testing.assert_array_equal(qp.F[11], [0.0, 0.0, -1.0])

    def test_infinite_rows_stay_infinite(self):
        from slmpc.mpc import (
            assemble_qp_constraints,
            prediction_matrices,
            stage_constraints,
            trajectory_constraints,
        )

        A, B = np.eye(2), np.array([[0.0], [1.0]])
        stage = stage_constraints(A, B, np.eye(2), -np.inf, 1.0, -1.0, 1.0)
        Gamma, Phi = prediction_matrices(A, B, 2)
        qp = assemble_qp_constraints(trajectory_constraints(stage, 2), Gamma, Phi)

        rhs = qp.rhs(np.array([0.3, -0.2]))

        assert np.isposinf(rhs[[2, 3, 8, 9]]).all()
        assert np.isfinite(rhs[[0, 1, 4, 5]]).all()

    def test_mis_sized_trajectory(self):
        """A trajectory built for another horizon is rejected."""
        from slmpc import DimensionError
        from slmpc.mpc import (
            assemble_qp_constraints,
            stage_constraints,
            trajectory_constraints,
        )

        _, Gamma, Phi = self._setup(horizon=4)
        stage = stage_constraints(np.eye(2), np.ones((2, 1)), np.eye(2), -1, 1, -1, 1)
        short = trajectory_constraints(stage, 3)

        with pytest.raises(DimensionError, match="DD columns"):
            assemble_qp_constraints(short, Gamma, Phi)

    def test_rhs_wrong_state(self):
        from slmpc import DimensionError
        from slmpc.mpc import assemble_qp_constraints

        qp = assemble_qp_constraints(*self._setup())

        with pytest.raises(DimensionError, match="x0"):
            qp.rhs(np.zeros(3))
