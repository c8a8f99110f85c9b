"""
Tests for MPC Dynamics Models.

Tests covering:
1. RK4 integration
2. Pendulum and gantry crane plants
3. LinearSystem creation, simulation and discretization
4. Successive linearization
"""

import pytest
import numpy as np


def _numeric_jacobian(f, x, u, eps=1e-6):
    """Central-difference Jacobians of f at (x, u)."""
    n, m = len(x), len(u)
    Ac = np.zeros((n, n))
    Bc = np.zeros((n, m))
    for i in range(n):
        dx = np.zeros(n)
        dx[i] = eps
        Ac[:, i] = (f(x + dx, u) - f(x - dx, u)) / (2 * eps)
    for j in range(m):
        du = np.zeros(m)
        du[j] = eps
        Bc[:, j] = (f(x, u + du) - f(x, u - du)) / (2 * eps)
    return Ac, Bc


class TestRK4:
    """Test the fixed-step integrator."""

    def test_exponential_decay(self):
        """One step of dx/dt = -x matches exp(-dt)."""
        from slmpc.mpc import rk4_step

        x_next, _ = rk4_step(lambda x, u: -x, np.array([1.0]), np.zeros(1), 0.1)

        np.testing.assert_allclose(x_next, [np.exp(-0.1)], rtol=1e-6)

    def test_slope_is_average(self):
        """Returned slope reproduces the step."""
        from slmpc.mpc import rk4_step

        x = np.array([0.3, -0.2])
        x_next, dx = rk4_step(lambda x, u: np.array([x[1], -x[0] + u[0]]), x, np.array([1.0]), 0.05)

        np.testing.assert_allclose(x + 0.05 * dx, x_next)

    def test_non_finite_propagates(self, pendulum):
        """Integrator never clamps non-finite values."""
        x_next, dx = pendulum.integrate(np.array([np.nan, 0.0]), np.zeros(1), 0.001)

        assert np.isnan(x_next).any()
        assert np.isnan(dx).any()

    def test_deterministic(self, pendulum):
        """Same inputs give the same step."""
        x = np.array([0.4, 1.0])
        u = np.array([3.0])

        a, _ = pendulum.integrate(x, u, 0.001)
        b, _ = pendulum.integrate(x, u, 0.001)

        np.testing.assert_array_equal(a, b)


class TestPendulum:
    """Test the damped pendulum plant."""

    def test_derivative(self, pendulum):
        """Derivative at hand-computed points."""
        np.testing.assert_allclose(
            pendulum.derivative(np.array([0.0, 0.0]), np.array([1.0])),
            [0.0, 1.0],
        )
        np.testing.assert_allclose(
            pendulum.derivative(np.array([np.pi / 2, 2.0]), np.array([0.0])),
            [2.0, -98.1 - 0.4],
        )

    def test_jacobian_matches_finite_difference(self, pendulum):
        """Closed-form Jacobian equals numeric differentiation."""
        x = np.array([0.5, -1.5])
        u = np.array([10.0])

        Ac, Bc = pendulum.jacobian(x, u)
        Ac_num, Bc_num = _numeric_jacobian(pendulum.derivative, x, u)

        np.testing.assert_allclose(Ac, Ac_num, atol=1e-5)
        np.testing.assert_allclose(Bc, Bc_num, atol=1e-5)

    def test_input_gain(self):
        """Input scaling enters B."""
        from slmpc.mpc import Pendulum

        plant = Pendulum(input_gain=2.5)
        _, Bc = plant.jacobian(np.zeros(2), np.zeros(1))

        np.testing.assert_allclose(Bc, [[0.0], [2.5]])

    def test_invalid_length(self):
        """Non-positive length is rejected."""
        from slmpc import InvalidInputError
        from slmpc.mpc import Pendulum

        with pytest.raises(InvalidInputError, match="length"):
            Pendulum(l=0.0)

    def test_state_dimension(self, pendulum):
        """Wrong state size is a dimension error."""
        from slmpc import DimensionError

        with pytest.raises(DimensionError, match="state"):
            pendulum.integrate(np.zeros(3), np.zeros(1), 0.001)

        with pytest.raises(DimensionError, match="input"):
            pendulum.integrate(np.zeros(2), np.zeros(2), 0.001)


class TestGantryCrane:
    """Test the gantry crane plant."""

    def test_dimensions(self, crane):
        """Eight states, two inputs."""
        assert crane.n_states == 8
        assert crane.n_inputs == 2

    def test_jacobian_entries(self, crane):
        """Spot-check the continuous model."""
        Ac, Bc = crane.jacobian(np.zeros(8), np.zeros(2))
        Mx = crane.M + crane.MR

        assert Ac[1, 4] == pytest.approx(crane.g * crane.m / Mx)
        assert Ac[5, 4] == pytest.approx(-crane.g * (Mx + crane.m) / (crane.r * Mx))
        assert Ac[7, 6] == pytest.approx(-crane.g * (crane.M + crane.m) / (crane.M * crane.r))
        assert Bc[1, 0] == pytest.approx(crane.Vm / Mx)
        assert Bc[7, 1] == pytest.approx(-crane.Vm / (crane.M * crane.r))

    def test_derivative_is_linear(self, crane):
        """Derivative equals Ac x + Bc u."""
        rng = np.random.default_rng(0)
        x = rng.standard_normal(8)
        u = rng.standard_normal(2)

        Ac, Bc = crane.jacobian(x, u)

        np.testing.assert_allclose(crane.derivative(x, u), Ac @ x + Bc @ u)

    def test_positions_do_not_feed_back(self, crane):
        """Cart positions do not appear in the dynamics."""
        Ac, _ = crane.jacobian(np.zeros(8), np.zeros(2))

        np.testing.assert_array_equal(Ac[:, 0], 0.0)
        np.testing.assert_array_equal(Ac[:, 2], 0.0)


class TestLinearSystem:
    """Test LinearSystem class."""

    def test_basic_creation(self):
        """Create basic linear system."""
        from slmpc.mpc import LinearSystem

        A = np.array([[1, 0.1], [0, 1]])
        B = np.array([[0.005], [0.1]])

        system = LinearSystem(A, B)

        assert system.n_states == 2
        assert system.n_inputs == 1
        assert system.n_outputs == 2

    def test_invalid_dimensions(self):
        """Error on invalid dimensions."""
        from slmpc import DimensionError
        from slmpc.mpc import LinearSystem

        with pytest.raises(DimensionError, match="B rows"):
            LinearSystem(np.eye(2), np.ones((3, 1)))


class TestDiscretization:
    """Test continuous-to-discrete conversion."""

    def test_euler_discretization(self):
        """Euler discretization."""
        from slmpc.mpc import LinearSystem

        system = LinearSystem.from_continuous(np.array([[0]]), np.array([[1]]), 0.1, method="euler")

        np.testing.assert_allclose(system.A, [[1]])
        np.testing.assert_allclose(system.B, [[0.1]])

    def test_zoh_discretization(self):
        """Zero-order hold is exact for the double integrator."""
        from slmpc.mpc import LinearSystem

        dt = 0.1
        Ac = np.array([[0, 1], [0, 0]])
        Bc = np.array([[0], [1]])

        system = LinearSystem.from_continuous(Ac, Bc, dt, method="zoh")

        np.testing.assert_allclose(system.A, [[1, dt], [0, 1]], atol=1e-12)
        np.testing.assert_allclose(system.B, [[0.5 * dt**2], [dt]], atol=1e-12)

    def test_invalid_method(self):
        """Error on invalid discretization method."""
        from slmpc import InvalidInputError
        from slmpc.mpc import LinearSystem

        with pytest.raises(InvalidInputError, match="Unknown method"):
            LinearSystem.from_continuous(np.array([[0]]), np.array([[1]]), 0.1, method="tustin")

    def test_invalid_sample_time(self):
        """Sample time must be positive."""
        from slmpc import InvalidInputError
        from slmpc.mpc import LinearSystem

        with pytest.raises(InvalidInputError, match="sampling time"):
            LinearSystem.from_continuous(np.array([[0]]), np.array([[1]]), 0.0)


class TestLinearize:
    """Test successive linearization."""

    def test_euler_linearization(self, pendulum):
        """Euler mode is I + Ac dt, Bc dt."""
        from slmpc.mpc import linearize

        x = np.array([0.3, 0.5])
        u = np.array([2.0])
        dt = 0.001

        system = linearize(pendulum, x, u, dt, method="euler")
        Ac, Bc = pendulum.jacobian(x, u)

        np.testing.assert_allclose(system.A, np.eye(2) + Ac * dt)
        np.testing.assert_allclose(system.B, Bc * dt)

    @pytest.mark.parametrize("method", ["zoh", "euler"])
    def test_first_order_consistency(self, pendulum, method):
        """One discrete step approaches dt * (Ac x + Bc u) as dt -> 0."""
        from slmpc.mpc import linearize

        x = np.array([0.5, 1.0])
        u = np.array([20.0])
        Ac, Bc = pendulum.jacobian(x, u)
        slope = Ac @ x + Bc @ u

        errors = []
        for dt in (1e-2, 1e-3, 1e-4, 1e-5):
            system = linearize(pendulum, x, u, dt, method=method)
            step = system.A @ x + system.B @ u - x
            errors.append(np.linalg.norm(step / dt - slope))

        if method == "zoh":
            assert all(e2 < e1 for e1, e2 in zip(errors, errors[1:]))
        assert errors[-1] < 1e-2

    def test_zoh_close_to_euler(self, pendulum):
        """Both discretizations agree to first order."""
        from slmpc.mpc import linearize

        x = np.array([0.2, 0.0])
        u = np.zeros(1)
        dt = 1e-4

        zoh = linearize(pendulum, x, u, dt, method="zoh")
        euler = linearize(pendulum, x, u, dt, method="euler")

        np.testing.assert_allclose(zoh.A, euler.A, atol=1e-5)
        np.testing.assert_allclose(zoh.B, euler.B, atol=1e-7)

    def test_crane_uses_same_linearizer(self, crane):
        """The crane is sampled by the shared ZOH discretization."""
        from scipy.linalg import expm
        from slmpc.mpc import linearize

        dt = 0.02
        system = linearize(crane, np.zeros(8), np.zeros(2), dt)
        Ac, _ = crane.jacobian(np.zeros(8), np.zeros(2))

        np.testing.assert_allclose(system.A, expm(Ac * dt), atol=1e-12)

    def test_non_finite_state(self, pendulum):
        """Non-finite operating point is a divergence."""
        from slmpc import NumericDivergenceError
        from slmpc.mpc import linearize

        with pytest.raises(NumericDivergenceError):
            linearize(pendulum, np.array([np.inf, 0.0]), np.zeros(1), 0.001)

    def test_linearize_along_constant_model(self, crane):
        """A linear plant gives the same model at every step."""
        from slmpc.mpc import linearize, linearize_along

        u_nom = np.ones((5, 2))
        A, B = linearize_along(crane, np.zeros(8), u_nom, 0.02)
        ref = linearize(crane, np.zeros(8), np.zeros(2), 0.02)

        assert A.shape == (5, 8, 8)
        assert B.shape == (5, 8, 2)
        for k in range(5):
            np.testing.assert_allclose(A[k], ref.A)
            np.testing.assert_allclose(B[k], ref.B)

    def test_linearize_along_follows_trajectory(self, pendulum):
        """Each model is taken at the integrated nominal state."""
        from slmpc.mpc import linearize, linearize_along

        x = np.array([0.1, 0.0])
        u_nom = np.full((3, 1), 50.0)
        dt = 0.01

        A, _ = linearize_along(pendulum, x, u_nom, dt)

        np.testing.assert_allclose(A[0], linearize(pendulum, x, u_nom[0], dt).A)
        x1, _ = pendulum.integrate(x, u_nom[0], dt)
        np.testing.assert_allclose(A[1], linearize(pendulum, x1, u_nom[1], dt).A)
        assert not np.allclose(A[0], A[2])
