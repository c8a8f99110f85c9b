"""
pytest configuration and fixtures for slmpc tests.
"""

import pytest
import numpy as np


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def pendulum():
    """Damped pendulum with the reference parameters."""
    from slmpc.mpc import Pendulum

    return Pendulum(g=9.81, l=0.1, b=0.2)


@pytest.fixture
def crane():
    """Gantry crane with default parameters."""
    from slmpc.mpc import GantryCrane

    return GantryCrane()


@pytest.fixture
def pendulum_config():
    """Short-horizon pendulum tuning."""
    from slmpc.mpc import MPCConfig

    return MPCConfig(
        horizon=10,
        dt=0.001,
        t_final=0.02,
        Q=np.diag([10000.0, 1.0]),
        R=np.array([[1e-5]]),
        Dcon=np.array([[0.0, 1.0]]),
        cl=-4.0,
        ch=4.0,
        u_min=-20.0,
        u_max=80.0,
        x0=np.array([0.001, 0.0]),
    )


@pytest.fixture
def simple_qp():
    """
    Simple QP problem for testing.

    minimize: (1/2)(2x^2 + 2y^2) - 2x - 4y
    subject to: x + y <= 1

    Unconstrained optimum (1, 2) violates the constraint; the solution
    is (0, 1) with multiplier 2.
    """
    return {
        "H": np.array([[2.0, 0.0], [0.0, 2.0]]),
        "f": np.array([-2.0, -4.0]),
        "F": np.array([[1.0, 1.0]]),
        "rhs": np.array([1.0]),
        "expected_x": np.array([0.0, 1.0]),
        "expected_multiplier": 2.0,
    }


@pytest.fixture
def random_qp():
    """Generate a random strictly convex, feasible QP."""
    rng = np.random.default_rng(42)
    n, m = 10, 30

    M = rng.standard_normal((n, n))
    H = M @ M.T + np.eye(n)
    f = 10 * rng.standard_normal(n)
    F = rng.standard_normal((m, n))
    x_feas = rng.standard_normal(n)
    rhs = F @ x_feas + rng.uniform(0.1, 1.0, m)

    return {"H": H, "f": f, "F": F, "rhs": rhs}


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
