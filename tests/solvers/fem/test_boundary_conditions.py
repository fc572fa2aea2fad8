"""Tests for big-penalty Dirichlet stamping."""

import numpy as np
import pytest

from solvers.fem.assembly import (
    PENALTY,
    BoundaryConditions,
    InflowProfile,
    apply_dirichlet,
    assemble,
    stamp_matrix,
    stamp_rhs,
)


@pytest.fixture
def square_bc():
    """Inlet over the whole left side of the unit square, peak 1."""
    return BoundaryConditions(profile=InflowProfile(y_min=0.0, y_max=1.0, peak=1.0))


class TestInflowProfile:
    """Parabolic inflow."""

    def test_default_is_step_profile(self):
        profile = InflowProfile()
        assert profile(0.75) == pytest.approx(1.0)
        assert profile(0.75) == pytest.approx(16 * (1 - 0.75) * (0.75 - 0.5))
        assert profile(0.5) == 0.0
        assert profile(1.0) == 0.0

    def test_vectorized(self):
        y = np.linspace(0, 1, 5)
        assert np.allclose(InflowProfile(0.0, 1.0, 2.0)(y), 8 * y * (1 - y))

    def test_clamp(self):
        profile = InflowProfile()
        assert profile.clamp(0.3) == 0.5
        assert profile.clamp(1.2) == 1.0
        assert profile.clamp(0.7) == 0.7


class TestStamping:
    """Matrix and right-hand side stamping on the unit square."""

    def test_dirichlet_nodes(self, unit_square, square_bc):
        """Corner 1 ends up labelled outflow and is left free."""
        nodes = square_bc.dirichlet_nodes(unit_square)
        assert 1 not in nodes
        assert {0, 2, 3} <= set(nodes)
        assert np.all(unit_square.labels[nodes] != 30)
        assert np.all(unit_square.labels[nodes] != 0)

    def test_diagonal_overwritten(self, unit_square, square_bc):
        A = assemble(unit_square, 10.0, 0.0025)
        n = unit_square.n
        stamped = stamp_matrix(A, unit_square, square_bc)
        nodes = square_bc.dirichlet_nodes(unit_square)

        assert stamped == 2 * len(nodes)
        diag = A.diagonal()
        assert np.all(diag[nodes] == PENALTY)
        assert np.all(diag[nodes + n] == PENALTY)
        assert diag[1] < PENALTY
        assert np.all(diag[2 * n :] < 0)

    def test_rhs_values(self, unit_square, square_bc):
        n = unit_square.n
        b = np.zeros(unit_square.n_unknowns)
        stamp_rhs(b, unit_square, square_bc)

        xy = unit_square.coordinates
        for i in square_bc.dirichlet_nodes(unit_square):
            expected = 4 * xy[i, 1] * (1 - xy[i, 1]) if unit_square.labels[i] == 10 else 0.0
            assert b[i] == pytest.approx(expected * PENALTY)
            assert b[i + n] == 0.0

        # the left-edge midpoint (0, 0.5) carries the peak
        left_mid = np.flatnonzero((xy[:, 0] == 0) & (xy[:, 1] == 0.5))[0]
        assert b[left_mid] == pytest.approx(PENALTY)

    def test_idempotent(self, unit_square, square_bc):
        """Stamping twice gives the same system as stamping once."""
        A1 = assemble(unit_square, 10.0, 0.0025)
        b1 = np.ones(unit_square.n_unknowns)
        apply_dirichlet(A1, b1, unit_square, square_bc)

        A2 = A1.copy()
        b2 = b1.copy()
        apply_dirichlet(A2, b2, unit_square, square_bc)

        assert np.array_equal(A1.data, A2.data)
        assert np.array_equal(A1.indices, A2.indices)
        assert np.array_equal(b1, b2)

    def test_solution_honours_boundary_values(self, channel_mesh):
        """Solving the stamped Stokes system returns the prescribed values."""
        from solvers.fem.linear_solvers import direct_solver

        bc = BoundaryConditions()
        A = assemble(channel_mesh, 0.0, 0.0025, is_unsteady=False)
        b = np.zeros(channel_mesh.n_unknowns)
        apply_dirichlet(A, b, channel_mesh, bc)
        x, _ = direct_solver(A, b)

        n = channel_mesh.n
        nodes = bc.dirichlet_nodes(channel_mesh)
        u, v = bc.values(channel_mesh, nodes)
        assert np.allclose(x[nodes], u, atol=1e-12)
        assert np.allclose(x[nodes + n], v, atol=1e-12)
