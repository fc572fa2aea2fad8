"""Tests for the Taylor-Hood channel-flow solver."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from meshing import MeshLoadError, create_channel_mesh
from solvers import TaylorHoodParameters, TaylorHoodSolver


@pytest.fixture
def poiseuille_params(small_channel_params):
    """Inlet over the whole left side: the exact solution is Poiseuille flow."""
    return {**small_channel_params, "inflow_y_min": 0.0}


def _velocity(solver, x):
    n = solver.n
    return x[:n], x[n : 2 * n]


class TestTaylorHoodSolverInitialization:
    """Tests for solver initialization."""

    def test_solver_creates(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        assert isinstance(solver.params, TaylorHoodParameters)
        assert solver.mesh.is_enriched
        assert solver.arrays.x.shape == (solver.mesh.n_unknowns,)
        assert len(solver.fields.x) == solver.n

    def test_alpha_is_inverse_time_step(self):
        assert TaylorHoodParameters(dt=0.1).alpha == pytest.approx(10.0)

    def test_wall_labels_normalized(self):
        params = TaylorHoodParameters(wall_labels=[20, 40])
        assert params.wall_labels == (20, 40)
        assert params.to_mlflow()["wall_labels"] == "20,40"

    def test_invalid_time_step(self):
        with pytest.raises(ValueError, match="dt"):
            TaylorHoodParameters(dt=0.0)

    def test_missing_mesh_file(self, tmp_path):
        with pytest.raises(MeshLoadError):
            TaylorHoodSolver(mesh_file=str(tmp_path / "missing.msh"))


class TestStokes:
    """Steady Stokes initial field."""

    def test_reproduces_poiseuille(self, poiseuille_params):
        """u = 4 y (1 - y), v = 0, p = 8 nu (Lx - x) are exact in P2/P1."""
        solver = TaylorHoodSolver(**poiseuille_params)
        solver.initialize()

        xy = solver.mesh.coordinates
        u, v = _velocity(solver, solver.arrays.x)
        assert np.allclose(u, 4 * xy[:, 1] * (1 - xy[:, 1]), atol=1e-6)
        assert np.allclose(v, 0.0, atol=1e-6)

        nv = solver.mesh.nv
        p = solver.arrays.x[2 * solver.n :]
        nu, Lx = poiseuille_params["nu"], poiseuille_params["Lx"]
        assert np.allclose(p, 8 * nu * (Lx - xy[:nv, 0]), atol=1e-4)

    def test_inflow_profile_on_inlet(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        solver.initialize()

        xy = solver.mesh.coordinates
        u, v = _velocity(solver, solver.arrays.x)
        inlet = solver.mesh.labels == 10
        assert inlet.sum() > 0
        y = xy[inlet, 1]
        assert np.allclose(u[inlet], 16 * (1 - y) * (y - 0.5), atol=1e-10)
        walls = np.isin(solver.mesh.labels, (20, 40))
        assert np.allclose(u[walls], 0.0, atol=1e-10)
        assert np.allclose(v[walls | inlet], 0.0, atol=1e-10)

    def test_writes_solution_file(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        solver.initialize()
        table = np.loadtxt(Path(small_channel_params["output_dir"]) / "solution.txt")
        assert table.shape == (solver.mesh.nbt, 15)


class TestNavierStokes:
    """Time stepping."""

    def test_poiseuille_is_steady(self, poiseuille_params):
        solver = TaylorHoodSolver(**poiseuille_params)
        solver.solve()

        xy = solver.mesh.coordinates
        u, v = _velocity(solver, solver.arrays.x)
        assert np.allclose(u, 4 * xy[:, 1] * (1 - xy[:, 1]), atol=1e-6)
        assert np.allclose(v, 0.0, atol=1e-6)
        assert max(solver.time_series.velocity_change) < 1e-6
        assert solver.metrics.divergence_l2 < 1e-6

    def test_step_files_and_metrics(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        solver.solve()

        out = Path(small_channel_params["output_dir"])
        for name in ("solution.txt", "sol_0.txt", "sol_1.txt"):
            assert (out / name).exists()
        assert not (out / "sol_2.txt").exists()

        m = solver.metrics
        assert m.steps == 2
        assert m.n_unknowns == 2 * solver.n + solver.mesh.nv
        assert m.matrix_nnz > 0
        assert m.final_kinetic_energy > 0
        assert 1.0 - 1e-9 <= m.max_velocity < 1.5
        assert len(solver.time_series) == 2
        assert np.all(np.isfinite(solver.arrays.x))

    def test_factor_is_reused(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        solver.initialize()
        solver.step(0)
        factor = solver._factor
        solver.step(1)
        assert solver._factor is factor

    def test_incidence_adjacency_gives_same_result(self, small_channel_params):
        a = TaylorHoodSolver(**small_channel_params)
        b = TaylorHoodSolver(**small_channel_params, adjacency="incidence")
        a.solve()
        b.solve()
        assert np.allclose(a.arrays.x, b.arrays.x)

    def test_mesh_file_input(self, small_channel_params, write_mesh_file):
        path = write_mesh_file(create_channel_mesh(8, 4, Lx=2.0, Ly=1.0, inflow_y_min=0.5))
        from_file = TaylorHoodSolver(**small_channel_params, mesh_file=str(path))
        structured = TaylorHoodSolver(**small_channel_params)
        from_file.solve()
        structured.solve()
        assert np.allclose(from_file.arrays.x, structured.arrays.x)


class TestResults:
    """Fields, VTK export and HDF5 storage."""

    @pytest.fixture
    def solved(self, small_channel_params):
        solver = TaylorHoodSolver(**small_channel_params)
        solver.solve()
        return solver

    def test_fields(self, solved):
        f = solved.fields
        n, nv = solved.n, solved.mesh.nv
        assert f.to_dataframe().shape == (n, 5)
        assert np.array_equal(f.p[:nv], solved.arrays.x[2 * n :])
        edges = solved.mesh.midpoint_edges
        assert np.allclose(f.p[nv:], 0.5 * (f.p[edges[:, 0]] + f.p[edges[:, 1]]))

    def test_to_vtk(self, solved):
        grid = solved.to_vtk()
        assert grid.n_points == solved.n
        assert grid.n_cells == 4 * solved.mesh.nbt
        assert "Velocity" in grid.point_data
        assert np.allclose(grid.point_data["U Velocity"], solved.fields.u)

    def test_save_hdf5(self, solved, tmp_path):
        path = tmp_path / "run.h5"
        solved.save(path)

        metrics = pd.read_hdf(path, "metrics")
        assert metrics["steps"].iloc[0] == 2
        assert len(pd.read_hdf(path, "time_series")) == 2
        assert len(pd.read_hdf(path, "fields")) == solved.n
        assert pd.read_hdf(path, "params")["method"].iloc[0] == "FEM-P2P1-Characteristics"
