"""Taylor-Hood (P2/P1) finite element solver for channel flow.

This module implements the incompressible Navier-Stokes solver with P2
velocity / P1 pressure elements and a semi-Lagrangian (characteristics)
treatment of convection:

1. steady Stokes solve for the initial field (written to ``solution.txt``)
2. the Navier-Stokes operator alpha M + nu K is assembled, stamped and
   factorized once
3. each step assembles the characteristic right-hand side from the previous
   field, stamps the boundary values and back-substitutes (``sol_<t>.txt``)
"""

import logging
import time
from pathlib import Path

import numpy as np
import pyvista as pv

from meshing import build_topology, create_channel_mesh, read_mesh

from ..base import IncompressibleFlowSolver
from ..datastructures import TaylorHoodParameters, TaylorHoodSolverFields
from .assembly import (
    BoundaryConditions,
    ChannelBounds,
    InflowProfile,
    QUAD_WEIGHTS,
    assemble,
    characteristic_rhs,
    stamp_matrix,
    stamp_rhs,
)
from .assembly.element_matrix import DPHI_Q, PHI_Q
from .linear_solvers import direct_solver
from .output import write_triangle_solution

log = logging.getLogger(__name__)

# Split of a P2 triangle into four linear triangles (local node indices)
_SUB_TRIANGLES = np.array([[0, 5, 4], [5, 1, 3], [4, 3, 2], [3, 4, 5]])


class TaylorHoodSolver(IncompressibleFlowSolver):
    """P2/P1 characteristics solver for the channel (backward-facing step) problem.

    Parameters
    ----------
    params : TaylorHoodParameters
        Physics (nu, dt), mesh source (file or structured nx x ny channel),
        boundary labels and output settings.
    """

    Parameters = TaylorHoodParameters

    def __init__(self, **kwargs):
        """Initialize solver: load the mesh and build its P2 topology."""
        super().__init__(**kwargs)
        p = self.params

        self.mesh = self._load_mesh()
        self.n = build_topology(self.mesh, adjacency=p.adjacency, outflow_label=p.outflow_label)

        self.bounds = ChannelBounds.from_mesh(self.mesh)
        self.bc = BoundaryConditions(
            profile=InflowProfile(
                y_min=p.inflow_y_min, y_max=self.bounds.y_max, peak=p.inflow_velocity
            ),
            inflow_label=p.inflow_label,
            wall_labels=p.wall_labels,
        )

        # Allocate internal solver arrays
        self.arrays = TaylorHoodSolverFields.allocate(self.mesh.n_unknowns)

        # Output fields live on the P2 nodes
        coords = self.mesh.coordinates
        self._init_fields(x=coords[:, 0], y=coords[:, 1])

        self.output_dir = Path(p.output_dir) if p.output_dir else None
        self.A = None  # Navier-Stokes operator, stamped
        self._factor = None  # its LU factorization, reused every step

        self.metrics.n_unknowns = self.mesh.n_unknowns

    def _load_mesh(self):
        p = self.params
        if p.mesh_file:
            return read_mesh(p.mesh_file, index_base=p.index_base)
        log.info(f"No mesh file given, using a structured {p.nx}x{p.ny} channel")
        return create_channel_mesh(
            p.nx,
            p.ny,
            Lx=p.Lx,
            Ly=p.Ly,
            inflow_y_min=p.inflow_y_min,
            inflow_label=p.inflow_label,
            wall_label=p.wall_labels[0],
            top_label=p.wall_labels[-1],
            outflow_label=p.outflow_label,
        )

    def _write(self, name: str, x: np.ndarray):
        if self.output_dir is not None:
            write_triangle_solution(self.output_dir / name, self.mesh, x)

    def initialize(self):
        """Solve steady Stokes and prepare the Navier-Stokes operator."""
        p = self.params
        a = self.arrays

        # ═══ Stokes ═══
        t0 = time.time()
        A_stokes = assemble(
            self.mesh, 0.0, p.nu, is_unsteady=False,
            pressure_regularization=p.pressure_regularization,
        )
        stamp_matrix(A_stokes, self.mesh, self.bc)
        a.rhs[:] = 0.0
        stamp_rhs(a.rhs, self.mesh, self.bc)
        t1 = time.time()

        x, _ = direct_solver(A_stokes, a.rhs)
        a.x[:] = x
        t2 = time.time()
        self._write("solution.txt", a.x)
        log.info(f"Stokes solved: assembly {t1 - t0:.3f}s, solve {t2 - t1:.3f}s")

        # ═══ Navier-Stokes operator (fixed alpha) ═══
        self.A = assemble(
            self.mesh, p.alpha, p.nu, is_unsteady=True,
            pressure_regularization=p.pressure_regularization,
        )
        stamp_matrix(self.A, self.mesh, self.bc)
        self._factor = None
        t3 = time.time()

        self.metrics.matrix_nnz = self.A.nnz
        self.metrics.assembly_time_seconds += (t1 - t0) + (t3 - t2)
        self.metrics.solve_time_seconds += t2 - t1

    def step(self, t: int):
        """Perform one characteristics time step.

        Returns
        -------
        x, x_prev : np.ndarray
            New and previous solution vectors
        """
        a = self.arrays  # Shorthand for readability
        p = self.params

        # Swap buffers at start (zero-copy)
        a.swap()

        t0 = time.time()
        characteristic_rhs(self.mesh, a.x_prev, p.alpha, self.bc, self.bounds, out=a.rhs)
        stamp_rhs(a.rhs, self.mesh, self.bc)
        t1 = time.time()

        x, self._factor = direct_solver(self.A, a.rhs, factor=self._factor)
        a.x[:] = x
        t2 = time.time()

        self.metrics.assembly_time_seconds += t1 - t0
        self.metrics.solve_time_seconds += t2 - t1

        self._write(f"sol_{t}.txt", a.x)
        return a.x, a.x_prev

    # =========================================================================
    # Derived quantities
    # =========================================================================

    def _quadrature_velocity(self, x: np.ndarray):
        dofs = self.mesh.dofs
        return x[dofs] @ PHI_Q.T, x[dofs + self.n] @ PHI_Q.T

    def _compute_kinetic_energy(self, x: np.ndarray) -> float:
        """Compute kinetic energy: E = 0.5 * ∫ (u² + v²) dA."""
        u_q, v_q = self._quadrature_velocity(x)
        integrand = (u_q**2 + v_q**2) @ QUAD_WEIGHTS
        return 0.5 * float(np.sum(self.mesh.areas * integrand))

    def _compute_divergence_l2(self, x: np.ndarray) -> float:
        """L2 norm of div u over the domain."""
        mesh = self.mesh
        c = mesh.corner_coordinates
        J00 = (c[:, 2, 1] - c[:, 0, 1])[:, None]
        J01 = (c[:, 0, 1] - c[:, 1, 1])[:, None]
        J10 = (c[:, 0, 0] - c[:, 2, 0])[:, None]
        J11 = (c[:, 1, 0] - c[:, 0, 0])[:, None]

        ue = x[mesh.dofs]
        ve = x[mesh.dofs + self.n]
        dxi, deta = DPHI_Q[:, :, 0].T, DPHI_Q[:, :, 1].T  # (6, 7)

        div = (J00 * (ue @ dxi) + J01 * (ue @ deta) + J10 * (ve @ dxi) + J11 * (ve @ deta))
        div /= 2.0 * mesh.areas[:, None]
        return float(np.sqrt(np.sum(mesh.areas * ((div**2) @ QUAD_WEIGHTS))))

    def _finalize_fields(self):
        """Copy final velocity and P1-interpolated pressure onto the P2 nodes."""
        x = self.arrays.x
        n, nv = self.n, self.mesh.nv
        pressure = x[2 * n : 2 * n + nv]

        self.fields.u[:] = x[:n]
        self.fields.v[:] = x[n : 2 * n]
        self.fields.p[:nv] = pressure
        edges = self.mesh.midpoint_edges
        self.fields.p[nv:] = 0.5 * (pressure[edges[:, 0]] + pressure[edges[:, 1]])

        self.metrics.max_velocity = float(np.max(np.hypot(self.fields.u, self.fields.v)))
        self.metrics.divergence_l2 = self._compute_divergence_l2(x)

    def to_vtk(self) -> pv.UnstructuredGrid:
        """P2 node cloud, each triangle split into four, with solution point data."""
        mesh = self.mesh
        points = np.zeros((self.n, 3))
        points[:, :2] = mesh.coordinates

        sub = mesh.dofs[:, _SUB_TRIANGLES].reshape(-1, 3)
        cells = np.hstack([np.full((sub.shape[0], 1), 3), sub]).ravel()
        celltypes = np.full(sub.shape[0], pv.CellType.TRIANGLE, dtype=np.uint8)
        grid = pv.UnstructuredGrid(cells, celltypes, points)

        grid.point_data["U Velocity"] = self.fields.u.copy()
        grid.point_data["V Velocity"] = self.fields.v.copy()
        grid.point_data["Pressure"] = self.fields.p.copy()
        velocity = np.zeros((self.n, 3))
        velocity[:, 0] = self.fields.u
        velocity[:, 1] = self.fields.v
        grid.point_data["Velocity"] = velocity
        grid.point_data["Velocity Magnitude"] = np.hypot(self.fields.u, self.fields.v)
        return grid
