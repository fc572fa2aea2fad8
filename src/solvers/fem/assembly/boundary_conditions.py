"""Dirichlet velocity conditions by the big-penalty method.

For every P2 node labelled inflow or wall, the diagonal entries of both
velocity components are overwritten with PENALTY and the right-hand side is
set to ``value * PENALTY``; the solve then returns the prescribed value to
working precision. Overwriting (not adding) makes stamping idempotent.
Outflow nodes are left free (natural condition).
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

log = logging.getLogger(__name__)

PENALTY = 1e30


@dataclass(frozen=True)
class InflowProfile:
    """Parabolic inflow 4 U (y_max - y)(y - y_min) / (y_max - y_min)^2.

    With the defaults this is 16 (1 - y)(y - 0.5).
    """

    y_min: float = 0.5
    y_max: float = 1.0
    peak: float = 1.0

    def __call__(self, y):
        return 4.0 * self.peak * (self.y_max - y) * (y - self.y_min) / (self.y_max - self.y_min) ** 2

    def clamp(self, y: float) -> float:
        """Clamp y into the inflow span [y_min, y_max]."""
        return min(max(y, self.y_min), self.y_max)


@dataclass(frozen=True)
class BoundaryConditions:
    """Label-driven velocity boundary data."""

    profile: InflowProfile = InflowProfile()
    inflow_label: int = 10
    wall_labels: Tuple[int, ...] = (20, 40)

    @property
    def dirichlet_labels(self) -> Tuple[int, ...]:
        return (self.inflow_label,) + tuple(self.wall_labels)

    def dirichlet_nodes(self, mesh) -> np.ndarray:
        """Sorted P2 node indices carrying an inflow or wall label."""
        return np.flatnonzero(np.isin(mesh.labels, self.dirichlet_labels))

    def values(self, mesh, nodes):
        """Prescribed (u, v) at `nodes`."""
        y = mesh.coordinates[nodes, 1]
        u = np.where(mesh.labels[nodes] == self.inflow_label, self.profile(y), 0.0)
        return u, np.zeros_like(u)


def _diagonal_positions(A, rows):
    """Positions in A.data of the diagonal entries (i, i); -1 where absent."""
    positions = np.full(len(rows), -1, dtype=np.int64)
    for m, i in enumerate(rows):
        start, end = A.indptr[i], A.indptr[i + 1]
        pos = start + np.searchsorted(A.indices[start:end], i)
        if pos < end and A.indices[pos] == i:
            positions[m] = pos
    return positions


def stamp_matrix(A, mesh, bc: BoundaryConditions) -> int:
    """Overwrite velocity diagonals of Dirichlet nodes in the CSC matrix A in place.

    Returns the number of stamped diagonal entries.
    """
    nodes = bc.dirichlet_nodes(mesh)
    rows = np.concatenate([nodes, nodes + mesh.n])
    positions = _diagonal_positions(A, rows)

    missing = rows[positions < 0]
    if missing.size:
        log.warning(f"{missing.size} Dirichlet rows have no diagonal entry, left unstamped")

    positions = positions[positions >= 0]
    A.data[positions] = PENALTY
    return int(positions.size)


def stamp_rhs(b, mesh, bc: BoundaryConditions):
    """Set the Dirichlet right-hand side entries of b in place."""
    nodes = bc.dirichlet_nodes(mesh)
    u, v = bc.values(mesh, nodes)
    b[nodes] = u * PENALTY
    b[nodes + mesh.n] = v * PENALTY
    return b


def apply_dirichlet(A, b, mesh, bc: BoundaryConditions):
    """Stamp both the matrix and the right-hand side."""
    stamped = stamp_matrix(A, mesh, bc)
    stamp_rhs(b, mesh, bc)
    log.debug(f"Stamped {stamped} Dirichlet diagonal entries")
    return A, b
