"""
TriangleMesh2D: Core data layout for the P2/P1 (Taylor-Hood) finite element solver.

This class holds the raw triangulation (vertices, triangles, boundary edges) and,
once ``meshing.topology.build_topology`` has run, the derived P2 information:
edge-midpoint vertices, triangle adjacency and the outflow ("exit") triangles.

Indexing Conventions:
- Vertices are numbered corners first (0 to nv-1), then midpoints in the order
  the topology builder discovers them (nv to n-1).
- Triangle-based arrays (e.g., dofs, areas, corner_coordinates) use triangle
  indexing (0 to nbt-1).
- Local P2 node i of a triangle: 0-2 corners, 3-5 midpoint opposite corner i-3.

Global Degree-of-Freedom Layout:
- [0, n)          x-velocity at P2 node i
- [n, 2n)         y-velocity at P2 node i - n
- [2n, 2n + nv)   pressure at vertex i - 2n

Array Views (built lazily, valid only after the topology builder ran):
- dofs[k, i]               global P2 index of local node i of triangle k
- coordinates[i]           (x, y) of P2 node i
- corner_coordinates[k]    3 x 2 corner coordinates of triangle k
- labels[i]                boundary label of P2 node i
- midpoint_edges[m]        corner pair of midpoint nv + m
- neighbor_candidates[k]   triangle k followed by its neighbours (point location)
"""

from functools import cached_property

import numpy as np

from .errors import TopologyError


class TriangleMesh2D:
    def __init__(self, vertices, triangles, edges):
        # --- Raw triangulation ---
        self.vertices = list(vertices)
        self.triangles = list(triangles)
        self.edges = list(edges)

        # --- Counts (before midpoint derivation) ---
        self.nv = len(self.vertices)
        self.nbt = len(self.triangles)
        self.nbe = len(self.edges)

        # --- Derived by the topology builder ---
        self.neighbors = [[] for _ in range(self.nbt)]
        self.exit_triangles = []
        self.midpoint_edges_list = []
        self.is_enriched = False

    def __call__(self, k: int, i: int) -> int:
        """Global index of local P2 node i of triangle k."""
        return self.triangles[k].dof(i)

    def __getitem__(self, k: int):
        return self.triangles[k]

    def __repr__(self):
        return (
            f"TriangleMesh2D(nv={self.nv}, nbt={self.nbt}, nbe={self.nbe}, "
            f"n={self.n}, enriched={self.is_enriched})"
        )

    @property
    def n(self) -> int:
        """Number of P2 nodes (vertices plus midpoints derived so far)."""
        return len(self.vertices)

    @property
    def n_unknowns(self) -> int:
        return 2 * self.n + self.nv

    @property
    def total_area(self) -> float:
        return float(sum(t.area for t in self.triangles))

    def bounding_box(self):
        """Return (x_min, x_max, y_min, y_max) over the corner vertices."""
        xy = np.array([[v.x, v.y] for v in self.vertices[: self.nv]])
        return xy[:, 0].min(), xy[:, 0].max(), xy[:, 1].min(), xy[:, 1].max()

    def _require_topology(self):
        if not self.is_enriched:
            raise TopologyError("Mesh has no P2 midpoints yet; run build_topology() first")

    # ------------------------------------------------------------------
    # Array views
    # ------------------------------------------------------------------

    @cached_property
    def dofs(self) -> np.ndarray:
        self._require_topology()
        return np.array([t.dofs for t in self.triangles], dtype=np.int64).reshape(self.nbt, 6)

    @cached_property
    def coordinates(self) -> np.ndarray:
        self._require_topology()
        return np.array([[v.x, v.y] for v in self.vertices], dtype=np.float64)

    @cached_property
    def corner_coordinates(self) -> np.ndarray:
        return np.array([t.corner_array() for t in self.triangles], dtype=np.float64).reshape(
            self.nbt, 3, 2
        )

    @cached_property
    def areas(self) -> np.ndarray:
        return np.array([t.area for t in self.triangles], dtype=np.float64)

    @cached_property
    def labels(self) -> np.ndarray:
        self._require_topology()
        return np.array([v.label for v in self.vertices], dtype=np.int64)

    @cached_property
    def midpoint_edges(self) -> np.ndarray:
        self._require_topology()
        return np.array(self.midpoint_edges_list, dtype=np.int64).reshape(-1, 2)

    @cached_property
    def neighbor_candidates(self):
        self._require_topology()
        return [np.array([k] + list(nb), dtype=np.int64) for k, nb in enumerate(self.neighbors)]

    @cached_property
    def exit_candidates(self) -> np.ndarray:
        self._require_topology()
        return np.array(self.exit_triangles, dtype=np.int64)
