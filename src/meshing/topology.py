"""Mesh topology builder: P2 midpoints, boundary labels and triangle adjacency.

``build_topology`` enriches a raw ``TriangleMesh2D`` in place:

1. Boundary labels are propagated from the boundary edges to their endpoints.
   A corner touched by two boundary segments keeps the label of the edge
   listed last (last write wins).
2. Every triangle edge gets one midpoint vertex, shared by the (at most two)
   triangles owning that edge. New midpoints are numbered from nv upwards in
   discovery order and inherit the label of the boundary edge they sit on.
3. Triangles with an outflow edge are collected in ``mesh.exit_triangles``.
4. Triangle adjacency (shared edge) is derived either from the edge-owner map
   or from per-vertex incidence lists. Both give sorted, symmetric lists.
"""

import logging

from .errors import TopologyError
from .geometry import Vertex, edge_key

log = logging.getLogger(__name__)

OUTFLOW_LABEL = 30
ADJACENCY_METHODS = ("edge", "incidence")


def propagate_boundary_labels(mesh):
    """Label boundary-edge endpoints and return the edge-key -> label map."""
    boundary = {}
    for edge in mesh.edges:
        key = edge.key
        previous = boundary.get(key)
        if previous is not None and previous != edge.label:
            raise TopologyError(
                f"Boundary edge {key} listed with conflicting labels {previous} and {edge.label}"
            )
        boundary[key] = edge.label
        for v in edge.vertices:
            if v.label not in (0, edge.label):
                log.debug(f"Vertex {v.index}: label {v.label} overwritten by {edge.label}")
            v.label = edge.label
    return boundary


def _edge_adjacency(owners, nbt):
    neighbors = [set() for _ in range(nbt)]
    for tris in owners.values():
        if len(tris) == 2:
            k, j = tris
            neighbors[k].add(j)
            neighbors[j].add(k)
    return [sorted(nb) for nb in neighbors]


def _incidence_adjacency(mesh):
    for v in mesh.vertices[: mesh.nv]:
        v.triangles.clear()
    for tri in mesh.triangles:
        for v in tri.corners:
            v.triangles.append(tri.index)

    neighbors = []
    for tri in mesh.triangles:
        shared = {}
        for v in tri.corners:
            for j in v.triangles:
                if j != tri.index:
                    shared[j] = shared.get(j, 0) + 1
        # Sharing two corners means sharing an edge
        neighbors.append(sorted(j for j, count in shared.items() if count >= 2))
    return neighbors


def build_topology(mesh, adjacency: str = "edge", outflow_label: int = OUTFLOW_LABEL) -> int:
    """Derive midpoints, labels, exit triangles and adjacency.

    Parameters
    ----------
    mesh : TriangleMesh2D
        Raw mesh as produced by a reader; enriched in place.
    adjacency : str
        "edge" (edge-owner map) or "incidence" (corner-incidence lists).
    outflow_label : int
        Boundary label whose triangles form the exit set used by
        characteristic tracing.

    Returns
    -------
    int
        Total number of P2 nodes, n = nv + number of midpoints.
    """
    if adjacency not in ADJACENCY_METHODS:
        raise ValueError(f"Unknown adjacency method: {adjacency}. Use 'edge' or 'incidence'")
    if mesh.is_enriched:
        raise TopologyError("Topology has already been built for this mesh")

    boundary = propagate_boundary_labels(mesh)

    n = mesh.nv
    midpoints = {}  # edge key -> midpoint vertex
    owners = {}  # edge key -> owning triangle indices

    for tri in mesh.triangles:
        for a in range(3):
            v1, v2 = tri.edge(a)
            key = edge_key(v1.index, v2.index)

            tris = owners.setdefault(key, [])
            if len(tris) == 2:
                raise TopologyError(
                    f"Edge {key} is shared by more than two triangles "
                    f"({tris[0]}, {tris[1]}, {tri.index})"
                )
            tris.append(tri.index)

            label = boundary.get(key, 0)
            mid = midpoints.get(key)
            if mid is None:
                mid = Vertex(v1.point.midpoint(v2.point), index=n, label=label)
                n += 1
                midpoints[key] = mid
                mesh.vertices.append(mid)
                mesh.midpoint_edges_list.append(key)
            tri.midpoints.append(mid)

            if label == outflow_label and tri.index not in mesh.exit_triangles[-1:]:
                mesh.exit_triangles.append(tri.index)

    dangling = set(boundary) - set(owners)
    if dangling:
        raise TopologyError(f"Boundary edges not on any triangle: {sorted(dangling)[:5]}")

    if adjacency == "edge":
        mesh.neighbors = _edge_adjacency(owners, mesh.nbt)
    else:
        mesh.neighbors = _incidence_adjacency(mesh)

    mesh.is_enriched = True
    log.info(
        f"Topology: nv={mesh.nv}, midpoints={n - mesh.nv}, n={n}, "
        f"exit triangles={len(mesh.exit_triangles)}"
    )
    return n
