"""Structured triangulation of a rectangular channel.

Each of the nx x ny cells is split along its (i, j) -> (i+1, j+1) diagonal
into two counter-clockwise triangles. Boundary edges are labelled:

- left edge, y >= inflow_y_min : inflow_label (10)
- left edge, y <  inflow_y_min : wall_label (20), the step below the inlet
- bottom wall                  : wall_label (20)
- top wall                     : top_label (40)
- right edge                   : outflow_label (30)

Edges are listed outflow first and walls last, so a corner shared by a wall
and the outflow or the inlet ends up with the wall label.
"""

import numpy as np

from .geometry import BoundaryEdge, Point, Triangle, Vertex
from .mesh_data import TriangleMesh2D


def create_channel_mesh(
    nx: int,
    ny: int,
    Lx: float = 10.0,
    Ly: float = 1.0,
    inflow_y_min: float = 0.5,
    inflow_label: int = 10,
    wall_label: int = 20,
    top_label: int = 40,
    outflow_label: int = 30,
) -> TriangleMesh2D:
    """Create a raw (not yet enriched) channel mesh on [0, Lx] x [0, Ly]."""
    if nx < 1 or ny < 1:
        raise ValueError(f"Need at least one cell in each direction, got nx={nx}, ny={ny}")

    xs = np.linspace(0.0, Lx, nx + 1)
    ys = np.linspace(0.0, Ly, ny + 1)

    def vid(i, j):
        return j * (nx + 1) + i

    vertices = [
        Vertex(Point(float(xs[i]), float(ys[j])), index=vid(i, j))
        for j in range(ny + 1)
        for i in range(nx + 1)
    ]

    triangles = []
    for j in range(ny):
        for i in range(nx):
            v00, v10 = vertices[vid(i, j)], vertices[vid(i + 1, j)]
            v01, v11 = vertices[vid(i, j + 1)], vertices[vid(i + 1, j + 1)]
            triangles.append(Triangle.build(len(triangles), (v00, v10, v11)))
            triangles.append(Triangle.build(len(triangles), (v00, v11, v01)))

    segments = []
    # Outflow
    for j in range(ny):
        segments.append((vid(nx, j), vid(nx, j + 1), outflow_label))
    # Inlet and the step below it
    for j in range(ny):
        y_mid = 0.5 * (ys[j] + ys[j + 1])
        label = inflow_label if y_mid >= inflow_y_min else wall_label
        segments.append((vid(0, j), vid(0, j + 1), label))
    # Walls
    for i in range(nx):
        segments.append((vid(i, 0), vid(i + 1, 0), wall_label))
    for i in range(nx):
        segments.append((vid(i, ny), vid(i + 1, ny), top_label))

    edges = [
        BoundaryEdge(e, (vertices[s1], vertices[s2]), label)
        for e, (s1, s2, label) in enumerate(segments)
    ]
    return TriangleMesh2D(vertices, triangles, edges)
