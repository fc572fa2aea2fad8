"""Geometry primitives for triangulated 2D domains.

Point is an immutable coordinate. Vertex composes a Point with the global
degree-of-freedom index and a boundary label (0 = interior). Triangles keep
references to their corner vertices and, once the topology builder has run,
to their three edge-midpoint vertices.

Local numbering on a triangle:
- nodes 0, 1, 2 are the corners (counter-clockwise)
- node 3 + a is the midpoint of the edge opposite corner a, i.e. the edge
  between corners (a + 1) % 3 and (a + 2) % 3
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .errors import TopologyError

log = logging.getLogger(__name__)

# Absolute tolerance below which a triangle is considered degenerate
GEOM_TOL = 1e-14


@dataclass(frozen=True)
class Point:
    """2D coordinate (x, y)."""

    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

    def distance(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def midpoint(self, other: "Point") -> "Point":
        return Point((self.x + other.x) / 2, (self.y + other.y) / 2)


@dataclass(eq=False)
class Vertex:
    """Mesh node: a point, its global index and its boundary label."""

    point: Point
    index: int
    label: int = 0
    # Incident triangle indices, filled only for corner-incidence adjacency
    triangles: List[int] = field(default_factory=list, repr=False)

    @property
    def x(self) -> float:
        return self.point.x

    @property
    def y(self) -> float:
        return self.point.y


def signed_area(p0, p1, p2) -> float:
    """Shoelace signed area, positive for counter-clockwise corners."""
    return 0.5 * ((p1.x - p0.x) * (p2.y - p0.y) - (p1.y - p0.y) * (p2.x - p0.x))


def heron_area(p0, p1, p2) -> float:
    """Unsigned triangle area from its three side lengths."""
    a = p0.point.distance(p1.point)
    b = p1.point.distance(p2.point)
    c = p2.point.distance(p0.point)
    s = (a + b + c) / 2  # semi-perimeter
    return math.sqrt(max(s * (s - a) * (s - b) * (s - c), 0.0))


@dataclass(eq=False)
class Triangle:
    """P2 triangle: three corners, three derived midpoints, index and area."""

    index: int
    corners: Tuple[Vertex, Vertex, Vertex]
    area: float
    midpoints: List[Vertex] = field(default_factory=list, repr=False)

    @classmethod
    def build(cls, index: int, corners) -> "Triangle":
        """Create triangle `index` from three corner vertices.

        Corners are re-ordered counter-clockwise if needed so that the affine
        map Jacobian has a positive determinant.

        Raises
        ------
        TopologyError
            If the three corners are collinear or coincident.
        """
        v0, v1, v2 = corners
        area_sn = signed_area(v0, v1, v2)
        if abs(area_sn) <= GEOM_TOL:
            raise TopologyError(
                f"Triangle {index} is degenerate (area={area_sn:.2e}); "
                f"vertices {v0.index}, {v1.index}, {v2.index} are collinear"
            )
        if area_sn < 0:
            log.debug(f"Triangle {index} is clockwise, swapping corners 1 and 2")
            v1, v2 = v2, v1
        return cls(index=index, corners=(v0, v1, v2), area=heron_area(v0, v1, v2))

    @property
    def is_complete(self) -> bool:
        return len(self.midpoints) == 3

    def node(self, i: int) -> Vertex:
        """Local P2 node i (0-2 corners, 3-5 midpoints)."""
        if i < 3:
            return self.corners[i]
        return self.midpoints[i - 3]

    def dof(self, i: int) -> int:
        """Global index of local P2 node i."""
        return self.node(i).index

    @property
    def dofs(self) -> Tuple[int, ...]:
        return tuple(self.dof(i) for i in range(6))

    def edge(self, a: int) -> Tuple[Vertex, Vertex]:
        """Corner pair of the edge opposite corner a."""
        return self.corners[(a + 1) % 3], self.corners[(a + 2) % 3]

    def corner_array(self) -> np.ndarray:
        return np.array([[v.x, v.y] for v in self.corners], dtype=np.float64)

    def to_physical(self, xi: float, eta: float) -> Point:
        """Map reference coordinates (xi, eta) into this triangle."""
        v0, v1, v2 = self.corners
        l0 = 1 - xi - eta
        return Point(
            l0 * v0.x + xi * v1.x + eta * v2.x,
            l0 * v0.y + xi * v1.y + eta * v2.y,
        )


@dataclass(eq=False)
class BoundaryEdge:
    """Boundary segment between two vertices carrying a boundary label."""

    index: int
    vertices: Tuple[Vertex, Vertex]
    label: int

    @property
    def key(self) -> Tuple[int, int]:
        return edge_key(self.vertices[0].index, self.vertices[1].index)


def edge_key(s1: int, s2: int) -> Tuple[int, int]:
    """Undirected edge key (larger index first)."""
    return (s1, s2) if s1 > s2 else (s2, s1)
