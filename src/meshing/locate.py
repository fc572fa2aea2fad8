"""Point location and barycentric coordinates on a triangle mesh.

The search is local: a point is looked up in a starting triangle and then in
that triangle's edge neighbours only. This is enough for characteristic
tracing as long as the backward displacement per time step stays small
compared to the element size. Callers handle ``NOT_FOUND`` themselves.
"""

from typing import NamedTuple, Tuple

import numpy as np
from numba import njit

from .geometry import Point

NOT_FOUND = -1

# Relative tolerance (w.r.t. twice the triangle area) for points on an edge
ON_EDGE_TOL = 1e-12


@njit
def _sub_areas(x0, y0, x1, y1, x2, y2, px, py):
    """Signed areas of (P, v1, v2), (v0, P, v2) and (v0, v1, P)."""
    a0 = 0.5 * ((x1 - px) * (y2 - py) - (y1 - py) * (x2 - px))
    a1 = 0.5 * ((px - x0) * (y2 - y0) - (py - y0) * (x2 - x0))
    a2 = 0.5 * ((x1 - x0) * (py - y0) - (y1 - y0) * (px - x0))
    return a0, a1, a2


@njit
def _reference_coordinates(x0, y0, x1, y1, x2, y2, px, py):
    """Inverse affine map: physical point -> (xi, eta) on the reference triangle."""
    d = (x1 - x0) * (y2 - y0) - (y1 - y0) * (x2 - x0)
    xi = ((y2 - y0) * (px - x0) + (x0 - x2) * (py - y0)) / d
    eta = ((y0 - y1) * (px - x0) + (x1 - x0) * (py - y0)) / d
    return xi, eta


@njit
def _first_containing(corner_xy, candidates, px, py, tol):
    """Index of the first candidate triangle containing (px, py), with (xi, eta)."""
    for i in range(candidates.shape[0]):
        k = candidates[i]
        x0 = corner_xy[k, 0, 0]
        y0 = corner_xy[k, 0, 1]
        x1 = corner_xy[k, 1, 0]
        y1 = corner_xy[k, 1, 1]
        x2 = corner_xy[k, 2, 0]
        y2 = corner_xy[k, 2, 1]
        a0, a1, a2 = _sub_areas(x0, y0, x1, y1, x2, y2, px, py)
        scale = tol * abs(a0 + a1 + a2)
        if min(a0, a1, a2) >= -scale:
            xi, eta = _reference_coordinates(x0, y0, x1, y1, x2, y2, px, py)
            return k, xi, eta
    return NOT_FOUND, 0.0, 0.0


class Location(NamedTuple):
    """Result of ``locate``: reference coordinates and signed sub-areas."""

    reference: Point
    areas: Tuple[float, float, float]
    inside: bool


def locate(triangle, point, tol: float = ON_EDGE_TOL) -> Location:
    """Barycentric (reference) coordinates of `point` and inside/outside test.

    The point is inside (or on the boundary of) the triangle iff the three
    signed sub-triangle areas are all non-negative, up to `tol` times the
    triangle area.
    """
    (x0, y0), (x1, y1), (x2, y2) = triangle.corner_array()
    px, py = (float(c) for c in point)
    areas = _sub_areas(x0, y0, x1, y1, x2, y2, px, py)
    xi, eta = _reference_coordinates(x0, y0, x1, y1, x2, y2, px, py)
    inside = min(areas) >= -tol * abs(sum(areas))
    return Location(Point(xi, eta), tuple(float(a) for a in areas), bool(inside))


def find_containing(mesh, start: int, point, tol: float = ON_EDGE_TOL):
    """Find the triangle containing `point`, starting from triangle `start`.

    Only `start` and its edge neighbours are examined.

    Returns
    -------
    k : int
        Triangle index, or NOT_FOUND.
    reference : Point or None
        Reference coordinates of `point` in triangle k.
    """
    px, py = (float(c) for c in point)
    k, xi, eta = _first_containing(
        mesh.corner_coordinates,
        mesh.neighbor_candidates[start],
        px,
        py,
        tol,
    )
    if k == NOT_FOUND:
        return NOT_FOUND, None
    return int(k), Point(xi, eta)


def find_in_exit_set(mesh, point, tol: float = ON_EDGE_TOL):
    """Linear scan of the outflow triangles for `point`.

    Same return convention as ``find_containing``.
    """
    candidates = mesh.exit_candidates
    if candidates.size == 0:
        return NOT_FOUND, None
    px, py = (float(c) for c in point)
    k, xi, eta = _first_containing(mesh.corner_coordinates, candidates, px, py, tol)
    if k == NOT_FOUND:
        return NOT_FOUND, None
    return int(k), Point(xi, eta)
