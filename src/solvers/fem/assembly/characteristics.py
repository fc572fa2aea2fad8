"""Semi-Lagrangian right-hand side (method of characteristics).

Every quadrature point q of every triangle is traced one step backwards along
the previous velocity, ``foot = q - u(q) / alpha``, and the previous velocity
at the foot is projected onto the P2 test functions::

    b[dof_i]     += alpha * area * sum_q w_q phi_i(q) u*(q)
    b[dof_i + n] += alpha * area * sum_q w_q phi_i(q) v*(q)

Feet are looked up in the starting triangle and its neighbours. Feet that
leave the domain fall back to boundary data:

1. upstream of the inlet (x < x_min): inflow profile at the clamped y
2. inside the channel span (x <= x_max) but not found: rest
3. downstream (x > x_max): x is clamped to x_max; on or beyond the walls the
   velocity is zero, otherwise the foot is searched among the outflow
   triangles, and failing that a CharacteristicTraceError is raised.
"""

import logging
from dataclasses import dataclass

import numpy as np

from meshing import NOT_FOUND, Point, find_containing, find_in_exit_set

from ...errors import CharacteristicTraceError
from .quadrature import QUAD_POINTS, QUAD_WEIGHTS
from .shape_functions import p2_basis, p2_values

log = logging.getLogger(__name__)

PHI_Q = p2_basis(QUAD_POINTS)  # (7, 6)


@dataclass(frozen=True)
class ChannelBounds:
    """Axis-aligned extent of the computational domain."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    @classmethod
    def from_mesh(cls, mesh) -> "ChannelBounds":
        return cls(*(float(c) for c in mesh.bounding_box()))


def quadrature_points(mesh) -> np.ndarray:
    """Physical quadrature points of every triangle, shape (nbt, 7, 2)."""
    corners = mesh.corner_coordinates  # (nbt, 3, 2)
    xi, eta = QUAD_POINTS[:, 0], QUAD_POINTS[:, 1]
    l0 = 1.0 - xi - eta
    return (
        l0[None, :, None] * corners[:, None, 0, :]
        + xi[None, :, None] * corners[:, None, 1, :]
        + eta[None, :, None] * corners[:, None, 2, :]
    )


def interpolate_velocity(mesh, k: int, reference, x):
    """Velocity (u, v) of the P2 field `x` at reference point `reference` of triangle k."""
    xi, eta = (float(c) for c in reference)
    values = p2_values(xi, eta)
    dofs = mesh.dofs[k]
    n = mesh.n
    return float(values @ x[dofs]), float(values @ x[dofs + n])


def velocity_at_foot(mesh, start: int, foot, x_prev, bc, bounds: ChannelBounds):
    """Previous velocity at a traced foot point, with out-of-domain fallbacks.

    Raises
    ------
    CharacteristicTraceError
        If the foot lies downstream of the outlet, strictly between the
        walls, and no outflow triangle contains it.
    """
    px, py = (float(c) for c in foot)

    k, reference = find_containing(mesh, start, Point(px, py))
    if k != NOT_FOUND:
        return interpolate_velocity(mesh, k, reference, x_prev)

    if px < bounds.x_min:
        return float(bc.profile(bc.profile.clamp(py))), 0.0

    if px <= bounds.x_max:
        return 0.0, 0.0

    px = bounds.x_max
    if py <= bounds.y_min or py >= bounds.y_max:
        return 0.0, 0.0

    k, reference = find_in_exit_set(mesh, Point(px, py))
    if k == NOT_FOUND:
        raise CharacteristicTraceError((px, py), start)
    return interpolate_velocity(mesh, k, reference, x_prev)


def characteristic_rhs(mesh, x_prev, alpha, bc, bounds=None, out=None) -> np.ndarray:
    """Assemble the characteristic right-hand side from the previous solution.

    Pressure rows are zero. `out` is reused when given.
    """
    n = mesh.n
    dofs = mesh.dofs
    if bounds is None:
        bounds = ChannelBounds.from_mesh(mesh)
    if out is None:
        out = np.zeros(mesh.n_unknowns)
    else:
        out[:] = 0.0

    # Previous velocity at the quadrature points, (nbt, 7)
    u_q = x_prev[dofs] @ PHI_Q.T
    v_q = x_prev[dofs + n] @ PHI_Q.T
    q = quadrature_points(mesh)
    feet = q - np.stack([u_q, v_q], axis=-1) / alpha

    u_star = np.empty(u_q.shape)
    v_star = np.empty(v_q.shape)
    for k in range(mesh.nbt):
        for iq in range(feet.shape[1]):
            u_star[k, iq], v_star[k, iq] = velocity_at_foot(
                mesh, k, feet[k, iq], x_prev, bc, bounds
            )

    weighted = QUAD_WEIGHTS[:, None] * PHI_Q  # (7, 6)
    scale = alpha * mesh.areas[:, None]
    np.add.at(out, dofs, scale * (u_star @ weighted))
    np.add.at(out, dofs + n, scale * (v_star @ weighted))
    return out
