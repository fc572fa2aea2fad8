"""Element and global assembly for the P2/P1 Taylor-Hood discretization."""

from .boundary_conditions import (
    PENALTY,
    BoundaryConditions,
    InflowProfile,
    apply_dirichlet,
    stamp_matrix,
    stamp_rhs,
)
from .characteristics import (
    ChannelBounds,
    characteristic_rhs,
    interpolate_velocity,
    velocity_at_foot,
)
from .element_matrix import build_element_matrices, build_element_matrix
from .global_assembly import assemble, csc_arrays, local_to_global
from .quadrature import QUAD_POINTS, QUAD_WEIGHTS

__all__ = [
    "QUAD_POINTS",
    "QUAD_WEIGHTS",
    "build_element_matrix",
    "build_element_matrices",
    "assemble",
    "csc_arrays",
    "local_to_global",
    "PENALTY",
    "InflowProfile",
    "BoundaryConditions",
    "stamp_matrix",
    "stamp_rhs",
    "apply_dirichlet",
    "ChannelBounds",
    "characteristic_rhs",
    "interpolate_velocity",
    "velocity_at_foot",
]
