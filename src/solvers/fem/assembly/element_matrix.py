"""Local 15 x 15 Taylor-Hood matrix for the (Navier-)Stokes operator.

Block layout of the local matrix (rows and columns alike)::

    0-5    u at the six P2 nodes      [ C   0   B1 ]
    6-11   v at the six P2 nodes      [ 0   C   B2 ]
    12-14  p at the three corners     [ B1' B2' -eps I ]

C = alpha * M + nu * K is the P2 mass / stiffness combination (alpha = 0 for
Stokes), B1 and B2 couple velocity divergence and pressure. The matrix is
symmetric.
"""

import numpy as np
from numba import njit

from .quadrature import QUAD_POINTS, QUAD_WEIGHTS
from .shape_functions import p1_basis, p2_basis, p2_gradients

LOCAL_SIZE = 15

# Basis tables at the quadrature points
PHI_Q = p2_basis(QUAD_POINTS)  # (7, 6)
DPHI_Q = p2_gradients(QUAD_POINTS)  # (7, 6, 2)
LAMBDA_Q = p1_basis(QUAD_POINTS)  # (7, 3)


@njit
def affine_jacobian(corners):
    """J = [[y2 - y0, y0 - y1], [x0 - x2, x1 - x0]] for a 3 x 2 corner array.

    Physical gradients are ``J @ grad_ref / (2 * area)``.
    """
    J = np.empty((2, 2))
    J[0, 0] = corners[2, 1] - corners[0, 1]
    J[0, 1] = corners[0, 1] - corners[1, 1]
    J[1, 0] = corners[0, 0] - corners[2, 0]
    J[1, 1] = corners[1, 0] - corners[0, 0]
    return J


@njit
def _element_matrix(corners, area, alpha, nu, eps, phi, dphi, lam, weights):
    A = np.zeros((15, 15))
    J = affine_jacobian(corners)

    a = J[0, 0] ** 2 + J[1, 0] ** 2
    b = J[0, 0] * J[0, 1] + J[1, 0] * J[1, 1]
    c = J[0, 1] ** 2 + J[1, 1] ** 2
    mass = alpha * area
    stiff = nu / (4.0 * area)
    nq = weights.shape[0]

    # ––– C block (shared by u and v) –––
    for i in range(6):
        for j in range(6):
            s = 0.0
            for q in range(nq):
                w = weights[q]
                dxi = dphi[q, i, 0]
                dyi = dphi[q, i, 1]
                dxj = dphi[q, j, 0]
                dyj = dphi[q, j, 1]
                s += mass * w * phi[q, i] * phi[q, j]
                s += stiff * w * (a * dxi * dxj + b * (dyi * dxj + dxi * dyj) + c * dyi * dyj)
            A[i, j] = s
            A[i + 6, j + 6] = s

    # ––– B1 / B2 coupling, mirrored –––
    for i in range(6):
        for j in range(3):
            s1 = 0.0
            s2 = 0.0
            for q in range(nq):
                w = weights[q]
                s1 += w * (J[0, 0] * dphi[q, i, 0] + J[0, 1] * dphi[q, i, 1]) * lam[q, j]
                s2 += w * (J[1, 0] * dphi[q, i, 0] + J[1, 1] * dphi[q, i, 1]) * lam[q, j]
            A[i, 12 + j] = -0.5 * s1
            A[12 + j, i] = -0.5 * s1
            A[i + 6, 12 + j] = -0.5 * s2
            A[12 + j, i + 6] = -0.5 * s2

    # ––– pressure regularization –––
    for j in range(3):
        A[12 + j, 12 + j] = -eps

    return A


@njit
def _element_matrices(corner_xy, areas, alpha, nu, eps, phi, dphi, lam, weights):
    nbt = corner_xy.shape[0]
    out = np.empty((nbt, 15, 15))
    for k in range(nbt):
        out[k] = _element_matrix(corner_xy[k], areas[k], alpha, nu, eps, phi, dphi, lam, weights)
    return out


def build_element_matrix(corners, area, alpha, nu, pressure_regularization=1e-7):
    """Local 15 x 15 matrix of one triangle.

    Parameters
    ----------
    corners : array_like, shape (3, 2)
        Counter-clockwise corner coordinates.
    area : float
        Triangle area.
    alpha : float
        Mass coefficient (1/dt for Navier-Stokes, 0 for Stokes).
    nu : float
        Kinematic viscosity.
    pressure_regularization : float
        Magnitude of the small negative pressure diagonal.
    """
    corners = np.ascontiguousarray(corners, dtype=np.float64)
    return _element_matrix(
        corners,
        float(area),
        float(alpha),
        float(nu),
        float(pressure_regularization),
        PHI_Q,
        DPHI_Q,
        LAMBDA_Q,
        QUAD_WEIGHTS,
    )


def build_element_matrices(mesh, alpha, nu, pressure_regularization=1e-7):
    """Local matrices of every triangle of `mesh`, shape (nbt, 15, 15)."""
    return _element_matrices(
        mesh.corner_coordinates,
        mesh.areas,
        float(alpha),
        float(nu),
        float(pressure_regularization),
        PHI_Q,
        DPHI_Q,
        LAMBDA_Q,
        QUAD_WEIGHTS,
    )
