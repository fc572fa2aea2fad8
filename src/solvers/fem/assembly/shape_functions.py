"""P2 velocity and P1 pressure shape functions on the reference triangle.

Reference triangle (0,0), (1,0), (0,1) with barycentric coordinates
lambda_0 = 1 - xi - eta, lambda_1 = xi, lambda_2 = eta.

Local P2 numbering: nodes 0-2 are the corners, node 3 + a is the midpoint of
the edge opposite corner a.
"""

import numpy as np
from numba import njit

# Reference coordinates of the six P2 nodes
REFERENCE_NODES = np.array(
    [
        [0.0, 0.0],
        [1.0, 0.0],
        [0.0, 1.0],
        [0.5, 0.5],
        [0.0, 0.5],
        [0.5, 0.0],
    ]
)


@njit
def lambda_(i, xi, eta):
    """Barycentric coordinate i (the P1 basis)."""
    if i == 0:
        return 1.0 - xi - eta
    elif i == 1:
        return xi
    return eta


@njit
def partial_lambda(i, d):
    """Derivative of lambda_i along reference direction d (0 = xi, 1 = eta)."""
    if i == 0:
        return -1.0
    elif i == 1:
        return 1.0 if d == 0 else 0.0
    return 0.0 if d == 0 else 1.0


@njit
def phi(i, xi, eta):
    """P2 basis function i."""
    if i < 3:
        li = lambda_(i, xi, eta)
        return li * (2.0 * li - 1.0)
    return 4.0 * lambda_((i - 1) % 3, xi, eta) * lambda_((i - 2) % 3, xi, eta)


@njit
def partial_phi(i, d, xi, eta):
    """Derivative of P2 basis function i along reference direction d."""
    if i < 3:
        return (4.0 * lambda_(i, xi, eta) - 1.0) * partial_lambda(i, d)
    a = (i + 1) % 3
    b = (i + 2) % 3
    return 4.0 * (
        lambda_(a, xi, eta) * partial_lambda(b, d) + lambda_(b, xi, eta) * partial_lambda(a, d)
    )


@njit
def p2_values(xi, eta):
    """All six P2 basis values at one reference point."""
    out = np.empty(6)
    for i in range(6):
        out[i] = phi(i, xi, eta)
    return out


@njit
def _p2_basis(points):
    m = points.shape[0]
    out = np.empty((m, 6))
    for q in range(m):
        for i in range(6):
            out[q, i] = phi(i, points[q, 0], points[q, 1])
    return out


@njit
def _p2_gradients(points):
    m = points.shape[0]
    out = np.empty((m, 6, 2))
    for q in range(m):
        for i in range(6):
            for d in range(2):
                out[q, i, d] = partial_phi(i, d, points[q, 0], points[q, 1])
    return out


@njit
def _p1_basis(points):
    m = points.shape[0]
    out = np.empty((m, 3))
    for q in range(m):
        for j in range(3):
            out[q, j] = lambda_(j, points[q, 0], points[q, 1])
    return out


def _as_points(points):
    return np.atleast_2d(np.asarray(points, dtype=np.float64))


def p2_basis(points) -> np.ndarray:
    """Tabulate P2 values at reference points, shape (m, 6)."""
    return _p2_basis(_as_points(points))


def p2_gradients(points) -> np.ndarray:
    """Tabulate reference gradients of the P2 basis, shape (m, 6, 2)."""
    return _p2_gradients(_as_points(points))


def p1_basis(points) -> np.ndarray:
    """Tabulate the P1 (pressure) basis, shape (m, 3)."""
    return _p1_basis(_as_points(points))
