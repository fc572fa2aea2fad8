"""Global sparse assembly of the Taylor-Hood operator.

Local index il of a triangle maps to a global row/column as:

- 0-5   -> dof(il)            x-velocity
- 6-11  -> dof(il - 6) + n    y-velocity
- 12-14 -> vertex(il - 12) + 2n  pressure (corners only)

Contributions with |a| <= DROP_TOL are skipped. The result is CSC with sorted
row indices and summed duplicates.
"""

import logging
import time

import numpy as np
from numba import njit
from scipy.sparse import coo_matrix, csc_matrix

from .element_matrix import build_element_matrices

log = logging.getLogger(__name__)

DROP_TOL = 1e-15


def local_to_global(mesh, k: int) -> np.ndarray:
    """Global indices of the 15 local unknowns of triangle k."""
    n = mesh.n
    dofs = mesh.dofs[k]
    return np.concatenate([dofs, dofs + n, dofs[:3] + 2 * n])


@njit
def _scatter_triplets(local, dofs, n, drop_tol):
    nbt = local.shape[0]
    max_nnz = nbt * 225
    row = np.zeros(max_nnz, dtype=np.int64)
    col = np.zeros(max_nnz, dtype=np.int64)
    data = np.zeros(max_nnz, dtype=np.float64)
    glob = np.empty(15, dtype=np.int64)

    idx = 0
    for k in range(nbt):
        for il in range(6):
            glob[il] = dofs[k, il]
            glob[il + 6] = dofs[k, il] + n
        for il in range(3):
            glob[il + 12] = dofs[k, il] + 2 * n

        for il in range(15):
            for jl in range(15):
                a = local[k, il, jl]
                if abs(a) > drop_tol:
                    row[idx] = glob[il]
                    col[idx] = glob[jl]
                    data[idx] = a
                    idx += 1

    return row[:idx], col[:idx], data[:idx]


def assemble(mesh, alpha, nu, is_unsteady=True, pressure_regularization=1e-7) -> csc_matrix:
    """Assemble the global (Navier-)Stokes matrix.

    Parameters
    ----------
    mesh : TriangleMesh2D
        Mesh with P2 topology built.
    alpha : float
        Inverse time step; ignored (treated as 0) when `is_unsteady` is False.
    nu : float
        Kinematic viscosity.
    is_unsteady : bool
        False assembles the steady Stokes operator.
    pressure_regularization : float
        Magnitude of the negative pressure diagonal.

    Returns
    -------
    csc_matrix
        Square matrix of size 2n + nv.
    """
    t0 = time.time()
    alpha = float(alpha) if is_unsteady else 0.0
    local = build_element_matrices(mesh, alpha, nu, pressure_regularization)
    row, col, data = _scatter_triplets(local, mesh.dofs, mesh.n, DROP_TOL)

    size = mesh.n_unknowns
    A = coo_matrix((data, (row, col)), shape=(size, size)).tocsc()
    A.sum_duplicates()
    A.sort_indices()

    log.info(
        f"Assembled {'Navier-Stokes' if is_unsteady else 'Stokes'} matrix: "
        f"size={size}, nnz={A.nnz} in {time.time() - t0:.3f}s"
    )
    return A


def csc_arrays(A):
    """(indptr, indices, data) of a CSC matrix, the direct solver contract."""
    A = A.tocsc()
    return A.indptr, A.indices, A.data
