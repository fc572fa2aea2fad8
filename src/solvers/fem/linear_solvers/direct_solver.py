"""Sparse direct solver using SciPy's SuperLU factorization."""

import numpy as np
from scipy.sparse import csc_matrix, issparse
from scipy.sparse.linalg import splu

from ...errors import LinearSolveError

# Diagonal pivoting only: each big-penalty row must stay on its own equation.
DIAG_PIVOT_THRESH = 0.0


def direct_solver(A, b_np: np.ndarray, factor=None):
    """Solve A x = b with a (possibly cached) LU factorization.

    Parameters
    ----------
    A : sparse matrix
        Square system matrix; converted to CSC. Ignored when `factor` is given.
    b_np : np.ndarray
        Right-hand side vector.
    factor : scipy.sparse.linalg.SuperLU, optional
        Factorization from a previous call with the same matrix.

    Returns
    -------
    x_np : np.ndarray
        Solution vector.
    factor : SuperLU
        Factorization for reuse.

    Raises
    ------
    LinearSolveError
        On empty or mismatched input, a singular matrix or a non-finite result.
    """
    b = np.asarray(b_np, dtype=np.float64)

    if factor is None:
        if not issparse(A):
            raise LinearSolveError(f"Expected a sparse matrix, got {type(A).__name__}")
        if A.shape[0] == 0 or A.shape[0] != A.shape[1]:
            raise LinearSolveError(f"Matrix must be square and non-empty, got shape {A.shape}")
        try:
            factor = splu(A.tocsc(), diag_pivot_thresh=DIAG_PIVOT_THRESH)
        except RuntimeError as exc:
            raise LinearSolveError(f"LU factorization failed: {exc}") from exc

    if b.shape != (factor.shape[0],):
        raise LinearSolveError(
            f"Right-hand side has shape {b.shape}, expected ({factor.shape[0]},)"
        )

    x = factor.solve(b)
    if not np.all(np.isfinite(x)):
        raise LinearSolveError("Solution contains non-finite values")

    return x, factor


def solve_csc(indptr, indices, data, b_np: np.ndarray):
    """Solve from raw CSC arrays (column pointers, row indices, values)."""
    size = len(indptr) - 1
    A = csc_matrix((data, indices, indptr), shape=(size, size))
    x, _ = direct_solver(A, b_np)
    return x
