"""Per-triangle solution files.

One line per triangle with 15 whitespace-separated values: u at the six P2
nodes, v at the six P2 nodes, then p at the three corners.
"""

from pathlib import Path

import numpy as np


def triangle_solution_table(mesh, x) -> np.ndarray:
    """Solution values gathered per triangle, shape (nbt, 15)."""
    n = mesh.n
    dofs = mesh.dofs
    return np.hstack([x[dofs], x[dofs + n], x[dofs[:, :3] + 2 * n]])


def write_triangle_solution(path, mesh, x) -> Path:
    """Write the per-triangle table of solution `x` to `path`."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, triangle_solution_table(mesh, x), fmt="%.17g")
    return path
