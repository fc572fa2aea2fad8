"""Linear solvers for the FEM method."""

from .direct_solver import direct_solver, solve_csc

__all__ = ["direct_solver", "solve_csc"]
