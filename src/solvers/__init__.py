"""Incompressible channel-flow solver framework.

Solver Hierarchy:
-----------------
IncompressibleFlowSolver (abstract base - time loop, metrics, tracking)
└── TaylorHoodSolver (P2/P1 finite elements with characteristics)
"""

from .base import IncompressibleFlowSolver
from .datastructures import (
    # Base classes (shared by all solvers)
    Parameters,
    Metrics,
    Fields,
    TimeSeries,
    # Taylor-Hood specific
    TaylorHoodParameters,
    TaylorHoodSolverFields,
)
from .errors import CharacteristicTraceError, LinearSolveError, SolverError
from solvers.fem.solver import TaylorHoodSolver


__all__ = [
    # Base solver
    "IncompressibleFlowSolver",
    # Shared data structures
    "Parameters",
    "Metrics",
    "Fields",
    "TimeSeries",
    # Errors
    "SolverError",
    "CharacteristicTraceError",
    "LinearSolveError",
    # Taylor-Hood solver
    "TaylorHoodSolver",
    "TaylorHoodParameters",
    "TaylorHoodSolverFields",
]
