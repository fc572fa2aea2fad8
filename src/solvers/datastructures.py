"""Data structures for solver configuration and results.

This module defines the configuration and result data structures
for the incompressible channel-flow solvers.

Structure:
- Parameters: Input configuration (logged to MLflow at start)
- Metrics: Output results (logged to MLflow at end)
- Fields: Spatial solution data
- TimeSeries: Per-step history
"""

import time
from dataclasses import dataclass, asdict, field
from typing import Optional, List, Tuple

import numpy as np
import pandas as pd


def _flat(value):
    """Scalar representation for MLflow params and HDF5 tables."""
    if value is None:
        return "None"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return value


# ========================================================
# Parameters (Input Configuration)
# ========================================================


@dataclass
class Parameters:
    """Base solver parameters - input configuration for all solvers."""

    nu: float = 0.0025
    dt: float = 0.1
    n_steps: int = 80
    Lx: float = 10.0
    Ly: float = 1.0
    method: str = ""

    @property
    def alpha(self) -> float:
        """Inverse time step, the mass-matrix coefficient."""
        return 1.0 / self.dt

    def to_mlflow(self) -> dict:
        return {k: _flat(v) for k, v in asdict(self).items()}

    def to_dataframe(self):
        return pd.DataFrame([self.to_mlflow()])


# ========================================================
# Metrics (Output Results)
# ========================================================


@dataclass
class Metrics:
    """Solver metrics - output results computed during/after solving."""

    steps: int = 0
    wall_time_seconds: float = 0.0
    assembly_time_seconds: float = 0.0
    solve_time_seconds: float = 0.0
    n_unknowns: int = 0
    matrix_nnz: int = 0
    final_kinetic_energy: float = 0.0
    max_velocity: float = 0.0
    divergence_l2: float = 0.0

    def to_mlflow(self) -> dict:
        return {k: float(v) for k, v in asdict(self).items()}

    def to_dataframe(self):
        return pd.DataFrame([asdict(self)])


# ========================================================
# Fields (Spatial Solution Data)
# ========================================================


@dataclass
class Fields:
    """Spatial solution fields (u, v, p) at the P2 nodes (x, y)."""

    u: np.ndarray
    v: np.ndarray
    p: np.ndarray
    x: np.ndarray
    y: np.ndarray

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per P2 node."""
        return pd.DataFrame(asdict(self))


# ========================================================
# Time Series (Step History)
# ========================================================


@dataclass
class TimeSeries:
    """Step history (one value per time step)."""

    velocity_change: List[float] = field(default_factory=list)
    kinetic_energy: List[float] = field(default_factory=list)

    def append(self, velocity_change: float, kinetic_energy: float):
        self.velocity_change.append(float(velocity_change))
        self.kinetic_energy.append(float(kinetic_energy))

    def __len__(self):
        return len(self.velocity_change)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per step."""
        return pd.DataFrame(asdict(self))

    def to_mlflow_batch(self):
        """MLflow Metric entities for ``MlflowClient.log_batch``."""
        from mlflow.entities import Metric

        timestamp = int(time.time() * 1000)
        return [
            Metric(key=key, value=value, timestamp=timestamp, step=step)
            for key, values in asdict(self).items()
            for step, value in enumerate(values)
        ]


# =============================================================
# Taylor-Hood (P2/P1) Specific
# ============================================================


@dataclass
class TaylorHoodParameters(Parameters):
    """P2/P1 solver parameters (extends Parameters with mesh and boundary settings)."""

    mesh_file: Optional[str] = None  # None -> structured channel of nx x ny cells
    index_base: int = 1  # first vertex index in format A files
    nx: int = 40
    ny: int = 4
    inflow_y_min: float = 0.5  # inlet spans [inflow_y_min, Ly]
    inflow_velocity: float = 1.0  # peak of the parabolic inflow profile
    inflow_label: int = 10
    wall_labels: Tuple[int, ...] = (20, 40)
    outflow_label: int = 30
    pressure_regularization: float = 1e-7
    adjacency: str = "edge"  # "edge" or "incidence"
    output_dir: Optional[str] = None
    method: str = "FEM-P2P1-Characteristics"

    def __post_init__(self):
        # Hydra hands over lists
        self.wall_labels = tuple(int(label) for label in self.wall_labels)
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")


@dataclass
class TaylorHoodSolverFields:
    """Internal solver vectors - current and previous step, and the RHS buffer."""

    x: np.ndarray
    x_prev: np.ndarray
    rhs: np.ndarray

    @classmethod
    def allocate(cls, n_unknowns: int):
        """Allocate all vectors with proper sizes."""
        return cls(
            x=np.zeros(n_unknowns),
            x_prev=np.zeros(n_unknowns),
            rhs=np.zeros(n_unknowns),
        )

    def swap(self):
        """Make the current solution the previous one (zero-copy)."""
        self.x, self.x_prev = self.x_prev, self.x
