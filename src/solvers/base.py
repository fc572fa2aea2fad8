"""Abstract base solver for time-dependent incompressible channel flow."""

from abc import ABC, abstractmethod
import logging
import time
from pathlib import Path

import numpy as np
import pandas as pd
import mlflow

from .datastructures import TimeSeries, Metrics, Fields

log = logging.getLogger(__name__)


class IncompressibleFlowSolver(ABC):
    """Abstract base solver for incompressible flow.

    Handles:
    - Parameter management (input configuration)
    - Metrics tracking (output results)
    - Time-step loop with per-step history
    - Live MLflow logging

    Subclasses must:
    - Set Parameters class attribute (e.g., TaylorHoodParameters)
    - Implement initialize() - compute the initial field
    - Implement step() - advance one time step
    - Implement _compute_kinetic_energy()
    - Call _init_fields(x, y) after setting up the mesh
    """

    Parameters = None  # Subclasses set this to their parameter dataclass

    log_every = 10  # steps between progress messages / live MLflow metrics

    def __init__(self, params=None, **kwargs):
        """Initialize solver with parameters.

        Parameters
        ----------
        params : Parameters, optional
            Parameters object. If not provided, kwargs are used to create params.
        **kwargs
            Configuration parameters passed to Parameters class if params is None.
        """
        if params is None:
            if self.Parameters is None:
                raise ValueError("Subclass must define Parameters class attribute")
            params = self.Parameters(**kwargs)

        self.params = params
        self.metrics = Metrics()
        self.fields = None  # Initialized by subclass via _init_fields()
        self.time_series = TimeSeries()

    def _init_fields(self, x: np.ndarray, y: np.ndarray):
        """Pre-allocate output fields at the given node coordinates."""
        n_points = len(x)
        self.fields = Fields(
            u=np.zeros(n_points),
            v=np.zeros(n_points),
            p=np.zeros(n_points),
            x=x.copy(),
            y=y.copy(),
        )

    @abstractmethod
    def initialize(self):
        """Compute the initial (t = 0) velocity / pressure field."""
        pass

    @abstractmethod
    def step(self, t: int):
        """Advance the solution by one time step.

        Returns
        -------
        x, x_prev : np.ndarray
            New and previous solution vectors.
        """
        pass

    @abstractmethod
    def _finalize_fields(self):
        """Copy the final solution into self.fields."""
        pass

    @abstractmethod
    def _compute_kinetic_energy(self, x: np.ndarray) -> float:
        """Kinetic energy 0.5 * integral of |u|^2 for solution vector x."""
        pass

    def _velocity_change(self, x: np.ndarray, x_prev: np.ndarray) -> float:
        """Relative L2 change of the solution vector between two steps."""
        return float(np.linalg.norm(x - x_prev) / (np.linalg.norm(x_prev) + 1e-12))

    def solve(self, n_steps: int = None):
        """Compute the initial field, then advance a fixed number of steps.

        There is no convergence test; the loop always runs `n_steps` steps.

        Stores results in solver attributes:
        - self.fields : Fields dataclass with solution fields
        - self.time_series : TimeSeries dataclass with per-step history
        - self.metrics : Metrics dataclass with solver metrics

        Parameters
        ----------
        n_steps : int, optional
            Number of time steps. If None, uses params.n_steps.
        """
        if n_steps is None:
            n_steps = self.params.n_steps

        time_start = time.time()
        mlflow_time = 0.0  # Track time spent on MLflow logging

        self.initialize()

        for t in range(n_steps):
            x, x_prev = self.step(t)

            velocity_change = self._velocity_change(x, x_prev)
            kinetic_energy = self._compute_kinetic_energy(x)
            self.time_series.append(velocity_change, kinetic_energy)

            if t % self.log_every == 0 or t == n_steps - 1:
                log.info(
                    f"Step {t}: velocity change={velocity_change:.6e}, "
                    f"kinetic energy={kinetic_energy:.6e}"
                )

                # Live MLflow logging (timed separately)
                if mlflow.active_run():
                    t_log_start = time.time()
                    mlflow.log_metrics(
                        {"velocity_change": velocity_change, "kinetic_energy": kinetic_energy},
                        step=t,
                    )
                    mlflow_time += time.time() - t_log_start

        wall_time = time.time() - time_start - mlflow_time  # Exclude MLflow logging time
        log.info(f"Solver finished {n_steps} steps in {wall_time:.2f} seconds "
                 f"(excl. {mlflow_time:.2f}s logging).")

        self._finalize_fields()
        self.metrics.steps = n_steps
        self.metrics.wall_time_seconds = wall_time
        self.metrics.final_kinetic_energy = (
            self.time_series.kinetic_energy[-1] if len(self.time_series) else 0.0
        )

    def save(self, filepath):
        """Save complete solver state to HDF5 file.

        Saves params, metrics, time_series, and fields for later analysis.

        Parameters
        ----------
        filepath : str or Path
            Output file path (use .h5 extension).
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with pd.HDFStore(filepath, mode="w", complevel=5) as store:
            store["params"] = self.params.to_dataframe()
            store["metrics"] = self.metrics.to_dataframe()
            store["time_series"] = self.time_series.to_dataframe()
            store["fields"] = self.fields.to_dataframe()
