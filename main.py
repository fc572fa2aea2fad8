"""
Channel-flow solver - Hydra + MLflow entry point.

Usage:
    python main.py mesh_file=meshes/step.msh
    python main.py mesh_file=meshes/step.msh n_steps=10 dt=0.05
    python main.py nx=80 ny=8              # structured channel, no mesh file

Stokes is solved first (solution.txt), then n_steps Navier-Stokes steps
(sol_<t>.txt), all written to the Hydra run directory unless
solver.output_dir is set.

MLflow tracking:
    mlflow.tracking_uri=./mlruns     file-based store (default)
    mlflow.tracking_uri=null         MLFLOW_TRACKING_URI from the environment or .env
"""

import logging
import os
import sys
import tempfile
from pathlib import Path

import hydra
import mlflow
from dotenv import load_dotenv
from hydra.core.hydra_config import HydraConfig
from hydra.utils import instantiate
from mlflow.tracking import MlflowClient
from omegaconf import DictConfig, OmegaConf

# Load .env file (for MLflow credentials)
load_dotenv()

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from meshing import MeshLoadError, TopologyError  # noqa: E402
from solvers import SolverError  # noqa: E402

log = logging.getLogger(__name__)


def mesh_name(cfg: DictConfig) -> str:
    """Short mesh identifier: file stem, or the structured channel size."""
    if cfg.mesh_file:
        return Path(cfg.mesh_file).stem
    return f"channel{cfg.nx}x{cfg.ny}"


def get_experiment_name(cfg: DictConfig) -> str:
    """One experiment per mesh: ``[prefix/]<experiment_name>-<mesh>``."""
    name = f"{cfg.experiment_name}-{mesh_name(cfg)}"
    prefix = cfg.mlflow.get("project_prefix", "")
    return f"{prefix}/{name}" if prefix else name


def setup_mlflow(cfg: DictConfig) -> str:
    """Select tracking URI and experiment. Returns the experiment name.

    A null ``mlflow.tracking_uri`` falls back to MLFLOW_TRACKING_URI (e.g. from
    .env), then to ./mlruns.
    """
    tracking_uri = cfg.mlflow.get("tracking_uri") or os.environ.get(
        "MLFLOW_TRACKING_URI", "./mlruns"
    )
    mlflow.set_tracking_uri(str(tracking_uri))

    experiment_name = get_experiment_name(cfg)
    mlflow.set_experiment(experiment_name)
    return experiment_name


def create_solver(cfg: DictConfig):
    """Instantiate the solver subtree with the common root parameters."""
    output_dir = cfg.solver.get("output_dir") or HydraConfig.get().runtime.output_dir
    mesh_file = cfg.mesh_file
    if mesh_file:
        # Hydra changes into the run directory; resolve against the launch directory
        mesh_file = hydra.utils.to_absolute_path(mesh_file)
    return instantiate(
        cfg.solver,
        mesh_file=mesh_file,
        nu=cfg.nu,
        dt=cfg.dt,
        n_steps=cfg.n_steps,
        nx=cfg.nx,
        ny=cfg.ny,
        output_dir=str(output_dir),
        _convert_="partial",
    )


def run_solver(cfg: DictConfig) -> str:
    """Run solver and log to MLflow. Returns run_id."""
    solver = create_solver(cfg)
    run_name = f"{solver.params.method}_{mesh_name(cfg)}"

    # Parent run tagging for sweeps
    parent_run_id = os.environ.get("MLFLOW_PARENT_RUN_ID")
    tags = {"solver": solver.params.method}
    if parent_run_id:
        tags.update({"mlflow.parentRunId": parent_run_id, "parent_run_id": parent_run_id, "sweep": "child"})

    with mlflow.start_run(run_name=run_name, tags=tags, nested=bool(parent_run_id)) as run:
        mlflow.log_params(solver.params.to_mlflow())
        mlflow.log_dict(OmegaConf.to_container(cfg), "config.yaml")

        log.info(f"Solving: {run_name}, n={solver.n}, unknowns={solver.mesh.n_unknowns}")
        solver.solve()

        mlflow.log_metrics(solver.metrics.to_mlflow())
        batch = solver.time_series.to_mlflow_batch()
        if batch:
            MlflowClient().log_batch(run.info.run_id, metrics=batch)

        with tempfile.TemporaryDirectory() as tmpdir:
            vtk_path = Path(tmpdir) / "solution.vtu"
            solver.to_vtk().save(str(vtk_path))
            mlflow.log_artifact(str(vtk_path))

            if cfg.get("save_hdf5", True):
                h5_path = Path(tmpdir) / "solution.h5"
                solver.save(h5_path)
                mlflow.log_artifact(str(h5_path))

        log.info(
            f"Done: {solver.metrics.steps} steps, "
            f"kinetic energy={solver.metrics.final_kinetic_energy:.6e}, "
            f"time={solver.metrics.wall_time_seconds:.2f}s"
        )
        return run.info.run_id


@hydra.main(config_path="conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Main entry point."""
    log.info(f"Mesh: {cfg.mesh_file or 'structured channel'}, nu={cfg.nu}, dt={cfg.dt}")
    log.info(f"MLflow experiment: {setup_mlflow(cfg)}")

    try:
        run_solver(cfg)
    except (MeshLoadError, TopologyError, SolverError) as exc:
        log.error(f"{type(exc).__name__}: {exc}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
