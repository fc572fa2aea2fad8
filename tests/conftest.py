"""Pytest configuration and fixtures for mesh and solver tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src (packages) and the repository root (main.py) to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Recent mlflow releases refuse file-store tracking URIs unless explicitly allowed
os.environ.setdefault("MLFLOW_ALLOW_FILE_STORE", "true")


UNIT_SQUARE_MSH = """\
4 2 4
0 0 20
1 0 30
1 1 40
0 1 10
1 2 3 0
1 3 4 0
1 2 20
2 3 30
3 4 40
4 1 10
"""


def mesh_to_freefem(mesh) -> str:
    """Serialize a raw mesh in format A (1-based)."""
    lines = [f"{mesh.nv} {mesh.nbt} {mesh.nbe}"]
    lines += [f"{v.x!r} {v.y!r} {v.label}" for v in mesh.vertices[: mesh.nv]]
    lines += [" ".join(str(v.index + 1) for v in t.corners) + " 0" for t in mesh.triangles]
    lines += [
        f"{e.vertices[0].index + 1} {e.vertices[1].index + 1} {e.label}" for e in mesh.edges
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def raw_unit_square():
    """Unit square split along (0,0)-(1,1), edges bottom/right/top/left = 20/30/40/10."""
    from meshing import BoundaryEdge, Point, Triangle, TriangleMesh2D, Vertex

    coords = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    vertices = [Vertex(Point(x, y), index=i) for i, (x, y) in enumerate(coords)]
    triangles = [
        Triangle.build(0, (vertices[0], vertices[1], vertices[2])),
        Triangle.build(1, (vertices[0], vertices[2], vertices[3])),
    ]
    segments = [(0, 1, 20), (1, 2, 30), (2, 3, 40), (3, 0, 10)]
    edges = [
        BoundaryEdge(e, (vertices[s1], vertices[s2]), label)
        for e, (s1, s2, label) in enumerate(segments)
    ]
    return TriangleMesh2D(vertices, triangles, edges)


@pytest.fixture
def unit_square(raw_unit_square):
    """Unit square with P2 topology built."""
    from meshing import build_topology

    build_topology(raw_unit_square)
    return raw_unit_square


@pytest.fixture
def channel_mesh():
    """Small 8 x 4 channel on [0, 2] x [0, 1], inlet on y >= 0.5, topology built."""
    from meshing import build_topology, create_channel_mesh

    mesh = create_channel_mesh(8, 4, Lx=2.0, Ly=1.0, inflow_y_min=0.5)
    build_topology(mesh)
    return mesh


@pytest.fixture
def unit_square_file(tmp_path):
    """Format A file of the unit square."""
    path = tmp_path / "square.msh"
    path.write_text(UNIT_SQUARE_MSH)
    return path


@pytest.fixture
def write_mesh_file(tmp_path):
    """Factory writing a raw mesh to a format A file."""

    def _write(mesh, name="mesh.msh"):
        path = tmp_path / name
        path.write_text(mesh_to_freefem(mesh))
        return path

    return _write


@pytest.fixture
def small_channel_params(tmp_path):
    """Parameters for a short run on a small structured channel."""
    return {
        "nx": 8,
        "ny": 4,
        "Lx": 2.0,
        "Ly": 1.0,
        "nu": 0.0025,
        "dt": 0.01,
        "n_steps": 2,
        "output_dir": str(tmp_path / "out"),
    }
