"""Triangle mesh layer: geometry, readers, P2 topology and point location."""

from .errors import MeshLoadError, TopologyError
from .geometry import BoundaryEdge, Point, Triangle, Vertex
from .locate import NOT_FOUND, find_containing, find_in_exit_set, locate
from .mesh_data import TriangleMesh2D
from .readers import read_freefem_mesh, read_gmsh_mesh, read_mesh
from .structured import create_channel_mesh
from .topology import build_topology

__all__ = [
    # Errors
    "MeshLoadError",
    "TopologyError",
    # Geometry
    "Point",
    "Vertex",
    "Triangle",
    "BoundaryEdge",
    "TriangleMesh2D",
    # Construction
    "read_mesh",
    "read_freefem_mesh",
    "read_gmsh_mesh",
    "create_channel_mesh",
    "build_topology",
    # Point location
    "NOT_FOUND",
    "locate",
    "find_containing",
    "find_in_exit_set",
]
