"""Mesh file readers.

Two interchangeable text formats are supported:

Format A (FreeFem-style ``.msh``)::

    nv nbt nbe
    x y label            (nv lines)
    i j k region         (nbt lines, corner indices)
    i j label            (nbe lines, boundary edges)

Indices are 1-based by default (``index_base=1``).

Format B (Gmsh ``.msh``), parsed by meshio. Triangle cells become triangles,
line cells boundary edges labelled by their physical tag (``gmsh:physical``),
vertex cells are skipped.
"""

import logging
from pathlib import Path

import meshio
import numpy as np

from .errors import MeshLoadError
from .geometry import BoundaryEdge, Point, Triangle, Vertex
from .mesh_data import TriangleMesh2D

log = logging.getLogger(__name__)


class _TokenStream:
    """Whitespace token reader that reports the line of the offending token."""

    def __init__(self, text, path):
        self.path = path
        self._tokens = [
            (tok, lineno)
            for lineno, line in enumerate(text.splitlines(), start=1)
            for tok in line.split()
        ]
        self._pos = 0

    def _next(self):
        if self._pos >= len(self._tokens):
            raise MeshLoadError("Unexpected end of file", self.path)
        tok, lineno = self._tokens[self._pos]
        self._pos += 1
        return tok, lineno

    def int(self):
        tok, lineno = self._next()
        try:
            return int(tok)
        except ValueError:
            raise MeshLoadError(f"Expected an integer, got {tok!r}", self.path, lineno) from None

    def float(self):
        tok, lineno = self._next()
        try:
            return float(tok)
        except ValueError:
            raise MeshLoadError(f"Expected a number, got {tok!r}", self.path, lineno) from None


def _read_text(path):
    path = Path(path)
    try:
        return path.read_text()
    except OSError as exc:
        raise MeshLoadError(f"Cannot read mesh file: {exc.strerror}", path) from exc


def _vertex(vertices, i, path, what):
    if not 0 <= i < len(vertices):
        raise MeshLoadError(f"{what} references vertex {i} out of range [0, {len(vertices)})", path)
    return vertices[i]


def _log_summary(mesh, path):
    log.info(
        f"Loaded {Path(path).name}: nv={mesh.nv} nbt={mesh.nbt} nbe={mesh.nbe} "
        f"area={mesh.total_area:.6g}"
    )


def read_freefem_mesh(path, index_base: int = 1) -> TriangleMesh2D:
    """Read a format A mesh file."""
    stream = _TokenStream(_read_text(path), path)
    nv, nbt, nbe = stream.int(), stream.int(), stream.int()
    if min(nv, nbt) <= 0 or nbe < 0:
        raise MeshLoadError(f"Invalid header counts nv={nv} nbt={nbt} nbe={nbe}", path, 1)

    vertices = []
    for i in range(nv):
        x, y = stream.float(), stream.float()
        stream.int()  # vertex label, boundary labels come from the edges
        vertices.append(Vertex(Point(x, y), index=i))

    triangles = []
    for k in range(nbt):
        ids = [stream.int() - index_base for _ in range(3)]
        stream.int()  # region
        corners = [_vertex(vertices, i, path, f"Triangle {k}") for i in ids]
        triangles.append(Triangle.build(k, corners))

    edges = []
    for e in range(nbe):
        s1, s2 = stream.int() - index_base, stream.int() - index_base
        label = stream.int()
        v1 = _vertex(vertices, s1, path, f"Boundary edge {e}")
        v2 = _vertex(vertices, s2, path, f"Boundary edge {e}")
        edges.append(BoundaryEdge(e, (v1, v2), label))

    mesh = TriangleMesh2D(vertices, triangles, edges)
    _log_summary(mesh, path)
    return mesh


def _gmsh_labels(data, block_index, n_cells):
    """Physical tags of one cell block, 0 where the file carries none."""
    physical = data.cell_data.get("gmsh:physical")
    if physical is None or len(physical[block_index]) != n_cells:
        return np.zeros(n_cells, dtype=int)
    return np.asarray(physical[block_index], dtype=int)


def read_gmsh_mesh(path) -> TriangleMesh2D:
    """Read a format B (Gmsh) mesh file through meshio."""
    path = Path(path)
    try:
        data = meshio.gmsh.read(path)
    except OSError as exc:
        raise MeshLoadError(f"Cannot read mesh file: {exc.strerror}", path) from exc
    except (meshio.ReadError, ValueError, KeyError, IndexError) as exc:
        reason = str(exc) or type(exc).__name__
        raise MeshLoadError(f"Cannot read Gmsh file: {reason}", path) from exc

    # meshio maps gmsh node ids to positions
    xy = data.points[:, :2].tolist()
    vertices = [Vertex(Point(x, y), index=i) for i, (x, y) in enumerate(xy)]

    triangles, edges = [], []
    for b, block in enumerate(data.cells):
        cells = np.asarray(block.data)
        if cells.size and (cells.min() < 0 or cells.max() >= len(vertices)):
            raise MeshLoadError(f"{block.type} cells reference unknown nodes", path)

        if block.type == "triangle":
            for ids in cells:
                corners = [vertices[i] for i in ids]
                triangles.append(Triangle.build(len(triangles), corners))
        elif block.type == "line":
            labels = _gmsh_labels(data, b, len(cells))
            for (s1, s2), label in zip(cells, labels):
                edges.append(BoundaryEdge(len(edges), (vertices[s1], vertices[s2]), int(label)))
        elif block.type == "vertex":
            continue
        else:
            # stricter than reading every other element type as boundary edges
            raise MeshLoadError(f"Unsupported element type {block.type!r}", path)

    if not triangles:
        raise MeshLoadError("No triangle elements", path)

    mesh = TriangleMesh2D(vertices, triangles, edges)
    _log_summary(mesh, path)
    return mesh


def read_mesh(path, index_base: int = 1) -> TriangleMesh2D:
    """Read a mesh file, detecting the format from its first bytes."""
    path = Path(path)
    try:
        with path.open("rb") as f:
            head = f.read(64).lstrip()
    except OSError as exc:
        raise MeshLoadError(f"Cannot read mesh file: {exc.strerror}", path) from exc
    if head.startswith((b"$MeshFormat", b"$Comments")):
        return read_gmsh_mesh(path)
    return read_freefem_mesh(path, index_base=index_base)
