"""Tests for the P2 topology builder."""

import numpy as np
import pytest

from meshing import (
    BoundaryEdge,
    Point,
    TopologyError,
    Triangle,
    TriangleMesh2D,
    Vertex,
    build_topology,
    create_channel_mesh,
)


def _mesh(coords, tris, segments):
    vertices = [Vertex(Point(x, y), index=i) for i, (x, y) in enumerate(coords)]
    triangles = [Triangle.build(k, [vertices[i] for i in t]) for k, t in enumerate(tris)]
    edges = [
        BoundaryEdge(e, (vertices[s1], vertices[s2]), label)
        for e, (s1, s2, label) in enumerate(segments)
    ]
    return TriangleMesh2D(vertices, triangles, edges)


class TestUnitSquare:
    """Two triangles on the unit square."""

    def test_node_count(self, raw_unit_square):
        """4 corners + 5 edges = 9 P2 nodes."""
        n = build_topology(raw_unit_square)
        assert n == 9
        assert raw_unit_square.n == 9
        assert raw_unit_square.n_unknowns == 2 * 9 + 4

    def test_each_triangle_is_the_other_neighbor(self, unit_square):
        assert unit_square.neighbors == [[1], [0]]

    def test_shared_midpoint(self, unit_square):
        """The diagonal midpoint is the same vertex in both triangles."""
        t0, t1 = unit_square.triangles
        shared = {m.index for m in t0.midpoints} & {m.index for m in t1.midpoints}
        assert len(shared) == 1

        mid = unit_square.vertices[shared.pop()]
        assert (mid.x, mid.y) == (0.5, 0.5)
        assert mid.label == 0

    def test_midpoint_opposite_corner(self, unit_square):
        """Midpoint a sits on the edge opposite corner a."""
        for tri in unit_square.triangles:
            assert tri.is_complete
            for a in range(3):
                v1, v2 = tri.edge(a)
                mid = tri.midpoints[a]
                assert mid.x == pytest.approx(0.5 * (v1.x + v2.x))
                assert mid.y == pytest.approx(0.5 * (v1.y + v2.y))

    def test_midpoint_indices_follow_corners(self, unit_square):
        dofs = unit_square.dofs
        assert dofs.shape == (2, 6)
        assert set(dofs[:, 3:].ravel()) == set(range(4, 9))
        assert np.all(dofs[:, :3] < 4)

    def test_last_write_wins_at_corners(self, unit_square):
        """Edges are listed bottom (20), right (30), top (40), left (10)."""
        labels = [v.label for v in unit_square.vertices[:4]]
        assert labels == [10, 30, 40, 10]

    def test_boundary_midpoints_carry_edge_label(self, unit_square):
        by_edge = {
            tuple(sorted(e)): unit_square.vertices[unit_square.nv + m].label
            for m, e in enumerate(unit_square.midpoint_edges)
        }
        assert by_edge == {(0, 1): 20, (1, 2): 30, (2, 3): 40, (0, 3): 10, (0, 2): 0}

    def test_exit_triangles(self, unit_square):
        """Only triangle 0 owns the outflow edge (1, 2)."""
        assert unit_square.exit_triangles == [0]

    def test_array_views(self, unit_square):
        assert unit_square.coordinates.shape == (9, 2)
        assert unit_square.corner_coordinates.shape == (2, 3, 2)
        assert unit_square.areas == pytest.approx([0.5, 0.5])
        assert unit_square.midpoint_edges.shape == (5, 2)
        assert unit_square(0, 0) == unit_square.dofs[0, 0]


class TestChannelTopology:
    """Structured channel meshes."""

    @pytest.mark.parametrize("nx,ny", [(1, 1), (3, 2), (8, 4)])
    def test_midpoint_count(self, nx, ny):
        mesh = create_channel_mesh(nx, ny)
        n = build_topology(mesh)
        n_edges = nx * (ny + 1) + ny * (nx + 1) + nx * ny
        assert n == (nx + 1) * (ny + 1) + n_edges

    def test_adjacency_symmetric(self, channel_mesh):
        for k, nbs in enumerate(channel_mesh.neighbors):
            assert nbs == sorted(set(nbs))
            assert len(nbs) <= 3
            for j in nbs:
                assert k in channel_mesh.neighbors[j]

    def test_adjacency_strategies_agree(self):
        """Edge-owner and corner-incidence adjacency give identical lists."""
        by_edge = create_channel_mesh(6, 3)
        by_incidence = create_channel_mesh(6, 3)
        build_topology(by_edge, adjacency="edge")
        build_topology(by_incidence, adjacency="incidence")
        assert by_edge.neighbors == by_incidence.neighbors

    def test_exit_triangles_on_outflow(self, channel_mesh):
        x_max = channel_mesh.bounding_box()[1]
        assert len(channel_mesh.exit_triangles) == 4
        for k in channel_mesh.exit_triangles:
            xs = channel_mesh.corner_coordinates[k, :, 0]
            assert np.sum(np.isclose(xs, x_max)) == 2

    def test_labels(self, channel_mesh):
        labels = channel_mesh.labels
        xy = channel_mesh.coordinates
        inlet = (xy[:, 0] == 0.0) & (xy[:, 1] > 0.5) & (xy[:, 1] < 1.0)
        assert np.all(labels[inlet] == 10)
        interior = (xy[:, 0] > 0) & (xy[:, 0] < 2) & (xy[:, 1] > 0) & (xy[:, 1] < 1)
        assert np.all(labels[interior] == 0)
        # corners end up with the wall label
        assert labels[0] == 20


class TestTopologyErrors:
    """Invalid connectivity is rejected."""

    def test_edge_on_three_triangles(self):
        coords = [(0, 0), (1, 0), (0.5, 1), (0.5, -1), (0.5, 2)]
        mesh = _mesh(coords, [(0, 1, 2), (0, 1, 3), (0, 1, 4)], [])
        with pytest.raises(TopologyError, match="more than two"):
            build_topology(mesh)

    def test_conflicting_duplicate_boundary_edge(self):
        coords = [(0, 0), (1, 0), (0, 1)]
        mesh = _mesh(coords, [(0, 1, 2)], [(0, 1, 20), (1, 0, 30)])
        with pytest.raises(TopologyError, match="conflicting"):
            build_topology(mesh)

    def test_duplicate_boundary_edge_same_label_is_fine(self):
        coords = [(0, 0), (1, 0), (0, 1)]
        mesh = _mesh(coords, [(0, 1, 2)], [(0, 1, 20), (1, 0, 20)])
        assert build_topology(mesh) == 6

    def test_dangling_boundary_edge(self):
        """(1, 3) is not an edge of the unit square triangulation."""
        coords = [(0, 0), (1, 0), (1, 1), (0, 1)]
        mesh = _mesh(coords, [(0, 1, 2), (0, 2, 3)], [(1, 3, 20)])
        with pytest.raises(TopologyError, match="not on any triangle"):
            build_topology(mesh)

    def test_build_twice(self, unit_square):
        with pytest.raises(TopologyError, match="already"):
            build_topology(unit_square)

    def test_views_require_topology(self, raw_unit_square):
        with pytest.raises(TopologyError):
            raw_unit_square.dofs

    def test_unknown_adjacency(self, raw_unit_square):
        with pytest.raises(ValueError, match="Unknown adjacency"):
            build_topology(raw_unit_square, adjacency="voronoi")
