import numpy as np
import pytest

from pysymfem.core.mesh import Mesh
from pysymfem.utils.meshgen import (delaunay_rectangle, structured_quad,
                                    structured_tetrahedra, structured_triangles, unit_interval)


class TestMeshTopology:
    def test_counts_triangles(self):
        mesh = structured_triangles(1.0, 1.0, nx_quads=2, ny_quads=2)
        assert mesh.num_vertices == 9
        assert mesh.num_cells == 8
        assert mesh.num_facets == 16
        assert len(mesh.exterior_facets()) == 8
        assert len(mesh.interior_facets()) == 8

    def test_counts_quads_tets_intervals(self, tet_mesh):
        quad = structured_quad(1.0, 1.0, nx=2, ny=2)
        assert (quad.num_facets, len(quad.interior_facets())) == (12, 4)
        single = structured_tetrahedra(1.0, 1.0, 1.0, nx=1, ny=1, nz=1)
        assert single.num_cells == 6
        assert len(single.exterior_facets()) == 12
        assert len(single.interior_facets()) == 6
        assert tet_mesh.volumes().sum() == pytest.approx(1.0)
        line = unit_interval(4)
        assert line.num_facets == 5
        assert sorted(line.exterior_facets().tolist()) == sorted(
            [line.find_facet([0]).index, line.find_facet([4]).index])

    def test_cell_facet_table_is_consistent(self, tri_mesh):
        ct = tri_mesh.cell_type
        for c in range(tri_mesh.num_cells):
            expected = ct.create_entities(1, tri_mesh.cells[c].tolist())
            for lf, gid in enumerate(tri_mesh.cell_facets[c]):
                facet = tri_mesh.facet(int(gid))
                assert facet.local_facet(c) == lf
                assert sorted(facet.vertices) == sorted(expected[lf])

    def test_interior_facet_cells_are_ordered(self, tri_mesh):
        for gid in tri_mesh.interior_facets():
            facet = tri_mesh.facet(int(gid))
            assert facet.cells[0] < facet.cells[1]
            assert facet.interior and not facet.exterior

    def test_boundary_normals_point_outward(self, quad_mesh):
        center = np.array([0.5, 0.5])
        for gid in quad_mesh.exterior_facets():
            n = quad_mesh.facet_normal(int(gid))
            assert n @ (quad_mesh.facet_midpoint(int(gid)) - center) > 0.0

    def test_neighbors(self):
        mesh = structured_triangles(1.0, 1.0, nx_quads=1, ny_quads=1)
        assert mesh.neighbors(0) == [1]
        assert mesh.neighbors(1) == [0]

    def test_non_manifold_mesh_is_rejected(self):
        coords = np.array([[0, 0], [1, 0], [0, 1], [0, -1], [1, 1]], dtype=float)
        with pytest.raises(ValueError):
            Mesh(coords, [[0, 1, 2], [0, 1, 3], [0, 1, 4]], "triangle")

    def test_bad_connectivity(self):
        coords = np.array([[0, 0], [1, 0], [0, 1]], dtype=float)
        with pytest.raises(IndexError):
            Mesh(coords, [[0, 1, 5]], "triangle")
        with pytest.raises(ValueError):
            Mesh(coords, [[0, 1]], "triangle")


class TestMeshGeometry:
    def test_volumes_and_sizes(self, tri_mesh):
        assert tri_mesh.volumes().sum() == pytest.approx(1.0)
        assert tri_mesh.hmax() == pytest.approx(np.sqrt(2.0) / 4.0)
        assert tri_mesh.hmin() == pytest.approx(np.sqrt(2.0) / 4.0)

    def test_delaunay_rectangle(self):
        mesh = delaunay_rectangle(2.0, 1.0, nx=5, ny=4)
        assert mesh.volumes().sum() == pytest.approx(2.0)


class TestTaggingAndMarkers:
    def test_tag_boundary_facets(self, tri_mesh):
        tri_mesh.tag_boundary_facets({"left": lambda x, y: np.isclose(x, 0.0),
                                      "right": lambda x, y: np.isclose(x, 1.0)})
        assert tri_mesh.facet_bitset("left").cardinality() == 4
        assert tri_mesh.facet_bitset("right").cardinality() == 4
        assert tri_mesh.facet_bitset("top").cardinality() == 0

    def test_tag_facets_respects_overwrite(self, tri_mesh):
        tri_mesh.tag_facets({"low": lambda x, y: y < 0.3})
        n_low = tri_mesh.facet_bitset("low").cardinality()
        tri_mesh.tag_facets({"all": lambda x, y: True}, overwrite=False)
        assert tri_mesh.facet_bitset("low").cardinality() == n_low
        assert tri_mesh.facet_bitset("all").cardinality() == tri_mesh.num_facets - n_low

    def test_mark_cells_and_facets(self, tri_mesh):
        cells = tri_mesh.mark_cells({1: lambda x, y: x < 0.5})
        assert (cells == 1).sum() == tri_mesh.num_cells // 2
        assert tri_mesh.volumes()[cells == 1].sum() == pytest.approx(0.5)
        facets = tri_mesh.mark_facets({2: lambda x, y: np.isclose(y, 1.0)}, boundary_only=True)
        assert (facets == 2).sum() == 4
        assert set(np.unique(facets).tolist()) == {0, 2}
