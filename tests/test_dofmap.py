import numpy as np
import pytest

from pysymfem.fem.dofmap import DofMap
from pysymfem.fem.function import Function
from pysymfem.utils.meshgen import structured_triangles


@pytest.fixture
def small_mesh():
    return structured_triangles(1.0, 1.0, nx_quads=2, ny_quads=2)


def test_cg1_numbering(small_mesh):
    V = DofMap(small_mesh, "CG", 1)
    assert V.num_dofs == 9
    assert V.cell_dimension == 3
    np.testing.assert_array_equal(V.cell_dofs(3), small_mesh.cells[3])
    np.testing.assert_allclose(V.tabulate_dof_coordinates(), small_mesh.coordinates)


def test_vector_space_is_blocked_by_component(small_mesh):
    V = DofMap(small_mesh, "CG", 1, value_size=2)
    assert V.num_dofs == 18
    assert V.cell_dimension == 6
    c = small_mesh.cells[5]
    np.testing.assert_array_equal(V.cell_dofs(5), np.concatenate([c, c + 9]))
    np.testing.assert_array_equal(V.component_dofs(1), np.arange(9, 18))
    assert V.dof_component(10) == 1


def test_dg_numbering(small_mesh):
    W0 = DofMap(small_mesh, "DG", 0)
    W1 = DofMap(small_mesh, "DG", 1)
    assert W0.num_dofs == small_mesh.num_cells
    assert W1.num_dofs == 3 * small_mesh.num_cells
    all_dofs = np.concatenate([W1.cell_dofs(c) for c in range(small_mesh.num_cells)])
    assert len(np.unique(all_dofs)) == W1.num_dofs


def test_facet_dofs(small_mesh):
    V = DofMap(small_mesh, "CG", 1)
    W1 = DofMap(small_mesh, "DG", 1)
    W0 = DofMap(small_mesh, "DG", 0)
    gid = int(small_mesh.interior_facets()[0])
    facet = small_mesh.facet(gid)
    np.testing.assert_array_equal(V.facet_dofs(gid), sorted(facet.vertices))
    assert len(W1.facet_dofs(gid)) == 4
    assert len(W0.facet_dofs(gid)) == 0


def test_invalid_spaces(small_mesh):
    with pytest.raises(ValueError):
        DofMap(small_mesh, "CG", 0)
    with pytest.raises(ValueError):
        DofMap(small_mesh, "DG", 2)
    with pytest.raises(ValueError):
        DofMap(small_mesh, "RT", 1)


def test_compatibility(small_mesh):
    V = DofMap(small_mesh, "CG", 1)
    assert V.is_compatible(DofMap(small_mesh, "CG", 1))
    assert not V.is_compatible(DofMap(small_mesh, "DG", 1))
    assert not V.is_compatible(DofMap(small_mesh, "CG", 1, value_size=2))
    other = structured_triangles(1.0, 1.0, nx_quads=2, ny_quads=2)
    assert not V.is_compatible(DofMap(other, "CG", 1))


def test_function_interpolation(small_mesh):
    V = DofMap(small_mesh, "CG", 1, value_size=2)
    u = Function(V).interpolate(lambda x, y: (x + y, x - y))
    coords = small_mesh.coordinates
    np.testing.assert_allclose(u.x[:9], coords[:, 0] + coords[:, 1])
    np.testing.assert_allclose(u.x[9:], coords[:, 0] - coords[:, 1])
    assert u.cell_values(0).shape == (2, 3)
    with pytest.raises(ValueError):
        Function(V, np.zeros(3))
