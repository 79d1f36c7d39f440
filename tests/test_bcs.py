import numpy as np
import pytest

from pysymfem.core.exceptions import InvalidBoundaryDofError
from pysymfem.fem.bcs import DirichletBC, merge_boundary_values
from pysymfem.fem.dofmap import DofMap
from pysymfem.utils.bitset import BitSet


def left(x, y):
    return np.isclose(x, 0.0)


def test_tagged_condition(V):
    mesh = V.mesh
    mesh.tag_boundary_facets({"left": left})
    bc = DirichletBC(V, 2.0, "left")
    vals = bc.get_boundary_values()
    expected = np.flatnonzero(np.isclose(mesh.coordinates[:, 0], 0.0))
    assert sorted(vals) == expected.tolist()
    assert set(vals.values()) == {2.0}


def test_locator_and_bitset_select_the_same_dofs(V):
    mesh = V.mesh
    by_locator = DirichletBC(V, 0.0, left).dofs()
    mask = np.zeros(mesh.num_facets, dtype=bool)
    for gid in mesh.exterior_facets():
        if left(*mesh.facet_midpoint(int(gid))):
            mask[gid] = True
    by_bitset = DirichletBC(V, 0.0, BitSet(mask)).dofs()
    np.testing.assert_array_equal(by_locator, by_bitset)
    assert len(by_locator) == 5


def test_pointwise_condition(V):
    bc = DirichletBC(V, 1.5, lambda x, y: np.isclose(x, 0.0) and np.isclose(y, 0.0),
                     method="pointwise")
    assert bc.get_boundary_values() == {0: 1.5}
    with pytest.raises(TypeError):
        DirichletBC(V, 0.0, "left", method="pointwise")
    with pytest.raises(ValueError):
        DirichletBC(V, 0.0, left, method="weak")


def test_callable_value(V, boundary):
    bc = DirichletBC(V, lambda x, y: 1.0 + x + 2.0 * y, boundary)
    coords = V.tabulate_dof_coordinates()
    for d, v in bc.get_boundary_values().items():
        assert v == pytest.approx(1.0 + coords[d, 0] + 2.0 * coords[d, 1])
    assert len(bc.get_boundary_values()) == 16


def test_vector_component(tri_mesh, boundary):
    V2 = DofMap(tri_mesh, "CG", 1, value_size=2)
    bc = DirichletBC(V2, lambda x, y: (x, y), boundary, component=1)
    vals = bc.get_boundary_values()
    n = tri_mesh.num_vertices
    assert all(d >= n for d in vals)
    coords = V2.tabulate_dof_coordinates()
    for d, v in vals.items():
        assert v == pytest.approx(coords[d, 1])
    with pytest.raises(IndexError):
        DirichletBC(V2, 0.0, boundary, component=2)


def test_merge_last_writer_wins(V):
    merged = merge_boundary_values([{0: 1.0, 1: 2.0}, {1: 5.0, 3: -1.0}], V.num_dofs)
    assert merged.as_dict() == {0: 1.0, 1: 5.0, 3: -1.0}
    assert len(merged) == 3
    assert 1 in merged and 2 not in merged


def test_merge_mixes_conditions_and_maps(V, boundary):
    bc = DirichletBC(V, 0.0, boundary)
    merged = merge_boundary_values([bc, {0: 7.0}], V.num_dofs)
    assert merged[0] == 7.0
    merged = merge_boundary_values([{0: 7.0}, bc], V.num_dofs)
    assert merged[0] == 0.0
    assert len(merge_boundary_values(None, V.num_dofs)) == 0


def test_invalid_dof(V):
    with pytest.raises(InvalidBoundaryDofError):
        merge_boundary_values({V.num_dofs: 1.0}, V.num_dofs)
    with pytest.raises(InvalidBoundaryDofError):
        merge_boundary_values([{-1: 0.0}], V.num_dofs)
