import numpy as np
import pytest

from pysymfem.assembly.elimination import BoundaryValues, apply_bc, has_bc
from pysymfem.core.exceptions import InvalidBoundaryDofError


def _local_pair():
    Ae = np.array([[4.0, -1.0, -2.0],
                   [-1.0, 3.0, -0.5],
                   [-2.0, -0.5, 5.0]])
    be = np.array([1.0, 2.0, 3.0])
    return Ae, be


def test_single_constraint_is_eliminated_symmetrically():
    Ae, be = _local_pair()
    Ae0, be0 = Ae.copy(), be.copy()
    bvs = BoundaryValues(10, {5: 2.0})
    placed = np.zeros(10, dtype=bool)
    n = apply_bc(Ae, be, np.array([4, 5, 6]), bvs, placed)

    assert n == 1
    np.testing.assert_allclose(Ae, Ae.T)
    np.testing.assert_array_equal(Ae[1], [0.0, 1.0, 0.0])
    np.testing.assert_allclose(be[[0, 2]], be0[[0, 2]] - Ae0[[0, 2], 1] * 2.0)
    assert be[1] == 2.0
    np.testing.assert_allclose(Ae[np.ix_([0, 2], [0, 2])], Ae0[np.ix_([0, 2], [0, 2])])
    assert placed[5] and placed.sum() == 1


def test_later_units_leave_diagonal_at_zero():
    bvs = BoundaryValues(10, {5: 2.0})
    placed = np.zeros(10, dtype=bool)
    Ae, be = _local_pair()
    apply_bc(Ae, be, np.array([4, 5, 6]), bvs, placed)
    Ae, be = _local_pair()
    apply_bc(Ae, be, np.array([5, 7, 8]), bvs, placed)
    assert Ae[0, 0] == 0.0 and be[0] == 0.0
    np.testing.assert_array_equal(Ae[0], 0.0)
    np.testing.assert_array_equal(Ae[:, 0], 0.0)


def test_repeated_global_dof_in_macro_element():
    Ae = np.ones((2, 2))
    be = np.zeros(2)
    bvs = BoundaryValues(3, {2: 1.0})
    placed = np.zeros(3, dtype=bool)
    apply_bc(Ae, be, np.array([2, 2]), bvs, placed)
    np.testing.assert_array_equal(Ae, [[1.0, 0.0], [0.0, 0.0]])
    np.testing.assert_array_equal(be, [1.0, 0.0])


def test_unconstrained_unit_is_untouched():
    Ae, be = _local_pair()
    Ae0, be0 = Ae.copy(), be.copy()
    bvs = BoundaryValues(10, {9: 1.0})
    assert not has_bc(np.array([0, 1, 2]), bvs)
    assert has_bc(np.array([0, 9]), bvs)
    assert apply_bc(Ae, be, np.array([0, 1, 2]), bvs, np.zeros(10, dtype=bool)) == 0
    np.testing.assert_array_equal(Ae, Ae0)
    np.testing.assert_array_equal(be, be0)


def test_has_bc_only_looks_at_local_dofs(monkeypatch):
    bvs = BoundaryValues(10, {9: 1.0})

    def no_global_count(self):
        raise AssertionError("has_bc must not count every dof")

    monkeypatch.setattr(BoundaryValues, "__len__", no_global_count)
    assert has_bc(np.array([3, 9]), bvs)
    assert not has_bc(np.array([0, 1]), bvs)
    assert not has_bc(np.array([0, 1]), BoundaryValues(10))


def test_works_on_scratch_views():
    buf = np.zeros((6, 6))
    vec = np.zeros(6)
    Ae, be = buf[:3, :3], vec[:3]
    Ae[...] = _local_pair()[0]
    bvs = BoundaryValues(3, {0: -1.0})
    apply_bc(Ae, be, np.array([0, 1, 2]), bvs, np.zeros(3, dtype=bool))
    assert buf[0, 0] == 1.0 and vec[0] == -1.0
    np.testing.assert_allclose(vec[1:3], [-1.0, -2.0])


def test_boundary_values_map():
    bvs = BoundaryValues(4)
    bvs[1] = 3.0
    bvs[1] = 4.0
    bvs.update({3: -1.0})
    assert bvs.as_dict() == {1: 4.0, 3: -1.0}
    np.testing.assert_array_equal(bvs.dofs, [1, 3])
    shifted = bvs.shifted(np.array([0.0, 1.0, 0.0, 2.0]))
    assert shifted.as_dict() == {1: 3.0, 3: -3.0}
    assert bvs[1] == 4.0
    with pytest.raises(KeyError):
        bvs[0]
    with pytest.raises(InvalidBoundaryDofError):
        bvs[4] = 0.0
    with pytest.raises(ValueError):
        bvs.shifted(np.zeros(3))
