import numpy as np

from pysymfem.utils.bitset import BitSet


def test_bitset():
    a = BitSet([True, False, True])
    b = BitSet([True, True, False])
    assert (a & b).to_indices().tolist() == [0]
    assert (a | b).cardinality() == 3
    assert (a - b).to_indices().tolist() == [2]
    assert (a ^ b).to_indices().tolist() == [1, 2]
    assert 2 in a and 1 not in a
    assert len(a) == 3


def test_from_indices():
    s = BitSet.from_indices([0, 4], 6)
    np.testing.assert_array_equal(s.array, [True, False, False, False, True, False])
    assert list(s.to_indices()) == [0, 4]


def test_iteration_yields_selected_indices():
    s = BitSet([False, True, False, True])
    assert list(s) == [1, 3]
    assert all(isinstance(i, int) for i in s)
    assert list(BitSet(np.zeros(3, dtype=bool))) == []
