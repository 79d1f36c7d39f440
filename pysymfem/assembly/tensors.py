"""pysymfem.assembly.tensors
Global accumulators with additive scatter.
"""
from __future__ import annotations

from typing import List, Tuple, Union

import numpy as np
import scipy.sparse as sp


class Matrix:
    """Sparse matrix collected as COO triplets; duplicates are summed on export."""

    def __init__(self, shape: Union[int, Tuple[int, int]]):
        if isinstance(shape, (int, np.integer)):
            shape = (int(shape), int(shape))
        self.shape = tuple(int(s) for s in shape)
        self.zero()

    def zero(self):
        self._rows: List[np.ndarray] = []
        self._cols: List[np.ndarray] = []
        self._data: List[np.ndarray] = []

    def add(self, values: np.ndarray, rows: np.ndarray, cols: np.ndarray):
        r, c = np.meshgrid(rows, cols, indexing="ij")
        self._rows.append(r.ravel())
        self._cols.append(c.ravel())
        self._data.append(np.asarray(values, dtype=float).ravel().copy())

    def add_entries(self, rows, cols, values):
        """Add individual ``(row, col, value)`` entries."""
        self._rows.append(np.asarray(rows, dtype=np.int64).ravel())
        self._cols.append(np.asarray(cols, dtype=np.int64).ravel())
        self._data.append(np.asarray(values, dtype=float).ravel().copy())

    def to_csr(self) -> sp.csr_matrix:
        if not self._data:
            return sp.csr_matrix(self.shape)
        K = sp.coo_matrix((np.concatenate(self._data),
                           (np.concatenate(self._rows), np.concatenate(self._cols))),
                          shape=self.shape).tocsr()
        K.sum_duplicates()
        return K

    def toarray(self) -> np.ndarray:
        return self.to_csr().toarray()

    def __repr__(self):
        return f"<Matrix {self.shape} triplets={sum(len(d) for d in self._data)}>"


class DenseMatrix:
    """Dense matrix; wraps a caller array in place when one is given."""

    def __init__(self, shape_or_array):
        if isinstance(shape_or_array, np.ndarray):
            if shape_or_array.ndim != 2:
                raise ValueError("DenseMatrix needs a 2-D array.")
            self.array = shape_or_array
        else:
            shape = shape_or_array
            if isinstance(shape, (int, np.integer)):
                shape = (int(shape), int(shape))
            self.array = np.zeros(shape)
        self.shape = self.array.shape

    def zero(self):
        self.array[...] = 0.0

    def add(self, values: np.ndarray, rows: np.ndarray, cols: np.ndarray):
        np.add.at(self.array, (rows[:, None], cols[None, :]), values)

    def add_entries(self, rows, cols, values):
        np.add.at(self.array, (np.asarray(rows), np.asarray(cols)), values)

    def to_csr(self) -> sp.csr_matrix:
        return sp.csr_matrix(self.array)

    def toarray(self) -> np.ndarray:
        return self.array.copy()


class Vector:
    """Dense vector; wraps a caller array in place when one is given."""

    def __init__(self, size_or_array):
        if isinstance(size_or_array, np.ndarray):
            if size_or_array.ndim != 1:
                raise ValueError("Vector needs a 1-D array.")
            self.array = size_or_array
        else:
            self.array = np.zeros(int(size_or_array))
        self.size = self.array.shape[0]

    def zero(self):
        self.array[...] = 0.0

    def add(self, values: np.ndarray, rows: np.ndarray):
        np.add.at(self.array, rows, values)

    def add_entries(self, rows, values):
        np.add.at(self.array, np.asarray(rows), values)

    def toarray(self) -> np.ndarray:
        return self.array.copy()


def as_matrix(A):
    if A is None or isinstance(A, (Matrix, DenseMatrix)):
        return A
    if isinstance(A, np.ndarray):
        return DenseMatrix(A)
    raise TypeError(f"Cannot assemble a matrix into {type(A)}")


def as_vector(b):
    if b is None or isinstance(b, Vector):
        return b
    if isinstance(b, np.ndarray):
        return Vector(b)
    raise TypeError(f"Cannot assemble a vector into {type(b)}")
