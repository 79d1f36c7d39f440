# pysymfem.fem.reference
"""
Lagrange bases on the reference cells, built symbolically and lambdified.

Only what the bundled kernels need: P0 on every cell, P1 on simplices and
Q1 on the unit square.  Basis function ``i`` of P1/Q1 belongs to reference
vertex ``i``.
"""
from functools import lru_cache

import numpy as np
import sympy as sp

from pysymfem.geometry import canonical_name, get_cell_type

REF_VERTICES = {
    "vertex": np.zeros((1, 0)),
    "interval": np.array([[0.0], [1.0]]),
    "triangle": np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
    "quadrilateral": np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]),
    "tetrahedron": np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
}

_X = sp.symbols("x0 x1 x2")


class Ref:
    def __init__(self, shape_lambda, grad_lambda, n_basis: int, tdim: int):
        self.shape_lambda = shape_lambda
        self.grad_lambda = grad_lambda
        self.n_basis = n_basis
        self.tdim = tdim

    @lru_cache(maxsize=None)
    def _shape(self, xi: tuple) -> np.ndarray:
        return np.asarray(self.shape_lambda(*xi), dtype=float).ravel()

    @lru_cache(maxsize=None)
    def _grad(self, xi: tuple) -> np.ndarray:
        g = np.asarray(self.grad_lambda(*xi), dtype=float)
        return np.broadcast_to(g, (self.n_basis, self.tdim)).copy()

    def shape(self, X: np.ndarray) -> np.ndarray:
        """Basis values at reference points ``X`` (n_qp, tdim) → (n_qp, n_basis)."""
        X = np.atleast_2d(np.asarray(X, dtype=float))
        return np.array([self._shape(tuple(p)) for p in X]).reshape(len(X), self.n_basis)

    def grad(self, X: np.ndarray) -> np.ndarray:
        """Reference gradients at ``X`` → (n_qp, n_basis, tdim)."""
        X = np.atleast_2d(np.asarray(X, dtype=float))
        return np.array([self._grad(tuple(p)) for p in X]).reshape(len(X), self.n_basis, self.tdim)


def _lagrange_p1(name: str, x):
    if name == "interval":
        return [1 - x[0], x[0]]
    if name == "triangle":
        return [1 - x[0] - x[1], x[0], x[1]]
    if name == "tetrahedron":
        return [1 - x[0] - x[1] - x[2], x[0], x[1], x[2]]
    if name == "quadrilateral":
        return [(1 - x[0]) * (1 - x[1]), x[0] * (1 - x[1]), (1 - x[0]) * x[1], x[0] * x[1]]
    raise KeyError(name)


@lru_cache(maxsize=None)
def get_reference(cell_name: str, degree: int = 1) -> Ref:
    name = canonical_name(cell_name)
    tdim = get_cell_type(name).dim
    x = _X[:tdim]
    if degree == 0:
        N = sp.Matrix([sp.Integer(1)])
    elif degree == 1:
        N = sp.Matrix(_lagrange_p1(name, x))
    else:
        raise ValueError(f"Degree {degree} is not available on {name}.")
    dN = N.jacobian(sp.Matrix(x)) if tdim else sp.zeros(N.shape[0], 0)
    shape = sp.lambdify(x, N, "numpy")
    grad = sp.lambdify(x, dN, "numpy")
    return Ref(shape, grad, N.shape[0], tdim)
