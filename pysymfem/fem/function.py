"""pysymfem.fem.function
Discrete functions (coefficient vectors) on a DofMap.
"""
from __future__ import annotations

from typing import Callable

import numpy as np

from pysymfem.fem.dofmap import DofMap


class Function:
    """A finite element function: a dof map plus one value per global dof."""

    def __init__(self, V: DofMap, values: np.ndarray | None = None, name: str = "u"):
        self.V = V
        self.name = name
        if values is None:
            self.x = np.zeros(V.num_dofs)
        else:
            values = np.asarray(values, dtype=float)
            if values.shape != (V.num_dofs,):
                raise ValueError(f"Expected {V.num_dofs} values, got shape {values.shape}.")
            self.x = values.copy()

    def cell_values(self, cell_id: int) -> np.ndarray:
        """Local coefficients, reshaped to (value_size, n_loc)."""
        return self.x[self.V.cell_dofs(cell_id)].reshape(self.V.value_size, self.V.n_loc)

    def eval_reference(self, cell_id: int, N: np.ndarray) -> np.ndarray:
        """Values at points with basis values ``N`` (n_qp, n_loc) → (n_qp, value_size)."""
        return N @ self.cell_values(cell_id).T

    def interpolate(self, f: Callable | float) -> "Function":
        """Nodal interpolation of a constant or a callable ``f(*x)``."""
        coords = self.V.tabulate_dof_coordinates()
        if not callable(f):
            self.x[:] = float(f)
            return self
        vs = self.V.value_size
        n = self.V.num_dofs // vs
        for i, p in enumerate(coords[:n]):
            val = np.atleast_1d(np.asarray(f(*p), dtype=float))
            if val.size != vs:
                raise ValueError(f"Expected {vs} values from f, got {val.size}.")
            for comp in range(vs):
                self.x[comp * n + i] = val[comp]
        return self

    def copy(self) -> "Function":
        return Function(self.V, self.x, self.name)

    def __repr__(self) -> str:
        return f"<Function {self.name} on {self.V!r}>"
