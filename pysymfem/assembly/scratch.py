"""pysymfem.assembly.scratch"""
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from pysymfem.fem.forms import Form


class Scratch:
    """
    Local matrix/vector buffers of one assembly call.

    Sized for the interior-facet macro element (twice the largest cell
    dimension) so every assembly unit reuses the same memory.
    """

    def __init__(self, a: Form, L: Optional[Form] = None):
        spaces = list(a.function_spaces) + (list(L.function_spaces) if L is not None else [])
        self.size = 2 * max(V.cell_dimension for V in spaces)
        self.Ae = [np.zeros((self.size, self.size)), np.zeros(self.size)]

    def zero_cell(self, n: int) -> Tuple[np.ndarray, np.ndarray]:
        """Zeroed views of size ``n`` of the matrix and vector buffers."""
        if n > self.size:
            raise ValueError(f"Local dimension {n} exceeds scratch size {self.size}.")
        A = self.Ae[0][:n, :n]
        b = self.Ae[1][:n]
        A[...] = 0.0
        b[...] = 0.0
        return A, b
