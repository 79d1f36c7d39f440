"""pysymfem.fem.forms
Forms as tables of local integral kernels.

A kernel fills a caller-provided, zeroed local buffer by *adding* into it:

* cell integral            ``kernel(out, cell)``
* exterior-facet integral  ``kernel(out, cell, local_facet)``
* interior-facet integral  ``kernel(out, (cell0, cell1), (local_facet0, local_facet1))``

``out`` has shape (n, n) for bilinear forms and (n,) for linear forms; for
interior facets ``n`` covers the dofs of both cells, cell0's block first.
"""
from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from pysymfem.core.exceptions import IncompatibleFormsError
from pysymfem.fem.dofmap import DofMap

CELL = "cell"
EXTERIOR_FACET = "exterior_facet"
INTERIOR_FACET = "interior_facet"
INTEGRAL_TYPES = (CELL, EXTERIOR_FACET, INTERIOR_FACET)

Kernel = Callable[..., None]
IntegralSpec = Union[None, Kernel, Mapping[Optional[int], Kernel]]


def _normalize(spec: IntegralSpec) -> Dict[Optional[int], Kernel]:
    if spec is None:
        return {}
    if callable(spec):
        return {None: spec}
    table = {}
    for key, kernel in dict(spec).items():
        if not callable(kernel):
            raise TypeError(f"Integral for subdomain {key!r} is not callable.")
        table[None if key is None else int(key)] = kernel
    return table


def _sum_kernels(k1: Kernel, k2: Kernel) -> Kernel:
    def kernel(out, *args):
        k1(out, *args)
        k2(out, *args)
    return kernel


def _scale_kernel(k: Kernel, s: float) -> Kernel:
    def kernel(out, *args):
        tmp = np.zeros_like(out)
        k(tmp, *args)
        out += s * tmp
    return kernel


class Form:
    """
    Bilinear (rank 2) or linear (rank 1) form.

    Parameters
    ----------
    rank : int
        1 for a linear form, 2 for a bilinear form.
    function_spaces : DofMap | Sequence[DofMap]
        Test space first, then (for rank 2) the trial space.  A single
        DofMap is used for every argument.
    cell, exterior_facet, interior_facet
        A kernel (integral over every entity of that kind) or a mapping
        ``{subdomain_id: kernel}``; the key ``None`` is the default integral
        used on entities whose marker has no dedicated kernel.
    """

    def __init__(self, rank: int, function_spaces: Union[DofMap, Sequence[DofMap]], *,
                 cell: IntegralSpec = None,
                 exterior_facet: IntegralSpec = None,
                 interior_facet: IntegralSpec = None,
                 name: str = ""):
        if rank not in (1, 2):
            raise ValueError(f"Only linear and bilinear forms can be assembled, got rank {rank}.")
        if isinstance(function_spaces, DofMap):
            function_spaces = (function_spaces,) * rank
        spaces = tuple(function_spaces)
        if len(spaces) != rank:
            raise ValueError(f"A rank {rank} form needs {rank} function spaces, got {len(spaces)}.")
        if any(V.mesh is not spaces[0].mesh for V in spaces):
            raise ValueError("All arguments of a form must live on the same mesh.")
        self.rank = rank
        self.function_spaces = spaces
        self.name = name
        self._integrals: Dict[str, Dict[Optional[int], Kernel]] = {
            CELL: _normalize(cell),
            EXTERIOR_FACET: _normalize(exterior_facet),
            INTERIOR_FACET: _normalize(interior_facet),
        }

    @property
    def mesh(self):
        return self.function_spaces[0].mesh

    # --- integral availability ---
    def has_integral(self, kind: str) -> bool:
        return bool(self._integrals[kind])

    def has_cell_integral(self) -> bool:
        return self.has_integral(CELL)

    def has_exterior_facet_integral(self) -> bool:
        return self.has_integral(EXTERIOR_FACET)

    def has_interior_facet_integral(self) -> bool:
        return self.has_integral(INTERIOR_FACET)

    def subdomain_ids(self, kind: str):
        return sorted(k for k in self._integrals[kind] if k is not None)

    # --- integral lookup ---
    def integral(self, kind: str, marker: Optional[int] = None) -> Optional[Kernel]:
        """Kernel for an entity with ``marker``; falls back to the default integral."""
        table = self._integrals[kind]
        if not table:
            return None
        if marker is not None:
            kernel = table.get(int(marker))
            if kernel is not None:
                return kernel
        return table.get(None)

    def cell_integral(self, marker: Optional[int] = None) -> Optional[Kernel]:
        return self.integral(CELL, marker)

    def exterior_facet_integral(self, marker: Optional[int] = None) -> Optional[Kernel]:
        return self.integral(EXTERIOR_FACET, marker)

    def interior_facet_integral(self, marker: Optional[int] = None) -> Optional[Kernel]:
        return self.integral(INTERIOR_FACET, marker)

    # --- algebra ---
    def _check_same_arguments(self, other: "Form"):
        if not isinstance(other, Form):
            raise TypeError(f"Can only add a Form to a Form, not {type(other)}")
        if other.rank != self.rank or any(
                not a.is_compatible(b) for a, b in zip(self.function_spaces, other.function_spaces)):
            raise IncompatibleFormsError("Cannot add forms with different arguments.")

    def __add__(self, other: "Form") -> "Form":
        self._check_same_arguments(other)
        merged = {}
        for kind in INTEGRAL_TYPES:
            mine, theirs = self._integrals[kind], other._integrals[kind]
            table = {}
            # a subdomain kernel of one term still receives the other term's default
            for key in set(mine) | set(theirs):
                k1 = mine.get(key, mine.get(None))
                k2 = theirs.get(key, theirs.get(None))
                if k1 is not None and k2 is not None:
                    table[key] = _sum_kernels(k1, k2)
                else:
                    table[key] = k1 if k1 is not None else k2
            merged[kind] = table
        return Form(self.rank, self.function_spaces, name=f"{self.name}+{other.name}".strip("+"),
                    **merged)

    def __mul__(self, scalar: float) -> "Form":
        s = float(scalar)
        scaled = {kind: {key: _scale_kernel(k, s) for key, k in self._integrals[kind].items()}
                  for kind in INTEGRAL_TYPES}
        return Form(self.rank, self.function_spaces, name=self.name, **scaled)

    __rmul__ = __mul__

    def __neg__(self) -> "Form":
        return self * -1.0

    def __sub__(self, other: "Form") -> "Form":
        return self + (-other)

    def __repr__(self):
        kinds = [f"{k}{self.subdomain_ids(k) or ''}" for k in INTEGRAL_TYPES if self.has_integral(k)]
        return f"<Form {self.name or '?'} rank={self.rank} integrals={kinds}>"
