"""pysymfem.fem.bcs
Dirichlet boundary conditions and their merge into one boundary-value map.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable, Dict, Iterable, Optional, Union

import numpy as np

from pysymfem.assembly.elimination import BoundaryValues
from pysymfem.fem.dofmap import DofMap
from pysymfem.utils.bitset import BitSet

logger = logging.getLogger(__name__)

Locator = Callable[..., bool]
Where = Union[str, BitSet, Locator]


class DirichletBC:
    """
    Essential condition ``u = value`` on part of the boundary.

    Parameters
    ----------
    V : DofMap
    value : float | callable
        Constant, or ``value(*x)`` evaluated at the dof coordinates.  For a
        vector space without ``component`` the callable may return one value
        per component.
    where : str | BitSet | callable
        Facet tag, a BitSet over facets, or a locator ``f(*x) -> bool``.
    method : {"topological", "pointwise"}
        ``topological`` constrains the dofs of the selected facets (a locator
        selects exterior facets by their midpoint); ``pointwise`` tests the
        locator on every dof coordinate.
    component : int, optional
        Restrict a vector space condition to one component.
    """

    def __init__(self, V: DofMap, value, where: Where, *, method: str = "topological",
                 component: Optional[int] = None):
        m = method.lower()
        if m not in ("topological", "pointwise"):
            raise ValueError("BC method must be 'topological' or 'pointwise'")
        if m == "pointwise" and not callable(where):
            raise TypeError("A pointwise condition needs a locator function.")
        if component is not None and not 0 <= component < V.value_size:
            raise IndexError(f"Component {component} out of range for value_size {V.value_size}.")
        self.V = V
        self.value = value
        self.where = where
        self.method = m
        self.component = component

    # --- dof selection ---
    def _facets(self) -> np.ndarray:
        mesh = self.V.mesh
        if isinstance(self.where, str):
            return mesh.facet_bitset(self.where).to_indices()
        if isinstance(self.where, BitSet):
            if len(self.where) != mesh.num_facets:
                raise ValueError("BitSet size does not match the number of facets.")
            return self.where.to_indices()
        return np.array([f for f in mesh.exterior_facets()
                         if self.where(*mesh.facet_midpoint(int(f)))], dtype=np.int64)

    def dofs(self) -> np.ndarray:
        V = self.V
        if self.method == "pointwise":
            comps = range(V.value_size) if self.component is None else [self.component]
            coords = V.tabulate_dof_coordinates()
            cand = np.concatenate([V.component_dofs(c) for c in comps])
            return np.array([d for d in cand if self.where(*coords[d])], dtype=np.int64)
        selected = set()
        for f in self._facets():
            selected.update(int(d) for d in V.facet_dofs(int(f), self.component))
        return np.array(sorted(selected), dtype=np.int64)

    # --- values ---
    def get_boundary_values(self) -> Dict[int, float]:
        """``{global dof: prescribed value}``"""
        dofs = self.dofs()
        if not callable(self.value):
            v = float(self.value)
            return {int(d): v for d in dofs}
        coords = self.V.tabulate_dof_coordinates()
        out: Dict[int, float] = {}
        for d in dofs:
            val = np.atleast_1d(np.asarray(self.value(*coords[d]), dtype=float))
            if val.size == 1:
                out[int(d)] = float(val[0])
            else:
                out[int(d)] = float(val[self.V.dof_component(d)])
        return out

    def __repr__(self):
        where = self.where if isinstance(self.where, (str, BitSet)) else getattr(self.where, "__name__", "locator")
        return f"<DirichletBC {self.method} on {where!r} component={self.component}>"


BcLike = Union[DirichletBC, Mapping[int, float]]


def merge_boundary_values(bcs: Union[BcLike, Iterable[BcLike], None], size: int) -> BoundaryValues:
    """
    Merge boundary conditions into one map; later sources win on shared dofs.

    Raises InvalidBoundaryDofError for a dof outside ``[0, size)``.
    """
    if bcs is None:
        bcs = ()
    elif isinstance(bcs, (DirichletBC, Mapping)):
        bcs = (bcs,)
    merged = BoundaryValues(size)
    for bc in bcs:
        if isinstance(bc, DirichletBC):
            if bc.V.num_dofs != size:
                logger.warning(f"{bc!r} lives on a space with {bc.V.num_dofs} dofs, assembling {size}.")
            merged.update(bc.get_boundary_values())
        elif isinstance(bc, Mapping):
            merged.update(bc)
        else:
            raise TypeError(f"Unsupported boundary condition {type(bc)}")
    logger.debug(f"Merged boundary values: {merged!r}")
    return merged
