"""pysymfem.fem.dofmap
Degree-of-freedom numbering for P0/P1/Q1 Lagrange spaces.

Vector-valued spaces are blocked by component: all dofs of component 0,
then all dofs of component 1, and so on.  The local dofs of a cell follow
the same layout (``n_loc`` dofs of component 0, then component 1, ...).
"""
from __future__ import annotations

import logging
from typing import List

import numpy as np

from pysymfem.core.mesh import Mesh
from pysymfem.fem.reference import get_reference

logger = logging.getLogger(__name__)


class DofMap:
    """
    Local-to-global dof map of a continuous ("CG") or discontinuous ("DG")
    Lagrange space on ``mesh``.

    * CG1 / Q1: one dof per mesh vertex and component.
    * DG0: one dof per cell and component.
    * DG1: one dof per cell vertex and component, not shared between cells.
    """

    def __init__(self, mesh: Mesh, family: str = "CG", degree: int = 1, value_size: int = 1):
        family = family.upper()
        if family not in ("CG", "DG"):
            raise ValueError("family must be 'CG' or 'DG'")
        if family == "CG" and degree != 1:
            raise ValueError("Continuous spaces are only available for degree 1.")
        if degree not in (0, 1):
            raise ValueError(f"Unsupported degree {degree}.")
        if value_size < 1:
            raise ValueError("value_size must be positive")

        self.mesh = mesh
        self.family = family
        self.degree = int(degree)
        self.value_size = int(value_size)
        self.reference = get_reference(mesh.cell_type.name, self.degree)
        self.n_loc = self.reference.n_basis          # scalar dofs per cell
        self._cell_dofs = self._build_cell_dofs()
        logger.debug(f"Built {self!r}")

    def _build_cell_dofs(self) -> np.ndarray:
        mesh = self.mesh
        nc = mesh.num_cells
        if self.family == "CG":
            n_scalar = mesh.num_vertices
            scalar = mesh.cells
        elif self.degree == 0:
            n_scalar = nc
            scalar = np.arange(nc, dtype=np.int64)[:, None]
        else:
            n_scalar = nc * self.n_loc
            scalar = np.arange(n_scalar, dtype=np.int64).reshape(nc, self.n_loc)
        self._n_scalar = n_scalar
        blocks = [scalar + comp * n_scalar for comp in range(self.value_size)]
        return np.ascontiguousarray(np.hstack(blocks), dtype=np.int64)

    # --- Public API ---
    @property
    def num_dofs(self) -> int:
        return self._n_scalar * self.value_size

    @property
    def cell_dimension(self) -> int:
        """Number of local dofs on one cell."""
        return self.n_loc * self.value_size

    def cell_dofs(self, cell_id: int) -> np.ndarray:
        return self._cell_dofs[cell_id]

    def component_dofs(self, component: int) -> np.ndarray:
        """All global dofs of one component."""
        if not 0 <= component < self.value_size:
            raise IndexError(f"Component {component} out of range.")
        return np.arange(component * self._n_scalar, (component + 1) * self._n_scalar)

    def facet_dofs(self, facet_id: int, component: int | None = None) -> np.ndarray:
        """
        Global dofs whose nodes lie on a facet.  For DG1 these are the dofs of
        every incident cell; DG0 has no facet dofs.
        """
        facet = self.mesh.facet(facet_id)
        comps = range(self.value_size) if component is None else [component]
        if self.degree == 0:
            return np.empty(0, dtype=np.int64)
        ct = self.mesh.cell_type
        out: List[int] = []
        for cell, lf in zip(facet.cells, facet.local_index):
            local = ct.facet_vertices(lf)
            dofs = self._cell_dofs[cell]
            for comp in comps:
                out.extend(int(dofs[comp * self.n_loc + i]) for i in local)
            if self.family == "CG":
                break
        return np.array(sorted(set(out)), dtype=np.int64)

    def tabulate_dof_coordinates(self) -> np.ndarray:
        """Physical coordinates of every dof (num_dofs, gdim)."""
        mesh = self.mesh
        if self.family == "CG":
            scalar = mesh.coordinates
        elif self.degree == 0:
            scalar = mesh.cell_midpoints()
        else:
            scalar = mesh.coordinates[mesh.cells].reshape(-1, mesh.gdim)
        return np.vstack([scalar] * self.value_size)

    def dof_component(self, dof: int) -> int:
        return int(dof) // self._n_scalar

    def is_compatible(self, other: "DofMap") -> bool:
        """Same mesh and the same numbering."""
        if other is self:
            return True
        return (isinstance(other, DofMap)
                and other.mesh is self.mesh
                and other.family == self.family
                and other.degree == self.degree
                and other.value_size == self.value_size)

    def __repr__(self) -> str:
        return (f"<DofMap {self.family}{self.degree} value_size={self.value_size} "
                f"num_dofs={self.num_dofs} cell_dimension={self.cell_dimension}>")
