"""pysymfem.assembly.system_assembler
Assembly of ``A x = b`` with Dirichlet conditions applied symmetrically
while the local tensors are scattered.

If neither form has facet integrals the mesh is traversed cell by cell.
Otherwise the traversal runs over facets and every cell integral is added
when the cell is met through its local facet 0, so each cell and each
interior facet contributes exactly once.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import scipy.sparse as sp

from pysymfem.assembly.elimination import BoundaryValues, apply_bc, has_bc
from pysymfem.assembly.scratch import Scratch
from pysymfem.assembly.tensors import Matrix, as_matrix, as_vector
from pysymfem.core.exceptions import IncompatibleFormsError
from pysymfem.fem.bcs import merge_boundary_values
from pysymfem.fem.forms import Form

logger = logging.getLogger(__name__)

SYMMETRY_FLAG = "PYSYMFEM_CHECK_SYMMETRY"


@dataclass(slots=True)
class AssemblyRequest:
    """What one ``assemble`` call produces."""
    A: object = None
    b: object = None
    x0: Optional[np.ndarray] = None

    @property
    def matrix(self) -> bool:
        return self.A is not None

    @property
    def vector(self) -> bool:
        return self.b is not None

    @property
    def increment(self) -> bool:
        return self.x0 is not None


class SystemAssembler:
    """
    Assembles a bilinear form ``a`` and a linear form ``L`` together,
    eliminating the constrained dofs of ``bcs`` symmetrically.

    Parameters
    ----------
    a : Form
        Bilinear form.
    L : Form, optional
        Linear form; ``None`` contributes nothing to the right-hand side.
    bcs : DirichletBC | Mapping[int, float] | sequence of those
        Later entries win where several conditions constrain the same dof.
    cell_domains, exterior_facet_domains, interior_facet_domains : array of int, optional
        Subdomain markers indexed by cell id, resp. global facet id.
    """

    def __init__(self, a: Form, L: Optional[Form] = None, bcs=(), *,
                 cell_domains=None, exterior_facet_domains=None, interior_facet_domains=None):
        self._check_arity(a, L)
        self.a = a
        self.L = L
        self.bcs = bcs
        self.V = a.function_spaces[0]
        mesh = self.V.mesh
        self.cell_domains = self._markers(cell_domains, mesh.num_cells, "cell_domains")
        self.exterior_facet_domains = self._markers(exterior_facet_domains, mesh.num_facets,
                                                    "exterior_facet_domains")
        self.interior_facet_domains = self._markers(interior_facet_domains, mesh.num_facets,
                                                    "interior_facet_domains")

    @staticmethod
    def _check_arity(a: Form, L: Optional[Form]):
        if not isinstance(a, Form) or a.rank != 2:
            raise IncompatibleFormsError("Expecting a bilinear form as the first argument.")
        test, trial = a.function_spaces
        if not test.is_compatible(trial):
            raise IncompatibleFormsError("Test and trial spaces of the bilinear form differ.")
        if L is None:
            return
        if not isinstance(L, Form) or L.rank != 1:
            raise IncompatibleFormsError("Expecting a linear form as the second argument.")
        if not L.function_spaces[0].is_compatible(test):
            raise IncompatibleFormsError("The linear form's test space differs from the bilinear form's.")

    @staticmethod
    def _markers(values, size: int, name: str):
        if values is None:
            return None
        arr = np.asarray(values, dtype=np.int64)
        if arr.shape != (size,):
            raise ValueError(f"{name} must have shape ({size},), got {arr.shape}.")
        return arr

    # -------------------------------------------------------------------------
    # public API
    # -------------------------------------------------------------------------
    def assemble(self, A=None, b=None, x0=None):
        """
        Assemble into ``A`` and/or ``b``.

        With ``x0`` the constrained entries of ``b`` receive
        ``prescribed - x0[dof]``, i.e. the system for an increment ``dx``
        around ``x0``.  The sign convention is additive: the updated
        iterate is ``x = x0 + dx``, so a constrained dof lands exactly on
        its prescribed value after one update.  Returns ``(A, b)`` as
        passed in.
        """
        if A is None and b is None:
            raise ValueError("Nothing to assemble: pass A, b or both.")
        n = self.V.num_dofs
        request = AssemblyRequest(as_matrix(A), as_vector(b),
                                  None if x0 is None else np.asarray(x0, dtype=float))
        if request.matrix and tuple(request.A.shape) != (n, n):
            raise ValueError(f"Matrix has shape {request.A.shape}, expected {(n, n)}.")
        if request.vector and request.b.size != n:
            raise ValueError(f"Vector has size {request.b.size}, expected {n}.")

        bvs = merge_boundary_values(self.bcs, n)
        if request.increment:
            bvs = bvs.shifted(request.x0)
        if len(bvs):
            logger.info(f"Applying {len(bvs)} boundary values")
        placed = np.zeros(n, dtype=bool)
        scratch = Scratch(self.a, self.L)

        facet_wise = any(F is not None and (F.has_exterior_facet_integral() or F.has_interior_facet_integral())
                         for F in (self.a, self.L))
        what = " and ".join(k for k, on in (("matrix", request.matrix), ("vector", request.vector)) if on)
        logger.info(f"Assembling system ({what}, {'facet' if facet_wise else 'cell'}-wise) "
                    f"over {self.V.mesh.num_cells} cells, {n} dofs")
        if facet_wise:
            self._facet_wise_assembly(request, bvs, placed, scratch)
        else:
            self._cell_wise_assembly(request, bvs, placed, scratch)
        self._place_untouched(request, bvs, placed)
        return A, b

    # -------------------------------------------------------------------------
    # traversals
    # -------------------------------------------------------------------------
    def _cell_marker(self, c: int):
        return None if self.cell_domains is None else self.cell_domains[c]

    def _kernels(self, getter: str, marker):
        ka = getattr(self.a, getter)(marker)
        kL = getattr(self.L, getter)(marker) if self.L is not None else None
        return ka, kL

    def _cell_wise_assembly(self, req: AssemblyRequest, bvs: BoundaryValues,
                            placed: np.ndarray, scratch: Scratch):
        mesh = self.V.mesh
        for c in range(mesh.num_cells):
            ka, kL = self._kernels("cell_integral", self._cell_marker(c))
            dofs = self.V.cell_dofs(c)
            bc_here = has_bc(dofs, bvs)
            do_a = ka is not None and (req.matrix or bc_here)
            do_L = kL is not None and (req.vector or bc_here)
            if not (do_a or do_L or bc_here):
                continue
            Ae, be = scratch.zero_cell(len(dofs))
            cell = mesh.cell(c)
            if do_a:
                ka(Ae, cell)
            if do_L:
                kL(be, cell)
            self._finish_unit(req, Ae, be, dofs, bc_here, bvs, placed)

    def _facet_wise_assembly(self, req: AssemblyRequest, bvs: BoundaryValues,
                             placed: np.ndarray, scratch: Scratch):
        n_ext = n_int = 0
        for facet in self.V.mesh.facets_list:
            if facet.exterior:
                self._exterior_facet(facet, req, bvs, placed, scratch)
                n_ext += 1
            else:
                self._interior_facet(facet, req, bvs, placed, scratch)
                n_int += 1
        logger.debug(f"Visited {n_ext} exterior and {n_int} interior facets")

    def _exterior_facet(self, facet, req, bvs, placed, scratch):
        mesh = self.V.mesh
        c, lf = facet.cells[0], facet.local_index[0]
        fm = None if self.exterior_facet_domains is None else self.exterior_facet_domains[facet.index]
        fa, fL = self._kernels("exterior_facet_integral", fm)
        ca, cL = self._kernels("cell_integral", self._cell_marker(c)) if lf == 0 else (None, None)

        dofs = self.V.cell_dofs(c)
        bc_here = has_bc(dofs, bvs)
        do_a = (fa is not None or ca is not None) and (req.matrix or bc_here)
        do_L = (fL is not None or cL is not None) and (req.vector or bc_here)
        if not (do_a or do_L or bc_here):
            return
        Ae, be = scratch.zero_cell(len(dofs))
        cell = mesh.cell(c)
        if do_a:
            if ca is not None:
                ca(Ae, cell)
            if fa is not None:
                fa(Ae, cell, lf)
        if do_L:
            if cL is not None:
                cL(be, cell)
            if fL is not None:
                fL(be, cell, lf)
        self._finish_unit(req, Ae, be, dofs, bc_here, bvs, placed)

    def _interior_facet(self, facet, req, bvs, placed, scratch):
        mesh = self.V.mesh
        (c0, c1), (lf0, lf1) = facet.cells, facet.local_index
        fm = None if self.interior_facet_domains is None else self.interior_facet_domains[facet.index]
        fa, fL = self._kernels("interior_facet_integral", fm)
        ca0, cL0 = self._kernels("cell_integral", self._cell_marker(c0)) if lf0 == 0 else (None, None)
        ca1, cL1 = self._kernels("cell_integral", self._cell_marker(c1)) if lf1 == 0 else (None, None)

        dofs0, dofs1 = self.V.cell_dofs(c0), self.V.cell_dofs(c1)
        n0 = len(dofs0)
        dofs = np.concatenate((dofs0, dofs1))
        bc_here = has_bc(dofs, bvs)
        do_a = any(k is not None for k in (fa, ca0, ca1)) and (req.matrix or bc_here)
        do_L = any(k is not None for k in (fL, cL0, cL1)) and (req.vector or bc_here)
        if not (do_a or do_L or bc_here):
            return
        Ae, be = scratch.zero_cell(len(dofs))
        cells = (mesh.cell(c0), mesh.cell(c1))
        if do_a:
            if fa is not None:
                fa(Ae, cells, (lf0, lf1))
            if ca0 is not None:
                ca0(Ae[:n0, :n0], cells[0])
            if ca1 is not None:
                ca1(Ae[n0:, n0:], cells[1])
        if do_L:
            if fL is not None:
                fL(be, cells, (lf0, lf1))
            if cL0 is not None:
                cL0(be[:n0], cells[0])
            if cL1 is not None:
                cL1(be[n0:], cells[1])
        self._finish_unit(req, Ae, be, dofs, bc_here, bvs, placed)

    # -------------------------------------------------------------------------
    # elimination and scatter
    # -------------------------------------------------------------------------
    @staticmethod
    def _finish_unit(req, Ae, be, dofs, bc_here, bvs, placed):
        if bc_here:
            apply_bc(Ae, be, dofs, bvs, placed)
        if req.matrix:
            req.A.add(Ae, dofs, dofs)
        if req.vector:
            req.b.add(be, dofs)

    @staticmethod
    def _place_untouched(req: AssemblyRequest, bvs: BoundaryValues, placed: np.ndarray):
        missing = np.flatnonzero(bvs.mask & ~placed)
        if missing.size == 0:
            return
        logger.warning(f"{missing.size} constrained dofs are not attached to any cell")
        if req.matrix:
            req.A.add_entries(missing, missing, np.ones(missing.size))
        if req.vector:
            req.b.add_entries(missing, bvs.values[missing])
        placed[missing] = True


# -----------------------------------------------------------------------------
# convenience
# -----------------------------------------------------------------------------
def _symmetry_check_enabled() -> bool:
    return os.environ.get(SYMMETRY_FLAG, "").strip().lower() in ("1", "true", "yes")


def assemble_system(a: Form, L: Optional[Form], bcs=(), *, x0=None,
                    **markers) -> Tuple[sp.csr_matrix, np.ndarray]:
    """Assemble ``(A, b)`` into a fresh CSR matrix and numpy vector."""
    assembler = SystemAssembler(a, L, bcs, **markers)
    n = assembler.V.num_dofs
    A, b = Matrix(n), np.zeros(n)
    assembler.assemble(A, b, x0)
    K = A.to_csr()
    if _symmetry_check_enabled():
        defect = abs(K - K.T).max() if K.nnz else 0.0
        logger.info(f"Symmetry defect |A - A^T|_max = {defect:.3e}")
    return K, b
