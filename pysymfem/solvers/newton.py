r"""
newton.py  –  Newton driver built on the increment assembly
===========================================================
Every iteration assembles the Jacobian ``J(u)`` and ``-F(u)`` around the
current iterate ``x0 = u``, with the Dirichlet rows of the right-hand side
set to ``g - x0``.  The increment ``dx`` therefore carries the boundary
correction itself and the update is ``u ← x0 + dx``: the first step moves
the boundary dofs onto ``g``, every later step leaves them there.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from pysymfem.assembly.system_assembler import SystemAssembler
from pysymfem.assembly.tensors import Matrix
from pysymfem.core.exceptions import IncompatibleFormsError
from pysymfem.fem.forms import Form
from pysymfem.fem.function import Function

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
#  Parameter dataclasses
# ----------------------------------------------------------------------------

@dataclass
class NewtonParameters:
    """Settings that govern a single Newton solve."""

    newton_tol: float = 1e-10           # ‖b‖_∞ convergence threshold
    max_newton_iter: int = 25           # hard cap on Newton iterations

    # Armijo back-tracking line-search
    line_search: bool = False
    ls_max_iter: int = 8
    ls_reduction: float = 0.5           # α ← β·α after reject
    ls_c1: float = 1.0e-4               # sufficient-decrease parameter


@dataclass
class LinearSolverParameters:
    """Sparse linear solver settings."""

    backend: str = "spsolve"            # "spsolve" (direct) or "cg"
    tol: float = 1e-12
    maxit: int = 10_000


@dataclass
class NewtonResult:
    converged: bool
    iterations: int
    residuals: List[float] = field(default_factory=list)


# ----------------------------------------------------------------------------
#  Solver
# ----------------------------------------------------------------------------

class NewtonSolver:
    """
    Solve ``F(u; v) = 0`` subject to Dirichlet conditions.

    ``jacobian`` and ``residual`` are forms whose kernels read the current
    coefficients of ``u`` when they run (see
    :func:`pysymfem.fem.kernels.semilinear_jacobian`), so they are built once
    and re-assembled every iteration.
    """

    def __init__(self, jacobian: Form, residual: Form, u: Function, bcs=(),
                 newton_params: Optional[NewtonParameters] = None,
                 lin_params: Optional[LinearSolverParameters] = None,
                 **markers):
        if not residual.function_spaces[0].is_compatible(u.V):
            raise IncompatibleFormsError("The unknown must live on the residual's test space.")
        self.u = u
        self.np = newton_params or NewtonParameters()
        self.lp = lin_params or LinearSolverParameters()
        self.assembler = SystemAssembler(jacobian, -residual, bcs, **markers)
        self.residuals: List[float] = []

    # --- assembly ---
    def _assemble(self, x0: np.ndarray, need_matrix: bool = True):
        """Assemble around ``x0``; the forms see ``u`` set to ``x0``."""
        self.u.x[:] = x0
        n = self.u.V.num_dofs
        A = Matrix(n) if need_matrix else None
        b = np.zeros(n)
        self.assembler.assemble(A, b, x0=x0)
        return (A.to_csr() if need_matrix else None), b

    def _solve_linear_system(self, A: sp.csr_matrix, rhs: np.ndarray) -> np.ndarray:
        if self.lp.backend == "spsolve":
            return spla.spsolve(A.tocsc(), rhs)
        if self.lp.backend == "cg":
            dx, info = spla.cg(A, rhs, rtol=self.lp.tol, maxiter=self.lp.maxit)
            if info != 0:
                raise RuntimeError(f"CG did not converge (info={info}).")
            return dx
        raise ValueError(f"Unknown linear solver backend '{self.lp.backend}'.")

    def _phi(self, vec):                 # ½‖·‖² helper
        return 0.5 * np.dot(vec, vec)

    def _line_search(self, x0: np.ndarray, dx: np.ndarray, b0: np.ndarray) -> np.ndarray:
        """Backtracking on ½‖b‖² along ``dx``; returns the accepted step."""
        phi0 = self._phi(b0)
        alpha = 1.0
        for _ in range(self.np.ls_max_iter):
            _, b = self._assemble(x0 + alpha * dx, need_matrix=False)
            if self._phi(b) <= (1.0 - 2.0 * self.np.ls_c1 * alpha) * phi0:
                return alpha * dx
            alpha *= self.np.ls_reduction
        logger.warning(f"Line search stalled, taking α = {alpha:.2e}")
        return alpha * dx

    # --- driver ---
    def solve(self) -> NewtonResult:
        u = self.u
        self.residuals = []
        t0 = time.perf_counter()
        for it in range(self.np.max_newton_iter):
            x0 = u.x.copy()
            A, b = self._assemble(x0)
            norm_b = float(np.linalg.norm(b, ord=np.inf))
            self.residuals.append(norm_b)
            t1 = time.perf_counter()
            logger.info(f"Newton {it + 1}: |b|_∞ = {norm_b:.2e}, time = {t1 - t0:.3f}s")
            t0 = t1
            if norm_b < self.np.newton_tol:
                return NewtonResult(True, it, list(self.residuals))

            dx = self._solve_linear_system(A, b)
            if self.np.line_search:
                dx = self._line_search(x0, dx, b)
            u.x[:] = x0 + dx

        raise RuntimeError("Newton did not converge – verify the Jacobian or the initial guess.")
