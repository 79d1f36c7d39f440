"""pysymfem.fem.kernels
Local cell and facet kernels for P0/P1/Q1 spaces, packaged as Forms.

Scalar operators are applied component-wise on vector spaces (block
diagonal in the component-major local layout).  Facet terms follow the
symmetric interior penalty (SIPG) formulation of −∇·(κ∇u) = f.
"""
from typing import Callable, Optional, Tuple, Union

import numpy as np

from pysymfem.fem import transform
from pysymfem.fem.dofmap import DofMap
from pysymfem.fem.forms import Form
from pysymfem.fem.function import Function
from pysymfem.fem.reference import get_reference
from pysymfem.integration.quadrature import facet_rule

Coefficient = Union[float, Callable, Function]


# -----------------------------------------------------------------------------
# helpers
# -----------------------------------------------------------------------------
def _on(subdomain_id: Optional[int], kernel):
    return kernel if subdomain_id is None else {subdomain_id: kernel}


def _cell_tables(V: DofMap, cell, degree: int):
    """Reference points, physical points, weights·|J|, basis values and physical gradients."""
    X, x, wdet, K = transform.tabulate(cell.coordinates, cell.cell_type.name, degree)
    N = V.reference.shape(X)
    dN = transform.physical_gradients(V.reference.grad(X), K)
    return X, x, wdet, N, dN


def _facet_side(V: DofMap, cell, local_vertices, lam):
    name = cell.cell_type.name
    X = transform.facet_reference_points(name, local_vertices, lam)
    coords = cell.coordinates
    J = transform.jacobian(coords, get_reference(name, 1).grad(X))
    _, K = transform.det_and_inverse(J, coords)
    return X, V.reference.shape(X), transform.physical_gradients(V.reference.grad(X), K)


def _exterior_tables(V: DofMap, cell, facet: int, degree: int):
    ct = cell.cell_type
    fv = ct.facet_vertices(facet)
    lam, w = facet_rule(ct.facet_name, degree)
    X, N, dN = _facet_side(V, cell, fv, lam)
    x = lam @ cell.coordinates[list(fv)]
    return X, x, w * cell.facet_area(facet), N, dN, cell.normal(facet)


def _interior_tables(V: DofMap, cells, facets, degree: int):
    """Both sides of an interior facet, parametrised by cell0's facet vertex order."""
    c0, c1 = cells
    ct = c0.cell_type
    fv0 = ct.facet_vertices(facets[0])
    shared = [int(c0.vertices[i]) for i in fv0]
    verts1 = [int(v) for v in c1.vertices]
    fv1 = [verts1.index(g) for g in shared]
    lam, w = facet_rule(ct.facet_name, degree)
    _, N0, dN0 = _facet_side(V, c0, fv0, lam)
    _, N1, dN1 = _facet_side(V, c1, fv1, lam)
    x = lam @ c0.coordinates[list(fv0)]
    return x, w * c0.facet_area(facets[0]), (N0, dN0), (N1, dN1), c0.normal(facets[0])


def _values(coef: Coefficient, x: np.ndarray, cell=None, X=None, size: int = 1) -> np.ndarray:
    """Coefficient at the quadrature points → (n_qp, size)."""
    if isinstance(coef, Function):
        return coef.eval_reference(cell.index, coef.V.reference.shape(X))
    if callable(coef):
        vals = np.array([np.atleast_1d(np.asarray(coef(*p), dtype=float)) for p in x])
    else:
        vals = np.tile(np.atleast_1d(np.asarray(coef, dtype=float)), (len(x), 1))
    if vals.shape[1] == 1 and size > 1:
        vals = np.repeat(vals, size, axis=1)
    if vals.shape[1] != size:
        raise ValueError(f"Coefficient has {vals.shape[1]} components, expected {size}.")
    return vals


def _block(Ks: np.ndarray, value_size: int) -> np.ndarray:
    return Ks if value_size == 1 else np.kron(np.eye(value_size), Ks)


def _macro_indices(V: DofMap, comp: int) -> np.ndarray:
    n, cd = V.n_loc, V.cell_dimension
    own = comp * n + np.arange(n)
    return np.concatenate((own, cd + own))


def _penalty(V: DofMap, alpha: float, h: float) -> float:
    return alpha * (V.degree + 1) ** 2 / h


# -----------------------------------------------------------------------------
# cell integrals
# -----------------------------------------------------------------------------
def laplace(V: DofMap, kappa: Coefficient = 1.0, *, degree: Optional[int] = None,
            subdomain_id: Optional[int] = None) -> Form:
    """∫ κ ∇u·∇v dx"""
    q = 2 * V.degree if degree is None else degree

    def kernel(out, cell):
        X, x, wdet, _, dN = _cell_tables(V, cell, q)
        k = _values(kappa, x, cell, X)[:, 0]
        out += _block(np.einsum("q,qig,qjg->ij", wdet * k, dN, dN), V.value_size)

    return Form(2, V, cell=_on(subdomain_id, kernel), name="laplace")


def mass(V: DofMap, c: Coefficient = 1.0, *, degree: Optional[int] = None,
         subdomain_id: Optional[int] = None) -> Form:
    """∫ c u v dx"""
    q = 2 * V.degree + 1 if degree is None else degree

    def kernel(out, cell):
        X, x, wdet, N, _ = _cell_tables(V, cell, q)
        cq = _values(c, x, cell, X)[:, 0]
        out += _block(np.einsum("q,qi,qj->ij", wdet * cq, N, N), V.value_size)

    return Form(2, V, cell=_on(subdomain_id, kernel), name="mass")


def source(V: DofMap, f: Coefficient, *, degree: Optional[int] = None,
           subdomain_id: Optional[int] = None) -> Form:
    """∫ f·v dx"""
    q = V.degree + 2 if degree is None else degree
    vs = V.value_size

    def kernel(out, cell):
        X, x, wdet, N, _ = _cell_tables(V, cell, q)
        fq = _values(f, x, cell, X, size=vs)
        out += np.concatenate([N.T @ (wdet * fq[:, comp]) for comp in range(vs)])

    return Form(1, V, cell=_on(subdomain_id, kernel), name="source")


# -----------------------------------------------------------------------------
# exterior facet integrals
# -----------------------------------------------------------------------------
def robin(V: DofMap, alpha: Coefficient = 1.0, *, degree: Optional[int] = None,
          subdomain_id: Optional[int] = None) -> Form:
    """∫ α u v ds"""
    q = 2 * V.degree + 1 if degree is None else degree

    def kernel(out, cell, facet):
        X, x, wq, N, _, _ = _exterior_tables(V, cell, facet, q)
        aq = _values(alpha, x, cell, X)[:, 0]
        out += _block(np.einsum("q,qi,qj->ij", wq * aq, N, N), V.value_size)

    return Form(2, V, exterior_facet=_on(subdomain_id, kernel), name="robin")


def neumann(V: DofMap, g: Coefficient, *, degree: Optional[int] = None,
            subdomain_id: Optional[int] = None) -> Form:
    """∫ g·v ds"""
    q = V.degree + 2 if degree is None else degree
    vs = V.value_size

    def kernel(out, cell, facet):
        X, x, wq, N, _, _ = _exterior_tables(V, cell, facet, q)
        gq = _values(g, x, cell, X, size=vs)
        out += np.concatenate([N.T @ (wq * gq[:, comp]) for comp in range(vs)])

    return Form(1, V, exterior_facet=_on(subdomain_id, kernel), name="neumann")


def nitsche(V: DofMap, g: Coefficient, *, alpha: float = 10.0, kappa: float = 1.0,
            degree: Optional[int] = None, subdomain_id: Optional[int] = None) -> Tuple[Form, Form]:
    """
    Weak Dirichlet condition u = g on exterior facets (symmetric Nitsche).

    Returns the bilinear and the linear boundary contributions
    ``κ∫ σuv − u ∂ₙv − ∂ₙu v ds`` and ``κ∫ σgv − g ∂ₙv ds`` with
    ``σ = α (p+1)² / h``.
    """
    q = 2 * V.degree + 2 if degree is None else degree
    vs = V.value_size

    def a_kernel(out, cell, facet):
        _, _, wq, N, dN, n = _exterior_tables(V, cell, facet, q)
        sigma = _penalty(V, alpha, cell.h())
        dNn = dN @ n
        Ks = np.einsum("q,qi,qj->ij", wq, N, N) * sigma \
            - np.einsum("q,qi,qj->ij", wq, N, dNn) \
            - np.einsum("q,qi,qj->ij", wq, dNn, N)
        out += _block(kappa * Ks, vs)

    def L_kernel(out, cell, facet):
        X, x, wq, N, dN, n = _exterior_tables(V, cell, facet, q)
        sigma = _penalty(V, alpha, cell.h())
        gq = _values(g, x, cell, X, size=vs)
        dNn = dN @ n
        out += kappa * np.concatenate(
            [(sigma * N - dNn).T @ (wq * gq[:, comp]) for comp in range(vs)])

    return (Form(2, V, exterior_facet=_on(subdomain_id, a_kernel), name="nitsche_a"),
            Form(1, V, exterior_facet=_on(subdomain_id, L_kernel), name="nitsche_L"))


# -----------------------------------------------------------------------------
# interior facet integrals
# -----------------------------------------------------------------------------
def interior_penalty(V: DofMap, *, alpha: float = 10.0, kappa: float = 1.0,
                     degree: Optional[int] = None, subdomain_id: Optional[int] = None) -> Form:
    """
    SIPG coupling on interior facets:
    κ∫ σ[u][v] − [v]{∂ₙu} − {∂ₙv}[u] dS, with the normal of the first cell.
    """
    q = 2 * V.degree + 2 if degree is None else degree

    def kernel(out, cells, facets):
        _, wq, (N0, dN0), (N1, dN1), n = _interior_tables(V, cells, facets, q)
        sigma = _penalty(V, alpha, 0.5 * (cells[0].h() + cells[1].h()))
        jump = np.hstack((N0, -N1))
        avg = 0.5 * np.hstack((dN0 @ n, dN1 @ n))
        Ks = sigma * np.einsum("q,qi,qj->ij", wq, jump, jump) \
            - np.einsum("q,qi,qj->ij", wq, jump, avg) \
            - np.einsum("q,qi,qj->ij", wq, avg, jump)
        for comp in range(V.value_size):
            idx = _macro_indices(V, comp)
            out[np.ix_(idx, idx)] += kappa * Ks

    return Form(2, V, interior_facet=_on(subdomain_id, kernel), name="interior_penalty")


def jump_penalty(V: DofMap, *, beta: float = 1.0, degree: Optional[int] = None,
                 subdomain_id: Optional[int] = None) -> Form:
    """∫ β/h [u][v] dS"""
    q = 2 * V.degree + 1 if degree is None else degree

    def kernel(out, cells, facets):
        _, wq, (N0, _), (N1, _), _ = _interior_tables(V, cells, facets, q)
        h = 0.5 * (cells[0].h() + cells[1].h())
        jump = np.hstack((N0, -N1))
        Ks = (beta / h) * np.einsum("q,qi,qj->ij", wq, jump, jump)
        for comp in range(V.value_size):
            idx = _macro_indices(V, comp)
            out[np.ix_(idx, idx)] += Ks

    return Form(2, V, interior_facet=_on(subdomain_id, kernel), name="jump_penalty")


# -----------------------------------------------------------------------------
# semilinear model problem  −Δu + c u³ = f
# -----------------------------------------------------------------------------
def _require_scalar(V: DofMap, u: Function):
    if V.value_size != 1:
        raise ValueError("The semilinear kernels are scalar.")
    if not u.V.is_compatible(V):
        raise ValueError("Coefficient u must live on the assembled space.")


def semilinear_jacobian(V: DofMap, u: Function, c: float = 1.0, *,
                        degree: Optional[int] = None) -> Form:
    """∫ ∇δu·∇v + 3c u² δu v dx, linearised at ``u``."""
    _require_scalar(V, u)
    q = 4 * V.degree if degree is None else degree

    def kernel(out, cell):
        _, _, wdet, N, dN = _cell_tables(V, cell, q)
        uq = N @ u.x[V.cell_dofs(cell.index)]
        out += np.einsum("q,qig,qjg->ij", wdet, dN, dN)
        out += np.einsum("q,qi,qj->ij", wdet * 3.0 * c * uq ** 2, N, N)

    return Form(2, V, cell=kernel, name="semilinear_jacobian")


def semilinear_residual(V: DofMap, u: Function, f: Coefficient = 0.0, c: float = 1.0, *,
                        degree: Optional[int] = None) -> Form:
    """F(u; v) = ∫ ∇u·∇v + c u³ v − f v dx"""
    _require_scalar(V, u)
    q = 4 * V.degree if degree is None else degree

    def kernel(out, cell):
        X, x, wdet, N, dN = _cell_tables(V, cell, q)
        u_loc = u.x[V.cell_dofs(cell.index)]
        uq = N @ u_loc
        grad_u = np.einsum("qig,i->qg", dN, u_loc)
        fq = _values(f, x, cell, X)[:, 0]
        out += np.einsum("q,qig,qg->i", wdet, dN, grad_u)
        out += N.T @ (wdet * (c * uq ** 3 - fq))

    return Form(1, V, cell=kernel, name="semilinear_residual")
