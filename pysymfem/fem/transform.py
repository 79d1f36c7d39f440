"""pysymfem.fem.transform
Reference → physical mapping for affine simplices and bilinear quads.
"""
from functools import lru_cache
from typing import Tuple

import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError
from pysymfem.fem.reference import REF_VERTICES, get_reference
from pysymfem.geometry.cell_type import GEOMETRY_TOL
from pysymfem.integration.quadrature import volume


@lru_cache(maxsize=None)
def _geometry_tables(cell_name: str, degree: int):
    """Geometry basis (P1/Q1) and its gradients at the volume quadrature points."""
    ref = get_reference(cell_name, 1)
    pts, wts = volume(cell_name, degree)
    return pts, wts, ref.shape(pts), ref.grad(pts)


def x_mapping(coords: np.ndarray, cell_name: str, X: np.ndarray) -> np.ndarray:
    """Physical points of reference points ``X`` (n_qp, tdim) → (n_qp, gdim)."""
    N = get_reference(cell_name, 1).shape(X)
    return N @ np.asarray(coords, dtype=float)


def jacobian(coords: np.ndarray, dN: np.ndarray) -> np.ndarray:
    """J[q] = dx/dξ with shape (n_qp, gdim, tdim) from geometry gradients dN (n_qp, n_v, tdim)."""
    return np.einsum("vg,qvt->qgt", np.asarray(coords, dtype=float), dN)


def det_and_inverse(J: np.ndarray, coords: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Measure factor and (pseudo-)inverse of the Jacobian at every point.

    For manifold cells (tdim < gdim) the measure is sqrt(det(JᵀJ)) and the
    inverse is the Moore–Penrose pseudo-inverse, which maps reference
    gradients to tangential physical gradients.
    """
    _, gdim, tdim = J.shape
    if gdim == tdim:
        detJ = np.abs(np.linalg.det(J))
    else:
        detJ = np.sqrt(np.abs(np.linalg.det(np.einsum("qgs,qgt->qst", J, J))))
    h = float(np.ptp(np.asarray(coords, dtype=float), axis=0).max())
    if np.any(detJ <= GEOMETRY_TOL * max(h, 1e-300) ** tdim):
        raise DegenerateGeometryError("Singular cell Jacobian; cell is degenerate.")
    K = np.linalg.pinv(J) if gdim != tdim else np.linalg.inv(J)
    return detJ, K


def tabulate(coords: np.ndarray, cell_name: str, degree: int):
    """
    Quadrature data on one cell.

    Returns
    -------
    X : (n_qp, tdim) reference points
    x : (n_qp, gdim) physical points
    wdet : (n_qp,) weights times measure factor
    K : (n_qp, tdim, gdim) inverse Jacobians
    """
    X, wts, Ng, dNg = _geometry_tables(cell_name, degree)
    coords = np.asarray(coords, dtype=float)
    J = jacobian(coords, dNg)
    detJ, K = det_and_inverse(J, coords)
    return X, Ng @ coords, wts * detJ, K


def facet_reference_points(cell_name: str, local_vertices, lam: np.ndarray) -> np.ndarray:
    """
    Reference points of a facet rule given in barycentric form.

    ``local_vertices`` are the cell-local indices of the facet vertices in
    the order ``lam`` refers to them.
    """
    V = REF_VERTICES[cell_name][list(local_vertices)]
    return lam @ V


def physical_gradients(dN: np.ndarray, K: np.ndarray) -> np.ndarray:
    """Reference gradients (n_qp, n, tdim) → physical gradients (n_qp, n, gdim)."""
    return np.einsum("qnt,qtg->qng", dN, K)
