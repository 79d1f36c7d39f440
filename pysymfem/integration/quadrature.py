"""pysymfem.integration.quadrature
Quadrature on the reference cells (any polynomial degree) and barycentric
rules on reference facets.

Reference cells: interval [0,1], triangle (0,0)-(1,0)-(0,1), unit square
with tensor-product vertex order, and the unit tetrahedron.  Simplex rules
are collapsed (Duffy) Gauss products.
"""
from functools import lru_cache

import numpy as np
from numpy.polynomial.legendre import leggauss

from pysymfem.geometry import canonical_name


# -------------------------------------------------------------------------
# 1‑D Gauss–Legendre
# -------------------------------------------------------------------------
def gauss_legendre(n_points: int):
    if n_points < 1:
        raise ValueError(n_points)
    return leggauss(n_points)  # (points, weights) on [-1, 1]


def _gl01(n_points: int):
    """Gauss–Legendre nodes and weights mapped to [0,1]."""
    xi, w = gauss_legendre(int(n_points))
    return 0.5 * (xi + 1.0), 0.5 * w


def _n_points(degree: int) -> int:
    return max(int(degree), 0) // 2 + 1


# -------------------------------------------------------------------------
# Rules on reference cells
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def interval_rule(degree: int):
    x, w = _gl01(_n_points(degree))
    return x[:, None], w


@lru_cache(maxsize=None)
def quad_rule(degree: int):
    x, w = _gl01(_n_points(degree))
    pts = np.array([[xi, eta] for eta in x for xi in x])
    wts = np.array([wx * wy for wy in w for wx in w])
    return pts, wts


@lru_cache(maxsize=None)
def tri_rule(degree: int):
    """Collapsed Gauss rule, exact for polynomials of total ``degree``."""
    u, wu = _gl01(_n_points(degree + 1))
    v, wv = _gl01(_n_points(degree))
    pts, wts = [], []
    for ui, wi in zip(u, wu):
        for vj, wj in zip(v, wv):
            pts.append([ui, vj * (1.0 - ui)])
            wts.append(wi * wj * (1.0 - ui))
    return np.array(pts), np.array(wts)


@lru_cache(maxsize=None)
def tet_rule(degree: int):
    u, wu = _gl01(_n_points(degree + 2))
    v, wv = _gl01(_n_points(degree + 1))
    s, ws = _gl01(_n_points(degree))
    pts, wts = [], []
    for ui, wi in zip(u, wu):
        for vj, wj in zip(v, wv):
            for sk, wk in zip(s, ws):
                pts.append([ui, vj * (1.0 - ui), sk * (1.0 - ui) * (1.0 - vj)])
                wts.append(wi * wj * wk * (1.0 - ui) ** 2 * (1.0 - vj))
    return np.array(pts), np.array(wts)


def volume(cell_name: str, degree: int):
    """(points, weights) on the reference cell; weights sum to its volume."""
    name = canonical_name(cell_name)
    if name == "vertex":
        return np.zeros((1, 0)), np.ones(1)
    if name == "interval":
        return interval_rule(degree)
    if name == "triangle":
        return tri_rule(degree)
    if name == "quadrilateral":
        return quad_rule(degree)
    if name == "tetrahedron":
        return tet_rule(degree)
    raise KeyError(cell_name)


@lru_cache(maxsize=None)
def facet_rule(facet_name: str, degree: int):
    """
    Barycentric rule on a simplex facet: ``(lam, w)`` with ``lam`` of shape
    (n_qp, n_facet_vertices) and weights normalised to sum to one, so the
    physical weights are ``w * facet_area``.
    """
    name = canonical_name(facet_name)
    if name == "quadrilateral":
        raise ValueError("Quadrilateral facets are not supported.")
    pts, wts = volume(name, degree)
    lam = np.hstack((1.0 - pts.sum(axis=1, keepdims=True), pts))
    return lam, wts / wts.sum()
