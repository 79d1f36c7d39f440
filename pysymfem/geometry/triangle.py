"""pysymfem.geometry.triangle
Geometry kernel for triangles in 2D or 3D.
"""
import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError
from pysymfem.geometry.cell_type import CellType, as_3d, is_degenerate, segment_squared_distance


class TriangleCell(CellType):
    name = "triangle"
    dim = 2
    facet_name = "interval"
    num_cell_vertices = 3
    # edge i is opposite vertex i
    _entity_vertices = {1: ((1, 2), (0, 2), (0, 1))}

    def volume(self, coords):
        a, b, c = as_3d(coords)
        return 0.5 * float(np.linalg.norm(np.cross(b - a, c - a)))

    def circumradius(self, coords):
        area = self.check(coords)
        v0, v1, v2 = np.asarray(coords, dtype=float)
        a = np.linalg.norm(v1 - v2)
        b = np.linalg.norm(v0 - v2)
        c = np.linalg.norm(v0 - v1)
        return float(a * b * c / (4.0 * area))

    def squared_distance(self, coords, point):
        return triangle_squared_distance(as_3d(point), *as_3d(coords))

    def cell_normal(self, coords):
        coords = np.asarray(coords, dtype=float)
        if coords.shape[1] != 3:
            raise ValueError("Cell normal of a triangle is only defined in 3D.")
        v0, v1, v2 = coords
        n = np.cross(v1 - v0, v2 - v0)
        nrm = float(np.linalg.norm(n))
        if is_degenerate(0.5 * nrm, coords, 2):
            raise DegenerateGeometryError("Cannot compute normal of a degenerate triangle.")
        return n / nrm


def triangle_squared_distance(p, a, b, c):
    """
    Squared distance from ``p`` to triangle (a, b, c), all given in 3D.

    The point is projected onto the plane of the triangle; if the projection
    has barycentric coordinates in [0, 1] the distance is the offset from the
    plane, otherwise the closest point lies on one of the edges. Degenerate
    triangles only use the edges.
    """
    edges = (segment_squared_distance(p, b, c),
             segment_squared_distance(p, a, c),
             segment_squared_distance(p, a, b))
    ab, ac = b - a, c - a
    n = np.cross(ab, ac)
    nn = float(np.linalg.norm(n))
    tri = np.vstack((a, b, c))
    if is_degenerate(0.5 * nn, tri, 2):
        return min(edges)
    n = n / nn
    pn = float((p - a) @ n)
    q = p - pn * n

    ap = q - a
    d00, d01, d11 = ab @ ab, ab @ ac, ac @ ac
    d20, d21 = ap @ ab, ap @ ac
    denom = d00 * d11 - d01 * d01
    l1 = (d11 * d20 - d01 * d21) / denom
    l2 = (d00 * d21 - d01 * d20) / denom
    l0 = 1.0 - l1 - l2
    if min(l0, l1, l2) >= 0.0 and max(l0, l1, l2) <= 1.0:
        return pn * pn
    return min(edges)
