"""pysymfem.geometry.quadrilateral
Quadrilaterals with tensor-product vertex order::

    v2 --- v3
    |       |
    v0 --- v1
"""
import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError
from pysymfem.geometry.cell_type import CellType, as_3d, is_degenerate
from pysymfem.geometry.triangle import TriangleCell, triangle_squared_distance

_TRIANGLES = ((0, 1, 3), (0, 3, 2))


class QuadrilateralCell(CellType):
    name = "quadrilateral"
    dim = 2
    facet_name = "interval"
    is_simplex = False
    num_cell_vertices = 4
    _entity_vertices = {1: ((0, 1), (2, 3), (0, 2), (1, 3))}

    def volume(self, coords):
        coords = np.asarray(coords, dtype=float)
        tri = TriangleCell()
        return sum(tri.volume(coords[list(t)]) for t in _TRIANGLES)

    def circumradius(self, coords):
        self.check(coords)
        v = as_3d(coords)
        a, b, c = v[0], v[1], v[3]
        ab, ac = b - a, c - a
        n = np.cross(ab, ac)
        nn = float(n @ n)
        center = a + (float(ac @ ac) * np.cross(n, ab) + float(ab @ ab) * np.cross(ac, n)) / (2.0 * nn)
        R = float(np.linalg.norm(a - center))
        if abs(np.linalg.norm(v[2] - center) - R) > 1e-10 * R:
            raise ValueError("Quadrilateral is not cyclic; circumradius is undefined.")
        return R

    def squared_distance(self, coords, point):
        p = as_3d(point)
        v = as_3d(coords)
        return min(triangle_squared_distance(p, *v[list(t)]) for t in _TRIANGLES)

    def cell_normal(self, coords):
        coords = np.asarray(coords, dtype=float)
        if coords.shape[1] != 3:
            raise ValueError("Cell normal of a quadrilateral is only defined in 3D.")
        n = np.cross(coords[1] - coords[0], coords[2] - coords[0])
        nrm = float(np.linalg.norm(n))
        if is_degenerate(nrm, coords, 2):
            raise DegenerateGeometryError("Cannot compute normal of a degenerate quadrilateral.")
        return n / nrm
