"""pysymfem.geometry.tetrahedron"""
import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError
from pysymfem.geometry.cell_type import CellType, GEOMETRY_TOL, as_3d, is_degenerate
from pysymfem.geometry.triangle import triangle_squared_distance


class TetrahedronCell(CellType):
    name = "tetrahedron"
    dim = 3
    facet_name = "triangle"
    num_cell_vertices = 4
    _entity_vertices = {
        1: ((2, 3), (1, 3), (1, 2), (0, 3), (0, 2), (0, 1)),
        2: ((1, 2, 3), (0, 2, 3), (0, 1, 3), (0, 1, 2)),
    }

    def volume(self, coords):
        v0, v1, v2, v3 = as_3d(coords)
        return abs(float(np.linalg.det(np.column_stack((v1 - v0, v2 - v0, v3 - v0))))) / 6.0

    def circumradius(self, coords):
        vol = self.check(coords)
        v0, v1, v2, v3 = as_3d(coords)
        # products of opposite edge lengths form a triangle of area 6*V*R
        la = np.linalg.norm(v1 - v2) * np.linalg.norm(v0 - v3)
        lb = np.linalg.norm(v0 - v2) * np.linalg.norm(v1 - v3)
        lc = np.linalg.norm(v0 - v1) * np.linalg.norm(v2 - v3)
        s = 0.5 * (la + lb + lc)
        area = np.sqrt(max(s * (s - la) * (s - lb) * (s - lc), 0.0))
        return float(area / (6.0 * vol))

    def squared_distance(self, coords, point):
        p = as_3d(point)
        v = as_3d(coords)
        faces = [triangle_squared_distance(p, *v[list(f)]) for f in self.entity_table(2)]
        if is_degenerate(self.volume(coords), coords, 3):
            return min(faces)
        M = np.column_stack((v[1] - v[0], v[2] - v[0], v[3] - v[0]))
        lam = np.linalg.solve(M, p - v[0])
        if lam.min() >= 0.0 and lam.sum() <= 1.0:
            return 0.0
        return min(faces)

    def normal(self, coords, facet):
        v = as_3d(coords)
        i0, i1, i2 = self.facet_vertices(facet)
        n = np.cross(v[i1] - v[i0], v[i2] - v[i0])
        nrm = float(np.linalg.norm(n))
        if nrm <= GEOMETRY_TOL * max(np.ptp(v, axis=0).max(), 1e-300) ** 2:
            raise DegenerateGeometryError(f"Cannot compute normal of facet {facet} of a degenerate tetrahedron.")
        n /= nrm
        # point away from the opposite vertex
        if n @ (v[i0] - v[facet]) < 0.0:
            n = -n
        return n
