"""pysymfem.geometry.interval"""
import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError
from pysymfem.geometry.cell_type import CellType, as_3d, is_degenerate, segment_squared_distance


class IntervalCell(CellType):
    name = "interval"
    dim = 1
    facet_name = "vertex"
    num_cell_vertices = 2
    _entity_vertices = {}

    def volume(self, coords):
        coords = np.asarray(coords, dtype=float)
        return float(np.linalg.norm(coords[1] - coords[0]))

    def circumradius(self, coords):
        return 0.5 * self.check(coords)

    def squared_distance(self, coords, point):
        a, b = as_3d(coords)
        return segment_squared_distance(as_3d(point), a, b)

    def cell_normal(self, coords):
        coords = np.asarray(coords, dtype=float)
        if coords.shape[1] != 2:
            raise ValueError("Cell normal of an interval is only defined in 2D.")
        t = coords[1] - coords[0]
        length = float(np.linalg.norm(t))
        if is_degenerate(length, coords, 1):
            raise DegenerateGeometryError("Cannot compute normal of a zero-length interval.")
        # tangent rotated counter-clockwise
        return np.array([-t[1], t[0]]) / length
