"""pysymfem.geometry.vertex
Facet type of intervals.
"""
import numpy as np

from pysymfem.geometry.cell_type import CellType, as_3d


class PointCell(CellType):
    name = "vertex"
    dim = 0
    num_cell_vertices = 1

    def volume(self, coords):
        return 1.0

    def circumradius(self, coords):
        return 0.0

    def squared_distance(self, coords, point):
        d = as_3d(point) - as_3d(coords)[0]
        return float(d @ d)
