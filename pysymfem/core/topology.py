"""pysymfem.core.topology
Light-weight views of mesh entities.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

import numpy as np

if TYPE_CHECKING:
    from pysymfem.core.mesh import Mesh


@dataclass(slots=True)
class Facet:
    index: int
    vertices: Tuple[int, ...]       # Global vertex indices, ordered as in cells[0]
    cells: Tuple[int, ...]          # One incident cell (exterior) or two (interior), increasing
    local_index: Tuple[int, ...]    # Local facet index inside each incident cell
    tag: str = ""

    @property
    def exterior(self) -> bool:
        return len(self.cells) == 1

    @property
    def interior(self) -> bool:
        return len(self.cells) == 2

    def local_facet(self, cell: int) -> int:
        """Local index of this facet inside incident ``cell``."""
        return self.local_index[self.cells.index(cell)]


@dataclass(slots=True)
class Cell:
    """
    A cell of ``mesh``.  All geometric queries are forwarded to the cell-type
    kernel with this cell's vertex coordinates.
    """
    mesh: "Mesh"
    index: int

    @property
    def cell_type(self):
        return self.mesh.cell_type

    @property
    def vertices(self) -> np.ndarray:
        return self.mesh.cells[self.index]

    @property
    def coordinates(self) -> np.ndarray:
        return self.mesh.coordinates[self.mesh.cells[self.index]]

    @property
    def facets(self) -> np.ndarray:
        return self.mesh.cell_facets[self.index]

    def volume(self) -> float:
        return self.cell_type.volume(self.coordinates)

    def circumradius(self) -> float:
        return self.cell_type.circumradius(self.coordinates)

    def h(self) -> float:
        """Cell diameter (largest vertex-to-vertex distance)."""
        x = self.coordinates
        d = x[:, None, :] - x[None, :, :]
        return float(np.sqrt((d ** 2).sum(axis=-1).max()))

    def midpoint(self) -> np.ndarray:
        return self.cell_type.midpoint(self.coordinates)

    def squared_distance(self, point) -> float:
        return self.cell_type.squared_distance(self.coordinates, np.asarray(point, dtype=float))

    def distance(self, point) -> float:
        return self.cell_type.distance(self.coordinates, np.asarray(point, dtype=float))

    def normal(self, facet: int) -> np.ndarray:
        return self.cell_type.normal(self.coordinates, facet)

    def cell_normal(self) -> np.ndarray:
        return self.cell_type.cell_normal(self.coordinates)

    def facet_area(self, facet: int) -> float:
        return self.cell_type.facet_area(self.coordinates, facet)

    def facet_coordinates(self, facet: int) -> np.ndarray:
        return self.coordinates[list(self.cell_type.facet_vertices(facet))]

    def __repr__(self):
        return f"Cell {self.index}({self.cell_type.name}, vertices={tuple(int(v) for v in self.vertices)})"
