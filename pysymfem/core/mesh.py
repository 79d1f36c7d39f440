"""pysymfem.core.mesh"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from pysymfem.core.topology import Cell, Facet
from pysymfem.geometry import get_cell_type
from pysymfem.utils.bitset import BitSet

logger = logging.getLogger(__name__)

Locator = Callable[..., bool]


class Mesh:
    """
    Mesh of a single cell type: vertex coordinates, cell connectivity and the
    facet topology built from them.

    Facets are created with the cell type's canonical local ordering
    (``create_entities``), so ``cell_facets[c, i]`` is the global facet that
    the local kernels see as local facet ``i`` of cell ``c``.  Every facet
    knows its incident cells in increasing index order together with its
    local index inside each of them.
    """

    def __init__(self,
                 coordinates: np.ndarray,
                 cells: np.ndarray,
                 cell_type: str = "triangle",
                 *,
                 check_geometry: bool = False):
        coords = np.asarray(coordinates, dtype=float)
        if coords.ndim == 1:
            coords = coords[:, None]
        self.coordinates: np.ndarray = coords
        self.cells: np.ndarray = np.atleast_2d(np.asarray(cells, dtype=np.int64))
        self.cell_type = get_cell_type(cell_type)
        self.gdim: int = self.coordinates.shape[1]
        self.tdim: int = self.cell_type.dim

        if self.cells.shape[1] != self.cell_type.num_cell_vertices:
            raise ValueError(f"A {self.cell_type.name} has {self.cell_type.num_cell_vertices} vertices, "
                             f"connectivity has {self.cells.shape[1]} columns.")
        if self.cells.size and (self.cells.min() < 0 or self.cells.max() >= len(self.coordinates)):
            raise IndexError("Cell connectivity refers to a vertex that does not exist.")
        if self.tdim > self.gdim:
            raise ValueError(f"Cannot embed a {self.cell_type.name} in {self.gdim}D.")

        self.facets_list: List[Facet] = []
        self.cell_facets: np.ndarray = np.empty((0, 0), dtype=np.int64)
        self._facet_dict: Dict[Tuple[int, ...], Facet] = {}
        self._build_topology()

        if check_geometry:
            for c in range(self.num_cells):
                self.cell_type.check(self.coordinates[self.cells[c]])
        logger.debug(f"Built {self!r}")

    def _build_topology(self):
        """Create the facets of all cells and the facet→cell adjacency."""
        fdim = self.tdim - 1
        n_local = self.cell_type.num_entities(fdim)

        # Step 1: map each (sorted) facet key to its incident (cell, local facet) pairs
        incidences: Dict[Tuple[int, ...], List[Tuple[int, int]]] = {}
        ordered: Dict[Tuple[int, ...], Tuple[int, ...]] = {}
        for cid, verts in enumerate(self.cells):
            for lf, ent in enumerate(self.cell_type.create_entities(fdim, verts.tolist())):
                key = tuple(sorted(ent))
                incidences.setdefault(key, []).append((cid, lf))
                ordered.setdefault(key, ent)

        # Step 2: create unique Facet objects and the cell→facet table
        self.cell_facets = np.empty((self.num_cells, n_local), dtype=np.int64)
        for gid, (key, inc) in enumerate(incidences.items()):
            if len(inc) > 2:
                raise ValueError(f"Facet {key} is shared by {len(inc)} cells; mesh is not a manifold.")
            facet = Facet(index=gid,
                          vertices=ordered[key],
                          cells=tuple(c for c, _ in inc),
                          local_index=tuple(lf for _, lf in inc))
            self.facets_list.append(facet)
            self._facet_dict[key] = facet
            for c, lf in inc:
                self.cell_facets[c, lf] = gid

    # --- Public API ---
    @property
    def num_cells(self) -> int:
        return len(self.cells)

    @property
    def num_facets(self) -> int:
        return len(self.facets_list)

    @property
    def num_vertices(self) -> int:
        return len(self.coordinates)

    def cell(self, cell_id: int) -> Cell:
        if not 0 <= cell_id < self.num_cells:
            raise IndexError(f"Cell ID {cell_id} out of range.")
        return Cell(self, int(cell_id))

    def facet(self, facet_id: int) -> Facet:
        """Return the Facet object corresponding to a global ``facet_id``."""
        if not 0 <= facet_id < self.num_facets:
            raise IndexError(f"Facet ID {facet_id} out of range.")
        return self.facets_list[facet_id]

    def find_facet(self, vertices) -> Optional[Facet]:
        return self._facet_dict.get(tuple(sorted(int(v) for v in vertices)))

    def exterior_facets(self) -> np.ndarray:
        return np.array([f.index for f in self.facets_list if f.exterior], dtype=np.int64)

    def interior_facets(self) -> np.ndarray:
        return np.array([f.index for f in self.facets_list if f.interior], dtype=np.int64)

    def neighbors(self, cell_id: int) -> List[int]:
        out = []
        for gid in self.cell_facets[cell_id]:
            f = self.facets_list[gid]
            out.extend(c for c in f.cells if c != cell_id)
        return out

    def facet_midpoint(self, facet_id: int) -> np.ndarray:
        return self.coordinates[list(self.facets_list[facet_id].vertices)].mean(axis=0)

    def facet_normal(self, facet_id: int) -> np.ndarray:
        """Unit normal of a facet, pointing out of its first incident cell."""
        f = self.facets_list[facet_id]
        return self.cell(f.cells[0]).normal(f.local_index[0])

    def cell_midpoints(self) -> np.ndarray:
        return self.coordinates[self.cells].mean(axis=1)

    def volumes(self) -> np.ndarray:
        """Generalised volume of every cell."""
        vol = self.cell_type.volume
        return np.array([vol(self.coordinates[c]) for c in self.cells], dtype=float)

    def hmax(self) -> float:
        return max(self.cell(c).h() for c in range(self.num_cells))

    def hmin(self) -> float:
        return min(self.cell(c).h() for c in range(self.num_cells))

    # --- Tagging and markers ---
    def tag_boundary_facets(self, tag_functions: Dict[str, Locator]):
        """Applies tags to exterior facets based on their midpoint location."""
        for facet in self.facets_list:
            if facet.exterior:
                midpoint = self.facet_midpoint(facet.index)
                for tag_name, func in tag_functions.items():
                    if func(*midpoint):
                        facet.tag = tag_name
                        break

    def tag_facets(self, tag_functions: Dict[str, Locator], overwrite=True):
        """
        Applies tags to ANY facet (boundary or interior) based on its midpoint.

        Args:
            tag_functions: Dictionary mapping tag names to boolean functions.
            overwrite (bool): If True, existing tags are replaced.
        """
        for facet in self.facets_list:
            if facet.tag and not overwrite:
                continue
            midpoint = self.facet_midpoint(facet.index)
            for tag_name, func in tag_functions.items():
                if func(*midpoint):
                    facet.tag = tag_name
                    break

    def facet_bitset(self, tag: str) -> BitSet:
        """BitSet of facets carrying ``tag``."""
        return BitSet(np.fromiter((f.tag == tag for f in self.facets_list), dtype=bool, count=self.num_facets))

    def mark_cells(self, markers: Dict[int, Locator], default: int = 0) -> np.ndarray:
        """Integer cell markers; a cell gets the first id whose locator accepts its midpoint."""
        out = np.full(self.num_cells, default, dtype=np.int64)
        for cid, mp in enumerate(self.cell_midpoints()):
            for value, func in markers.items():
                if func(*mp):
                    out[cid] = value
                    break
        return out

    def mark_facets(self, markers: Dict[int, Locator], default: int = 0, *,
                    boundary_only: bool = False) -> np.ndarray:
        """Integer facet markers based on facet midpoints."""
        out = np.full(self.num_facets, default, dtype=np.int64)
        for facet in self.facets_list:
            if boundary_only and not facet.exterior:
                continue
            mp = self.facet_midpoint(facet.index)
            for value, func in markers.items():
                if func(*mp):
                    out[facet.index] = value
                    break
        return out

    def __repr__(self):
        return (f"<Mesh n_vertices={self.num_vertices}, "
                f"n_cells={self.num_cells}, "
                f"n_facets={self.num_facets}, "
                f"cell_type='{self.cell_type.name}', "
                f"gdim={self.gdim}>")
