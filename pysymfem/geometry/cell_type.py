"""pysymfem.geometry.cell_type
Shared capability interface of the per-shape geometry kernels.

Every kernel is a pure function of the vertex coordinates of one cell,
``coords`` with shape ``(num_vertices, gdim)``.  Sub-entities are numbered
with the UFC convention so that the local facet index used by the mesh, the
dof map and the local kernels is the same everywhere.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

import numpy as np

from pysymfem.core.exceptions import DegenerateGeometryError

# Measures below GEOMETRY_TOL * h**dim count as degenerate (h = cell extent).
GEOMETRY_TOL = 1e-12


def _extent(coords: np.ndarray) -> float:
    coords = np.asarray(coords, dtype=float)
    if coords.shape[0] < 2:
        return 0.0
    return float(np.ptp(coords, axis=0).max())


def is_degenerate(measure: float, coords: np.ndarray, dim: int) -> bool:
    """True if ``measure`` is negligible compared to the size of ``coords``."""
    if dim == 0:
        return False
    h = _extent(coords)
    if h == 0.0:
        return True
    return measure <= GEOMETRY_TOL * h ** dim


def as_3d(coords: np.ndarray) -> np.ndarray:
    """Pad coordinates (or a single point) with zeros up to three components."""
    arr = np.asarray(coords, dtype=float)
    if arr.shape[-1] > 3:
        raise ValueError(f"Coordinates with {arr.shape[-1]} components are not supported.")
    out = np.zeros(arr.shape[:-1] + (3,), dtype=float)
    out[..., :arr.shape[-1]] = arr
    return out


def segment_squared_distance(point: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Squared distance from ``point`` to the closed segment [a, b]."""
    t = b - a
    tt = float(t @ t)
    if tt == 0.0:
        d = point - a
        return float(d @ d)
    s = float((point - a) @ t) / tt
    s = min(max(s, 0.0), 1.0)
    d = point - (a + s * t)
    return float(d @ d)


class CellType:
    """
    Base class of the geometry kernels.

    Subclasses fill in the topology tables and implement ``volume``,
    ``circumradius``, ``squared_distance`` and ``cell_normal``.  Facet
    normals and facet areas have generic implementations here that only
    depend on the entity tables.
    """
    name: str = ""
    dim: int = 0
    facet_name: str | None = None
    is_simplex: bool = True
    num_cell_vertices: int = 0
    # local vertex tuples of the sub-entities, keyed by topological dimension
    _entity_vertices: Dict[int, Tuple[Tuple[int, ...], ...]] = {}

    # ------------------------------------------------------------------
    # topology
    # ------------------------------------------------------------------
    def entity_table(self, d: int) -> Tuple[Tuple[int, ...], ...]:
        if not 0 <= d <= self.dim:
            raise ValueError(f"{self.name} has no entities of dimension {d}.")
        if d == 0:
            return tuple((i,) for i in range(self.num_cell_vertices))
        if d == self.dim:
            return (tuple(range(self.num_cell_vertices)),)
        return self._entity_vertices[d]

    def num_entities(self, d: int) -> int:
        return len(self.entity_table(d))

    def num_vertices(self, d: int) -> int:
        return len(self.entity_table(d)[0])

    def create_entities(self, d: int, v: Sequence[int]) -> List[Tuple[int, ...]]:
        """Sub-entities of dimension ``d`` of the cell with vertices ``v``."""
        v = list(v)
        if len(v) != self.num_cell_vertices:
            raise ValueError(f"{self.name} needs {self.num_cell_vertices} vertices, got {len(v)}.")
        return [tuple(v[i] for i in ent) for ent in self.entity_table(d)]

    def facet_vertices(self, facet: int) -> Tuple[int, ...]:
        return self.entity_table(self.dim - 1)[facet]

    @property
    def facet_type(self) -> "CellType | None":
        if self.facet_name is None:
            return None
        from pysymfem.geometry import get_cell_type
        return get_cell_type(self.facet_name)

    # ------------------------------------------------------------------
    # geometry
    # ------------------------------------------------------------------
    def volume(self, coords: np.ndarray) -> float:
        raise NotImplementedError

    def circumradius(self, coords: np.ndarray) -> float:
        raise NotImplementedError

    def squared_distance(self, coords: np.ndarray, point: np.ndarray) -> float:
        raise NotImplementedError

    def cell_normal(self, coords: np.ndarray) -> np.ndarray:
        raise ValueError(f"Cell normal is undefined for a full-dimensional {self.name}.")

    def distance(self, coords: np.ndarray, point: np.ndarray) -> float:
        return float(np.sqrt(self.squared_distance(coords, point)))

    def midpoint(self, coords: np.ndarray) -> np.ndarray:
        return np.asarray(coords, dtype=float).mean(axis=0)

    def check(self, coords: np.ndarray) -> float:
        """Return the cell volume, raising for degenerate cells."""
        vol = self.volume(coords)
        if is_degenerate(vol, coords, self.dim):
            raise DegenerateGeometryError(f"Degenerate {self.name}: volume {vol:.3e}.")
        return vol

    def facet_area(self, coords: np.ndarray, facet: int) -> float:
        """Measure of local facet ``facet``; a vertex has measure one."""
        if self.dim == 1:
            return 1.0
        fc = np.asarray(coords, dtype=float)[list(self.facet_vertices(facet))]
        area = self.facet_type.volume(fc)
        if is_degenerate(area, fc, self.dim - 1):
            raise DegenerateGeometryError(f"Degenerate facet {facet} of {self.name}: measure {area:.3e}.")
        return area

    def normal(self, coords: np.ndarray, facet: int) -> np.ndarray:
        """
        Outward unit normal of local facet ``facet``.

        The normal lies in the affine hull of the cell: the vector from the
        opposite vertex (or the centroid of the remaining vertices) to the
        facet, minus its projection on the facet tangent space.
        """
        coords = np.asarray(coords, dtype=float)
        fv = list(self.facet_vertices(facet))
        others = [i for i in range(self.num_cell_vertices) if i not in fv]
        p_opp = coords[others].mean(axis=0)
        f0 = coords[fv[0]]
        w = f0 - p_opp
        if len(fv) > 1:
            T = (coords[fv[1:]] - f0).T          # (gdim, k) tangents
            Q, _ = np.linalg.qr(T)
            w = w - Q @ (Q.T @ w)
        nrm = float(np.linalg.norm(w))
        if nrm <= GEOMETRY_TOL * max(_extent(coords), 1e-300):
            raise DegenerateGeometryError(f"Cannot compute normal of facet {facet} of a degenerate {self.name}.")
        return w / nrm

    def __repr__(self):
        return f"<CellType {self.name} dim={self.dim}>"
