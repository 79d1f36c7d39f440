"""pysymfem.utils.meshgen
Mesh generators for quick tests.
"""
from itertools import permutations
from typing import Optional, Tuple

import numpy as np
from scipy.spatial import Delaunay

from pysymfem.core.mesh import Mesh

__all__ = ["unit_interval", "delaunay_rectangle", "structured_quad",
           "structured_triangles", "structured_tetrahedra"]


def _translate_coords(coords: np.ndarray, offset) -> np.ndarray:
    """Translates all node coordinates by a given offset vector."""
    if offset is not None:
        coords += np.asarray(offset, dtype=float)
    return coords


def _grid(Lx: float, Ly: float, nx: int, ny: int) -> np.ndarray:
    x = np.linspace(0.0, Lx, nx + 1)
    y = np.linspace(0.0, Ly, ny + 1)
    X, Y = np.meshgrid(x, y)
    return np.column_stack([X.ravel(), Y.ravel()])


def unit_interval(n: int, length: float = 1.0, offset: Optional[float] = None) -> Mesh:
    x = np.linspace(0.0, length, n + 1)[:, None]
    cells = np.column_stack([np.arange(n), np.arange(1, n + 1)])
    return Mesh(_translate_coords(x, offset), cells, "interval")


def delaunay_rectangle(length: float, height: float, nx: int = 10, ny: int = 10) -> Mesh:
    x = np.linspace(0.0, length, nx)
    y = np.linspace(0.0, height, ny)
    X, Y = np.meshgrid(x, y)
    pts = np.column_stack([X.ravel(), Y.ravel()])
    tri = Delaunay(pts)
    elems = tri.simplices.copy()

    # make triangles CCW
    def signed_area(a, b, c):
        return (b[0]-a[0])*(c[1]-a[1]) - (b[1]-a[1])*(c[0]-a[0])
    for t in elems:
        a, b, c = pts[t]
        if signed_area(a, b, c) < 0:
            t[1], t[2] = t[2], t[1]
    return Mesh(pts, elems, "triangle")


def structured_quad(Lx: float, Ly: float, *, nx: int, ny: int,
                    offset: Optional[Tuple[float, float]] = None) -> Mesh:
    """
    nx × ny bilinear quadrilaterals in tensor-product vertex order
    (v0=(i,j), v1=(i+1,j), v2=(i,j+1), v3=(i+1,j+1)).
    """
    coords = _grid(Lx, Ly, nx, ny)
    cells = []
    for j in range(ny):
        for i in range(nx):
            n0 = j * (nx + 1) + i
            cells.append((n0, n0 + 1, n0 + nx + 1, n0 + nx + 2))
    return Mesh(_translate_coords(coords, offset), np.array(cells, dtype=np.int64), "quadrilateral")


def structured_triangles(Lx: float, Ly: float, *, nx_quads: int, ny_quads: int,
                         offset: Optional[Tuple[float, float]] = None) -> Mesh:
    """Every base quad is split along its diagonal into two CCW triangles."""
    coords = _grid(Lx, Ly, nx_quads, ny_quads)
    cells = []
    for j in range(ny_quads):
        for i in range(nx_quads):
            bl = j * (nx_quads + 1) + i
            br, tl = bl + 1, bl + nx_quads + 1
            tr = tl + 1
            cells.append((bl, br, tr))
            cells.append((bl, tr, tl))
    return Mesh(_translate_coords(coords, offset), np.array(cells, dtype=np.int64), "triangle")


def structured_tetrahedra(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int) -> Mesh:
    """Box split into nx·ny·nz hexahedra of six tetrahedra each (Kuhn split)."""
    x = np.linspace(0.0, Lx, nx + 1)
    y = np.linspace(0.0, Ly, ny + 1)
    z = np.linspace(0.0, Lz, nz + 1)
    Z, Y, X = np.meshgrid(z, y, x, indexing="ij")
    coords = np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])

    def vid(i, j, k):
        return (k * (ny + 1) + j) * (nx + 1) + i

    unit = np.eye(3, dtype=int)
    cells = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                for perm in permutations(range(3)):
                    p = np.array([i, j, k])
                    tet = [vid(*p)]
                    for axis in perm:
                        p = p + unit[axis]
                        tet.append(vid(*p))
                    cells.append(tet)
    return Mesh(coords, np.array(cells, dtype=np.int64), "tetrahedron")
