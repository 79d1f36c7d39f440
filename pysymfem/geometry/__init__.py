# pysymfem.geometry
"""
Per-shape geometry kernels, selected by cell-type name.
"""
from functools import lru_cache
from importlib import import_module

_REGISTRY = {
    "vertex": ("pysymfem.geometry.vertex", "PointCell"),
    "interval": ("pysymfem.geometry.interval", "IntervalCell"),
    "triangle": ("pysymfem.geometry.triangle", "TriangleCell"),
    "quadrilateral": ("pysymfem.geometry.quadrilateral", "QuadrilateralCell"),
    "tetrahedron": ("pysymfem.geometry.tetrahedron", "TetrahedronCell"),
}
_ALIASES = {"point": "vertex", "tri": "triangle", "quad": "quadrilateral", "tet": "tetrahedron"}


def canonical_name(name: str) -> str:
    key = name.lower()
    key = _ALIASES.get(key, key)
    if key not in _REGISTRY:
        raise KeyError(name)
    return key


@lru_cache(maxsize=None)
def get_cell_type(name: str) -> "CellType":
    module, cls = _REGISTRY[canonical_name(name)]
    return getattr(import_module(module), cls)()


# imported last: cell_type pulls in pysymfem.core, whose mesh needs get_cell_type
from pysymfem.geometry.cell_type import CellType, GEOMETRY_TOL  # noqa: E402

__all__ = ["CellType", "GEOMETRY_TOL", "canonical_name", "get_cell_type"]
