# conftest.py
import numpy as np
import pytest

from pysymfem.fem.dofmap import DofMap
from pysymfem.utils.meshgen import (structured_quad, structured_tetrahedra,
                                    structured_triangles, unit_interval)


def on_boundary(*x):
    """Locator for the boundary of the unit square / cube / interval."""
    x = np.asarray(x)
    return bool(np.any(np.isclose(x, 0.0)) or np.any(np.isclose(x, 1.0)))


@pytest.fixture
def tri_mesh():
    return structured_triangles(1.0, 1.0, nx_quads=4, ny_quads=4)


@pytest.fixture
def quad_mesh():
    return structured_quad(1.0, 1.0, nx=4, ny=4)


@pytest.fixture
def tet_mesh():
    return structured_tetrahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2)


@pytest.fixture
def interval_mesh():
    return unit_interval(8)


@pytest.fixture
def V(tri_mesh):
    return DofMap(tri_mesh, "CG", 1)


@pytest.fixture
def boundary():
    return on_boundary
