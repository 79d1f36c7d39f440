import numpy as np
import pytest

from pysymfem.fem.bcs import DirichletBC
from pysymfem.fem.dofmap import DofMap
from pysymfem.fem.function import Function
from pysymfem.fem.kernels import semilinear_jacobian, semilinear_residual
from pysymfem.solvers.newton import LinearSolverParameters, NewtonParameters, NewtonSolver
from pysymfem.utils.meshgen import structured_triangles


def u_exact(x, y):
    return 1.0 + x + y


def _problem(backend="spsolve", line_search=False):
    mesh = structured_triangles(1.0, 1.0, nx_quads=6, ny_quads=6)
    V = DofMap(mesh, "CG", 1)
    u = Function(V)
    on_boundary = lambda x, y: bool(np.isclose(x, 0) or np.isclose(x, 1) or np.isclose(y, 0) or np.isclose(y, 1))
    bc = DirichletBC(V, u_exact, on_boundary)
    # -Δu + u³ = f with a linear exact solution, so f = u³
    J = semilinear_jacobian(V, u, c=1.0)
    F = semilinear_residual(V, u, f=lambda x, y: u_exact(x, y) ** 3, c=1.0)
    solver = NewtonSolver(J, F, u, bc,
                          newton_params=NewtonParameters(newton_tol=1e-10, line_search=line_search),
                          lin_params=LinearSolverParameters(backend=backend))
    return V, u, bc, solver


def test_newton_converges_quadratically():
    V, u, bc, solver = _problem()
    result = solver.solve()
    assert result.converged
    assert result.iterations <= 8
    r = result.residuals
    # once in the asymptotic regime the residual roughly squares
    assert r[-2] < 1e-3
    assert r[-1] < 1e-10
    coords = V.tabulate_dof_coordinates()
    np.testing.assert_allclose(u.x, u_exact(coords[:, 0], coords[:, 1]), atol=1e-8)


def test_boundary_values_are_reached_in_the_first_step():
    V, u, bc, solver = _problem()
    solver.np.max_newton_iter = 2
    with pytest.raises(RuntimeError):
        solver.solve()
    for d, v in bc.get_boundary_values().items():
        assert u.x[d] == pytest.approx(v, abs=1e-14)


@pytest.mark.parametrize("backend,line_search", [("cg", False), ("spsolve", True)])
def test_newton_variants(backend, line_search):
    V, u, _, solver = _problem(backend, line_search)
    result = solver.solve()
    assert result.converged
    coords = V.tabulate_dof_coordinates()
    np.testing.assert_allclose(u.x, u_exact(coords[:, 0], coords[:, 1]), atol=1e-8)


def test_unknown_backend():
    _, _, _, solver = _problem("lu")
    with pytest.raises(ValueError):
        solver.solve()
