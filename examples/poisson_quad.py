"""Example: Poisson on structured quad mesh, Dirichlet values eliminated symmetrically"""
import logging

import numpy as np, scipy.sparse.linalg as spla
from pysymfem.utils.meshgen import structured_quad
from pysymfem.fem.dofmap import DofMap
from pysymfem.fem.bcs import DirichletBC
from pysymfem.fem.kernels import laplace, source
from pysymfem.assembly.system_assembler import assemble_system

logging.basicConfig(level=logging.INFO)

u_exact = lambda x,y: x**2*y + np.sin(y)
f_rhs   = lambda x,y: -2*y + np.sin(y)
on_boundary = lambda x,y: np.isclose(x,0) or np.isclose(x,3) or np.isclose(y,0) or np.isclose(y,2)

mesh = structured_quad(3,2, nx=30, ny=20)
V = DofMap(mesh, "CG", 1)
bc = DirichletBC(V, u_exact, on_boundary)
A, b = assemble_system(laplace(V), source(V, f_rhs), bc)
print('symmetric:', abs(A - A.T).max() < 1e-12)
uh = spla.spsolve(A.tocsc(), b)
coords = V.tabulate_dof_coordinates()
print('L2 error =', np.linalg.norm(uh - u_exact(coords[:,0], coords[:,1]),2)/V.num_dofs)
