from .mesh import Mesh
from .topology import Cell, Facet
from .exceptions import DegenerateGeometryError, IncompatibleFormsError, InvalidBoundaryDofError
__all__=['Mesh','Cell','Facet','DegenerateGeometryError','IncompatibleFormsError','InvalidBoundaryDofError']
