"""pysymfem.core.exceptions
Errors raised by geometry kernels and the system assembler.
"""


class IncompatibleFormsError(ValueError):
    """Bilinear and linear form cannot be assembled as one system."""


class DegenerateGeometryError(ValueError):
    """A cell or facet has zero (or negative) measure."""


class InvalidBoundaryDofError(IndexError):
    """A boundary value refers to a dof outside the function space."""
