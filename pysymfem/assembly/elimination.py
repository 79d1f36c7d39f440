"""pysymfem.assembly.elimination
Symmetric application of Dirichlet values to local tensors.
"""
from __future__ import annotations

import logging
from typing import Iterator, Mapping, Optional

import numba
import numpy as np

from pysymfem.core.exceptions import InvalidBoundaryDofError

logger = logging.getLogger(__name__)


class BoundaryValues:
    """
    Merged ``{global dof: value}`` map over ``size`` dofs.

    Keeps a boolean mask and a dense value array next to the dict so the
    per-cell lookups are plain fancy indexing.  Assigning an already
    constrained dof overwrites its value (last writer wins).
    """

    def __init__(self, size: int, values: Optional[Mapping[int, float]] = None):
        self.size = int(size)
        self.mask = np.zeros(self.size, dtype=bool)
        self.values = np.zeros(self.size, dtype=float)
        if values:
            self.update(values)

    def __setitem__(self, dof: int, value: float):
        d = int(dof)
        if not 0 <= d < self.size:
            raise InvalidBoundaryDofError(f"Boundary dof {dof} outside [0, {self.size}).")
        self.mask[d] = True
        self.values[d] = float(value)

    def __getitem__(self, dof: int) -> float:
        if not self.mask[dof]:
            raise KeyError(dof)
        return float(self.values[dof])

    def update(self, values: Mapping[int, float]):
        for dof, value in values.items():
            self[dof] = value

    def shifted(self, x0) -> "BoundaryValues":
        """Targets for an increment around ``x0``: ``value - x0[dof]``."""
        x0 = np.asarray(x0, dtype=float)
        if x0.shape != (self.size,):
            raise ValueError(f"x0 must have shape ({self.size},), got {x0.shape}.")
        out = BoundaryValues(self.size)
        out.mask[:] = self.mask
        out.values[self.mask] = self.values[self.mask] - x0[self.mask]
        return out

    @property
    def dofs(self) -> np.ndarray:
        return np.flatnonzero(self.mask)

    def as_dict(self):
        return {int(d): float(self.values[d]) for d in self.dofs}

    def __contains__(self, dof) -> bool:
        return 0 <= int(dof) < self.size and bool(self.mask[int(dof)])

    def __iter__(self) -> Iterator[int]:
        return iter(int(d) for d in self.dofs)

    def __len__(self) -> int:
        return int(self.mask.sum())

    def __repr__(self):
        return f"<BoundaryValues {len(self)}/{self.size}>"


def has_bc(dofs: np.ndarray, bvs: BoundaryValues) -> bool:
    """True iff any of ``dofs`` is constrained."""
    return bool(bvs.mask[dofs].any())


@numba.njit(cache=True)
def _eliminate(Ae, be, local, targets, gdofs, placed):
    """
    In-place symmetric elimination of the local rows/columns ``local``.

    Columns are folded into ``be`` for every row before anything is zeroed,
    so repeated local indices of the same global dof (macro tensors) are
    handled correctly.  Only the first unit that meets a global dof puts
    the unit diagonal and the target on it.
    """
    n = be.shape[0]
    for k in range(local.shape[0]):
        i = local[k]
        v = targets[k]
        for j in range(n):
            be[j] -= Ae[j, i] * v
    for k in range(local.shape[0]):
        i = local[k]
        for j in range(n):
            Ae[i, j] = 0.0
            Ae[j, i] = 0.0
        be[i] = 0.0
    for k in range(local.shape[0]):
        d = gdofs[k]
        if not placed[d]:
            i = local[k]
            Ae[i, i] = 1.0
            be[i] = targets[k]
            placed[d] = True


def apply_bc(Ae: np.ndarray, be: np.ndarray, dofs: np.ndarray, bvs: BoundaryValues,
             placed: np.ndarray) -> int:
    """
    Eliminate the constrained entries of the local pair ``(Ae, be)``.

    ``placed`` is the per-assembly-call ownership array over global dofs.
    Returns the number of constrained local entries.
    """
    local = np.flatnonzero(bvs.mask[dofs])
    if local.size == 0:
        return 0
    gdofs = np.ascontiguousarray(dofs[local], dtype=np.int64)
    _eliminate(Ae, be, local.astype(np.int64), bvs.values[gdofs], gdofs, placed)
    return int(local.size)
