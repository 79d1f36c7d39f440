"""pysymfem.utils.bitset"""
from __future__ import annotations

import numpy as np


class BitSet:
    """Boolean mask over mesh entities (cells or facets) with set algebra."""

    def __init__(self, mask):
        self.mask = np.asarray(mask, dtype=bool)

    @classmethod
    def from_indices(cls, indices, size: int) -> "BitSet":
        mask = np.zeros(size, dtype=bool)
        mask[np.asarray(indices, dtype=int)] = True
        return cls(mask)

    def union(self, other): return BitSet(self.mask | other.mask)
    def intersect(self, other): return BitSet(self.mask & other.mask)
    def diff(self, other): return BitSet(self.mask & ~other.mask)
    def xor(self, other): return BitSet(self.mask ^ other.mask)
    __or__ = union
    __and__ = intersect
    __sub__ = diff
    __xor__ = xor
    def cardinality(self): return int(self.mask.sum())
    def to_indices(self): return np.flatnonzero(self.mask)
    def __len__(self): return len(self.mask)
    def __repr__(self): return f'<BitSet {self.cardinality()}/{len(self)}>'

    @property
    def array(self):
        return self.mask

    def __getitem__(self, idx):      # BitSet[i] → bool
        return self.mask[idx]

    def __contains__(self, idx):     # idx in BitSet
        return bool(self.mask[idx])

    def __iter__(self):
        return iter(self.to_indices().tolist())
