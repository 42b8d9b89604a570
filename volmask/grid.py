# volmask/grid.py
"""
Packed grid: the single-channel dense voxel grid handed to the volumetric
renderer.
"""

import numbers
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import IndexingInvariantError


@dataclass(frozen=True)
class PackedGrid:
    """
    R^3 density values in [0, 1], flattened as ``x + y*R + z*R*R``.

    Wrap and filter modes mirror the sampling state the renderer expects
    for a density mask texture.
    """
    values: np.ndarray          # shape (R*R*R,), float32
    resolution: int
    name: str = "DensityVolume_densityTex"
    wrap_mode: str = "clamp"
    filter_mode: str = "bilinear"

    def __post_init__(self):
        r = self.resolution
        if isinstance(r, bool) or not isinstance(r, numbers.Integral) or r <= 0:
            raise IndexingInvariantError(f"Packed grid resolution must be a positive integer, got {r!r}")
        values = np.asarray(self.values, dtype=np.float32)
        if values.ndim != 1 or values.shape[0] != r * r * r:
            raise IndexingInvariantError(
                f"Packed grid of resolution {r} needs {r * r * r} values, got shape {values.shape}"
            )
        if not np.all((values >= 0.0) & (values <= 1.0)):
            raise IndexingInvariantError("Packed grid values must lie in [0, 1]")
        if values.flags.writeable:
            values = values.copy()
            values.flags.writeable = False
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return self.values.shape[0]

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        r = self.resolution
        return (r, r, r)

    @property
    def size_bytes(self) -> int:
        return self.values.nbytes

    def index(self, x: int, y: int, z: int) -> int:
        r = self.resolution
        if not (0 <= x < r and 0 <= y < r and 0 <= z < r):
            raise IndexingInvariantError(f"Voxel ({x}, {y}, {z}) out of bounds for resolution {r}")
        return x + y * r + z * r * r

    def value_at(self, x: int, y: int, z: int) -> float:
        return float(self.values[self.index(x, y, z)])

    def as_volume(self) -> np.ndarray:
        """Read-only (R, R, R) view indexed [z, y, x]."""
        r = self.resolution
        return self.values.reshape(r, r, r)

    def to_rgba(self) -> np.ndarray:
        """(R^3, 4) texels with the density broadcast into every channel."""
        return np.repeat(self.values[:, None], 4, axis=1)

    def to_alpha8(self) -> np.ndarray:
        """8-bit alpha encoding of the grid, one byte per voxel."""
        return np.clip(np.rint(self.values * 255.0), 0, 255).astype(np.uint8)
