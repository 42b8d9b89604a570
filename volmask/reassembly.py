# volmask/reassembly.py
"""
Volume reassembly: rebuild the packed single-channel grid from the ordered
layers produced by the slice extractor.

Index convention
----------------
The packed grid is flattened as ``x + y*R + z*R*R``. A layer texel (u, v)
sits at pixel offset ``v + u*R``, so the in-plane axes are transposed with
respect to the packed grid: packed voxel (x, y, z) is read from pixel
``y + x*R`` of layer z. Swapping these silently transposes the result on
the x/y axes.

Channel decoding
----------------
For the redundant-RGB transport formats each texel carries the density
three times, and the value is recovered as ``(r + g + b) / 3``. This is only
correct for those formats; single-channel layers are read directly.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from numba import jit, prange

from .errors import IndexingInvariantError
from .grid import PackedGrid
from .params import validate_resolution
from .slicing import Layer
from .synthesis import allocate

logger = logging.getLogger(__name__)


@jit(nopython=True, cache=True)
def packed_index(x: int, y: int, z: int, resolution: int) -> int:
    return x + y * resolution + z * resolution * resolution


@jit(nopython=True, cache=True)
def layer_offset(x: int, y: int, resolution: int) -> int:
    """Pixel offset in a layer that holds packed voxel (x, y)."""
    return y + x * resolution


@jit(nopython=True, parallel=True, cache=True)
def _pack_layers(stack, resolution, redundant_rgb, scale, out):
    # Output ranges of different z never overlap
    for z in prange(resolution):
        for y in range(resolution):
            for x in range(resolution):
                src = layer_offset(x, y, resolution)
                if redundant_rgb:
                    value = (np.float64(stack[z, src, 0]) + np.float64(stack[z, src, 1])
                             + np.float64(stack[z, src, 2])) / 3.0
                else:
                    value = np.float64(stack[z, src, 0])
                value *= scale
                if value < 0.0:
                    value = 0.0
                elif value > 1.0:
                    value = 1.0
                out[packed_index(x, y, z, resolution)] = value


class VolumeReassembler:
    """Consumes all R layers and writes the packed grid."""

    def __init__(self, resolution: int):
        self.resolution = validate_resolution(resolution)

    def _ordered(self, layers: Sequence[Layer]):
        r = self.resolution
        if len(layers) != r:
            raise IndexingInvariantError(f"Expected {r} layers, got {len(layers)}")

        ordered = sorted(layers, key=lambda layer: layer.depth)
        depths = [layer.depth for layer in ordered]
        if depths != list(range(r)):
            raise IndexingInvariantError(f"Layer depths must cover 0..{r - 1} exactly once, got {depths}")

        layer_format = ordered[0].format
        for layer in ordered:
            if layer.resolution != r:
                raise IndexingInvariantError(
                    f"Layer z={layer.depth} was extracted at resolution {layer.resolution}, expected {r}"
                )
            if layer.format is not layer_format:
                raise IndexingInvariantError(
                    f"Mixed layer formats: {layer_format.value} and {layer.format.value}"
                )
            if layer.pixels.shape != (r * r, layer_format.channels):
                raise IndexingInvariantError(
                    f"Layer z={layer.depth} has pixel buffer {layer.pixels.shape}, "
                    f"expected {(r * r, layer_format.channels)}"
                )
        return ordered, layer_format

    def reassemble(self, layers: Sequence[Layer], name: Optional[str] = None) -> PackedGrid:
        r = self.resolution
        ordered, layer_format = self._ordered(layers)

        stack = allocate((r, r * r, layer_format.channels))
        for layer in ordered:
            stack[layer.depth] = layer.pixels
        scale = 1.0 / 255.0 if layer_format.dtype == np.uint8 else 1.0

        values = allocate(r * r * r)
        _pack_layers(stack, r, layer_format.redundant_rgb, scale, values)
        logger.info(f"Reassembled {r} layers into packed grid of {values.size} voxels")
        return PackedGrid(values=values, resolution=r, name=name or PackedGrid.name)


def reassemble(layers: Sequence[Layer], resolution: int, name: Optional[str] = None) -> PackedGrid:
    return VolumeReassembler(resolution).reassemble(layers, name=name)
