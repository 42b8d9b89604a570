# volmask/synthesis.py
"""
Volume synthesis: evaluate the density field at every voxel center of an
R x R x R grid.

Each voxel is independent, so the kernels run the outer axis with
``prange`` and write every output slot exactly once. The call returns only
after all workers have finished, which is the barrier before extraction.
"""

import logging
import time

import numpy as np
from numba import jit, prange

from .errors import AllocationError
from .field import density_at, field_args, voxel_center
from .params import ShapeParameters, validate_resolution

logger = logging.getLogger(__name__)


@jit(nopython=True, parallel=True, cache=True)
def _fill_dense(volume, resolution, shape_code, size_a, size_b, fall_off,
                noise_enabled, noise_frequency, noise_intensity, noise_octaves, perm):
    for x in prange(resolution):
        px = voxel_center(x, resolution)
        for y in range(resolution):
            py = voxel_center(y, resolution)
            for z in range(resolution):
                pz = voxel_center(z, resolution)
                volume[x, y, z] = density_at(
                    px, py, pz, shape_code, size_a, size_b, fall_off,
                    noise_enabled, noise_frequency, noise_intensity, noise_octaves, perm,
                )


@jit(nopython=True, parallel=True, cache=True)
def _fill_packed(out, resolution, shape_code, size_a, size_b, fall_off,
                 noise_enabled, noise_frequency, noise_intensity, noise_octaves, perm):
    plane = resolution * resolution
    for z in prange(resolution):
        pz = voxel_center(z, resolution)
        for y in range(resolution):
            py = voxel_center(y, resolution)
            for x in range(resolution):
                px = voxel_center(x, resolution)
                out[x + y * resolution + z * plane] = density_at(
                    px, py, pz, shape_code, size_a, size_b, fall_off,
                    noise_enabled, noise_frequency, noise_intensity, noise_octaves, perm,
                )


def allocate(shape, dtype=np.float32) -> np.ndarray:
    """Allocate an output buffer, mapping allocator failures to AllocationError."""
    try:
        return np.empty(shape, dtype=dtype)
    except (MemoryError, ValueError, OverflowError) as e:
        raise AllocationError(f"Cannot allocate buffer of shape {shape}: {e}") from e


class VolumeSynthesizer:
    """Drives the parallel field evaluation over the whole grid."""

    def __init__(self, resolution: int, parameters: ShapeParameters):
        # Fail fast: nothing is allocated until the configuration is valid
        self.resolution = validate_resolution(resolution)
        self.parameters = parameters
        self.args = field_args(parameters)

    def synthesize(self) -> np.ndarray:
        """
        Dense float32 volume of shape (R, R, R), indexed [x, y, z].

        The returned array is read-only.
        """
        r = self.resolution
        logger.info(f"Synthesizing {self.parameters.kind.name.lower()} volume {r}x{r}x{r}...")
        start = time.perf_counter()

        volume = allocate((r, r, r))
        _fill_dense(volume, r, *self.args)
        volume.flags.writeable = False

        logger.debug(f"Synthesis finished in {(time.perf_counter() - start) * 1000.0:.1f} ms")
        return volume

    def synthesize_packed(self) -> np.ndarray:
        """
        Flat float32 array of R^3 values written straight into the packed
        flattening ``x + y*R + z*R*R``; no slice detour.
        """
        r = self.resolution
        logger.info(f"Synthesizing {self.parameters.kind.name.lower()} volume {r}x{r}x{r} (direct)...")
        start = time.perf_counter()

        out = allocate(r * r * r)
        _fill_packed(out, r, *self.args)
        out.flags.writeable = False

        logger.debug(f"Direct synthesis finished in {(time.perf_counter() - start) * 1000.0:.1f} ms")
        return out


def synthesize(resolution: int, parameters: ShapeParameters) -> np.ndarray:
    return VolumeSynthesizer(resolution, parameters).synthesize()
