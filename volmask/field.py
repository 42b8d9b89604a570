# volmask/field.py
"""
Field evaluator: normalized voxel position -> scalar density in [0, 1].

Shapes are signed-distance functions centered on the grid; the distance is
turned into density by a logistic (exponential) falloff, optionally
modulated by fractal simplex noise.
"""

import math
from typing import NamedTuple, Sequence

import numpy as np
from numba import jit

from .params import (
    MIN_FALL_OFF,
    Cylinder,
    ShapeKind,
    ShapeParameters,
    Sphere,
    Torus,
)
from .simplex_noise import fractal_noise_3d, permutation_table

SHAPE_SPHERE = ShapeKind.SPHERE.value
SHAPE_CYLINDER = ShapeKind.CYLINDER.value
SHAPE_TORUS = ShapeKind.TORUS.value
SHAPE_NOISE = ShapeKind.NOISE.value

# exp() argument bound; keeps the logistic finite for any fall off
_MAX_EXPONENT = 60.0
# Noise intensity that maps to a full +-1 swing of the noise term
_INTENSITY_SCALE = 10.0


class FieldArgs(NamedTuple):
    """Flat kernel arguments derived from ShapeParameters."""
    shape_code: int
    size_a: float
    size_b: float
    fall_off: float
    noise_enabled: bool
    noise_frequency: float
    noise_intensity: float
    noise_octaves: int
    perm: np.ndarray


def field_args(parameters: ShapeParameters) -> FieldArgs:
    """Validate parameters and flatten them for the Numba kernels."""
    parameters.validate()
    shape = parameters.shape
    size_a = size_b = 0.0
    if isinstance(shape, Sphere):
        size_a = float(shape.radius)
    elif isinstance(shape, Cylinder):
        size_a = float(shape.radius)
    elif isinstance(shape, Torus):
        size_a = float(shape.major_radius)
        size_b = float(shape.minor_radius)

    noise = parameters.effective_noise
    if noise is None:
        return FieldArgs(shape.kind.value, size_a, size_b, float(parameters.fall_off),
                         False, 1.0, 0.0, 1, permutation_table(None))
    return FieldArgs(
        shape.kind.value, size_a, size_b, float(parameters.fall_off),
        True, float(noise.density), float(noise.intensity), int(noise.octaves),
        permutation_table(noise.seed),
    )


# ----------------------------------------------------------------------
# Kernels
# ----------------------------------------------------------------------

@jit(nopython=True, cache=True)
def signed_distance(px: float, py: float, pz: float,
                    shape_code: int, size_a: float, size_b: float) -> float:
    """Signed distance to the selected shape; 0 for the noise shape."""
    if shape_code == SHAPE_SPHERE:
        return math.sqrt(px * px + py * py + pz * pz) - size_a
    if shape_code == SHAPE_CYLINDER:
        return math.sqrt(px * px + pz * pz) - size_a
    if shape_code == SHAPE_TORUS:
        q = math.sqrt(px * px + pz * pz) - size_a
        return math.sqrt(q * q + py * py) - size_b
    return 0.0


@jit(nopython=True, cache=True)
def falloff(distance: float, fall_off: float) -> float:
    """Logistic falloff, strictly decreasing in ``distance``, inside (0, 1)."""
    k = fall_off if fall_off > MIN_FALL_OFF else MIN_FALL_OFF
    e = k * distance
    if e > _MAX_EXPONENT:
        e = _MAX_EXPONENT
    elif e < -_MAX_EXPONENT:
        e = -_MAX_EXPONENT
    return 1.0 / (1.0 + math.exp(e))


@jit(nopython=True, cache=True)
def density_at(px: float, py: float, pz: float,
               shape_code: int, size_a: float, size_b: float, fall_off: float,
               noise_enabled: bool, noise_frequency: float, noise_intensity: float,
               noise_octaves: int, perm: np.ndarray) -> float:
    term = 0.0
    if noise_enabled:
        n = fractal_noise_3d(px, py, pz, noise_frequency, noise_octaves, perm)
        term = n * noise_intensity / _INTENSITY_SCALE

    if shape_code == SHAPE_NOISE:
        value = 0.5 + 0.5 * term
    else:
        value = falloff(signed_distance(px, py, pz, shape_code, size_a, size_b), fall_off)
        if noise_enabled:
            value = value * (1.0 + term)

    if value < 0.0:
        return 0.0
    if value > 1.0:
        return 1.0
    return value


@jit(nopython=True, cache=True)
def voxel_center(index: int, resolution: int) -> float:
    """Voxel index -> normalized coordinate in (-1, 1), grid center at 0."""
    return (index + 0.5) / resolution * 2.0 - 1.0


# ----------------------------------------------------------------------
# Python-side evaluator
# ----------------------------------------------------------------------

class FieldEvaluator:
    """Pure density function for one set of shape parameters."""

    def __init__(self, parameters: ShapeParameters):
        self.parameters = parameters
        self.args = field_args(parameters)

    def evaluate(self, position: Sequence[float]) -> float:
        """Density at a normalized position (grid center is the origin)."""
        px, py, pz = (float(c) for c in position)
        return float(density_at(px, py, pz, *self.args))

    def evaluate_voxel(self, x: int, y: int, z: int, resolution: int) -> float:
        """Density at the center of voxel (x, y, z) of an R^3 grid."""
        return self.evaluate((
            voxel_center(x, resolution),
            voxel_center(y, resolution),
            voxel_center(z, resolution),
        ))

    def __call__(self, position: Sequence[float]) -> float:
        return self.evaluate(position)


def evaluate(position: Sequence[float], parameters: ShapeParameters) -> float:
    return FieldEvaluator(parameters).evaluate(position)


__all__ = [
    "FieldArgs",
    "FieldEvaluator",
    "density_at",
    "evaluate",
    "falloff",
    "field_args",
    "signed_distance",
    "voxel_center",
]
