# volmask/simplex_noise.py
"""
3D simplex noise (Stefan Gustavson's formulation) compiled with Numba.

The scalar functions are plain ``nopython`` kernels so the field evaluator
can call them from inside its own parallel loops.
"""

import numpy as np
from typing import Optional
from numba import jit

# ----------------------------------------------------------------------
# Constants
# ----------------------------------------------------------------------

_GRAD3 = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1]
], dtype=np.float64)

# Ken Perlin's reference permutation
_PERM = np.array([
    151, 160, 137, 91, 90, 15, 131, 13, 201, 95, 96, 53, 194, 233, 7, 225, 140,
    36, 103, 30, 69, 142, 8, 99, 37, 240, 21, 10, 23, 190, 6, 148, 247, 120,
    234, 75, 0, 26, 197, 62, 94, 252, 219, 203, 117, 35, 11, 32, 57, 177, 33,
    88, 237, 149, 56, 87, 174, 20, 125, 136, 171, 168, 68, 175, 74, 165, 71,
    134, 139, 48, 27, 166, 77, 146, 158, 231, 83, 111, 229, 122, 60, 211, 133,
    230, 220, 105, 92, 41, 55, 46, 245, 40, 244, 102, 143, 54, 65, 25, 63, 161,
    1, 216, 80, 73, 209, 76, 132, 187, 208, 89, 18, 169, 200, 196, 135, 130,
    116, 188, 159, 86, 164, 100, 109, 198, 173, 186, 3, 64, 52, 217, 226, 250,
    124, 123, 5, 202, 38, 147, 118, 126, 255, 82, 85, 212, 207, 206, 59, 227,
    47, 16, 58, 17, 182, 189, 28, 42, 223, 183, 170, 213, 119, 248, 152, 2, 44,
    154, 163, 70, 221, 153, 101, 155, 167, 43, 172, 9, 129, 22, 39, 253, 19, 98,
    108, 110, 79, 113, 224, 232, 178, 185, 112, 104, 218, 246, 97, 228, 251, 34,
    242, 193, 238, 210, 144, 12, 191, 179, 162, 241, 81, 51, 145, 235, 249, 14,
    239, 107, 49, 192, 214, 31, 181, 199, 106, 157, 184, 84, 204, 176, 115, 121,
    50, 45, 127, 4, 150, 254, 138, 236, 205, 93, 222, 114, 67, 29, 24, 72, 243,
    141, 128, 195, 78, 66, 215, 61, 156, 180
], dtype=np.int64)

_F3 = 1.0 / 3.0
_G3 = 1.0 / 6.0

# Band loop constants for fractal noise
LACUNARITY = 2.0
PERSISTENCE = 0.5


def permutation_table(seed: Optional[int] = None) -> np.ndarray:
    """
    Doubled permutation table (length 512) for the noise kernels.

    ``seed=None`` returns the classic table; any integer seed gives a
    reproducible shuffle without touching numpy's global random state.
    """
    if seed is None:
        perm = _PERM
    else:
        perm = np.random.RandomState(seed % (2 ** 32)).permutation(256).astype(np.int64)
    return np.concatenate([perm, perm])


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

@jit(nopython=True, cache=True)
def _dot3(g: np.ndarray, x: float, y: float, z: float) -> float:
    return g[0] * x + g[1] * y + g[2] * z


@jit(nopython=True, cache=True)
def _fast_floor(x: float) -> int:
    xi = int(x)
    return xi if x >= xi else xi - 1


# ----------------------------------------------------------------------
# 3D simplex noise
# ----------------------------------------------------------------------

@jit(nopython=True, cache=True)
def simplex_noise_3d(x: float, y: float, z: float, perm: np.ndarray) -> float:
    """
    3D simplex noise

    Args:
        x, y, z: Coordinates
        perm: Doubled permutation table (length 512)

    Returns:
        Noise value in roughly [-1, 1]
    """
    # Skew the input space to find the containing simplex cell
    s = (x + y + z) * _F3
    i = _fast_floor(x + s)
    j = _fast_floor(y + s)
    k = _fast_floor(z + s)

    t = (i + j + k) * _G3
    x0 = x - (i - t)
    y0 = y - (j - t)
    z0 = z - (k - t)

    # Which of the six tetrahedra are we in
    if x0 >= y0:
        if y0 >= z0:
            i1, j1, k1 = 1, 0, 0
            i2, j2, k2 = 1, 1, 0
        elif x0 >= z0:
            i1, j1, k1 = 1, 0, 0
            i2, j2, k2 = 1, 0, 1
        else:
            i1, j1, k1 = 0, 0, 1
            i2, j2, k2 = 1, 0, 1
    else:
        if y0 < z0:
            i1, j1, k1 = 0, 0, 1
            i2, j2, k2 = 0, 1, 1
        elif x0 < z0:
            i1, j1, k1 = 0, 1, 0
            i2, j2, k2 = 0, 1, 1
        else:
            i1, j1, k1 = 0, 1, 0
            i2, j2, k2 = 1, 1, 0

    x1 = x0 - i1 + _G3
    y1 = y0 - j1 + _G3
    z1 = z0 - k1 + _G3
    x2 = x0 - i2 + 2.0 * _G3
    y2 = y0 - j2 + 2.0 * _G3
    z2 = z0 - k2 + 2.0 * _G3
    x3 = x0 - 1.0 + 3.0 * _G3
    y3 = y0 - 1.0 + 3.0 * _G3
    z3 = z0 - 1.0 + 3.0 * _G3

    ii = i & 255
    jj = j & 255
    kk = k & 255

    gi0 = perm[ii + perm[jj + perm[kk]]] % 12
    gi1 = perm[ii + i1 + perm[jj + j1 + perm[kk + k1]]] % 12
    gi2 = perm[ii + i2 + perm[jj + j2 + perm[kk + k2]]] % 12
    gi3 = perm[ii + 1 + perm[jj + 1 + perm[kk + 1]]] % 12

    n = 0.0
    t0 = 0.6 - x0 * x0 - y0 * y0 - z0 * z0
    if t0 > 0:
        t0 *= t0
        n += t0 * t0 * _dot3(_GRAD3[gi0], x0, y0, z0)

    t1 = 0.6 - x1 * x1 - y1 * y1 - z1 * z1
    if t1 > 0:
        t1 *= t1
        n += t1 * t1 * _dot3(_GRAD3[gi1], x1, y1, z1)

    t2 = 0.6 - x2 * x2 - y2 * y2 - z2 * z2
    if t2 > 0:
        t2 *= t2
        n += t2 * t2 * _dot3(_GRAD3[gi2], x2, y2, z2)

    t3 = 0.6 - x3 * x3 - y3 * y3 - z3 * z3
    if t3 > 0:
        t3 *= t3
        n += t3 * t3 * _dot3(_GRAD3[gi3], x3, y3, z3)

    return 32.0 * n


@jit(nopython=True, cache=True)
def fractal_noise_3d(x: float, y: float, z: float, frequency: float,
                     octaves: int, perm: np.ndarray) -> float:
    """
    Band-limited fractal sum (fBm) of ``octaves`` simplex bands,
    normalized back to roughly [-1, 1].
    """
    total = 0.0
    amplitude = 1.0
    max_amplitude = 0.0
    f = frequency
    for _ in range(octaves):
        total += amplitude * simplex_noise_3d(x * f, y * f, z * f, perm)
        max_amplitude += amplitude
        amplitude *= PERSISTENCE
        f *= LACUNARITY
    return total / max_amplitude if max_amplitude > 0 else total
