# volmask/slicing.py
"""
Slice extraction: project one fixed-z cross-section of a dense volume into
an independent 2D pixel buffer in a transport format.

A Layer's pixels are stored flat, one row per texel, and texel (u, v) lives
at ``pixels[v + u*R]`` with ``Layer(u, v) = volume[u, v, z]``.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from .errors import ConfigurationError, IndexingInvariantError
from .synthesis import allocate

logger = logging.getLogger(__name__)


class LayerFormat(Enum):
    """Transport encodings of a layer."""
    RGBA_FLOAT = "rgba_float"   # float32, density copied into r, g and b; a = 1
    RGBA8 = "rgba8"             # uint8, density quantized into r, g and b; a = 255
    R_FLOAT = "r_float"         # float32, density in the single channel

    @property
    def channels(self) -> int:
        return 1 if self is LayerFormat.R_FLOAT else 4

    @property
    def dtype(self):
        return np.uint8 if self is LayerFormat.RGBA8 else np.float32

    @property
    def redundant_rgb(self) -> bool:
        """True when r, g and b each carry a copy of the same density."""
        return self is not LayerFormat.R_FLOAT

    @classmethod
    def parse(cls, value) -> "LayerFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown layer format '{value}'. Available: {', '.join(f.value for f in cls)}"
            ) from None


@dataclass(frozen=True)
class Layer:
    """One cross-section of the dense volume, tagged with its source depth."""
    depth: int
    pixels: np.ndarray          # shape (R*R, channels)
    format: LayerFormat
    resolution: int

    @property
    def size(self) -> int:
        return self.pixels.shape[0]

    def pixel(self, u: int, v: int) -> np.ndarray:
        return self.pixels[v + u * self.resolution]


def encode_layer(plane: np.ndarray, layer_format: LayerFormat) -> np.ndarray:
    """Encode an (R, R) float plane indexed [u, v] into flat transport pixels."""
    flat = np.ascontiguousarray(plane, dtype=np.float32).reshape(-1)
    pixels = allocate((flat.shape[0], layer_format.channels), dtype=layer_format.dtype)

    if layer_format is LayerFormat.R_FLOAT:
        pixels[:, 0] = flat
    elif layer_format is LayerFormat.RGBA8:
        quantized = np.clip(np.rint(flat * 255.0), 0, 255).astype(np.uint8)
        pixels[:, :3] = quantized[:, None]
        pixels[:, 3] = 255
    else:
        pixels[:, :3] = flat[:, None]
        pixels[:, 3] = 1.0
    pixels.flags.writeable = False
    return pixels


class SliceExtractor:
    """Turns a dense volume into R independent layers."""

    def __init__(self, layer_format=LayerFormat.RGBA_FLOAT, workers: Optional[int] = None):
        self.layer_format = LayerFormat.parse(layer_format)
        self.workers = workers

    def extract(self, volume: np.ndarray, z: int) -> Layer:
        resolution = _cubic_extent(volume)
        if not 0 <= z < resolution:
            raise IndexingInvariantError(f"Depth index {z} out of bounds [0, {resolution - 1}]")
        pixels = encode_layer(volume[:, :, z], self.layer_format)
        logger.debug(f"Extracted layer z={z} ({self.layer_format.value})")
        return Layer(depth=z, pixels=pixels, format=self.layer_format, resolution=resolution)

    def extract_all(self, volume: np.ndarray) -> List[Layer]:
        """
        Extract every layer; extraction runs on a thread pool and the result
        is returned in increasing z once all of them are done.
        """
        resolution = _cubic_extent(volume)
        workers = self.workers or min(resolution, os.cpu_count() or 1)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="volmask-slice") as pool:
            layers = list(pool.map(lambda z: self.extract(volume, z), range(resolution)))
        logger.info(f"Extracted {len(layers)} layers ({self.layer_format.value}, {workers} workers)")
        return layers


def _cubic_extent(volume: np.ndarray) -> int:
    if volume.ndim != 3 or not (volume.shape[0] == volume.shape[1] == volume.shape[2]):
        raise IndexingInvariantError(f"Volume must be a cube R x R x R, got shape {volume.shape}")
    return volume.shape[0]


def extract_layers(volume: np.ndarray, layer_format=LayerFormat.RGBA_FLOAT,
                   workers: Optional[int] = None) -> List[Layer]:
    return SliceExtractor(layer_format, workers).extract_all(volume)
