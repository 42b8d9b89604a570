# volmask/export.py
"""
Exporter for packed grids: persist to / load from a compressed numpy
archive, plus a PPM cross-section preview. Existing files are never
overwritten.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .errors import ExportError, IndexingInvariantError
from .grid import PackedGrid

logger = logging.getLogger(__name__)

ASSET_SUFFIX = ".npz"
FORMAT_VERSION = 1


class ExportStatus(Enum):
    SAVED = "saved"
    SKIPPED = "skipped"     # an artifact with that name already exists


@dataclass(frozen=True)
class ExportResult:
    status: ExportStatus
    path: Path

    @property
    def saved(self) -> bool:
        return self.status is ExportStatus.SAVED


def resolve_asset_name(save_file_name: Optional[str], volume_name: Optional[str] = None) -> str:
    """An empty save name falls back to '<volume name>_densityTex'."""
    if save_file_name and save_file_name.strip():
        return save_file_name.strip()
    if volume_name:
        return f"{volume_name}_densityTex"
    raise ExportError("Save file name must not be empty")


class VolumeExporter:
    """Saves packed grids into one directory."""

    def __init__(self, directory: Union[str, Path] = "."):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}{ASSET_SUFFIX}"

    def save(self, grid: PackedGrid, name: Optional[str] = None) -> ExportResult:
        path = self.path_for(resolve_asset_name(name, None) if name else grid.name)
        if path.exists():
            logger.warning(f"File already exists at {path} - not overwriting.")
            return ExportResult(ExportStatus.SKIPPED, path)

        created = False
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # 'x' mode: a file appearing since the check above is not clobbered
            with path.open("xb") as f:
                created = True
                np.savez_compressed(
                    f,
                    values=grid.values,
                    resolution=np.int64(grid.resolution),
                    name=np.str_(grid.name),
                    wrap_mode=np.str_(grid.wrap_mode),
                    filter_mode=np.str_(grid.filter_mode),
                    format_version=np.int64(FORMAT_VERSION),
                )
        except FileExistsError:
            logger.warning(f"File already exists at {path} - not overwriting.")
            return ExportResult(ExportStatus.SKIPPED, path)
        except OSError as e:
            # Leave no partial archive behind
            if created:
                path.unlink(missing_ok=True)
            raise ExportError(f"Cannot write {path}: {e}") from e

        logger.info(f"Saved density volume to: {path}")
        return ExportResult(ExportStatus.SAVED, path)

    def load(self, path: Union[str, Path]) -> PackedGrid:
        path = Path(path)
        try:
            with np.load(path, allow_pickle=False) as archive:
                version = int(archive["format_version"])
                if version != FORMAT_VERSION:
                    raise ExportError(f"Unsupported grid format version {version} in {path}")
                return PackedGrid(
                    values=archive["values"],
                    resolution=int(archive["resolution"]),
                    name=str(archive["name"]),
                    wrap_mode=str(archive["wrap_mode"]),
                    filter_mode=str(archive["filter_mode"]),
                )
        except ExportError:
            raise
        except (OSError, KeyError, ValueError, IndexingInvariantError, zipfile.BadZipFile) as e:
            raise ExportError(f"Cannot read packed grid from {path}: {e}") from e


# ----------------------------------------------------------------------
# Previews
# ----------------------------------------------------------------------

def _normalize_to_uint8(image: np.ndarray) -> np.ndarray:
    img = np.clip(image.astype(np.float32), 0.0, 1.0)
    return (img * 255.0 + 0.5).astype(np.uint8)


def save_ppm(image: np.ndarray, path: Path) -> None:
    """Save a grayscale [0, 1] image as binary PPM (P6)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    gray = _normalize_to_uint8(image)
    rgb = np.repeat(gray[:, :, None], 3, axis=2)
    height, width, _ = rgb.shape
    header = f"P6\n{width} {height}\n255\n".encode("ascii")
    with path.open("wb") as f:
        f.write(header)
        f.write(rgb.tobytes())


def grid_slice(grid: PackedGrid, axis: str = "z", index: Optional[int] = None) -> np.ndarray:
    """2D cross-section of a packed grid along 'x', 'y' or 'z'."""
    volume = grid.as_volume()       # [z, y, x]
    r = grid.resolution
    if index is None:
        index = r // 2
    if not 0 <= index < r:
        raise IndexError(f"{axis.upper()} index {index} out of bounds [0, {r - 1}]")
    if axis == "z":
        return volume[index, :, :]
    elif axis == "y":
        return volume[:, index, :]
    elif axis == "x":
        return volume[:, :, index]
    raise ValueError(f"Axis must be 'x', 'y', or 'z', got {axis}")


def save_preview(grid: PackedGrid, path: Union[str, Path], axis: str = "z",
                 index: Optional[int] = None) -> Path:
    path = Path(path)
    save_ppm(grid_slice(grid, axis, index), path)
    logger.info(f"Saved {axis}-slice preview to {path}")
    return path
