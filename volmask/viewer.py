"""Helpers for stepping through a baked grid slice by slice."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import itertools
import logging

import numpy as np

from .export import grid_slice
from .grid import PackedGrid

logger = logging.getLogger(__name__)


def add_viewer_args(parser) -> None:
    parser.add_argument("--view", action="store_true", help="Animate the baked grid slice by slice")
    parser.add_argument("--view-axis", choices=("x", "y", "z"), default="z", help="Slicing axis for --view")
    parser.add_argument("--fps", type=float, default=8.0, help="Slices per second for --view")
    parser.add_argument("--scale", type=int, default=8, help="Pixel upscale factor for --view")


def resize_nearest(image: np.ndarray, out_w: int, out_h: int) -> np.ndarray:
    in_h, in_w = image.shape[:2]
    if in_w == out_w and in_h == out_h:
        return image
    if image.ndim == 2:
        image = image[:, :, None]
    channels = image.shape[2]
    scale_x = max(1, out_w // in_w)
    scale_y = max(1, out_h // in_h)
    up = np.repeat(np.repeat(image, scale_y, axis=0), scale_x, axis=1)
    up = up[:out_h, :out_w, :]
    return up if channels > 1 else up[:, :, 0]


@dataclass
class ViewerConfig:
    title: str = "volmask"
    axis: str = "z"
    fps: float = 8.0
    scale: int = 8

    @classmethod
    def from_args(cls, args, title: Optional[str] = None) -> "ViewerConfig":
        return cls(
            title=title or "volmask",
            axis=getattr(args, "view_axis", "z"),
            fps=max(1.0, getattr(args, "fps", 8.0)),
            scale=max(1, getattr(args, "scale", 8)),
        )


def slice_frames(grid: PackedGrid, axis: str = "z", scale: int = 1):
    """Upscaled cross-sections of ``grid`` along ``axis``, in index order."""
    size = grid.resolution * scale
    for index in range(grid.resolution):
        yield resize_nearest(grid_slice(grid, axis, index), size, size)


def run_viewer(grid: PackedGrid, config: ViewerConfig) -> None:
    try:
        import matplotlib.pyplot as plt
        from matplotlib.animation import FuncAnimation
    except ImportError:
        logger.warning("matplotlib is not available; cannot display the grid.")
        return

    frames = list(slice_frames(grid, config.axis, config.scale))

    fig, ax = plt.subplots()
    ax.axis("off")
    fig.subplots_adjust(left=0, right=1, top=0.92, bottom=0)
    im = ax.imshow(frames[0], cmap="gray", vmin=0.0, vmax=1.0, animated=True)
    title = ax.set_title(f"{config.title} {config.axis}=0")

    def update(frame):
        index = frame % len(frames)
        im.set_array(frames[index])
        title.set_text(f"{config.title} {config.axis}={index}")
        return (im, title)

    anim = FuncAnimation(
        fig,
        update,
        frames=itertools.count(),
        interval=1000.0 / max(1.0, config.fps),
        blit=False,
        repeat=True,
        cache_frame_data=False,
    )
    plt.show(block=True)
