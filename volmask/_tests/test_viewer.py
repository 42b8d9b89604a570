from __future__ import annotations

import argparse

import numpy as np

from volmask.grid import PackedGrid
from volmask.viewer import ViewerConfig, add_viewer_args, resize_nearest, slice_frames


def test_resize_nearest_repeats_pixels() -> None:
    image = np.array([[0.0, 1.0], [0.5, 0.25]], dtype=np.float32)
    up = resize_nearest(image, 4, 4)
    assert up.shape == (4, 4)
    np.testing.assert_array_equal(up[:2, :2], np.zeros((2, 2)))
    np.testing.assert_array_equal(up[2:, 2:], np.full((2, 2), 0.25))


def test_resize_nearest_returns_matching_images_unchanged() -> None:
    gray = np.zeros((3, 5), dtype=np.float32)
    rgb = np.zeros((3, 5, 3), dtype=np.uint8)
    assert resize_nearest(gray, 5, 3) is gray
    assert resize_nearest(rgb, 5, 3) is rgb
    assert resize_nearest(rgb, 10, 6).shape == (6, 10, 3)


def test_slice_frames_walk_every_index() -> None:
    r = 3
    grid = PackedGrid(values=np.arange(r ** 3, dtype=np.float32) / 27.0, resolution=r)
    frames = list(slice_frames(grid, "z", scale=2))
    assert len(frames) == r
    assert all(frame.shape == (6, 6) for frame in frames)
    assert frames[1][0, 0] == grid.value_at(0, 0, 1)


def test_viewer_config_from_args_clamps_values() -> None:
    parser = argparse.ArgumentParser()
    add_viewer_args(parser)
    args = parser.parse_args(["--view", "--view-axis", "y", "--fps", "0", "--scale", "0"])
    config = ViewerConfig.from_args(args, title="grid")
    assert config.title == "grid"
    assert config.axis == "y"
    assert config.fps == 1.0
    assert config.scale == 1
