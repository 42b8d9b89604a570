from __future__ import annotations

import numpy as np
import pytest

from volmask.errors import ExportError
from volmask.export import (
    ExportStatus,
    VolumeExporter,
    grid_slice,
    resolve_asset_name,
    save_preview,
)
from volmask.grid import PackedGrid


def _grid(r: int = 4, name: str = "Test_densityTex") -> PackedGrid:
    return PackedGrid(values=np.linspace(0.0, 1.0, r ** 3, dtype=np.float32), resolution=r, name=name)


def test_save_and_load_preserve_the_grid(tmp_path) -> None:
    grid = _grid()
    exporter = VolumeExporter(tmp_path / "out")
    result = exporter.save(grid)
    assert result.saved
    assert result.path == tmp_path / "out" / "Test_densityTex.npz"

    loaded = exporter.load(result.path)
    np.testing.assert_array_equal(loaded.values, grid.values)
    assert loaded.resolution == grid.resolution
    assert loaded.name == grid.name
    assert loaded.wrap_mode == "clamp"
    assert loaded.filter_mode == "bilinear"


def test_existing_file_is_not_overwritten(tmp_path, caplog) -> None:
    exporter = VolumeExporter(tmp_path)
    path = tmp_path / "mask.npz"
    path.write_bytes(b"keep me")
    with caplog.at_level("WARNING", logger="volmask"):
        result = exporter.save(_grid(), "mask")
    assert result.status is ExportStatus.SKIPPED
    assert not result.saved
    assert path.read_bytes() == b"keep me"
    assert "not overwriting" in caplog.text


def test_resolve_asset_name() -> None:
    assert resolve_asset_name("densityMaskTexture", "DensityVolume") == "densityMaskTexture"
    assert resolve_asset_name("  mask ", "DensityVolume") == "mask"
    assert resolve_asset_name("", "DensityVolume") == "DensityVolume_densityTex"
    assert resolve_asset_name(None, "Smoke") == "Smoke_densityTex"
    with pytest.raises(ExportError):
        resolve_asset_name("", "")


def test_loading_garbage_raises_export_error(tmp_path) -> None:
    path = tmp_path / "broken.npz"
    path.write_bytes(b"not a zip archive")
    with pytest.raises(ExportError):
        VolumeExporter(tmp_path).load(path)
    with pytest.raises(ExportError):
        VolumeExporter(tmp_path).load(tmp_path / "missing.npz")


def test_loading_other_format_version_fails(tmp_path) -> None:
    path = tmp_path / "future.npz"
    np.savez_compressed(path, values=np.zeros(1, dtype=np.float32), resolution=np.int64(1),
                        name=np.str_("x"), wrap_mode=np.str_("clamp"),
                        filter_mode=np.str_("bilinear"), format_version=np.int64(99))
    with pytest.raises(ExportError, match="version"):
        VolumeExporter(tmp_path).load(path)


def test_grid_slice_axes() -> None:
    r = 4
    grid = _grid(r)
    assert np.array_equal(grid_slice(grid, "z", 1)[2, 3], grid.value_at(3, 2, 1))
    assert np.array_equal(grid_slice(grid, "y", 1)[2, 3], grid.value_at(3, 1, 2))
    assert np.array_equal(grid_slice(grid, "x", 1)[2, 3], grid.value_at(1, 3, 2))
    assert grid_slice(grid).shape == (r, r)
    with pytest.raises(IndexError):
        grid_slice(grid, "z", r)
    with pytest.raises(ValueError):
        grid_slice(grid, "w", 0)


def test_preview_is_a_binary_ppm(tmp_path) -> None:
    path = save_preview(_grid(4), tmp_path / "preview" / "mid.ppm")
    data = path.read_bytes()
    header = b"P6\n4 4\n255\n"
    assert data.startswith(header)
    assert len(data) == len(header) + 4 * 4 * 3


def test_failed_write_leaves_no_partial_file(tmp_path, monkeypatch) -> None:
    def fail_midway(f, **arrays):
        f.write(b"PK\x03\x04partial")
        raise OSError("disk full")

    exporter = VolumeExporter(tmp_path)
    monkeypatch.setattr(np, "savez_compressed", fail_midway)
    with pytest.raises(ExportError, match="disk full"):
        exporter.save(_grid(), "mask")
    assert not (tmp_path / "mask.npz").exists()

    monkeypatch.undo()
    assert exporter.save(_grid(), "mask").status is ExportStatus.SAVED


def test_loading_out_of_range_values_fails(tmp_path) -> None:
    path = tmp_path / "tampered.npz"
    np.savez_compressed(path, values=np.full(8, 2.0, dtype=np.float32), resolution=np.int64(2),
                        name=np.str_("x"), wrap_mode=np.str_("clamp"),
                        filter_mode=np.str_("bilinear"), format_version=np.int64(1))
    with pytest.raises(ExportError):
        VolumeExporter(tmp_path).load(path)


def test_loading_non_positive_resolution_fails(tmp_path) -> None:
    path = tmp_path / "empty.npz"
    np.savez_compressed(path, values=np.zeros(0, dtype=np.float32), resolution=np.int64(0),
                        name=np.str_("x"), wrap_mode=np.str_("clamp"),
                        filter_mode=np.str_("bilinear"), format_version=np.int64(1))
    with pytest.raises(ExportError):
        VolumeExporter(tmp_path).load(path)
