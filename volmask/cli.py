"""CLI for baking volume masks."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError
from .export import save_preview
from .logging_config import setup_logging
from .params import BakeConfig, Strategy, shape_names
from .pipeline import VolumeBaker
from .slicing import LayerFormat
from .viewer import ViewerConfig, add_viewer_args, run_viewer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="volmask", description="Bake a procedural density volume mask")
    parser.add_argument("--config", type=Path, default=None, help="JSON file with bake settings")
    parser.add_argument("--shape", choices=shape_names(), default=None, help="Shape to bake")
    parser.add_argument("--resolution", type=int, default=None, help="Grid resolution R (R x R x R)")
    parser.add_argument("--fall-off", dest="fall_off", type=float, default=None,
                        help="Falloff sharpness; something around 10-15 works well")
    parser.add_argument("--radius", type=float, default=None, help="Sphere / cylinder radius")
    parser.add_argument("--major-radius", dest="major_radius", type=float, default=None)
    parser.add_argument("--minor-radius", dest="minor_radius", type=float, default=None)
    parser.add_argument("--noise", action="store_true", help="Modulate the shape with noise")
    parser.add_argument("--noise-density", dest="noise_density", type=float, default=None,
                        help="Noise pattern density (1-10)")
    parser.add_argument("--noise-intensity", dest="noise_intensity", type=float, default=None,
                        help="Noise strength (1-10)")
    parser.add_argument("--noise-octaves", dest="noise_octaves", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None, help="Noise permutation seed")
    parser.add_argument("--strategy", choices=[s.value for s in Strategy], default=None)
    parser.add_argument("--layer-format", dest="layer_format",
                        choices=[f.value for f in LayerFormat], default=None)
    parser.add_argument("--workers", type=int, default=None, help="Slice extraction threads")
    parser.add_argument("--volume-name", dest="volume_name", default=None)
    parser.add_argument("--name", default=None, help="File name of the saved grid (without suffix)")
    parser.add_argument("--output", default=None, help="Directory for saved grids")
    parser.add_argument("--save", action="store_true", help="Save the baked grid; never overwrites")
    parser.add_argument("--preview", type=Path, default=None, help="Write a PPM of the middle z slice")
    parser.add_argument("--log-level", dest="log_level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", dest="log_file", default=None)
    add_viewer_args(parser)
    return parser


def _load_config_file(path: Optional[Path]) -> dict:
    if path is None:
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    try:
        config = BakeConfig.from_args(args, base=_load_config_file(args.config))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    result = VolumeBaker(config).run()
    if not result.ok:
        return 1

    grid = result.grid
    logger.info(f"Baked {grid.name}: {grid.resolution}^3 voxels, "
                f"min {float(grid.values.min()):.3f} max {float(grid.values.max()):.3f}")
    if result.export is not None:
        logger.info(f"Export {result.export.status.value}: {result.export.path}")

    if args.preview is not None:
        save_preview(grid, args.preview)

    if args.view:
        run_viewer(grid, ViewerConfig.from_args(args, title=grid.name))
    return 0


if __name__ == "__main__":
    sys.exit(main())
