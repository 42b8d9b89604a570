# volmask/pipeline.py
"""
Bake pipeline: Configure -> Synthesize -> Extract -> Reassemble -> Deliver.

A failing stage aborts the whole bake; no partially built grid is ever
returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import BakeError
from .export import ExportResult, VolumeExporter, resolve_asset_name
from .grid import PackedGrid
from .params import BakeConfig, ShapeParameters, Strategy
from .reassembly import VolumeReassembler
from .slicing import LayerFormat, SliceExtractor
from .synthesis import VolumeSynthesizer

logger = logging.getLogger(__name__)


class BakeStage(Enum):
    CONFIGURE = "configure"
    SYNTHESIZE = "synthesize"
    EXTRACT = "extract"
    REASSEMBLE = "reassemble"
    DELIVER = "deliver"


@dataclass(frozen=True)
class BakeResult:
    """Outcome of one bake: either a grid or the error and the stage it hit."""
    grid: Optional[PackedGrid] = None
    error: Optional[BakeError] = None
    stage: Optional[BakeStage] = None
    export: Optional[ExportResult] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.grid is not None


class VolumeBaker:
    """Runs one bake from an explicit configuration."""

    def __init__(self, config: Optional[BakeConfig] = None, exporter: Optional[VolumeExporter] = None):
        self.config = config or BakeConfig()
        self.exporter = exporter
        self._stage: Optional[BakeStage] = None

    @property
    def stage(self) -> Optional[BakeStage]:
        """Stage currently (or last) executed."""
        return self._stage

    def _enter(self, stage: BakeStage) -> None:
        self._stage = stage
        logger.debug(f"Stage {stage.value}")

    def _bake_grid(self) -> PackedGrid:
        self._enter(BakeStage.CONFIGURE)
        config = self.config.validate()
        r = config.resolution
        grid_name = f"{config.volume_name}_densityTex"
        synthesizer = VolumeSynthesizer(r, config.parameters)

        if config.strategy is Strategy.DIRECT:
            self._enter(BakeStage.SYNTHESIZE)
            values = synthesizer.synthesize_packed()
            return PackedGrid(values=values, resolution=r, name=grid_name)

        self._enter(BakeStage.SYNTHESIZE)
        volume = synthesizer.synthesize()

        self._enter(BakeStage.EXTRACT)
        layers = SliceExtractor(LayerFormat.parse(config.layer_format), config.workers).extract_all(volume)
        del volume

        self._enter(BakeStage.REASSEMBLE)
        return VolumeReassembler(r).reassemble(layers, name=grid_name)

    def _deliver(self, grid: PackedGrid) -> Optional[ExportResult]:
        self._enter(BakeStage.DELIVER)
        if not self.config.save_to_disk:
            return None
        exporter = self.exporter or VolumeExporter(Path(self.config.output_dir))
        name = resolve_asset_name(self.config.save_file_name, self.config.volume_name)
        return exporter.save(grid, name)

    def run(self) -> BakeResult:
        """Bake and return a typed result instead of raising."""
        start = time.perf_counter()
        try:
            grid = self._bake_grid()
            export = self._deliver(grid)
        except BakeError as e:
            e.stage = self._stage
            logger.error(f"Bake failed during {self._stage.value}: {e}")
            return BakeResult(error=e, stage=self._stage,
                              elapsed_ms=(time.perf_counter() - start) * 1000.0)
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.info(f"Bake finished in {elapsed:.1f} ms")
        return BakeResult(grid=grid, stage=BakeStage.DELIVER, export=export, elapsed_ms=elapsed)

    def bake(self) -> PackedGrid:
        """Bake and return the grid; raises the BakeError subclass that aborted it."""
        result = self.run()
        if not result.ok:
            raise result.error
        return result.grid


def bake(resolution: int = 32, parameters: Optional[ShapeParameters] = None, **kwargs) -> PackedGrid:
    """One-call bake; keyword arguments are BakeConfig fields."""
    config = BakeConfig(resolution=resolution, parameters=parameters or ShapeParameters(), **kwargs)
    return VolumeBaker(config).bake()
