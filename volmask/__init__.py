"""volmask public API."""

from .errors import (
    AllocationError,
    BakeError,
    ConfigurationError,
    ExportError,
    IndexingInvariantError,
)
from .params import (
    BakeConfig,
    Cylinder,
    NoiseField,
    NoiseSettings,
    ShapeKind,
    ShapeParameters,
    Sphere,
    Strategy,
    Torus,
    shape_from_name,
)
from .field import FieldEvaluator
from .grid import PackedGrid
from .synthesis import VolumeSynthesizer
from .slicing import Layer, LayerFormat, SliceExtractor
from .reassembly import VolumeReassembler
from .export import ExportResult, ExportStatus, VolumeExporter
from .pipeline import BakeResult, BakeStage, VolumeBaker, bake

__all__ = [
    "AllocationError",
    "BakeError",
    "ConfigurationError",
    "ExportError",
    "IndexingInvariantError",
    "BakeConfig",
    "Cylinder",
    "NoiseField",
    "NoiseSettings",
    "ShapeKind",
    "ShapeParameters",
    "Sphere",
    "Strategy",
    "Torus",
    "shape_from_name",
    "FieldEvaluator",
    "PackedGrid",
    "VolumeSynthesizer",
    "Layer",
    "LayerFormat",
    "SliceExtractor",
    "VolumeReassembler",
    "ExportResult",
    "ExportStatus",
    "VolumeExporter",
    "BakeResult",
    "BakeStage",
    "VolumeBaker",
    "bake",
]

__version__ = "0.1.0"
