# volmask/params.py
"""
Bake parameters: the shape variant, falloff, noise settings and the
configuration value handed to the baker.
"""

from __future__ import annotations

import math
import os
import numbers
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from .errors import ConfigurationError

DEFAULT_RESOLUTION = 32
DEFAULT_FALL_OFF = 10.0
MIN_FALL_OFF = 1e-3

# Slider range of the original inspector; values outside it still bake
NOISE_UI_RANGE = (1.0, 10.0)


class ShapeKind(Enum):
    """Shape selector; the integer value is the code passed to the kernels."""
    SPHERE = 0
    CYLINDER = 1
    TORUS = 2
    NOISE = 3


class Strategy(Enum):
    """How the synthesized field reaches the packed grid."""
    SLICED = "sliced"   # synthesize, extract layers, reassemble
    DIRECT = "direct"   # write the packed flattening straight from the kernel


@dataclass(frozen=True)
class NoiseSettings:
    """Coherent noise term: frequency, strength and band count."""
    density: float = 5.0
    intensity: float = 5.0
    octaves: int = 1
    seed: Optional[int] = None

    def validate(self) -> "NoiseSettings":
        if not _is_real(self.density) or not math.isfinite(self.density) or self.density <= 0:
            raise ConfigurationError(f"Noise density must be a positive number, got {self.density!r}")
        if not _is_real(self.intensity) or not math.isfinite(self.intensity) or self.intensity < 0:
            raise ConfigurationError(f"Noise intensity must be >= 0, got {self.intensity!r}")
        if not _is_int(self.octaves) or self.octaves < 1:
            raise ConfigurationError(f"Noise octaves must be an integer >= 1, got {self.octaves!r}")
        if self.seed is not None and not _is_int(self.seed):
            raise ConfigurationError(f"Noise seed must be an integer or None, got {self.seed!r}")
        return self


@dataclass(frozen=True)
class Sphere:
    radius: float = 0.5

    kind: ClassVar[ShapeKind] = ShapeKind.SPHERE

    def validate(self) -> "Sphere":
        _require_positive("Sphere radius", self.radius)
        return self


@dataclass(frozen=True)
class Cylinder:
    """Infinite cylinder along the y axis."""
    radius: float = 0.35

    kind: ClassVar[ShapeKind] = ShapeKind.CYLINDER

    def validate(self) -> "Cylinder":
        _require_positive("Cylinder radius", self.radius)
        return self


@dataclass(frozen=True)
class Torus:
    """Torus lying in the x/z plane."""
    major_radius: float = 0.5
    minor_radius: float = 0.2

    kind: ClassVar[ShapeKind] = ShapeKind.TORUS

    def validate(self) -> "Torus":
        _require_positive("Torus major radius", self.major_radius)
        _require_positive("Torus minor radius", self.minor_radius)
        return self


@dataclass(frozen=True)
class NoiseField:
    """Pure noise density, not blended with any other shape."""
    noise: NoiseSettings = field(default_factory=NoiseSettings)

    kind: ClassVar[ShapeKind] = ShapeKind.NOISE

    def validate(self) -> "NoiseField":
        if not isinstance(self.noise, NoiseSettings):
            raise ConfigurationError(f"NoiseField.noise must be NoiseSettings, got {type(self.noise).__name__}")
        self.noise.validate()
        return self


Shape = Union[Sphere, Cylinder, Torus, NoiseField]

_SHAPE_TYPES = {
    ShapeKind.SPHERE: Sphere,
    ShapeKind.CYLINDER: Cylinder,
    ShapeKind.TORUS: Torus,
    ShapeKind.NOISE: NoiseField,
}


def shape_names():
    return [kind.name.lower() for kind in ShapeKind]


def shape_from_name(name: str, **kwargs) -> Shape:
    """
    Build a shape variant from its name ('sphere', 'cylinder', 'torus', 'noise').

    Extra keyword arguments are passed to the variant; unknown names or
    arguments raise ConfigurationError.
    """
    if not isinstance(name, str):
        raise ConfigurationError(f"Shape name must be a string, got {name!r}")
    try:
        kind = ShapeKind[name.strip().upper()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown shape '{name}'. Available: {', '.join(shape_names())}"
        ) from None
    try:
        return _SHAPE_TYPES[kind](**kwargs)
    except TypeError as e:
        raise ConfigurationError(f"Invalid arguments for shape '{name}': {e}") from None


@dataclass(frozen=True)
class ShapeParameters:
    """Read-only inputs of the field evaluator for one bake."""
    shape: Shape = field(default_factory=Sphere)
    fall_off: float = DEFAULT_FALL_OFF
    noise: Optional[NoiseSettings] = None

    @property
    def kind(self) -> ShapeKind:
        return self.shape.kind

    @property
    def effective_noise(self) -> Optional[NoiseSettings]:
        """Noise settings actually sampled by the evaluator."""
        if isinstance(self.shape, NoiseField):
            return self.shape.noise
        return self.noise

    def validate(self) -> "ShapeParameters":
        if not isinstance(self.shape, tuple(_SHAPE_TYPES.values())):
            raise ConfigurationError(f"Unknown shape {self.shape!r}")
        self.shape.validate()
        if not _is_real(self.fall_off) or not math.isfinite(self.fall_off) or self.fall_off < MIN_FALL_OFF:
            raise ConfigurationError(
                f"Fall off must be a finite number >= {MIN_FALL_OFF}, got {self.fall_off!r}"
            )
        if self.noise is not None:
            if not isinstance(self.noise, NoiseSettings):
                raise ConfigurationError(f"noise must be NoiseSettings or None, got {type(self.noise).__name__}")
            self.noise.validate()
        return self


def validate_resolution(resolution: Any) -> int:
    if not _is_int(resolution):
        raise ConfigurationError(f"Resolution must be an integer, got {resolution!r}")
    if resolution <= 0:
        raise ConfigurationError(f"Resolution must be positive, got {resolution}")
    return int(resolution)


@dataclass
class BakeConfig:
    """Everything one bake needs; replaces the scene-owned settings object."""
    resolution: int = DEFAULT_RESOLUTION
    parameters: ShapeParameters = field(default_factory=ShapeParameters)
    strategy: Strategy = Strategy.SLICED
    layer_format: str = "rgba_float"
    workers: Optional[int] = None
    volume_name: str = "DensityVolume"
    save_file_name: str = "densityMaskTexture"
    save_to_disk: bool = False
    output_dir: str = "."

    def validate(self) -> "BakeConfig":
        from .slicing import LayerFormat

        validate_resolution(self.resolution)
        if not isinstance(self.parameters, ShapeParameters):
            raise ConfigurationError(
                f"parameters must be ShapeParameters, got {type(self.parameters).__name__}"
            )
        self.parameters.validate()
        self.strategy = _parse_strategy(self.strategy)
        LayerFormat.parse(self.layer_format)
        if self.workers is not None and (not _is_int(self.workers) or self.workers < 1):
            raise ConfigurationError(f"workers must be a positive integer or None, got {self.workers!r}")
        if not isinstance(self.volume_name, str) or not self.volume_name.strip():
            raise ConfigurationError(f"volume_name must be a non-empty string, got {self.volume_name!r}")
        if not isinstance(self.save_file_name, str):
            raise ConfigurationError(f"save_file_name must be a string, got {self.save_file_name!r}")
        if not isinstance(self.output_dir, (str, os.PathLike)):
            raise ConfigurationError(f"output_dir must be a path, got {self.output_dir!r}")
        if not isinstance(self.save_to_disk, bool):
            raise ConfigurationError(f"save_to_disk must be true or false, got {self.save_to_disk!r}")
        return self

    def with_parameters(self, **changes) -> "BakeConfig":
        return replace(self, parameters=replace(self.parameters, **changes))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BakeConfig":
        """
        Build a config from plain keys, as found in a JSON config file.

        Recognised keys: resolution, shape, radius, major_radius,
        minor_radius, fall_off, noise (bool), noise_density,
        noise_intensity, noise_octaves, seed, strategy, layer_format,
        workers, volume_name, save_file_name, save_to_disk, output_dir.
        """
        known = {
            "resolution", "shape", "radius", "major_radius", "minor_radius",
            "fall_off", "noise", "noise_density", "noise_intensity",
            "noise_octaves", "seed", "strategy", "layer_format", "workers",
            "volume_name", "save_file_name", "save_to_disk", "output_dir",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        noise = NoiseSettings(
            density=data.get("noise_density", NoiseSettings.density),
            intensity=data.get("noise_intensity", NoiseSettings.intensity),
            octaves=data.get("noise_octaves", NoiseSettings.octaves),
            seed=data.get("seed"),
        )
        shape_name = data.get("shape", "sphere")
        shape_kwargs: Dict[str, Any] = {}
        kind_name = shape_name.strip().lower() if isinstance(shape_name, str) else shape_name
        if kind_name in ("sphere", "cylinder") and "radius" in data:
            shape_kwargs["radius"] = data["radius"]
        elif kind_name == "torus":
            for key in ("major_radius", "minor_radius"):
                if key in data:
                    shape_kwargs[key] = data[key]
        elif kind_name == "noise":
            shape_kwargs["noise"] = noise
        shape = shape_from_name(shape_name, **shape_kwargs)

        parameters = ShapeParameters(
            shape=shape,
            fall_off=data.get("fall_off", DEFAULT_FALL_OFF),
            noise=noise if data.get("noise", False) else None,
        )
        config = cls(
            resolution=data.get("resolution", DEFAULT_RESOLUTION),
            parameters=parameters,
            strategy=data.get("strategy", Strategy.SLICED),
            layer_format=data.get("layer_format", "rgba_float"),
            workers=data.get("workers"),
            volume_name=data.get("volume_name", "DensityVolume"),
            save_file_name=data.get("save_file_name", "densityMaskTexture"),
            save_to_disk=data.get("save_to_disk", False),
            output_dir=data.get("output_dir", "."),
        )
        return config.validate()

    @classmethod
    def from_args(cls, args, base: Optional[Mapping[str, Any]] = None) -> "BakeConfig":
        """Build a config from argparse results; explicit flags override ``base``."""
        data: Dict[str, Any] = dict(base or {})
        mapping = {
            "resolution": "resolution",
            "shape": "shape",
            "radius": "radius",
            "major_radius": "major_radius",
            "minor_radius": "minor_radius",
            "fall_off": "fall_off",
            "noise_density": "noise_density",
            "noise_intensity": "noise_intensity",
            "noise_octaves": "noise_octaves",
            "seed": "seed",
            "strategy": "strategy",
            "layer_format": "layer_format",
            "workers": "workers",
            "name": "save_file_name",
            "volume_name": "volume_name",
            "output": "output_dir",
        }
        for attr, key in mapping.items():
            value = getattr(args, attr, None)
            if value is not None:
                data[key] = value
        if getattr(args, "noise", False):
            data["noise"] = True
        if getattr(args, "save", False):
            data["save_to_disk"] = True
        return cls.from_mapping(data)


def _parse_strategy(value) -> Strategy:
    if isinstance(value, Strategy):
        return value
    try:
        return Strategy(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown strategy '{value}'. Available: {', '.join(s.value for s in Strategy)}"
        ) from None


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _require_positive(label: str, value) -> None:
    if not _is_real(value) or not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{label} must be a positive number, got {value!r}")
