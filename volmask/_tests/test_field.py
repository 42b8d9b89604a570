"""Tests for the density field evaluator."""

from __future__ import annotations

import math

import pytest

from volmask.errors import ConfigurationError
from volmask.field import FieldEvaluator, falloff, signed_distance, voxel_center
from volmask.params import (
    Cylinder,
    NoiseField,
    NoiseSettings,
    ShapeKind,
    ShapeParameters,
    Sphere,
    Torus,
)

POSITIONS = [
    (0.0, 0.0, 0.0),
    (0.3, -0.2, 0.1),
    (0.55, 0.0, 0.0),
    (-0.7, 0.4, 0.6),
    (0.9, 0.9, -0.9),
]


def _logistic(distance: float, fall_off: float) -> float:
    return 1.0 / (1.0 + math.exp(fall_off * distance))


@pytest.mark.parametrize("position", POSITIONS)
def test_sphere_uses_only_the_sphere_formula(position) -> None:
    px, py, pz = position
    evaluator = FieldEvaluator(ShapeParameters(shape=Sphere(radius=0.5), fall_off=10.0))
    expected = _logistic(math.sqrt(px * px + py * py + pz * pz) - 0.5, 10.0)
    assert evaluator.evaluate(position) == pytest.approx(expected, rel=1e-12)


@pytest.mark.parametrize("position", POSITIONS)
def test_cylinder_uses_only_the_cylinder_formula(position) -> None:
    px, _, pz = position
    evaluator = FieldEvaluator(ShapeParameters(shape=Cylinder(radius=0.35), fall_off=12.0))
    expected = _logistic(math.sqrt(px * px + pz * pz) - 0.35, 12.0)
    assert evaluator.evaluate(position) == pytest.approx(expected, rel=1e-12)


@pytest.mark.parametrize("position", POSITIONS)
def test_torus_uses_only_the_torus_formula(position) -> None:
    px, py, pz = position
    evaluator = FieldEvaluator(ShapeParameters(shape=Torus(0.5, 0.2), fall_off=10.0))
    q = math.sqrt(px * px + pz * pz) - 0.5
    expected = _logistic(math.sqrt(q * q + py * py) - 0.2, 10.0)
    assert evaluator.evaluate(position) == pytest.approx(expected, rel=1e-12)


def test_cylinder_is_independent_of_its_axis() -> None:
    evaluator = FieldEvaluator(ShapeParameters(shape=Cylinder()))
    values = {evaluator.evaluate((0.2, y, -0.1)) for y in (-0.9, -0.3, 0.0, 0.4, 0.95)}
    assert len(values) == 1


def test_switching_shape_changes_output_only_through_the_new_formula() -> None:
    position = (0.3, 0.25, 0.0)
    sphere = FieldEvaluator(ShapeParameters(shape=Sphere(0.5))).evaluate(position)
    torus = FieldEvaluator(ShapeParameters(shape=Torus(0.5, 0.2))).evaluate(position)
    # A torus parameter change must not leak into the sphere result and vice versa
    sphere_again = FieldEvaluator(ShapeParameters(shape=Sphere(0.5))).evaluate(position)
    torus_other = FieldEvaluator(ShapeParameters(shape=Torus(0.6, 0.2))).evaluate(position)
    assert sphere == sphere_again
    assert sphere != torus
    assert torus != torus_other


def test_evaluation_is_bit_identical_between_calls() -> None:
    parameters = ShapeParameters(shape=Torus(), fall_off=13.0, noise=NoiseSettings(5.0, 5.0, octaves=3))
    first = FieldEvaluator(parameters)
    second = FieldEvaluator(parameters)
    for position in POSITIONS:
        assert first.evaluate(position) == first.evaluate(position)
        assert first.evaluate(position) == second.evaluate(position)


def test_sphere_density_decreases_with_distance() -> None:
    evaluator = FieldEvaluator(ShapeParameters(shape=Sphere(), fall_off=10.0))
    values = [evaluator.evaluate((r, 0.0, 0.0)) for r in (0.0, 0.2, 0.4, 0.5, 0.6, 0.8, 1.0)]
    assert all(a > b for a, b in zip(values, values[1:]))
    assert values[3] == pytest.approx(0.5)


def test_values_stay_in_unit_range_with_noise() -> None:
    evaluator = FieldEvaluator(ShapeParameters(
        shape=Sphere(), fall_off=10.0, noise=NoiseSettings(density=10.0, intensity=10.0)
    ))
    for i in range(-10, 11):
        value = evaluator.evaluate((i / 10.0, i / 17.0, -i / 13.0))
        assert 0.0 <= value <= 1.0


def test_noise_shape_stands_alone() -> None:
    settings = NoiseSettings(density=5.0, intensity=5.0)
    alone = FieldEvaluator(ShapeParameters(shape=NoiseField(settings), fall_off=10.0))
    other_fall_off = FieldEvaluator(ShapeParameters(shape=NoiseField(settings), fall_off=3.0))
    with_modulation = FieldEvaluator(ShapeParameters(
        shape=NoiseField(settings), noise=NoiseSettings(density=1.0, intensity=10.0)
    ))
    for position in POSITIONS:
        assert alone.evaluate(position) == other_fall_off.evaluate(position)
        assert alone.evaluate(position) == with_modulation.evaluate(position)


def test_noise_with_zero_intensity_is_uniform() -> None:
    evaluator = FieldEvaluator(ShapeParameters(shape=NoiseField(NoiseSettings(density=5.0, intensity=0.0))))
    assert {evaluator.evaluate(p) for p in POSITIONS} == {0.5}


def test_noise_modulation_changes_shape_density() -> None:
    plain = FieldEvaluator(ShapeParameters(shape=Sphere()))
    noisy = FieldEvaluator(ShapeParameters(shape=Sphere(), noise=NoiseSettings(density=5.0, intensity=5.0)))
    assert any(plain.evaluate(p) != noisy.evaluate(p) for p in POSITIONS[1:])


def test_falloff_guards_tiny_and_huge_values() -> None:
    for k in (0.0, 1e-12, -5.0):
        value = falloff(0.3, k)
        assert math.isfinite(value) and 0.0 < value < 1.0
    assert 0.0 < falloff(1e6, 1e6) < 1e-20
    assert falloff(-1e6, 1e6) == pytest.approx(1.0)


def test_signed_distance_of_noise_shape_is_zero() -> None:
    assert signed_distance(0.4, 0.1, 0.2, ShapeKind.NOISE.value, 0.5, 0.2) == 0.0


def test_voxel_centers_are_symmetric_about_the_origin() -> None:
    r = 32
    assert voxel_center(0, r) == pytest.approx(-1.0 + 1.0 / r)
    assert voxel_center(r - 1, r) == pytest.approx(1.0 - 1.0 / r)
    for i in range(r):
        assert voxel_center(i, r) == pytest.approx(-voxel_center(r - 1 - i, r))


def test_evaluate_voxel_matches_normalized_position() -> None:
    evaluator = FieldEvaluator(ShapeParameters())
    expected = evaluator.evaluate((voxel_center(3, 8), voxel_center(5, 8), voxel_center(7, 8)))
    assert evaluator.evaluate_voxel(3, 5, 7, 8) == expected


def test_invalid_parameters_fail_on_construction() -> None:
    with pytest.raises(ConfigurationError):
        FieldEvaluator(ShapeParameters(fall_off=0.0))
    with pytest.raises(ConfigurationError):
        FieldEvaluator(ShapeParameters(shape=None))
