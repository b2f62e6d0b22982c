"""Tests for step-down resizing and target dimension helpers."""

from __future__ import annotations

import pytest
from PIL import Image

from src.transform.errors import InvalidTarget
from src.transform.resample import (
    locked_dimensions,
    percentage_dimensions,
    step_down_plan,
    step_down_resize,
)


def test_solid_colour_survives_large_reduction():
    src = Image.new("RGB", (4096, 4096), (255, 0, 0))
    out = step_down_resize(src, 300, 200)
    assert out.size == (300, 200)
    assert out.getextrema() == ((255, 255), (0, 0), (0, 0))


def test_plan_for_square_source():
    assert step_down_plan(4096, 4096, 300, 200) == [
        (2048, 2048),
        (1024, 1024),
        (512, 512),
        (512, 256),
    ]


def test_plan_axes_stop_independently():
    # Height is already within 2x of its target while width still needs halving
    assert step_down_plan(4000, 500, 400, 400) == [(2000, 500), (1000, 500), (500, 500)]


def test_plan_never_upscales_an_axis_during_halving():
    # Width grows overall, but only the final pass may enlarge it
    plan = step_down_plan(320, 240, 639, 1)
    assert all(w == 320 for w, _ in plan)
    assert plan[-1] == (320, 1)


def test_plan_empty_when_within_factor_two():
    assert step_down_plan(800, 600, 400, 300) == []
    assert step_down_plan(100, 100, 400, 400) == []


@pytest.mark.parametrize(
    "size, target",
    [((5000, 37), (100, 30)), ((37, 5000), (30, 100)), ((1023, 767), (101, 99)), ((999, 999), (1, 1))],
)
def test_plan_ends_within_factor_two(size, target):
    plan = step_down_plan(*size, *target)
    last = plan[-1] if plan else size
    assert target[0] <= last[0] <= max(size[0], target[0] * 2)
    assert target[1] <= last[1] <= max(size[1], target[1] * 2)


@pytest.mark.parametrize("target", [(300, 200), (1, 1), (639, 1), (1000, 1500), (640, 480)])
def test_output_size_is_exact(gradient, target):
    assert step_down_resize(gradient, *target).size == target


def test_upscale_is_single_pass(gradient):
    assert step_down_plan(gradient.width, gradient.height, 960, 720) == []
    assert step_down_resize(gradient, 960, 720, resample="bicubic").size == (960, 720)


@pytest.mark.parametrize("target", [(0, 10), (10, 0), (-1, 5)])
def test_invalid_target(gradient, target):
    with pytest.raises(InvalidTarget):
        step_down_resize(gradient, *target)


def test_resize_does_not_modify_source(gradient):
    before = gradient.tobytes()
    step_down_resize(gradient, 40, 30)
    assert gradient.size == (320, 240)
    assert gradient.tobytes() == before


def test_resize_is_deterministic(gradient):
    assert step_down_resize(gradient, 70, 50).tobytes() == step_down_resize(gradient, 70, 50).tobytes()


def test_locked_dimensions():
    assert locked_dimensions(4000, 3000, width=1200) == (1200, 900)
    assert locked_dimensions(4000, 3000, height=600) == (800, 600)
    assert locked_dimensions(4000, 3000, width=1200, height=5) == (1200, 900)
    with pytest.raises(InvalidTarget):
        locked_dimensions(4000, 3000)


def test_percentage_dimensions():
    assert percentage_dimensions(4000, 3000, 50) == (2000, 1500)
    assert percentage_dimensions(3, 3, 1) == (1, 1)
    with pytest.raises(InvalidTarget):
        percentage_dimensions(100, 100, 0)
