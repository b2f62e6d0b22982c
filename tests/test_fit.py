"""Tests for fit-to-canvas compositing."""

from __future__ import annotations

import itertools

import pytest
from PIL import Image

from src.transform.errors import InvalidDimensions, UnsupportedFormat
from src.transform.fit import (
    canvas_dimensions,
    detect_orientation,
    fit_geometry,
    fit_to_canvas,
    fit_to_preset,
)


def test_geometry_landscape_photo_on_square_canvas():
    scale, w, h, ox, oy = fit_geometry(4000, 3000, 1080, 1080)
    assert scale == pytest.approx(0.27)
    assert (w, h, ox, oy) == (1080, 810, 0, 135)


@pytest.mark.parametrize(
    "src, canvas",
    list(
        itertools.product(
            [(1, 1), (4000, 3000), (3000, 4000), (17, 999), (999, 17), (640, 480), (2481, 3509)],
            [(1080, 1080), (2480, 3508), (3508, 2480), (7, 5), (333, 1)],
        )
    ),
)
def test_geometry_never_overflows_canvas(src, canvas):
    _, w, h, ox, oy = fit_geometry(src[0], src[1], canvas[0], canvas[1])
    assert 0 < w <= canvas[0]
    assert 0 < h <= canvas[1]
    assert 0 <= ox and ox + w <= canvas[0]
    assert 0 <= oy and oy + h <= canvas[1]


@pytest.mark.parametrize(
    "dims",
    [(0, 100, 100, 100), (100, 0, 100, 100), (100, 100, 0, 100), (100, 100, 100, -5)],
)
def test_geometry_rejects_non_positive_dimensions(dims):
    with pytest.raises(InvalidDimensions):
        fit_geometry(*dims)


def test_fit_places_unblurred_foreground(quadrants):
    result = fit_to_canvas(quadrants, 300, 300, blur_radius=4)

    assert result.image.size == (300, 300)
    assert result.image.mode == "RGB"
    assert (result.scaled_width, result.scaled_height) == (300, 150)
    assert (result.offset_x, result.offset_y) == (0, 75)
    # Quadrant centres survive scaling untouched
    assert result.image.getpixel((75, 75 + 37)) == (255, 0, 0)
    assert result.image.getpixel((225, 75 + 112)) == (255, 255, 0)


def test_fit_background_matches_solid_source(solid_red):
    result = fit_to_canvas(solid_red, 200, 400, blur_radius=3)

    assert result.offset_y > 0
    # The letterbox band is the blurred source, not flat padding
    assert result.image.getpixel((100, 2)) == (255, 0, 0)
    assert result.image.getextrema() == ((255, 255), (0, 0), (0, 0))


def test_fit_does_not_modify_source(quadrants):
    before = quadrants.tobytes()
    fit_to_canvas(quadrants, 120, 90, blur_radius=2)
    assert quadrants.tobytes() == before
    assert quadrants.size == (200, 100)


def test_fit_alpha_source_composites_over_background():
    src = Image.new("RGBA", (100, 100), (0, 0, 255, 255))
    result = fit_to_canvas(src, 200, 100, blur_radius=2)

    assert result.image.mode == "RGB"
    assert result.image.getpixel((100, 50)) == (0, 0, 255)


def test_fit_is_deterministic(gradient):
    first = fit_to_canvas(gradient, 150, 150, blur_radius=5)
    second = fit_to_canvas(gradient, 150, 150, blur_radius=5)
    assert first.image.tobytes() == second.image.tobytes()
    assert (first.offset_x, first.offset_y) == (second.offset_x, second.offset_y)


def test_orientation_and_presets():
    assert detect_orientation(4000, 3000) == "landscape"
    assert detect_orientation(3000, 4000) == "portrait"
    assert detect_orientation(500, 500) == "portrait"
    assert canvas_dimensions("a4", "portrait") == (2480, 3508)
    assert canvas_dimensions("a4", "landscape") == (3508, 2480)
    assert canvas_dimensions("whatsapp-dp", "landscape") == (1080, 1080)
    with pytest.raises(UnsupportedFormat):
        canvas_dimensions("letter", "portrait")


def test_fit_to_square_preset(gradient):
    result = fit_to_preset(gradient, "whatsapp-dp")
    assert result.image.size == (1080, 1080)
    assert (result.scaled_width, result.scaled_height) == (1080, 810)
    assert result.offset_y == 135
