"""Shared fixtures: small synthetic images built in memory."""

from __future__ import annotations

import pytest
from PIL import Image, ImageDraw


@pytest.fixture
def solid_red():
    return Image.new("RGB", (400, 300), (255, 0, 0))


@pytest.fixture
def gradient():
    """RGB image with content that compresses differently at each quality."""

    img = Image.new("RGB", (320, 240))
    px = img.load()
    for y in range(img.height):
        for x in range(img.width):
            px[x, y] = ((x * 7 + y * 3) % 256, (x * y) % 256, (x ^ y) % 256)
    return img


@pytest.fixture
def quadrants():
    """200x100 image with a distinct colour per quadrant, for rotation checks."""

    img = Image.new("RGB", (200, 100))
    draw = ImageDraw.Draw(img)
    draw.rectangle((0, 0, 99, 49), fill=(255, 0, 0))
    draw.rectangle((100, 0, 199, 49), fill=(0, 255, 0))
    draw.rectangle((0, 50, 99, 99), fill=(0, 0, 255))
    draw.rectangle((100, 50, 199, 99), fill=(255, 255, 0))
    return img
