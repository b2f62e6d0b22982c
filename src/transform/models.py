"""Data types shared by the transform components.

Bitmaps are plain Pillow images and are never modified in place. The
selection rectangle keeps sub-pixel floats while a crop is being edited and
is rounded only when pixels are extracted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

Bitmap = Image.Image


@dataclass(frozen=True)
class Rect:
    """Crop rectangle in source-image coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def box(self) -> Tuple[int, int, int, int]:
        """Integer ``(left, top, right, bottom)`` box for ``Image.crop``.

        Width and height are rounded independently of the origin so the
        extracted size always equals ``round(width) x round(height)``.
        """

        left = int(round(self.x))
        top = int(round(self.y))
        return left, top, left + int(round(self.width)), top + int(round(self.height))


@dataclass(frozen=True)
class FitResult:
    """Composited canvas plus the geometry used to place the foreground."""

    image: Bitmap
    scale: float
    scaled_width: int
    scaled_height: int
    offset_x: int
    offset_y: int


@dataclass(frozen=True)
class EncodedResult:
    """Encoded image bytes and the settings that produced them."""

    data: bytes
    fmt: str
    quality: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self.data)
