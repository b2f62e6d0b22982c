"""Fit-to-canvas compositing.

The source is scaled uniformly to fit inside a fixed canvas and centered on
top of a blurred copy of itself stretched to fill the canvas, so the
letterbox bands carry the image's own colours instead of flat padding.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from PIL import Image, ImageFilter

from config import CANVAS_PRESETS, CONFIG
from .errors import InvalidDimensions, UnsupportedFormat
from .io_utils import map_resample
from .models import FitResult

logger = logging.getLogger(__name__)


def detect_orientation(width: int, height: int) -> str:
    """Return ``landscape`` for wide images, ``portrait`` otherwise."""

    return "landscape" if width > height else "portrait"


def canvas_dimensions(output_format: str, orientation: str) -> Tuple[int, int]:
    """Resolve a canvas preset to ``(width, height)``.

    Parameters
    ----------
    output_format
        Key of ``config.CANVAS_PRESETS`` (``a4`` or ``whatsapp-dp``).
    orientation
        ``portrait`` or ``landscape``.
    """

    if output_format not in CANVAS_PRESETS:
        choices = ", ".join(CANVAS_PRESETS)
        raise UnsupportedFormat(f"Unknown canvas '{output_format}'. Choose from: {choices}")
    sizes = CANVAS_PRESETS[output_format]
    if orientation not in sizes:
        raise ValueError(f"Unknown orientation: {orientation}")
    return sizes[orientation]


def fit_geometry(
    source_width: int, source_height: int, canvas_width: int, canvas_height: int
) -> Tuple[float, int, int, int, int]:
    """Scale-to-fit placement of a source inside a canvas.

    Returns
    -------
    tuple
        ``(scale, scaled_width, scaled_height, offset_x, offset_y)``. The scaled
        size never exceeds the canvas and offsets center it on whole pixels.
    """

    if min(source_width, source_height, canvas_width, canvas_height) <= 0:
        raise InvalidDimensions(
            f"Dimensions must be positive: source {source_width}x{source_height}, "
            f"canvas {canvas_width}x{canvas_height}"
        )

    scale = min(canvas_width / source_width, canvas_height / source_height)
    # Clamp in case rounding pushes the fitting axis one pixel past the canvas
    scaled_width = max(1, min(canvas_width, int(round(source_width * scale))))
    scaled_height = max(1, min(canvas_height, int(round(source_height * scale))))
    offset_x = int(round((canvas_width - scaled_width) / 2))
    offset_y = int(round((canvas_height - scaled_height) / 2))
    return scale, scaled_width, scaled_height, offset_x, offset_y


def fit_to_canvas(
    source: Image.Image,
    canvas_width: int,
    canvas_height: int,
    blur_radius: Optional[float] = None,
    resample: str = "lanczos",
) -> FitResult:
    """Composite ``source`` centered on a canvas over a blurred background.

    Parameters
    ----------
    source
        Image to place. It is not modified.
    canvas_width, canvas_height
        Output size in pixels.
    blur_radius
        Gaussian blur radius for the background, in canvas pixels. Defaults to
        ``CONFIG.fit.blur_radius``.
    resample
        Resampling method name for both layers.

    Returns
    -------
    FitResult
        The RGB canvas and the placement of the foreground.
    """

    scale, scaled_w, scaled_h, offset_x, offset_y = fit_geometry(
        source.width, source.height, canvas_width, canvas_height
    )
    radius = CONFIG.fit.blur_radius if blur_radius is None else blur_radius
    method = map_resample(resample)

    has_alpha = source.mode in ("RGBA", "LA") or source.has_transparency_data
    layer = source.convert("RGBA" if has_alpha else "RGB")

    background = layer.convert("RGB").resize((canvas_width, canvas_height), method)
    if radius > 0:
        background = background.filter(ImageFilter.GaussianBlur(radius))

    foreground = layer.resize((scaled_w, scaled_h), method)
    if has_alpha:
        background.paste(foreground, (offset_x, offset_y), mask=foreground.getchannel("A"))
    else:
        background.paste(foreground, (offset_x, offset_y))

    logger.debug(
        "Fitted %dx%d onto %dx%d at scale %.4f, offset (%d, %d)",
        source.width,
        source.height,
        canvas_width,
        canvas_height,
        scale,
        offset_x,
        offset_y,
    )
    return FitResult(
        image=background,
        scale=scale,
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        offset_x=offset_x,
        offset_y=offset_y,
    )


def fit_to_preset(
    source: Image.Image,
    output_format: str = "a4",
    orientation: Optional[str] = None,
    resample: str = "lanczos",
) -> FitResult:
    """Fit onto a named canvas, picking the orientation from the source when not given."""

    if source.width <= 0 or source.height <= 0:
        raise InvalidDimensions(f"Source dimensions must be positive: {source.size}")
    orientation = orientation or detect_orientation(source.width, source.height)
    canvas_w, canvas_h = canvas_dimensions(output_format, orientation)
    return fit_to_canvas(source, canvas_w, canvas_h, resample=resample)
