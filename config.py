"""Global configuration for the image transform toolkit.

This module centralizes defaults and user-tunable settings for:
- accepted input files and media types
- fit-to-canvas presets and blur strength
- crop editor geometry (minimum size, initial coverage, rotation step)
- resize presets and resampling behavior
- target-size compression search bounds

All values can be overridden via CLI flags or direct imports.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple


# Supported file extensions for images
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"}

# Media types accepted by the decoder, keyed by extension for sniffing
MEDIA_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}
SUPPORTED_MEDIA_TYPES = frozenset(MEDIA_TYPES.values())

# Output encodings understood by the encoder
OUTPUT_FORMATS = ("jpeg", "png", "webp")

# Inputs above this size are rejected before decoding (20 MB)
MAX_FILE_SIZE = 20 * 1024 * 1024


# Fixed output canvases (width, height). A4 is 210x297 mm at 300 DPI.
CANVAS_PRESETS: Dict[str, Dict[str, Tuple[int, int]]] = {
    "a4": {
        "portrait": (2480, 3508),
        "landscape": (3508, 2480),
    },
    # Square profile picture; 500x500 is the minimum, 1080 keeps it sharp
    "whatsapp-dp": {
        "portrait": (1080, 1080),
        "landscape": (1080, 1080),
    },
}


# Crop aspect presets as width / height. None means free-form.
ASPECT_PRESETS: Dict[str, Optional[float]] = {
    "free": None,
    "1:1": 1.0,
    "4:3": 4 / 3,
    "3:4": 3 / 4,
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "a4-portrait": 1 / math.sqrt(2),
    "a4-landscape": math.sqrt(2),
}


# Named resize targets (width, height)
RESIZE_PRESETS: Dict[str, Tuple[int, int]] = {
    # Social
    "instagram-post": (1080, 1080),
    "instagram-story": (1080, 1920),
    "twitter-post": (1200, 675),
    "facebook-cover": (851, 315),
    "youtube-thumbnail": (1280, 720),
    "linkedin-banner": (1584, 396),
    # Print
    "photo-4x6": (1200, 1800),
    "photo-5x7": (1500, 2100),
    "photo-8x10": (2400, 3000),
    "a4": (2480, 3508),
}


RESAMPLE_METHOD = "lanczos"  # one of {nearest, bilinear, bicubic, lanczos}


@dataclass
class Paths:
    """I/O locations.

    Attributes
    ----------
    output_dir
        Directory where processed images will be written.
    """

    output_dir: Path = Path("./data/output")


@dataclass
class FitSettings:
    """Fit-to-canvas compositing defaults.

    Attributes
    ----------
    blur_radius
        Gaussian blur radius for the background layer, in canvas pixels.
    export_quality
        Quality used when a fitted canvas is written as JPEG.
    """

    blur_radius: float = 50.0
    export_quality: float = 0.95


@dataclass
class CropSettings:
    """Crop editor geometry.

    Attributes
    ----------
    min_size
        Smallest allowed crop edge in source pixels.
    initial_coverage
        Fraction of each source dimension covered by a new selection.
    rotation_step
        Degrees added or removed by one rotate command.
    handle_tolerance
        Distance in display pixels within which a pointer grabs a corner. It
        is divided by the session view scale before comparing source points.
    preview_max_width, preview_max_height
        Preview box used to derive the display-to-source scale.
    export_quality
        Quality used when a crop is written as JPEG.
    """

    min_size: float = 50.0
    initial_coverage: float = 0.8
    rotation_step: int = 90
    handle_tolerance: float = 10.0
    preview_max_width: int = 550
    preview_max_height: int = 380
    export_quality: float = 0.92


@dataclass
class CompressionSettings:
    """Target-size compression search bounds.

    Attributes
    ----------
    min_quality, max_quality
        Quality range searched, on the encoder's 0-1 scale.
    iterations
        Number of binary-search probes. 8 probes resolve the range to 1/256.
    default_target_kb
        Byte budget used when none is given, in kilobytes.
    """

    min_quality: float = 0.1
    max_quality: float = 0.95
    iterations: int = 8
    default_target_kb: int = 500


@dataclass
class Behavior:
    """Processing behavior toggles.

    Attributes
    ----------
    overwrite
        Whether to overwrite files in the output directory.
    keep_metadata
        If True, attempt to preserve EXIF metadata where possible.
    resample
        Resampling method for resizing operations. One of: 'nearest', 'bilinear',
        'bicubic', 'lanczos'.
    """

    overwrite: bool = False
    keep_metadata: bool = True
    resample: str = RESAMPLE_METHOD


@dataclass
class ProjectConfig:
    """Top-level configuration container."""

    paths: Paths = field(default_factory=Paths)
    fit: FitSettings = field(default_factory=FitSettings)
    crop: CropSettings = field(default_factory=CropSettings)
    compression: CompressionSettings = field(default_factory=CompressionSettings)
    behavior: Behavior = field(default_factory=Behavior)
    aspect_presets: Dict[str, Optional[float]] = field(
        default_factory=lambda: dict(ASPECT_PRESETS)
    )
    resize_presets: Dict[str, Tuple[int, int]] = field(
        default_factory=lambda: dict(RESIZE_PRESETS)
    )


# Default singleton-style config instance used by CLI unless overridden
CONFIG = ProjectConfig()
