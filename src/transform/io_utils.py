"""I/O utilities and helpers for image processing.

This module is the boundary between files or raw bytes and the in-memory
bitmaps the engine works on. It decodes inputs (HEIC/HEIF included) into
upright Pillow images, encodes bitmaps to JPEG, PNG or WebP bytes, keeps
EXIF metadata when asked, and maps resampling method names to Pillow
constants.
"""

from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import Callable, Generator, Optional, Tuple

import piexif
from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from config import (
    IMAGE_EXTENSIONS,
    MAX_FILE_SIZE,
    MEDIA_TYPES,
    OUTPUT_FORMATS,
    SUPPORTED_MEDIA_TYPES,
)
from .errors import DecodeFailed, EncodingFailed, InputTooLarge, UnsupportedFormat
from .models import EncodedResult

logger = logging.getLogger(__name__)

register_heif_opener()

# Pillow format names the decoder accepts once the bytes are sniffed
_DECODABLE_FORMATS = {"JPEG", "PNG", "WEBP", "HEIF"}

_PIL_FORMAT = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}

_FORMAT_BY_EXT = {".jpg": "jpeg", ".jpeg": "jpeg", ".png": "png", ".webp": "webp"}

# Defaults when the caller does not pass a quality
_DEFAULT_QUALITY = {"jpeg": 0.95, "webp": 0.95}

# Canvas colour used under transparent pixels when the output has no alpha
BACKGROUND_COLOR = (255, 255, 255)


def iter_image_paths(input_path: Path) -> Generator[Path, None, None]:
    """Yield image file paths from a file or directory.

    Parameters
    ----------
    input_path
        A path to a single image or a directory containing images.

    Yields
    ------
    Path
        Individual image file paths.
    """

    path = Path(input_path)
    if path.is_file():
        if path.suffix.lower() in IMAGE_EXTENSIONS:
            yield path
        return
    if path.is_dir():
        for p in sorted(path.rglob("*")):
            if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS:
                yield p


def ensure_dir(path: Path) -> None:
    """Create a directory if it does not exist."""

    Path(path).mkdir(parents=True, exist_ok=True)


def media_type_for(path: Path) -> Optional[str]:
    """Guess a media type from a file extension, or None when unknown."""

    return MEDIA_TYPES.get(Path(path).suffix.lower())


def normalize_format(fmt: str) -> str:
    """Return the canonical output format name for ``fmt``.

    Raises
    ------
    UnsupportedFormat
        If the format is not one of jpeg, png, webp.
    """

    name = (fmt or "").lower().lstrip(".")
    if name == "jpg":
        name = "jpeg"
    if name not in OUTPUT_FORMATS:
        raise UnsupportedFormat(f"Unsupported output format: {fmt!r}")
    return name


def format_for_path(path: Path) -> str:
    """Output format implied by a destination file extension."""

    ext = Path(path).suffix.lower()
    if ext not in _FORMAT_BY_EXT:
        raise UnsupportedFormat(f"Cannot infer output format from extension {ext!r}")
    return _FORMAT_BY_EXT[ext]


def _decode(data: bytes, media_type: Optional[str]) -> Tuple[Image.Image, Optional[bytes]]:
    if len(data) > MAX_FILE_SIZE:
        raise InputTooLarge(
            f"Input is {len(data)} bytes; maximum is {MAX_FILE_SIZE // (1024 * 1024)} MB"
        )
    if media_type is not None and media_type.lower() not in SUPPORTED_MEDIA_TYPES:
        raise UnsupportedFormat(f"Unsupported media type: {media_type}")

    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format not in _DECODABLE_FORMATS:
                raise UnsupportedFormat(f"Unsupported image format: {img.format}")
            img.load()
            exif_bytes = img.info.get("exif") or None
            # exif_transpose always hands back a new image, so closing the
            # source file here is safe
            upright = ImageOps.exif_transpose(img)
    except UnidentifiedImageError as exc:
        raise DecodeFailed("Input is not a recognizable image") from exc
    except (OSError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeFailed(f"Failed to decode image: {exc}") from exc

    return upright, exif_bytes


def decode_image(data: bytes, media_type: Optional[str] = None) -> Image.Image:
    """Decode raw file bytes into an upright bitmap.

    Parameters
    ----------
    data
        Encoded file contents.
    media_type
        Declared media type, e.g. ``image/heic``. When None the format is
        sniffed from the bytes.

    Returns
    -------
    Image.Image
        Decoded image with EXIF orientation applied.

    Raises
    ------
    UnsupportedFormat
        If the declared or sniffed format is not accepted.
    DecodeFailed
        If the bytes are corrupt or too large.
    """

    image, _ = _decode(data, media_type)
    return image


def load_image_with_exif(image_path: Path) -> Tuple[Image.Image, Optional[bytes]]:
    """Load an image and return it with raw EXIF bytes if available.

    Parameters
    ----------
    image_path
        Path to the image file.

    Returns
    -------
    tuple
        A tuple of (PIL.Image, exif_bytes or None).
    """

    path = Path(image_path)
    if path.stat().st_size > MAX_FILE_SIZE:
        raise InputTooLarge(f"{path.name} exceeds {MAX_FILE_SIZE // (1024 * 1024)} MB")
    return _decode(path.read_bytes(), media_type_for(path))


def _pillow_quality(quality: float) -> int:
    if not 0 < quality <= 1:
        raise EncodingFailed(f"Quality {quality} is outside (0, 1]")
    return max(1, min(100, int(round(quality * 100))))


def _flatten(image: Image.Image) -> Image.Image:
    """Drop alpha onto the background colour; JPEG has no transparency."""

    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, BACKGROUND_COLOR)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    return image.convert("RGB")


def _normalized_exif(exif_bytes: Optional[bytes]) -> Optional[bytes]:
    """Reset the orientation tag of EXIF bytes taken from a decoded image.

    Decoded pixels are already upright, so keeping the original tag would
    make viewers rotate them twice.
    """

    if not exif_bytes:
        return None
    try:
        exif_dict = piexif.load(exif_bytes)
        exif_dict["0th"][piexif.ImageIFD.Orientation] = 1
        # Thumbnails are not regenerated, drop them rather than ship a stale one
        exif_dict["thumbnail"] = None
        exif_dict["1st"] = {}
        return piexif.dump(exif_dict)
    except (ValueError, KeyError, TypeError, struct.error) as exc:
        logger.warning("Dropping unreadable EXIF metadata: %s", exc)
        return None


def encode_image(
    image: Image.Image,
    fmt: str,
    quality: Optional[float] = None,
    exif: Optional[bytes] = None,
) -> EncodedResult:
    """Encode a bitmap to bytes.

    Parameters
    ----------
    image
        Bitmap to encode.
    fmt
        One of ``jpeg``, ``png``, ``webp`` (``jpg`` is accepted).
    quality
        Lossy quality in ``(0, 1]``. Ignored for PNG.
    exif
        EXIF bytes to embed, if any.

    Returns
    -------
    EncodedResult
        Encoded bytes with the format and quality actually used.

    Raises
    ------
    EncodingFailed
        If Pillow cannot write the image.
    """

    fmt = normalize_format(fmt)
    params = {}
    if exif:
        params["exif"] = exif

    used_quality: Optional[float] = None
    if fmt == "jpeg":
        used_quality = _DEFAULT_QUALITY["jpeg"] if quality is None else quality
        image = _flatten(image)
        params.update(
            {"quality": _pillow_quality(used_quality), "subsampling": 0, "optimize": True}
        )
    elif fmt == "webp":
        used_quality = _DEFAULT_QUALITY["webp"] if quality is None else quality
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA" if image.has_transparency_data else "RGB")
        params.update({"quality": _pillow_quality(used_quality)})
    else:
        params.update({"optimize": True})

    buf = io.BytesIO()
    try:
        image.save(buf, format=_PIL_FORMAT[fmt], **params)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodingFailed(f"Failed to encode {fmt}: {exc}") from exc
    return EncodedResult(data=buf.getvalue(), fmt=fmt, quality=used_quality)


def make_encoder(fmt: str, exif: Optional[bytes] = None) -> Callable[[Image.Image, float], EncodedResult]:
    """Bind ``fmt`` into an ``encode(image, quality)`` callback."""

    fmt = normalize_format(fmt)

    def _encode(image: Image.Image, quality: float) -> EncodedResult:
        return encode_image(image, fmt, quality=quality, exif=exif)

    return _encode


def save_image(
    image: Image.Image,
    dest_path: Path,
    keep_metadata: bool = True,
    original_exif: Optional[bytes] = None,
    format_override: Optional[str] = None,
    quality: Optional[float] = None,
) -> EncodedResult:
    """Save an image to disk, optionally preserving EXIF metadata.

    Parameters
    ----------
    image
        PIL image to save.
    dest_path
        Destination path where the image will be written.
    keep_metadata
        Whether to attempt preserving EXIF metadata.
    original_exif
        Original EXIF bytes captured when the image was loaded.
    format_override
        Output format; inferred from the extension when None.
    quality
        Lossy quality in ``(0, 1]``.
    """

    dest_path = Path(dest_path)
    fmt = normalize_format(format_override) if format_override else format_for_path(dest_path)
    exif = _normalized_exif(original_exif) if keep_metadata else None

    result = encode_image(image, fmt, quality=quality, exif=exif)
    ensure_dir(dest_path.parent)
    dest_path.write_bytes(result.data)
    return result


def generate_filename(original_name: str, fmt: str, suffix: str) -> str:
    """Build an output name such as ``photo-a4.png`` from an input name."""

    stem = Path(original_name).stem
    ext = "jpg" if normalize_format(fmt) == "jpeg" else normalize_format(fmt)
    return f"{stem}-{suffix}.{ext}"


def map_resample(name: str) -> int:
    """Map a resample name to a Pillow constant.

    Parameters
    ----------
    name
        One of 'nearest', 'bilinear', 'bicubic', 'lanczos'.

    Returns
    -------
    int
        Pillow resampling constant.
    """

    name_lower = (name or "").lower()
    if name_lower == "nearest":
        return Image.NEAREST
    if name_lower == "bilinear":
        return Image.BILINEAR
    if name_lower == "bicubic":
        return Image.BICUBIC
    return Image.LANCZOS


def aspect_ratio(width: int, height: int) -> float:
    """Compute aspect ratio as width / height."""

    return float(width) / float(height)
