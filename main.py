"""CLI for the image transform toolkit.

Commands:
  - fit: Place images on an A4 or square canvas over a blurred background
  - crop: Crop a region, optionally after rotating, with aspect presets
  - resize: High-quality step-down resize by size, percentage or preset
  - compress: Re-encode at a fixed quality or under a target file size
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from config import CANVAS_PRESETS, CONFIG
from src.transform.compress import compress_at_quality, compress_to_target
from src.transform.crop import extract, rect_for_ratio, start_session
from src.transform.errors import TransformError
from src.transform.fit import fit_to_preset
from src.transform.io_utils import (
    generate_filename,
    iter_image_paths,
    load_image_with_exif,
    make_encoder,
    save_image,
)
from src.transform.log import setup_logging
from src.transform.models import Rect
from src.transform.resample import (
    locked_dimensions,
    percentage_dimensions,
    step_down_resize,
)

logger = logging.getLogger("src.transform.cli")

RESAMPLE_CHOICES = ["nearest", "bilinear", "bicubic", "lanczos"]


def _resolve_ratio(label: str) -> Optional[float]:
    if label not in CONFIG.aspect_presets:
        choices = ", ".join(CONFIG.aspect_presets.keys())
        raise click.BadParameter(f"Unknown ratio '{label}'. Choose from: {choices}")
    return CONFIG.aspect_presets[label]


def _resolve_preset(name: str) -> tuple[int, int]:
    if name not in CONFIG.resize_presets:
        choices = ", ".join(CONFIG.resize_presets.keys())
        raise click.BadParameter(f"Unknown preset '{name}'. Choose from: {choices}")
    return CONFIG.resize_presets[name]


def _output_path(output_dir: Path, src: Path, fmt: str, suffix: str, overwrite: bool) -> Optional[Path]:
    dest = output_dir / generate_filename(src.name, fmt, suffix)
    if dest.exists() and not overwrite:
        logger.info("Skipping %s, %s exists", src.name, dest.name)
        return None
    return dest


@click.group()
@click.option("--verbose/--quiet", default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Image transform toolkit."""

    setup_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command(name="fit")
@click.option(
    "--input-path",
    type=click.Path(path_type=Path, exists=True),
    required=True,
    help="Image file or directory",
)
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path),
    default=CONFIG.paths.output_dir,
    help="Output directory",
)
@click.option(
    "--canvas",
    type=click.Choice(sorted(CANVAS_PRESETS)),
    default="a4",
    help="Output canvas",
)
@click.option(
    "--orientation",
    type=click.Choice(["auto", "portrait", "landscape"]),
    default="auto",
    help="A4 orientation; auto follows the image",
)
@click.option("--export", "export_fmt", type=click.Choice(["png", "jpeg"]), default="png")
@click.option("--overwrite/--no-overwrite", default=CONFIG.behavior.overwrite)
@click.option(
    "--resample",
    type=click.Choice(RESAMPLE_CHOICES, case_sensitive=False),
    default=CONFIG.behavior.resample,
)
def cmd_fit(
    input_path: Path,
    output_dir: Path,
    canvas: str,
    orientation: str,
    export_fmt: str,
    overwrite: bool,
    resample: str,
) -> None:
    """Fit images onto a fixed canvas without cropping."""

    output_dir.mkdir(parents=True, exist_ok=True)
    for src in iter_image_paths(input_path):
        dest = _output_path(output_dir, src, export_fmt, canvas, overwrite)
        if dest is None:
            continue
        try:
            img, _ = load_image_with_exif(src)
            result = fit_to_preset(
                img,
                output_format=canvas,
                orientation=None if orientation == "auto" else orientation,
                resample=resample,
            )
            save_image(
                result.image,
                dest,
                keep_metadata=False,
                format_override=export_fmt,
                quality=CONFIG.fit.export_quality,
            )
        except TransformError as exc:
            raise click.ClickException(f"{src.name}: {exc}") from exc
        logger.info(
            "%s -> %s (scale %.3f, %dx%d at %d,%d)",
            src.name,
            dest.name,
            result.scale,
            result.scaled_width,
            result.scaled_height,
            result.offset_x,
            result.offset_y,
        )


@cli.command(name="crop")
@click.option(
    "--input-path", type=click.Path(path_type=Path, exists=True), required=True
)
@click.option("--output-dir", type=click.Path(path_type=Path), default=CONFIG.paths.output_dir)
@click.option("--ratio", type=str, default="free", help="Aspect preset, e.g. free, 1:1, 16:9")
@click.option("--x", "x", type=float, default=None, help="Left edge in source pixels, before rotation")
@click.option("--y", "y", type=float, default=None, help="Top edge in source pixels, before rotation")
@click.option("--width", type=float, default=None, help="Selection width in pixels")
@click.option("--height", type=float, default=None, help="Selection height in pixels")
@click.option(
    "--rotate",
    "rotation",
    type=int,
    default=0,
    help="Clockwise rotation in degrees applied before cropping",
)
@click.option("--export", "export_fmt", type=click.Choice(["png", "jpeg"]), default="png")
@click.option("--overwrite/--no-overwrite", default=CONFIG.behavior.overwrite)
@click.option("--keep-metadata/--no-keep-metadata", default=CONFIG.behavior.keep_metadata)
def cmd_crop(
    input_path: Path,
    output_dir: Path,
    ratio: str,
    x: Optional[float],
    y: Optional[float],
    width: Optional[float],
    height: Optional[float],
    rotation: int,
    export_fmt: str,
    overwrite: bool,
    keep_metadata: bool,
) -> None:
    """Crop images to a selection; without one, the centered default is used."""

    aspect = _resolve_ratio(ratio)
    explicit = [v is not None for v in (x, y, width, height)]
    if any(explicit) and not all(explicit):
        raise click.UsageError("--x, --y, --width and --height must be given together")
    output_dir.mkdir(parents=True, exist_ok=True)

    for src in iter_image_paths(input_path):
        dest = _output_path(output_dir, src, export_fmt, "cropped", overwrite)
        if dest is None:
            continue
        try:
            img, exif = load_image_with_exif(src)
            # Selection is in unrotated source pixels; rotation applies at extraction
            session = start_session(img.width, img.height, ratio=aspect)
            rect = session.rect
            if all(explicit):
                rect = rect_for_ratio(
                    Rect(x, y, width, height), aspect, img.width, img.height, session.min_size
                )
            result = extract(img, rect, rotation)
            save_image(
                result,
                dest,
                keep_metadata=keep_metadata,
                original_exif=exif,
                format_override=export_fmt,
                quality=CONFIG.crop.export_quality,
            )
        except TransformError as exc:
            raise click.ClickException(f"{src.name}: {exc}") from exc
        logger.info("%s -> %s (%dx%d)", src.name, dest.name, result.width, result.height)


@cli.command(name="resize")
@click.option(
    "--input-path", type=click.Path(path_type=Path, exists=True), required=True
)
@click.option("--output-dir", type=click.Path(path_type=Path), default=CONFIG.paths.output_dir)
@click.option("--width", type=int, default=None)
@click.option("--height", type=int, default=None)
@click.option("--percentage", type=float, default=None, help="Scale both sides by this percent")
@click.option("--preset", type=str, default=None, help="Named size, e.g. instagram-post")
@click.option(
    "--lock-aspect/--no-lock-aspect",
    default=True,
    help="Derive the missing side from the image aspect",
)
@click.option("--overwrite/--no-overwrite", default=CONFIG.behavior.overwrite)
@click.option("--keep-metadata/--no-keep-metadata", default=CONFIG.behavior.keep_metadata)
@click.option(
    "--resample",
    type=click.Choice(RESAMPLE_CHOICES, case_sensitive=False),
    default=CONFIG.behavior.resample,
)
def cmd_resize(
    input_path: Path,
    output_dir: Path,
    width: Optional[int],
    height: Optional[int],
    percentage: Optional[float],
    preset: Optional[str],
    lock_aspect: bool,
    overwrite: bool,
    keep_metadata: bool,
    resample: str,
) -> None:
    """Resize images with multi-pass step-down resampling."""

    modes = [width is not None or height is not None, percentage is not None, preset is not None]
    if sum(modes) != 1:
        raise click.UsageError("Use exactly one of --width/--height, --percentage or --preset")
    if not lock_aspect and (width is None or height is None) and modes[0]:
        raise click.UsageError("--no-lock-aspect needs both --width and --height")
    output_dir.mkdir(parents=True, exist_ok=True)

    for src in iter_image_paths(input_path):
        try:
            img, exif = load_image_with_exif(src)
            if preset is not None:
                target = _resolve_preset(preset)
            elif percentage is not None:
                target = percentage_dimensions(img.width, img.height, percentage)
            elif lock_aspect:
                target = locked_dimensions(img.width, img.height, width, height)
            else:
                target = (width, height)

            fmt = "png" if src.suffix.lower() == ".png" else "jpeg"
            dest = _output_path(output_dir, src, fmt, f"{target[0]}x{target[1]}", overwrite)
            if dest is None:
                continue
            result = step_down_resize(img, target[0], target[1], resample=resample)
            save_image(result, dest, keep_metadata=keep_metadata, original_exif=exif)
        except TransformError as exc:
            raise click.ClickException(f"{src.name}: {exc}") from exc
        logger.info("%s -> %s", src.name, dest.name)


@cli.command(name="compress")
@click.option(
    "--input-path", type=click.Path(path_type=Path, exists=True), required=True
)
@click.option("--output-dir", type=click.Path(path_type=Path), default=CONFIG.paths.output_dir)
@click.option(
    "--format",
    "out_fmt",
    type=click.Choice(["original", "jpeg", "webp", "png"]),
    default="original",
    help="Output format; original keeps JPEG/WebP and turns other inputs into JPEG",
)
@click.option("--quality", type=click.IntRange(1, 100), default=None, help="Fixed quality (1-100)")
@click.option(
    "--target-kb",
    type=click.IntRange(min=1),
    default=None,
    help="Largest output size in kilobytes",
)
@click.option("--overwrite/--no-overwrite", default=CONFIG.behavior.overwrite)
def cmd_compress(
    input_path: Path,
    output_dir: Path,
    out_fmt: str,
    quality: Optional[int],
    target_kb: Optional[int],
    overwrite: bool,
) -> None:
    """Compress images by quality or to a target file size."""

    if quality is not None and target_kb is not None:
        raise click.UsageError("Use either --quality or --target-kb, not both")
    if quality is None and target_kb is None:
        target_kb = CONFIG.compression.default_target_kb
    output_dir.mkdir(parents=True, exist_ok=True)

    for src in iter_image_paths(input_path):
        fmt = out_fmt
        if fmt == "original":
            fmt = "webp" if src.suffix.lower() == ".webp" else "jpeg"
        dest = _output_path(output_dir, src, fmt, "compressed", overwrite)
        if dest is None:
            continue
        try:
            img, _ = load_image_with_exif(src)
            encode = make_encoder(fmt)
            if quality is not None:
                result = compress_at_quality(img, quality / 100, encode)
            else:
                result = compress_to_target(img, target_kb * 1024, encode, fmt=fmt)
        except TransformError as exc:
            raise click.ClickException(f"{src.name}: {exc}") from exc
        dest.write_bytes(result.data)
        original_size = src.stat().st_size
        logger.info(
            "%s -> %s: %d -> %d bytes (%.0f%% smaller)",
            src.name,
            dest.name,
            original_size,
            result.size,
            100 * (1 - result.size / original_size) if original_size else 0.0,
        )


if __name__ == "__main__":
    cli()
