"""Resizing and target-dimension utilities.

Large reductions are done in several passes. A single 10:1 resize with a
bilinear or area filter skips most source pixels and aliases, so the image
is first halved with a box filter until each side is within 2x of its
target, then resampled once to the exact size.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from PIL import Image

from .errors import InvalidDimensions, InvalidTarget
from .io_utils import aspect_ratio, map_resample

logger = logging.getLogger(__name__)


def _check_target(target_width: int, target_height: int) -> None:
    if target_width <= 0 or target_height <= 0:
        raise InvalidTarget(f"Target size must be positive, got {target_width}x{target_height}")


def step_down_plan(
    width: int, height: int, target_width: int, target_height: int
) -> List[Tuple[int, int]]:
    """Intermediate sizes visited before the final resample.

    An axis is halved (rounding down, never below its target) only while it
    is more than twice its target, so with different scale factors per axis
    one side stops shrinking while the other continues.

    Returns
    -------
    list
        ``(width, height)`` of every halving pass, in order. Empty when no
        halving is needed.
    """

    _check_target(target_width, target_height)
    plan: List[Tuple[int, int]] = []
    cur_w, cur_h = width, height
    while cur_w > target_width * 2 or cur_h > target_height * 2:
        if cur_w > target_width * 2:
            cur_w = max(cur_w // 2, target_width)
        if cur_h > target_height * 2:
            cur_h = max(cur_h // 2, target_height)
        plan.append((cur_w, cur_h))
    return plan


def step_down_resize(
    source: Image.Image,
    target_width: int,
    target_height: int,
    resample: str = "lanczos",
) -> Image.Image:
    """Resize with repeated 2:1 box-filter passes, then one final resample.

    Parameters
    ----------
    source
        Image to resize. It is not modified.
    target_width, target_height
        Exact output size.
    resample
        Resampling method name for the final pass.

    Returns
    -------
    Image.Image
        New image of exactly ``(target_width, target_height)``.
    """

    _check_target(target_width, target_height)
    if source.width <= 0 or source.height <= 0:
        raise InvalidDimensions(f"Source dimensions must be positive: {source.size}")

    current = source
    for step in step_down_plan(source.width, source.height, target_width, target_height):
        logger.debug("Step-down pass %dx%d -> %dx%d", current.width, current.height, *step)
        current = current.resize(step, Image.BOX)

    # Upscales and small reductions land here directly
    return current.resize((target_width, target_height), map_resample(resample))


def locked_dimensions(
    source_width: int,
    source_height: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Tuple[int, int]:
    """Fill in the missing side so the source aspect ratio is kept.

    When both sides are given, width wins and height is recomputed.
    """

    if source_width <= 0 or source_height <= 0:
        raise InvalidDimensions(f"Source dimensions must be positive: {source_width}x{source_height}")
    aspect = aspect_ratio(source_width, source_height)
    if width:
        return width, max(1, int(round(width / aspect)))
    if height:
        return max(1, int(round(height * aspect))), height
    raise InvalidTarget("Either width or height is required")


def percentage_dimensions(source_width: int, source_height: int, percent: float) -> Tuple[int, int]:
    """Scale both sides by ``percent`` (100 keeps the size)."""

    if percent <= 0:
        raise InvalidTarget(f"Percentage must be positive, got {percent}")
    return (
        max(1, int(round(source_width * percent / 100))),
        max(1, int(round(source_height * percent / 100))),
    )
