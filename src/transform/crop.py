"""Crop selection editing and extraction.

A :class:`CropSession` holds one selection rectangle over a source image
together with the current pointer interaction. Pointer events are pure
transitions: each returns a new session and leaves the old one untouched,
so a sequence of gestures can be replayed or tested step by step.

Coordinates are unrotated source-image pixels as floats, whatever the
session rotation. Presentation code converts pointer positions from its
display space with :func:`to_source` before handing them over. The
rectangle is mapped into the rotated frame and rounded only in
:func:`extract`.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from PIL import Image

from config import CONFIG
from .errors import DegenerateRegion, InvalidDimensions
from .models import Rect

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class Mode(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class Handle(enum.Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"

    @property
    def east(self) -> bool:
        return self in (Handle.NE, Handle.SE)

    @property
    def south(self) -> bool:
        return self in (Handle.SW, Handle.SE)


class Hit(enum.Enum):
    """Part of the selection under a pointer."""

    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"
    BODY = "body"

    @property
    def handle(self) -> Optional[Handle]:
        """The corner handle for corner hits, None for the body."""
        if self is Hit.BODY:
            return None
        return Handle(self.value)


@dataclass(frozen=True)
class CropSession:
    """Selection state for one loaded image.

    Attributes
    ----------
    bound_width, bound_height
        Unrotated source image size; the rectangle never leaves
        ``[0, w] x [0, h]``.
    rect
        Current selection in unrotated source coordinates.
    ratio
        Fixed width / height ratio, or None for free-form.
    mode, handle
        Active interaction; ``handle`` is set only while resizing.
    anchor_point, anchor_rect
        Pointer position and rectangle captured at pointer-down. Moves are
        measured from these so rounding never accumulates.
    rotation
        Rotation in degrees, normalized to ``[0, 360)``.
    min_size
        Smallest allowed edge length.
    view_scale
        Display pixels per source pixel in the preview, used to turn the
        handle tolerance into source pixels.
    """

    bound_width: float
    bound_height: float
    rect: Rect
    ratio: Optional[float] = None
    mode: Mode = Mode.IDLE
    handle: Optional[Handle] = None
    anchor_point: Optional[Point] = None
    anchor_rect: Optional[Rect] = None
    rotation: int = 0
    min_size: float = 50.0
    view_scale: float = 1.0

    @property
    def min_width(self) -> float:
        return min(self.min_size, self.bound_width)

    @property
    def min_height(self) -> float:
        return min(self.min_size, self.bound_height)


# =============================================================================
# Geometry helpers
# =============================================================================
def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _check_ratio(ratio: Optional[float]) -> None:
    if ratio is not None and not ratio > 0:
        raise ValueError(f"Aspect ratio must be positive, got {ratio}")


def _fit_ratio(
    width: float,
    height: float,
    ratio: float,
    max_width: float,
    max_height: float,
    min_size: float,
) -> Tuple[float, float]:
    """Grow to the minimum size, then shrink both sides to fit the box.

    The ratio is preserved exactly; fitting the box wins over the minimum
    when both cannot hold.
    """

    if width < min_size:
        width, height = min_size, min_size / ratio
    if height < min_size:
        width, height = min_size * ratio, min_size
    scale = min(1.0, max_width / width, max_height / height)
    return width * scale, height * scale


def clamp_rect(rect: Rect, bound_width: float, bound_height: float) -> Rect:
    """Move ``rect`` inside the bounds, shrinking it only if it is larger."""

    width = min(rect.width, bound_width)
    height = min(rect.height, bound_height)
    x = _clamp(rect.x, 0.0, bound_width - width)
    y = _clamp(rect.y, 0.0, bound_height - height)
    return Rect(x, y, width, height)


def translate_rect(
    rect: Rect, dx: float, dy: float, bound_width: float, bound_height: float
) -> Rect:
    """Move ``rect`` by ``(dx, dy)`` and clamp it fully inside the bounds."""

    x = _clamp(rect.x + dx, 0.0, bound_width - rect.width)
    y = _clamp(rect.y + dy, 0.0, bound_height - rect.height)
    return Rect(x, y, rect.width, rect.height)


def resize_rect(
    rect: Rect,
    handle: Handle,
    dx: float,
    dy: float,
    bound_width: float,
    bound_height: float,
    ratio: Optional[float] = None,
    min_size: float = 50.0,
) -> Rect:
    """Drag corner ``handle`` of ``rect`` by ``(dx, dy)``.

    The opposite corner stays fixed. Each moved edge is held between the
    minimum size and the image edge. With a ratio, the axis the pointer
    moved further along drives the other one, and the result is scaled down
    as a whole if it no longer fits on the handle's side of the fixed corner.
    """

    min_w = min(min_size, bound_width)
    min_h = min(min_size, bound_height)

    # Fixed edges
    anchor_x = rect.x if handle.east else rect.right
    anchor_y = rect.y if handle.south else rect.bottom

    if handle.east:
        width = _clamp(rect.width + dx, min_w, bound_width - anchor_x)
    else:
        width = _clamp(rect.width - dx, min_w, anchor_x)
    if handle.south:
        height = _clamp(rect.height + dy, min_h, bound_height - anchor_y)
    else:
        height = _clamp(rect.height - dy, min_h, anchor_y)

    if ratio is not None:
        room_w = bound_width - anchor_x if handle.east else anchor_x
        room_h = bound_height - anchor_y if handle.south else anchor_y
        if abs(dx) >= abs(dy) * ratio:
            height = width / ratio
        else:
            width = height * ratio
        width, height = _fit_ratio(width, height, ratio, room_w, room_h, min(min_w, min_h))

    x = anchor_x if handle.east else anchor_x - width
    y = anchor_y if handle.south else anchor_y - height
    # Float subtraction can leave a hair below zero
    return Rect(max(0.0, x), max(0.0, y), width, height)


def rect_for_ratio(
    rect: Rect,
    ratio: Optional[float],
    bound_width: float,
    bound_height: float,
    min_size: float = 50.0,
) -> Rect:
    """Reshape ``rect`` to ``ratio`` around its center and clamp it into bounds."""

    _check_ratio(ratio)
    if rect.width <= 0 or rect.height <= 0:
        raise DegenerateRegion(f"Selection has no area: {rect.width}x{rect.height}")
    if ratio is None:
        width = max(rect.width, min(min_size, bound_width))
        height = max(rect.height, min(min_size, bound_height))
        cx, cy = rect.center
        return clamp_rect(
            Rect(cx - width / 2, cy - height / 2, width, height), bound_width, bound_height
        )

    width, height = rect.width, rect.height
    if width / height > ratio:
        width = height * ratio
    else:
        height = width / ratio
    width, height = _fit_ratio(
        width, height, ratio, bound_width, bound_height, min(min_size, bound_width, bound_height)
    )
    cx, cy = rect.center
    return clamp_rect(Rect(cx - width / 2, cy - height / 2, width, height), bound_width, bound_height)


def initial_rect(
    bound_width: float,
    bound_height: float,
    ratio: Optional[float] = None,
    coverage: float = 0.8,
) -> Rect:
    """Centered selection covering ``coverage`` of each side, reduced to ``ratio``."""

    _check_ratio(ratio)
    width = bound_width * coverage
    height = bound_height * coverage
    if ratio is not None:
        if width / height > ratio:
            width = height * ratio
        else:
            height = width / ratio
    return Rect((bound_width - width) / 2, (bound_height - height) / 2, width, height)


def display_scale(
    source_width: int,
    source_height: int,
    max_width: Optional[int] = None,
    max_height: Optional[int] = None,
) -> float:
    """Scale at which the source is previewed; never above 1."""

    if source_width <= 0 or source_height <= 0:
        raise InvalidDimensions(f"Source dimensions must be positive: {source_width}x{source_height}")
    max_width = max_width or CONFIG.crop.preview_max_width
    max_height = max_height or CONFIG.crop.preview_max_height
    return min(max_width / source_width, max_height / source_height, 1.0)


def to_source(point: Point, scale: float) -> Point:
    """Convert a display-space point to source coordinates."""

    return point[0] / scale, point[1] / scale


# =============================================================================
# Session transitions
# =============================================================================
def start_session(
    bound_width: float,
    bound_height: float,
    ratio: Optional[float] = None,
    coverage: Optional[float] = None,
    min_size: Optional[float] = None,
    view_scale: Optional[float] = None,
) -> CropSession:
    """Open an idle session with a centered initial selection.

    ``view_scale`` defaults to :func:`display_scale` of the bounds, the scale
    of the standard preview box.
    """

    if bound_width <= 0 or bound_height <= 0:
        raise InvalidDimensions(f"Bounds must be positive: {bound_width}x{bound_height}")
    coverage = CONFIG.crop.initial_coverage if coverage is None else coverage
    min_size = CONFIG.crop.min_size if min_size is None else min_size
    if view_scale is None:
        view_scale = display_scale(bound_width, bound_height)
    if not view_scale > 0:
        raise InvalidDimensions(f"View scale must be positive, got {view_scale}")
    rect = initial_rect(bound_width, bound_height, ratio, coverage)
    # Small coverages can land under the minimum size
    rect = rect_for_ratio(rect, ratio, bound_width, bound_height, min_size)
    return CropSession(
        bound_width=bound_width,
        bound_height=bound_height,
        rect=rect,
        ratio=ratio,
        min_size=min_size,
        view_scale=view_scale,
    )


def hit_test(
    session: CropSession, point: Point, tolerance: Optional[float] = None
) -> Optional[Hit]:
    """Return the part of the selection under ``point``, or None outside it.

    ``tolerance`` is in display pixels (default ``CONFIG.crop.handle_tolerance``)
    and is converted to source pixels with the session's view scale, so
    corners stay equally easy to grab on large images.
    """

    tolerance = CONFIG.crop.handle_tolerance if tolerance is None else tolerance
    reach = tolerance / session.view_scale
    rect = session.rect
    px, py = point
    corners = {
        Hit.NW: (rect.x, rect.y),
        Hit.NE: (rect.right, rect.y),
        Hit.SW: (rect.x, rect.bottom),
        Hit.SE: (rect.right, rect.bottom),
    }
    for hit, (cx, cy) in corners.items():
        if abs(px - cx) <= reach and abs(py - cy) <= reach:
            return hit
    if rect.contains(px, py):
        return Hit.BODY
    return None


def pointer_down(session: CropSession, point: Point, handle: Optional[Handle] = None) -> CropSession:
    """Start a gesture.

    With ``handle`` the session enters resizing. Otherwise the point is hit
    tested: a corner starts resizing, the body starts dragging, and anything
    outside the rectangle leaves the session idle.
    """

    if handle is None:
        hit = hit_test(session, point)
        if hit is None:
            return session
        handle = hit.handle

    mode = Mode.RESIZING if handle is not None else Mode.DRAGGING
    return replace(
        session,
        mode=mode,
        handle=handle,
        anchor_point=(float(point[0]), float(point[1])),
        anchor_rect=session.rect,
    )


def pointer_move(session: CropSession, point: Point) -> CropSession:
    """Apply a pointer move to the active gesture; idle sessions are unchanged."""

    if session.mode is Mode.IDLE:
        return session

    dx = point[0] - session.anchor_point[0]
    dy = point[1] - session.anchor_point[1]
    start = session.anchor_rect

    if session.mode is Mode.DRAGGING:
        rect = translate_rect(start, dx, dy, session.bound_width, session.bound_height)
    else:
        rect = resize_rect(
            start,
            session.handle,
            dx,
            dy,
            session.bound_width,
            session.bound_height,
            ratio=session.ratio,
            min_size=session.min_size,
        )
    return replace(session, rect=rect)


def pointer_up(session: CropSession) -> CropSession:
    """End the active gesture, keeping the current rectangle."""

    return replace(session, mode=Mode.IDLE, handle=None, anchor_point=None, anchor_rect=None)


# Leaving the editing surface ends a gesture exactly like releasing the pointer
pointer_leave = pointer_up


def nudge(session: CropSession, dx: float, dy: float) -> CropSession:
    """Move an idle selection by a fixed step, e.g. from arrow keys."""

    if session.mode is not Mode.IDLE:
        return session
    rect = translate_rect(session.rect, dx, dy, session.bound_width, session.bound_height)
    return replace(session, rect=rect)


def set_aspect(session: CropSession, ratio: Optional[float]) -> CropSession:
    """Switch the aspect constraint, reshaping the selection around its center.

    Only idle sessions change; a gesture in progress keeps its constraint.
    """

    _check_ratio(ratio)
    if session.mode is not Mode.IDLE:
        return session
    rect = rect_for_ratio(
        session.rect, ratio, session.bound_width, session.bound_height, session.min_size
    )
    return replace(session, ratio=ratio, rect=rect)


def rotate(session: CropSession, degrees: Optional[int] = None) -> CropSession:
    """Add ``degrees`` (default one rotation step) to the session rotation."""

    step = CONFIG.crop.rotation_step if degrees is None else degrees
    return replace(session, rotation=(session.rotation + int(step)) % 360)


# =============================================================================
# Extraction
# =============================================================================
_QUARTER_TURNS = {
    # Clockwise degrees -> Pillow transpose (Pillow's ROTATE_* turn counter-clockwise)
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def rotate_bitmap(source: Image.Image, degrees: int) -> Image.Image:
    """Rotate ``source`` clockwise about its center.

    Quarter turns are exact pixel transposes with width and height swapped
    for 90 and 270. Other angles resample onto a canvas grown to the rotated
    bounding box, leaving the uncovered corners transparent or black.
    """

    degrees = int(degrees) % 360
    if degrees == 0:
        return source.copy()
    if degrees in _QUARTER_TURNS:
        return source.transpose(_QUARTER_TURNS[degrees])
    return source.rotate(-degrees, resample=Image.BICUBIC, expand=True)


def map_to_frame(
    rect: Rect,
    source_width: float,
    source_height: float,
    rotation: int,
    frame_width: float,
    frame_height: float,
) -> Rect:
    """Map a source-space selection into the frame produced by :func:`rotate_bitmap`.

    Quarter turns map edges exactly, swapping width and height for 90 and
    270. Other angles rotate the corners about the image center, which sits
    at the frame center, and take their bounding box clipped to the frame.
    """

    degrees = int(rotation) % 360
    if degrees == 0:
        return rect
    if degrees == 90:
        return Rect(source_height - rect.bottom, rect.x, rect.height, rect.width)
    if degrees == 180:
        return Rect(source_width - rect.right, source_height - rect.bottom, rect.width, rect.height)
    if degrees == 270:
        return Rect(rect.y, source_width - rect.right, rect.height, rect.width)

    # Clockwise in image space, where y points down
    cos_a = math.cos(math.radians(degrees))
    sin_a = math.sin(math.radians(degrees))
    cx, cy = source_width / 2, source_height / 2
    xs, ys = [], []
    for px, py in ((rect.x, rect.y), (rect.right, rect.y), (rect.x, rect.bottom), (rect.right, rect.bottom)):
        dx, dy = px - cx, py - cy
        xs.append(cos_a * dx - sin_a * dy + frame_width / 2)
        ys.append(sin_a * dx + cos_a * dy + frame_height / 2)
    left, top = max(0.0, min(xs)), max(0.0, min(ys))
    right, bottom = min(frame_width, max(xs)), min(frame_height, max(ys))
    return Rect(left, top, right - left, bottom - top)


def extract(source: Image.Image, rect: Rect, rotation: int = 0) -> Image.Image:
    """Cut the selection out of ``source`` after applying ``rotation``.

    Parameters
    ----------
    source
        Unrotated source image.
    rect
        Selection in unrotated source coordinates.
    rotation
        Clockwise degrees, any integer.

    Returns
    -------
    Image.Image
        New image of the rounded selection as it appears in the rotated
        frame: ``round(w) x round(h)`` for 0 and 180, ``round(h) x round(w)``
        for 90 and 270, and the rotated bounding box for other angles.
    """

    degrees = int(rotation) % 360
    frame = rotate_bitmap(source, degrees) if degrees else source
    region = map_to_frame(rect, source.width, source.height, degrees, frame.width, frame.height)
    box = region.box()
    width, height = box[2] - box[0], box[3] - box[1]
    if width <= 0 or height <= 0:
        raise DegenerateRegion(f"Crop rounds to {width}x{height} pixels")

    logger.debug("Extracting %s from %dx%d frame (rotation %d)", box, frame.width, frame.height, degrees)
    return frame.crop(box)


def extract_session(source: Image.Image, session: CropSession) -> Image.Image:
    """Extract the session's current selection with its rotation."""

    return extract(source, session.rect, session.rotation)
