"""Target-size compression.

Finds the highest encoder quality whose output fits a byte budget by
bisecting the quality range a fixed number of times. Each probe is one
full encode, so probes run strictly one after another; the async variant
awaits them in the same order and both stop early at a deadline.

The search relies on encoded size growing with quality, which holds for
the JPEG and WebP encoders in practice. Small violations only cost a
little precision.
"""

from __future__ import annotations

import logging
from time import monotonic
from typing import Awaitable, Callable, Optional

from PIL import Image

from config import CONFIG
from .errors import EncodingFailed, InvalidTarget
from .models import EncodedResult

logger = logging.getLogger(__name__)

Encoder = Callable[[Image.Image, float], EncodedResult]
AsyncEncoder = Callable[[Image.Image, float], Awaitable[EncodedResult]]

FAILURE_POLICIES = ("abort", "oversized")


class QualitySearch:
    """Bisection state over ``[min_q, max_q]``.

    Call :meth:`next_probe` for the quality to try, then :meth:`record` with
    the encoder's result (or None when the encode failed and the failure
    counts as oversized).
    """

    def __init__(self, target_bytes: int, min_q: float, max_q: float, iterations: int):
        if target_bytes <= 0:
            raise InvalidTarget(f"Target size must be positive, got {target_bytes} bytes")
        if not 0 < min_q <= max_q <= 1:
            raise InvalidTarget(f"Quality range must satisfy 0 < min <= max <= 1, got [{min_q}, {max_q}]")
        if iterations < 1:
            raise InvalidTarget(f"At least one iteration is required, got {iterations}")
        self.target_bytes = target_bytes
        self.min_q = min_q
        self.max_q = max_q
        self.low = min_q
        self.high = max_q
        self.iterations = iterations
        self.probes = 0
        self.best: Optional[EncodedResult] = None

    @property
    def done(self) -> bool:
        return self.probes >= self.iterations

    def next_probe(self) -> float:
        return (self.low + self.high) / 2

    def record(self, quality: float, result: Optional[EncodedResult]) -> None:
        self.probes += 1
        if result is not None and result.size <= self.target_bytes:
            logger.debug("Probe %d: q=%.4f -> %d bytes (fits)", self.probes, quality, result.size)
            self.best = result
            self.low = quality
        else:
            size = "failed" if result is None else f"{result.size} bytes"
            logger.debug("Probe %d: q=%.4f -> %s (too large)", self.probes, quality, size)
            self.high = quality


def _check_policy(on_failure: str) -> None:
    if on_failure not in FAILURE_POLICIES:
        raise ValueError(f"on_failure must be one of {FAILURE_POLICIES}, got {on_failure!r}")


def _deadline_passed(deadline: Optional[float]) -> bool:
    return deadline is not None and monotonic() >= deadline


def _log_floor(search: QualitySearch, result: EncodedResult) -> None:
    logger.warning(
        "No quality in [%.2f, %.2f] fits %d bytes; returning %d bytes at quality %.2f",
        search.min_q,
        search.max_q,
        search.target_bytes,
        result.size,
        search.min_q,
    )


def compress_to_target(
    bitmap: Image.Image,
    target_bytes: int,
    encode: Encoder,
    fmt: str = "jpeg",
    min_q: Optional[float] = None,
    max_q: Optional[float] = None,
    iterations: Optional[int] = None,
    on_failure: str = "abort",
    deadline: Optional[float] = None,
) -> EncodedResult:
    """Encode ``bitmap`` at the highest quality that fits ``target_bytes``.

    Parameters
    ----------
    bitmap
        Image to encode.
    target_bytes
        Byte budget for the encoded output.
    encode
        ``encode(bitmap, quality) -> EncodedResult``; may raise
        :class:`EncodingFailed`.
    fmt
        Output format. PNG is lossless, so it is encoded once without search.
    min_q, max_q, iterations
        Search bounds; default to ``CONFIG.compression``.
    on_failure
        ``abort`` re-raises an encoder failure; ``oversized`` treats the
        failed quality as too large and keeps searching.
    deadline
        ``time.monotonic()`` value after which no further probe starts.

    Returns
    -------
    EncodedResult
        The best probe within budget. When none fit, the encoding at
        ``min_q``, which may exceed the budget.
    """

    settings = CONFIG.compression
    min_q = settings.min_quality if min_q is None else min_q
    max_q = settings.max_quality if max_q is None else max_q
    iterations = settings.iterations if iterations is None else iterations
    _check_policy(on_failure)
    search = QualitySearch(target_bytes, min_q, max_q, iterations)

    if fmt.lower() == "png":
        return encode(bitmap, max_q)

    while not search.done:
        if _deadline_passed(deadline):
            logger.debug("Deadline reached after %d probes", search.probes)
            break
        quality = search.next_probe()
        try:
            result = encode(bitmap, quality)
        except EncodingFailed:
            if on_failure == "abort":
                raise
            logger.debug("Encoding failed at q=%.4f, treating as oversized", quality, exc_info=True)
            result = None
        search.record(quality, result)

    if search.best is not None:
        return search.best
    floor = encode(bitmap, min_q)
    _log_floor(search, floor)
    return floor


async def compress_to_target_async(
    bitmap: Image.Image,
    target_bytes: int,
    encode: AsyncEncoder,
    fmt: str = "jpeg",
    min_q: Optional[float] = None,
    max_q: Optional[float] = None,
    iterations: Optional[int] = None,
    on_failure: str = "abort",
    deadline: Optional[float] = None,
) -> EncodedResult:
    """Awaitable :func:`compress_to_target` for encoders that return awaitables.

    Each probe is awaited before the next one is chosen. Cancelling the task
    abandons the search at the current await.
    """

    settings = CONFIG.compression
    min_q = settings.min_quality if min_q is None else min_q
    max_q = settings.max_quality if max_q is None else max_q
    iterations = settings.iterations if iterations is None else iterations
    _check_policy(on_failure)
    search = QualitySearch(target_bytes, min_q, max_q, iterations)

    if fmt.lower() == "png":
        return await encode(bitmap, max_q)

    while not search.done:
        if _deadline_passed(deadline):
            logger.debug("Deadline reached after %d probes", search.probes)
            break
        quality = search.next_probe()
        try:
            result = await encode(bitmap, quality)
        except EncodingFailed:
            if on_failure == "abort":
                raise
            logger.debug("Encoding failed at q=%.4f, treating as oversized", quality, exc_info=True)
            result = None
        search.record(quality, result)

    if search.best is not None:
        return search.best
    floor = await encode(bitmap, min_q)
    _log_floor(search, floor)
    return floor


def compress_at_quality(bitmap: Image.Image, quality: float, encode: Encoder) -> EncodedResult:
    """Single encode at a fixed quality."""

    if not 0 < quality <= 1:
        raise InvalidTarget(f"Quality must be in (0, 1], got {quality}")
    return encode(bitmap, quality)
