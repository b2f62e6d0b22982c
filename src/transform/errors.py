"""Exceptions raised by the transform engine and its decode/encode boundary.

Every operation fails with one of these and never retries internally. The
argument errors also derive from ``ValueError`` so callers that validate
input the usual way keep working.
"""

from __future__ import annotations


class TransformError(Exception):
    """Base class for all engine errors."""


class InvalidDimensions(TransformError, ValueError):
    """A source or canvas dimension is zero or negative."""


class InvalidTarget(TransformError, ValueError):
    """A resize target or compression budget is not usable."""


class DegenerateRegion(TransformError, ValueError):
    """A crop rectangle rounds to zero width or height."""


class UnsupportedFormat(TransformError):
    """The input media type or requested output format is not handled."""


class DecodeFailed(TransformError):
    """Input bytes could not be decoded into a bitmap."""


class InputTooLarge(DecodeFailed):
    """Input exceeds the accepted file size."""


class EncodingFailed(TransformError):
    """The encoder could not produce output for a bitmap."""
