"""Custom exception hierarchy for SmartFrame."""

from __future__ import annotations


class SmartFrameError(Exception):
    """Base exception for all SmartFrame errors."""


class ParseError(SmartFrameError):
    """Raised when an input image cannot be decoded."""


class UnsupportedFormatError(ParseError):
    """Raised when input file format is not supported."""


class ImageLoadError(ParseError):
    """Raised when a synthesized result cannot be fetched or decoded."""


class DetectionError(SmartFrameError):
    """Raised inside focal point strategies; never escapes the scanner."""


class CompositionError(SmartFrameError):
    """Raised when final image composition fails."""


class ValidationError(SmartFrameError):
    """Raised when input validation fails."""
