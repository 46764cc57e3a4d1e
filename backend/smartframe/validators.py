"""Input validation for SmartFrame."""

from __future__ import annotations

from pathlib import Path

from .config import Config
from .constants import SUPPORTED_EXTENSIONS
from .enums import Gravity
from .exceptions import ValidationError


def validate_dimensions(width: int, height: int) -> None:
    """Validate target dimensions.

    Args:
        width: Target width in pixels.
        height: Target height in pixels.

    Raises:
        ValidationError: If dimensions are invalid.
    """
    if not isinstance(width, int | float) or not isinstance(height, int | float):
        raise ValidationError(
            f"Dimensions must be numbers, got {type(width).__name__} and {type(height).__name__}"
        )

    width = int(width)
    height = int(height)

    if width <= 0 or height <= 0:
        raise ValidationError(f"Dimensions must be positive, got {width}x{height}")
    if width > Config.MAX_IMAGE_SIZE or height > Config.MAX_IMAGE_SIZE:
        raise ValidationError(
            f"Dimensions exceed maximum {Config.MAX_IMAGE_SIZE}, got {width}x{height}"
        )
    if width < Config.MIN_IMAGE_SIZE or height < Config.MIN_IMAGE_SIZE:
        raise ValidationError(
            f"Dimensions below minimum {Config.MIN_IMAGE_SIZE}, got {width}x{height}"
        )


def validate_file_path(path: str) -> None:
    """Validate input file exists and has supported extension.

    Args:
        path: Path to the input file.

    Raises:
        ValidationError: If file doesn't exist or format is unsupported.
    """
    p = Path(path)
    if not p.exists():
        raise ValidationError(f"File not found: {path}")
    if p.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported format '{p.suffix}'. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}"
        )


def parse_ratio(value: str | float | int) -> float:
    """Parse an aspect ratio given as ``"16:9"``, ``"1.5"`` or a number.

    Raises:
        ValidationError: If the ratio is malformed or not positive.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid ratio: {value!r}")
    if isinstance(value, int | float):
        ratio = float(value)
    else:
        text = str(value).strip()
        try:
            if ":" in text:
                left, right = text.split(":", 1)
                w, h = float(left), float(right)
                if h == 0:
                    raise ValidationError(f"Invalid ratio format: {value!r}")
                ratio = w / h
            else:
                ratio = float(text)
        except ValueError as e:
            raise ValidationError(f"Invalid ratio format: {value!r}") from e

    if not ratio > 0 or ratio == float("inf"):
        raise ValidationError(f"Ratio must be positive, got {value!r}")
    return ratio


def validate_gravity(value: str | Gravity) -> Gravity:
    """Coerce a gravity name into ``Gravity``."""
    if isinstance(value, Gravity):
        return value
    try:
        return Gravity(str(value).strip().lower())
    except ValueError as e:
        allowed = ", ".join(g.value for g in Gravity)
        raise ValidationError(f"Invalid gravity '{value}'. Allowed: {allowed}") from e


def validate_sensitivity(value: int | float | None) -> int:
    """Validate the 1-10 detection sensitivity, defaulting to the midpoint."""
    if value is None:
        return Config.DEFAULT_SENSITIVITY
    sensitivity = int(value)
    if not Config.MIN_SENSITIVITY <= sensitivity <= Config.MAX_SENSITIVITY:
        raise ValidationError(
            f"Sensitivity must be between {Config.MIN_SENSITIVITY} and "
            f"{Config.MAX_SENSITIVITY}, got {value}"
        )
    return sensitivity


def target_dimensions(width: int, ratio: float) -> tuple[int, int]:
    """Output pixel size for a given width and width/height ratio."""
    height = max(1, round(width / ratio))
    validate_dimensions(width, height)
    return int(width), int(height)
