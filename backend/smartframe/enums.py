"""Enumerations shared across SmartFrame."""

from __future__ import annotations

from enum import Enum


class Gravity(Enum):
    """Where the original image is pinned inside an expanded canvas."""
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


class CropMode(Enum):
    """Which branch of the crop planner produced a plan."""
    RESIZE = "resize"
    CROP_HORIZONTAL = "crop_horizontal"
    CROP_VERTICAL = "crop_vertical"
    EXPAND = "expand"


class CanvasStyle(Enum):
    """Background treatment of an outpaint canvas."""
    SEEDED = "seeded"  # light neutral + faint edge-colour hints
    FILL = "fill"  # flat neutral grey, mask drives the synthesis


class MaskStrategy(Enum):
    """How much of the placed original the inpainting mask preserves."""
    CONSERVATIVE = "conservative"
    SMART = "smart"
    AGGRESSIVE = "aggressive"
    CENTER_ONLY = "center_only"
    SUBJECT = "subject"
