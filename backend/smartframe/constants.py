"""Shared constants for SmartFrame."""

from __future__ import annotations

from .enums import MaskStrategy

# Supported file extensions
SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")

# Aspect ratio presets offered by the UI (label -> width / height)
RATIO_PRESETS = {
    "1:1": 1 / 1,
    "4:5": 4 / 5,
    "3:4": 3 / 4,
    "9:16": 9 / 16,
    "16:9": 16 / 9,
}

# Fraction of the placed original kept black in the inpainting mask
MASK_PRESERVE_FRACTIONS = {
    MaskStrategy.CONSERVATIVE: 1.0,
    MaskStrategy.SMART: 0.6,
    MaskStrategy.AGGRESSIVE: 0.4,
    MaskStrategy.CENTER_ONLY: 0.3,
}
