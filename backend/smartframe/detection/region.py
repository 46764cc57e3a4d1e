"""Pixel region metrics used by the focal point scanner.

Every metric takes a region either as an ``(h, w, 3)`` array or as a flat
``(n, 3)`` sequence of RGB pixels and returns a float in ``[0, 1]``.
Empty regions score 0 for every metric.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from ..config import PERMISSIVE_SKIN, SkinThresholds

# NTSC luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

Region = np.ndarray | Sequence[Sequence[int]]


def as_pixels(region: Region) -> np.ndarray:
    """Flatten a region to an ``(n, 3)`` int32 array, dropping alpha."""
    arr = np.asarray(region)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.int32)
    if arr.ndim == 3:
        arr = arr.reshape(-1, arr.shape[2])
    elif arr.ndim == 1:
        arr = arr.reshape(-1, 3)
    return arr[:, :3].astype(np.int32)


def extract_region(image: np.ndarray, cx: int, cy: int, size: int) -> np.ndarray:
    """Square window of ``size`` px centered on (cx, cy), clipped to the image."""
    h, w = image.shape[:2]
    x0 = max(0, int(cx - size // 2))
    y0 = max(0, int(cy - size // 2))
    x1 = min(w, x0 + size)
    y1 = min(h, y0 + size)
    return image[y0:y1, x0:x1]


def luminance(pixels: np.ndarray) -> np.ndarray:
    return pixels[:, :3].astype(np.float64) @ LUMA_WEIGHTS


def rgb_to_hsv(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Hue in whole degrees [0, 360), saturation and value in [0, 1]."""
    rgb = pixels[:, :3].astype(np.float64) / 255.0
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    mx = rgb.max(axis=1)
    mn = rgb.min(axis=1)
    diff = mx - mn
    safe = np.where(diff == 0, 1.0, diff)

    hue = np.select(
        [diff == 0, mx == r, mx == g],
        [0.0, np.mod((g - b) / safe, 6.0), (b - r) / safe + 2.0],
        default=(r - g) / safe + 4.0,
    )
    hue = np.round(hue * 60.0)
    hue = np.where(hue < 0, hue + 360.0, hue)

    sat = np.where(mx == 0, 0.0, diff / np.where(mx == 0, 1.0, mx))
    return hue, sat, mx


def rgb_to_ycbcr(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgb = pixels[:, :3].astype(np.float64)
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    y = 0.299 * r + 0.587 * g + 0.114 * b
    cb = 128.0 - 0.168736 * r - 0.331264 * g + 0.5 * b
    cr = 128.0 + 0.5 * r - 0.418688 * g - 0.081312 * b
    return y, cb, cr


def skin_mask(region: Region, thresholds: SkinThresholds = PERMISSIVE_SKIN) -> np.ndarray:
    """Boolean mask of skin-toned pixels (logical OR of the individual tests)."""
    pixels = as_pixels(region)
    if len(pixels) == 0:
        return np.zeros(0, dtype=bool)

    r, g, b = pixels[:, 0], pixels[:, 1], pixels[:, 2]
    t = thresholds

    rgb_test = (
        (r > t.rgb_min[0]) & (g > t.rgb_min[1]) & (b > t.rgb_min[2])
        & (r > g) & (r > b)
        & (pixels.max(axis=1) - pixels.min(axis=1) > t.rgb_min_range)
        & (np.abs(r - g) > t.rgb_min_rg_diff)
    )

    hue, sat, val = rgb_to_hsv(pixels)
    in_band = np.zeros(len(pixels), dtype=bool)
    for lo, hi in t.hue_bands:
        in_band |= (hue >= lo) & (hue <= hi)
    hsv_test = in_band & (sat >= t.sat_range[0]) & (sat <= t.sat_range[1]) & (val >= t.min_value)

    _, cb, cr = rgb_to_ycbcr(pixels)
    ycbcr_test = (
        (cb >= t.cb_range[0]) & (cb <= t.cb_range[1])
        & (cr >= t.cr_range[0]) & (cr <= t.cr_range[1])
    )

    mask = rgb_test | hsv_test | ycbcr_test
    if t.warmth_enabled:
        mask |= (r > b) & ((r + g) > b * t.warmth_rg_over_b) & (r > t.warmth_min_red)
    return mask


def skin_score(region: Region, thresholds: SkinThresholds = PERMISSIVE_SKIN) -> float:
    """Fraction of pixels classified as skin."""
    mask = skin_mask(region, thresholds)
    if mask.size == 0:
        return 0.0
    return float(mask.mean())


def contrast(region: Region) -> float:
    """``(max_lum - min_lum) / max_lum`` over the region."""
    pixels = as_pixels(region)
    if len(pixels) == 0:
        return 0.0
    lum = luminance(pixels)
    mx = float(lum.max())
    if mx <= 0:
        return 0.0
    return (mx - float(lum.min())) / mx


def edge_density(region: Region, row_width: int | None = None, threshold: float = 20) -> float:
    """Fraction of interior pixels differing from their right or lower neighbour.

    The difference is the summed absolute per-channel delta. Flat regions
    need ``row_width`` to be read as a grid.
    """
    arr = np.asarray(region)
    if arr.size == 0:
        return 0.0
    if arr.ndim == 3:
        grid = arr[:, :, :3].astype(np.int32)
    else:
        pixels = as_pixels(arr)
        if not row_width or len(pixels) < row_width * 2:
            return 0.0
        rows = len(pixels) // row_width
        grid = pixels[: rows * row_width].reshape(rows, row_width, 3)

    h, w = grid.shape[:2]
    if h < 3 or w < 3:
        return 0.0

    inner = grid[1:h - 1, 1:w - 1]
    right = grid[1:h - 1, 2:w]
    below = grid[2:h, 1:w - 1]
    horizontal = np.abs(inner - right).sum(axis=2)
    vertical = np.abs(inner - below).sum(axis=2)

    edges = (horizontal > threshold) | (vertical > threshold)
    return float(edges.mean())


def color_variance(region: Region) -> float:
    """Combined per-channel standard deviation around the mean, over 255."""
    pixels = as_pixels(region)
    if len(pixels) == 0:
        return 0.0
    rgb = pixels.astype(np.float64)
    deviation = rgb - rgb.mean(axis=0)
    variance = float((deviation ** 2).sum(axis=1).mean())
    return min(1.0, float(np.sqrt(variance)) / 255.0)


def brightness(region: Region) -> float:
    pixels = as_pixels(region)
    if len(pixels) == 0:
        return 0.0
    return float(luminance(pixels).mean()) / 255.0


def face_likeness(
    region: Region,
    thresholds: SkinThresholds,
    brightness_range: tuple[float, float] = (0.15, 0.75),
) -> float:
    """How face-like a window looks: moderate brightness spread plus consistent skin chroma."""
    pixels = as_pixels(region)
    if len(pixels) == 0:
        return 0.0

    lum = luminance(pixels)
    spread = float(lum.max() - lum.min()) / 255.0
    lo, hi = brightness_range
    if spread < lo:
        range_score = spread / lo if lo > 0 else 0.0
    elif spread > hi:
        range_score = max(0.0, 1.0 - (spread - hi) / max(1e-6, 1.0 - hi))
    else:
        range_score = 1.0

    mask = skin_mask(pixels, thresholds)
    if not mask.any():
        return 0.0
    _, cb, cr = rgb_to_ycbcr(pixels[mask])
    chroma_spread = float(np.sqrt(cb.var() + cr.var()))
    consistency = 1.0 - min(1.0, chroma_spread / 32.0)

    return 0.5 * range_score + 0.5 * consistency
