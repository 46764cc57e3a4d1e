"""Experimental heuristic subject mask.

Marks pixels that are probably part of the subject using a blend of
central bias, skin tone, Sobel edges and local color similarity. Much
cruder than the focal point scanner; only used for
``MaskStrategy.SUBJECT``.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np
from PIL import Image

from ..config import STRICT_SKIN
from ..detection.region import skin_mask

logger = logging.getLogger("smartframe.composition.subject_mask")

CENTER_WEIGHT = 0.3
SKIN_WEIGHT = 0.4
EDGE_WEIGHT = 0.2
NEIGHBORHOOD_WEIGHT = 0.1
SUBJECT_THRESHOLD = 0.25

EDGE_MAGNITUDE = 30.0
NEIGHBOR_RADIUS = 3
NEIGHBOR_COLOR_DIFF = 50
BORDER = 5
MAX_ANALYSIS_DIM = 512


def _neighborhood_similarity(rgb: np.ndarray) -> np.ndarray:
    """Fraction of the 7x7 neighbours whose summed channel difference is small."""
    h, w = rgb.shape[:2]
    r = NEIGHBOR_RADIUS
    padded = np.pad(rgb, ((r, r), (r, r), (0, 0)), mode="edge")
    similar = np.zeros((h, w), dtype=np.float32)
    for dy in range(-r, r + 1):
        for dx in range(-r, r + 1):
            shifted = padded[r + dy:r + dy + h, r + dx:r + dx + w]
            diff = np.abs(rgb - shifted).sum(axis=2)
            similar += diff < NEIGHBOR_COLOR_DIFF
    score = np.minimum(similar / (2 * r + 1) ** 2, 1.0)

    valid = np.zeros((h, w), dtype=bool)
    if h > 2 * BORDER + 1 and w > 2 * BORDER + 1:
        valid[BORDER + 1:h - BORDER, BORDER + 1:w - BORDER] = True
    return np.where(valid, score, 0.0)


def subject_mask(image: Image.Image, size: tuple[int, int] | None = None) -> np.ndarray:
    """Boolean ``(h, w)`` array, True where the subject should be preserved.

    Args:
        image: Source image.
        size: Output (width, height); defaults to the image size.
    """
    size = size or image.size
    rgb_image = image.convert("RGB")
    scale = min(1.0, MAX_ANALYSIS_DIM / max(rgb_image.size))
    if scale < 1.0:
        work_size = (max(1, round(rgb_image.width * scale)), max(1, round(rgb_image.height * scale)))
        rgb_image = rgb_image.resize(work_size, Image.Resampling.BILINEAR)

    rgb = np.asarray(rgb_image).astype(np.int32)
    h, w = rgb.shape[:2]

    gray = cv2.cvtColor(rgb.astype(np.uint8), cv2.COLOR_RGB2GRAY).astype(np.float32)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    edges = np.hypot(gx, gy) > EDGE_MAGNITUDE

    skin = skin_mask(rgb, STRICT_SKIN).reshape(h, w)

    ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
    cx, cy = w / 2, h / 2
    max_distance = max(1e-6, float(np.hypot(cx, cy)))
    central = np.maximum(0.0, 1.0 - np.hypot(xs - cx, ys - cy) / max_distance)

    score = (
        CENTER_WEIGHT * central
        + SKIN_WEIGHT * skin
        + EDGE_WEIGHT * edges
        + NEIGHBORHOOD_WEIGHT * _neighborhood_similarity(rgb)
    )
    preserve = score > SUBJECT_THRESHOLD

    logger.debug("Subject mask: %.1f%% of pixels preserved", preserve.mean() * 100)

    if (w, h) != tuple(size):
        resized = Image.fromarray(preserve.astype(np.uint8) * 255).resize(size, Image.Resampling.NEAREST)
        preserve = np.asarray(resized) > 127
    return preserve
