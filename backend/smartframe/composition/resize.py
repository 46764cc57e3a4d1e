"""High-quality image resize with gamma correction."""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from ..config import Config

logger = logging.getLogger("smartframe.composition.resize")


def _resize_channels(arr: np.ndarray, target_size: tuple[int, int]) -> np.ndarray:
    # 2-D float32 arrays load as mode F
    channels = [
        np.asarray(
            Image.fromarray(np.ascontiguousarray(arr[:, :, c], dtype=np.float32))
            .resize(target_size, Config.RESIZE_QUALITY)
        )
        for c in range(arr.shape[2])
    ]
    return np.stack(channels, axis=2)


def high_quality_resize(
    image: Image.Image, target_size: tuple[int, int]
) -> Image.Image:
    """High-quality resize with gamma correction.

    Resamples in linear light, keeping float precision between decode
    and encode so dark tones do not band.

    Args:
        image: Source PIL image.
        target_size: Target (width, height).

    Returns:
        Resized image in RGB or RGBA mode.
    """
    target_size = (int(target_size[0]), int(target_size[1]))
    if target_size[0] <= 0 or target_size[1] <= 0:
        return image

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    if image.size == target_size:
        return image.copy()

    arr = np.asarray(image, dtype=np.float32) / 255.0
    has_alpha = arr.shape[2] == 4

    # Gamma decode (to linear)
    linear = np.power(arr[:, :, :3], Config.GAMMA)
    resized = _resize_channels(linear, target_size)

    # Gamma encode (back to sRGB)
    encoded = np.power(np.clip(resized, 0.0, 1.0), 1.0 / Config.GAMMA)

    if has_alpha:
        alpha = _resize_channels(arr[:, :, 3:4], target_size)
        encoded = np.concatenate([encoded, np.clip(alpha, 0.0, 1.0)], axis=2)

    out = np.round(encoded * 255.0).astype(np.uint8)
    return Image.fromarray(out)
