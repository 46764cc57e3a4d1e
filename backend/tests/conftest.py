"""Shared pytest fixtures for SmartFrame tests."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

# Cool blue-grey: fails every skin test
BACKGROUND = (100, 110, 140)
SKIN = (224, 172, 140)


def paint_face(arr: np.ndarray, x: int, y: int, w: int, h: int) -> None:
    """Skin-toned block with a little shading so it is not perfectly flat."""
    arr[y:y + h, x:x + w] = SKIN
    arr[y + h // 3:y + h // 3 + 3, x + w // 4:x + w // 4 + 4] = (150, 100, 80)
    arr[y + h // 3:y + h // 3 + 3, x + 3 * w // 4 - 4:x + 3 * w // 4] = (150, 100, 80)
    arr[y + 2 * h // 3:y + 2 * h // 3 + 2, x + w // 3:x + 2 * w // 3] = (190, 120, 110)


def paint_checker(arr: np.ndarray, x: int, y: int, size: int, cell: int = 6) -> None:
    """Black and white checkerboard object."""
    for row in range(0, size, cell):
        for col in range(0, size, cell):
            color = (255, 255, 255) if (row // cell + col // cell) % 2 == 0 else (0, 0, 0)
            arr[y + row:y + row + cell, x + col:x + col + cell] = color


@pytest.fixture
def flat_gray_image() -> Image.Image:
    """Uniform mid-grey image."""
    return Image.new("RGB", (300, 200), (128, 128, 128))


@pytest.fixture
def face_image() -> Image.Image:
    """300x200 scene with a skin patch in the upper right."""
    arr = np.full((200, 300, 3), BACKGROUND, dtype=np.uint8)
    paint_face(arr, 200, 40, 50, 50)
    return Image.fromarray(arr)


@pytest.fixture
def object_image() -> Image.Image:
    """300x200 scene with a high-contrast object in the lower left."""
    arr = np.full((200, 300, 3), BACKGROUND, dtype=np.uint8)
    paint_checker(arr, 30, 110, 60)
    return Image.fromarray(arr)


@pytest.fixture
def two_subject_image() -> Image.Image:
    """Skin patch upper right plus a checkerboard object lower left."""
    arr = np.full((200, 300, 3), BACKGROUND, dtype=np.uint8)
    paint_face(arr, 200, 40, 50, 50)
    paint_checker(arr, 30, 110, 60)
    return Image.fromarray(arr)


@pytest.fixture
def noise_image() -> Image.Image:
    """Deterministic random RGB image."""
    rng = np.random.default_rng(42)
    return Image.fromarray(rng.integers(0, 256, size=(200, 200, 3), dtype=np.uint8))


@pytest.fixture
def rgba_image() -> Image.Image:
    """Half-transparent RGBA image."""
    return Image.new("RGBA", (200, 150), (100, 150, 200, 0))


@pytest.fixture
def grayscale_image() -> Image.Image:
    return Image.new("L", (100, 100), 128)
