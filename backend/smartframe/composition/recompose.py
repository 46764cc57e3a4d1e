"""Protective recomposition of synthesized results.

Generative backends sometimes alter pixels inside the preserved area.
Pasting the original back through a radial alpha mask guarantees the
subject's core is untouched, with a soft blend only near the edge.
"""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from ..config import Config
from ..exceptions import CompositionError
from ..models import CanvasLayout
from .raster import RasterCanvas
from .resize import high_quality_resize

logger = logging.getLogger("smartframe.composition.recompose")


def radial_alpha_mask(width: int, height: int, feather: float = Config.RECOMPOSE_FEATHER) -> Image.Image:
    """Opaque disc with a linear fade over the outer ``feather`` pixels.

    The radius is half the shorter side. The innermost pixel is always
    fully opaque, whatever the feather.

    Returns:
        ``L`` mode image of (width, height).
    """
    radius = min(width, height) / 2
    inner = max(1.0, radius - max(0.0, feather))

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    distance = np.hypot(xs + 0.5 - width / 2, ys + 0.5 - height / 2)

    if radius > inner:
        alpha = np.clip((radius - distance) / (radius - inner), 0.0, 1.0)
    else:
        alpha = (distance <= inner).astype(np.float32)
    alpha[distance <= inner] = 1.0
    return Image.fromarray(np.rint(alpha * 255).astype(np.uint8))


def _fit_layout(layout: CanvasLayout, size: tuple[int, int]) -> CanvasLayout:
    """Rescale ``layout`` when the synthesized canvas came back at another size."""
    if size == (layout.final_width, layout.final_height):
        return layout
    sx = size[0] / layout.final_width
    sy = size[1] / layout.final_height
    width = max(1, min(size[0], round(layout.original_width * sx)))
    height = max(1, min(size[1], round(layout.original_height * sy)))
    x = min(max(0, round(layout.original_x * sx)), size[0] - width)
    y = min(max(0, round(layout.original_y * sy)), size[1] - height)
    logger.info(
        "Synthesized image is %dx%d, expected %dx%d; rescaling placement",
        size[0], size[1], layout.final_width, layout.final_height,
    )
    return CanvasLayout(size[0], size[1], x, y, width, height)


def recompose(
    synthesized: Image.Image,
    original: Image.Image,
    layout: CanvasLayout,
    feather: float = Config.RECOMPOSE_FEATHER,
) -> Image.Image:
    """Paste ``original`` back over ``synthesized`` at its recorded placement.

    Args:
        synthesized: Full canvas returned by the synthesis service.
        original: Source image as uploaded.
        layout: Placement used when the canvas was built.
        feather: Width of the blended rim in pixels.

    Returns:
        Image the size of ``synthesized``.

    Raises:
        CompositionError: If the layout describes an empty canvas or placement.
    """
    if min(layout.final_width, layout.final_height, layout.original_width, layout.original_height) <= 0:
        raise CompositionError(f"Invalid layout: {layout.to_dict()}")

    base = synthesized.convert("RGB")
    layout = _fit_layout(layout, base.size)
    size = (layout.original_width, layout.original_height)

    placed = high_quality_resize(original.convert("RGB"), size)
    alpha = radial_alpha_mask(size[0], size[1], feather)

    canvas = RasterCanvas(base.copy())
    canvas.draw_image(placed, (layout.original_x, layout.original_y), mask=alpha)
    logger.debug("Recomposed original at %s with feather %s", layout.placement, feather)
    return canvas.image
