"""Focal-point driven crop planning and rendering."""

from __future__ import annotations

import logging
import math

from PIL import Image, ImageOps

from ..config import Config
from ..enums import CropMode
from ..models import CropPlan, CropRect, ExpansionLayout, FocalPoint
from .raster import RasterCanvas
from .resize import high_quality_resize

logger = logging.getLogger("smartframe.composition.crop_planner")


def _round(value: float) -> int:
    """Round half up, so 0.5 offsets resolve the same way on both axes."""
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _axis_center(
    primary: int,
    secondary: int | None,
    crop_length: int,
    axis: str,
) -> tuple[float, bool]:
    """Center coordinate for one axis and whether the secondary point was used."""
    if secondary is None:
        return float(primary), False

    span = abs(primary - secondary)
    limit = crop_length * Config.DUAL_SPAN_FRACTION
    if span <= limit:
        return (primary + secondary) / 2, True

    logger.info(
        "Focal points %s-span %d exceeds %.0f px, centering on primary point",
        axis, span, limit,
    )
    return float(primary), False


def plan_crop(
    original_width: int,
    original_height: int,
    target_ratio: float,
    focal_point: FocalPoint,
    secondary: FocalPoint | None = None,
    output_size: tuple[int, int] | None = None,
) -> CropPlan:
    """Decide how to bring an image to ``target_ratio``.

    Rules, in order: matching ratio resizes the whole image; a wider
    original is cropped horizontally around the focal point; a taller
    original is expanded onto a blurred background when it is smaller
    than the output, otherwise cropped vertically. With two focal points
    the crop centers on their midpoint when both fit comfortably.

    Args:
        original_width: Source width in pixels.
        original_height: Source height in pixels.
        target_ratio: Desired width / height.
        focal_point: Primary focal point in source coordinates.
        secondary: Optional second point; defaults to ``focal_point.secondary``.
        output_size: Final (width, height); defaults to the standard width
            at ``target_ratio``.

    Returns:
        CropPlan whose ``crop`` always lies inside the source image.
    """
    ow, oh = int(original_width), int(original_height)
    if output_size is None:
        output_size = (Config.DEFAULT_OUTPUT_WIDTH, max(1, _round(Config.DEFAULT_OUTPUT_WIDTH / target_ratio)))
    out_w, out_h = int(output_size[0]), int(output_size[1])
    if secondary is None:
        secondary = focal_point.secondary

    fx = _clamp(int(focal_point.x), 0, ow)
    fy = _clamp(int(focal_point.y), 0, oh)
    original_ratio = ow / oh

    if abs(original_ratio - target_ratio) < Config.RATIO_EPSILON:
        logger.debug("Ratios match (%.3f vs %.3f), resizing only", original_ratio, target_ratio)
        return CropPlan(CropMode.RESIZE, CropRect(0, 0, ow, oh), (out_w, out_h))

    if original_ratio > target_ratio:
        crop_w = _clamp(_round(oh * target_ratio), 1, ow)
        center, used = _axis_center(fx, secondary.x if secondary else None, crop_w, "x")
        x = _clamp(_round(center) - _round(crop_w / 2), 0, ow - crop_w)
        logger.debug("Horizontal crop: width=%d, x=%d", crop_w, x)
        return CropPlan(
            CropMode.CROP_HORIZONTAL, CropRect(x, 0, crop_w, oh), (out_w, out_h), used_secondary=used
        )

    if ow < out_w or oh < out_h:
        return _plan_expansion(ow, oh, fx, fy, out_w, out_h)

    crop_h = _clamp(_round(ow / target_ratio), 1, oh)
    center, used = _axis_center(fy, secondary.y if secondary else None, crop_h, "y")
    y = _clamp(_round(center) - _round(crop_h / 2), 0, oh - crop_h)
    logger.debug("Vertical crop: height=%d, y=%d", crop_h, y)
    return CropPlan(
        CropMode.CROP_VERTICAL, CropRect(0, y, ow, crop_h), (out_w, out_h), used_secondary=used
    )


def _plan_expansion(ow: int, oh: int, fx: int, fy: int, out_w: int, out_h: int) -> CropPlan:
    scale = max(out_w / ow, out_h / oh)
    scaled_w = max(1, _round(ow * scale))
    scaled_h = max(1, _round(oh * scale))

    scaled_fx = fx / ow * scaled_w
    scaled_fy = fy / oh * scaled_h
    left = _round(out_w / 2 - scaled_fx)
    top = _round(out_h / 2 - scaled_fy)
    left = max(min(left, 0), out_w - scaled_w)
    top = max(min(top, 0), out_h - scaled_h)

    # Portion of the source that ends up visible in the output
    crop_w = _clamp(_round(out_w / scale), 1, ow)
    crop_h = _clamp(_round(out_h / scale), 1, oh)
    x = _clamp(_round(-left / scale), 0, ow - crop_w)
    y = _clamp(_round(-top / scale), 0, oh - crop_h)

    logger.debug("Expansion: scaled=%dx%d, left=%d, top=%d", scaled_w, scaled_h, left, top)
    return CropPlan(
        CropMode.EXPAND,
        CropRect(x, y, crop_w, crop_h),
        (out_w, out_h),
        expansion=ExpansionLayout(scaled_w, scaled_h, left, top, out_w, out_h),
    )


def render_crop(image: Image.Image, plan: CropPlan) -> Image.Image:
    """Produce the output raster for ``plan`` at exactly ``plan.output_size``."""
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGB")

    if plan.mode is CropMode.EXPAND and plan.expansion is not None:
        layout = plan.expansion
        size = (layout.output_width, layout.output_height)
        background = ImageOps.fit(image.convert("RGB"), size, Config.RESIZE_QUALITY)
        canvas = RasterCanvas(background).blur(Config.EXPAND_BLUR_RADIUS)
        canvas.draw_image(image, (layout.left, layout.top), size=(layout.scaled_width, layout.scaled_height))
        return canvas.image

    rect = plan.crop
    if (rect.x, rect.y, rect.width, rect.height) != (0, 0, image.width, image.height):
        image = image.crop(rect.to_tuple())
    return high_quality_resize(image, plan.output_size).convert("RGB")
