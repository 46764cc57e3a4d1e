"""Crop, outpaint and recomposition steps for SmartFrame."""

from .crop_planner import plan_crop, render_crop
from .outpaint import OutpaintCanvasBuilder
from .raster import RasterCanvas
from .recompose import radial_alpha_mask, recompose

__all__ = [
    "OutpaintCanvasBuilder",
    "RasterCanvas",
    "plan_crop",
    "radial_alpha_mask",
    "recompose",
    "render_crop",
]
