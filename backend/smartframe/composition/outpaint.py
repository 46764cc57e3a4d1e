"""Expanded canvas and inpainting mask construction for outpainting.

Mask convention throughout: black (0) = preserve the original,
white (255) = region for the synthesis backend to fill.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np
from PIL import Image

from ..config import Config
from ..constants import MASK_PRESERVE_FRACTIONS
from ..enums import CanvasStyle, Gravity, MaskStrategy
from ..models import CanvasLayout, OutpaintCanvas
from .raster import RasterCanvas
from .resize import high_quality_resize
from .subject_mask import subject_mask

logger = logging.getLogger("smartframe.composition.outpaint")


def feather_mask(mask: np.ndarray, radius: int) -> np.ndarray:
    """Soften a 0/255 mask with a Gaussian whose support is ``radius`` px.

    Pixels further than ``radius`` from a black/white boundary keep their
    exact value.
    """
    if radius <= 0:
        return mask
    ksize = 2 * int(radius) + 1
    blurred = cv2.GaussianBlur(
        mask.astype(np.float32), (ksize, ksize), sigmaX=radius / 2, borderType=cv2.BORDER_REPLICATE
    )
    return np.clip(np.rint(blurred), 0, 255).astype(np.uint8)


def _edge_color(pixels: np.ndarray) -> tuple[int, int, int]:
    mean = pixels.reshape(-1, pixels.shape[-1])[:, :3].mean(axis=0)
    return tuple(int(v) for v in mean)


class OutpaintCanvasBuilder:
    """Computes the expanded canvas for a target ratio and renders the
    canvas, mask and preview handed to an external synthesis service.

    Deterministic for a given (image, ratio, gravity): no randomness, no I/O.

    Usage:
        builder = OutpaintCanvasBuilder()
        result = builder.build(image, 16 / 9, Gravity.LEFT)
        result.canvas, result.mask, result.layout
    """

    def __init__(
        self,
        min_dim: int = Config.CANVAS_MIN_DIM,
        max_dim: int = Config.CANVAS_MAX_DIM,
        block_size: int = Config.CANVAS_BLOCK_SIZE,
    ) -> None:
        self.min_dim = min_dim
        self.max_dim = min(max_dim, Config.PROVIDER_MAX_DIM)
        self.block_size = block_size

    # Layout arithmetic

    @staticmethod
    def _expanded_size(width: int, height: int, target_ratio: float) -> tuple[int, int]:
        """Keep the long side, grow the short one to reach ``target_ratio``."""
        original_ratio = width / height
        if target_ratio > original_ratio:
            return round(height * target_ratio), height
        if target_ratio < original_ratio:
            return width, round(width / target_ratio)
        return width, height

    @staticmethod
    def _place(
        final_w: int, final_h: int, placed_w: int, placed_h: int, gravity: Gravity
    ) -> tuple[int, int]:
        x = (final_w - placed_w) // 2
        y = (final_h - placed_h) // 2
        if gravity is Gravity.LEFT:
            x = 0
        elif gravity is Gravity.RIGHT:
            x = final_w - placed_w
        elif gravity is Gravity.TOP:
            y = 0
        elif gravity is Gravity.BOTTOM:
            y = final_h - placed_h
        return x, y

    def initial_layout(
        self, width: int, height: int, target_ratio: float, gravity: Gravity = Gravity.CENTER
    ) -> CanvasLayout:
        """Layout before clamping and block rounding."""
        final_w, final_h = self._expanded_size(width, height, target_ratio)
        x, y = self._place(final_w, final_h, width, height, gravity)
        return CanvasLayout(final_w, final_h, x, y, width, height)

    def _clamp(self, width: int, height: int) -> tuple[int, int]:
        w, h = width, height
        if w > self.max_dim or h > self.max_dim:
            scale = min(self.max_dim / w, self.max_dim / h)
            w, h = round(w * scale), round(h * scale)
            logger.info("Scaling canvas down: %dx%d -> %dx%d", width, height, w, h)

        if w < self.min_dim or h < self.min_dim:
            before = (w, h)
            scale = max(self.min_dim / w, self.min_dim / h)
            w, h = round(w * scale), round(h * scale)
            logger.info("Scaling canvas up: %dx%d -> %dx%d", *before, w, h)

        if w > Config.PROVIDER_MAX_DIM or h > Config.PROVIDER_MAX_DIM:
            scale = min(Config.PROVIDER_MAX_DIM / w, Config.PROVIDER_MAX_DIM / h)
            w, h = round(w * scale), round(h * scale)
            logger.warning("Extreme ratio, canvas %dx%d falls below the %d px minimum", w, h, self.min_dim)

        block = self.block_size
        return max(block, w // block * block), max(block, h // block * block)

    def layout(
        self, width: int, height: int, target_ratio: float, gravity: Gravity = Gravity.CENTER
    ) -> CanvasLayout:
        """Final layout: clamped to the supported range and rounded to the block size.

        When the canvas had to change size, the placed original is scaled
        by the same factor so it still fits inside the canvas.
        """
        initial = self.initial_layout(width, height, target_ratio, gravity)
        final_w, final_h = self._clamp(initial.final_width, initial.final_height)

        placed_w, placed_h = width, height
        if (final_w, final_h) != (initial.final_width, initial.final_height):
            scale = min(final_w / initial.final_width, final_h / initial.final_height)
            placed_w = max(1, min(final_w, round(width * scale)))
            placed_h = max(1, min(final_h, round(height * scale)))
            logger.debug("Scaling original: %dx%d -> %dx%d", width, height, placed_w, placed_h)

        x, y = self._place(final_w, final_h, placed_w, placed_h, gravity)
        return CanvasLayout(final_w, final_h, x, y, placed_w, placed_h)

    @staticmethod
    def expand_direction(gravity: Gravity, target_ratio: float, original_ratio: float) -> str:
        """Human-readable expansion direction, suitable for a synthesis prompt."""
        if abs(target_ratio - original_ratio) < Config.RATIO_EPSILON:
            return "none"
        if target_ratio > original_ratio:
            return {
                Gravity.LEFT: "right",
                Gravity.RIGHT: "left",
                Gravity.CENTER: "left and right",
            }.get(gravity, "horizontally")
        return {
            Gravity.TOP: "bottom",
            Gravity.BOTTOM: "top",
            Gravity.CENTER: "top and bottom",
        }.get(gravity, "vertically")

    # Rendering

    def build(
        self,
        image: Image.Image,
        target_ratio: float,
        gravity: Gravity = Gravity.CENTER,
        style: CanvasStyle = CanvasStyle.SEEDED,
        mask_strategy: MaskStrategy = MaskStrategy.CONSERVATIVE,
        feather: int | None = None,
    ) -> OutpaintCanvas:
        """Render the synthesis-ready canvas and matching mask.

        Args:
            image: Source image.
            target_ratio: Desired width / height.
            gravity: Which edge the original is pinned to.
            style: SEEDED (light background with edge hints) or FILL (neutral grey).
            mask_strategy: How much of the original the mask preserves.
            feather: Mask feather radius; defaults depend on ``style``.

        Returns:
            OutpaintCanvas with canvas and mask of identical size.
        """
        image = image.convert("RGB")
        layout = self.layout(image.width, image.height, target_ratio, gravity)
        if feather is None:
            feather = Config.FILL_MASK_FEATHER if style is CanvasStyle.FILL else Config.MASK_FEATHER

        canvas = self.render_canvas(image, layout, style)
        mask = self.build_mask(layout, mask_strategy, feather, image=image)
        direction = self.expand_direction(gravity, target_ratio, image.width / image.height)

        logger.info(
            "Outpaint canvas %dx%d, original at (%d, %d) %dx%d, expanding %s",
            layout.final_width, layout.final_height, layout.original_x, layout.original_y,
            layout.original_width, layout.original_height, direction,
        )
        return OutpaintCanvas(canvas, mask, layout, gravity, direction)

    def render_canvas(self, image: Image.Image, layout: CanvasLayout, style: CanvasStyle) -> Image.Image:
        size = (layout.final_width, layout.final_height)
        background = Config.FILL_BACKGROUND if style is CanvasStyle.FILL else Config.SEEDED_BACKGROUND
        canvas = RasterCanvas.new(size, background)

        placed = high_quality_resize(image, (layout.original_width, layout.original_height))
        canvas.draw_image(placed, (layout.original_x, layout.original_y))

        if style is CanvasStyle.SEEDED:
            self._add_edge_hints(canvas, np.asarray(placed), layout)
        return canvas.image

    @staticmethod
    def _add_edge_hints(canvas: RasterCanvas, placed: np.ndarray, layout: CanvasLayout) -> None:
        """Faint bands of each border's average color next to that border."""
        x1, y1, x2, y2 = layout.placement
        fw, fh = layout.final_width, layout.final_height
        alpha = Config.EDGE_HINT_ALPHA
        if x1 > 0:
            canvas.fill_rect((0, y1, x1, y2), _edge_color(placed[:, 0]), alpha)
        if x2 < fw:
            canvas.fill_rect((x2, y1, fw, y2), _edge_color(placed[:, -1]), alpha)
        if y1 > 0:
            canvas.fill_rect((x1, 0, x2, y1), _edge_color(placed[0, :]), alpha)
        if y2 < fh:
            canvas.fill_rect((x1, y2, x2, fh), _edge_color(placed[-1, :]), alpha)

    def build_mask(
        self,
        layout: CanvasLayout,
        strategy: MaskStrategy = MaskStrategy.CONSERVATIVE,
        feather: int = Config.MASK_FEATHER,
        image: Image.Image | None = None,
    ) -> Image.Image:
        """White canvas with the preserved area in black, then feathered."""
        mask = np.full((layout.final_height, layout.final_width), 255, dtype=np.uint8)
        x, y = layout.original_x, layout.original_y
        pw, ph = layout.original_width, layout.original_height

        if strategy is MaskStrategy.SUBJECT:
            try:
                if image is None:
                    raise ValueError("subject mask needs the source image")
                preserve = subject_mask(image, (pw, ph))
                region = mask[y:y + ph, x:x + pw]
                region[preserve[: region.shape[0], : region.shape[1]]] = 0
                return Image.fromarray(feather_mask(mask, feather))
            except Exception as e:
                logger.warning("Subject mask failed, using smart mask: %s", e)
                strategy = MaskStrategy.SMART

        fraction = MASK_PRESERVE_FRACTIONS[strategy]
        keep_w = round(pw * fraction)
        keep_h = round(ph * fraction)
        kx = x + round((pw - keep_w) / 2)
        ky = y + round((ph - keep_h) / 2)
        mask[max(0, ky):ky + keep_h, max(0, kx):kx + keep_w] = 0

        return Image.fromarray(feather_mask(mask, feather))

    def build_preview(self, image: Image.Image, layout: CanvasLayout) -> Image.Image:
        """Light grey canvas with the original placed and the areas to synthesize outlined."""
        canvas = RasterCanvas.new((layout.final_width, layout.final_height), Config.PREVIEW_BACKGROUND)
        canvas.draw_image(
            image.convert("RGB"),
            (layout.original_x, layout.original_y),
            size=(layout.original_width, layout.original_height),
        )

        x1, y1, x2, y2 = layout.placement
        fw, fh = layout.final_width, layout.final_height
        color = Config.PREVIEW_OUTLINE
        inset = 2
        areas = []
        if x1 > 0:
            areas.append((inset, y1 + inset, x1 - inset, y2 - inset))
        if x2 < fw:
            areas.append((x2 + inset, y1 + inset, fw - inset, y2 - inset))
        if y1 > 0:
            areas.append((x1 + inset, inset, x2 - inset, y1 - inset))
        if y2 < fh:
            areas.append((x1 + inset, y2 + inset, x2 - inset, fh - inset))
        for box in areas:
            if box[2] > box[0] and box[3] > box[1]:
                canvas.dashed_rect(box, color, width=2)
        return canvas.image
