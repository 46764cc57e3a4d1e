"""Minimal raster canvas used by the composition steps."""

from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from .resize import high_quality_resize

Color = tuple[int, int, int] | int


class RasterCanvas:
    """Thin wrapper over a PIL image exposing the few drawing operations
    the crop and outpaint steps need.

    Usage:
        canvas = RasterCanvas.new((1080, 1350), (248, 248, 248))
        canvas.draw_image(photo, (0, 175))
        canvas.fill_rect((0, 0, 1080, 20), (120, 90, 60), alpha=0.3)
        png = canvas.image
    """

    def __init__(self, image: Image.Image) -> None:
        self.image = image

    @classmethod
    def new(cls, size: tuple[int, int], color: Color = (255, 255, 255), mode: str = "RGB") -> RasterCanvas:
        return cls(Image.new(mode, (int(size[0]), int(size[1])), color))

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def fill_rect(self, box: tuple[int, int, int, int], color: Color, alpha: float = 1.0) -> RasterCanvas:
        """Fill ``box`` (x1, y1, x2, y2) with ``color`` blended at ``alpha``."""
        x1, y1, x2, y2 = (int(v) for v in box)
        x1, y1 = max(0, x1), max(0, y1)
        x2, y2 = min(self.width, x2), min(self.height, y2)
        if x2 <= x1 or y2 <= y1 or alpha <= 0:
            return self

        if alpha >= 1.0:
            self.image.paste(color, (x1, y1, x2, y2))
            return self

        region = self.image.crop((x1, y1, x2, y2))
        overlay = Image.new(self.image.mode, region.size, color)
        self.image.paste(Image.blend(region, overlay, alpha), (x1, y1))
        return self

    def draw_image(
        self,
        image: Image.Image,
        offset: tuple[int, int],
        size: tuple[int, int] | None = None,
        mask: Image.Image | None = None,
    ) -> RasterCanvas:
        """Paste ``image`` at ``offset``, optionally resized and alpha-masked.

        Parts falling outside the canvas are clipped.
        """
        if size is not None and tuple(size) != image.size:
            image = high_quality_resize(image, size)
        if image.mode != self.image.mode:
            if mask is None and image.mode == "RGBA":
                mask = image.getchannel("A")
            image = image.convert(self.image.mode)
        self.image.paste(image, (int(offset[0]), int(offset[1])), mask)
        return self

    def dashed_rect(
        self,
        box: tuple[int, int, int, int],
        color: Color,
        width: int = 3,
        dash: int = 10,
    ) -> RasterCanvas:
        """Outline ``box`` with a dashed line."""
        x1, y1, x2, y2 = (int(v) for v in box)
        x2, y2 = x2 - 1, y2 - 1
        draw = ImageDraw.Draw(self.image)
        for x in range(x1, x2, dash * 2):
            end = min(x + dash, x2)
            draw.line([(x, y1), (end, y1)], fill=color, width=width)
            draw.line([(x, y2), (end, y2)], fill=color, width=width)
        for y in range(y1, y2, dash * 2):
            end = min(y + dash, y2)
            draw.line([(x1, y), (x1, end)], fill=color, width=width)
            draw.line([(x2, y), (x2, end)], fill=color, width=width)
        return self

    def blur(self, radius: float) -> RasterCanvas:
        if radius > 0:
            self.image = self.image.filter(ImageFilter.GaussianBlur(radius=radius))
        return self

    def pixels(self) -> np.ndarray:
        return np.asarray(self.image)

    def copy(self) -> RasterCanvas:
        return RasterCanvas(self.image.copy())
