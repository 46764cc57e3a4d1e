"""SmartFrame orchestrator: smart crop and outpaint preparation/protection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from PIL import Image, ImageDraw

from .composition import OutpaintCanvasBuilder, plan_crop, recompose, render_crop
from .config import DEFAULT_WEIGHTS, Config, ScoringWeights
from .detection import FocalPointCache, FocalPointScanner, new_batch_id
from .enums import CanvasStyle, MaskStrategy
from .exceptions import ImageLoadError
from .models import CanvasLayout, CropPlan, FocalPoint, OutpaintCanvas, OutpaintResult, SmartCropResult
from .parser import load_image, load_synthesized_image
from .validators import parse_ratio, target_dimensions, validate_gravity, validate_sensitivity

logger = logging.getLogger("smartframe.pipeline")


@dataclass
class CropOptions:
    """User-chosen smart crop parameters."""
    sensitivity: int = Config.DEFAULT_SENSITIVITY
    protect_faces: bool = False
    dual_mode: bool = False
    batch_consistency: bool = False
    is_first_in_batch: bool = True
    batch_id: str | None = None


class SmartFrameEngine:
    """Main engine tying focal point detection to cropping and outpainting.

    Usage:
        with SmartFrameEngine() as engine:
            result = engine.smart_crop("photo.jpg", "4:5", width=1080)
            png = result.to_png()
    """

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        cache: FocalPointCache | None = None,
        canvas_builder: OutpaintCanvasBuilder | None = None,
    ) -> None:
        self.cache = cache if cache is not None else FocalPointCache()
        self.scanner = FocalPointScanner(weights=weights, cache=self.cache)
        self.canvas_builder = canvas_builder or OutpaintCanvasBuilder()

    def start(self) -> None:
        """Start periodic expiry of batch cache entries."""
        self.cache.start_sweeper()

    def close(self) -> None:
        self.cache.stop_sweeper()

    def __enter__(self) -> SmartFrameEngine:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Smart crop

    def detect(self, image: object, options: CropOptions | None = None) -> FocalPoint:
        """Run focal point detection only."""
        options = options or CropOptions()
        img = load_image(image)
        batch_id = options.batch_id if options.batch_consistency else None
        return self.scanner.scan(
            img,
            sensitivity=validate_sensitivity(options.sensitivity),
            protect_faces=options.protect_faces,
            dual_mode=options.dual_mode,
            batch_id=batch_id,
            use_cached=bool(batch_id) and not options.is_first_in_batch,
        )

    def smart_crop(
        self,
        image: object,
        ratio: str | float,
        width: int = Config.DEFAULT_OUTPUT_WIDTH,
        options: CropOptions | None = None,
    ) -> SmartCropResult:
        """Crop (or expand) an image to ``ratio`` around its focal point.

        Args:
            image: Path, bytes, stream or PIL image.
            ratio: Target ratio, e.g. ``"4:5"`` or ``0.8``.
            width: Output width in pixels; height follows from the ratio.
            options: Detection and batch options.

        Returns:
            SmartCropResult at exactly (width, round(width / ratio)).

        Raises:
            ParseError: If the image cannot be decoded.
            ValidationError: If ratio, width or sensitivity is invalid.
        """
        options = options or CropOptions()
        target_ratio = parse_ratio(ratio)
        output_size = target_dimensions(width, target_ratio)
        img = load_image(image)

        focal_point = self.detect(img, options)
        if not options.dual_mode and focal_point.secondary is not None:
            # A batch point cached by a dual-mode run may carry a secondary
            focal_point = replace(focal_point, secondary=None)
        plan = plan_crop(img.width, img.height, target_ratio, focal_point, output_size=output_size)
        rendered = render_crop(img, plan)

        logger.info(
            "Smart crop %dx%d -> %dx%d (%s, focal point (%d, %d) score %.2f)",
            img.width, img.height, *rendered.size, plan.mode.value,
            focal_point.x, focal_point.y, focal_point.score,
        )
        batch_id = options.batch_id if options.batch_consistency else None
        return SmartCropResult(rendered, plan, focal_point, batch_id)

    def batch_smart_crop(
        self,
        images: list[object],
        ratio: str | float,
        width: int = Config.DEFAULT_OUTPUT_WIDTH,
        options: CropOptions | None = None,
    ) -> list[SmartCropResult]:
        """Smart crop several images, optionally sharing the first image's focal point.

        Images are processed in order so the first image's focal point is
        cached before any later image reads it. Images that fail are
        logged and skipped.
        """
        options = options or CropOptions()
        if options.batch_consistency and not options.batch_id:
            options = replace(options, batch_id=new_batch_id())

        results: list[SmartCropResult] = []
        for index, image in enumerate(images):
            per_image = replace(options, is_first_in_batch=index == 0)
            try:
                results.append(self.smart_crop(image, ratio, width, per_image))
            except Exception as e:
                logger.error("Error processing image %d: %s", index, e, exc_info=True)

        return results

    # Outpaint

    def prepare_outpaint(
        self,
        image: object,
        ratio: str | float,
        gravity: str = "center",
        style: CanvasStyle | str = CanvasStyle.SEEDED,
        mask_strategy: MaskStrategy | str = MaskStrategy.CONSERVATIVE,
        feather: int | None = None,
    ) -> OutpaintCanvas:
        """Build the canvas and mask to send to a synthesis service.

        Raises:
            ParseError: If the image cannot be decoded.
            ValidationError: If ratio or gravity is invalid.
        """
        img = load_image(image)
        return self.canvas_builder.build(
            img,
            parse_ratio(ratio),
            validate_gravity(gravity),
            style=CanvasStyle(style),
            mask_strategy=MaskStrategy(mask_strategy),
            feather=feather,
        )

    def finalize_outpaint(
        self,
        synthesized: object,
        original: object,
        layout: CanvasLayout | dict,
        feather: int = Config.RECOMPOSE_FEATHER,
    ) -> OutpaintResult:
        """Protect the original pixels inside a synthesized result.

        If the synthesized image cannot be loaded, the result carries no
        image and ``protected=False``; the caller should then use
        ``result.source`` directly.
        """
        if isinstance(layout, dict):
            layout = CanvasLayout.from_dict(layout)
        original_image = load_image(original)

        try:
            synthesized_image = load_synthesized_image(synthesized)
        except ImageLoadError as e:
            logger.warning("Could not load synthesized image, returning it unprotected: %s", e)
            return OutpaintResult(
                image=None,
                source=synthesized,
                protected=False,
                error=str(e),
                warnings=["Result could not be protected; original pixels may have changed."],
            )

        image = recompose(synthesized_image, original_image, layout, feather)
        return OutpaintResult(image=image, source=synthesized, protected=True)

    # Preview

    @staticmethod
    def get_preview_image(image: Image.Image, focal_point: FocalPoint, plan: CropPlan | None = None) -> Image.Image:
        """Source image with the crop rectangle and focal point(s) drawn on it."""
        preview = image.convert("RGB").copy()
        draw = ImageDraw.Draw(preview)
        marker = max(4, min(preview.size) // 60)

        if plan is not None:
            draw.rectangle(plan.crop.to_tuple(), outline=Config.PREVIEW_OUTLINE, width=max(2, marker // 2))

        points = [(focal_point, (255, 64, 64))]
        if focal_point.secondary is not None:
            points.append((focal_point.secondary, (64, 128, 255)))
        for point, color in points:
            x, y = point.x, point.y
            draw.ellipse((x - marker, y - marker, x + marker, y + marker), outline=color, width=2)
            draw.line((x - 2 * marker, y, x + 2 * marker, y), fill=color, width=2)
            draw.line((x, y - 2 * marker, x, y + 2 * marker), fill=color, width=2)

        return preview
