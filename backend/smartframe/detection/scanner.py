"""Focal point scanner: heuristic "where is the subject" search."""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from ..config import DEFAULT_WEIGHTS, Config, ScoringWeights, sensitivity_factor
from ..exceptions import DetectionError
from ..models import FocalPoint
from . import region as metrics
from .cache import FocalPointCache
from .strategies import Candidate, GeneralScanStrategy, ScanContext, SecondaryScan, strategy_chain

logger = logging.getLogger("smartframe.detection.scanner")


def working_pixels(image: Image.Image | np.ndarray) -> np.ndarray:
    """Downsample to fit the scan resolution cap and return an RGB uint8 array."""
    if isinstance(image, np.ndarray):
        image = Image.fromarray(image.astype(np.uint8))
    if image.mode != "RGB":
        image = image.convert("RGB")

    w, h = image.size
    scale = min(Config.SCAN_MAX_WIDTH / w, Config.SCAN_MAX_HEIGHT / h, 1.0)
    if scale < 1.0:
        size = (max(1, round(w * scale)), max(1, round(h * scale)))
        image = image.resize(size, Image.Resampling.BILINEAR)
    return np.asarray(image, dtype=np.uint8)


class FocalPointScanner:
    """Locates the most interesting point of an image without any model.

    The scan never raises for a well-formed raster: any internal failure
    yields the image center with score 0.

    Args:
        weights: Scoring weight set. Swap it to re-tune the heuristics.
        cache: Optional batch cache for consistency across a set of images.
    """

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        cache: FocalPointCache | None = None,
    ) -> None:
        self.weights = weights
        self.cache = cache

    def scan(
        self,
        image: Image.Image | np.ndarray,
        width: int | None = None,
        height: int | None = None,
        sensitivity: int = Config.DEFAULT_SENSITIVITY,
        protect_faces: bool = False,
        dual_mode: bool = False,
        batch_id: str | None = None,
        use_cached: bool = False,
    ) -> FocalPoint:
        """Find the focal point of ``image``.

        Args:
            image: Source raster (PIL image or ``(h, w, 3)`` array).
            width: Original image width; defaults to the image's own width.
            height: Original image height; defaults to the image's own height.
            sensitivity: 1-10, higher accepts weaker candidates.
            protect_faces: Run the person sub-scan first and weight skin heavily.
            dual_mode: Also look for a secondary, non-person subject.
            batch_id: Batch identifier for consistency caching.
            use_cached: Return the batch's cached point if there is one.

        Returns:
            FocalPoint in original-image coordinates. With a ``batch_id``
            this is always the value stored for the batch, which may come
            from another image scanned first.
        """
        if width is None or height is None:
            size = image.size if isinstance(image, Image.Image) else (image.shape[1], image.shape[0])
            width = width or size[0]
            height = height or size[1]

        if batch_id and self.cache is not None:
            if use_cached:
                cached = self.cache.get(batch_id)
                if cached is not None:
                    logger.info("Reusing batch focal point for %s: (%d, %d)", batch_id, cached.x, cached.y)
                    return cached
            # Concurrent scans of one batch wait for the first computation
            return self.cache.get_or_compute(
                batch_id,
                lambda: self._scan_or_center(image, width, height, sensitivity, protect_faces, dual_mode),
            )
        return self._scan_or_center(image, width, height, sensitivity, protect_faces, dual_mode)

    def _scan_or_center(
        self,
        image: Image.Image | np.ndarray,
        width: int,
        height: int,
        sensitivity: int,
        protect_faces: bool,
        dual_mode: bool,
    ) -> FocalPoint:
        try:
            return self._detect(image, width, height, sensitivity, protect_faces, dual_mode)
        except DetectionError as e:
            logger.info("No focal point found (%s), using image center", e)
        except Exception as e:
            logger.warning("Focal point detection failed, using image center: %s", e, exc_info=True)
        return FocalPoint.center_of(width, height)

    def top_candidates(self, image: Image.Image | np.ndarray, n: int = 3) -> list[Candidate]:
        """Best ``n`` coarse general-scan candidates in working coordinates."""
        ctx = ScanContext(working_pixels(image), self.weights)
        return GeneralScanStrategy().rank(ctx)[:n]

    def _detect(
        self,
        image: Image.Image | np.ndarray,
        width: int,
        height: int,
        sensitivity: int,
        protect_faces: bool,
        dual_mode: bool,
    ) -> FocalPoint:
        pixels = working_pixels(image)
        lum = metrics.luminance(metrics.as_pixels(pixels))
        if lum.size == 0 or float(lum.max() - lum.min()) == 0.0:
            logger.info("Flat image, using center point")
            return FocalPoint.center_of(width, height)

        ctx = ScanContext(pixels, self.weights, sensitivity_factor(sensitivity))

        chosen: Candidate | None = None
        for strategy in strategy_chain(protect_faces):
            candidate = strategy.find(ctx)
            if strategy.accepts(candidate, ctx):
                logger.debug("Strategy %s accepted (%d, %d) score %.2f",
                             strategy.name, candidate.x, candidate.y, candidate.score)
                chosen = candidate
                break
            logger.debug("Strategy %s below floor %.2f", strategy.name, strategy.floor(ctx))

        if chosen is None:
            raise DetectionError("no candidate cleared its confidence floor")

        sx = width / ctx.width
        sy = height / ctx.height
        secondary = None
        if dual_mode:
            other = SecondaryScan().find(ctx, chosen)
            if other is not None:
                secondary = self._to_original(other, sx, sy, width, height)

        primary = self._to_original(chosen, sx, sy, width, height)
        return FocalPoint(primary.x, primary.y, primary.score, secondary=secondary)

    @staticmethod
    def _to_original(candidate: Candidate, sx: float, sy: float, width: int, height: int) -> FocalPoint:
        x = min(width - 1, max(0, int(candidate.x * sx)))
        y = min(height - 1, max(0, int(candidate.y * sy)))
        return FocalPoint(x, y, round(float(candidate.score), 4))
