"""Focal point search strategies.

Strategies run in priority order; the first whose best candidate clears
its confidence floor wins. All coordinates here are in working
(downsampled) resolution.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np

from ..config import PERMISSIVE_SKIN, STRICT_SKIN, Config, ScoringWeights
from . import region as metrics

logger = logging.getLogger("smartframe.detection.strategies")


@dataclass(frozen=True)
class Candidate:
    x: int
    y: int
    score: float


@dataclass
class ScanContext:
    """Working-resolution image plus everything a strategy needs to score it."""
    pixels: np.ndarray
    weights: ScoringWeights
    sensitivity: float = 1.0
    step: int = field(init=False)
    window: int = field(init=False)

    def __post_init__(self) -> None:
        h, w = self.pixels.shape[:2]
        self.step = max(Config.SCAN_MIN_STEP, min(w, h) // Config.SCAN_STEP_DIVISOR)
        self.window = self.step * Config.SCAN_WINDOW_MULTIPLIER

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def margin(self) -> int:
        return self.window // 2

    @property
    def edge_threshold(self) -> float:
        return self.weights.edge_threshold / self.sensitivity

    def positions(self, step: int | None = None) -> Iterator[tuple[int, int]]:
        step = step or self.step
        for y in range(self.margin, self.height - self.margin, step):
            for x in range(self.margin, self.width - self.margin, step):
                yield x, y

    def region(self, x: int, y: int) -> np.ndarray:
        return metrics.extract_region(self.pixels, x, y, self.window)

    def composition_multiplier(self, y: int) -> float:
        if y < self.height * self.weights.composition_band:
            return self.weights.composition_bonus
        return 1.0

    def edge_penalty(self, x: int, y: int) -> float:
        """Smooth ramp from ``edge_penalty_floor`` at the scan margin to 1.0 inside."""
        distance = min(x, self.width - x, y, self.height - y) - self.margin
        reach = self.step * self.weights.edge_penalty_steps
        t = min(1.0, max(0.0, distance / reach)) if reach > 0 else 1.0
        floor = self.weights.edge_penalty_floor
        return floor + (1.0 - floor) * t


class Strategy:
    """Base class: find the best candidate and declare a confidence floor."""

    name = "strategy"

    def floor(self, ctx: ScanContext) -> float:
        return 0.0

    def find(self, ctx: ScanContext) -> Candidate | None:
        raise NotImplementedError

    def accepts(self, candidate: Candidate | None, ctx: ScanContext) -> bool:
        return candidate is not None and candidate.score > 0 and candidate.score >= self.floor(ctx)


class WindowScanStrategy(Strategy):
    """Grid scan with a local refinement pass around the coarse best."""

    def score_at(self, ctx: ScanContext, x: int, y: int) -> float:
        raise NotImplementedError

    def rank(self, ctx: ScanContext) -> list[Candidate]:
        """All coarse grid candidates, best first."""
        candidates = [Candidate(x, y, self.score_at(ctx, x, y)) for x, y in ctx.positions()]
        return sorted(candidates, key=lambda c: c.score, reverse=True)

    def find(self, ctx: ScanContext) -> Candidate | None:
        ranked = self.rank(ctx)
        if not ranked:
            return None

        if logger.isEnabledFor(logging.DEBUG):
            for i, c in enumerate(ranked[:3], 1):
                logger.debug("%s candidate %d: (%d, %d) score %.2f", self.name, i, c.x, c.y, c.score)

        return self.refine(ctx, ranked[0])

    def refine(self, ctx: ScanContext, best: Candidate) -> Candidate:
        fine = max(1, ctx.step // ctx.weights.refine_divisor)
        if fine >= ctx.step:
            return best
        lo_x, hi_x = ctx.margin, ctx.width - ctx.margin
        lo_y, hi_y = ctx.margin, ctx.height - ctx.margin
        for y in range(best.y - ctx.step + fine, best.y + ctx.step, fine):
            if not lo_y <= y < hi_y:
                continue
            for x in range(best.x - ctx.step + fine, best.x + ctx.step, fine):
                if not lo_x <= x < hi_x:
                    continue
                score = self.score_at(ctx, x, y)
                if score > best.score:
                    best = Candidate(x, y, score)
        return best


class GeneralScanStrategy(WindowScanStrategy):
    """Weighted skin/contrast/edge/variance scan over the whole image."""

    name = "general"

    def __init__(self, protect_faces: bool = False) -> None:
        self.protect_faces = protect_faces

    def score_at(self, ctx: ScanContext, x: int, y: int) -> float:
        w = ctx.weights
        window = ctx.region(x, y)

        skin = metrics.skin_score(window, PERMISSIVE_SKIN)
        contrast = metrics.contrast(window)
        edges = metrics.edge_density(window, threshold=ctx.edge_threshold)
        variance = metrics.color_variance(window)

        skin_weight = w.protect_faces_skin if self.protect_faces else w.skin
        contrast_weight, edge_weight = w.contrast, w.edge
        if skin < w.low_skin_fraction:
            # Likely an object or product rather than a person
            contrast_weight *= w.object_boost
            edge_weight *= w.object_boost

        score = (
            skin * skin_weight
            + contrast * contrast_weight
            + edges * edge_weight
            + variance * w.variance
        )
        return score * ctx.composition_multiplier(y) * ctx.edge_penalty(x, y)


class PersonStrategy(WindowScanStrategy):
    """Tight skin thresholds plus a face-likeness term."""

    name = "person"

    def floor(self, ctx: ScanContext) -> float:
        return ctx.weights.person_floor / ctx.sensitivity

    def score_at(self, ctx: ScanContext, x: int, y: int) -> float:
        w = ctx.weights
        window = ctx.region(x, y)
        skin = metrics.skin_score(window, STRICT_SKIN)
        if skin == 0:
            return 0.0
        face = metrics.face_likeness(window, STRICT_SKIN, w.face_brightness_range)
        score = skin * w.person_skin + face * w.person_face
        return score * ctx.composition_multiplier(y) * ctx.edge_penalty(x, y)


class CompositionStrategy(Strategy):
    """Score the rule-of-thirds intersections and the center."""

    name = "composition"

    def floor(self, ctx: ScanContext) -> float:
        return ctx.weights.composition_floor / ctx.sensitivity

    def points(self, ctx: ScanContext) -> list[tuple[int, int]]:
        w, h = ctx.width, ctx.height
        raw = [
            (w / 3, h / 3), (2 * w / 3, h / 3),
            (w / 3, 2 * h / 3), (2 * w / 3, 2 * h / 3),
            (w / 2, h / 2),
        ]
        lo_x, hi_x = ctx.margin, max(ctx.margin, w - ctx.margin - 1)
        lo_y, hi_y = ctx.margin, max(ctx.margin, h - ctx.margin - 1)
        return [
            (int(min(hi_x, max(lo_x, px))), int(min(hi_y, max(lo_y, py))))
            for px, py in raw
        ]

    def find(self, ctx: ScanContext) -> Candidate | None:
        w = ctx.weights
        best: Candidate | None = None
        for x, y in self.points(ctx):
            window = ctx.region(x, y)
            score = (
                metrics.contrast(window) * w.composition_contrast
                + metrics.edge_density(window, threshold=ctx.edge_threshold) * w.composition_edge
                + metrics.brightness(window) * w.composition_brightness
            ) * ctx.composition_multiplier(y)
            if best is None or score > best.score:
                best = Candidate(x, y, score)
        return best


class SecondaryScan:
    """Look for a non-person object away from the primary point."""

    def exclusion_radius(self, ctx: ScanContext) -> float:
        return Config.SECONDARY_EXCLUSION_FRACTION * min(ctx.width, ctx.height)

    def floor(self, ctx: ScanContext) -> float:
        return ctx.weights.secondary_floor / ctx.sensitivity

    def score_at(self, ctx: ScanContext, x: int, y: int) -> float:
        w = ctx.weights
        window = ctx.region(x, y)
        skin = metrics.skin_score(window, PERMISSIVE_SKIN)
        score = (
            metrics.contrast(window) * w.secondary_contrast
            + metrics.edge_density(window, threshold=ctx.edge_threshold) * w.secondary_edge
            + metrics.color_variance(window) * w.secondary_variance
            + (1.0 - skin) * w.secondary_non_skin
        )
        return score * ctx.edge_penalty(x, y)

    def find(self, ctx: ScanContext, primary: Candidate) -> Candidate | None:
        radius = self.exclusion_radius(ctx)
        best: Candidate | None = None
        for x, y in ctx.positions():
            if math.hypot(x - primary.x, y - primary.y) < radius:
                continue
            score = self.score_at(ctx, x, y)
            if best is None or score > best.score:
                best = Candidate(x, y, score)

        if best is None or best.score < self.floor(ctx):
            logger.debug("No secondary focal point above %.2f", self.floor(ctx))
            return None
        return best


def strategy_chain(protect_faces: bool) -> list[Strategy]:
    """Ordered strategies for one scan."""
    if protect_faces:
        return [PersonStrategy(), CompositionStrategy(), GeneralScanStrategy(protect_faces=True)]
    return [GeneralScanStrategy()]
