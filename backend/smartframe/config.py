"""Global configuration for SmartFrame."""

from __future__ import annotations

from dataclasses import dataclass, replace

from PIL import Image


class Config:
    """Global configuration."""

    # Processing limits
    MAX_IMAGE_SIZE = 8192
    MIN_IMAGE_SIZE = 10

    # Focal point scan (working resolution, grid)
    SCAN_MAX_WIDTH = 600
    SCAN_MAX_HEIGHT = 400
    SCAN_MIN_STEP = 4
    SCAN_STEP_DIVISOR = 30  # step = min(w, h) / divisor
    SCAN_WINDOW_MULTIPLIER = 3  # window = step * multiplier

    # Sensitivity (integer scale, midpoint is neutral)
    DEFAULT_SENSITIVITY = 5
    MIN_SENSITIVITY = 1
    MAX_SENSITIVITY = 10

    # Crop planning
    RATIO_EPSILON = 0.01
    DUAL_SPAN_FRACTION = 0.8  # both points must fit in 80% of the crop
    SECONDARY_EXCLUSION_FRACTION = 0.2
    DEFAULT_OUTPUT_WIDTH = 1080
    EXPAND_BLUR_RADIUS = 10

    # Outpaint canvas (provider-supported range)
    CANVAS_MIN_DIM = 512
    CANVAS_MAX_DIM = 1800  # conservative; providers accept up to 4096
    PROVIDER_MAX_DIM = 4096
    CANVAS_BLOCK_SIZE = 8
    SEEDED_BACKGROUND = (248, 248, 248)
    FILL_BACKGROUND = (192, 192, 192)
    PREVIEW_BACKGROUND = (240, 240, 240)
    PREVIEW_OUTLINE = (76, 175, 80)
    EDGE_HINT_ALPHA = 0.3
    MASK_FEATHER = 8
    FILL_MASK_FEATHER = 4

    # Protective recomposition
    RECOMPOSE_FEATHER = 16
    DOWNLOAD_TIMEOUT = 30  # seconds

    # Batch consistency cache
    BATCH_CACHE_TTL = 600  # seconds
    BATCH_CACHE_SWEEP_INTERVAL = 60  # seconds

    # Quality
    RESIZE_QUALITY = Image.Resampling.LANCZOS
    GAMMA = 2.2


def sensitivity_factor(sensitivity: int) -> float:
    """Map the 1-10 sensitivity scale onto a multiplier (5 -> 1.0)."""
    return max(Config.MIN_SENSITIVITY, sensitivity) / Config.DEFAULT_SENSITIVITY


@dataclass(frozen=True)
class SkinThresholds:
    """Pixel-level skin classification thresholds.

    A pixel counts as skin when any one of the RGB, HSV, YCbCr or warmth
    tests passes. ``warmth_enabled`` turns the loose fallback test off for
    the person-oriented sub-scan.
    """

    # RGB dominance
    rgb_min: tuple[int, int, int] = (60, 30, 15)
    rgb_min_range: int = 10
    rgb_min_rg_diff: int = 8

    # HSV (hue in degrees, saturation/value in 0..1)
    hue_bands: tuple[tuple[int, int], ...] = ((0, 60), (300, 360))
    sat_range: tuple[float, float] = (0.15, 0.8)
    min_value: float = 0.2

    # YCbCr box
    cb_range: tuple[float, float] = (70.0, 135.0)
    cr_range: tuple[float, float] = (133.0, 180.0)

    # Loose warm-colour fallback
    warmth_enabled: bool = True
    warmth_min_red: int = 80
    warmth_rg_over_b: float = 1.5


PERMISSIVE_SKIN = SkinThresholds()

STRICT_SKIN = SkinThresholds(
    rgb_min=(95, 40, 20),
    rgb_min_range=15,
    rgb_min_rg_diff=15,
    hue_bands=((0, 50),),
    sat_range=(0.23, 0.68),
    min_value=0.0,
    cb_range=(77.0, 127.0),
    cr_range=(133.0, 173.0),
    warmth_enabled=False,
)


@dataclass(frozen=True)
class ScoringWeights:
    """Versioned weight set for the focal point scanner.

    All values are empirically tuned defaults, not derived constants.
    Pass a different instance to ``FocalPointScanner`` to re-tune.
    """

    version: str = "2024.1"

    # General scan
    skin: float = 10.0
    contrast: float = 5.0
    edge: float = 3.0
    variance: float = 2.0
    protect_faces_skin: float = 14.0
    low_skin_fraction: float = 0.15
    object_boost: float = 1.5
    edge_threshold: int = 20

    # Composition bonus (fraction of height counted as upper/middle)
    composition_bonus: float = 1.4
    composition_band: float = 0.5

    # Border penalty: floor multiplier at the border, ramps to 1.0
    edge_penalty_floor: float = 0.7
    edge_penalty_steps: float = 2.0

    # Refinement pass
    refine_divisor: int = 3

    # Person sub-scan
    person_skin: float = 10.0
    person_face: float = 4.0
    person_floor: float = 6.0
    face_brightness_range: tuple[float, float] = (0.15, 0.75)

    # Rule-of-thirds composition fallback
    composition_contrast: float = 4.0
    composition_edge: float = 3.0
    composition_brightness: float = 1.0
    composition_floor: float = 2.5

    # Secondary (object) scan
    secondary_contrast: float = 4.0
    secondary_edge: float = 4.0
    secondary_variance: float = 3.0
    secondary_non_skin: float = 2.0
    secondary_floor: float = 3.0

    def replace(self, **changes: object) -> ScoringWeights:
        """Return a copy with ``changes`` applied and a derived version tag."""
        version = str(changes.pop("version", f"{self.version}+custom"))
        return replace(self, version=version, **changes)


DEFAULT_WEIGHTS = ScoringWeights()
