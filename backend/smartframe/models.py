"""Data structures for SmartFrame."""

from __future__ import annotations

from dataclasses import dataclass, field

from PIL import Image as PILImage

from .enums import CropMode, Gravity
from .parser import encode_png


@dataclass(frozen=True)
class FocalPoint:
    """Most interesting point of an image, in original-image pixels.

    ``score`` is an unbounded heuristic confidence; 0 marks the
    center-of-image fallback.
    """
    x: int
    y: int
    score: float
    secondary: FocalPoint | None = None

    @classmethod
    def center_of(cls, width: int, height: int) -> FocalPoint:
        return cls(x=width // 2, y=height // 2, score=0.0)

    @property
    def is_fallback(self) -> bool:
        return self.score == 0


@dataclass
class CropRect:
    """Crop rectangle in original-image coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0

    def to_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.x2, self.y2)


@dataclass
class ExpansionLayout:
    """Placement of an upscaled original over a blurred full-bleed background."""
    scaled_width: int
    scaled_height: int
    left: int
    top: int
    output_width: int
    output_height: int


@dataclass
class CropPlan:
    """Output of the crop planner."""
    mode: CropMode
    crop: CropRect
    output_size: tuple[int, int]
    expansion: ExpansionLayout | None = None
    used_secondary: bool = False


@dataclass
class CanvasLayout:
    """Where the source image sits inside an expanded canvas."""
    final_width: int
    final_height: int
    original_x: int
    original_y: int
    original_width: int
    original_height: int

    @property
    def placement(self) -> tuple[int, int, int, int]:
        return (
            self.original_x,
            self.original_y,
            self.original_x + self.original_width,
            self.original_y + self.original_height,
        )

    @property
    def center(self) -> tuple[float, float]:
        return (
            self.original_x + self.original_width / 2,
            self.original_y + self.original_height / 2,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "final_width": self.final_width,
            "final_height": self.final_height,
            "original_x": self.original_x,
            "original_y": self.original_y,
            "original_width": self.original_width,
            "original_height": self.original_height,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CanvasLayout:
        return cls(**{k: int(data[k]) for k in cls.__dataclass_fields__})


@dataclass
class OutpaintCanvas:
    """Synthesis-ready canvas, its inpainting mask and the placement used."""
    canvas: PILImage.Image
    mask: PILImage.Image
    layout: CanvasLayout
    gravity: Gravity = Gravity.CENTER
    expand_direction: str = "none"


@dataclass
class SmartCropResult:
    """Final smart crop output."""
    image: PILImage.Image
    plan: CropPlan
    focal_point: FocalPoint
    batch_id: str | None = None

    @property
    def output_size(self) -> tuple[int, int]:
        return self.image.size

    def to_png(self) -> bytes:
        return encode_png(self.image)


@dataclass
class OutpaintResult:
    """Outcome of protective recomposition.

    When the synthesized image could not be loaded, ``image`` is None,
    ``protected`` is False and the caller should use ``source`` as is.
    """
    image: PILImage.Image | None
    source: object
    protected: bool
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
