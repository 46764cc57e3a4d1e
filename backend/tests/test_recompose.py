"""Tests for protective recomposition."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from backend.smartframe.composition import radial_alpha_mask, recompose
from backend.smartframe.exceptions import CompositionError
from backend.smartframe.models import CanvasLayout

RED = (220, 20, 20)
BLUE = (20, 20, 220)


class TestRadialAlphaMask:
    def test_center_opaque_corners_transparent(self) -> None:
        mask = radial_alpha_mask(100, 100, 16)
        assert mask.mode == "L"
        assert mask.size == (100, 100)
        assert mask.getpixel((50, 50)) == 255
        assert mask.getpixel((0, 0)) == 0

    def test_linear_fade_in_rim(self) -> None:
        mask = np.asarray(radial_alpha_mask(100, 100, 16))
        row = mask[50, 50:]
        assert (np.diff(row.astype(int)) <= 0).all()
        assert 0 < mask[50, 92] < 255

    def test_zero_feather_is_hard_disc(self) -> None:
        mask = np.asarray(radial_alpha_mask(60, 40, 0))
        assert set(np.unique(mask)) <= {0, 255}
        assert mask[20, 30] == 255

    def test_feather_wider_than_radius_keeps_center_opaque(self) -> None:
        mask = radial_alpha_mask(20, 20, 500)
        assert mask.getpixel((10, 10)) == 255

    def test_single_pixel(self) -> None:
        assert radial_alpha_mask(1, 1, 16).getpixel((0, 0)) == 255

    def test_radius_follows_shorter_side(self) -> None:
        mask = np.asarray(radial_alpha_mask(200, 50, 0))
        assert mask[25, 100] == 255
        assert mask[25, 10] == 0


class TestRecompose:
    def setup_method(self) -> None:
        self.synth = Image.new("RGB", (400, 200), BLUE)
        self.original = Image.new("RGB", (200, 200), RED)
        self.layout = CanvasLayout(400, 200, 100, 0, 200, 200)

    def test_center_restored_exactly(self) -> None:
        out = recompose(self.synth, self.original, self.layout, feather=16)
        assert out.size == (400, 200)
        assert out.getpixel((200, 100)) == RED

    def test_synthesized_area_untouched(self) -> None:
        out = recompose(self.synth, self.original, self.layout, feather=16)
        assert out.getpixel((10, 100)) == BLUE
        assert out.getpixel((390, 100)) == BLUE
        # Placement corner lies outside the disc
        assert out.getpixel((101, 1)) == BLUE

    def test_rim_is_blended(self) -> None:
        out = recompose(self.synth, self.original, self.layout, feather=16)
        r, _, b = out.getpixel((290, 100))
        assert 20 < r < 220 and 20 < b < 220

    def test_does_not_modify_inputs(self) -> None:
        recompose(self.synth, self.original, self.layout)
        assert self.synth.getpixel((200, 100)) == BLUE

    def test_rescales_when_synthesized_size_differs(self) -> None:
        synth = Image.new("RGB", (800, 400), BLUE)
        out = recompose(synth, self.original, self.layout, feather=16)
        assert out.size == (800, 400)
        assert out.getpixel((400, 200)) == RED
        assert out.getpixel((100, 200)) == BLUE

    def test_empty_placement_rejected(self) -> None:
        with pytest.raises(CompositionError):
            recompose(self.synth, self.original, CanvasLayout(400, 200, 100, 0, 0, 200))

    def test_rgba_synthesized_input(self) -> None:
        synth = Image.new("RGBA", (400, 200), BLUE + (255,))
        out = recompose(synth, self.original, self.layout)
        assert out.mode == "RGB"
        assert out.getpixel((200, 100)) == RED
