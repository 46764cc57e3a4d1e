"""Tests for pixel region metrics."""

from __future__ import annotations

import numpy as np
import pytest

from backend.smartframe.config import PERMISSIVE_SKIN, STRICT_SKIN
from backend.smartframe.detection.region import (
    brightness,
    color_variance,
    contrast,
    edge_density,
    extract_region,
    face_likeness,
    rgb_to_hsv,
    skin_mask,
    skin_score,
)


def _block(color: tuple[int, int, int], w: int = 10, h: int = 10) -> np.ndarray:
    return np.full((h, w, 3), color, dtype=np.uint8)


class TestEmptyRegion:
    @pytest.mark.parametrize("metric", [skin_score, contrast, edge_density, color_variance, brightness])
    def test_empty_region_scores_zero(self, metric) -> None:
        assert metric(np.zeros((0, 3), dtype=np.uint8)) == 0.0

    def test_empty_list_scores_zero(self) -> None:
        assert skin_score([]) == 0.0
        assert contrast([]) == 0.0


class TestSkinScore:
    def test_skin_tone_detected(self) -> None:
        assert skin_score(_block((224, 172, 140))) == 1.0

    def test_neutral_gray_not_skin(self) -> None:
        assert skin_score(_block((128, 128, 128))) == 0.0

    def test_blue_not_skin(self) -> None:
        assert skin_score(_block((40, 80, 200))) == 0.0

    def test_half_skin_region(self) -> None:
        region = _block((128, 128, 128))
        region[:5] = (224, 172, 140)
        assert skin_score(region) == pytest.approx(0.5)

    def test_pixel_counted_once(self) -> None:
        # Passes the RGB, HSV and warmth tests at once
        assert skin_score([[200, 140, 110]]) == 1.0

    def test_strict_thresholds_reject_saturated_orange(self) -> None:
        # Only the loose warmth test accepts it
        pixel = [[200, 100, 0]]
        assert skin_mask(pixel, PERMISSIVE_SKIN).all()
        assert not skin_mask(pixel, STRICT_SKIN).any()

    def test_flat_sequence_input(self) -> None:
        pixels = [[224, 172, 140], [128, 128, 128]]
        assert skin_score(pixels) == pytest.approx(0.5)


class TestContrast:
    def test_uniform_region_has_no_contrast(self) -> None:
        assert contrast(_block((90, 90, 90))) == 0.0

    def test_black_and_white(self) -> None:
        assert contrast([[0, 0, 0], [255, 255, 255]]) == pytest.approx(1.0)

    def test_uses_ntsc_luminance(self) -> None:
        # Pure red luminance is 0.299 * 255
        value = contrast([[255, 0, 0], [255, 255, 255]])
        assert value == pytest.approx(1 - 0.299, abs=1e-6)

    def test_all_black_is_zero(self) -> None:
        assert contrast(_block((0, 0, 0))) == 0.0


class TestEdgeDensity:
    def test_flat_region_has_no_edges(self) -> None:
        assert edge_density(_block((50, 60, 70))) == 0.0

    def test_vertical_stripe_edges(self) -> None:
        region = _block((0, 0, 0), w=6, h=6)
        region[:, 3:] = (255, 255, 255)
        # Interior is 4x4, only the column left of the stripe differs from its right neighbour
        assert edge_density(region) == pytest.approx(0.25)

    def test_flat_input_with_row_width(self) -> None:
        region = _block((0, 0, 0), w=6, h=6)
        region[:, 3:] = (255, 255, 255)
        flat = region.reshape(-1, 3)
        assert edge_density(flat, row_width=6) == pytest.approx(edge_density(region))

    def test_flat_input_without_row_width(self) -> None:
        assert edge_density(_block((0, 0, 0)).reshape(-1, 3)) == 0.0

    def test_lower_threshold_finds_more_edges(self) -> None:
        region = _block((100, 100, 100), w=8, h=8)
        region[:, 4:] = (105, 105, 105)
        assert edge_density(region, threshold=20) == 0.0
        assert edge_density(region, threshold=10) > 0.0


class TestColorVariance:
    def test_uniform_is_zero(self) -> None:
        assert color_variance(_block((10, 200, 30))) == 0.0

    def test_black_white_mix(self) -> None:
        value = color_variance([[0, 0, 0], [255, 255, 255]])
        assert 0.8 < value <= 1.0

    def test_bounded(self) -> None:
        rng = np.random.default_rng(0)
        region = rng.integers(0, 256, size=(20, 20, 3))
        assert 0.0 <= color_variance(region) <= 1.0


class TestHelpers:
    def test_hue_of_primaries(self) -> None:
        hue, sat, val = rgb_to_hsv(np.array([[255, 0, 0], [0, 255, 0], [0, 0, 255]]))
        assert list(hue) == [0, 120, 240]
        assert list(sat) == [1.0, 1.0, 1.0]
        assert list(val) == [1.0, 1.0, 1.0]

    def test_extract_region_clips_at_border(self) -> None:
        image = np.zeros((20, 30, 3), dtype=np.uint8)
        assert extract_region(image, 15, 10, 6).shape == (6, 6, 3)
        assert extract_region(image, 0, 0, 6).shape == (6, 6, 3)
        assert extract_region(image, 29, 19, 6).shape == (4, 4, 3)

    def test_face_likeness_zero_without_skin(self) -> None:
        assert face_likeness(_block((128, 128, 128)), STRICT_SKIN) == 0.0

    def test_face_likeness_rewards_shading(self) -> None:
        flat = _block((224, 172, 140))
        shaded = flat.copy()
        shaded[3:5, 2:8] = (150, 100, 80)
        assert face_likeness(shaded, STRICT_SKIN) > face_likeness(flat, STRICT_SKIN)
