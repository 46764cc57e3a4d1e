"""End-to-end tests for the SmartFrame engine."""

from __future__ import annotations

import base64
import io

import pytest
import requests
from PIL import Image

from backend.smartframe.detection import FocalPointCache
from backend.smartframe.enums import CanvasStyle, CropMode, Gravity, MaskStrategy
from backend.smartframe.exceptions import ParseError, ValidationError
from backend.smartframe.models import FocalPoint
from backend.smartframe.pipeline import CropOptions, SmartFrameEngine


@pytest.fixture
def engine() -> SmartFrameEngine:
    return SmartFrameEngine()


class TestSmartCrop:
    def test_output_size_follows_ratio_and_width(self, engine, face_image) -> None:
        result = engine.smart_crop(face_image, "4:5", width=400)
        assert result.image.size == (400, 500)
        assert result.output_size == (400, 500)
        assert result.plan.mode is CropMode.CROP_HORIZONTAL

    def test_crop_window_contains_focal_point(self, engine, face_image) -> None:
        result = engine.smart_crop(face_image, "1:1", width=200)
        crop = result.plan.crop
        fp = result.focal_point
        assert crop.x <= fp.x <= crop.x2
        assert crop.x > 0

    def test_small_image_expanded(self, engine) -> None:
        image = Image.new("RGB", (100, 200), (40, 80, 120))
        result = engine.smart_crop(image, "9:16", width=540)
        assert result.plan.mode is CropMode.EXPAND
        assert result.image.size == (540, 960)

    def test_dual_mode_uses_secondary(self, engine, two_subject_image) -> None:
        options = CropOptions(dual_mode=True)
        result = engine.smart_crop(two_subject_image, 1.0, width=200, options=options)
        assert result.focal_point.secondary is not None

    def test_png_encoding(self, engine, face_image) -> None:
        data = engine.smart_crop(face_image, "1:1", width=100).to_png()
        assert Image.open(io.BytesIO(data)).size == (100, 100)

    def test_invalid_ratio(self, engine, face_image) -> None:
        with pytest.raises(ValidationError):
            engine.smart_crop(face_image, "wide")

    def test_invalid_sensitivity(self, engine, face_image) -> None:
        with pytest.raises(ValidationError):
            engine.smart_crop(face_image, "1:1", options=CropOptions(sensitivity=42))

    def test_undecodable_input(self, engine) -> None:
        with pytest.raises(ParseError):
            engine.smart_crop(b"not an image", "1:1")

    def test_detect_uniform_image(self, engine, flat_gray_image) -> None:
        assert engine.detect(flat_gray_image).is_fallback


class TestBatch:
    def test_batch_shares_first_focal_point(self, engine, face_image, object_image) -> None:
        options = CropOptions(batch_consistency=True)
        results = engine.batch_smart_crop([face_image, object_image], "1:1", width=200, options=options)
        assert len(results) == 2
        assert results[0].batch_id is not None
        assert results[0].batch_id == results[1].batch_id
        assert results[1].focal_point == results[0].focal_point

    def test_batch_without_consistency_scans_each(self, engine, face_image, object_image) -> None:
        results = engine.batch_smart_crop([face_image, object_image], "1:1", width=200)
        assert results[0].batch_id is None
        assert results[0].focal_point.x > 150
        assert results[1].focal_point.x < 150

    def test_batch_skips_failures(self, engine, face_image) -> None:
        results = engine.batch_smart_crop([b"broken", face_image], "1:1", width=100)
        assert len(results) == 1

    def test_explicit_batch_id_reuses_cache(self, object_image) -> None:
        cache = FocalPointCache()
        stored = FocalPoint(20, 30, 9.0)
        cache.put_if_absent("batch-shared", stored)
        engine = SmartFrameEngine(cache=cache)
        options = CropOptions(batch_consistency=True, batch_id="batch-shared", is_first_in_batch=False)
        assert engine.smart_crop(object_image, "1:1", width=100, options=options).focal_point is stored

    @pytest.mark.parametrize("dual_mode, crop_x", [(False, 0), (True, 50)])
    def test_cached_secondary_follows_dual_mode(self, object_image, dual_mode, crop_x) -> None:
        cache = FocalPointCache()
        cache.put_if_absent("batch-dual", FocalPoint(100, 100, 5.0, secondary=FocalPoint(200, 100, 1.0)))
        engine = SmartFrameEngine(cache=cache)
        options = CropOptions(
            dual_mode=dual_mode, batch_consistency=True, batch_id="batch-dual", is_first_in_batch=False
        )
        result = engine.smart_crop(object_image, "1:1", width=100, options=options)
        assert result.plan.crop.x == crop_x
        assert result.plan.used_secondary is dual_mode
        assert (result.focal_point.secondary is not None) is dual_mode

    def test_context_manager_runs_sweeper(self) -> None:
        with SmartFrameEngine() as engine:
            assert engine.cache.sweeper_running
        assert not engine.cache.sweeper_running


class TestOutpaint:
    def test_prepare_outpaint(self, engine, noise_image) -> None:
        result = engine.prepare_outpaint(noise_image, "16:9", "left", "fill", "smart")
        assert result.canvas.size == result.mask.size
        assert result.layout.original_x == 0
        assert result.gravity is Gravity.LEFT
        assert result.expand_direction == "right"

    def test_prepare_outpaint_accepts_enums(self, engine, noise_image) -> None:
        result = engine.prepare_outpaint(
            noise_image, 9 / 16, Gravity.TOP, CanvasStyle.SEEDED, MaskStrategy.CONSERVATIVE
        )
        assert result.layout.original_y == 0

    def test_invalid_gravity(self, engine, noise_image) -> None:
        with pytest.raises(ValidationError):
            engine.prepare_outpaint(noise_image, "16:9", "sideways")

    def test_finalize_roundtrip(self, engine) -> None:
        original = Image.new("RGB", (300, 300), (200, 30, 30))
        prepared = engine.prepare_outpaint(original, "16:9")
        synthesized = Image.new("RGB", prepared.canvas.size, (30, 30, 200))

        result = engine.finalize_outpaint(synthesized, original, prepared.layout.to_dict())
        assert result.protected
        assert result.error is None
        cx, cy = (int(v) for v in prepared.layout.center)
        r, g, b = result.image.getpixel((cx, cy))
        assert abs(r - 200) <= 1 and abs(b - 30) <= 1
        assert result.image.getpixel((2, 2)) == (30, 30, 200)

    def test_finalize_with_data_url(self, engine) -> None:
        original = Image.new("RGB", (100, 100), (200, 30, 30))
        prepared = engine.prepare_outpaint(original, "16:9")
        buffer = io.BytesIO()
        Image.new("RGB", prepared.canvas.size, (30, 30, 200)).save(buffer, format="PNG")
        url = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")

        result = engine.finalize_outpaint(url, original, prepared.layout)
        assert result.protected
        assert result.image.size == prepared.canvas.size

    def test_finalize_unreachable_url_falls_back(self, engine, monkeypatch) -> None:
        def fake_get(self, url, timeout):
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(requests.Session, "get", fake_get)
        original = Image.new("RGB", (100, 100))
        layout = engine.prepare_outpaint(original, "16:9").layout
        url = "https://example.com/result.png"

        result = engine.finalize_outpaint(url, original, layout)
        assert not result.protected
        assert result.image is None
        assert result.source == url
        assert "unreachable" in result.error
        assert result.warnings


class TestPreview:
    def test_preview_draws_on_copy(self, engine, face_image) -> None:
        result = engine.smart_crop(face_image, "1:1", width=100)
        preview = engine.get_preview_image(face_image, result.focal_point, result.plan)
        assert preview.size == face_image.size
        assert preview.tobytes() != face_image.tobytes()
        assert face_image.getpixel((0, 0)) == (100, 110, 140)
