"""Tests for image loading."""

import base64
import io
import os
import tempfile

import numpy as np
import pytest
import requests
from PIL import Image

from backend.smartframe.exceptions import ImageLoadError, ParseError, UnsupportedFormatError
from backend.smartframe.parser import encode_png, get_parser, load_image, load_synthesized_image
from backend.smartframe.parser.image_parser import ImageParser
from backend.smartframe.parser.url_parser import UrlParser


def _png_bytes(color=(255, 0, 0), size=(20, 10)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _data_url(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


class TestParserFactory:
    def test_path_returns_image_parser(self):
        assert isinstance(get_parser("test.png"), ImageParser)

    def test_bytes_return_image_parser(self):
        assert isinstance(get_parser(b"\x89PNG"), ImageParser)

    def test_pil_image_returns_image_parser(self):
        assert isinstance(get_parser(Image.new("RGB", (4, 4))), ImageParser)

    def test_http_url_returns_url_parser(self):
        assert isinstance(get_parser("https://example.com/result.png"), UrlParser)

    def test_data_url_returns_url_parser(self):
        assert isinstance(get_parser("data:image/png;base64,AAAA"), UrlParser)

    def test_unknown_source_raises(self):
        with pytest.raises(UnsupportedFormatError):
            get_parser(12345)


class TestImageParser:
    def test_parse_png(self):
        img = Image.new("RGB", (200, 150), (255, 0, 0))
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            img.save(f, format="PNG")
            tmp_path = f.name

        try:
            loaded = ImageParser().load(tmp_path)
            assert loaded.size == (200, 150)
            assert loaded.getpixel((0, 0)) == (255, 0, 0)
        finally:
            os.unlink(tmp_path)

    def test_parse_jpg(self):
        img = Image.new("RGB", (300, 200), (0, 255, 0))
        with tempfile.NamedTemporaryFile(suffix=".jpg", delete=False) as f:
            img.save(f, format="JPEG")
            tmp_path = f.name

        try:
            assert ImageParser().load(tmp_path).size == (300, 200)
        finally:
            os.unlink(tmp_path)

    def test_parse_webp(self):
        img = Image.new("RGB", (100, 100), (0, 0, 255))
        with tempfile.NamedTemporaryFile(suffix=".webp", delete=False) as f:
            img.save(f, format="WEBP")
            tmp_path = f.name

        try:
            assert ImageParser().load(tmp_path).size == (100, 100)
        finally:
            os.unlink(tmp_path)

    def test_parse_nonexistent_file_raises(self):
        with pytest.raises(ParseError, match="File not found"):
            ImageParser().load("/nonexistent/file.png")

    def test_unsupported_extension_raises(self):
        with pytest.raises(UnsupportedFormatError):
            ImageParser().load("layers.psd")

    def test_corrupt_bytes_raise(self):
        with pytest.raises(ParseError, match="Failed to open"):
            ImageParser().load(b"not an image")

    def test_stream(self):
        assert ImageParser().load(io.BytesIO(_png_bytes())).size == (20, 10)

    def test_array(self):
        arr = np.zeros((12, 16, 3), dtype=np.uint8)
        assert ImageParser().load(arr).size == (16, 12)

    def test_supports(self):
        parser = ImageParser()
        assert parser.supports("image.png") is True
        assert parser.supports(b"data") is True
        assert parser.supports("https://example.com/a.png") is False
        assert parser.supports(3.5) is False


class TestLoadImage:
    def test_rgba_flattened_onto_white(self, rgba_image):
        loaded = load_image(rgba_image)
        assert loaded.mode == "RGB"
        assert loaded.getpixel((0, 0)) == (255, 255, 255)

    def test_opaque_rgba_keeps_color(self):
        loaded = load_image(Image.new("RGBA", (4, 4), (10, 20, 30, 255)))
        assert loaded.getpixel((1, 1)) == (10, 20, 30)

    def test_grayscale_converted(self, grayscale_image):
        loaded = load_image(grayscale_image)
        assert loaded.mode == "RGB"
        assert loaded.getpixel((0, 0)) == (128, 128, 128)

    def test_palette_converted(self):
        img = Image.new("RGB", (8, 8), (0, 200, 0)).convert("P")
        assert load_image(img).mode == "RGB"

    def test_bytes(self):
        assert load_image(_png_bytes()).getpixel((0, 0)) == (255, 0, 0)


class TestLoadSynthesizedImage:
    def test_data_url(self):
        loaded = load_synthesized_image(_data_url(_png_bytes((0, 0, 255))))
        assert loaded.size == (20, 10)
        assert loaded.getpixel((5, 5)) == (0, 0, 255)

    def test_non_base64_data_url_rejected(self):
        with pytest.raises(ImageLoadError, match="base64"):
            load_synthesized_image("data:image/png,rawdata")

    def test_malformed_base64_rejected(self):
        with pytest.raises(ImageLoadError):
            load_synthesized_image("data:image/png;base64,@@@")

    def test_undecodable_payload_rejected(self):
        with pytest.raises(ImageLoadError, match="decode"):
            load_synthesized_image(_data_url(b"garbage"))

    def test_local_decode_error_becomes_load_error(self):
        with pytest.raises(ImageLoadError):
            load_synthesized_image(b"garbage")

    def test_http_download(self, monkeypatch):
        class Response:
            content = _png_bytes((0, 255, 0))

            def raise_for_status(self):
                return None

        calls = []

        def fake_get(self, url, timeout):
            calls.append((url, timeout))
            return Response()

        monkeypatch.setattr(requests.Session, "get", fake_get)
        loaded = load_synthesized_image("https://example.com/out.png")
        assert loaded.getpixel((0, 0)) == (0, 255, 0)
        assert calls == [("https://example.com/out.png", 30)]

    def test_network_failure(self, monkeypatch):
        def fake_get(self, url, timeout):
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(requests.Session, "get", fake_get)
        with pytest.raises(ImageLoadError, match="Could not download"):
            load_synthesized_image("https://example.com/out.png")

    def test_http_error_status(self, monkeypatch):
        class Response:
            content = b""

            def raise_for_status(self):
                raise requests.HTTPError("404 Not Found")

        monkeypatch.setattr(requests.Session, "get", lambda self, url, timeout: Response())
        with pytest.raises(ImageLoadError):
            load_synthesized_image("http://example.com/missing.png")

    def test_custom_session(self):
        class Session:
            def get(self, url, timeout):
                raise requests.Timeout("slow")

        parser = UrlParser(timeout=2, session=Session())
        with pytest.raises(ImageLoadError):
            parser.load("https://example.com/out.png")


class TestEncodePng:
    def test_roundtrip_size(self):
        data = encode_png(Image.new("RGB", (30, 20), (1, 2, 3)))
        assert data.startswith(b"\x89PNG")
        assert Image.open(io.BytesIO(data)).size == (30, 20)
