"""Remote and inline image parser (http(s) and data URLs)."""

from __future__ import annotations

import base64
import binascii
import io
import logging

import requests
from PIL import Image, UnidentifiedImageError

from ..config import Config
from ..exceptions import ImageLoadError
from .base_parser import BaseParser

logger = logging.getLogger("smartframe.parser.url")


class UrlParser(BaseParser):
    """Fetch images returned by a synthesis service.

    Network and decode failures raise ``ImageLoadError`` so callers can
    fall back to the unprotected result.
    """

    def __init__(self, timeout: float = Config.DOWNLOAD_TIMEOUT, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def supports(self, source: object) -> bool:
        return isinstance(source, str) and source.startswith(("http://", "https://", "data:"))

    def load(self, source: object) -> Image.Image:
        url = str(source)
        if url.startswith("data:"):
            data = self._decode_data_url(url)
        else:
            data = self._download(url)

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageLoadError(f"Could not decode synthesized image: {e}") from e
        logger.info("Loaded synthesized image %dx%d", img.width, img.height)
        return img

    def _download(self, url: str) -> bytes:
        logger.info("Downloading synthesized image: %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ImageLoadError(f"Could not download {url}: {e}") from e
        return response.content

    @staticmethod
    def _decode_data_url(url: str) -> bytes:
        header, _, payload = url.partition(",")
        if ";base64" not in header:
            raise ImageLoadError("Only base64 data URLs are supported")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(f"Malformed data URL: {e}") from e
