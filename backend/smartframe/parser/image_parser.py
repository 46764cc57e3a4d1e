"""Local image parser (paths, bytes, streams, in-memory images)."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..constants import SUPPORTED_EXTENSIONS
from ..exceptions import ParseError, UnsupportedFormatError
from .base_parser import BaseParser

logger = logging.getLogger("smartframe.parser.image")


class ImageParser(BaseParser):
    """Decode raster images (PNG, JPG, WEBP) from local sources.

    Accepts a filesystem path, raw bytes, a binary file-like object, a
    PIL image or an ``(h, w, 3|4)`` uint8 array.
    """

    def supports(self, source: object) -> bool:
        if isinstance(source, (Image.Image, np.ndarray, bytes, bytearray, Path)):
            return True
        if isinstance(source, str):
            return "://" not in source and not source.startswith("data:")
        return hasattr(source, "read")

    def load(self, source: object) -> Image.Image:
        """Decode ``source``.

        Raises:
            UnsupportedFormatError: If a path has an unsupported extension.
            ParseError: If the data cannot be decoded.
        """
        if isinstance(source, Image.Image):
            return source
        if isinstance(source, np.ndarray):
            try:
                return Image.fromarray(source.astype(np.uint8))
            except (TypeError, ValueError) as e:
                raise ParseError(f"Cannot interpret array of shape {source.shape} as an image") from e
        if isinstance(source, (str, Path)):
            return self._open_path(Path(source))
        if isinstance(source, (bytes, bytearray)):
            return self._open_stream(io.BytesIO(source), "<bytes>")
        return self._open_stream(source, getattr(source, "name", "<stream>"))

    def _open_path(self, path: Path) -> Image.Image:
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Unsupported format '{path.suffix}'. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}"
            )
        if not path.exists():
            raise ParseError(f"File not found: {path}")
        with path.open("rb") as f:
            return self._open_stream(io.BytesIO(f.read()), path.name)

    @staticmethod
    def _open_stream(stream: object, name: str) -> Image.Image:
        try:
            img = Image.open(stream)
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ParseError(f"Failed to open image '{name}': {e}") from e

        logger.info("Parsed image %s: %dx%d (%s)", name, img.width, img.height, img.mode)
        return img
