"""Image loading for SmartFrame."""

from __future__ import annotations

import io

from PIL import Image, ImageOps

from ..exceptions import ImageLoadError, ParseError, UnsupportedFormatError
from .base_parser import BaseParser
from .image_parser import ImageParser
from .url_parser import UrlParser

_PARSERS: list[BaseParser] = [UrlParser(), ImageParser()]


def get_parser(source: object) -> BaseParser:
    """Get the appropriate parser for a source.

    Args:
        source: Path, bytes, stream, URL or image.

    Returns:
        A parser instance that supports the source.

    Raises:
        UnsupportedFormatError: If no parser supports the source.
    """
    for parser in _PARSERS:
        if parser.supports(source):
            return parser
    raise UnsupportedFormatError(
        f"No parser for {type(source).__name__}. Supported: path, bytes, stream, URL, image"
    )


def to_rgb(img: Image.Image) -> Image.Image:
    """Apply EXIF orientation and flatten any transparency onto white."""
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def load_image(source: object) -> Image.Image:
    """Load a user-supplied image as RGB.

    Raises:
        ParseError: If the source cannot be decoded.
    """
    return to_rgb(get_parser(source).load(source))


def load_synthesized_image(source: object) -> Image.Image:
    """Load a synthesis result (URL, data URL, bytes, path or image) as RGB.

    Raises:
        ImageLoadError: On any network or decode failure.
    """
    try:
        return to_rgb(get_parser(source).load(source))
    except ImageLoadError:
        raise
    except ParseError as e:
        raise ImageLoadError(str(e)) from e


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


__all__ = [
    "BaseParser",
    "ImageParser",
    "UrlParser",
    "encode_png",
    "get_parser",
    "load_image",
    "load_synthesized_image",
    "to_rgb",
]
