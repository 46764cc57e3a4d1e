"""Abstract base parser for image sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from PIL import Image


class BaseParser(ABC):
    """Abstract base class for image source parsers."""

    @abstractmethod
    def load(self, source: object) -> Image.Image:
        """Decode ``source`` into a PIL image.

        Args:
            source: Path, bytes, file-like object, URL or image.

        Returns:
            Decoded image in its native mode.
        """
        ...

    @abstractmethod
    def supports(self, source: object) -> bool:
        """Return True if this parser can load the given source.

        Args:
            source: Candidate source.

        Returns:
            True if supported.
        """
        ...
