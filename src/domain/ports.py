"""Collaborators the pipeline talks to through narrow interfaces.

Production adapters live in ``src.infrastructure``; tests substitute
deterministic fakes.
"""
from __future__ import annotations

from typing import Protocol

from src.domain.entities.raster_image import RasterImage


class BackgroundRemover(Protocol):
    def remove(self, image_bytes: bytes) -> bytes:
        """Return an encoded image whose alpha isolates the foreground."""
        ...


class SourceLoader(Protocol):
    def load(self, reference: str) -> bytes:
        """Fetch the raw bytes behind ``reference`` or raise SourceUnavailable."""
        ...


class ImageCodec(Protocol):
    def decode(self, data: bytes) -> RasterImage: ...

    def encode(self, image: RasterImage, fmt: str = "png", quality: int | None = None) -> bytes: ...
