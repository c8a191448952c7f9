from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image

from src.domain.errors import InvalidInput

WIDE_GREY_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


@dataclass(frozen=True)
class RasterImage:
    """Decoded bitmap owned by whichever stage currently holds it.

    ``pixels`` is a uint8 array shaped (H, W, C) with C = 3 (RGB) or 4 (RGBA).
    Stages never write into ``pixels``; they build a new RasterImage instead.
    """

    pixels: np.ndarray
    icc_profile: bytes | None = None

    def __post_init__(self) -> None:
        arr = self.pixels
        if not isinstance(arr, np.ndarray) or arr.dtype != np.uint8:
            raise InvalidInput("pixels must be a uint8 array")
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidInput(f"pixels must be shaped (H, W, 3|4), got {arr.shape}")
        if arr.shape[0] <= 0 or arr.shape[1] <= 0:
            raise InvalidInput("image dimensions must be positive")
        if not arr.flags["C_CONTIGUOUS"]:
            object.__setattr__(self, "pixels", np.ascontiguousarray(arr))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    @property
    def mode(self) -> str:
        return "RGBA" if self.has_alpha else "RGB"

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray | None:
        return self.pixels[..., 3] if self.has_alpha else None

    def rgb_float(self) -> np.ndarray:
        """Colour channels as float32 in [0, 1]."""
        return self.pixels[..., :3].astype(np.float32) / 255.0

    def with_rgb(self, rgb: np.ndarray) -> RasterImage:
        """New image with ``rgb`` (float [0, 1]) as colour and this image's alpha."""
        out = np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)
        if self.has_alpha:
            out = np.dstack([out, self.pixels[..., 3]])
        return RasterImage(out, self.icc_profile)

    def to_rgba(self) -> RasterImage:
        if self.has_alpha:
            return self
        alpha = np.full(self.pixels.shape[:2], 255, dtype=np.uint8)
        return RasterImage(np.dstack([self.pixels, alpha]), self.icc_profile)

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    @classmethod
    def from_pil(cls, img: Image.Image, icc_profile: bytes | None = None) -> RasterImage:
        if img.mode in WIDE_GREY_MODES:
            # 16-bit greyscale: keep the top eight bits
            wide = np.asarray(img.convert("I"), dtype=np.int64)
            img = Image.fromarray((np.clip(wide, 0, 65535) >> 8).astype(np.uint8))
        if img.mode not in ("RGB", "RGBA"):
            has_alpha = "A" in img.getbands() or "transparency" in img.info
            img = img.convert("RGBA" if has_alpha else "RGB")
        return cls(np.array(img, dtype=np.uint8), icc_profile)
