from __future__ import annotations

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from src.domain.entities.raster_image import RasterImage
from src.domain.errors import DecodeFailure, EncodeFailure

CONTENT_TYPES = {"png": "image/png", "jpeg": "image/jpeg", "webp": "image/webp"}
FORMAT_ALIASES = {"png": "png", "jpg": "jpeg", "jpeg": "jpeg", "webp": "webp"}
DEFAULT_QUALITY = 90


def normalize_format(fmt: str) -> str:
    key = (fmt or "png").lower().lstrip(".")
    if key not in FORMAT_ALIASES:
        raise EncodeFailure(f"Unsupported output format: {fmt!r}")
    return FORMAT_ALIASES[key]


class PillowCodec:
    """Decode/encode raster images. A new instance per pipeline run; holds no state."""

    def decode(self, data: bytes) -> RasterImage:
        if not data:
            raise DecodeFailure("Empty image data")
        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                icc = img.info.get("icc_profile")
                img = ImageOps.exif_transpose(img)
                return RasterImage.from_pil(img, icc)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeFailure(f"Could not decode image: {exc}") from exc

    def encode(self, image: RasterImage, fmt: str = "png", quality: int | None = None) -> bytes:
        fmt = normalize_format(fmt)
        quality = DEFAULT_QUALITY if quality is None else int(quality)
        if not 1 <= quality <= 100:
            raise EncodeFailure(f"quality must be within [1, 100], got {quality}")

        img = image.to_pil()
        params: dict = {}
        if image.icc_profile:
            params["icc_profile"] = image.icc_profile
        if fmt == "jpeg":
            if img.mode == "RGBA":
                # JPEG has no alpha: flatten onto white
                flat = Image.new("RGB", img.size, (255, 255, 255))
                flat.paste(img, mask=img.getchannel("A"))
                img = flat
            params["quality"] = quality
        elif fmt == "webp":
            params["quality"] = quality
        buf = BytesIO()
        try:
            img.save(buf, format=fmt.upper(), **params)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeFailure(f"Could not encode {fmt}: {exc}") from exc
        return buf.getvalue()

    @staticmethod
    def content_type(fmt: str) -> str:
        return CONTENT_TYPES[normalize_format(fmt)]
