from __future__ import annotations

from PIL import Image, ImageOps

from src.domain.entities.raster_image import RasterImage


def cover_fit(image: RasterImage, width: int, height: int) -> RasterImage:
    """Scale to fill (width, height) keeping aspect ratio, cropping overflow around the centre."""
    if image.size == (width, height):
        return image
    fitted = ImageOps.fit(
        image.to_pil(), (width, height), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
    )
    return RasterImage.from_pil(fitted, image.icc_profile)


def fit_within(image: RasterImage, max_edge: int) -> RasterImage:
    """Downscale so neither edge exceeds ``max_edge``; never upscales."""
    if max(image.size) <= max_edge:
        return image
    pil = image.to_pil()
    pil.thumbnail((max_edge, max_edge), Image.Resampling.LANCZOS)
    return RasterImage.from_pil(pil, image.icc_profile)
