from __future__ import annotations

import numpy as np

from src.domain.entities.operations import ShapeSpec
from src.domain.entities.raster_image import RasterImage
from src.domain.services.geometry import cover_fit
from src.domain.services.mask_service import MaskService


class ShapeService:
    @staticmethod
    def crop_to_shape(image: RasterImage, spec: ShapeSpec) -> RasterImage:
        """Square cover-fit crop masked to ``spec.shape``.

        The edge is min(width, height, spec.size), so the result is never
        larger than the source on either axis.
        """
        size = min(image.width, image.height, spec.size)
        mask = MaskService.generate_mask(spec.shape, size)
        fitted = cover_fit(image, size, size).to_rgba()
        return ShapeService.destination_in(fitted, mask)

    # Destination-in: out_alpha = dst_alpha * src_alpha; colour kept where alpha survives
    @staticmethod
    def destination_in(dst: RasterImage, src: RasterImage) -> RasterImage:
        dst = dst.to_rgba()
        dst_alpha = dst.pixels[..., 3].astype(np.uint16)
        src_alpha = src.to_rgba().pixels[..., 3].astype(np.uint16)
        alpha = ((dst_alpha * src_alpha + 127) // 255).astype(np.uint8)
        rgb = np.where(alpha[..., None] > 0, dst.pixels[..., :3], 0).astype(np.uint8)
        return RasterImage(np.dstack([rgb, alpha]), dst.icc_profile)
