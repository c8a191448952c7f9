from __future__ import annotations

from src.domain.entities.operations import FilterPreset
from src.domain.entities.raster_image import RasterImage
from src.domain.services.processing_service import ProcessingService as PS

VINTAGE_TINT = (255, 220, 177)
WARM_TINT = (255, 230, 200)
COOL_TINT = (200, 230, 255)


class FilterService:
    """Named filter presets built from the colour adjustment primitives."""

    @staticmethod
    def apply_filter(image: RasterImage, preset: FilterPreset | str) -> RasterImage:
        preset = FilterPreset.parse(preset)
        if preset is FilterPreset.NONE:
            return image

        rgb = image.rgb_float()
        if preset is FilterPreset.PROFESSIONAL:
            rgb = PS.modulate(rgb, brightness=1.05, saturation=0.95)
            rgb = PS.sharpen(rgb, 0.5)
        elif preset is FilterPreset.VINTAGE:
            rgb = PS.modulate(rgb, brightness=0.9, saturation=0.8, hue=20.0)
            rgb = PS.tint(rgb, VINTAGE_TINT)
        elif preset is FilterPreset.DRAMATIC:
            rgb = PS.modulate(rgb, brightness=0.95, saturation=1.2)
            rgb = PS.linear(rgb, 1.2, -25.0)
        elif preset is FilterPreset.SOFT:
            rgb = PS.modulate(rgb, brightness=1.1, saturation=0.85)
            rgb = PS.gaussian_blur(rgb, 0.3)
        elif preset is FilterPreset.BLACKWHITE:
            rgb = PS.grayscale_luminosity(rgb)
        elif preset is FilterPreset.WARM:
            rgb = PS.tint(rgb, WARM_TINT)
        elif preset is FilterPreset.COOL:
            rgb = PS.tint(rgb, COOL_TINT)
        return image.with_rgb(rgb)
