from __future__ import annotations

from dataclasses import dataclass

from src.domain.entities.operations import SocialTarget
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import UnknownPlatform
from src.domain.services.geometry import cover_fit


@dataclass(frozen=True)
class TemplateSize:
    width: int
    height: int
    style: str


# Avatar sizes per platform; the single source of truth for template exports.
SOCIAL_TEMPLATES: dict[str, TemplateSize] = {
    "linkedin": TemplateSize(400, 400, "professional"),
    "instagram": TemplateSize(320, 320, "creative"),
    "twitter": TemplateSize(400, 400, "clean"),
    "facebook": TemplateSize(170, 170, "social"),
    "tiktok": TemplateSize(400, 400, "modern"),
}


class TemplateService:
    @staticmethod
    def resolve_template(platform: str) -> tuple[int, int]:
        template = SOCIAL_TEMPLATES.get(platform)
        if template is None:
            raise UnknownPlatform(f"Unknown platform: {platform!r}")
        return template.width, template.height

    @staticmethod
    def apply_template(image: RasterImage, target: SocialTarget | str) -> RasterImage:
        platform = target.platform if isinstance(target, SocialTarget) else target
        width, height = TemplateService.resolve_template(platform)
        return cover_fit(image, width, height)
