from __future__ import annotations

from fastapi import APIRouter

from src.application.dtos.common_dto import TemplateResponse
from src.domain.services.template_service import SOCIAL_TEMPLATES

router = APIRouter(prefix="/templates", tags=["Social Templates"])


@router.get(
    "",
    response_model=list[TemplateResponse],
    summary="List Social Templates",
    description="Export sizes used by the `applyTemplate` operation, per platform.",
)
def list_templates():
    """List the platform export sizes."""
    return [
        TemplateResponse(platform=name, width=t.width, height=t.height, style=t.style)
        for name, t in SOCIAL_TEMPLATES.items()
    ]
