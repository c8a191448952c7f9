from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.application.use_cases.run_pipeline import RunPipelineUseCase
from src.domain.ports import BackgroundRemover, SourceLoader
from src.infrastructure.background_removal.rembg_remover import RembgBackgroundRemover
from src.infrastructure.codec.pillow_codec import PillowCodec
from src.infrastructure.database.repositories.processing_repository import ProcessingRepository
from src.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    UserInfo,
    get_supabase_client,
)
from src.infrastructure.sources.http_source_loader import HttpSourceLoader
from src.infrastructure.storage.supabase_storage import SupabaseStorage

_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_adapter() -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        user = auth.validate_token(token)
        return user
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_storage() -> SupabaseStorage:
    client = get_supabase_client()
    return SupabaseStorage(client)


def get_processing_repo() -> ProcessingRepository:
    return ProcessingRepository(get_supabase_client())


def get_source_loader() -> SourceLoader:
    return HttpSourceLoader()


@lru_cache(maxsize=1)
def get_background_remover() -> BackgroundRemover:
    # one model session per process
    return RembgBackgroundRemover()


def get_codec() -> PillowCodec:
    return PillowCodec()


def get_pipeline(
    remover: Annotated[BackgroundRemover, Depends(get_background_remover)],
    source_loader: Annotated[SourceLoader, Depends(get_source_loader)],
    codec: Annotated[PillowCodec, Depends(get_codec)],
) -> RunPipelineUseCase:
    return RunPipelineUseCase(codec=codec, background_remover=remover, source_loader=source_loader)
