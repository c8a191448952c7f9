from __future__ import annotations

import mimetypes
import posixpath

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from src.infrastructure.api.dependencies import get_current_user, get_storage
from src.infrastructure.storage.supabase_storage import SupabaseStorage

router = APIRouter(prefix="/local-storage", tags=["Local Storage"], include_in_schema=False)


@router.get("/{path:path}")
def download_local(
    path: str,
    user=Depends(get_current_user),
    storage: SupabaseStorage = Depends(get_storage),
):
    """Serve files written by the local storage fallback to their owner."""
    if not storage.is_local:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    # objects are stored under {user_id}/
    normalized = posixpath.normpath(path)
    if not normalized.startswith(f"{user.id}/"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    try:
        data = storage.download_bytes(normalized)
    except (FileNotFoundError, ValueError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    media_type = mimetypes.guess_type(normalized)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
