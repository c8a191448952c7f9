from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from supabase import Client


@dataclass
class StorageResult:
    path: str
    content_type: str
    size: int


class SupabaseStorage:
    """Storage adapter for Supabase Storage with a local fake fallback."""

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.bucket = os.getenv("SUPABASE_STORAGE_BUCKET", "images")
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.local_dir = Path(os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage"))
        if self.disabled:
            self.local_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_local(self) -> bool:
        return self.disabled or self.client is None

    def upload_bytes(self, user_id: str, data: bytes, ext: str, content_type: str) -> StorageResult:
        ext = ext.lower().lstrip(".")
        storage_path = f"{user_id}/{uuid.uuid4()}.{ext}"
        if self.is_local:
            # local fake storage
            full_path = self.local_dir / storage_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
            return StorageResult(path=storage_path, content_type=content_type, size=len(data))
        # real upload
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).upload(  # type: ignore[attr-defined]
                path=storage_path,
                file=data,
                file_options={"content-type": content_type},
            )
            return StorageResult(path=storage_path, content_type=content_type, size=len(data))
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Storage upload failed: {exc}") from exc

    def download_bytes(self, path: str) -> bytes:
        if self.is_local:
            root = self.local_dir.resolve()
            full_path = (root / path).resolve()
            if not full_path.is_relative_to(root):
                raise ValueError(f"Path escapes local storage: {path}")
            return full_path.read_bytes()
        return self.client.storage.from_(self.bucket).download(path)  # type: ignore[attr-defined]

    def get_public_url(self, storage_path: str) -> str:
        if self.is_local:
            return f"/local-storage/{storage_path}"
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).get_public_url(storage_path)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Storage public URL failed: {exc}") from exc
