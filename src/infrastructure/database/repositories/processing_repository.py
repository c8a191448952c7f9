from __future__ import annotations

import os
import threading
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from src.domain.entities.processing_record import ProcessingRecord, ProcessingStatus

# module-level in-memory store for disabled mode
_MEM_RECORDS: dict[str, ProcessingRecord] = {}
_MEM_LOCK = threading.Lock()

TABLE = "processed_images"


class ProcessingRepository:
    """Processing records (status of each /process request)."""

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"

    @property
    def in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> ProcessingRecord:
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        updated_at = row.get("updated_at")
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)
        return ProcessingRecord(
            id=row["id"],
            user_id=row["user_id"],
            original_url=row["original_url"],
            operations=row.get("operations") or [],
            status=ProcessingStatus(row["status"]),
            created_at=created_at,
            updated_at=updated_at,
            processed_url=row.get("processed_url"),
            result_storage_path=row.get("result_storage_path"),
            error=row.get("error"),
            error_kind=row.get("error_kind"),
        )

    def create(
        self,
        user_id: str,
        original_url: str,
        operations: list[dict[str, Any]],
        status: ProcessingStatus = ProcessingStatus.PENDING,
    ) -> ProcessingRecord:
        now = datetime.now(UTC)

        # In-memory mode
        if self.in_memory:
            entity = ProcessingRecord(
                id=f"proc_{uuid.uuid4().hex[:12]}",
                user_id=user_id,
                original_url=original_url,
                operations=operations,
                status=status,
                created_at=now,
            )
            with _MEM_LOCK:
                _MEM_RECORDS[entity.id] = entity
            return entity

        # Supabase mode
        try:  # pragma: no cover - network
            data = {
                "user_id": user_id,
                "original_url": original_url,
                "operations": operations,
                "status": status.value,
                "created_at": now.isoformat(),
            }
            res = self.client.table(TABLE).insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:
            raise RuntimeError(f"DB insert processing record failed: {exc}") from exc

    def update_status(
        self,
        record_id: str,
        status: ProcessingStatus,
        processed_url: str | None = None,
        result_storage_path: str | None = None,
        error: str | None = None,
        error_kind: str | None = None,
    ) -> ProcessingRecord | None:
        now = datetime.now(UTC)
        changes: dict[str, Any] = {"status": status, "updated_at": now}
        if processed_url is not None:
            changes["processed_url"] = processed_url
        if result_storage_path is not None:
            changes["result_storage_path"] = result_storage_path
        if error is not None:
            changes["error"] = error
            changes["error_kind"] = error_kind

        # In-memory mode
        if self.in_memory:
            with _MEM_LOCK:
                current = _MEM_RECORDS.get(record_id)
                if current is None:
                    return None
                updated = replace(current, **changes)
                _MEM_RECORDS[record_id] = updated
            return updated

        # Supabase mode
        try:  # pragma: no cover - network
            data = {**changes, "status": status.value, "updated_at": now.isoformat()}
            res = self.client.table(TABLE).update(data).eq("id", record_id).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:
            raise RuntimeError(f"DB update processing record failed: {exc}") from exc

    def get(self, record_id: str) -> ProcessingRecord | None:
        # In-memory mode
        if self.in_memory:
            return _MEM_RECORDS.get(record_id)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table(TABLE).select("*").eq("id", record_id).maybe_single().execute()
            row = res.data if res else None
            return self._row_to_entity(row) if row else None
        except Exception as exc:
            raise RuntimeError(f"DB get processing record failed: {exc}") from exc

    def list_by_user(self, user_id: str, limit: int = 50) -> list[ProcessingRecord]:
        # In-memory mode
        if self.in_memory:
            records = [r for r in _MEM_RECORDS.values() if r.user_id == user_id]
            return sorted(records, key=lambda r: r.created_at, reverse=True)[:limit]

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table(TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [self._row_to_entity(row) for row in res.data or []]
        except Exception as exc:
            raise RuntimeError(f"DB list processing records failed: {exc}") from exc
