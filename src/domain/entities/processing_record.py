from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ProcessingStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ProcessingRecord:
    id: str
    user_id: str
    original_url: str
    operations: list[dict[str, Any]]
    status: ProcessingStatus
    created_at: datetime
    updated_at: datetime | None = None
    processed_url: str | None = None
    result_storage_path: str | None = None  # {user_id}/{uuid}.{ext}
    error: str | None = None
    error_kind: str | None = None
