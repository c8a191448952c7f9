from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any

from src.application.use_cases.run_pipeline import RunPipelineUseCase
from src.domain.entities.processing_record import ProcessingRecord, ProcessingStatus
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import ErrorKind, ImageProcessingError, PipelineError
from src.domain.ports import SourceLoader
from src.domain.services.geometry import fit_within
from src.infrastructure.codec.pillow_codec import PillowCodec, normalize_format
from src.infrastructure.database.repositories.processing_repository import ProcessingRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


def max_image_dimension() -> int:
    return int(os.getenv("MAX_IMAGE_DIMENSION", "2048"))


def load_source(
    source_loader: SourceLoader, codec: PillowCodec, image_url: str
) -> RasterImage:
    """Fetch and decode the source image, capped at MAX_IMAGE_DIMENSION.

    Errors are reported as a PipelineError without an operation index.
    """
    try:
        data = source_loader.load(image_url)
        image = codec.decode(data)
    except ImageProcessingError as exc:
        raise PipelineError(exc.kind, exc.message) from exc
    return fit_within(image, max_image_dimension())


def encode_output(codec: PillowCodec, image: RasterImage, fmt: str, quality: int | None) -> bytes:
    try:
        return codec.encode(image, fmt, quality)
    except ImageProcessingError as exc:
        raise PipelineError(exc.kind, exc.message) from exc


@dataclass
class ProcessImageUseCase:
    """
    Run a pipeline for a user and persist the result.

    WORKFLOW:
    1. Create a processing record (PROCESSING)
    2. Fetch and decode the source image
    3. Run the operations through RunPipelineUseCase
    4. Encode and upload the result
    5. Mark the record COMPLETED with its public URL

    Any failure marks the record FAILED and is re-raised to the caller.
    """

    storage: SupabaseStorage
    records: ProcessingRepository
    source_loader: SourceLoader
    pipeline: RunPipelineUseCase
    codec: PillowCodec

    def execute(
        self,
        user_id: str,
        image_url: str,
        operations: list[dict[str, Any]],
        fmt: str = "png",
        quality: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ProcessingRecord:
        record = self.records.create(
            user_id=user_id,
            original_url=image_url,
            operations=operations,
            status=ProcessingStatus.PROCESSING,
        )
        try:
            # validate everything before fetching anything
            self.pipeline.validate(operations)
            fmt = normalize_format(fmt)
            source = load_source(self.source_loader, self.codec, image_url)
            result = self.pipeline.execute(source, operations, cancel_event=cancel_event)
            payload = encode_output(self.codec, result, fmt, quality)
            stored = self.storage.upload_bytes(
                user_id=user_id, data=payload, ext=fmt, content_type=self.codec.content_type(fmt)
            )
        except PipelineError as exc:
            self._fail(record, exc.message, exc.kind.value)
            raise
        except ImageProcessingError as exc:
            self._fail(record, exc.message, exc.kind.value)
            raise PipelineError(exc.kind, exc.message) from exc
        except Exception as exc:
            self._fail(record, str(exc), ErrorKind.INTERNAL_FAILURE.value)
            raise

        url = self.storage.get_public_url(stored.path)
        logger.info("Processing record %s completed: %s", record.id, stored.path)
        updated = self.records.update_status(
            record.id,
            ProcessingStatus.COMPLETED,
            processed_url=url,
            result_storage_path=stored.path,
        )
        return updated or record

    def _fail(self, record: ProcessingRecord, message: str, kind: str) -> None:
        logger.warning("Processing record %s failed (%s): %s", record.id, kind, message)
        self.records.update_status(record.id, ProcessingStatus.FAILED, error=message, error_kind=kind)
