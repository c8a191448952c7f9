from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from src.domain.entities.operations import (
    AddBackgroundOp,
    AdjustmentsOp,
    ApplyTemplateOp,
    CropToShapeOp,
    FilterOp,
    Operation,
    RemoveBackgroundOp,
    parse_operation,
)
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import (
    DecodeFailure,
    ErrorKind,
    ExternalServiceFailure,
    ExternalServiceTimeout,
    ImageProcessingError,
    InternalFailure,
    PipelineCancelled,
    PipelineError,
)
from src.domain.ports import BackgroundRemover, ImageCodec, SourceLoader
from src.domain.services.background_service import BackgroundService
from src.domain.services.filter_service import FilterService
from src.domain.services.processing_service import ProcessingService
from src.domain.services.shape_service import ShapeService
from src.domain.services.template_service import TemplateService

logger = logging.getLogger(__name__)


def _default_timeout() -> float:
    return float(os.getenv("BG_REMOVAL_TIMEOUT_SECONDS", "60"))


@dataclass
class RunPipelineUseCase:
    """
    Run a caller-authored list of operations over one image.

    Guarantees:
    1. Every operation is validated before the first stage runs
    2. Operations execute strictly in the order given
    3. The first failing stage aborts the run; nothing partial is returned
    4. Nothing is retried

    Failures surface as a single ``PipelineError`` carrying the index and tag
    of the operation that caused them.
    """

    codec: ImageCodec
    background_remover: BackgroundRemover | None = None
    source_loader: SourceLoader | None = None
    processing: ProcessingService = field(default_factory=ProcessingService)
    removal_timeout: float = field(default_factory=_default_timeout)

    def execute(
        self,
        source: RasterImage,
        operations: Sequence[Mapping[str, Any] | Operation],
        cancel_event: threading.Event | None = None,
    ) -> RasterImage:
        plan = self.validate(operations)
        background = BackgroundService(source_loader=self.source_loader, codec=self.codec)

        current = source
        for index, op in enumerate(plan):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Pipeline cancelled before operation %d (%s)", index, op.tag)
                exc = PipelineCancelled("Pipeline cancelled by caller")
                raise PipelineError(exc.kind, exc.message, index, op.tag)
            logger.debug("Running operation %d (%s) on %dx%d", index, op.tag, *current.size)
            try:
                current = self._apply(current, op, background)
            except ImageProcessingError as exc:
                logger.warning("Operation %d (%s) failed: %s", index, op.tag, exc.message)
                raise PipelineError(exc.kind, exc.message, index, op.tag) from exc
            except Exception as exc:
                logger.exception("Operation %d (%s) crashed", index, op.tag)
                raise PipelineError(ErrorKind.INTERNAL_FAILURE, str(exc), index, op.tag) from exc
        return current

    @staticmethod
    def validate(operations: Sequence[Mapping[str, Any] | Operation]) -> list[Operation]:
        """Parse all operations up front; the first invalid one aborts the run."""
        plan: list[Operation] = []
        for index, raw in enumerate(operations):
            try:
                plan.append(parse_operation(raw))
            except ImageProcessingError as exc:
                tag = raw.get("operation") if isinstance(raw, Mapping) else None
                raise PipelineError(exc.kind, exc.message, index, tag) from exc
        return plan

    def _apply(self, image: RasterImage, op: Operation, background: BackgroundService) -> RasterImage:
        if isinstance(op, RemoveBackgroundOp):
            return self._remove_background(image)
        if isinstance(op, AdjustmentsOp):
            return self.processing.adjust(image, op.adjustment)
        if isinstance(op, FilterOp):
            return FilterService.apply_filter(image, op.preset)
        if isinstance(op, AddBackgroundOp):
            return background.compose(image, op.background, image.width, image.height)
        if isinstance(op, CropToShapeOp):
            return ShapeService.crop_to_shape(image, op.shape)
        if isinstance(op, ApplyTemplateOp):
            return TemplateService.apply_template(image, op.target)
        raise InternalFailure(f"Unhandled operation {op!r}")

    def _remove_background(self, image: RasterImage) -> RasterImage:
        if self.background_remover is None:
            raise ExternalServiceFailure("No background remover configured")
        payload = self.codec.encode(image, "png")

        # A timed-out call keeps running in its worker; its result is dropped.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bg-removal")
        try:
            future = executor.submit(self.background_remover.remove, payload)
            try:
                result = future.result(timeout=self.removal_timeout)
            except FutureTimeout:
                raise ExternalServiceTimeout(
                    f"Background removal exceeded {self.removal_timeout:g}s"
                ) from None
            except ImageProcessingError:
                raise
            except Exception as exc:
                raise ExternalServiceFailure(f"Background removal failed: {exc}") from exc
        finally:
            executor.shutdown(wait=False)

        try:
            isolated = self.codec.decode(result)
        except DecodeFailure as exc:
            raise ExternalServiceFailure(
                f"Background removal returned undecodable data: {exc.message}"
            ) from exc
        if not isolated.has_alpha:
            raise ExternalServiceFailure("Background removal returned an image without alpha")
        return isolated
