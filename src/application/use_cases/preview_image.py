from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from src.application.use_cases.process_image import encode_output, load_source
from src.application.use_cases.run_pipeline import RunPipelineUseCase
from src.domain.ports import SourceLoader
from src.infrastructure.codec.pillow_codec import PillowCodec


@dataclass
class PreviewImageUseCase:
    """
    Preview a pipeline without saving anything.

    Same flow as ProcessImageUseCase minus storage and processing records:
    the encoded bytes go straight back to the caller. Useful for live
    previews while the user tweaks sliders.
    """

    source_loader: SourceLoader
    pipeline: RunPipelineUseCase
    codec: PillowCodec

    def execute(
        self,
        image_url: str,
        operations: list[dict[str, Any]],
        fmt: str = "png",
        quality: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> tuple[bytes, str]:
        """Return (encoded bytes, content type). Raises PipelineError."""
        self.pipeline.validate(operations)
        source = load_source(self.source_loader, self.codec, image_url)
        result = self.pipeline.execute(source, operations, cancel_event=cancel_event)
        payload = encode_output(self.codec, result, fmt, quality)
        return payload, self.codec.content_type(fmt)
