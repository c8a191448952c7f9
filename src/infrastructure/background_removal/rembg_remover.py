from __future__ import annotations

import logging
import os
import threading
from typing import Any

from src.domain.errors import ExternalServiceFailure

logger = logging.getLogger(__name__)


class RembgBackgroundRemover:
    """Background removal through rembg.

    The model session is created on first use and reused by this adapter;
    rembg downloads the model into ``U2NET_HOME`` the first time it runs.
    """

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = model_name or os.getenv("REMBG_MODEL", "isnet-general-use")
        self._session: Any = None
        self._lock = threading.Lock()

    def _get_session(self) -> Any:
        with self._lock:
            if self._session is None:
                from rembg import new_session

                logger.info("Loading rembg model %s", self.model_name)
                self._session = new_session(self.model_name)
            return self._session

    def remove(self, image_bytes: bytes) -> bytes:
        try:
            from rembg import remove

            result = remove(image_bytes, session=self._get_session())
        except ImportError as exc:
            raise ExternalServiceFailure(
                "rembg is not installed; install the 'removal' extra"
            ) from exc
        except Exception as exc:
            logger.warning("rembg background removal failed: %s", exc)
            raise ExternalServiceFailure(f"Background removal failed: {exc}") from exc
        if not isinstance(result, (bytes, bytearray)):
            raise ExternalServiceFailure("Background removal returned no image data")
        return bytes(result)
