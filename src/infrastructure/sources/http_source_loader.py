from __future__ import annotations

import base64
import binascii
import logging
import os

import httpx

from src.domain.errors import SourceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class HttpSourceLoader:
    """Resolve an image reference (http(s) URL or base64 ``data:`` URI) to bytes.

    Each call opens and closes its own HTTP client.
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_bytes: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else float(
            os.getenv("SOURCE_FETCH_TIMEOUT_SECONDS", "15")
        )
        self.max_bytes = max_bytes if max_bytes is not None else int(
            os.getenv("MAX_SOURCE_BYTES", str(DEFAULT_MAX_BYTES))
        )
        self.transport = transport

    def load(self, reference: str) -> bytes:
        if not reference:
            raise SourceUnavailable("Missing image reference")
        if reference.startswith("data:"):
            data = self._decode_data_uri(reference)
        elif reference.startswith(("http://", "https://")):
            data = self._fetch(reference)
        else:
            raise SourceUnavailable(f"Unsupported image reference: {reference[:64]!r}")
        if len(data) > self.max_bytes:
            raise SourceUnavailable(
                f"Image is {len(data)} bytes; the limit is {self.max_bytes} bytes"
            )
        return data

    def _fetch(self, url: str) -> bytes:
        try:
            with httpx.Client(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    declared = response.headers.get("Content-Length")
                    if declared and declared.isdigit() and int(declared) > self.max_bytes:
                        raise SourceUnavailable(
                            f"Image is {declared} bytes; the limit is {self.max_bytes} bytes"
                        )
                    buf = bytearray()
                    for chunk in response.iter_bytes():
                        buf.extend(chunk)
                        if len(buf) > self.max_bytes:
                            raise SourceUnavailable(
                                f"Image exceeds the limit of {self.max_bytes} bytes"
                            )
                    return bytes(buf)
        except httpx.HTTPStatusError as exc:
            logger.warning("Fetching %s returned %s", url, exc.response.status_code)
            raise SourceUnavailable(
                f"Fetching image failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Fetching %s failed: %s", url, exc)
            raise SourceUnavailable(f"Fetching image failed: {exc}") from exc

    @staticmethod
    def _decode_data_uri(reference: str) -> bytes:
        header, sep, payload = reference.partition(",")
        if not sep or not header.endswith(";base64"):
            raise SourceUnavailable("Only base64 data URIs are supported")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SourceUnavailable(f"Invalid base64 data URI: {exc}") from exc
