"""Error taxonomy for the image pipeline.

Every stage reports failures by raising one of the ``ImageProcessingError``
subclasses below. The orchestrator wraps whatever a stage raised in a
``PipelineError`` that also carries the index and tag of the operation that
failed.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    UNKNOWN_FILTER = "UnknownFilter"
    UNKNOWN_PLATFORM = "UnknownPlatform"
    INVALID_SHAPE = "InvalidShape"
    INVALID_BACKGROUND_TYPE = "InvalidBackgroundType"
    SOURCE_UNAVAILABLE = "SourceUnavailable"
    IMAGE_LOAD_FAILURE = "ImageLoadFailure"
    EXTERNAL_SERVICE_FAILURE = "ExternalServiceFailure"
    EXTERNAL_SERVICE_TIMEOUT = "ExternalServiceTimeout"
    DECODE_FAILURE = "DecodeFailure"
    ENCODE_FAILURE = "EncodeFailure"
    INTERNAL_FAILURE = "InternalFailure"
    CANCELLED = "Cancelled"


# Kinds caused by the request itself rather than by the system.
VALIDATION_KINDS = frozenset(
    {
        ErrorKind.INVALID_INPUT,
        ErrorKind.UNKNOWN_FILTER,
        ErrorKind.UNKNOWN_PLATFORM,
        ErrorKind.INVALID_SHAPE,
        ErrorKind.INVALID_BACKGROUND_TYPE,
    }
)


class ImageProcessingError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ImageProcessingError, ValueError):
    kind = ErrorKind.INVALID_INPUT


class InvalidAdjustment(InvalidInput):
    pass


class UnknownFilter(ImageProcessingError, ValueError):
    kind = ErrorKind.UNKNOWN_FILTER


class UnknownPlatform(ImageProcessingError, ValueError):
    kind = ErrorKind.UNKNOWN_PLATFORM


class InvalidShape(ImageProcessingError, ValueError):
    kind = ErrorKind.INVALID_SHAPE


class InvalidBackgroundType(ImageProcessingError, ValueError):
    kind = ErrorKind.INVALID_BACKGROUND_TYPE


class SourceUnavailable(ImageProcessingError):
    kind = ErrorKind.SOURCE_UNAVAILABLE


class ImageLoadFailure(ImageProcessingError):
    kind = ErrorKind.IMAGE_LOAD_FAILURE


class ExternalServiceFailure(ImageProcessingError):
    kind = ErrorKind.EXTERNAL_SERVICE_FAILURE


class ExternalServiceTimeout(ImageProcessingError):
    kind = ErrorKind.EXTERNAL_SERVICE_TIMEOUT


class DecodeFailure(ImageProcessingError):
    kind = ErrorKind.DECODE_FAILURE


class EncodeFailure(ImageProcessingError):
    kind = ErrorKind.ENCODE_FAILURE


class InternalFailure(ImageProcessingError):
    kind = ErrorKind.INTERNAL_FAILURE


class PipelineCancelled(ImageProcessingError):
    kind = ErrorKind.CANCELLED


class PipelineError(Exception):
    """A pipeline run aborted at ``index`` (operation tag ``operation``)."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        index: int | None = None,
        operation: str | None = None,
    ) -> None:
        location = f"operation {index} ({operation})" if index is not None else "pipeline"
        super().__init__(f"{kind.value} at {location}: {message}")
        self.kind = kind
        self.message = message
        self.index = index
        self.operation = operation

    @property
    def is_validation_error(self) -> bool:
        return self.kind in VALIDATION_KINDS

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "operationIndex": self.index,
            "operation": self.operation,
        }
