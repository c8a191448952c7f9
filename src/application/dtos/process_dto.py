from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProcessingOperation(BaseModel):
    """Individual pipeline operation with its parameters.

    Parameters are validated by the pipeline itself so that domain errors
    report the index of the offending operation.
    """

    operation: str = Field(
        ...,
        description="Operation tag: removeBackground, adjustments, filter, addBackground, "
        "cropToShape or applyTemplate",
        examples=["adjustments"],
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Operation-specific parameters",
        examples=[{"brightness": 10, "contrast": 5}],
    )


class ProcessRequest(BaseModel):
    """Request model for running the image pipeline."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(
        ...,
        alias="imageUrl",
        min_length=1,
        description="http(s) URL or base64 data URI of the source image",
        examples=["https://example.com/photo.jpg"],
    )
    operations: list[ProcessingOperation] = Field(
        ...,
        description="Operations applied in the given order",
        examples=[
            [
                {"operation": "removeBackground", "params": {}},
                {"operation": "adjustments", "params": {"brightness": 10, "contrast": 5}},
                {"operation": "filter", "params": {"name": "warm"}},
                {"operation": "addBackground", "params": {"type": "color", "value": "#336699"}},
                {"operation": "cropToShape", "params": {"shape": "circle", "size": 400}},
            ]
        ],
    )
    format: str = Field(
        "png",
        description="Output encoding",
        pattern="^(png|jpeg|jpg|webp)$",
    )
    quality: int | None = Field(
        None, description="Encoder quality for jpeg/webp", ge=1, le=100
    )

    def operations_list(self) -> list[dict[str, Any]]:
        return [{"operation": op.operation, "params": op.params} for op in self.operations]


class ProcessResponse(BaseModel):
    """Response model for a completed pipeline run."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="ID of the processing record")
    processed_url: str = Field(
        ..., alias="processedUrl", description="Public URL of the processed image"
    )
    operations: list[ProcessingOperation] = Field(
        ..., description="Operations that were applied"
    )
    status: str = Field("COMPLETED", description="Processing record status")


class ProcessingRecordResponse(BaseModel):
    """A stored processing record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str = Field(..., description="PENDING, PROCESSING, COMPLETED or FAILED")
    original_url: str = Field(..., alias="originalUrl")
    processed_url: str | None = Field(None, alias="processedUrl")
    operations: list[dict[str, Any]]
    error: str | None = None
    created_at: str = Field(..., alias="createdAt")


class ProcessingRecordListResponse(BaseModel):
    """The caller's most recent processing records, newest first."""

    images: list[ProcessingRecordResponse]
