"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message describing what went wrong")
    kind: str | None = Field(None, description="Error kind", examples=["InvalidInput"])
    operationIndex: int | None = Field(
        None, description="Index of the operation that failed, when one did"
    )
    operation: str | None = Field(None, description="Tag of the operation that failed")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["pfpgen-backend"])
    version: str = Field(..., description="API version", examples=["0.1.0"])


class TemplateResponse(BaseModel):
    """Export size for one social platform."""
    platform: str = Field(..., examples=["linkedin"])
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    style: str = Field(..., examples=["professional"])
