from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import (
    add_default_middlewares,
    add_exception_handlers,
    configure_logging,
)
from src.infrastructure.api.routes.processing_routes import router as processing_router
from src.infrastructure.api.routes.storage_routes import router as storage_router
from src.infrastructure.api.routes.template_routes import router as template_router


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="PFPGen Backend",
        version="0.1.0",
        description="""
        ## PFPGen Backend API

        Profile picture pipeline: background removal, colour adjustments,
        filters, background compositing, shape cropping and social-platform
        export, built on NumPy, Pillow and rembg.

        ### Features
        - **Pipeline**: Caller-ordered operations, validated before anything runs
        - **Preview**: Run a pipeline and get the encoded image back directly
        - **Processing Records**: Every stored result has a record with its status
        - **Templates**: Export sizes per social platform

        ### Authentication
        All endpoints (except root, health and templates) require a Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        Errors are returned as `{"error": ..., "kind": ..., "operationIndex": ...}`:
        - **400 Bad Request**: Malformed body or invalid operation parameters
        - **401 Unauthorized**: Missing or invalid authentication token
        - **504 Gateway Timeout**: Background removal took too long
        - **500 Internal Server Error**: Pipeline or unexpected failure
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the PFPGen API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "pfpgen-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(processing_router)
    app.include_router(template_router)
    app.include_router(storage_router)
    return app


app = create_app()
