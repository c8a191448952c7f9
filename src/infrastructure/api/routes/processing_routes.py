from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, Response

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.process_dto import (
    ProcessingRecordListResponse,
    ProcessingRecordResponse,
    ProcessRequest,
    ProcessResponse,
)
from src.application.use_cases.preview_image import PreviewImageUseCase
from src.application.use_cases.process_image import ProcessImageUseCase
from src.application.use_cases.run_pipeline import RunPipelineUseCase
from src.domain.entities.processing_record import ProcessingRecord
from src.domain.errors import VALIDATION_KINDS, ErrorKind, PipelineError
from src.infrastructure.api.dependencies import (
    get_codec,
    get_current_user,
    get_pipeline,
    get_processing_repo,
    get_source_loader,
    get_storage,
)

router = APIRouter(
    prefix="/process",
    tags=["Image Processing"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid operation or parameters"},
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        500: {"model": ErrorResponse, "description": "Pipeline or unexpected failure"},
    },
)

# Failures caused by the request contents rather than by the service.
_CLIENT_ERROR_KINDS = VALIDATION_KINDS | {ErrorKind.SOURCE_UNAVAILABLE, ErrorKind.DECODE_FAILURE}


def status_for(exc: PipelineError) -> int:
    if exc.kind in _CLIENT_ERROR_KINDS:
        return status.HTTP_400_BAD_REQUEST
    if exc.kind is ErrorKind.EXTERNAL_SERVICE_TIMEOUT:
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def pipeline_error_response(exc: PipelineError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


@router.post(
    "",
    response_model=ProcessResponse,
    response_model_by_alias=True,
    summary="Process Image",
    description="""
    Run the image pipeline over a source image and store the result.

    **Supported Operations:**
    - `removeBackground` - params: `{}`
    - `adjustments` - params: `{"brightness": 10, "contrast": 5, "saturation": 0, "hue": 0,
      "gamma": 1.0, "blur": 0, "sharpening": 0}` (any subset)
    - `filter` - params: `{"name": "warm"}`
    - `addBackground` - params: `{"type": "color", "value": "#336699"}`,
      `{"type": "gradient", "value": "<stop offset='0%' stop-color='#fff'/>..."}`,
      `{"type": "pattern", "value": "dots"}` or `{"type": "image", "value": "https://...", "blur": 4}`
    - `cropToShape` - params: `{"shape": "circle", "size": 400}`
    - `applyTemplate` - params: `{"platform": "linkedin"}`

    Operations run in the order given. Every operation is validated before
    any of them runs; the first failure aborts the request and is reported
    with its index.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="ID and public URL of the processed image",
)
def process_image(
    body: ProcessRequest,
    user=Depends(get_current_user),
    storage=Depends(get_storage),
    records=Depends(get_processing_repo),
    source_loader=Depends(get_source_loader),
    pipeline: RunPipelineUseCase = Depends(get_pipeline),
    codec=Depends(get_codec),
):
    uc = ProcessImageUseCase(
        storage=storage,
        records=records,
        source_loader=source_loader,
        pipeline=pipeline,
        codec=codec,
    )
    try:
        record = uc.execute(
            user.id, body.image_url, body.operations_list(), fmt=body.format, quality=body.quality
        )
    except PipelineError as exc:
        return pipeline_error_response(exc)

    return ProcessResponse(
        id=record.id,
        processed_url=record.processed_url or "",
        operations=body.operations,
        status=record.status.value,
    )


@router.post(
    "/preview",
    summary="Preview Image",
    description="""
    Run the pipeline and return the encoded image directly. Nothing is stored
    and no processing record is created.

    **Authentication required**: Yes (Bearer token)
    """,
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}, "image/webp": {}}}},
)
def preview_image(
    body: ProcessRequest,
    user=Depends(get_current_user),
    source_loader=Depends(get_source_loader),
    pipeline: RunPipelineUseCase = Depends(get_pipeline),
    codec=Depends(get_codec),
):
    uc = PreviewImageUseCase(source_loader=source_loader, pipeline=pipeline, codec=codec)
    try:
        payload, content_type = uc.execute(
            body.image_url, body.operations_list(), fmt=body.format, quality=body.quality
        )
    except PipelineError as exc:
        return pipeline_error_response(exc)
    return Response(content=payload, media_type=content_type)


RECORD_LIST_LIMIT = 50


def _record_response(record: ProcessingRecord) -> ProcessingRecordResponse:
    return ProcessingRecordResponse(
        id=record.id,
        status=record.status.value,
        original_url=record.original_url,
        processed_url=record.processed_url,
        operations=record.operations,
        error=record.error,
        created_at=record.created_at.isoformat(),
    )


@router.get(
    "",
    response_model=ProcessingRecordListResponse,
    response_model_by_alias=True,
    summary="List Processing Records",
    description=f"The caller's most recent processing records (up to {RECORD_LIST_LIMIT}), newest first.",
)
def list_processing_records(
    user=Depends(get_current_user),
    records=Depends(get_processing_repo),
):
    items = records.list_by_user(user.id, limit=RECORD_LIST_LIMIT)
    return ProcessingRecordListResponse(images=[_record_response(r) for r in items])


@router.get(
    "/{record_id}",
    response_model=ProcessingRecordResponse,
    response_model_by_alias=True,
    summary="Get Processing Record",
    description="Status and result of a previous /process request owned by the caller.",
)
def get_processing_record(
    record_id: str,
    user=Depends(get_current_user),
    records=Depends(get_processing_repo),
):
    record = records.get(record_id)
    if record is None or record.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Processing record not found")
    return _record_response(record)
