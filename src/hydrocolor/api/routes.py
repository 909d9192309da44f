"""API route definitions."""

from __future__ import annotations

import functools
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, UploadFile, status
from fastapi.responses import JSONResponse

from hydrocolor.analysis.classifier import analyze_image
from hydrocolor.analysis.errors import FailureReason
from hydrocolor.analysis.palette import REFERENCE_PALETTE
from hydrocolor.analysis.rasterizer import PillowImageDecoder
from hydrocolor.api.dependencies import PoolDep, SettingsDep, verify_api_key
from hydrocolor.api.schemas import (
    AnalysisFailureResponse,
    AnalysisResponse,
    ErrorResponse,
    HealthResponse,
    PaletteColor,
    PaletteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

HTTP_413_CONTENT_TOO_LARGE = 413
HTTP_422_UNPROCESSABLE_CONTENT = 422

_FAILURE_STATUS: dict[FailureReason, int] = {
    FailureReason.DECODE_ERROR: status.HTTP_400_BAD_REQUEST,
    FailureReason.INSUFFICIENT_SAMPLES: HTTP_422_UNPROCESSABLE_CONTENT,
}


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": AnalysisFailureResponse},
        HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse},
        HTTP_422_UNPROCESSABLE_CONTENT: {"model": AnalysisFailureResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Estimate the hydration color level of a sample photo",
)
async def analyze(
    file: UploadFile,
    settings: SettingsDep,
    pool: PoolDep,
    region_size: Annotated[int | None, Query(ge=1, description="Side of the square sampling region")] = None,
) -> AnalysisResponse | JSONResponse:
    """Classify the center of an uploaded photo against the reference palette."""
    image_bytes = await file.read(settings.max_file_size + 1)
    if len(image_bytes) > settings.max_file_size:
        return JSONResponse(
            status_code=HTTP_413_CONTENT_TOO_LARGE,
            content={"detail": f"File exceeds {settings.max_file_size} bytes"},
        )

    size = region_size if region_size is not None else settings.default_region_size
    job = functools.partial(
        analyze_image,
        image_bytes,
        size,
        decoder=PillowImageDecoder(settings.max_image_pixels),
        width=settings.canvas_width,
        height=settings.canvas_height,
    )
    try:
        result = await pool.run(job)
    except TimeoutError:
        logger.warning("Analysis pool saturated, rejecting %s", file.filename)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Server busy, try again shortly"},
        )

    if not result.ok:
        logger.info("Analysis of %s failed (%s): %s", file.filename, result.reason, result.message)
        return JSONResponse(
            status_code=_FAILURE_STATUS.get(result.reason, status.HTTP_400_BAD_REQUEST),
            content=AnalysisFailureResponse.from_result(result).model_dump(),
        )

    logger.info("Analyzed %s: level=%s confidence=%.2f", file.filename, result.level, result.confidence)
    return AnalysisResponse.from_result(result)


@router.get(
    "/palette",
    response_model=PaletteResponse,
    summary="List the reference palette",
)
async def palette() -> PaletteResponse:
    """Return the eight reference colors, palest first."""
    return PaletteResponse(palette=[PaletteColor.from_entry(entry) for entry in REFERENCE_PALETTE])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(pool: PoolDep) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="ok",
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )
