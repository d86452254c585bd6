"""API route definitions."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile, status
from pydantic import TypeAdapter, ValidationError

from emojify.api.middleware import verify_api_key
from emojify.api.schemas import (
    ClassifyExpressionResponse,
    EmojifyResponse,
    ErrorResponse,
    ExpressionScores,
    FaceInput,
    HealthResponse,
    Notice,
    OverlayInfo,
    OverlaysResponse,
)
from emojify.ml.emojifier import NoFacesDetected, NoOverlayForCategory, emojify
from emojify.ml.expression import ExpressionCategory, classify
from emojify.ml.face_detector import FaceObservation
from emojify.ml.preprocessing import ImageDecodeError, ImageTooLargeError, decode_image, encode_png

if TYPE_CHECKING:
    from emojify.config import Settings
    from emojify.ml.catalog import OverlayCatalog
    from emojify.ml.emojifier import EmojifyResult
    from emojify.ml.emojifier import Notice as NoticeRecord
    from emojify.ml.inference import InferencePool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

_FACES_ADAPTER = TypeAdapter(list[FaceInput])


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_inference_pool(request: Request) -> InferencePool:
    pool: InferencePool = request.app.state.inference_pool
    return pool


def _get_catalog(request: Request) -> OverlayCatalog:
    catalog: OverlayCatalog = request.app.state.catalog
    return catalog


def _parse_faces(raw: str) -> list[FaceObservation]:
    try:
        faces = _FACES_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Invalid faces payload: {exc.error_count()} error(s)",
        ) from exc

    return [
        FaceObservation(
            x=face.x,
            y=face.y,
            width=face.width,
            height=face.height,
            smiling_probability=face.smiling_probability,
            left_eye_open_probability=face.left_eye_open_probability,
            right_eye_open_probability=face.right_eye_open_probability,
        )
        for face in faces
    ]


def _to_notice(record: NoticeRecord) -> Notice:
    if isinstance(record, NoFacesDetected):
        return Notice(kind="no_faces_detected")
    if isinstance(record, NoOverlayForCategory):
        return Notice(kind="no_overlay_for_category", face_index=record.face_index, category=str(record.category))
    return Notice(
        kind="overlay_failed",
        face_index=record.face_index,
        category=str(record.category),
        detail=record.reason,
    )


def _process_upload(
    image_bytes: bytes,
    faces: list[FaceObservation],
    catalog: OverlayCatalog,
    settings: Settings,
) -> tuple[EmojifyResult, bytes]:
    picture = decode_image(image_bytes, settings.max_image_pixels)
    result = emojify(picture, faces, catalog, scale_factor=settings.scale_factor)
    return result, encode_png(result.image)


@router.post(
    "/classify-expression",
    response_model=ClassifyExpressionResponse,
    summary="Classify a face expression from probability scores",
)
async def classify_expression(scores: ExpressionScores) -> ClassifyExpressionResponse:
    """Return the expression category for a set of face probabilities."""
    category = classify(
        scores.smiling_probability,
        scores.left_eye_open_probability,
        scores.right_eye_open_probability,
    )
    return ClassifyExpressionResponse(category=str(category))


@router.post(
    "/emojify",
    response_model=EmojifyResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Overlay emoji on the faces of an image",
)
async def emojify_image(
    request: Request,
    file: UploadFile,
    faces: Annotated[str, Form(description="JSON array of detected faces")] = "[]",
) -> EmojifyResponse:
    """Classify each supplied face and composite its emoji onto the uploaded image."""
    settings = _get_settings(request)
    pool = _get_inference_pool(request)
    observations = _parse_faces(faces)

    image_bytes = await file.read()
    if len(image_bytes) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File exceeds limit of {settings.max_file_size} bytes",
        )

    try:
        result, png = await pool.run(_process_upload, image_bytes, observations, _get_catalog(request), settings)
    except ImageTooLargeError as exc:
        logger.info("Rejected upload %s: %s", file.filename, exc)
        raise HTTPException(status_code=status.HTTP_413_CONTENT_TOO_LARGE, detail=str(exc)) from exc
    except ImageDecodeError as exc:
        logger.info("Rejected upload %s: %s", file.filename, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TimeoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server busy, try again later",
        ) from exc

    height, width = result.image.shape[:2]
    return EmojifyResponse(
        width=width,
        height=height,
        categories=[str(category) for category in result.categories],
        notices=[_to_notice(notice) for notice in result.notices],
        image=base64.b64encode(png).decode("ascii"),
    )


@router.get(
    "/overlays",
    response_model=OverlaysResponse,
    summary="List overlay assets per expression category",
)
async def list_overlays(request: Request) -> OverlaysResponse:
    """Return every mappable category and whether an overlay is loaded for it."""
    catalog = _get_catalog(request)

    overlays: list[OverlayInfo] = []
    for category in ExpressionCategory:
        if category is ExpressionCategory.UNDETERMINED:
            continue
        image = catalog.get(category)
        if image is None:
            overlays.append(OverlayInfo(category=str(category), available=False))
            continue
        height, width = image.shape[:2]
        overlays.append(OverlayInfo(category=str(category), available=True, width=width, height=height))

    return OverlaysResponse(overlays=overlays)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    pool = _get_inference_pool(request)
    return HealthResponse(
        status="ok",
        overlays_loaded=len(_get_catalog(request)),
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )
