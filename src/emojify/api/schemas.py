"""Pydantic request/response schemas for the Emojify API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ExpressionScores(BaseModel):
    """Classification probabilities for a single face."""

    smiling_probability: float = Field(description="Probability the face is smiling (0.0-1.0)")
    left_eye_open_probability: float = Field(description="Probability the left eye is open (0.0-1.0)")
    right_eye_open_probability: float = Field(description="Probability the right eye is open (0.0-1.0)")


class FaceInput(ExpressionScores):
    """A detected face supplied by the caller's detector."""

    x: float = Field(description="Bounding box left edge in pixels")
    y: float = Field(description="Bounding box top edge in pixels")
    width: float = Field(ge=0.0, description="Bounding box width in pixels")
    height: float = Field(ge=0.0, description="Bounding box height in pixels")


class ClassifyExpressionResponse(BaseModel):
    """Response for the expression classification endpoint."""

    category: str


class Notice(BaseModel):
    """A per-request or per-face diagnostic surfaced to the caller."""

    kind: str = Field(description="'no_faces_detected', 'no_overlay_for_category', or 'overlay_failed'")
    face_index: int | None = None
    category: str | None = None
    detail: str | None = None


class EmojifyResponse(BaseModel):
    """Response for the emojify endpoint."""

    width: int
    height: int
    categories: list[str] = Field(description="Expression category per input face, in input order")
    notices: list[Notice]
    image: str = Field(description="Base64-encoded PNG of the composited image")


class OverlayInfo(BaseModel):
    """Catalog entry for one expression category."""

    category: str
    available: bool
    width: int | None = None
    height: int | None = None


class OverlaysResponse(BaseModel):
    """Response for the overlay listing endpoint."""

    overlays: list[OverlayInfo]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    overlays_loaded: int
    concurrent_requests: int
    queue_depth: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
