"""Per-face classify-and-composite loop.

For every face, in order: classify the expression, look the category up in
the overlay catalog and draw the overlay on top of the running result.
Failures are isolated per face and reported as notices rather than raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from emojify.ml.compositor import DEFAULT_SCALE_FACTOR, composite
from emojify.ml.expression import ExpressionCategory, classify_face

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np
    from numpy.typing import NDArray

    from emojify.ml.catalog import OverlayCatalog
    from emojify.ml.face_detector import FaceDetector, FaceObservation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoFacesDetected:
    """The face list was empty; the background is returned unchanged."""


@dataclass(frozen=True)
class NoOverlayForCategory:
    """A face's category has no overlay in the catalog; the face was skipped."""

    face_index: int
    category: ExpressionCategory


@dataclass(frozen=True)
class OverlayFailed:
    """Compositing a face's overlay raised; the face was skipped."""

    face_index: int
    category: ExpressionCategory
    reason: str


Notice: TypeAlias = NoFacesDetected | NoOverlayForCategory | OverlayFailed


@dataclass(frozen=True)
class EmojifyResult:
    """Final image plus the per-face categories and notices."""

    image: NDArray[np.uint8]
    categories: tuple[ExpressionCategory, ...] = ()
    notices: tuple[Notice, ...] = field(default_factory=tuple)


def emojify(
    background: NDArray[np.uint8],
    faces: Sequence[FaceObservation],
    catalog: OverlayCatalog,
    *,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> EmojifyResult:
    """Overlay the matching emoji on every face in ``faces``.

    Later faces are drawn on top of earlier ones where boxes overlap.
    """
    if not faces:
        logger.info("No faces detected")
        return EmojifyResult(image=background, notices=(NoFacesDetected(),))

    result = background
    categories: list[ExpressionCategory] = []
    notices: list[Notice] = []

    for index, face in enumerate(faces):
        category = classify_face(face)
        categories.append(category)

        overlay = catalog.get(category)
        if overlay is None:
            logger.info("No overlay for face %d (category=%s)", index, category)
            notices.append(NoOverlayForCategory(face_index=index, category=category))
            continue

        try:
            result = composite(
                result,
                overlay,
                face.position,
                face.width,
                face.height,
                scale_factor,
            )
        except ValueError as exc:
            logger.warning("Failed to overlay face %d (category=%s): %s", index, category, exc)
            notices.append(OverlayFailed(face_index=index, category=category, reason=str(exc)))

    return EmojifyResult(image=result, categories=tuple(categories), notices=tuple(notices))


class Emojifier:
    """Runs a face detector and overlays emoji on the faces it finds."""

    def __init__(
        self,
        detector: FaceDetector,
        catalog: OverlayCatalog,
        *,
        scale_factor: float = DEFAULT_SCALE_FACTOR,
    ) -> None:
        self._detector = detector
        self._catalog = catalog
        self._scale_factor = scale_factor

    @property
    def catalog(self) -> OverlayCatalog:
        return self._catalog

    def detect_and_emojify(self, picture: NDArray[np.uint8]) -> EmojifyResult:
        """Detect faces in ``picture`` and overlay the matching emoji."""
        faces = self._detector.detect(picture)
        logger.debug("detect_and_emojify: number of faces = %d", len(faces))
        return emojify(picture, faces, self._catalog, scale_factor=self._scale_factor)
