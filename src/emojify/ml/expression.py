"""Expression classification from face probability scores."""

from __future__ import annotations

import logging
import math
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from emojify.ml.face_detector import FaceObservation

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD: float = 0.5


class ExpressionCategory(StrEnum):
    """Facial expression a face is classified into, one per overlay asset."""

    SMILING = "smiling"
    FROWNING = "frowning"
    LEFT_WINK = "left_wink"
    RIGHT_WINK = "right_wink"
    LEFT_WINK_FROWNING = "left_wink_frowning"
    RIGHT_WINK_FROWNING = "right_wink_frowning"
    CLOSED_EYE_SMILING = "closed_eye_smiling"
    CLOSED_EYE_FROWNING = "closed_eye_frowning"
    UNDETERMINED = "undetermined"


# (smiling, left eye open, right eye open) -> category
_DECISION_TABLE: MappingProxyType[tuple[bool, bool, bool], ExpressionCategory] = MappingProxyType(
    {
        (True, True, True): ExpressionCategory.SMILING,
        (False, True, True): ExpressionCategory.FROWNING,
        (True, False, True): ExpressionCategory.LEFT_WINK,
        (True, True, False): ExpressionCategory.RIGHT_WINK,
        (False, False, True): ExpressionCategory.LEFT_WINK_FROWNING,
        (False, True, False): ExpressionCategory.RIGHT_WINK_FROWNING,
        (True, False, False): ExpressionCategory.CLOSED_EYE_SMILING,
        (False, False, False): ExpressionCategory.CLOSED_EYE_FROWNING,
    }
)


def classify(
    smiling: float,
    left_eye_open: float,
    right_eye_open: float,
    *,
    threshold: float = DEFAULT_THRESHOLD,
) -> ExpressionCategory:
    """Map three probabilities onto a single expression category.

    Each probability is compared against ``threshold`` with a strict
    greater-than, so a value exactly at the threshold counts as "not above".

    Args:
        smiling: Probability that the face is smiling.
        left_eye_open: Probability that the left eye is open.
        right_eye_open: Probability that the right eye is open.
        threshold: Decision boundary applied to all three inputs.

    Returns:
        The matching category, or ``UNDETERMINED`` if any input is NaN.
    """
    logger.debug(
        "classify: smiling=%s left_eye_open=%s right_eye_open=%s",
        smiling,
        left_eye_open,
        right_eye_open,
    )

    if any(math.isnan(p) for p in (smiling, left_eye_open, right_eye_open)):
        logger.debug("classify: non-numeric probability, category=%s", ExpressionCategory.UNDETERMINED)
        return ExpressionCategory.UNDETERMINED

    key = (smiling > threshold, left_eye_open > threshold, right_eye_open > threshold)
    category = _DECISION_TABLE.get(key, ExpressionCategory.UNDETERMINED)

    logger.debug("classify: category=%s", category)
    return category


def classify_face(face: FaceObservation, *, threshold: float = DEFAULT_THRESHOLD) -> ExpressionCategory:
    """Classify a detected face by its probability scores."""
    return classify(
        face.smiling_probability,
        face.left_eye_open_probability,
        face.right_eye_open_probability,
        threshold=threshold,
    )
