"""Face detector contract.

Detection itself is provided by the caller; this module only defines the
record a detector must produce and the protocol it must satisfy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


@dataclass(frozen=True)
class FaceObservation:
    """A detected face with its bounding box and classification scores.

    Coordinates are in pixel space of the image the face was detected in.
    """

    x: float
    y: float
    width: float
    height: float
    smiling_probability: float
    left_eye_open_probability: float
    right_eye_open_probability: float

    @property
    def position(self) -> tuple[float, float]:
        """Top-left corner of the bounding box."""
        return (self.x, self.y)


class FaceDetector(Protocol):
    """Protocol for face detection with expression classification."""

    def detect(self, image: NDArray[np.uint8]) -> list[FaceObservation]:
        """Detect faces in an image.

        Args:
            image: HxWx3 BGR uint8 array.

        Returns:
            Detected faces in detector order.
        """
        ...
