"""Image I/O at the service boundary.

Decodes uploaded bytes into BGR arrays with size validation, encodes results
back to PNG, and loads the overlay catalog from an assets directory.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import cv2
import numpy as np

from emojify.ml.catalog import ASSET_FILENAMES, build_catalog

if TYPE_CHECKING:
    from pathlib import Path

    from numpy.typing import NDArray

    from emojify.ml.catalog import OverlayCatalog
    from emojify.ml.expression import ExpressionCategory

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when uploaded bytes cannot be decoded as an image."""


class ImageTooLargeError(ValueError):
    """Raised when an image exceeds the configured pixel limit."""


def decode_image(image_bytes: bytes, max_pixels: int) -> NDArray[np.uint8]:
    """Decode raw image bytes into a BGR uint8 numpy array.

    Args:
        image_bytes: Raw file bytes (any format OpenCV can read).
        max_pixels: Maximum allowed width * height.

    Returns:
        HxWx3 BGR uint8 numpy array.

    Raises:
        ImageDecodeError: If the bytes are not a decodable image.
        ImageTooLargeError: If the decoded image exceeds ``max_pixels``.
    """
    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if image is None:
        msg = "Could not decode image"
        raise ImageDecodeError(msg)

    height, width = image.shape[:2]
    if height * width > max_pixels:
        msg = f"Image is {width}x{height}, exceeds limit of {max_pixels} pixels"
        raise ImageTooLargeError(msg)

    return image


def encode_png(image: NDArray[np.uint8]) -> bytes:
    """Encode an image array as PNG bytes."""
    ok, encoded = cv2.imencode(".png", np.ascontiguousarray(image))
    if not ok:
        msg = f"Could not encode image of shape {image.shape}"
        raise ValueError(msg)
    return encoded.tobytes()


def load_catalog(assets_dir: Path | None) -> OverlayCatalog:
    """Load overlay assets from ``assets_dir`` into a catalog.

    Missing or unreadable files are logged and left out of the catalog, so
    faces in those categories are reported as having no overlay.
    """
    overlays: dict[ExpressionCategory, NDArray[np.uint8]] = {}
    if assets_dir is None:
        logger.warning("No assets directory configured, overlay catalog is empty")
        return build_catalog(overlays)

    for category, filename in ASSET_FILENAMES.items():
        path = assets_dir / filename
        if not path.is_file():
            logger.warning("Overlay asset missing for %s: %s", category, path)
            continue

        image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if image is None:
            logger.warning("Overlay asset unreadable for %s: %s", category, path)
            continue
        overlays[category] = image

    logger.info("Loaded %d/%d overlay assets from %s", len(overlays), len(ASSET_FILENAMES), assets_dir)
    return build_catalog(overlays)
