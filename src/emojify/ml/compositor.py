"""Overlay compositing.

Scales an overlay image to a face's bounding box and alpha-blends it onto a
copy of the background. Inputs are never written to; every call returns a
freshly allocated, read-only array with the background's shape.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import cv2
import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

DEFAULT_SCALE_FACTOR: float = 0.9


class DegenerateOverlayAssetError(ValueError):
    """Raised when an overlay image has zero width or height."""


@dataclass(frozen=True)
class OverlayGeometry:
    """Size and top-left placement of a scaled overlay, in background pixels."""

    width: int
    height: int
    x: int
    y: int


def overlay_geometry(
    overlay_width: int,
    overlay_height: int,
    face_position: tuple[float, float],
    face_width: float,
    face_height: float,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> OverlayGeometry:
    """Compute where and how large an overlay is drawn over a face.

    The overlay width tracks the face width. The height keeps the overlay's
    aspect ratio and is then scaled by ``scale_factor`` a second time. The
    overlay is centred horizontally on the face and raised so that its
    vertical centre sits a third of its height above the face centre.

    Raises:
        DegenerateOverlayAssetError: If the overlay has zero width or height.
        ValueError: If the face geometry is not finite or too large to place, the
            face size is negative, or the scale factor is not positive.
    """
    if overlay_width <= 0 or overlay_height <= 0:
        msg = f"Overlay asset has degenerate size {overlay_width}x{overlay_height}"
        raise DegenerateOverlayAssetError(msg)
    face_x, face_y = face_position
    if not all(math.isfinite(v) for v in (face_x, face_y, face_width, face_height, scale_factor)):
        msg = f"Face geometry must be finite, got position=({face_x}, {face_y}) size={face_width}x{face_height}"
        raise ValueError(msg)
    if face_width < 0 or face_height < 0:
        msg = f"Face size must be non-negative, got {face_width}x{face_height}"
        raise ValueError(msg)
    if not scale_factor > 0:
        msg = f"Scale factor must be positive, got {scale_factor}"
        raise ValueError(msg)

    # Integer aspect division, then the scale again on the height: matches the reference renderings.
    try:
        new_width = int(face_width * scale_factor)
        new_height = int(overlay_height * new_width // overlay_width * scale_factor)
        x = math.floor(face_x + face_width / 2 - new_width / 2)
        y = math.floor(face_y + face_height / 2 - new_height / 3)
    except OverflowError as exc:
        msg = f"Face size {face_width}x{face_height} is too large to place an overlay"
        raise ValueError(msg) from exc

    return OverlayGeometry(width=new_width, height=new_height, x=x, y=y)


def composite(
    background: NDArray[np.uint8],
    overlay: NDArray[np.uint8],
    face_position: tuple[float, float],
    face_width: float,
    face_height: float,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> NDArray[np.uint8]:
    """Draw ``overlay`` over a face region of ``background``.

    Args:
        background: HxW grayscale, HxWx3 BGR or HxWx4 BGRA uint8 array.
        overlay: Overlay image; BGRA overlays are blended by their alpha
            channel, grayscale and BGR overlays are drawn opaque.
        face_position: Top-left corner (x, y) of the face bounding box.
        face_width: Bounding box width in pixels.
        face_height: Bounding box height in pixels.
        scale_factor: Overlay size relative to the face width.

    Returns:
        A new read-only array with the same shape and dtype as ``background``.
        Overlay pixels falling outside the background are clipped.

    Raises:
        DegenerateOverlayAssetError: If the overlay has zero width or height.
        ValueError: On non-finite or negative face geometry, or a non-positive scale factor.
    """
    if not (background.ndim == 2 or (background.ndim == 3 and background.shape[2] in (3, 4))):
        msg = f"Unsupported background shape: {background.shape}"
        raise ValueError(msg)

    overlay_height, overlay_width = overlay.shape[:2]
    geometry = overlay_geometry(
        overlay_width,
        overlay_height,
        face_position,
        face_width,
        face_height,
        scale_factor,
    )

    result = np.array(background, dtype=np.uint8, copy=True)
    if geometry.width > 0 and geometry.height > 0:
        _blend_into(result, overlay, geometry)

    result.setflags(write=False)
    return result


def _blend_into(canvas: NDArray[np.uint8], overlay: NDArray[np.uint8], geometry: OverlayGeometry) -> None:
    """Scale ``overlay`` to ``geometry`` and alpha-blend the visible part onto ``canvas`` in place."""
    canvas_h, canvas_w = canvas.shape[:2]
    x, y = geometry.x, geometry.y

    x1, y1 = max(x, 0), max(y, 0)
    x2, y2 = min(x + geometry.width, canvas_w), min(y + geometry.height, canvas_h)
    if x1 >= x2 or y1 >= y2:
        return

    crop = _resample_window(overlay, geometry, (x1 - x, x2 - x), (y1 - y, y2 - y))
    color, alpha = _split_overlay(crop)
    roi = canvas[y1:y2, x1:x2]

    if canvas.ndim == 2:
        gray = cv2.cvtColor(color, cv2.COLOR_BGR2GRAY).astype(np.float32)
        blended = gray * alpha[:, :, 0] + roi.astype(np.float32) * (1.0 - alpha[:, :, 0])
        roi[...] = np.rint(blended).astype(np.uint8)
        return

    roi_color = roi[:, :, :3].astype(np.float32)
    blended = color.astype(np.float32) * alpha + roi_color * (1.0 - alpha)
    roi[:, :, :3] = np.rint(blended).astype(np.uint8)

    if canvas.shape[2] == 4:
        dst_alpha = roi[:, :, 3:4].astype(np.float32) / 255.0
        out_alpha = alpha + dst_alpha * (1.0 - alpha)
        roi[:, :, 3:4] = np.rint(out_alpha * 255.0).astype(np.uint8)


def _split_overlay(overlay: NDArray[np.uint8]) -> tuple[NDArray[np.uint8], NDArray[np.float32]]:
    """Return the overlay as BGR plus an HxWx1 alpha in [0, 1]."""
    if overlay.ndim == 2:
        color = cv2.cvtColor(overlay, cv2.COLOR_GRAY2BGR)
        return color, np.ones((*overlay.shape, 1), dtype=np.float32)

    channels = overlay.shape[2]
    if channels == 4:
        alpha = overlay[:, :, 3:4].astype(np.float32) / 255.0
        return np.ascontiguousarray(overlay[:, :, :3]), alpha
    if channels == 3:
        return overlay, np.ones((*overlay.shape[:2], 1), dtype=np.float32)

    msg = f"Unsupported overlay channel count: {channels}"
    raise ValueError(msg)


def _nearest_indices(start: int, stop: int, source_size: int, target_size: int) -> NDArray[np.intp]:
    """Source indices for target pixels ``start..stop`` of a nearest-neighbour resize."""
    offsets = float(start) + np.arange(stop - start, dtype=np.float64)
    with np.errstate(over="ignore"):
        indices = np.floor(offsets * float(source_size) / float(target_size))
    return np.clip(indices, 0, source_size - 1).astype(np.intp)


def _resample_window(
    overlay: NDArray[np.uint8],
    geometry: OverlayGeometry,
    cols: tuple[int, int],
    rows: tuple[int, int],
) -> NDArray[np.uint8]:
    """Nearest-neighbour resize of ``overlay`` to ``geometry``, computed only for the given window.

    Only the visible part of the scaled overlay is materialised, so the cost is
    bounded by the canvas size however large the face box is.
    """
    overlay_h, overlay_w = overlay.shape[:2]
    row_idx = _nearest_indices(rows[0], rows[1], overlay_h, geometry.height)
    col_idx = _nearest_indices(cols[0], cols[1], overlay_w, geometry.width)
    return np.ascontiguousarray(overlay[row_idx[:, None], col_idx[None, :]])
