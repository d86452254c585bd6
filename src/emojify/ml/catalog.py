"""Overlay catalog: the fixed mapping from expression category to overlay image."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeAlias

import numpy as np

from emojify.ml.compositor import DegenerateOverlayAssetError
from emojify.ml.expression import ExpressionCategory

if TYPE_CHECKING:
    from numpy.typing import NDArray

OverlayCatalog: TypeAlias = "MappingProxyType[ExpressionCategory, NDArray[np.uint8]]"

# Asset file name for each category, relative to the assets directory.
ASSET_FILENAMES: MappingProxyType[ExpressionCategory, str] = MappingProxyType(
    {
        ExpressionCategory.SMILING: "smile.png",
        ExpressionCategory.FROWNING: "frown.png",
        ExpressionCategory.LEFT_WINK: "leftwink.png",
        ExpressionCategory.RIGHT_WINK: "rightwink.png",
        ExpressionCategory.LEFT_WINK_FROWNING: "leftwinkfrown.png",
        ExpressionCategory.RIGHT_WINK_FROWNING: "rightwinkfrown.png",
        ExpressionCategory.CLOSED_EYE_SMILING: "closed_smile.png",
        ExpressionCategory.CLOSED_EYE_FROWNING: "closed_frown.png",
    }
)


def build_catalog(overlays: Mapping[ExpressionCategory, NDArray[np.uint8]]) -> OverlayCatalog:
    """Validate and freeze a category -> overlay mapping.

    Each overlay is copied into a read-only array so later changes to the
    caller's arrays cannot leak into compositing.

    Raises:
        ValueError: If the mapping has an ``UNDETERMINED`` entry.
        DegenerateOverlayAssetError: If an overlay has zero width or height.
    """
    frozen: dict[ExpressionCategory, NDArray[np.uint8]] = {}
    for key, image in overlays.items():
        category = ExpressionCategory(key)
        if category is ExpressionCategory.UNDETERMINED:
            msg = "The undetermined category cannot have an overlay"
            raise ValueError(msg)

        overlay = np.array(image, dtype=np.uint8, copy=True)
        if overlay.ndim < 2 or overlay.shape[0] == 0 or overlay.shape[1] == 0:
            msg = f"Overlay for {category} has degenerate shape {overlay.shape}"
            raise DegenerateOverlayAssetError(msg)

        overlay.setflags(write=False)
        frozen[category] = overlay

    return MappingProxyType(frozen)
