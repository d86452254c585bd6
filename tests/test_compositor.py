"""Tests for overlay geometry and compositing."""

from __future__ import annotations

import hashlib

import numpy as np
import pytest

from emojify.ml.compositor import (
    DegenerateOverlayAssetError,
    OverlayGeometry,
    composite,
    overlay_geometry,
)

RED_BGRA = (0, 0, 255, 255)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _solid(height: int, width: int, color: tuple[int, ...]) -> np.ndarray:
    image = np.zeros((height, width, len(color)), dtype=np.uint8)
    image[:, :] = color
    return image


def _digest(image: np.ndarray) -> str:
    return hashlib.sha256(image.tobytes()).hexdigest()


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestOverlayGeometry:
    def test_reference_example(self) -> None:
        geometry = overlay_geometry(200, 100, (0, 0), 100, 100, 0.9)
        assert geometry == OverlayGeometry(width=90, height=40, x=5, y=36)

    def test_scale_factor_compounds_on_height(self) -> None:
        geometry = overlay_geometry(100, 100, (0, 0), 100, 100, 0.9)
        assert geometry.width == 90
        assert geometry.height == 81

    def test_aspect_division_truncates_before_scaling(self) -> None:
        # 459 * 90 // 900 = 45, then 45 * 0.9 = 40.5
        geometry = overlay_geometry(900, 459, (0, 0), 100, 100, 0.9)
        assert geometry.height == 40

    def test_offset_by_face_position(self) -> None:
        geometry = overlay_geometry(200, 100, (40, 60), 100, 100, 0.9)
        assert (geometry.x, geometry.y) == (45, 96)

    def test_negative_positions_round_down(self) -> None:
        geometry = overlay_geometry(10, 10, (-10, -10), 10, 10, 0.9)
        assert geometry == OverlayGeometry(width=9, height=8, x=-10, y=-8)

    @pytest.mark.parametrize(("width", "height"), [(0, 100), (100, 0), (0, 0)])
    def test_degenerate_overlay_raises(self, width: int, height: int) -> None:
        with pytest.raises(DegenerateOverlayAssetError, match="degenerate"):
            overlay_geometry(width, height, (0, 0), 100, 100)

    def test_negative_face_size_raises(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            overlay_geometry(10, 10, (0, 0), -5, 10)

    @pytest.mark.parametrize(
        ("position", "width", "height"),
        [
            ((0, 0), float("inf"), 10),
            ((0, 0), 10, float("nan")),
            ((float("-inf"), 0), 10, 10),
            ((0, float("nan")), 10, 10),
        ],
    )
    def test_non_finite_geometry_raises(
        self, position: tuple[float, float], width: float, height: float
    ) -> None:
        with pytest.raises(ValueError, match="finite"):
            overlay_geometry(10, 10, position, width, height)

    def test_overflowing_height_raises(self) -> None:
        with pytest.raises(ValueError, match="too large"):
            overlay_geometry(1, 100, (0, 0), 1e308, 10, 1.5)

    def test_non_positive_scale_raises(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            overlay_geometry(10, 10, (0, 0), 10, 10, 0.0)


# ---------------------------------------------------------------------------
# Compositing
# ---------------------------------------------------------------------------


class TestComposite:
    def test_draws_overlay_at_expected_region(self) -> None:
        background = np.zeros((200, 200, 3), dtype=np.uint8)
        overlay = _solid(100, 200, RED_BGRA)

        result = composite(background, overlay, (0, 0), 100, 100, 0.9)

        assert result[36:76, 5:95].tolist() == _solid(40, 90, (0, 0, 255)).tolist()
        assert result[35, 5].tolist() == [0, 0, 0]
        assert result[36, 4].tolist() == [0, 0, 0]
        assert result[76, 94].tolist() == [0, 0, 0]
        assert result[75, 95].tolist() == [0, 0, 0]

    def test_output_matches_background_shape(self) -> None:
        background = np.zeros((120, 80, 3), dtype=np.uint8)
        result = composite(background, _solid(10, 10, RED_BGRA), (10, 10), 30, 30)
        assert result.shape == background.shape
        assert result.dtype == np.uint8

    def test_overlay_larger_than_background(self) -> None:
        background = np.zeros((50, 40, 3), dtype=np.uint8)
        result = composite(background, _solid(1000, 1000, RED_BGRA), (-200, -200), 400, 400)
        assert result.shape == background.shape
        assert (result == np.array([0, 0, 255], dtype=np.uint8)).all()

    def test_overlay_fully_outside_is_clipped(self) -> None:
        background = _solid(50, 50, (10, 20, 30))
        result = composite(background, _solid(10, 10, RED_BGRA), (-500, -500), 20, 20)
        assert np.array_equal(result, background)

    def test_overlay_partially_outside_is_clipped(self) -> None:
        background = np.zeros((50, 50, 3), dtype=np.uint8)
        result = composite(background, _solid(10, 10, RED_BGRA), (40, 40), 20, 20)
        assert result.shape == (50, 50, 3)
        assert result[49, 49].tolist() == [0, 0, 255]

    def test_inputs_not_mutated(self) -> None:
        background = _solid(100, 100, (1, 2, 3))
        overlay = _solid(20, 40, RED_BGRA)
        before = (_digest(background), _digest(overlay))

        composite(background, overlay, (10, 10), 50, 50)

        assert (_digest(background), _digest(overlay)) == before

    def test_output_is_new_read_only_buffer(self) -> None:
        background = np.zeros((20, 20, 3), dtype=np.uint8)
        result = composite(background, _solid(4, 4, RED_BGRA), (0, 0), 10, 10)
        assert not np.shares_memory(result, background)
        assert result.flags.writeable is False
        assert background.flags.writeable is True

    def test_read_only_output_can_be_composited_again(self) -> None:
        background = np.zeros((20, 20, 3), dtype=np.uint8)
        first = composite(background, _solid(4, 4, RED_BGRA), (0, 0), 10, 10)
        second = composite(first, _solid(4, 4, (255, 0, 0, 255)), (10, 10), 10, 10)
        assert second.shape == background.shape

    def test_transparent_overlay_leaves_background(self) -> None:
        background = _solid(60, 60, (7, 8, 9))
        result = composite(background, _solid(10, 10, (0, 0, 255, 0)), (10, 10), 40, 40)
        assert np.array_equal(result, background)

    def test_half_alpha_blends(self) -> None:
        background = np.zeros((60, 60, 3), dtype=np.uint8)
        result = composite(background, _solid(10, 10, (0, 0, 255, 128)), (0, 0), 40, 40)
        red = int(result[20, 20, 2])
        assert 127 <= red <= 129
        assert result[20, 20, 0] == 0

    def test_bgr_overlay_is_opaque(self) -> None:
        background = _solid(60, 60, (9, 9, 9))
        result = composite(background, _solid(10, 10, (200, 100, 50)), (0, 0), 40, 40)
        assert result[20, 20].tolist() == [200, 100, 50]

    def test_grayscale_background(self) -> None:
        background = np.zeros((60, 60), dtype=np.uint8)
        result = composite(background, _solid(10, 10, (255, 255, 255, 255)), (0, 0), 40, 40)
        assert result.shape == (60, 60)
        assert result[20, 20] == 255

    def test_bgra_background_alpha_composited(self) -> None:
        background = np.zeros((60, 60, 4), dtype=np.uint8)
        result = composite(background, _solid(10, 10, RED_BGRA), (0, 0), 40, 40)
        assert result[20, 20].tolist() == [0, 0, 255, 255]
        assert result[0, 0].tolist() == [0, 0, 0, 0]

    def test_tiny_face_draws_nothing(self) -> None:
        background = _solid(20, 20, (5, 5, 5))
        result = composite(background, _solid(10, 10, RED_BGRA), (5, 5), 1, 1)
        assert np.array_equal(result, background)

    def test_degenerate_overlay_raises(self) -> None:
        background = np.zeros((20, 20, 3), dtype=np.uint8)
        with pytest.raises(DegenerateOverlayAssetError):
            composite(background, np.zeros((0, 10, 4), dtype=np.uint8), (0, 0), 10, 10)

    def test_unsupported_background_raises(self) -> None:
        with pytest.raises(ValueError, match="background"):
            composite(np.zeros((10, 10, 2), dtype=np.uint8), _solid(4, 4, RED_BGRA), (0, 0), 5, 5)


class TestNearestNeighbourResample:
    @staticmethod
    def _quadrants() -> np.ndarray:
        overlay = np.zeros((2, 2, 3), dtype=np.uint8)
        overlay[0, 0] = (10, 0, 0)
        overlay[0, 1] = (20, 0, 0)
        overlay[1, 0] = (30, 0, 0)
        overlay[1, 1] = (40, 0, 0)
        return overlay

    def test_each_source_pixel_becomes_a_block(self) -> None:
        background = np.zeros((40, 40, 3), dtype=np.uint8)
        # 20px face at scale 1.0 -> 20x20 overlay at (0, 3)
        result = composite(background, self._quadrants(), (0, 0), 20, 20, 1.0)

        assert result[3, 0, 0] == 10
        assert result[12, 9, 0] == 10
        assert result[3, 10, 0] == 20
        assert result[22, 0, 0] == 30
        assert result[13, 10, 0] == 40
        assert result[23, 0, 0] == 0
        assert result[3, 20, 0] == 0

    def test_clipped_window_samples_matching_source_pixels(self) -> None:
        background = np.zeros((40, 40, 3), dtype=np.uint8)
        # Same overlay shifted to (-10, 0): only its right half is visible
        result = composite(background, self._quadrants(), (-10, -3), 20, 20, 1.0)

        assert result[0, 0, 0] == 20
        assert result[9, 9, 0] == 20
        assert result[10, 0, 0] == 40
        assert result[19, 9, 0] == 40
        assert result[0, 10, 0] == 0

    def test_huge_face_box_covers_canvas(self) -> None:
        background = np.zeros((30, 30, 3), dtype=np.uint8)
        result = composite(background, _solid(10, 10, RED_BGRA), (-5e11, -5e11), 1e12, 1e12)
        assert result.shape == background.shape
        assert (result == np.array([0, 0, 255], dtype=np.uint8)).all()
