"""Tests for the perspective camera.

This module tests:
- Ray direction generation (shape, unit length, orientation)
- Viewport resizing
- Movement and rotation
- FixedCamera
"""

import numpy as np
import pytest

from src.raytracing.camera.camera import Camera, CameraSettings, FixedCamera


class TestCameraSettings:
    """Tests for CameraSettings validation."""

    def test_defaults(self):
        """Test the default projection parameters."""
        settings = CameraSettings()

        assert settings.vertical_fov == 45.0
        assert settings.near_clip == 0.1
        assert settings.far_clip == 100.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"vertical_fov": 0.0}, {"vertical_fov": 180.0}, {"near_clip": 0.0}, {"far_clip": 0.05}],
    )
    def test_invalid_settings_rejected(self, kwargs):
        """Test that impossible projections are rejected."""
        with pytest.raises(ValueError):
            CameraSettings(**kwargs)


class TestRayDirections:
    """Tests for per-pixel ray directions."""

    def test_requires_resize(self):
        """Test that directions are unavailable before resize."""
        with pytest.raises(RuntimeError, match="resize"):
            _ = Camera().ray_directions

    def test_shape_and_dtype(self, small_camera):
        """Test the (height, width, 3) float32 layout."""
        directions = small_camera.ray_directions

        assert directions.shape == (12, 16, 3)
        assert directions.dtype == np.float32
        assert directions.flags["C_CONTIGUOUS"]

    def test_unit_length(self, small_camera):
        """Test that all directions are normalized."""
        lengths = np.linalg.norm(small_camera.ray_directions, axis=-1)

        assert np.allclose(lengths, 1.0, atol=1e-5)

    def test_center_ray_is_forward(self):
        """Test that the pixel at the viewport center looks forward."""
        camera = Camera(position=(0.0, 0.0, 6.0), forward=(0.0, 0.0, -1.0))
        camera.resize(4, 4)

        # Pixel (2, 2) maps to NDC (0, 0)
        assert camera.ray_directions[2, 2] == pytest.approx([0.0, 0.0, -1.0], abs=1e-6)

    def test_row_zero_is_bottom(self, small_camera):
        """Test that rows grow upward and columns grow rightward."""
        directions = small_camera.ray_directions

        assert directions[0, 8, 1] < 0.0
        assert directions[11, 8, 1] > 0.0
        assert directions[6, 0, 0] < 0.0
        assert directions[6, 15, 0] > 0.0

    def test_vertical_fov(self):
        """Test that the bottom row sits at half the vertical field of view."""
        camera = Camera(CameraSettings(vertical_fov=90.0), forward=(0.0, 0.0, -1.0))
        camera.resize(2, 2)

        # Pixel (1, 0): NDC (0, -1) -> 45 degrees below the view axis
        direction = camera.ray_directions[0, 1]
        assert direction == pytest.approx([0.0, -np.sqrt(0.5), -np.sqrt(0.5)], abs=1e-5)

    def test_follows_view_direction(self):
        """Test that rotating the view rotates the rays."""
        camera = Camera(position=(0.0, 0.0, 0.0), forward=(1.0, 0.0, 0.0))
        camera.resize(4, 4)

        assert camera.ray_directions[2, 2] == pytest.approx([1.0, 0.0, 0.0], abs=1e-6)


class TestResize:
    """Tests for viewport changes."""

    def test_same_size_is_noop(self, small_camera):
        """Test that an unchanged viewport is not regenerated."""
        directions = small_camera.ray_directions

        assert small_camera.resize(16, 12) is False
        assert small_camera.ray_directions is directions

    def test_new_size_regenerates(self, small_camera):
        """Test that a new viewport regenerates directions."""
        assert small_camera.resize(8, 8) is True
        assert small_camera.ray_directions.shape == (8, 8, 3)

    def test_non_positive_rejected(self):
        """Test that empty viewports are rejected."""
        with pytest.raises(ValueError):
            Camera().resize(0, 4)


class TestNavigation:
    """Tests for move and rotate."""

    def test_move_forward(self):
        """Test moving along the view direction."""
        camera = Camera(CameraSettings(move_speed=2.0), position=(0.0, 0.0, 6.0))
        camera.resize(4, 4)

        assert camera.move(0.0, 0.0, 1.0, dt=0.5) is True
        assert camera.position == pytest.approx([0.0, 0.0, 5.0])

    def test_move_right_and_up(self):
        """Test strafing and vertical movement."""
        camera = Camera(CameraSettings(move_speed=1.0), position=(0.0, 0.0, 0.0))

        camera.move(1.0, 1.0, 0.0, dt=1.0)

        assert camera.position == pytest.approx([1.0, 1.0, 0.0])

    def test_no_movement(self):
        """Test that a zero step reports no change."""
        camera = Camera()

        assert camera.move(0.0, 0.0, 0.0, dt=1.0) is False

    def test_rotate_changes_forward(self):
        """Test that a mouse delta turns the camera."""
        camera = Camera()
        camera.resize(4, 4)
        before = camera.ray_directions.copy()

        assert camera.rotate(100.0, 0.0) is True
        assert np.linalg.norm(camera.forward) == pytest.approx(1.0)
        assert not np.allclose(camera.forward, [0.0, 0.0, -1.0])
        assert camera.forward[1] == pytest.approx(0.0, abs=1e-9)
        assert not np.allclose(camera.ray_directions, before)

    def test_zero_rotation(self):
        """Test that a zero mouse delta reports no change."""
        assert Camera().rotate(0.0, 0.0) is False

    def test_position_is_a_copy(self):
        """Test that callers cannot mutate the camera through properties."""
        camera = Camera(position=(1.0, 2.0, 3.0))
        position = camera.position
        position[0] = 100.0

        assert camera.position[0] == 1.0


class TestFixedCamera:
    """Tests for FixedCamera."""

    def test_uniform(self):
        """Test a camera with the same direction for every pixel."""
        camera = FixedCamera.uniform((0.0, 0.0, 2.0), (0.0, 0.0, -1.0), 3, 2)

        assert camera.position == (0.0, 0.0, 2.0)
        assert camera.ray_directions.shape == (2, 3, 3)
        assert camera.ray_directions.dtype == np.float32
        assert np.all(camera.ray_directions[..., 2] == -1.0)
