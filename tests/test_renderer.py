"""Tests for the progressive renderer.

This module tests:
- Frame storage lifecycle (resize, render before resize)
- Frame index bookkeeping with and without accumulation
- The accumulation average and the packed display pixels
- Equivalence of the parallel and serialized pixel schedules
- Fatal handling of corrupted material indices
"""

import numpy as np
import pytest

WHITE = 0xFFFFFFFF
OPAQUE_BLACK = 0xFF000000


def _renderer(width, height, **settings):
    from src.raytracing.core.renderer import Renderer, RenderSettings

    renderer = Renderer(RenderSettings(**settings))
    renderer.resize(width, height)
    return renderer


class TestRenderSettings:
    """Tests for RenderSettings validation."""

    def test_defaults(self):
        """Test the default configuration."""
        from src.raytracing.core.renderer import ExecutionStrategy, RenderSettings

        settings = RenderSettings()

        assert settings.accumulate is True
        assert settings.bounces == 2
        assert settings.strategy is ExecutionStrategy.PARALLEL
        assert settings.albedo_attenuation is False
        assert settings.hash_pixel_seed is False

    def test_negative_bounces_rejected(self):
        """Test that a negative bounce budget is rejected."""
        from src.raytracing.core.renderer import RenderSettings

        with pytest.raises(ValueError, match="bounces"):
            RenderSettings(bounces=-1)

    def test_strategy_from_string(self):
        """Test that the strategy may be given by value."""
        from src.raytracing.core.renderer import ExecutionStrategy, RenderSettings

        assert RenderSettings(strategy="sequential").strategy is ExecutionStrategy.SEQUENTIAL


class TestFrameStorage:
    """Tests for resize and buffer ownership."""

    def test_render_before_resize_raises(self, default_scene, small_camera):
        """Test that rendering without a frame buffer fails."""
        from src.raytracing.core.renderer import Renderer

        with pytest.raises(RuntimeError, match="resize"):
            Renderer().render_frame(default_scene, small_camera)

    def test_resize_allocates_buffers(self):
        """Test buffer shapes after resize."""
        renderer = _renderer(8, 5)

        assert renderer.width == 8
        assert renderer.height == 5
        assert renderer.pixels.shape == (5, 8)
        assert renderer.pixels.dtype == np.uint32
        assert renderer.accumulation.shape == (5, 8, 4)
        assert renderer.accumulation.dtype == np.float32

    def test_resize_same_size_keeps_state(self, default_scene, small_camera):
        """Test that resizing to the current size is a no-op."""
        renderer = _renderer(16, 12)
        renderer.render_frame(default_scene, small_camera)
        renderer.render_frame(default_scene, small_camera)
        accumulation = renderer.accumulation.copy()

        renderer.resize(16, 12)

        assert renderer.frame_index == 3
        assert np.array_equal(renderer.accumulation, accumulation)

    def test_resize_new_size_resets(self, default_scene, small_camera):
        """Test that a real resize drops samples and resets the frame index."""
        renderer = _renderer(16, 12)
        renderer.render_frame(default_scene, small_camera)
        renderer.render_frame(default_scene, small_camera)

        renderer.resize(8, 6)

        assert renderer.frame_index == 1
        assert renderer.pixels.shape == (6, 8)
        assert not renderer.accumulation.any()

    def test_non_positive_resize_rejected(self):
        """Test that zero-sized frames are rejected."""
        from src.raytracing.core.renderer import Renderer

        with pytest.raises(ValueError):
            Renderer().resize(0, 10)

    def test_camera_size_mismatch_rejected(self, default_scene, small_camera):
        """Test that ray directions must match the frame size."""
        renderer = _renderer(8, 8)

        with pytest.raises(ValueError, match="shape"):
            renderer.render_frame(default_scene, small_camera)


class TestFrameIndex:
    """Tests for frame index bookkeeping."""

    def test_starts_at_one(self):
        """Test the initial frame index."""
        assert _renderer(4, 4).frame_index == 1

    def test_increments_while_accumulating(self, default_scene, small_camera):
        """Test that each accumulated frame advances the index."""
        renderer = _renderer(16, 12, accumulate=True)

        for expected in range(2, 6):
            renderer.render_frame(default_scene, small_camera)
            assert renderer.frame_index == expected

    def test_stays_at_one_without_accumulation(self, default_scene, small_camera):
        """Test that non-accumulating frames keep the index at 1."""
        renderer = _renderer(16, 12, accumulate=False)

        for _ in range(3):
            renderer.render_frame(default_scene, small_camera)
            assert renderer.frame_index == 1

    def test_per_call_override(self, default_scene, small_camera):
        """Test that the accumulate argument overrides the settings."""
        renderer = _renderer(16, 12, accumulate=True)
        renderer.render_frame(default_scene, small_camera)
        renderer.render_frame(default_scene, small_camera, accumulate=False)

        assert renderer.frame_index == 1
        assert np.all(renderer.accumulation[..., 3] == 1.0)

    def test_reset_restarts_accumulation(self, default_scene, small_camera):
        """Test that a reset frame discards earlier samples."""
        renderer = _renderer(16, 12)
        for _ in range(3):
            renderer.render_frame(default_scene, small_camera)

        renderer.reset_frame_index()
        renderer.render_frame(default_scene, small_camera)

        assert renderer.frame_index == 2
        assert np.all(renderer.accumulation[..., 3] == 1.0)

    def test_last_frame_time_recorded(self, default_scene, small_camera):
        """Test that the frame duration is measured."""
        renderer = _renderer(16, 12)
        renderer.render_frame(default_scene, small_camera)

        assert renderer.last_frame_time > 0.0


class TestImage:
    """Tests for the accumulated average and packed pixels."""

    def test_empty_scene_is_opaque_black(self, small_camera):
        """Test that a frame of misses packs to opaque black."""
        from src.raytracing.scene.scene import Scene

        renderer = _renderer(16, 12)
        renderer.render_frame(Scene(), small_camera)

        assert np.all(renderer.pixels == OPAQUE_BLACK)

    def test_emitter_fills_frame_white(self, single_sphere_scene):
        """Test that every pixel looking at the unit emitter packs to white."""
        from src.raytracing.camera.camera import FixedCamera

        camera = FixedCamera.uniform((0.0, 0.0, 2.0), (0.0, 0.0, -1.0), 4, 3)
        renderer = _renderer(4, 3)

        for _ in range(3):
            renderer.render_frame(single_sphere_scene, camera)

        assert np.all(renderer.pixels == WHITE)
        assert np.allclose(renderer.get_average_numpy(), 1.0)
        assert np.all(renderer.accumulation[..., 3] == 3.0)

    def test_pixels_are_clamped_average(self, default_scene, small_camera):
        """Test pixels == pack(clamp(sum / frames))."""
        from src.raytracing.core.color import pack_rgba_array

        renderer = _renderer(16, 12)
        frames = 4
        for _ in range(frames):
            renderer.render_frame(default_scene, small_camera)

        expected = pack_rgba_array(renderer.accumulation / np.float32(frames))
        actual = renderer.pixels

        for shift in (0, 8, 16, 24):
            a = ((actual >> shift) & 0xFF).astype(np.int32)
            e = ((expected >> shift) & 0xFF).astype(np.int32)
            assert np.max(np.abs(a - e)) <= 1

    def test_alpha_counts_frames(self, default_scene, small_camera):
        """Test that the accumulated alpha equals the frame count."""
        renderer = _renderer(16, 12)
        for _ in range(5):
            renderer.render_frame(default_scene, small_camera)

        assert np.all(renderer.accumulation[..., 3] == 5.0)
        assert np.all((renderer.pixels >> 24) == 0xFF)

    def test_average_matches_per_pixel_paths(self, default_scene, small_camera):
        """Test the running average against individually traced paths.

        Frame k traces pixel (x, y) with seed (x + y * width) * k.
        """
        from src.raytracing.core.integrator import trace_ray

        renderer = _renderer(16, 12)
        frames = 3
        for _ in range(frames):
            renderer.render_frame(default_scene, small_camera)

        average = renderer.get_average_numpy()
        origin = [float(v) for v in np.asarray(small_camera.position, dtype=np.float32)]

        for x, y in [(0, 0), (8, 6), (5, 3), (12, 9), (15, 11)]:
            direction = [float(v) for v in small_camera.ray_directions[y, x]]
            paths = [
                trace_ray(default_scene, origin, direction, seed=(x + y * 16) * k)
                for k in range(1, frames + 1)
            ]
            expected = np.mean(paths, axis=0)
            assert average[y, x] == pytest.approx(expected, abs=1e-5)

    def test_get_image_rgba(self, single_sphere_scene):
        """Test unpacking of the packed pixels to bytes."""
        from src.raytracing.camera.camera import FixedCamera

        camera = FixedCamera.uniform((0.0, 0.0, 2.0), (0.0, 0.0, -1.0), 2, 2)
        renderer = _renderer(2, 2)
        renderer.render_frame(single_sphere_scene, camera)

        image = renderer.get_image_rgba()

        assert image.shape == (2, 2, 4)
        assert image.dtype == np.uint8
        assert np.all(image == 255)


class TestDeterminism:
    """Tests for reproducible frames."""

    def test_repeat_frame_identical(self, default_scene, small_camera):
        """Test that non-accumulating frames repeat exactly."""
        renderer = _renderer(16, 12, accumulate=False, bounces=4)
        renderer.render_frame(default_scene, small_camera)
        first = renderer.pixels.copy()

        renderer.render_frame(default_scene, small_camera)

        assert np.array_equal(renderer.pixels, first)

    def test_parallel_matches_sequential(self, default_scene, small_camera):
        """Test that both pixel schedules produce identical frames."""
        from src.raytracing.core.renderer import ExecutionStrategy

        parallel = _renderer(16, 12, bounces=3, strategy=ExecutionStrategy.PARALLEL)
        sequential = _renderer(16, 12, bounces=3, strategy=ExecutionStrategy.SEQUENTIAL)

        for _ in range(3):
            parallel.render_frame(default_scene, small_camera)
            sequential.render_frame(default_scene, small_camera)

        assert np.array_equal(parallel.pixels, sequential.pixels)
        assert np.array_equal(parallel.accumulation, sequential.accumulation)

    def test_hashed_seed_is_deterministic_and_distinct(self, default_scene, small_camera):
        """Test the hashed pixel seed variant."""
        plain = _renderer(16, 12, accumulate=False, bounces=4)
        hashed_a = _renderer(16, 12, accumulate=False, bounces=4, hash_pixel_seed=True)
        hashed_b = _renderer(16, 12, accumulate=False, bounces=4, hash_pixel_seed=True)

        for renderer in (plain, hashed_a, hashed_b):
            renderer.render_frame(default_scene, small_camera)

        assert np.array_equal(hashed_a.accumulation, hashed_b.accumulation)
        assert not np.array_equal(plain.accumulation, hashed_a.accumulation)


class TestRenderInvariant:
    """Tests for corrupted scene data reaching the kernel."""

    def test_bad_material_index_raises(self, default_scene, small_camera, monkeypatch):
        """Test that an out-of-range material index aborts the frame."""
        from src.raytracing.core.renderer import RenderInvariantError

        packed = default_scene.packed()
        corrupted = packed._replace(
            sphere_materials=np.full_like(packed.sphere_materials, 99)
        )
        monkeypatch.setattr(default_scene, "packed", lambda: corrupted)
        renderer = _renderer(16, 12)

        with pytest.raises(RenderInvariantError):
            renderer.render_frame(default_scene, small_camera)

        assert renderer.frame_index == 1

    def test_invariant_error_is_runtime_error(self):
        """Test the exception hierarchy."""
        from src.raytracing.core.renderer import RenderInvariantError

        assert issubclass(RenderInvariantError, RuntimeError)
