"""Progressive renderer: per-frame dispatch, accumulation and packing.

The Renderer owns the frame storage and the frame index. Each call to
``render_frame`` traces one path per pixel, adds it to the accumulation
buffer and writes the clamped running average as packed 32-bit pixels:

    seed      = (x + y * width) * frame_index
    sum[x,y] += (radiance, 1)
    pixel     = pack(clamp(sum[x,y] / frame_index, 0, 1))

While accumulating, the frame index grows by one per frame; with
accumulation disabled it stays at 1 and every frame is a fresh
single-sample image.

Pixels are independent, so the frame can be dispatched either as a
parallel Taichi loop or serialized; both produce identical bytes.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracing.camera.camera import Camera
    >>> from src.raytracing.core.renderer import Renderer
    >>> from src.raytracing.scene.presets import create_default_scene
    >>>
    >>> scene = create_default_scene()
    >>> camera = Camera()
    >>> camera.resize(320, 240)
    >>> renderer = Renderer()
    >>> renderer.resize(320, 240)
    >>> for _ in range(16):
    ...     renderer.render_frame(scene, camera)
    >>> image = renderer.get_image_rgba()
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.raytracing.core.buffers import FrameBuffer
from src.raytracing.core.color import pack_rgba, unpack_rgba_bytes
from src.raytracing.core.integrator import DEFAULT_BOUNCES, trace_pixel
from src.raytracing.core.sampler import pcg_hash
from src.raytracing.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type aliases for Taichi vectors
vec3 = tm.vec3
vec4 = tm.vec4


class ExecutionStrategy(enum.Enum):
    """How the per-pixel work of a frame is scheduled."""

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class RenderInvariantError(RuntimeError):
    """Raised when a frame dereferenced data that validation should have rejected."""


class CameraView(Protocol):
    """What the renderer reads from a camera.

    Attributes:
        position: Eye position (x, y, z).
        ray_directions: float32 array (height, width, 3) of per-pixel ray
            directions, row 0 being the bottom image row.
    """

    @property
    def position(self) -> npt.ArrayLike: ...

    @property
    def ray_directions(self) -> npt.NDArray[np.float32]: ...


@dataclass
class RenderSettings:
    """Renderer configuration.

    Attributes:
        accumulate: Average frames over time. When False, every frame is a
            fresh single-sample image.
        bounces: Bounce budget per path.
        strategy: Pixel scheduling used by ``render_frame``.
        albedo_attenuation: Scale light gathered at later bounces by the
            albedo of earlier hits.
        hash_pixel_seed: Pass the per-pixel seed through the PCG hash
            before tracing. Output stays deterministic; only the
            correlation between neighbouring seeds changes.
    """

    accumulate: bool = True
    bounces: int = DEFAULT_BOUNCES
    strategy: ExecutionStrategy = ExecutionStrategy.PARALLEL
    albedo_attenuation: bool = False
    hash_pixel_seed: bool = False

    def __post_init__(self) -> None:
        if self.bounces < 0:
            raise ValueError(f"bounces must be non-negative, got {self.bounces}")
        self.strategy = ExecutionStrategy(self.strategy)


# =============================================================================
# Frame kernels
# =============================================================================


@ti.func
def _shade_pixel(
    x: ti.i32,
    y: ti.i32,
    eye: vec3,
    directions: ti.template(),
    spheres: ti.template(),
    sphere_materials: ti.template(),
    sphere_count: ti.i32,
    materials: ti.template(),
    material_count: ti.i32,
    accumulation: ti.template(),
    pixels: ti.template(),
    frame_index: ti.u32,
    bounces: ti.i32,
    attenuate: ti.i32,
    hash_seed: ti.i32,
    fault: ti.template(),
):
    width = pixels.shape[1]
    direction = vec3(directions[y, x, 0], directions[y, x, 1], directions[y, x, 2])

    seed = ti.cast(x + y * width, ti.u32) * frame_index
    if hash_seed == 1:
        seed = pcg_hash(seed)

    light, valid = trace_pixel(
        eye,
        direction,
        spheres,
        sphere_materials,
        sphere_count,
        materials,
        material_count,
        seed,
        bounces,
        attenuate,
    )

    if valid == 0:
        fault[0] = 1
    else:
        for c in ti.static(range(3)):
            accumulation[y, x, c] += light[c]
        accumulation[y, x, 3] += 1.0

        average = vec4(
            accumulation[y, x, 0],
            accumulation[y, x, 1],
            accumulation[y, x, 2],
            accumulation[y, x, 3],
        ) / ti.cast(frame_index, ti.f32)
        pixels[y, x] = pack_rgba(average)


@ti.kernel
def _render_frame_parallel(
    eye: vec3,
    directions: ti.types.ndarray(dtype=ti.f32, ndim=3),
    spheres: ti.types.ndarray(dtype=ti.f32, ndim=2),
    sphere_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    sphere_count: ti.i32,
    materials: ti.types.ndarray(dtype=ti.f32, ndim=2),
    material_count: ti.i32,
    accumulation: ti.types.ndarray(dtype=ti.f32, ndim=3),
    pixels: ti.types.ndarray(dtype=ti.u32, ndim=2),
    frame_index: ti.u32,
    bounces: ti.i32,
    attenuate: ti.i32,
    hash_seed: ti.i32,
    fault: ti.types.ndarray(dtype=ti.i32, ndim=1),
):
    for y, x in ti.ndrange(pixels.shape[0], pixels.shape[1]):
        _shade_pixel(
            x, y, eye, directions,
            spheres, sphere_materials, sphere_count, materials, material_count,
            accumulation, pixels, frame_index, bounces, attenuate, hash_seed, fault,
        )


@ti.kernel
def _render_frame_sequential(
    eye: vec3,
    directions: ti.types.ndarray(dtype=ti.f32, ndim=3),
    spheres: ti.types.ndarray(dtype=ti.f32, ndim=2),
    sphere_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    sphere_count: ti.i32,
    materials: ti.types.ndarray(dtype=ti.f32, ndim=2),
    material_count: ti.i32,
    accumulation: ti.types.ndarray(dtype=ti.f32, ndim=3),
    pixels: ti.types.ndarray(dtype=ti.u32, ndim=2),
    frame_index: ti.u32,
    bounces: ti.i32,
    attenuate: ti.i32,
    hash_seed: ti.i32,
    fault: ti.types.ndarray(dtype=ti.i32, ndim=1),
):
    ti.loop_config(serialize=True)
    for y, x in ti.ndrange(pixels.shape[0], pixels.shape[1]):
        _shade_pixel(
            x, y, eye, directions,
            spheres, sphere_materials, sphere_count, materials, material_count,
            accumulation, pixels, frame_index, bounces, attenuate, hash_seed, fault,
        )


_FRAME_KERNELS = {
    ExecutionStrategy.PARALLEL: _render_frame_parallel,
    ExecutionStrategy.SEQUENTIAL: _render_frame_sequential,
}


# =============================================================================
# Renderer
# =============================================================================


class Renderer:
    """Progressive renderer owning the frame storage and frame index.

    Attributes:
        settings: The active RenderSettings. May be changed between frames.
    """

    def __init__(self, settings: RenderSettings | None = None) -> None:
        self.settings = settings if settings is not None else RenderSettings()
        self._buffer = FrameBuffer()
        self._frame_index = 1
        self._last_frame_time = 0.0

    @property
    def width(self) -> int:
        return self._buffer.width

    @property
    def height(self) -> int:
        return self._buffer.height

    @property
    def frame_index(self) -> int:
        """Samples accumulated per pixel by the next frame (starts at 1)."""
        return self._frame_index

    @property
    def last_frame_time(self) -> float:
        """Wall-clock duration of the last ``render_frame`` in seconds."""
        return self._last_frame_time

    @property
    def pixels(self) -> npt.NDArray[np.uint32]:
        """Packed display pixels, shape (height, width), row 0 at the bottom."""
        return self._buffer.pixels

    @property
    def accumulation(self) -> npt.NDArray[np.float32]:
        """Running radiance sums, shape (height, width, 4)."""
        return self._buffer.accumulation

    def resize(self, width: int, height: int) -> None:
        """Resize the frame storage.

        Does nothing if the size is unchanged. Otherwise the buffers are
        replaced (dropping accumulated samples) and the frame index is
        reset to 1.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if self._buffer.ensure(width, height):
            self._frame_index = 1

    def reset_frame_index(self) -> None:
        """Restart accumulation on the next frame.

        Call this after the scene or camera changed.
        """
        self._frame_index = 1

    def render_frame(
        self,
        scene: Scene,
        camera: CameraView,
        accumulate: bool | None = None,
        strategy: ExecutionStrategy | None = None,
    ) -> None:
        """Render one frame into the pixel buffer.

        Args:
            scene: The scene to render (read-only during the call).
            camera: Eye position and per-pixel ray directions matching the
                current buffer size (read-only during the call).
            accumulate: Override ``settings.accumulate`` for this frame.
            strategy: Override ``settings.strategy`` for this frame.

        Raises:
            RuntimeError: If ``resize`` was never called.
            ValueError: If the camera's ray directions do not match the
                buffer size.
            RenderInvariantError: If a pixel reached a sphere whose material
                index is out of range.
        """
        if not self._buffer.is_allocated:
            raise RuntimeError("Renderer has no frame buffer. Call resize() first.")

        accumulate = self.settings.accumulate if accumulate is None else accumulate
        strategy = ExecutionStrategy(self.settings.strategy if strategy is None else strategy)

        directions = np.ascontiguousarray(camera.ray_directions, dtype=np.float32)
        expected_shape = (self.height, self.width, 3)
        if directions.shape != expected_shape:
            raise ValueError(
                f"Camera ray directions have shape {directions.shape}, "
                f"expected {expected_shape}"
            )

        if not accumulate or self._frame_index == 1:
            self._buffer.clear_accumulation()

        packed = scene.packed()
        fault = np.zeros(1, dtype=np.int32)
        eye = np.asarray(camera.position, dtype=np.float32)

        start = time.perf_counter()
        _FRAME_KERNELS[strategy](
            vec3(float(eye[0]), float(eye[1]), float(eye[2])),
            directions,
            packed.spheres,
            packed.sphere_materials,
            packed.sphere_count,
            packed.materials,
            packed.material_count,
            self._buffer.accumulation,
            self._buffer.pixels,
            self._frame_index & 0xFFFFFFFF,
            self.settings.bounces,
            int(self.settings.albedo_attenuation),
            int(self.settings.hash_pixel_seed),
            fault,
        )
        self._last_frame_time = time.perf_counter() - start

        if fault[0] != 0:
            logger.critical(
                "Frame %d reached a sphere with an out-of-range material index "
                "(scene has %d material(s))",
                self._frame_index,
                packed.material_count,
            )
            raise RenderInvariantError(
                "A sphere references a material outside the scene's material list"
            )

        logger.debug(
            "Rendered frame %d (%dx%d, %s) in %.3f ms",
            self._frame_index,
            self.width,
            self.height,
            strategy.value,
            self._last_frame_time * 1000.0,
        )

        self._frame_index = self._frame_index + 1 if accumulate else 1

    def get_image_rgba(self) -> npt.NDArray[np.uint8]:
        """The packed pixels as uint8 RGBA, shape (height, width, 4), row 0 at the bottom."""
        return unpack_rgba_bytes(self.pixels)

    def get_average_numpy(self) -> npt.NDArray[np.float32]:
        """Linear running average of the accumulated frames, shape (height, width, 3).

        Unclamped. Only meaningful after at least one frame; the divisor is
        the number of frames in the accumulation buffer.
        """
        accumulation = self.accumulation
        samples = np.maximum(accumulation[..., 3:4], 1.0)
        return (accumulation[..., :3] / samples).astype(np.float32)

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"frame_index={self.frame_index})"
        )
