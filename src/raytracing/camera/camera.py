"""Perspective camera with precomputed per-pixel ray directions.

The renderer never generates primary rays itself: it reads the camera's
position and a (height, width, 3) array of unit ray directions. The camera
regenerates that array whenever the viewport size or the view changes.

Ray directions are built by un-projecting each pixel through the inverse
projection and inverse view matrices:

    coord  = (x / width, y / height) * 2 - 1
    target = inverse(projection) @ (coord.x, coord.y, 1, 1)
    dir    = inverse(view) @ (normalize(target.xyz / target.w), 0)

Row y = 0 is the bottom of the image.

Example:
    >>> from src.raytracing.camera.camera import Camera
    >>> camera = Camera(position=(0.0, 0.0, 6.0))
    >>> camera.resize(320, 240)
    >>> camera.ray_directions.shape
    (240, 320, 3)
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])

# Mouse movement (pixels) to rotation (radians) scale
MOUSE_SENSITIVITY = 0.002


@dataclass
class CameraSettings:
    """Projection and navigation parameters.

    Attributes:
        vertical_fov: Vertical field of view in degrees.
        near_clip: Near clip distance of the projection.
        far_clip: Far clip distance of the projection.
        move_speed: Units per second for ``move``.
        rotation_speed: Rotation multiplier for ``rotate``.
    """

    vertical_fov: float = 45.0
    near_clip: float = 0.1
    far_clip: float = 100.0
    move_speed: float = 5.0
    rotation_speed: float = 0.3

    def __post_init__(self) -> None:
        if not 0.0 < self.vertical_fov < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180), got {self.vertical_fov}")
        if not 0.0 < self.near_clip < self.far_clip:
            raise ValueError(
                f"clip planes must satisfy 0 < near < far, got {self.near_clip}, {self.far_clip}"
            )


def _normalize(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    return v / np.linalg.norm(v)


def _rotate(v: npt.NDArray[np.float64], axis: npt.NDArray[np.float64], angle: float):
    """Rotate ``v`` around unit ``axis`` by ``angle`` radians (Rodrigues)."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return v * cos_a + np.cross(axis, v) * sin_a + axis * np.dot(axis, v) * (1.0 - cos_a)


def perspective(vertical_fov: float, aspect: float, near: float, far: float):
    """Right-handed OpenGL-style perspective matrix (fov in radians)."""
    f = 1.0 / math.tan(vertical_fov / 2.0)
    m = np.zeros((4, 4))
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = -(far + near) / (far - near)
    m[2, 3] = -(2.0 * far * near) / (far - near)
    m[3, 2] = -1.0
    return m


def look_at(eye: npt.ArrayLike, target: npt.ArrayLike, up: npt.ArrayLike):
    """Right-handed view matrix looking from ``eye`` toward ``target``."""
    eye = np.asarray(eye, dtype=np.float64)
    f = _normalize(np.asarray(target, dtype=np.float64) - eye)
    s = _normalize(np.cross(f, up))
    u = np.cross(s, f)
    m = np.eye(4)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


class Camera:
    """A movable perspective camera.

    Attributes:
        settings: Projection and navigation parameters.
    """

    def __init__(
        self,
        settings: CameraSettings | None = None,
        position: Sequence[float] = (0.0, 0.0, 6.0),
        forward: Sequence[float] = (0.0, 0.0, -1.0),
    ) -> None:
        self.settings = settings if settings is not None else CameraSettings()
        self._position = np.asarray(position, dtype=np.float64)
        self._forward = _normalize(np.asarray(forward, dtype=np.float64))
        self._width = 0
        self._height = 0
        self._ray_directions: npt.NDArray[np.float32] | None = None

    @property
    def position(self) -> npt.NDArray[np.float64]:
        return self._position.copy()

    @property
    def forward(self) -> npt.NDArray[np.float64]:
        return self._forward.copy()

    @property
    def right(self) -> npt.NDArray[np.float64]:
        return _normalize(np.cross(self._forward, WORLD_UP))

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def ray_directions(self) -> npt.NDArray[np.float32]:
        """Unit ray directions, shape (height, width, 3)."""
        if self._ray_directions is None:
            raise RuntimeError("Camera has no viewport. Call resize() first.")
        return self._ray_directions

    def projection(self) -> npt.NDArray[np.float64]:
        aspect = self._width / self._height if self._height else 1.0
        return perspective(
            math.radians(self.settings.vertical_fov),
            aspect,
            self.settings.near_clip,
            self.settings.far_clip,
        )

    def view(self) -> npt.NDArray[np.float64]:
        return look_at(self._position, self._position + self._forward, WORLD_UP)

    def resize(self, width: int, height: int) -> bool:
        """Set the viewport size and regenerate ray directions if it changed.

        Returns:
            True if the directions were regenerated.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport dimensions must be positive, got {width}x{height}")
        if width == self._width and height == self._height and self._ray_directions is not None:
            return False
        self._width = width
        self._height = height
        self._recalculate_ray_directions()
        return True

    def set_view(self, position: Sequence[float], forward: Sequence[float]) -> None:
        """Place the camera and regenerate ray directions."""
        self._position = np.asarray(position, dtype=np.float64)
        self._forward = _normalize(np.asarray(forward, dtype=np.float64))
        self._recalculate_ray_directions()

    def move(self, right: float, up: float, forward: float, dt: float) -> bool:
        """Translate along the camera axes at ``settings.move_speed``.

        Args:
            right: Movement along the right axis (-1, 0 or 1 from keys).
            up: Movement along world up.
            forward: Movement along the view direction.
            dt: Time step in seconds.

        Returns:
            True if the camera moved.
        """
        step = (
            self.right * right + WORLD_UP * up + self._forward * forward
        ) * self.settings.move_speed * dt
        if not np.any(step):
            return False
        self._position = self._position + step
        self._recalculate_ray_directions()
        return True

    def rotate(self, mouse_dx: float, mouse_dy: float) -> bool:
        """Turn the camera by a mouse delta in pixels.

        Returns:
            True if the view direction changed.
        """
        if mouse_dx == 0.0 and mouse_dy == 0.0:
            return False
        scale = MOUSE_SENSITIVITY * self.settings.rotation_speed
        pitch = mouse_dy * scale
        yaw = mouse_dx * scale
        forward = _rotate(self._forward, self.right, -pitch)
        forward = _rotate(forward, WORLD_UP, -yaw)
        self._forward = _normalize(forward)
        self._recalculate_ray_directions()
        return True

    def _recalculate_ray_directions(self) -> None:
        if self._width == 0 or self._height == 0:
            return

        xs = np.arange(self._width, dtype=np.float64) / self._width * 2.0 - 1.0
        ys = np.arange(self._height, dtype=np.float64) / self._height * 2.0 - 1.0

        coords = np.ones((self._height, self._width, 4))
        coords[..., 0] = xs[np.newaxis, :]
        coords[..., 1] = ys[:, np.newaxis]

        target = coords @ np.linalg.inv(self.projection()).T
        local = target[..., :3] / target[..., 3:4]
        local /= np.linalg.norm(local, axis=-1, keepdims=True)

        world = local @ np.linalg.inv(self.view())[:3, :3].T
        self._ray_directions = np.ascontiguousarray(world, dtype=np.float32)
        logger.debug(
            "Regenerated %dx%d ray directions from %s", self._width, self._height, self._position
        )

    def __repr__(self) -> str:
        return (
            f"Camera(position={tuple(self._position)}, forward={tuple(self._forward)}, "
            f"viewport={self._width}x{self._height})"
        )


@dataclass
class FixedCamera:
    """A camera whose ray directions are supplied directly.

    Attributes:
        position: Eye position (x, y, z).
        ray_directions: float32 array (height, width, 3).
    """

    position: tuple[float, float, float]
    ray_directions: npt.NDArray[np.float32]

    @classmethod
    def uniform(
        cls,
        position: Sequence[float],
        direction: Sequence[float],
        width: int,
        height: int,
    ) -> "FixedCamera":
        """A camera shooting every pixel in the same direction."""
        directions = np.empty((height, width, 3), dtype=np.float32)
        directions[...] = np.asarray(direction, dtype=np.float32)
        return cls(
            position=(float(position[0]), float(position[1]), float(position[2])),
            ray_directions=directions,
        )
