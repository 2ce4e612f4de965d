"""Camera module.

The renderer only needs an eye position and a per-pixel array of ray
directions. ``Camera`` is a movable perspective camera that regenerates
those directions on resize and on every view change; ``FixedCamera``
wraps directions supplied by the caller.
"""

from .camera import Camera, CameraSettings, FixedCamera, look_at, perspective

__all__ = [
    "Camera",
    "CameraSettings",
    "FixedCamera",
    "look_at",
    "perspective",
]
