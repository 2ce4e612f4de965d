"""Scene module: scene description, validation and closest-hit queries.

Components:
    scene: Sphere/Material/Scene dataclasses and kernel-array packing
    intersection: HitRecord and linear closest-hit search
    presets: Ready-made demo scenes
"""

from .intersection import HitRecord, HitResult, closest_hit, find_closest_hit
from .presets import create_default_scene, create_single_sphere_scene
from .scene import (
    Material,
    PackedScene,
    Scene,
    SceneValidationError,
    Sphere,
)

__all__ = [
    "Material",
    "Sphere",
    "Scene",
    "PackedScene",
    "SceneValidationError",
    "HitRecord",
    "HitResult",
    "find_closest_hit",
    "closest_hit",
    "create_default_scene",
    "create_single_sphere_scene",
]
