"""Scene-level closest-hit search.

Every sphere is tested in order (a linear scan; there is no acceleration
structure). The nearest accepted hit wins and ties go to the sphere that
appears first in the scene.

The scene is passed explicitly as packed arrays (see
``src.raytracing.scene.scene.PackedScene``):

    spheres[i, 0:3]  center
    spheres[i, 3]    radius

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracing.scene.intersection import closest_hit
    >>> hit = closest_hit(scene, origin=(0, 0, 2), direction=(0, 0, -1))
    >>> hit.hit_distance
    1.5
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.raytracing.core.ray import Ray, ray_at
from src.raytracing.geometry.sphere import NO_HIT, intersect_sphere
from src.raytracing.scene.scene import Scene

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Larger than any hit distance we expect to report
T_MAX = 3.0e38


@ti.dataclass
class HitRecord:
    """Result of a closest-hit query.

    Attributes:
        hit_distance: Distance along the ray to the hit. Negative (NO_HIT)
            means the ray missed every sphere; the other fields are then
            unspecified.
        world_position: The hit point.
        world_normal: Unit normal pointing away from the sphere center.
        object_index: Index of the hit sphere.
    """

    hit_distance: ti.f32
    world_position: vec3
    world_normal: vec3
    object_index: ti.i32


@ti.func
def sphere_center(spheres: ti.template(), index: ti.i32) -> vec3:
    """Read the center of sphere ``index`` from the packed sphere array."""
    return vec3(spheres[index, 0], spheres[index, 1], spheres[index, 2])


@ti.func
def find_closest_hit(ray: Ray, spheres: ti.template(), sphere_count: ti.i32) -> HitRecord:
    """Find the nearest sphere hit along a ray.

    Args:
        ray: The ray to trace.
        spheres: Packed sphere array (N, 4).
        sphere_count: Number of valid rows in ``spheres``.

    Returns:
        A HitRecord; ``hit_distance`` is NO_HIT if nothing was hit.
    """
    closest_t = T_MAX
    closest_index = -1

    for i in range(sphere_count):
        t = intersect_sphere(ray, sphere_center(spheres, i), spheres[i, 3])
        # Strict comparison keeps the first sphere on equal distances
        if t >= 0.0 and t < closest_t:
            closest_t = t
            closest_index = i

    record = HitRecord(
        hit_distance=NO_HIT,
        world_position=vec3(0.0, 0.0, 0.0),
        world_normal=vec3(0.0, 0.0, 0.0),
        object_index=-1,
    )

    if closest_index >= 0:
        position = ray_at(ray, closest_t)
        record.hit_distance = closest_t
        record.world_position = position
        record.world_normal = tm.normalize(position - sphere_center(spheres, closest_index))
        record.object_index = closest_index

    return record


# =============================================================================
# Python-callable wrapper
# =============================================================================


@dataclass(frozen=True)
class HitResult:
    """Python-side copy of a HitRecord for a ray that hit something."""

    hit_distance: float
    world_position: tuple[float, float, float]
    world_normal: tuple[float, float, float]
    object_index: int


@ti.kernel
def _closest_hit_kernel(
    origin: vec3,
    direction: vec3,
    spheres: ti.types.ndarray(dtype=ti.f32, ndim=2),
    sphere_count: ti.i32,
    out: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    # Single-iteration outer loop keeps the sphere scan serial
    for _ in range(1):
        record = find_closest_hit(Ray(origin=origin, direction=direction), spheres, sphere_count)
        out[0] = record.hit_distance
        for c in ti.static(range(3)):
            out[1 + c] = record.world_position[c]
            out[4 + c] = record.world_normal[c]
        out[7] = ti.cast(record.object_index, ti.f32)


def closest_hit(
    scene: Scene,
    origin: Sequence[float],
    direction: Sequence[float],
) -> HitResult | None:
    """Run a closest-hit query from Python.

    Args:
        scene: The scene to trace against.
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z).

    Returns:
        A HitResult, or None if the ray misses every sphere.
    """
    packed = scene.packed()
    out = np.zeros(8, dtype=np.float32)
    _closest_hit_kernel(
        vec3(*origin), vec3(*direction), packed.spheres, packed.sphere_count, out
    )
    if out[0] < 0.0:
        return None
    return HitResult(
        hit_distance=float(out[0]),
        world_position=(float(out[1]), float(out[2]), float(out[3])),
        world_normal=(float(out[4]), float(out[5]), float(out[6])),
        object_index=int(out[7]),
    )
