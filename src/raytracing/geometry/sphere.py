"""Analytic ray-sphere intersection.

The ray-sphere intersection is found by solving:
    |ray_origin + t * ray_direction - center|^2 = radius^2

Expanding gives the quadratic a*t^2 + b*t + c = 0 with:
    a = dot(direction, direction)
    b = 2 * dot(rel, direction)
    c = dot(rel, rel) - radius^2
    rel = origin - center

Only the near root (-b - sqrt(D)) / (2a) is reported. The camera and
bounce rays are assumed to start outside the sphere, so the far root is
never needed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracing.geometry.sphere import intersect
    >>> intersect((0, 0, 2), (0, 0, -1), center=(0, 0, 0), radius=0.5)
    1.5
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from src.raytracing.core.ray import Ray

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Sentinel distance for "no intersection"
NO_HIT = -1.0

# Hits closer than this are rejected (behind or on the ray origin)
T_MIN = 1e-4

# Directions with a squared length below this cannot be intersected
DEGENERATE_DIRECTION_EPSILON = 1e-12


@ti.func
def intersect_sphere(ray: Ray, center: vec3, radius: ti.f32) -> ti.f32:
    """Intersect a ray with a sphere.

    Args:
        ray: The ray to test. A zero-length direction never hits.
        center: The sphere center.
        radius: The sphere radius (positive).

    Returns:
        The distance t to the near intersection, or NO_HIT if the
        discriminant is negative or the near root is not beyond T_MIN.
    """
    t = NO_HIT
    rel = ray.origin - center

    a = tm.dot(ray.direction, ray.direction)
    if a > DEGENERATE_DIRECTION_EPSILON:
        b = 2.0 * tm.dot(rel, ray.direction)
        c = tm.dot(rel, rel) - radius * radius
        discriminant = b * b - 4.0 * a * c

        if discriminant >= 0.0:
            near = (-b - ti.sqrt(discriminant)) / (2.0 * a)
            if near > T_MIN:
                t = near

    return t


@ti.kernel
def _intersect_kernel(origin: vec3, direction: vec3, center: vec3, radius: ti.f32) -> ti.f32:
    return intersect_sphere(Ray(origin=origin, direction=direction), center, radius)


def intersect(
    origin: Sequence[float],
    direction: Sequence[float],
    center: Sequence[float],
    radius: float,
) -> float | None:
    """Intersect a single ray with a single sphere from Python.

    This is a convenience wrapper for tests and tools; rendering calls
    ``intersect_sphere`` from inside kernels.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z), need not be normalized.
        center: Sphere center (x, y, z).
        radius: Sphere radius.

    Returns:
        The hit distance, or None if the ray misses.
    """
    t = _intersect_kernel(
        vec3(*origin), vec3(*direction), vec3(*center), float(radius)
    )
    return float(t) if t >= 0.0 else None
