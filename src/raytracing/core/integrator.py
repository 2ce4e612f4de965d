"""Per-pixel path tracing integrator.

Traces a single path through the scene and returns one noisy radiance
estimate. At every bounce:

    1. The seed is advanced by the bounce index.
    2. The closest sphere is found. A miss ends the path; there is no sky
       term, so escaped rays contribute nothing.
    3. The hit material's emission (emission_color * emission_strength) is
       added to the gathered light.
    4. The ray restarts just above the surface (RAY_EPSILON along the
       normal) in the direction normalize(normal + random_in_unit_sphere).

With ``attenuate`` enabled, albedo scales the light gathered at later
bounces. Emission found at a bounce is added before that bounce's albedo
is applied, so a surface never discounts its own emission.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracing.core.integrator import trace_ray
    >>> from src.raytracing.scene.presets import create_default_scene
    >>> radiance = trace_ray(create_default_scene(), (0, 0, 6), (0, 0, -1), seed=1)
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.raytracing.core.ray import Ray, safe_normalize
from src.raytracing.core.sampler import random_in_unit_sphere
from src.raytracing.scene.intersection import find_closest_hit
from src.raytracing.scene.scene import Scene

# Type alias for 3D vectors
vec3 = tm.vec3

# Default maximum number of bounces per path
DEFAULT_BOUNCES = 2

# Offset along the normal for bounce origins, avoids self-intersection
RAY_EPSILON = 1e-4


@ti.func
def material_emission(materials: ti.template(), index: ti.i32) -> vec3:
    """Emitted radiance of material ``index`` (color * strength)."""
    color = vec3(materials[index, 4], materials[index, 5], materials[index, 6])
    return color * materials[index, 7]


@ti.func
def material_albedo(materials: ti.template(), index: ti.i32) -> vec3:
    """Albedo of material ``index``."""
    return vec3(materials[index, 0], materials[index, 1], materials[index, 2])


@ti.func
def trace_pixel(
    origin: vec3,
    direction: vec3,
    spheres: ti.template(),
    sphere_materials: ti.template(),
    sphere_count: ti.i32,
    materials: ti.template(),
    material_count: ti.i32,
    seed: ti.u32,
    bounces: ti.i32,
    attenuate: ti.i32,
):
    """Trace one path and return its radiance estimate.

    Args:
        origin: Primary ray origin (camera position).
        direction: Primary ray direction.
        spheres: Packed sphere array (N, 4).
        sphere_materials: Material index per sphere (N,).
        sphere_count: Number of valid spheres.
        materials: Packed material array (M, 8).
        material_count: Number of valid materials.
        seed: Per-pixel seed.
        bounces: Bounce budget.
        attenuate: 1 to scale later bounces by albedo, 0 to sum emission
            unweighted.

    Returns:
        A tuple (light, valid). ``valid`` is 0 if a sphere referenced a
        material outside the material array; ``light`` is then incomplete
        and must not be used.
    """
    ray_origin = origin
    ray_direction = direction
    state = ti.cast(seed, ti.u32)

    light = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    valid = 1
    active = 1

    for i in range(bounces):
        if active == 1:
            state += ti.cast(i, ti.u32)

            hit = find_closest_hit(
                Ray(origin=ray_origin, direction=ray_direction), spheres, sphere_count
            )

            if hit.hit_distance < 0.0:
                active = 0
            else:
                material_index = sphere_materials[hit.object_index]

                if material_index < 0 or material_index >= material_count:
                    valid = 0
                    active = 0
                else:
                    light += material_emission(materials, material_index) * throughput
                    if attenuate == 1:
                        throughput *= material_albedo(materials, material_index)

                    ray_origin = hit.world_position + hit.world_normal * RAY_EPSILON
                    offset, state = random_in_unit_sphere(state)
                    ray_direction = safe_normalize(hit.world_normal + offset, hit.world_normal)

    return light, valid


# =============================================================================
# Python-callable wrapper
# =============================================================================


@ti.kernel
def _trace_ray_kernel(
    origin: vec3,
    direction: vec3,
    spheres: ti.types.ndarray(dtype=ti.f32, ndim=2),
    sphere_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    sphere_count: ti.i32,
    materials: ti.types.ndarray(dtype=ti.f32, ndim=2),
    material_count: ti.i32,
    seed: ti.u32,
    bounces: ti.i32,
    attenuate: ti.i32,
    out: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    # Single-iteration outer loop keeps the bounce loop serial
    for _ in range(1):
        light, valid = trace_pixel(
            origin,
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
        for c in ti.static(range(3)):
            out[c] = light[c]
        out[3] = ti.cast(valid, ti.f32)


def trace_ray(
    scene: Scene,
    origin: Sequence[float],
    direction: Sequence[float],
    seed: int,
    bounces: int = DEFAULT_BOUNCES,
    attenuate: bool = False,
) -> npt.NDArray[np.float32]:
    """Trace a single path from Python.

    This is a convenience wrapper for tests and tools; the renderer calls
    ``trace_pixel`` for every pixel inside one kernel.

    Args:
        scene: The scene to trace.
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z).
        seed: Path seed (wrapped to 32 bits).
        bounces: Bounce budget.
        attenuate: Scale later bounces by albedo.

    Returns:
        The radiance estimate as a float32 array of shape (3,).

    Raises:
        RuntimeError: If the path reached a sphere with an invalid material.
    """
    packed = scene.packed()
    out = np.zeros(4, dtype=np.float32)
    _trace_ray_kernel(
        vec3(*origin),
        vec3(*direction),
        packed.spheres,
        packed.sphere_materials,
        packed.sphere_count,
        packed.materials,
        packed.material_count,
        seed & 0xFFFFFFFF,
        bounces,
        int(attenuate),
        out,
    )
    if out[3] == 0.0:
        raise RuntimeError("path reached a sphere with an out-of-range material index")
    return out[:3].copy()
