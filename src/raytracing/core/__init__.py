"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers
    sampler: Seed-threaded PCG hash sampler
    integrator: Per-pixel path tracer
    color: RGBA packing into 32-bit display pixels
    buffers: Resizable pixel/accumulation storage
    renderer: Frame dispatch, accumulation and frame index bookkeeping

All per-pixel work runs inside Taichi kernels.
"""

from .buffers import FrameBuffer
from .color import pack_rgba, pack_rgba_array, unpack_rgba_array, unpack_rgba_bytes
from .ray import Ray, ray_at, safe_normalize, vec3
from .sampler import (
    hash_u32,
    next_unit_float,
    pcg_hash,
    random_directions,
    random_in_unit_sphere,
    unit_float_sequence,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports
# (they depend on src.raytracing.scene, which depends on core.ray).
# Import them from src.raytracing.core.integrator / src.raytracing.core.renderer.

__all__ = [
    "Ray",
    "ray_at",
    "safe_normalize",
    "vec3",
    "pcg_hash",
    "next_unit_float",
    "random_in_unit_sphere",
    "hash_u32",
    "unit_float_sequence",
    "random_directions",
    "pack_rgba",
    "pack_rgba_array",
    "unpack_rgba_array",
    "unpack_rgba_bytes",
    "FrameBuffer",
]
