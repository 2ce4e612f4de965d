"""Seed-threaded PCG hash sampler.

All random numbers used by the path tracer come from a pure integer hash:
every function takes the caller's seed and returns the advanced seed next to
its result, so there is no global generator state. Identical seeds always
produce identical streams, regardless of how pixels are scheduled.

The hash is the PCG-RXS-M-XS output permutation:

    state' = state * 747796405 + 2891336453
    word   = ((state' >> ((state' >> 28) + 4)) ^ state') * 277803737
    result = (word >> 22) ^ word

computed with wrapping 32-bit unsigned arithmetic.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracing.core.sampler import unit_float_sequence
    >>> values, final_seed = unit_float_sequence(seed=42, count=4)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.raytracing.core.ray import safe_normalize

# Type alias for 3D vectors
vec3 = tm.vec3

PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 2891336453
PCG_WORD_MULTIPLIER = 277803737
UINT32_MAX = 4294967295

# Float divisor for unit floats; an int literal this large overflows i32
UINT32_MAX_F = 4294967295.0


def _as_signed32(value: int) -> int:
    """Reinterpret an unsigned 32-bit constant as a signed 32-bit literal."""
    return value - (1 << 32) if value >= (1 << 31) else value


# Taichi literals default to i32; constants above 2**31 are cast bit-for-bit
_PCG_INCREMENT_BITS = _as_signed32(PCG_INCREMENT)


@ti.func
def pcg_hash(state: ti.u32) -> ti.u32:
    """Avalanche-mix a 32-bit state.

    Args:
        state: The input state.

    Returns:
        The hashed 32-bit value.
    """
    mixed = state * ti.cast(PCG_MULTIPLIER, ti.u32) + ti.cast(_PCG_INCREMENT_BITS, ti.u32)
    shift = (mixed >> ti.cast(28, ti.u32)) + ti.cast(4, ti.u32)
    word = ((mixed >> shift) ^ mixed) * ti.cast(PCG_WORD_MULTIPLIER, ti.u32)
    return (word >> ti.cast(22, ti.u32)) ^ word


@ti.func
def next_unit_float(seed: ti.u32):
    """Advance the seed and map it to a float in [0, 1].

    Args:
        seed: The current seed.

    Returns:
        A tuple (value, seed) with the new float and the advanced seed.
    """
    advanced = pcg_hash(seed)
    value = ti.cast(advanced, ti.f32) / UINT32_MAX_F
    return value, advanced


@ti.func
def random_in_unit_sphere(seed: ti.u32):
    """Draw a random unit direction.

    Three unit floats are mapped to [-1, 1] and the resulting vector is
    normalized directly. This is not a uniform distribution on the sphere
    (the cube corners are over-represented); the bounce model depends on
    exactly this distribution.

    Args:
        seed: The current seed.

    Returns:
        A tuple (direction, seed) with a unit vector and the advanced seed.
    """
    x, seed_x = next_unit_float(seed)
    y, seed_y = next_unit_float(seed_x)
    z, seed_z = next_unit_float(seed_y)
    point = vec3(x * 2.0 - 1.0, y * 2.0 - 1.0, z * 2.0 - 1.0)
    return safe_normalize(point, vec3(0.0, 0.0, 1.0)), seed_z


# =============================================================================
# Python-callable wrappers
# =============================================================================


@ti.kernel
def _hash_kernel(
    seeds: ti.types.ndarray(dtype=ti.u32, ndim=1),
    out: ti.types.ndarray(dtype=ti.u32, ndim=1),
):
    for i in range(seeds.shape[0]):
        out[i] = pcg_hash(seeds[i])


@ti.kernel
def _unit_float_kernel(
    seed: ti.u32,
    values: ti.types.ndarray(dtype=ti.f32, ndim=1),
) -> ti.u32:
    state = ti.cast(seed, ti.u32)
    ti.loop_config(serialize=True)
    for i in range(values.shape[0]):
        value, state = next_unit_float(state)
        values[i] = value
    return state


@ti.kernel
def _direction_kernel(
    seed: ti.u32,
    directions: ti.types.ndarray(dtype=ti.f32, ndim=2),
) -> ti.u32:
    state = ti.cast(seed, ti.u32)
    ti.loop_config(serialize=True)
    for i in range(directions.shape[0]):
        direction, state = random_in_unit_sphere(state)
        for c in ti.static(range(3)):
            directions[i, c] = direction[c]
    return state


def hash_u32(seeds: int | npt.ArrayLike) -> npt.NDArray[np.uint32]:
    """Hash one or more 32-bit seeds with ``pcg_hash``.

    Args:
        seeds: A single seed or an array of seeds (wrapped to 32 bits).

    Returns:
        A 1-D uint32 array with one hash per input seed.
    """
    raw = np.atleast_1d(np.asarray(seeds, dtype=np.uint64)) & np.uint64(UINT32_MAX)
    inputs = np.ascontiguousarray(raw.astype(np.uint32))
    out = np.zeros_like(inputs)
    _hash_kernel(inputs, out)
    return out


def unit_float_sequence(seed: int, count: int) -> tuple[npt.NDArray[np.float32], int]:
    """Draw ``count`` successive unit floats starting from ``seed``.

    Args:
        seed: The starting seed (wrapped to 32 bits).
        count: Number of values to draw.

    Returns:
        Tuple of (values, final_seed).
    """
    values = np.zeros(count, dtype=np.float32)
    final_seed = _unit_float_kernel(seed & UINT32_MAX, values)
    return values, int(final_seed)


def random_directions(seed: int, count: int) -> tuple[npt.NDArray[np.float32], int]:
    """Draw ``count`` successive random unit directions starting from ``seed``.

    Args:
        seed: The starting seed (wrapped to 32 bits).
        count: Number of directions to draw.

    Returns:
        Tuple of (directions, final_seed) where directions has shape (count, 3).
    """
    directions = np.zeros((count, 3), dtype=np.float32)
    final_seed = _direction_kernel(seed & UINT32_MAX, directions)
    return directions, int(final_seed)
