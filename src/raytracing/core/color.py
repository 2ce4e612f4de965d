"""Packing of linear RGBA colors into 32-bit display pixels.

Byte layout of a packed pixel:

    bits 31-24  alpha
    bits 23-16  blue
    bits 15-8   green
    bits 7-0    red

Each channel is clamped to [0, 1] and quantized as floor(channel * 255).
On little-endian hosts a packed uint32 array viewed as bytes is RGBA.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec4 = tm.vec4


@ti.func
def pack_rgba(color: vec4) -> ti.u32:
    """Clamp and pack a linear RGBA color into a 32-bit pixel."""
    clamped = tm.clamp(color, 0.0, 1.0)
    r = ti.cast(clamped.x * 255.0, ti.u32)
    g = ti.cast(clamped.y * 255.0, ti.u32)
    b = ti.cast(clamped.z * 255.0, ti.u32)
    a = ti.cast(clamped.w * 255.0, ti.u32)
    return (a << ti.cast(24, ti.u32)) | (b << ti.cast(16, ti.u32)) | (g << ti.cast(8, ti.u32)) | r


def pack_rgba_array(colors: npt.ArrayLike) -> npt.NDArray[np.uint32]:
    """Pack an array of RGBA colors (..., 4) into uint32 pixels (...).

    Matches ``pack_rgba`` bit for bit when given float32 input.
    """
    clamped = np.clip(np.asarray(colors, dtype=np.float32), 0.0, 1.0)
    channels = np.floor(clamped * np.float32(255.0)).astype(np.uint32)
    return (
        (channels[..., 3] << 24)
        | (channels[..., 2] << 16)
        | (channels[..., 1] << 8)
        | channels[..., 0]
    ).astype(np.uint32)


def unpack_rgba_array(pixels: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Unpack uint32 pixels (...) into float RGBA colors (..., 4) in [0, 1]."""
    packed = np.asarray(pixels, dtype=np.uint32)
    channels = np.stack(
        [(packed >> shift) & 0xFF for shift in (0, 8, 16, 24)],
        axis=-1,
    )
    return (channels.astype(np.float32) / 255.0).astype(np.float32)


def unpack_rgba_bytes(pixels: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Unpack uint32 pixels (...) into uint8 RGBA bytes (..., 4)."""
    packed = np.asarray(pixels, dtype=np.uint32)
    return np.stack(
        [((packed >> shift) & 0xFF).astype(np.uint8) for shift in (0, 8, 16, 24)],
        axis=-1,
    )
