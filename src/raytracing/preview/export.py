"""Image export utilities for rendered frames.

The renderer's packed pixels are stored bottom row first; exported images
are flipped so that row 0 is the top, as image files expect.

Supported formats:
    - PNG (8-bit RGBA via Pillow)

Example:
    >>> from src.raytracing.preview.export import save_png
    >>> renderer.render_frame(scene, camera)
    >>> save_png(renderer, "frame.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.raytracing.core.color import unpack_rgba_bytes

if TYPE_CHECKING:
    from src.raytracing.core.renderer import Renderer


def packed_to_rgba(pixels: npt.NDArray[np.uint32]) -> npt.NDArray[np.uint8]:
    """Convert packed pixels (bottom row first) to a top-down RGBA image.

    Args:
        pixels: Packed uint32 array of shape (height, width).

    Returns:
        uint8 array of shape (height, width, 4).
    """
    return np.ascontiguousarray(np.flipud(unpack_rgba_bytes(pixels)))


def save_png_from_packed(pixels: npt.NDArray[np.uint32], filepath: str | Path) -> None:
    """Save packed pixels as an RGBA PNG.

    Args:
        pixels: Packed uint32 array of shape (height, width).
        filepath: Output file path (should end in .png).
    """
    pil_image = PILImage.fromarray(packed_to_rgba(pixels))
    pil_image.save(filepath)


def save_png(renderer: Renderer, filepath: str | Path) -> None:
    """Save the renderer's current frame as an RGBA PNG.

    Args:
        renderer: A Renderer that has rendered at least one frame.
        filepath: Output file path (should end in .png).
    """
    save_png_from_packed(renderer.pixels, filepath)


def compute_rmse(image_a: npt.ArrayLike, image_b: npt.ArrayLike) -> float:
    """Root mean squared difference of two equally shaped images.

    Used to measure how much the running average still changes between
    progressive frames.

    Raises:
        ValueError: If the shapes differ.
    """
    a = np.asarray(image_a, dtype=np.float64)
    b = np.asarray(image_b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Image shapes must match: {a.shape} vs {b.shape}")
    return float(np.sqrt(np.mean(np.square(a - b))))
