"""Owned, resizable frame storage for the renderer.

A FrameBuffer holds the two per-pixel arrays the renderer writes:

    pixels        (height, width)     uint32   packed display colors
    accumulation  (height, width, 4)  float32  running radiance sums

Storage is allocated by ``ensure`` and replaced only when the requested
size differs from the current one; the previous arrays are dropped along
with their contents.
"""

import logging

import numpy as np
import numpy.typing as npt

logger = logging.getLogger(__name__)


class FrameBuffer:
    """Pixel and accumulation storage sized to the current viewport."""

    def __init__(self) -> None:
        self._pixels: npt.NDArray[np.uint32] | None = None
        self._accumulation: npt.NDArray[np.float32] | None = None

    @property
    def width(self) -> int:
        """Current width in pixels (0 before the first ``ensure``)."""
        return 0 if self._pixels is None else int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        """Current height in pixels (0 before the first ``ensure``)."""
        return 0 if self._pixels is None else int(self._pixels.shape[0])

    @property
    def is_allocated(self) -> bool:
        return self._pixels is not None

    @property
    def pixels(self) -> npt.NDArray[np.uint32]:
        """Packed display pixels, shape (height, width)."""
        if self._pixels is None:
            raise RuntimeError("Frame buffer not allocated. Call ensure() first.")
        return self._pixels

    @property
    def accumulation(self) -> npt.NDArray[np.float32]:
        """Running radiance sums, shape (height, width, 4)."""
        if self._accumulation is None:
            raise RuntimeError("Frame buffer not allocated. Call ensure() first.")
        return self._accumulation

    def ensure(self, width: int, height: int) -> bool:
        """Make sure the storage matches ``width`` x ``height``.

        Args:
            width: Requested width in pixels (positive).
            height: Requested height in pixels (positive).

        Returns:
            True if new storage was allocated, False if the size was unchanged.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame dimensions must be positive, got {width}x{height}")

        if self._pixels is not None and self.width == width and self.height == height:
            return False

        self._pixels = np.zeros((height, width), dtype=np.uint32)
        self._accumulation = np.zeros((height, width, 4), dtype=np.float32)
        logger.debug("Allocated %dx%d frame buffer", width, height)
        return True

    def clear_accumulation(self) -> None:
        """Zero the accumulation sums."""
        self.accumulation.fill(0.0)

    def __repr__(self) -> str:
        return f"FrameBuffer(width={self.width}, height={self.height})"
