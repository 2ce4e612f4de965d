"""Matplotlib-based preview display for rendered frames.

Example:
    >>> from src.raytracing.preview.display import show_preview
    >>> renderer.render_frame(scene, camera)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.raytracing.preview.export import packed_to_rgba

if TYPE_CHECKING:
    from src.raytracing.core.renderer import Renderer


def show_preview(
    renderer: Renderer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display the renderer's current frame as a Matplotlib figure.

    The accumulated frame count is displayed in the title.

    Args:
        renderer: The Renderer to display.
        title: Custom title (default shows the frame count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    image = packed_to_rgba(renderer.pixels)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(image)
    ax.axis("off")

    if title is None:
        # frame_index already points at the next frame
        frames = max(renderer.frame_index - 1, 1)
        title = f"Render Preview - {frames} frame(s) accumulated"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
