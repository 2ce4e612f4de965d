"""Preview module for output and visualization.

Components:
    export: PNG export of packed frames (Pillow)
    display: Matplotlib-based static preview
    interactive: Taichi GGUI-based interactive viewer

Example:
    >>> from src.raytracing.preview import save_png, show_preview
    >>> renderer.render_frame(scene, camera)
    >>> show_preview(renderer)
    >>> save_png(renderer, "output.png")

For the interactive viewer:
    >>> from src.raytracing.preview import InteractivePreview
    >>> preview = InteractivePreview(800, 600, scene=scene)
    >>> preview.run()
"""

from src.raytracing.preview.display import show_preview
from src.raytracing.preview.export import (
    compute_rmse,
    packed_to_rgba,
    save_png,
    save_png_from_packed,
)
from src.raytracing.preview.interactive import InteractivePreview, packed_to_display

__all__ = [
    "InteractivePreview",
    "packed_to_display",
    "show_preview",
    "save_png",
    "save_png_from_packed",
    "packed_to_rgba",
    "compute_rmse",
]
