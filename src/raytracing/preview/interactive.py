"""Interactive real-time viewer using Taichi GGUI.

This module drives a Renderer once per displayed frame and presents the
packed pixels in a ti.ui.Window, with controls for the camera, the
accumulation settings and the scene.

Features:
    - Progressive rendering: one path per pixel per frame, averaged over time
    - WASD/QE movement and right-mouse look; any camera change restarts
      accumulation
    - "Accumulate" toggle, "Reset" button and bounce budget slider
    - Sphere and material editing sliders; any scene change restarts
      accumulation
    - Last frame time readout and PNG export

Example:
    >>> from src.raytracing.preview.interactive import InteractivePreview
    >>> from src.raytracing.scene.presets import create_default_scene
    >>>
    >>> preview = InteractivePreview(800, 600, scene=create_default_scene())
    >>> preview.run()  # Renders continuously until window closed
"""

from __future__ import annotations

import os
import time
from datetime import datetime

import numpy as np
import taichi as ti

from src.raytracing.camera.camera import Camera
from src.raytracing.core.color import unpack_rgba_array
from src.raytracing.core.renderer import Renderer, RenderSettings
from src.raytracing.scene.scene import Scene

# Keys mapped to (right, up, forward) movement
MOVEMENT_KEYS = {
    "w": (0.0, 0.0, 1.0),
    "s": (0.0, 0.0, -1.0),
    "a": (-1.0, 0.0, 0.0),
    "d": (1.0, 0.0, 0.0),
    "q": (0.0, -1.0, 0.0),
    "e": (0.0, 1.0, 0.0),
}

MAX_BOUNCES_SLIDER = 16


def _changed(new, old) -> bool:
    """Compare GUI values, which round-trip through float32."""
    return not np.allclose(new, old, rtol=1e-6, atol=1e-6)


def packed_to_display(pixels: np.ndarray) -> np.ndarray:
    """Convert packed pixels (height, width) to a (width, height, 3) float image.

    Taichi canvases index images as (x, y) with the origin at the bottom
    left, which matches the renderer's bottom-row-first layout, so only a
    transpose is needed.
    """
    rgb = unpack_rgba_array(pixels)[..., :3]
    return np.ascontiguousarray(np.transpose(rgb, (1, 0, 2)))


class InteractivePreview:
    """Interactive window that renders and displays a scene every frame.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        scene: The scene being rendered and edited.
        camera: The navigable camera.
        renderer: The progressive renderer.
        display_image: Taichi field holding the displayed RGB image.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        scene: Scene,
        camera: Camera | None = None,
        settings: RenderSettings | None = None,
        title: str = "Ray Tracing - Interactive Preview",
    ) -> None:
        self.width = width
        self.height = height
        self._title = title
        self.scene = scene
        self.camera = camera if camera is not None else Camera()
        self.renderer = Renderer(settings)

        self.camera.resize(width, height)
        self.renderer.resize(width, height)

        # Defer window creation until run() to support headless checks
        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None
        self._last_cursor: tuple[float, float] | None = None

        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(width, height)
        )

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=False,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        if self._window is None:
            self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        if self._canvas is None:
            self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        if os.uname().sysname == "Darwin":
            ssh_connection = os.environ.get("SSH_CONNECTION")
            return not (ssh_connection and not display)

        return bool(display or wayland)

    # =========================================================================
    # Frame loop
    # =========================================================================

    def run(self) -> None:
        """Render and display frames until the window is closed."""
        self._initialize_window()

        last_time = time.perf_counter()
        while self.window.running:
            now = time.perf_counter()
            dt = now - last_time
            last_time = now

            if self._update_camera(dt):
                self.renderer.reset_frame_index()

            self.renderer.render_frame(self.scene, self.camera)
            self.display_image.from_numpy(packed_to_display(self.renderer.pixels))

            self._draw_settings_panel()
            self._draw_scene_panel()

            self.canvas.set_image(self.display_image)
            self.window.show()

    def _update_camera(self, dt: float) -> bool:
        """Apply keyboard movement and right-mouse look.

        Returns:
            True if the camera changed.
        """
        window = self.window

        if not window.is_pressed(ti.ui.RMB):
            self._last_cursor = None
            return False

        right = up = forward = 0.0
        for key, (dr, du, df) in MOVEMENT_KEYS.items():
            if window.is_pressed(key):
                right += dr
                up += du
                forward += df
        moved = self.camera.move(right, up, forward, dt)

        cursor_x, cursor_y = window.get_cursor_pos()
        cursor = (cursor_x * self.width, cursor_y * self.height)
        if self._last_cursor is not None:
            dx = cursor[0] - self._last_cursor[0]
            # GGUI cursor y grows upward; mouse-look expects screen-down positive
            dy = self._last_cursor[1] - cursor[1]
            moved = self.camera.rotate(dx, dy) or moved
        self._last_cursor = cursor

        return moved

    # =========================================================================
    # GUI panels
    # =========================================================================

    def _draw_settings_panel(self) -> None:
        settings = self.renderer.settings
        with self.window.GUI.sub_window("Settings", 0.02, 0.02, 0.3, 0.25) as gui:
            gui.text(f"Last render: {self.renderer.last_frame_time * 1000.0:.3f} ms")
            gui.text(f"Frame: {self.renderer.frame_index}")

            settings.accumulate = gui.checkbox("Accumulate", settings.accumulate)

            bounces = gui.slider_int("Bounces", settings.bounces, 1, MAX_BOUNCES_SLIDER)
            if bounces != settings.bounces:
                settings.bounces = bounces
                self.renderer.reset_frame_index()

            if gui.button("Reset"):
                self.renderer.reset_frame_index()

            if gui.button("Export PNG"):
                self._export_png()

    def _draw_scene_panel(self) -> None:
        changed = False
        with self.window.GUI.sub_window("Scene", 0.02, 0.3, 0.3, 0.65) as gui:
            for index, sphere in enumerate(self.scene.spheres):
                gui.text(f"Sphere {index}")
                center = tuple(
                    gui.slider_float(f"{axis} ##{index}", value, -10.0, 10.0)
                    for axis, value in zip("XYZ", sphere.center)
                )
                radius = gui.slider_float(f"Radius ##{index}", sphere.radius, 0.01, 100.0)
                if _changed(center, sphere.center) or _changed(radius, sphere.radius):
                    self.scene.update_sphere(index, center=center, radius=max(radius, 0.01))
                    changed = True

            for index, material in enumerate(self.scene.materials):
                gui.text(f"Material {index}")
                albedo = gui.color_edit_3(f"Albedo ##m{index}", material.albedo)
                strength = gui.slider_float(
                    f"Emission Power ##m{index}", material.emission_strength, 0.0, 20.0
                )
                albedo = tuple(min(max(float(c), 0.0), 1.0) for c in albedo)
                if _changed(albedo, material.albedo) or _changed(
                    strength, material.emission_strength
                ):
                    self.scene.update_material(
                        index, albedo=albedo, emission_strength=max(strength, 0.0)
                    )
                    changed = True

        if changed:
            self.renderer.reset_frame_index()

    def _export_png(self) -> None:
        """Export the current frame to a timestamped PNG file."""
        from src.raytracing.preview.export import save_png

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"render_{timestamp}.png"
        save_png(self.renderer, filename)
        print(f"Exported: {filename} (frame {self.renderer.frame_index})")

    def close(self) -> None:
        """Close the preview window."""
        if self._window is not None:
            self._window.running = False
