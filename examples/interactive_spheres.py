#!/usr/bin/env python3
"""Interactive sphere path tracer with real-time controls.

Usage:
    python -m examples.interactive_spheres

Controls:
    - Hold right mouse button and move the mouse to look around
    - While holding the right mouse button: W/S forward/back, A/D left/right,
      Q/E down/up
    - Accumulate: toggle temporal averaging
    - Bounces: bounce budget per path
    - Reset: restart accumulation
    - Scene panel: edit sphere positions/radii and material albedo/emission
    - Export PNG: save the current frame with a timestamp

Any camera or scene change restarts accumulation.
"""

from __future__ import annotations

import platform
import sys
from pathlib import Path

# Ensure the project root is in the Python path for direct execution
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import taichi as ti  # noqa: E402


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive viewer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from src.raytracing.preview.interactive import InteractivePreview
    from src.raytracing.scene.presets import create_default_scene

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    print("Creating interactive preview window (800x600)...")
    preview = InteractivePreview(800, 600, scene=create_default_scene())

    print("Starting interactive rendering...")
    print("  - Hold right mouse button to look around, WASDQE to move")
    print("  - Close window to exit")
    print()

    try:
        preview.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
