#!/usr/bin/env python3
"""Render the default sphere scene to a PNG.

Renders a number of progressively accumulated frames of the default scene
(pink sphere, orange light sphere, blue ground) and saves the result.

Usage:
    python -m examples.render_spheres [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 360)
    --frames FRAMES     Number of frames to accumulate (default: 64)
    --bounces BOUNCES   Bounce budget per path (default: 2)
    --no-accumulate     Render every frame as a fresh single-sample image
    --sequential        Dispatch pixels in a serialized loop
    --output OUTPUT     Output file path (default: spheres.png)
    --tolerance TOL     Stop early once the running average changes by less
                        than TOL (RMS) between frames (default: 0, off)
    --quiet             Suppress progress output

Example:
    python -m examples.render_spheres --width 320 --height 180 --frames 32
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

# Ensure the project root is in the Python path for direct execution
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import taichi as ti  # noqa: E402


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the default sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels (default: 640)")
    parser.add_argument("--height", type=int, default=360, help="Image height in pixels (default: 360)")
    parser.add_argument(
        "--frames", type=int, default=64, help="Number of frames to accumulate (default: 64)"
    )
    parser.add_argument("--bounces", type=int, default=2, help="Bounce budget per path (default: 2)")
    parser.add_argument(
        "--no-accumulate",
        action="store_true",
        help="Render every frame as a fresh single-sample image",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Dispatch pixels in a serialized loop",
    )
    parser.add_argument(
        "--output", type=str, default="spheres.png", help="Output file path (default: spheres.png)"
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=0.0,
        help="Stop once the average changes by less than this RMS between frames (default: 0, off)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_spheres(
    width: int = 640,
    height: int = 360,
    num_frames: int = 64,
    bounces: int = 2,
    accumulate: bool = True,
    sequential: bool = False,
    output_path: str = "spheres.png",
    quiet: bool = False,
    tolerance: float = 0.0,
) -> Path:
    """Render the default scene and save it to a PNG.

    With a positive ``tolerance`` and accumulation on, rendering stops as
    soon as the running average changes by less than ``tolerance`` (RMS)
    from one frame to the next.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.raytracing.camera.camera import Camera
    from src.raytracing.core.renderer import ExecutionStrategy, Renderer, RenderSettings
    from src.raytracing.preview.export import compute_rmse, save_png
    from src.raytracing.scene.presets import create_default_scene

    if not quiet:
        print(f"Creating default scene ({width}x{height})...")

    scene = create_default_scene()
    camera = Camera()
    camera.resize(width, height)

    settings = RenderSettings(
        accumulate=accumulate,
        bounces=bounces,
        strategy=ExecutionStrategy.SEQUENTIAL if sequential else ExecutionStrategy.PARALLEL,
    )
    renderer = Renderer(settings)
    renderer.resize(width, height)

    if not quiet:
        print(f"Rendering {num_frames} frame(s)...")

    check_convergence = accumulate and tolerance > 0.0
    previous_average = None
    change = float("inf")

    start_time = time.time()
    for frame in range(1, num_frames + 1):
        renderer.render_frame(scene, camera)

        if check_convergence:
            average = renderer.get_average_numpy()
            if previous_average is not None:
                change = compute_rmse(previous_average, average)
            previous_average = average

        if not quiet:
            elapsed = time.time() - start_time
            fps = frame / elapsed if elapsed > 0 else 0.0
            print(
                f"\r  Progress: {frame}/{num_frames} frames "
                f"- last {renderer.last_frame_time * 1000.0:.1f} ms ({fps:.1f} fps)",
                end="",
                flush=True,
            )

        if change < tolerance:
            break

    if not quiet:
        print()
        if change < tolerance:
            print(f"Converged after {frame} frame(s) (change {change:.2e} RMS)")

    output_file = Path(output_path)
    save_png(renderer, output_file)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            bounces=args.bounces,
            accumulate=not args.no_accumulate,
            sequential=args.sequential,
            output_path=args.output,
            quiet=args.quiet,
            tolerance=args.tolerance,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
