"""Progressive sphere path tracer built on Taichi.

This package renders scenes of spheres with emissive/diffuse materials
using a Monte Carlo path tracer that is re-evaluated every frame and
temporally accumulated to reduce noise.

Subpackages:
    core: Ray type, hash sampler, integrator, frame buffers and the renderer
    geometry: Ray-sphere intersection
    scene: Scene description, validation and closest-hit search
    camera: Perspective camera with precomputed per-pixel ray directions
    preview: PNG export, Matplotlib preview and interactive GGUI viewer
"""

__version__ = "0.1.0"
