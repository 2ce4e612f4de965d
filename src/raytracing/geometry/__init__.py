"""Geometry module: ray-sphere intersection.

Spheres are the only primitive. ``intersect_sphere`` is a Taichi function
for use inside kernels; ``intersect`` runs a single query from Python.
"""

from .sphere import NO_HIT, T_MIN, intersect, intersect_sphere

__all__ = [
    "NO_HIT",
    "T_MIN",
    "intersect",
    "intersect_sphere",
]
