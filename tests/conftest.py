"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. fast_math is
    disabled so parallel and serialized frames round identically.
    """
    ti.init(arch=ti.cpu, fast_math=False)
    yield


@pytest.fixture
def single_sphere_scene():
    """A radius 0.5 white emissive sphere at the origin (emission strength 1)."""
    from src.raytracing.scene.presets import create_single_sphere_scene

    return create_single_sphere_scene()


@pytest.fixture
def default_scene():
    """The three-sphere demo scene."""
    from src.raytracing.scene.presets import create_default_scene

    return create_default_scene()


@pytest.fixture
def small_camera():
    """A 16x12 perspective camera looking at the origin from z=6."""
    from src.raytracing.camera.camera import Camera

    camera = Camera(position=(0.0, 0.0, 6.0), forward=(0.0, 0.0, -1.0))
    camera.resize(16, 12)
    return camera
