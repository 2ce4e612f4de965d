"""Ready-made scenes for examples, the interactive viewer and tests."""

from src.raytracing.scene.scene import Material, Scene, Sphere


def create_default_scene() -> Scene:
    """Pink sphere next to an orange light sphere, on a large blue ground sphere.

    Returns:
        The scene. Material 2 is the only emitter.
    """
    scene = Scene()

    pink = scene.add_material(Material(albedo=(1.0, 0.0, 1.0), roughness=0.0))
    blue = scene.add_material(Material(albedo=(0.2, 0.3, 1.0), roughness=0.1))
    orange = scene.add_material(
        Material(
            albedo=(0.8, 0.5, 0.2),
            roughness=0.1,
            emission_color=(0.8, 0.5, 0.2),
            emission_strength=2.0,
        )
    )

    scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=1.0, material_index=pink))
    scene.add_sphere(Sphere(center=(2.0, 0.0, 0.0), radius=1.0, material_index=orange))
    scene.add_sphere(Sphere(center=(0.0, -101.0, 0.0), radius=100.0, material_index=blue))

    return scene


def create_single_sphere_scene(
    radius: float = 0.5,
    emission_strength: float = 1.0,
) -> Scene:
    """A single white emissive sphere at the origin.

    Args:
        radius: Sphere radius.
        emission_strength: Strength of the white emission.

    Returns:
        The scene.
    """
    scene = Scene()
    white = scene.add_material(
        Material(
            albedo=(1.0, 1.0, 1.0),
            emission_color=(1.0, 1.0, 1.0),
            emission_strength=emission_strength,
        )
    )
    scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=radius, material_index=white))
    return scene
