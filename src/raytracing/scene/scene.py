"""Scene description: spheres, materials and construction-time validation.

A Scene is an ordered list of spheres and an ordered list of materials.
Each sphere references a material by index. All invariants (positive
radius, valid material index, channel ranges) are checked whenever the
scene is built or mutated, so kernels never have to guard against a
malformed scene.

Scene data is handed to kernels as flat float32/int32 arrays
(Structure-of-Arrays rows, see ``PackedScene``).

Example:
    >>> from src.raytracing.scene.scene import Material, Scene, Sphere
    >>> scene = Scene()
    >>> pink = scene.add_material(Material(albedo=(1.0, 0.0, 1.0)))
    >>> scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=1.0, material_index=pink))
    0
"""

import dataclasses
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

import numpy as np
import numpy.typing as npt

Vec3 = tuple[float, float, float]

# Column layout of PackedScene.spheres rows
SPHERE_CENTER = slice(0, 3)
SPHERE_RADIUS = 3
SPHERE_COLUMNS = 4

# Column layout of PackedScene.materials rows
MATERIAL_ALBEDO = slice(0, 3)
MATERIAL_ROUGHNESS = 3
MATERIAL_EMISSION_COLOR = slice(4, 7)
MATERIAL_EMISSION_STRENGTH = 7
MATERIAL_COLUMNS = 8


class SceneValidationError(ValueError):
    """Raised when a scene, sphere or material violates its invariants."""


def _as_vec3(value: Sequence[float], name: str) -> Vec3:
    if len(value) != 3:
        raise SceneValidationError(f"{name} must have 3 components, got {len(value)}")
    result = (float(value[0]), float(value[1]), float(value[2]))
    if not all(math.isfinite(v) for v in result):
        raise SceneValidationError(f"{name} must be finite, got {result}")
    return result


@dataclass(frozen=True)
class Material:
    """Diffuse/emissive surface description.

    Attributes:
        albedo: Diffuse reflectance (RGB), each channel in [0, 1].
        roughness: Surface roughness in [0, 1]. Carried for editing tools;
            the diffuse bounce does not use it.
        emission_color: Emitted color (RGB).
        emission_strength: Non-negative multiplier for emission_color.
    """

    albedo: Vec3 = (1.0, 1.0, 1.0)
    roughness: float = 1.0
    emission_color: Vec3 = (0.0, 0.0, 0.0)
    emission_strength: float = 0.0

    def __post_init__(self) -> None:
        albedo = _as_vec3(self.albedo, "albedo")
        if not all(0.0 <= c <= 1.0 for c in albedo):
            raise SceneValidationError(f"albedo channels must be in [0, 1], got {albedo}")
        roughness = float(self.roughness)
        if not 0.0 <= roughness <= 1.0:
            raise SceneValidationError(f"roughness must be in [0, 1], got {roughness}")
        emission_strength = float(self.emission_strength)
        if not math.isfinite(emission_strength) or emission_strength < 0.0:
            raise SceneValidationError(
                f"emission_strength must be non-negative, got {emission_strength}"
            )
        object.__setattr__(self, "albedo", albedo)
        object.__setattr__(self, "roughness", roughness)
        object.__setattr__(self, "emission_color", _as_vec3(self.emission_color, "emission_color"))
        object.__setattr__(self, "emission_strength", emission_strength)

    @property
    def emitted_radiance(self) -> Vec3:
        """Emitted radiance, emission_color * emission_strength."""
        r, g, b = self.emission_color
        s = self.emission_strength
        return (r * s, g * s, b * s)


@dataclass(frozen=True)
class Sphere:
    """A sphere referencing a material by index.

    Attributes:
        center: Center position (x, y, z).
        radius: Radius, strictly positive.
        material_index: Index into the owning scene's materials.
    """

    center: Vec3
    radius: float
    material_index: int = 0

    def __post_init__(self) -> None:
        radius = float(self.radius)
        if not math.isfinite(radius) or radius <= 0.0:
            raise SceneValidationError(f"radius must be positive, got {radius}")
        object.__setattr__(self, "center", _as_vec3(self.center, "center"))
        object.__setattr__(self, "radius", radius)
        object.__setattr__(self, "material_index", int(self.material_index))


class PackedScene(NamedTuple):
    """Kernel-ready scene arrays.

    Arrays always have at least one row so they can be passed to kernels
    even for an empty scene; the counts give the number of valid rows.

    Attributes:
        spheres: float32 array (N, 4): center xyz, radius.
        sphere_materials: int32 array (N,): material index per sphere.
        sphere_count: Number of valid sphere rows.
        materials: float32 array (M, 8): albedo rgb, roughness,
            emission color rgb, emission strength.
        material_count: Number of valid material rows.
    """

    spheres: npt.NDArray[np.float32]
    sphere_materials: npt.NDArray[np.int32]
    sphere_count: int
    materials: npt.NDArray[np.float32]
    material_count: int


class Scene:
    """Ordered spheres and materials with validated cross references.

    The sphere and material lists are only exposed as tuples; every change
    goes through the mutation methods below, which validate it and drop the
    packed arrays.

    Args:
        spheres: The spheres, in intersection (tie-break) order.
        materials: The materials referenced by ``Sphere.material_index``.

    Raises:
        SceneValidationError: If a sphere references a missing material.
    """

    def __init__(
        self,
        spheres: Iterable[Sphere] = (),
        materials: Iterable[Material] = (),
    ) -> None:
        self._spheres: list[Sphere] = list(spheres)
        self._materials: list[Material] = list(materials)
        self._packed: PackedScene | None = None
        self.validate()

    @property
    def spheres(self) -> tuple[Sphere, ...]:
        return tuple(self._spheres)

    @property
    def materials(self) -> tuple[Material, ...]:
        return tuple(self._materials)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> None:
        """Check every sphere against the material list.

        Raises:
            SceneValidationError: If a sphere references a missing material.
        """
        for index, sphere in enumerate(self._spheres):
            self._check_material_index(sphere, index)

    def _check_material_index(self, sphere: Sphere, index: int) -> None:
        if not 0 <= sphere.material_index < len(self._materials):
            raise SceneValidationError(
                f"sphere {index} references material {sphere.material_index}, "
                f"but the scene has {len(self._materials)} material(s)"
            )

    # =========================================================================
    # Mutation
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Append a material.

        Returns:
            The index of the new material.
        """
        self._materials.append(material)
        self._packed = None
        return len(self._materials) - 1

    def add_sphere(self, sphere: Sphere) -> int:
        """Append a sphere.

        Returns:
            The index of the new sphere.

        Raises:
            SceneValidationError: If the sphere's material index is invalid.
        """
        self._check_material_index(sphere, len(self._spheres))
        self._spheres.append(sphere)
        self._packed = None
        return len(self._spheres) - 1

    def update_sphere(self, index: int, **changes: Any) -> Sphere:
        """Replace fields of the sphere at ``index``.

        Args:
            index: The sphere to modify.
            **changes: Sphere fields to replace (center, radius, material_index).

        Returns:
            The new sphere.

        Raises:
            SceneValidationError: If the modified sphere is invalid.
        """
        sphere = dataclasses.replace(self._spheres[index], **changes)
        self._check_material_index(sphere, index)
        self._spheres[index] = sphere
        self._packed = None
        return sphere

    def update_material(self, index: int, **changes: Any) -> Material:
        """Replace fields of the material at ``index``.

        Returns:
            The new material.

        Raises:
            SceneValidationError: If the modified material is invalid.
        """
        material = dataclasses.replace(self._materials[index], **changes)
        self._materials[index] = material
        self._packed = None
        return material

    def remove_sphere(self, index: int) -> Sphere:
        """Remove and return the sphere at ``index``."""
        sphere = self._spheres.pop(index)
        self._packed = None
        return sphere

    # =========================================================================
    # Kernel data
    # =========================================================================

    def packed(self) -> PackedScene:
        """Return the scene as kernel-ready arrays.

        The arrays are cached until the scene is next mutated through one
        of the methods above.
        """
        if self._packed is None:
            self._packed = _pack(self._spheres, self._materials)
        return self._packed

    def __len__(self) -> int:
        return len(self._spheres)

    def __repr__(self) -> str:
        return f"Scene(spheres={len(self._spheres)}, materials={len(self._materials)})"


def _pack(spheres: Iterable[Sphere], materials: Iterable[Material]) -> PackedScene:
    spheres = list(spheres)
    materials = list(materials)

    sphere_rows = np.zeros((max(len(spheres), 1), SPHERE_COLUMNS), dtype=np.float32)
    sphere_materials = np.zeros(max(len(spheres), 1), dtype=np.int32)
    for i, sphere in enumerate(spheres):
        sphere_rows[i, SPHERE_CENTER] = sphere.center
        sphere_rows[i, SPHERE_RADIUS] = sphere.radius
        sphere_materials[i] = sphere.material_index

    material_rows = np.zeros((max(len(materials), 1), MATERIAL_COLUMNS), dtype=np.float32)
    for i, material in enumerate(materials):
        material_rows[i, MATERIAL_ALBEDO] = material.albedo
        material_rows[i, MATERIAL_ROUGHNESS] = material.roughness
        material_rows[i, MATERIAL_EMISSION_COLOR] = material.emission_color
        material_rows[i, MATERIAL_EMISSION_STRENGTH] = material.emission_strength

    return PackedScene(
        spheres=sphere_rows,
        sphere_materials=sphere_materials,
        sphere_count=len(spheres),
        materials=material_rows,
        material_count=len(materials),
    )
