"""Shape interface shared by every geometric primitive.

A shape knows its object-space bounds, how to intersect a world-space ray and
its surface area. The transforms and the orientation flags are common to all
shapes and live on the base class:

    - ``reverse_orientation``: user request to flip the surface normals
    - ``transform_swaps_handedness``: derived once from the object-to-world
      transform; a handedness-swapping transform also flips normals

Intersection results are returned as a :class:`HitRecord`. A miss is an
ordinary, frequent result (``hit`` is False), not an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple

from tracecore.core.bounds import Bounds3
from tracecore.core.interaction import SurfaceInteraction
from tracecore.core.ray import Ray
from tracecore.core.transform import Transform


class HitRecord(NamedTuple):
    """Result of a ray-shape intersection.

    Attributes:
        hit: Whether the ray hit the shape within ``(0, ray.t_max)``.
        t_hit: Parametric distance of the hit along the ray. Only valid if hit.
        interaction: World-space surface interaction. None on a miss.
    """

    hit: bool
    t_hit: float
    interaction: SurfaceInteraction | None


MISS = HitRecord(False, 0.0, None)


class Shape(ABC):
    """Abstract base class for shapes.

    Attributes:
        object_to_world: Transform from object space to world space.
        world_to_object: Inverse of ``object_to_world``.
        reverse_orientation: Whether normals should point inward.
        transform_swaps_handedness: Whether ``object_to_world`` flips chirality.
    """

    def __init__(
        self,
        object_to_world: Transform,
        world_to_object: Transform,
        reverse_orientation: bool = False,
    ) -> None:
        self.object_to_world = object_to_world
        self.world_to_object = world_to_object
        self.reverse_orientation = reverse_orientation
        self.transform_swaps_handedness = object_to_world.swaps_handedness()

    @abstractmethod
    def object_bound(self) -> Bounds3:
        """Bounding box in object space."""

    def world_bound(self) -> Bounds3:
        """Bounding box in world space (transformed object bound)."""
        return self.object_to_world.apply_bounds(self.object_bound())

    @abstractmethod
    def intersect(self, ray: Ray, test_alpha_texture: bool = True) -> HitRecord:
        """Intersect a world-space ray with the shape.

        Args:
            ray: The ray, in world space. Not modified.
            test_alpha_texture: Whether alpha cut-outs should be honored.

        Returns:
            The hit record.
        """

    def intersect_p(self, ray: Ray, test_alpha_texture: bool = True) -> bool:
        """Whether the ray hits the shape at all (shadow-ray query)."""
        return self.intersect(ray, test_alpha_texture).hit

    @abstractmethod
    def area(self) -> float:
        """Surface area in object space."""
