"""Primitives: shapes bound to their material and light handles.

A primitive is what the scene actually stores. It wraps a shape with the
opaque handles that shading needs (material, area light, medium interface) and
is responsible for the bookkeeping that follows a successful hit:

    - narrowing ``ray.t_max`` to the hit distance, so later tests against
      other primitives reject anything farther away
    - stamping the surface interaction with a back-reference to itself
    - assigning the medium the interaction lies in

:class:`PrimitiveList` is a flat aggregate that finds the closest hit by
testing every primitive in turn; the ``t_max`` narrowing does the pruning.

Example:
    >>> from tracecore.geometry.sphere import make_sphere
    >>> from tracecore.scene.primitive import GeometricPrimitive, PrimitiveList
    >>> scene = PrimitiveList([GeometricPrimitive(make_sphere(radius=0.5))])
    >>> hit, si = scene.intersect(ray)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from tracecore.core.bounds import Bounds3, union
from tracecore.core.interaction import SurfaceInteraction
from tracecore.core.ray import Ray
from tracecore.geometry.shape import Shape
from tracecore.utils.logger import get_logger

logger = get_logger(__name__)


class Primitive(ABC):
    """Abstract base class for anything a ray can be intersected with."""

    @abstractmethod
    def world_bound(self) -> Bounds3:
        """Bounding box in world space."""

    @abstractmethod
    def intersect(self, ray: Ray) -> tuple[bool, SurfaceInteraction | None]:
        """Find the closest hit in ``(0, ray.t_max)``.

        On a hit ``ray.t_max`` is narrowed to the hit distance.

        Returns:
            Tuple ``(hit, interaction)``; the interaction is None on a miss.
        """

    @abstractmethod
    def intersect_p(self, ray: Ray) -> bool:
        """Whether anything is hit in ``(0, ray.t_max)``. ``ray`` is not modified."""

    @abstractmethod
    def get_area_light(self) -> Any:
        """The area light handle, or None."""

    @abstractmethod
    def get_material(self) -> Any:
        """The material handle, or None."""


class GeometricPrimitive(Primitive):
    """A single shape with its material, area light and medium interface.

    The handles are opaque here; they are stored and returned verbatim.

    Attributes:
        shape: The shape.
        material: Material handle, or None.
        area_light: Area light handle, or None.
        medium_interface: Medium handle for the shape's surface, or None to
            inherit the medium of the incoming ray.
    """

    def __init__(
        self,
        shape: Shape,
        material: Any = None,
        area_light: Any = None,
        medium_interface: Any = None,
    ) -> None:
        self.shape = shape
        self.material = material
        self.area_light = area_light
        self.medium_interface = medium_interface

    def __repr__(self) -> str:
        return f"GeometricPrimitive(shape={self.shape!r})"

    def world_bound(self) -> Bounds3:
        return self.shape.world_bound()

    def intersect(self, ray: Ray) -> tuple[bool, SurfaceInteraction | None]:
        rec = self.shape.intersect(ray)
        if not rec.hit:
            return False, None
        ray.t_max = rec.t_hit
        si = rec.interaction
        si.primitive = self
        si.medium = self.medium_interface if self.medium_interface is not None else ray.medium
        return True, si

    def intersect_p(self, ray: Ray) -> bool:
        return self.shape.intersect_p(ray)

    def get_area_light(self) -> Any:
        return self.area_light

    def get_material(self) -> Any:
        return self.material


class PrimitiveList(Primitive):
    """Closest-hit search over a flat list of primitives.

    Attributes:
        primitives: The primitives, tested in order.
    """

    def __init__(self, primitives: Iterable[Primitive] = ()) -> None:
        self.primitives = list(primitives)
        self._bound = Bounds3()
        for prim in self.primitives:
            self._bound = union(self._bound, prim.world_bound())
        logger.debug("Built primitive list with %d primitives", len(self.primitives))

    def __len__(self) -> int:
        return len(self.primitives)

    def add(self, primitive: Primitive) -> None:
        """Append a primitive and grow the cached world bound."""
        self.primitives.append(primitive)
        self._bound = union(self._bound, primitive.world_bound())

    def world_bound(self) -> Bounds3:
        return self._bound

    def intersect(self, ray: Ray) -> tuple[bool, SurfaceInteraction | None]:
        closest = None
        for prim in self.primitives:
            hit, si = prim.intersect(ray)
            if hit:
                # ray.t_max now equals this hit's distance
                closest = si
        return closest is not None, closest

    def intersect_p(self, ray: Ray) -> bool:
        return any(prim.intersect_p(ray) for prim in self.primitives)

    def get_area_light(self) -> Any:
        raise RuntimeError("PrimitiveList.get_area_light() should not be called")

    def get_material(self) -> Any:
        raise RuntimeError("PrimitiveList.get_material() should not be called")
