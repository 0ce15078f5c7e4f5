"""Ray and ray-differential data structures.

This module provides the Ray class used by every intersection routine and the
RayDifferential that carries two auxiliary rays for texture-footprint
estimation.

A ray's ``t_max`` is the one mutable field shared across components: it starts
at +inf and is narrowed each time a closer hit is found, so later
intersection tests reject anything farther away. A ray belongs to a single
query and must not be shared between concurrent queries.

Example:
    >>> from tracecore.core.ray import Ray
    >>> from tracecore.core.vector import Point3, Vec3
    >>> ray = Ray(Point3(0.0, 0.0, 0.0), Vec3(0.0, 0.0, -1.0))
    >>> ray.at(5.0)  # Point 5 units along the ray
    Point3(0.0, 0.0, -5.0)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from tracecore.core.vector import Point3, Vec3


class Ray:
    """A semi-infinite line with an origin and a direction.

    Attributes:
        o: The origin of the ray.
        d: The direction of the ray. Not required to be normalized; hit
            distances are expressed in multiples of ``d``.
        t_max: Upper end of the parametric range searched for hits.
            Narrowed downward as closer hits are found.
        time: The time at which the ray is cast.
        medium: Opaque, non-owning reference to the medium containing the
            origin. Passed through unmodified.
    """

    __slots__ = ("o", "d", "t_max", "time", "medium")

    def __init__(
        self,
        o: Point3 | None = None,
        d: Vec3 | None = None,
        t_max: float = math.inf,
        time: float = 0.0,
        medium: Any = None,
    ) -> None:
        self.o = o if o is not None else Point3()
        self.d = d if d is not None else Vec3()
        self.t_max = t_max
        self.time = time
        self.medium = medium

    def __repr__(self) -> str:
        return f"{type(self).__name__}(o={self.o!r}, d={self.d!r}, t_max={self.t_max})"

    def at(self, t: float) -> Point3:
        """Compute the point along the ray at parameter t.

        Args:
            t: The parameter value. Positive values are in front of the origin.

        Returns:
            The point ``o + t * d``.
        """
        return self.o + self.d * t

    def has_nans(self) -> bool:
        return self.o.has_nans() or self.d.has_nans() or math.isnan(self.t_max)


class RayDifferential(Ray):
    """A ray plus two auxiliary rays offset by one sample in x and y.

    The auxiliary rays are only meaningful when ``has_differentials`` is True.

    Attributes:
        has_differentials: Whether the auxiliary rays are valid.
        rx_origin: Origin of the ray offset in x.
        ry_origin: Origin of the ray offset in y.
        rx_direction: Direction of the ray offset in x.
        ry_direction: Direction of the ray offset in y.
    """

    __slots__ = ("has_differentials", "rx_origin", "ry_origin", "rx_direction", "ry_direction")

    def __init__(
        self,
        o: Point3 | None = None,
        d: Vec3 | None = None,
        t_max: float = math.inf,
        time: float = 0.0,
        medium: Any = None,
    ) -> None:
        super().__init__(o, d, t_max, time, medium)
        self.has_differentials = False
        self.rx_origin = Point3()
        self.ry_origin = Point3()
        self.rx_direction = Vec3()
        self.ry_direction = Vec3()

    @classmethod
    def from_ray(cls, ray: Ray) -> RayDifferential:
        """Wrap a plain ray; the neighbouring rays are not known yet."""
        return cls(ray.o, ray.d, ray.t_max, ray.time, ray.medium)

    def has_nans(self) -> bool:
        return super().has_nans() or (
            self.has_differentials
            and (
                self.rx_origin.has_nans()
                or self.ry_origin.has_nans()
                or self.rx_direction.has_nans()
                or self.ry_direction.has_nans()
            )
        )

    def scale_differentials(self, s: float) -> None:
        """Rescale the auxiliary rays toward the base ray.

        Used when the sample spacing differs from the one the differentials
        were generated for. ``s = 1`` leaves them unchanged; the base ray is
        never modified.

        Args:
            s: Scale factor applied to the offsets from the base ray.
        """
        o = self.o
        d = self.d
        self.rx_origin = o + (self.rx_origin - o) * s
        self.ry_origin = o + (self.ry_origin - o) * s
        self.rx_direction = d + (self.rx_direction - d) * s
        self.ry_direction = d + (self.ry_direction - d) * s


def pack_rays(
    rays: Sequence[Ray],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Convert rays to the array layout used by the packet kernels.

    Args:
        rays: The rays to pack.

    Returns:
        Tuple ``(origins, directions, t_max)`` with shapes ``(N, 3)``,
        ``(N, 3)`` and ``(N,)``.
    """
    n = len(rays)
    origins = np.empty((n, 3), dtype=np.float64)
    directions = np.empty((n, 3), dtype=np.float64)
    t_max = np.empty(n, dtype=np.float64)
    for i, ray in enumerate(rays):
        origins[i] = (ray.o.x, ray.o.y, ray.o.z)
        directions[i] = (ray.d.x, ray.d.y, ray.d.z)
        t_max[i] = ray.t_max
    return origins, directions, t_max


def as_packet(
    origins: npt.ArrayLike,
    directions: npt.ArrayLike,
    t_max: npt.ArrayLike | None = None,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Validate packet arrays and convert them to contiguous float64.

    Raises:
        ValueError: If origins/directions are not ``(N, 3)`` or ``t_max`` is
            not ``(N,)``.
    """
    origins = np.ascontiguousarray(origins, dtype=np.float64)
    directions = np.ascontiguousarray(directions, dtype=np.float64)
    if origins.ndim != 2 or origins.shape[1] != 3:
        raise ValueError(f"origins must have shape (N, 3), got {origins.shape}")
    if directions.shape != origins.shape:
        raise ValueError(
            f"directions shape {directions.shape} does not match origins {origins.shape}"
        )
    n = origins.shape[0]
    if t_max is None:
        t_max = np.full(n, np.inf, dtype=np.float64)
    else:
        t_max = np.ascontiguousarray(np.broadcast_to(np.asarray(t_max, dtype=np.float64), (n,)))
    return origins, directions, t_max
