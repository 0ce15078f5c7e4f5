"""Axis-aligned bounding boxes in two and three dimensions.

Boxes are stored as two opposing corners with ``p_min <= p_max`` on every axis.
A default-constructed box is *empty*: ``p_min`` holds the largest float and
``p_max`` the most negative one, so the first union with anything replaces
both corners.

The ray-box slab test exists in two forms:

    - :meth:`Bounds3.intersect_p` for a single :class:`~tracecore.core.ray.Ray`
    - :meth:`Bounds3.intersect_packet` for a batch of rays stored in NumPy
      arrays, evaluated by the :func:`slab_test` Taichi function

Both rely on IEEE-754 behavior when a direction component is zero: the
reciprocal becomes ``+-inf`` and the resulting slab distances are infinite (or
NaN when the origin sits exactly on the slab plane, which the comparisons then
ignore).

Example:
    >>> from tracecore.core.bounds import Bounds3, union
    >>> from tracecore.core.vector import Point3
    >>> b = union(Bounds3(), Point3(1.0, 2.0, 3.0))
    >>> b.contains(Point3(1.0, 2.0, 3.0))
    True
"""

import numpy as np
import numpy.typing as npt
import taichi as ti

from tracecore.core.numerics import MAX_FLOAT, gamma, lerp, reciprocal
from tracecore.core.ray import as_packet
from tracecore.core.vector import (
    Point2,
    Point3,
    Vec2,
    Vec3,
    distance,
    max_components,
    min_components,
)

# Exit distances are scaled by this factor so round-off never rejects a hit
_SLAB_ROBUST_SCALE = 1.0 + 2.0 * gamma(3)


class Bounds3:
    """A 3-D axis-aligned bounding box.

    Attributes:
        p_min: Corner with the smallest coordinates.
        p_max: Corner with the largest coordinates.
    """

    __slots__ = ("p_min", "p_max")

    def __init__(self, p1: Point3 | None = None, p2: Point3 | None = None) -> None:
        """Create a box.

        Args:
            p1: First corner. With no arguments the box is empty.
            p2: Opposite corner. With only ``p1`` the box is the single point.
        """
        if p1 is None and p2 is None:
            self.p_min = Point3(MAX_FLOAT, MAX_FLOAT, MAX_FLOAT)
            self.p_max = Point3(-MAX_FLOAT, -MAX_FLOAT, -MAX_FLOAT)
        elif p2 is None:
            self.p_min = p1
            self.p_max = p1
        else:
            self.p_min = min_components(p1, p2)
            self.p_max = max_components(p1, p2)

    @classmethod
    def from_corners(cls, p_min: Point3, p_max: Point3) -> "Bounds3":
        """Create a box from corners exactly as given (no reordering)."""
        b = cls.__new__(cls)
        b.p_min = p_min
        b.p_max = p_max
        return b

    def __getitem__(self, i: int) -> Point3:
        if i == 0:
            return self.p_min
        if i == 1:
            return self.p_max
        raise IndexError(f"Bounds3 index out of range: {i}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bounds3):
            return NotImplemented
        return self.p_min == other.p_min and self.p_max == other.p_max

    def __repr__(self) -> str:
        return f"Bounds3({self.p_min!r}, {self.p_max!r})"

    def corner(self, i: int) -> Point3:
        """Return corner ``i`` in ``[0, 8)``; bits 0, 1, 2 pick max x, y, z."""
        return Point3(
            self.p_max.x if i & 1 else self.p_min.x,
            self.p_max.y if i & 2 else self.p_min.y,
            self.p_max.z if i & 4 else self.p_min.z,
        )

    def is_empty(self) -> bool:
        return (
            self.p_min.x > self.p_max.x
            or self.p_min.y > self.p_max.y
            or self.p_min.z > self.p_max.z
        )

    def contains(self, p: Point3) -> bool:
        return (
            self.p_min.x <= p.x <= self.p_max.x
            and self.p_min.y <= p.y <= self.p_max.y
            and self.p_min.z <= p.z <= self.p_max.z
        )

    def inside_exclusive(self, p: Point3) -> bool:
        """Like :meth:`contains` but excludes the upper faces."""
        return (
            self.p_min.x <= p.x < self.p_max.x
            and self.p_min.y <= p.y < self.p_max.y
            and self.p_min.z <= p.z < self.p_max.z
        )

    def diagonal(self) -> Vec3:
        return self.p_max - self.p_min

    def surface_area(self) -> float:
        d = self.diagonal()
        return 2.0 * (d.x * d.y + d.x * d.z + d.y * d.z)

    def volume(self) -> float:
        d = self.diagonal()
        return d.x * d.y * d.z

    def max_extent(self) -> int:
        """Index of the longest axis (0=x, 1=y, 2=z)."""
        d = self.diagonal()
        if d.x > d.y and d.x > d.z:
            return 0
        if d.y > d.z:
            return 1
        return 2

    def lerp(self, t: Point3) -> Point3:
        """Map box-local coordinates in ``[0, 1]^3`` to world coordinates."""
        return Point3(
            lerp(t.x, self.p_min.x, self.p_max.x),
            lerp(t.y, self.p_min.y, self.p_max.y),
            lerp(t.z, self.p_min.z, self.p_max.z),
        )

    def offset(self, p: Point3) -> Vec3:
        """Position of ``p`` relative to the box: ``p_min`` -> 0, ``p_max`` -> 1.

        Axes with zero extent pass the raw delta through instead of dividing.
        """
        o = p - self.p_min
        ox, oy, oz = o.x, o.y, o.z
        if self.p_max.x > self.p_min.x:
            ox /= self.p_max.x - self.p_min.x
        if self.p_max.y > self.p_min.y:
            oy /= self.p_max.y - self.p_min.y
        if self.p_max.z > self.p_min.z:
            oz /= self.p_max.z - self.p_min.z
        return Vec3(ox, oy, oz)

    def bounding_sphere(self) -> tuple[Point3, float]:
        """Sphere around the box.

        Returns:
            Tuple ``(center, radius)``. The radius is 0 when the midpoint does
            not lie inside the box (empty or non-finite bounds).
        """
        center = (self.p_min + self.p_max) * 0.5
        radius = distance(center, self.p_max) if self.contains(center) else 0.0
        return center, radius

    # =========================================================================
    # Ray-box slab tests
    # =========================================================================

    def intersect_p(self, ray) -> tuple[bool, float, float]:
        """Slab test against the parametric range ``[0, ray.t_max]``.

        Args:
            ray: The ray to test.

        Returns:
            Tuple ``(hit, t0, t1)`` with the entry and exit distances when
            ``hit`` is True, ``(False, 0.0, 0.0)`` otherwise.
        """
        t0 = 0.0
        t1 = ray.t_max
        for i in range(3):
            inv_ray_dir = reciprocal(ray.d[i])
            t_near = (self.p_min[i] - ray.o[i]) * inv_ray_dir
            t_far = (self.p_max[i] - ray.o[i]) * inv_ray_dir
            if t_near > t_far:
                t_near, t_far = t_far, t_near
            t_far *= _SLAB_ROBUST_SCALE

            # NaN from 0 * inf fails both comparisons and leaves the interval
            if t_near > t0:
                t0 = t_near
            if t_far < t1:
                t1 = t_far
            if t0 > t1:
                return False, 0.0, 0.0
        return True, t0, t1

    def intersect_p_precomputed(
        self, ray, inv_dir: Vec3, dir_is_neg: tuple[int, int, int]
    ) -> bool:
        """Slab test with the reciprocal direction and its signs precomputed.

        Args:
            ray: The ray to test.
            inv_dir: Componentwise reciprocal of ``ray.d``.
            dir_is_neg: 1 for each axis where the direction is negative, else 0.

        Returns:
            Whether the ray overlaps the box within ``(0, ray.t_max)``.
        """
        bounds = (self.p_min, self.p_max)
        o = ray.o

        t_min = (bounds[dir_is_neg[0]].x - o.x) * inv_dir.x
        t_max = (bounds[1 - dir_is_neg[0]].x - o.x) * inv_dir.x
        ty_min = (bounds[dir_is_neg[1]].y - o.y) * inv_dir.y
        ty_max = (bounds[1 - dir_is_neg[1]].y - o.y) * inv_dir.y

        t_max *= _SLAB_ROBUST_SCALE
        ty_max *= _SLAB_ROBUST_SCALE
        if t_min > ty_max or ty_min > t_max:
            return False
        if ty_min > t_min:
            t_min = ty_min
        if ty_max < t_max:
            t_max = ty_max

        tz_min = (bounds[dir_is_neg[2]].z - o.z) * inv_dir.z
        tz_max = (bounds[1 - dir_is_neg[2]].z - o.z) * inv_dir.z
        tz_max *= _SLAB_ROBUST_SCALE
        if t_min > tz_max or tz_min > t_max:
            return False
        if tz_min > t_min:
            t_min = tz_min
        if tz_max < t_max:
            t_max = tz_max
        return t_min < ray.t_max and t_max > 0.0

    def intersect_packet(
        self,
        origins: npt.ArrayLike,
        directions: npt.ArrayLike,
        t_max: npt.ArrayLike | None = None,
    ) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Slab-test a batch of rays with a Taichi kernel.

        Taichi must be initialized first (see :func:`tracecore.init`).

        Args:
            origins: Ray origins, shape ``(N, 3)``.
            directions: Ray directions, shape ``(N, 3)``.
            t_max: Per-ray upper bounds, shape ``(N,)``. Defaults to +inf.

        Returns:
            Tuple ``(hits, t0, t1)`` of arrays with shape ``(N,)``.

        Raises:
            ValueError: If the array shapes do not match.
        """
        origins, directions, t_max = as_packet(origins, directions, t_max)
        n = origins.shape[0]
        hits = np.zeros(n, dtype=np.int32)
        t0 = np.zeros(n, dtype=np.float64)
        t1 = np.zeros(n, dtype=np.float64)
        if n == 0:
            return hits.astype(bool), t0, t1

        p_min = np.array(tuple(self.p_min), dtype=np.float64)
        p_max = np.array(tuple(self.p_max), dtype=np.float64)
        _slab_packet_kernel(origins, directions, t_max, p_min, p_max, hits, t0, t1)
        return hits.astype(bool), t0, t1


class Bounds2:
    """A 2-D axis-aligned bounding box.

    Attributes:
        p_min: Corner with the smallest coordinates.
        p_max: Corner with the largest coordinates.
    """

    __slots__ = ("p_min", "p_max")

    def __init__(self, p1: Point2 | None = None, p2: Point2 | None = None) -> None:
        if p1 is None and p2 is None:
            self.p_min = Point2(MAX_FLOAT, MAX_FLOAT)
            self.p_max = Point2(-MAX_FLOAT, -MAX_FLOAT)
        elif p2 is None:
            self.p_min = p1
            self.p_max = p1
        else:
            self.p_min = min_components(p1, p2)
            self.p_max = max_components(p1, p2)

    @classmethod
    def from_corners(cls, p_min: Point2, p_max: Point2) -> "Bounds2":
        b = cls.__new__(cls)
        b.p_min = p_min
        b.p_max = p_max
        return b

    def __getitem__(self, i: int) -> Point2:
        if i == 0:
            return self.p_min
        if i == 1:
            return self.p_max
        raise IndexError(f"Bounds2 index out of range: {i}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bounds2):
            return NotImplemented
        return self.p_min == other.p_min and self.p_max == other.p_max

    def __repr__(self) -> str:
        return f"Bounds2({self.p_min!r}, {self.p_max!r})"

    def corner(self, i: int) -> Point2:
        """Return corner ``i`` in ``[0, 4)``; bits 0, 1 pick max x, y."""
        return Point2(
            self.p_max.x if i & 1 else self.p_min.x,
            self.p_max.y if i & 2 else self.p_min.y,
        )

    def is_empty(self) -> bool:
        return self.p_min.x > self.p_max.x or self.p_min.y > self.p_max.y

    def contains(self, p: Point2) -> bool:
        return self.p_min.x <= p.x <= self.p_max.x and self.p_min.y <= p.y <= self.p_max.y

    def inside_exclusive(self, p: Point2) -> bool:
        return self.p_min.x <= p.x < self.p_max.x and self.p_min.y <= p.y < self.p_max.y

    def diagonal(self) -> Vec2:
        return self.p_max - self.p_min

    def area(self) -> float:
        d = self.diagonal()
        return d.x * d.y

    def max_extent(self) -> int:
        d = self.diagonal()
        return 0 if d.x > d.y else 1

    def lerp(self, t: Point2) -> Point2:
        return Point2(
            lerp(t.x, self.p_min.x, self.p_max.x),
            lerp(t.y, self.p_min.y, self.p_max.y),
        )

    def offset(self, p: Point2) -> Vec2:
        o = p - self.p_min
        ox, oy = o.x, o.y
        if self.p_max.x > self.p_min.x:
            ox /= self.p_max.x - self.p_min.x
        if self.p_max.y > self.p_min.y:
            oy /= self.p_max.y - self.p_min.y
        return Vec2(ox, oy)

    def bounding_circle(self) -> tuple[Point2, float]:
        center = (self.p_min + self.p_max) * 0.5
        radius = (self.p_max - center).length() if self.contains(center) else 0.0
        return center, radius


# =============================================================================
# Set operations (shared by Bounds2 and Bounds3)
# =============================================================================


def union(b, other):
    """Smallest box containing ``b`` and ``other`` (a point or a box)."""
    if isinstance(other, (Bounds2, Bounds3)):
        return type(b).from_corners(
            min_components(b.p_min, other.p_min), max_components(b.p_max, other.p_max)
        )
    return type(b).from_corners(
        min_components(b.p_min, other), max_components(b.p_max, other)
    )


def intersect(b1, b2):
    """Overlap region of two boxes (empty-inverted when they are disjoint)."""
    return type(b1).from_corners(
        max_components(b1.p_min, b2.p_min), min_components(b1.p_max, b2.p_max)
    )


def overlaps(b1, b2) -> bool:
    """Separating-axis test: every axis must overlap."""
    for i in range(len(b1.p_min)):
        if not (b1.p_max[i] >= b2.p_min[i] and b1.p_min[i] <= b2.p_max[i]):
            return False
    return True


def expand(b, delta: float):
    """Pad every axis of ``b`` by ``delta`` on both sides."""
    if isinstance(b, Bounds2):
        d2 = Vec2(delta, delta)
        return Bounds2.from_corners(b.p_min - d2, b.p_max + d2)
    d3 = Vec3(delta, delta, delta)
    return Bounds3.from_corners(b.p_min - d3, b.p_max + d3)


# =============================================================================
# Packet kernels
# =============================================================================


@ti.func
def slab_test(o, inv_d, p_min, p_max, t_max):
    """Slab test for one ray inside a Taichi kernel.

    Args:
        o: Ray origin (3-vector).
        inv_d: Componentwise reciprocal of the ray direction.
        p_min: Box minimum corner.
        p_max: Box maximum corner.
        t_max: Upper end of the parametric range.

    Returns:
        Tuple ``(hit, t0, t1)``; ``hit`` is 1 on overlap, 0 otherwise.
    """
    t0 = ti.cast(0.0, ti.f64)
    t1 = ti.cast(t_max, ti.f64)
    hit = 1
    for i in ti.static(range(3)):
        t_near = (p_min[i] - o[i]) * inv_d[i]
        t_far = (p_max[i] - o[i]) * inv_d[i]
        if t_near > t_far:
            tmp = t_near
            t_near = t_far
            t_far = tmp
        t_far *= _SLAB_ROBUST_SCALE
        if t_near > t0:
            t0 = t_near
        if t_far < t1:
            t1 = t_far
        if t0 > t1:
            hit = 0
    return hit, t0, t1


@ti.kernel
def _slab_packet_kernel(
    origins: ti.types.ndarray(dtype=ti.f64, ndim=2),
    directions: ti.types.ndarray(dtype=ti.f64, ndim=2),
    t_max: ti.types.ndarray(dtype=ti.f64, ndim=1),
    p_min: ti.types.ndarray(dtype=ti.f64, ndim=1),
    p_max: ti.types.ndarray(dtype=ti.f64, ndim=1),
    hits: ti.types.ndarray(dtype=ti.i32, ndim=1),
    t0_out: ti.types.ndarray(dtype=ti.f64, ndim=1),
    t1_out: ti.types.ndarray(dtype=ti.f64, ndim=1),
):
    for i in range(origins.shape[0]):
        lo = ti.Vector([p_min[0], p_min[1], p_min[2]])
        hi = ti.Vector([p_max[0], p_max[1], p_max[2]])
        o = ti.Vector([origins[i, 0], origins[i, 1], origins[i, 2]])
        inv_d = ti.Vector(
            [1.0 / directions[i, 0], 1.0 / directions[i, 1], 1.0 / directions[i, 2]]
        )
        hit, t0, t1 = slab_test(o, inv_d, lo, hi, t_max[i])
        hits[i] = hit
        if hit == 1:
            t0_out[i] = t0
            t1_out[i] = t1
