"""Vector, point and normal algebra.

This module provides the small value types the rest of the geometry is built
on. Vectors, points and normals share a layout but obey different algebra:

    - ``Point3 - Point3`` is a ``Vec3``; ``Point3 + Vec3`` is a ``Point3``.
    - ``Point3 + Point3`` and ``Point3 * float`` exist only to form affine
      combinations (weighted sums whose coefficients add up to 1).
    - ``Normal3`` transforms by the inverse-transpose of a matrix, so it is kept
      as a separate type. Adding a ``Normal3`` to a ``Vec3`` raises
      ``TypeError``; the mixed operations that make sense (``dot``, ``cross``,
      ``face_forward``) accept either.

All types are immutable and hashable. Degenerate operations follow IEEE
semantics: normalizing a zero-length vector yields NaN components rather than
raising.

Example:
    >>> from tracecore.core.vector import Point3, Vec3, cross, normalize
    >>> p = Point3(1.0, 2.0, 3.0) + Vec3(0.0, 0.0, 1.0)
    >>> cross(Vec3(1.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0))
    Vec3(0.0, 0.0, 1.0)
"""

from __future__ import annotations

import math
from collections.abc import Iterator

from tracecore.core.numerics import reciprocal


class _Tuple3:
    """Shared storage and component access for the 3-D value types."""

    __slots__ = ("x", "y", "z")

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> None:
        object.__setattr__(self, "x", float(x))
        object.__setattr__(self, "y", float(y))
        object.__setattr__(self, "z", float(z))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __getitem__(self, i: int) -> float:
        if i == 0:
            return self.x
        if i == 1:
            return self.y
        if i == 2:
            return self.z
        raise IndexError(f"{type(self).__name__} index out of range: {i}")

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __len__(self) -> int:
        return 3

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.x == other.x and self.y == other.y and self.z == other.z

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.x, self.y, self.z))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.x}, {self.y}, {self.z})"

    def __neg__(self):
        return type(self)(-self.x, -self.y, -self.z)

    def __mul__(self, f: float):
        if isinstance(f, _Tuple3):
            return NotImplemented
        return type(self)(self.x * f, self.y * f, self.z * f)

    __rmul__ = __mul__

    def __truediv__(self, f: float):
        inv = reciprocal(f)
        return type(self)(self.x * inv, self.y * inv, self.z * inv)

    def has_nans(self) -> bool:
        return math.isnan(self.x) or math.isnan(self.y) or math.isnan(self.z)

    def min_component(self) -> float:
        return min(self.x, self.y, self.z)

    def max_component(self) -> float:
        return max(self.x, self.y, self.z)

    def max_dimension(self) -> int:
        """Index of the largest component (ties resolve toward the later axis)."""
        if self.x > self.y:
            return 0 if self.x > self.z else 2
        return 1 if self.y > self.z else 2

    def permute(self, x: int, y: int, z: int):
        return type(self)(self[x], self[y], self[z])


class Vec3(_Tuple3):
    """A direction or displacement in 3-D space."""

    __slots__ = ()

    def __add__(self, other: Vec3) -> Vec3:
        if type(other) is not Vec3:
            return NotImplemented
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        if type(other) is not Vec3:
            return NotImplemented
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalized(self) -> Vec3:
        return self / self.length()

    @classmethod
    def from_normal(cls, n: Normal3) -> Vec3:
        return cls(n.x, n.y, n.z)


class Point3(_Tuple3):
    """A position in 3-D space."""

    __slots__ = ()

    def __add__(self, other):
        # Point + Point is only meaningful inside an affine combination
        if type(other) is Vec3 or type(other) is Point3:
            return Point3(self.x + other.x, self.y + other.y, self.z + other.z)
        return NotImplemented

    def __sub__(self, other):
        if type(other) is Point3:
            return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)
        if type(other) is Vec3:
            return Point3(self.x - other.x, self.y - other.y, self.z - other.z)
        return NotImplemented

    def to_vector(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)


class Normal3(_Tuple3):
    """A surface normal.

    Shares its layout with :class:`Vec3` but transforms by the inverse-transpose
    of a matrix. The two types are never interchangeable in ``+`` and ``-``.
    """

    __slots__ = ()

    def __add__(self, other: Normal3) -> Normal3:
        if type(other) is not Normal3:
            return NotImplemented
        return Normal3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Normal3) -> Normal3:
        if type(other) is not Normal3:
            return NotImplemented
        return Normal3(self.x - other.x, self.y - other.y, self.z - other.z)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalized(self) -> Normal3:
        return self / self.length()

    def to_vector(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)

    @classmethod
    def from_vector(cls, v: Vec3) -> Normal3:
        return cls(v.x, v.y, v.z)


class _Tuple2:
    """Shared storage and component access for the 2-D value types."""

    __slots__ = ("x", "y")

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        object.__setattr__(self, "x", float(x))
        object.__setattr__(self, "y", float(y))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __getitem__(self, i: int) -> float:
        if i == 0:
            return self.x
        if i == 1:
            return self.y
        raise IndexError(f"{type(self).__name__} index out of range: {i}")

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def __len__(self) -> int:
        return 2

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.x, self.y))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.x}, {self.y})"

    def __neg__(self):
        return type(self)(-self.x, -self.y)

    def __mul__(self, f: float):
        if isinstance(f, _Tuple2):
            return NotImplemented
        return type(self)(self.x * f, self.y * f)

    __rmul__ = __mul__

    def __truediv__(self, f: float):
        inv = reciprocal(f)
        return type(self)(self.x * inv, self.y * inv)

    def has_nans(self) -> bool:
        return math.isnan(self.x) or math.isnan(self.y)

    def min_component(self) -> float:
        return min(self.x, self.y)

    def max_component(self) -> float:
        return max(self.x, self.y)


class Vec2(_Tuple2):
    """A displacement in 2-D space."""

    __slots__ = ()

    def __add__(self, other: Vec2) -> Vec2:
        if type(other) is not Vec2:
            return NotImplemented
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        if type(other) is not Vec2:
            return NotImplemented
        return Vec2(self.x - other.x, self.y - other.y)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalized(self) -> Vec2:
        return self / self.length()


class Point2(_Tuple2):
    """A position in 2-D space (also used for surface (u, v) coordinates)."""

    __slots__ = ()

    def __add__(self, other):
        if type(other) is Vec2 or type(other) is Point2:
            return Point2(self.x + other.x, self.y + other.y)
        return NotImplemented

    def __sub__(self, other):
        if type(other) is Point2:
            return Vec2(self.x - other.x, self.y - other.y)
        if type(other) is Vec2:
            return Point2(self.x - other.x, self.y - other.y)
        return NotImplemented


# =============================================================================
# Free functions
# =============================================================================


def dot(a, b) -> float:
    """Dot product of two 3-D vectors or normals (mixing is allowed)."""
    return a.x * b.x + a.y * b.y + a.z * b.z


def abs_dot(a, b) -> float:
    return abs(dot(a, b))


def dot2(a, b) -> float:
    return a.x * b.x + a.y * b.y


def cross(a, b) -> Vec3:
    """Cross product ``a x b``.

    Either operand may be a ``Vec3`` or ``Normal3``, including two normals;
    the result is always a ``Vec3``.
    """
    return Vec3(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


def normalize(v):
    """Return ``v`` scaled to unit length.

    A zero-length input yields NaN components; checking for that is the
    caller's responsibility.
    """
    return v.normalized()


def face_forward(n, v):
    """Flip ``n`` so that it lies in the same hemisphere as ``v``.

    Args:
        n: The vector or normal to orient.
        v: The reference direction (vector or normal).

    Returns:
        ``n`` or ``-n``, whichever has a non-negative dot product with ``v``.
    """
    return -n if dot(n, v) < 0.0 else n


def coordinate_system(v1: Vec3) -> tuple[Vec3, Vec3]:
    """Build two vectors that complete an orthonormal basis with ``v1``.

    ``v1`` is expected to be normalized.

    Returns:
        Tuple ``(v2, v3)`` such that ``(v1, v2, v3)`` is orthonormal.
    """
    if abs(v1.x) > abs(v1.y):
        v2 = Vec3(-v1.z, 0.0, v1.x) / math.sqrt(v1.x * v1.x + v1.z * v1.z)
    else:
        v2 = Vec3(0.0, v1.z, -v1.y) / math.sqrt(v1.y * v1.y + v1.z * v1.z)
    return v2, cross(v1, v2)


def distance(p1: Point3, p2: Point3) -> float:
    return (p1 - p2).length()


def distance_squared(p1: Point3, p2: Point3) -> float:
    return (p1 - p2).length_squared()


def lerp_point(t: float, p0, p1):
    """Affine combination ``(1 - t) * p0 + t * p1`` of two points."""
    return p0 * (1.0 - t) + p1 * t


def abs_components(v):
    if len(v) == 2:
        return type(v)(abs(v.x), abs(v.y))
    return type(v)(abs(v.x), abs(v.y), abs(v.z))


def min_components(a, b):
    """Componentwise minimum; the result has the type of ``a``."""
    if len(a) == 2:
        return type(a)(min(a.x, b.x), min(a.y, b.y))
    return type(a)(min(a.x, b.x), min(a.y, b.y), min(a.z, b.z))


def max_components(a, b):
    """Componentwise maximum; the result has the type of ``a``."""
    if len(a) == 2:
        return type(a)(max(a.x, b.x), max(a.y, b.y))
    return type(a)(max(a.x, b.x), max(a.y, b.y), max(a.z, b.z))


def floor_components(p):
    return type(p)(*(math.floor(c) for c in p))


def ceil_components(p):
    return type(p)(*(math.ceil(c) for c in p))
