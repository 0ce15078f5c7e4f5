"""Affine transforms with cached inverses.

A :class:`Transform` stores a 4x4 matrix together with its inverse so that
inverting a transform is free and normals can be mapped by the
inverse-transpose without another matrix inversion. Points, vectors and
normals each follow their own law:

    - points: full homogeneous transform, divided by ``w`` unless ``w == 1``
    - vectors: upper 3x3 block only (``w = 0``)
    - normals: transpose of the inverse's upper 3x3 block

The matrices are NumPy ``float64`` arrays marked read-only; per-element access
on the hot path goes through a nested tuple of Python floats cached at
construction.

Example:
    >>> from tracecore.core.transform import translate, scale
    >>> from tracecore.core.vector import Point3, Vec3
    >>> t = translate(Vec3(1.0, 0.0, 0.0)) @ scale(2.0, 2.0, 2.0)
    >>> t(Point3(1.0, 1.0, 1.0))
    Point3(3.0, 2.0, 2.0)
"""

from __future__ import annotations

import copy
import math

import numpy as np
import numpy.typing as npt

from tracecore.core.bounds import Bounds3, union
from tracecore.core.interaction import Shading, SurfaceInteraction
from tracecore.core.numerics import gamma, radians
from tracecore.core.ray import Ray, RayDifferential
from tracecore.core.vector import (
    Normal3,
    Point3,
    Vec3,
    abs_components,
    cross,
    dot,
    face_forward,
    normalize,
)
from tracecore.utils.logger import get_logger

logger = get_logger(__name__)


class Matrix4x4:
    """Immutable 4x4 matrix of doubles.

    Attributes:
        m: Read-only ``(4, 4)`` NumPy array.
        rows: The same values as a nested tuple of floats.
    """

    __slots__ = ("m", "rows")

    def __init__(self, m=None) -> None:
        """Create a matrix.

        Args:
            m: Nested 4x4 rows, 16 values in row-major order, a NumPy array or
                another Matrix4x4. ``None`` gives the identity.

        Raises:
            ValueError: If ``m`` cannot be shaped into 4x4.
        """
        if m is None:
            arr = np.identity(4, dtype=np.float64)
        elif isinstance(m, Matrix4x4):
            arr = m.m.copy()
        else:
            arr = np.array(m, dtype=np.float64)
            if arr.shape == (16,):
                arr = arr.reshape(4, 4)
            if arr.shape != (4, 4):
                raise ValueError(f"Matrix4x4 requires 4x4 values, got shape {arr.shape}")
        arr.flags.writeable = False
        self.m = arr
        self.rows = tuple(tuple(float(v) for v in row) for row in arr)

    def __getitem__(self, i):
        return self.rows[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix4x4):
            return NotImplemented
        return self.rows == other.rows

    def __hash__(self) -> int:
        return hash(self.rows)

    def __matmul__(self, other: Matrix4x4) -> Matrix4x4:
        return Matrix4x4(self.m @ other.m)

    def __repr__(self) -> str:
        return f"Matrix4x4({[list(r) for r in self.rows]})"

    def to_numpy(self) -> npt.NDArray[np.float64]:
        return self.m.copy()

    def transpose(self) -> Matrix4x4:
        return Matrix4x4(self.m.T)

    def determinant(self) -> float:
        return float(np.linalg.det(self.m))

    def is_identity(self) -> bool:
        return self.rows == _IDENTITY_ROWS

    def inverse(self) -> Matrix4x4 | None:
        """Return the inverse, or None when the matrix is singular."""
        try:
            inv = np.linalg.inv(self.m)
        except np.linalg.LinAlgError:
            return None
        if not np.all(np.isfinite(inv)):
            return None
        return Matrix4x4(inv)


_IDENTITY_ROWS = Matrix4x4().rows


class Transform:
    """A transformation matrix paired with its inverse.

    Transforms are built once and shared read-only; every ``apply_*`` method
    returns a new value.

    Attributes:
        m: The forward matrix.
        m_inv: The cached inverse. Identity when ``m`` is singular.
    """

    __slots__ = ("m", "m_inv")

    def __init__(self, m=None, m_inv=None) -> None:
        """Create a transform.

        Args:
            m: Forward matrix (anything :class:`Matrix4x4` accepts). Identity
                when omitted.
            m_inv: Inverse matrix. Computed from ``m`` when omitted; a singular
                ``m`` falls back to an identity inverse and logs a warning.
        """
        if not isinstance(m, Matrix4x4):
            m = Matrix4x4(m)
        if m_inv is None:
            m_inv = m.inverse()
            if m_inv is None:
                logger.warning("Singular matrix in Transform; using identity inverse")
                m_inv = Matrix4x4()
        elif not isinstance(m_inv, Matrix4x4):
            m_inv = Matrix4x4(m_inv)
        self.m = m
        self.m_inv = m_inv

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return self.m == other.m and self.m_inv == other.m_inv

    def __hash__(self) -> int:
        return hash((self.m, self.m_inv))

    def __repr__(self) -> str:
        return f"Transform(m={self.m!r})"

    def __matmul__(self, other: Transform) -> Transform:
        """Compose transforms: ``(a @ b)(p) == a(b(p))``."""
        return Transform(self.m @ other.m, other.m_inv @ self.m_inv)

    def __call__(self, x):
        """Apply the transform, dispatching on the argument's type."""
        kind = type(x)
        if kind is Point3:
            return self.apply_point(x)
        if kind is Vec3:
            return self.apply_vector(x)
        if kind is Normal3:
            return self.apply_normal(x)
        if kind is RayDifferential:
            return self.apply_ray_differential(x)
        if kind is Ray:
            return self.apply_ray(x)
        if kind is Bounds3:
            return self.apply_bounds(x)
        if isinstance(x, SurfaceInteraction):
            return self.apply_surface_interaction(x)
        raise TypeError(f"Cannot apply a Transform to {kind.__name__}")

    # =========================================================================
    # Queries
    # =========================================================================

    def inverse(self) -> Transform:
        return Transform(self.m_inv, self.m)

    def transpose(self) -> Transform:
        return Transform(self.m.transpose(), self.m_inv.transpose())

    def is_identity(self) -> bool:
        return self.m.is_identity() and self.m_inv.is_identity()

    def has_scale(self) -> bool:
        """Whether any basis vector changes length noticeably under the transform."""

        def not_one(x: float) -> bool:
            return x < 0.999 or x > 1.001

        la2 = self.apply_vector(Vec3(1.0, 0.0, 0.0)).length_squared()
        lb2 = self.apply_vector(Vec3(0.0, 1.0, 0.0)).length_squared()
        lc2 = self.apply_vector(Vec3(0.0, 0.0, 1.0)).length_squared()
        return not_one(la2) or not_one(lb2) or not_one(lc2)

    def swaps_handedness(self) -> bool:
        """Whether the transform flips coordinate-system chirality.

        True when the determinant of the upper-left 3x3 block is negative.
        """
        m = self.m.rows
        det = (
            m[0][0] * (m[1][1] * m[2][2] - m[1][2] * m[2][1])
            - m[0][1] * (m[1][0] * m[2][2] - m[1][2] * m[2][0])
            + m[0][2] * (m[1][0] * m[2][1] - m[1][1] * m[2][0])
        )
        return det < 0.0

    # =========================================================================
    # Points, vectors, normals
    # =========================================================================

    def apply_point(self, p: Point3) -> Point3:
        m = self.m.rows
        x, y, z = p.x, p.y, p.z
        xp = m[0][0] * x + m[0][1] * y + m[0][2] * z + m[0][3]
        yp = m[1][0] * x + m[1][1] * y + m[1][2] * z + m[1][3]
        zp = m[2][0] * x + m[2][1] * y + m[2][2] * z + m[2][3]
        wp = m[3][0] * x + m[3][1] * y + m[3][2] * z + m[3][3]
        if wp == 1.0:
            return Point3(xp, yp, zp)
        return Point3(xp, yp, zp) / wp

    def apply_point_with_error(self, p: Point3) -> tuple[Point3, Vec3]:
        """Transform a point and bound the rounding error of the result.

        The bound is ``gamma(3)`` times the sum of absolute partial products
        per output axis. A zero homogeneous weight is logged and divided
        through (the result is Inf/NaN), never raised.

        Args:
            p: The point to transform.

        Returns:
            Tuple ``(point, abs_error)``.
        """
        m = self.m.rows
        x, y, z = p.x, p.y, p.z
        xp = m[0][0] * x + m[0][1] * y + m[0][2] * z + m[0][3]
        yp = m[1][0] * x + m[1][1] * y + m[1][2] * z + m[1][3]
        zp = m[2][0] * x + m[2][1] * y + m[2][2] * z + m[2][3]
        wp = m[3][0] * x + m[3][1] * y + m[3][2] * z + m[3][3]

        x_abs_sum = abs(m[0][0] * x) + abs(m[0][1] * y) + abs(m[0][2] * z) + abs(m[0][3])
        y_abs_sum = abs(m[1][0] * x) + abs(m[1][1] * y) + abs(m[1][2] * z) + abs(m[1][3])
        z_abs_sum = abs(m[2][0] * x) + abs(m[2][1] * y) + abs(m[2][2] * z) + abs(m[2][3])
        p_error = Vec3(x_abs_sum, y_abs_sum, z_abs_sum) * gamma(3)

        if wp == 1.0:
            return Point3(xp, yp, zp), p_error
        if wp == 0.0:
            logger.warning("Zero homogeneous weight transforming %r", p)
        return Point3(xp, yp, zp) / wp, p_error

    def apply_point_with_abs_error(
        self, p: Point3, p_error: Vec3
    ) -> tuple[Point3, Vec3]:
        """Transform a point that already carries an absolute error bound."""
        m = self.m.rows
        x, y, z = p.x, p.y, p.z
        ex, ey, ez = p_error.x, p_error.y, p_error.z
        xp = m[0][0] * x + m[0][1] * y + m[0][2] * z + m[0][3]
        yp = m[1][0] * x + m[1][1] * y + m[1][2] * z + m[1][3]
        zp = m[2][0] * x + m[2][1] * y + m[2][2] * z + m[2][3]
        wp = m[3][0] * x + m[3][1] * y + m[3][2] * z + m[3][3]

        g3 = gamma(3)
        abs_error = Vec3(
            (g3 + 1.0) * (abs(m[0][0]) * ex + abs(m[0][1]) * ey + abs(m[0][2]) * ez)
            + g3 * (abs(m[0][0] * x) + abs(m[0][1] * y) + abs(m[0][2] * z) + abs(m[0][3])),
            (g3 + 1.0) * (abs(m[1][0]) * ex + abs(m[1][1]) * ey + abs(m[1][2]) * ez)
            + g3 * (abs(m[1][0] * x) + abs(m[1][1] * y) + abs(m[1][2] * z) + abs(m[1][3])),
            (g3 + 1.0) * (abs(m[2][0]) * ex + abs(m[2][1]) * ey + abs(m[2][2]) * ez)
            + g3 * (abs(m[2][0] * x) + abs(m[2][1] * y) + abs(m[2][2] * z) + abs(m[2][3])),
        )

        if wp == 1.0:
            return Point3(xp, yp, zp), abs_error
        if wp == 0.0:
            logger.warning("Zero homogeneous weight transforming %r", p)
        return Point3(xp, yp, zp) / wp, abs_error

    def apply_vector(self, v: Vec3) -> Vec3:
        m = self.m.rows
        x, y, z = v.x, v.y, v.z
        return Vec3(
            m[0][0] * x + m[0][1] * y + m[0][2] * z,
            m[1][0] * x + m[1][1] * y + m[1][2] * z,
            m[2][0] * x + m[2][1] * y + m[2][2] * z,
        )

    def apply_vector_with_error(self, v: Vec3) -> tuple[Vec3, Vec3]:
        m = self.m.rows
        x, y, z = v.x, v.y, v.z
        g3 = gamma(3)
        abs_error = Vec3(
            g3 * (abs(m[0][0] * x) + abs(m[0][1] * y) + abs(m[0][2] * z)),
            g3 * (abs(m[1][0] * x) + abs(m[1][1] * y) + abs(m[1][2] * z)),
            g3 * (abs(m[2][0] * x) + abs(m[2][1] * y) + abs(m[2][2] * z)),
        )
        return self.apply_vector(v), abs_error

    def apply_normal(self, n: Normal3) -> Normal3:
        """Transform a normal by the inverse-transpose.

        If ``t`` is tangent to a surface and ``M`` maps the surface, then
        ``(S n) . (M t) = 0`` requires ``S^T M = I``, so ``S = (M^-1)^T``.
        """
        mi = self.m_inv.rows
        x, y, z = n.x, n.y, n.z
        return Normal3(
            mi[0][0] * x + mi[1][0] * y + mi[2][0] * z,
            mi[0][1] * x + mi[1][1] * y + mi[2][1] * z,
            mi[0][2] * x + mi[1][2] * y + mi[2][2] * z,
        )

    # =========================================================================
    # Rays, bounds, interactions
    # =========================================================================

    def apply_ray_with_error(self, r: Ray) -> tuple[Ray, Vec3, Vec3]:
        """Transform a ray and report origin/direction error bounds.

        The origin is not offset; callers that solve for hits in the new space
        use the bounds themselves.

        Returns:
            Tuple ``(ray, origin_error, direction_error)``.
        """
        o, o_error = self.apply_point_with_error(r.o)
        d, d_error = self.apply_vector_with_error(r.d)
        return Ray(o, d, r.t_max, r.time, r.medium), o_error, d_error

    def apply_ray(self, r: Ray) -> Ray:
        """Transform a ray, moving its origin past the rounding-error bound.

        The origin is advanced along the direction by
        ``dot(|d|, o_error) / |d|^2`` and ``t_max`` shrinks by the same amount,
        so the transformed origin never lies on the wrong side of a surface.
        """
        o, o_error = self.apply_point_with_error(r.o)
        d = self.apply_vector(r.d)
        t_max = r.t_max
        length_sq = d.length_squared()
        if length_sq > 0.0:
            dt = dot(abs_components(d), o_error) / length_sq
            o = o + d * dt
            t_max -= dt
        return Ray(o, d, t_max, r.time, r.medium)

    def apply_ray_differential(self, r: RayDifferential) -> RayDifferential:
        tr = self.apply_ray(r)
        ret = RayDifferential(tr.o, tr.d, tr.t_max, tr.time, tr.medium)
        ret.has_differentials = r.has_differentials
        ret.rx_origin = self.apply_point(r.rx_origin)
        ret.ry_origin = self.apply_point(r.ry_origin)
        ret.rx_direction = self.apply_vector(r.rx_direction)
        ret.ry_direction = self.apply_vector(r.ry_direction)
        return ret

    def apply_bounds(self, b: Bounds3) -> Bounds3:
        """Bound the transformed box by re-unioning its eight transformed corners.

        The result contains the transformed box but is not the tightest fit for
        rotations.
        """
        ret = Bounds3(self.apply_point(b.corner(0)))
        for i in range(1, 8):
            ret = union(ret, self.apply_point(b.corner(i)))
        return ret

    def apply_surface_interaction(self, si: SurfaceInteraction) -> SurfaceInteraction:
        """Map a surface interaction (geometry and shading frame) to a new space."""
        ret = copy.copy(si)
        ret.p, ret.p_error = self.apply_point_with_abs_error(si.p, si.p_error)
        ret.n = normalize(self.apply_normal(si.n))
        ret.wo = normalize(self.apply_vector(si.wo))
        ret.dpdu = self.apply_vector(si.dpdu)
        ret.dpdv = self.apply_vector(si.dpdv)
        ret.dndu = self.apply_normal(si.dndu)
        ret.dndv = self.apply_normal(si.dndv)

        shading_n = normalize(self.apply_normal(si.shading.n))
        ret.shading = Shading(
            n=face_forward(shading_n, ret.n),
            dpdu=self.apply_vector(si.shading.dpdu),
            dpdv=self.apply_vector(si.shading.dpdv),
            dndu=self.apply_normal(si.shading.dndu),
            dndv=self.apply_normal(si.shading.dndv),
        )
        return ret


# =============================================================================
# Builders
# =============================================================================


def translate(delta: Vec3) -> Transform:
    m = (
        (1.0, 0.0, 0.0, delta.x),
        (0.0, 1.0, 0.0, delta.y),
        (0.0, 0.0, 1.0, delta.z),
        (0.0, 0.0, 0.0, 1.0),
    )
    m_inv = (
        (1.0, 0.0, 0.0, -delta.x),
        (0.0, 1.0, 0.0, -delta.y),
        (0.0, 0.0, 1.0, -delta.z),
        (0.0, 0.0, 0.0, 1.0),
    )
    return Transform(m, m_inv)


def scale(x: float, y: float, z: float) -> Transform:
    """Non-uniform scale. The inverse is undefined if any factor is zero."""
    m = (
        (x, 0.0, 0.0, 0.0),
        (0.0, y, 0.0, 0.0),
        (0.0, 0.0, z, 0.0),
        (0.0, 0.0, 0.0, 1.0),
    )
    # Zero factors give infinite entries (no exception), matching IEEE division
    m_inv = np.diag([1.0, 1.0, 1.0, 1.0])
    with np.errstate(divide="ignore"):
        m_inv[:3, :3] = np.diag(np.reciprocal(np.array([x, y, z], dtype=np.float64)))
    return Transform(m, m_inv)


def rotate_x(theta: float) -> Transform:
    """Rotation of ``theta`` degrees about the x axis."""
    sin_theta = math.sin(radians(theta))
    cos_theta = math.cos(radians(theta))
    m = Matrix4x4(
        (
            (1.0, 0.0, 0.0, 0.0),
            (0.0, cos_theta, -sin_theta, 0.0),
            (0.0, sin_theta, cos_theta, 0.0),
            (0.0, 0.0, 0.0, 1.0),
        )
    )
    return Transform(m, m.transpose())


def rotate_y(theta: float) -> Transform:
    """Rotation of ``theta`` degrees about the y axis."""
    sin_theta = math.sin(radians(theta))
    cos_theta = math.cos(radians(theta))
    m = Matrix4x4(
        (
            (cos_theta, 0.0, sin_theta, 0.0),
            (0.0, 1.0, 0.0, 0.0),
            (-sin_theta, 0.0, cos_theta, 0.0),
            (0.0, 0.0, 0.0, 1.0),
        )
    )
    return Transform(m, m.transpose())


def rotate_z(theta: float) -> Transform:
    """Rotation of ``theta`` degrees about the z axis."""
    sin_theta = math.sin(radians(theta))
    cos_theta = math.cos(radians(theta))
    m = Matrix4x4(
        (
            (cos_theta, -sin_theta, 0.0, 0.0),
            (sin_theta, cos_theta, 0.0, 0.0),
            (0.0, 0.0, 1.0, 0.0),
            (0.0, 0.0, 0.0, 1.0),
        )
    )
    return Transform(m, m.transpose())


def rotate(theta: float, axis: Vec3) -> Transform:
    """Rotation of ``theta`` degrees about an arbitrary axis (Rodrigues' formula).

    Args:
        theta: Angle in degrees, counter-clockwise looking down the axis.
        axis: Rotation axis; normalized internally.

    Returns:
        The rotation, with its transpose as the cached inverse.
    """
    a = normalize(axis)
    sin_theta = math.sin(radians(theta))
    cos_theta = math.cos(radians(theta))
    one_minus_cos = 1.0 - cos_theta
    m = Matrix4x4(
        (
            (
                a.x * a.x + (1.0 - a.x * a.x) * cos_theta,
                a.x * a.y * one_minus_cos - a.z * sin_theta,
                a.x * a.z * one_minus_cos + a.y * sin_theta,
                0.0,
            ),
            (
                a.x * a.y * one_minus_cos + a.z * sin_theta,
                a.y * a.y + (1.0 - a.y * a.y) * cos_theta,
                a.y * a.z * one_minus_cos - a.x * sin_theta,
                0.0,
            ),
            (
                a.x * a.z * one_minus_cos - a.y * sin_theta,
                a.y * a.z * one_minus_cos + a.x * sin_theta,
                a.z * a.z + (1.0 - a.z * a.z) * cos_theta,
                0.0,
            ),
            (0.0, 0.0, 0.0, 1.0),
        )
    )
    return Transform(m, m.transpose())


def look_at(pos: Point3, look: Point3, up: Vec3) -> Transform:
    """Build the world-to-camera transform for a camera at ``pos`` facing ``look``.

    The camera basis is orthogonalized with cross products: ``right`` from
    ``up x dir``, then ``new_up`` from ``dir x right``. When ``up`` is parallel
    to the view direction the basis is degenerate; this is logged and the
    resulting transform carries NaN entries.

    Args:
        pos: Camera position in world space.
        look: Point the camera looks at.
        up: Approximate up direction.

    Returns:
        World-to-camera transform; its inverse is camera-to-world.
    """
    direction = normalize(look - pos)
    right = cross(normalize(up), direction)
    if right.length() == 0.0:
        logger.warning(
            "look_at: up vector %r and viewing direction %r are parallel", up, direction
        )
    right = normalize(right)
    new_up = cross(direction, right)

    camera_to_world = Matrix4x4(
        (
            (right.x, new_up.x, direction.x, pos.x),
            (right.y, new_up.y, direction.y, pos.y),
            (right.z, new_up.z, direction.z, pos.z),
            (0.0, 0.0, 0.0, 1.0),
        )
    )
    world_to_camera = camera_to_world.inverse()
    if world_to_camera is None:
        logger.debug("look_at: camera matrix is not invertible")
        world_to_camera = Matrix4x4(np.full((4, 4), math.nan))
    return Transform(world_to_camera, camera_to_world)
