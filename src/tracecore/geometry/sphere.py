"""Sphere shape with partial-sphere clipping and robust ray intersection.

The sphere is centered at the object-space origin. It can be clipped to a
band ``z_min <= z <= z_max`` and to a wedge ``0 <= phi <= phi_max`` (radians),
which turns it into a partial sphere (bowl, ring or slice).

The parameterization used for the differential geometry is::

    phi   = u * phi_max
    theta = theta_min + v * (theta_max - theta_min)

    x = r * sin(theta) * cos(phi)
    y = r * sin(theta) * sin(phi)
    z = r * cos(theta)

with ``theta_min = acos(z_min / r)`` and ``theta_max = acos(z_max / r)``.

Rays are moved to object space without offsetting their origin, so the hit
distance ``t`` is the same in object and world space.

Two entry points are provided:

    - :meth:`Sphere.intersect`: one ray, full surface interaction
    - :meth:`Sphere.intersect_packet`: many rays at once in a Taichi kernel,
      hit flags and distances only

Example:
    >>> from tracecore.core.transform import translate
    >>> from tracecore.core.ray import Ray
    >>> from tracecore.core.vector import Point3, Vec3
    >>> from tracecore.geometry.sphere import make_sphere
    >>> sphere = make_sphere(translate(Vec3(0.0, 0.0, -5.0)), radius=1.0)
    >>> sphere.intersect(Ray(Point3(), Vec3(0.0, 0.0, -1.0))).t_hit
    4.0
"""

import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from tracecore.core.bounds import Bounds3
from tracecore.core.interaction import SurfaceInteraction
from tracecore.core.numerics import clamp, gamma, quadratic, reciprocal, safe_acos, safe_sqrt
from tracecore.core.ray import Ray, as_packet
from tracecore.core.transform import Transform
from tracecore.core.vector import (
    Normal3,
    Point2,
    Point3,
    Vec3,
    abs_components,
    cross,
    distance,
    dot,
    normalize,
)
from tracecore.geometry.shape import MISS, HitRecord, Shape
from tracecore.utils.logger import get_logger

logger = get_logger(__name__)

TWO_PI = 2.0 * math.pi

# Offset applied to x when a hit lands exactly on the z axis, relative to radius
_POLE_NUDGE = 1e-5


class Sphere(Shape):
    """A (possibly partial) sphere centered at the object-space origin.

    Attributes:
        radius: Sphere radius. Non-positive values are accepted with a warning.
        z_min: Lower clipping height, within ``[-radius, radius]``.
        z_max: Upper clipping height, within ``[-radius, radius]``.
        theta_min: Polar angle of ``z_min``.
        theta_max: Polar angle of ``z_max``.
        phi_max: Azimuthal sweep in radians, within ``[0, 2*pi]``.
    """

    def __init__(
        self,
        object_to_world: Transform,
        world_to_object: Transform,
        reverse_orientation: bool,
        radius: float,
        z_min: float,
        z_max: float,
        phi_max: float = TWO_PI,
    ) -> None:
        if radius <= 0.0:
            logger.warning("Sphere radius %s is not positive; hits are undefined", radius)
        if phi_max <= 0.0:
            logger.warning(
                "Sphere phi_max %s is not positive; the surface has no azimuthal extent", phi_max
            )
        super().__init__(object_to_world, world_to_object, reverse_orientation)

        lo = min(z_min, z_max)
        hi = max(z_min, z_max)
        self.radius = radius
        self.z_min = clamp(lo, -radius, radius)
        self.z_max = clamp(hi, -radius, radius)
        self.theta_min = math.acos(clamp(lo * reciprocal(radius), -1.0, 1.0))
        self.theta_max = math.acos(clamp(hi * reciprocal(radius), -1.0, 1.0))
        self.phi_max = clamp(phi_max, 0.0, TWO_PI)
        if self.z_min == self.z_max:
            logger.warning("Sphere clipped to a single height z=%s has no area", self.z_min)

    def __repr__(self) -> str:
        return (
            f"Sphere(radius={self.radius}, z_min={self.z_min}, z_max={self.z_max}, "
            f"phi_max={self.phi_max})"
        )

    def object_bound(self) -> Bounds3:
        r = self.radius
        return Bounds3(Point3(-r, -r, self.z_min), Point3(r, r, self.z_max))

    def area(self) -> float:
        return self.phi_max * self.radius * (self.z_max - self.z_min)

    # =========================================================================
    # Scalar intersection
    # =========================================================================

    def intersect(self, ray: Ray, test_alpha_texture: bool = True) -> HitRecord:
        """Intersect a world-space ray with the sphere.

        The nearest root in ``(0, ray.t_max]`` is tried first. If that point is
        cut away by the z or phi clipping, the far root is tried once. The
        ray itself is not modified; narrowing ``t_max`` is left to the caller.

        Args:
            ray: The world-space ray.
            test_alpha_texture: Unused; spheres carry no alpha mask.

        Returns:
            A :class:`HitRecord`. On a hit the interaction is in world space.
        """
        r, _, _ = self.world_to_object.apply_ray_with_error(ray)

        o = r.o.to_vector()
        d = r.d
        a = d.length_squared()
        b = 2.0 * dot(d, o)
        c = o.length_squared() - self.radius * self.radius
        found, t0, t1 = quadratic(a, b, c)
        if not found:
            return MISS

        if t0 > r.t_max or t1 <= 0.0:
            return MISS
        t_shape_hit = t0
        if t_shape_hit <= 0.0:
            t_shape_hit = t1
            if t_shape_hit > r.t_max:
                return MISS

        p_hit, phi = self._hit_point(r, t_shape_hit)
        if self._is_clipped(p_hit, phi):
            if t_shape_hit == t1 or t1 > r.t_max:
                return MISS
            t_shape_hit = t1
            p_hit, phi = self._hit_point(r, t_shape_hit)
            if self._is_clipped(p_hit, phi):
                return MISS

        si = self._surface_interaction(r, p_hit, phi)
        return HitRecord(True, t_shape_hit, self.object_to_world.apply_surface_interaction(si))

    def _hit_point(self, r: Ray, t: float) -> tuple[Point3, float]:
        """Object-space hit point, re-projected onto the surface, and its phi."""
        p = r.at(t)
        p = p * (self.radius * reciprocal(distance(p, Point3())))
        if p.x == 0.0 and p.y == 0.0:
            p = Point3(_POLE_NUDGE * self.radius, p.y, p.z)
        phi = math.atan2(p.y, p.x)
        if phi < 0.0:
            phi += TWO_PI
        return p, phi

    def _is_clipped(self, p: Point3, phi: float) -> bool:
        r = self.radius
        return (
            (self.z_min > -r and p.z < self.z_min)
            or (self.z_max < r and p.z > self.z_max)
            or phi > self.phi_max
        )

    def _surface_interaction(self, r: Ray, p: Point3, phi: float) -> SurfaceInteraction:
        """Build the object-space interaction at ``p``.

        Normal derivatives come from the Weingarten equations using the first
        (E, F, G) and second (e, f, g) fundamental forms.
        """
        radius = self.radius
        phi_max = self.phi_max
        d_theta = self.theta_max - self.theta_min

        u = phi * reciprocal(phi_max)
        cos_theta = clamp(p.z * reciprocal(radius), -1.0, 1.0)
        theta = safe_acos(cos_theta)
        v = (theta - self.theta_min) * reciprocal(d_theta)

        z_radius = math.sqrt(p.x * p.x + p.y * p.y)
        inv_z_radius = reciprocal(z_radius)
        cos_phi = p.x * inv_z_radius
        sin_phi = p.y * inv_z_radius
        sin_theta = safe_sqrt(1.0 - cos_theta * cos_theta)

        dpdu = Vec3(-phi_max * p.y, phi_max * p.x, 0.0)
        dpdv = Vec3(p.z * cos_phi, p.z * sin_phi, -radius * sin_theta) * d_theta

        d2pduu = Vec3(p.x, p.y, 0.0) * (-phi_max * phi_max)
        d2pduv = Vec3(-sin_phi, cos_phi, 0.0) * (d_theta * p.z * phi_max)
        d2pdvv = Vec3(p.x, p.y, p.z) * (-d_theta * d_theta)

        E = dot(dpdu, dpdu)
        F = dot(dpdu, dpdv)
        G = dot(dpdv, dpdv)
        N = normalize(cross(dpdu, dpdv))
        e = dot(N, d2pduu)
        f = dot(N, d2pduv)
        g = dot(N, d2pdvv)

        inv_egf2 = reciprocal(E * G - F * F)
        dndu = Normal3.from_vector(
            dpdu * ((f * F - e * G) * inv_egf2) + dpdv * ((e * F - f * E) * inv_egf2)
        )
        dndv = Normal3.from_vector(
            dpdu * ((g * F - f * G) * inv_egf2) + dpdv * ((f * F - g * E) * inv_egf2)
        )

        p_error = abs_components(p.to_vector()) * gamma(5)
        return SurfaceInteraction(
            p, p_error, Point2(u, v), -r.d, dpdu, dpdv, dndu, dndv, r.time, self
        )

    # =========================================================================
    # Packet intersection
    # =========================================================================

    def intersect_packet(
        self,
        origins: npt.ArrayLike,
        directions: npt.ArrayLike,
        t_max: npt.ArrayLike | None = None,
    ) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.float64]]:
        """Intersect a batch of world-space rays with a Taichi kernel.

        Hit decisions match :meth:`intersect`, but no surface interactions are
        built. Taichi must be initialized first (see :func:`tracecore.init`).

        Args:
            origins: Ray origins, shape ``(N, 3)``.
            directions: Ray directions, shape ``(N, 3)``.
            t_max: Per-ray upper bounds, shape ``(N,)``. Defaults to +inf.

        Returns:
            Tuple ``(hits, t_hit)``; ``t_hit`` is +inf where a ray misses.

        Raises:
            ValueError: If the array shapes do not match.
        """
        origins, directions, t_max = as_packet(origins, directions, t_max)
        n = origins.shape[0]
        hits = np.zeros(n, dtype=np.int32)
        t_hit = np.full(n, np.inf, dtype=np.float64)
        if n == 0:
            return hits.astype(bool), t_hit

        m = self.world_to_object.m.m
        homogeneous = np.hstack([origins, np.ones((n, 1))]) @ m.T
        with np.errstate(divide="ignore", invalid="ignore"):
            o_obj = np.ascontiguousarray(homogeneous[:, :3] / homogeneous[:, 3:4])
        d_obj = np.ascontiguousarray(directions @ m[:3, :3].T)

        _sphere_packet_kernel(
            o_obj,
            d_obj,
            t_max,
            float(self.radius),
            float(self.z_min),
            float(self.z_max),
            float(self.phi_max),
            hits,
            t_hit,
        )
        return hits.astype(bool), t_hit


def make_sphere(
    object_to_world: Transform | None = None,
    radius: float = 1.0,
    reverse_orientation: bool = False,
    z_min: float | None = None,
    z_max: float | None = None,
    phi_max: float = TWO_PI,
) -> Sphere:
    """Create a sphere from a placement transform.

    Args:
        object_to_world: Placement of the sphere. Defaults to identity.
        radius: Sphere radius.
        reverse_orientation: Whether normals should point inward.
        z_min: Lower clipping height. Defaults to ``-radius``.
        z_max: Upper clipping height. Defaults to ``radius``.
        phi_max: Azimuthal sweep in radians.

    Returns:
        A new Sphere.
    """
    if object_to_world is None:
        object_to_world = Transform()
    return Sphere(
        object_to_world,
        object_to_world.inverse(),
        reverse_orientation,
        radius,
        -radius if z_min is None else z_min,
        radius if z_max is None else z_max,
        phi_max,
    )


# =============================================================================
# Taichi functions
# =============================================================================


@ti.func
def _sphere_hit_point(o, d, t, radius):
    p = o + t * d
    p *= radius / p.norm()
    if p[0] == 0.0 and p[1] == 0.0:
        p[0] = _POLE_NUDGE * radius
    phi = ti.atan2(p[1], p[0])
    if phi < 0.0:
        phi += 2.0 * tm.pi
    return p, phi


@ti.func
def _sphere_clipped(p, phi, radius, z_min, z_max, phi_max):
    clipped = 0
    if z_min > -radius and p[2] < z_min:
        clipped = 1
    if z_max < radius and p[2] > z_max:
        clipped = 1
    if phi > phi_max:
        clipped = 1
    return clipped


@ti.func
def hit_sphere(o, d, t_max, radius, z_min, z_max, phi_max):
    """Test one object-space ray against a clipped sphere inside a kernel.

    Uses the same sign-stable quadratic and the same root/clipping rules as
    :meth:`Sphere.intersect`.

    Args:
        o: Ray origin in object space (3-vector).
        d: Ray direction in object space (3-vector).
        t_max: Upper end of the parametric range.
        radius: Sphere radius.
        z_min: Lower clipping height.
        z_max: Upper clipping height.
        phi_max: Azimuthal sweep in radians.

    Returns:
        Tuple ``(hit, t_hit)``; ``hit`` is 1 on a hit, 0 otherwise.
    """
    a = d.dot(d)
    b = 2.0 * d.dot(o)
    c = o.dot(o) - radius * radius
    discrim = b * b - 4.0 * a * c

    # Taichi requires outer-scope declaration
    did_hit = 0
    hit_t = ti.cast(0.0, ti.f64)

    if discrim >= 0.0:
        root = ti.sqrt(discrim)
        q = -0.5 * (b + root)
        if b < 0.0:
            q = -0.5 * (b - root)
        t0 = q / a
        t1 = c / q
        if t0 > t1:
            tmp = t0
            t0 = t1
            t1 = tmp

        if t0 <= t_max and t1 > 0.0:
            t = t0
            valid = 1
            if t <= 0.0:
                t = t1
                if t > t_max:
                    valid = 0
            if valid == 1:
                p, phi = _sphere_hit_point(o, d, t, radius)
                if _sphere_clipped(p, phi, radius, z_min, z_max, phi_max) == 1:
                    valid = 0
                    if t != t1 and t1 <= t_max:
                        t = t1
                        p_far, phi_far = _sphere_hit_point(o, d, t, radius)
                        if _sphere_clipped(p_far, phi_far, radius, z_min, z_max, phi_max) == 0:
                            valid = 1
            if valid == 1:
                did_hit = 1
                hit_t = t

    return did_hit, hit_t


@ti.kernel
def _sphere_packet_kernel(
    origins: ti.types.ndarray(dtype=ti.f64, ndim=2),
    directions: ti.types.ndarray(dtype=ti.f64, ndim=2),
    t_max: ti.types.ndarray(dtype=ti.f64, ndim=1),
    radius: ti.f64,
    z_min: ti.f64,
    z_max: ti.f64,
    phi_max: ti.f64,
    hits: ti.types.ndarray(dtype=ti.i32, ndim=1),
    t_hit: ti.types.ndarray(dtype=ti.f64, ndim=1),
):
    for i in range(origins.shape[0]):
        o = ti.Vector([origins[i, 0], origins[i, 1], origins[i, 2]])
        d = ti.Vector([directions[i, 0], directions[i, 1], directions[i, 2]])
        hit, t = hit_sphere(o, d, t_max[i], radius, z_min, z_max, phi_max)
        hits[i] = hit
        if hit == 1:
            t_hit[i] = t
