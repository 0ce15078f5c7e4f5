"""Interaction records produced by intersection tests.

An :class:`Interaction` describes a point where light may scatter: its
position with a conservative error bound, the outgoing direction and, for
surfaces, the geometric normal. A zero normal marks a non-surface interaction.

A :class:`SurfaceInteraction` adds the local differential geometry at a
surface hit (parametric ``(u, v)``, the partial derivatives of position and
normal) and a separate shading frame that materials may perturb through
:meth:`SurfaceInteraction.set_shading_geometry`.

Orientation rule: the geometric normal is ``normalize(cross(dpdu, dpdv))``,
flipped when exactly one of ``shape.reverse_orientation`` and
``shape.transform_swaps_handedness`` is set. Both flags together cancel out.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from tracecore.core.numerics import reciprocal
from tracecore.core.ray import Ray, RayDifferential
from tracecore.core.vector import (
    Normal3,
    Point2,
    Point3,
    Vec3,
    abs_components,
    cross,
    dot,
    face_forward,
    normalize,
)

# Keeps shadow rays from reaching the surface they were aimed at
SHADOW_EPSILON = 0.0001


def offset_ray_origin(p: Point3, p_error: Vec3, n: Normal3, w: Vec3) -> Point3:
    """Move a ray origin outside the error box around ``p``.

    The origin is pushed along the normal by ``dot(|n|, p_error)`` to the side
    ``w`` leaves from, then each coordinate is rounded one ulp away from the
    surface.

    Args:
        p: The computed surface point.
        p_error: Conservative absolute error of ``p``.
        n: Geometric normal at ``p``.
        w: Direction the new ray will travel.

    Returns:
        The offset origin.
    """
    d = dot(abs_components(n), p_error)
    offset = Vec3(n.x, n.y, n.z) * d
    if dot(w, n) < 0.0:
        offset = -offset
    po = p + offset
    coords = []
    for i in range(3):
        c = po[i]
        if offset[i] > 0.0:
            c = math.nextafter(c, math.inf)
        elif offset[i] < 0.0:
            c = math.nextafter(c, -math.inf)
        coords.append(c)
    return Point3(*coords)


class Interaction:
    """A point of interaction between light and the scene.

    Attributes:
        p: Position.
        time: Time of the interaction.
        p_error: Conservative absolute error bound on ``p``, per axis.
        wo: Outgoing direction (the negated incoming ray direction).
        n: Geometric normal. The zero normal means "not a surface".
        medium: Opaque medium reference, threaded through unmodified.
    """

    def __init__(
        self,
        p: Point3 | None = None,
        n: Normal3 | None = None,
        p_error: Vec3 | None = None,
        wo: Vec3 | None = None,
        time: float = 0.0,
        medium: Any = None,
    ) -> None:
        self.p = p if p is not None else Point3()
        self.n = n if n is not None else Normal3()
        self.p_error = p_error if p_error is not None else Vec3()
        self.wo = wo if wo is not None else Vec3()
        self.time = time
        self.medium = medium

    def is_surface_interaction(self) -> bool:
        return self.n != Normal3()

    def spawn_ray(self, d: Vec3) -> Ray:
        """Start a ray leaving this point in direction ``d``."""
        o = offset_ray_origin(self.p, self.p_error, self.n, d)
        return Ray(o, d, math.inf, self.time, self.medium)

    def spawn_ray_to(self, p2: Point3) -> Ray:
        """Start a ray toward ``p2`` that stops just short of it (``t_max < 1``)."""
        o = offset_ray_origin(self.p, self.p_error, self.n, p2 - self.p)
        d = p2 - o
        return Ray(o, d, 1.0 - SHADOW_EPSILON, self.time, self.medium)


@dataclass
class Shading:
    """Shading frame of a surface interaction; starts out equal to the geometry."""

    n: Normal3 = field(default_factory=Normal3)
    dpdu: Vec3 = field(default_factory=Vec3)
    dpdv: Vec3 = field(default_factory=Vec3)
    dndu: Normal3 = field(default_factory=Normal3)
    dndv: Normal3 = field(default_factory=Normal3)


class SurfaceInteraction(Interaction):
    """Differential geometry at a ray-surface hit.

    Attributes:
        uv: Surface parameterization at the hit.
        dpdu: Partial derivative of position with respect to u.
        dpdv: Partial derivative of position with respect to v.
        dndu: Partial derivative of the normal with respect to u.
        dndv: Partial derivative of the normal with respect to v.
        shape: Non-owning reference to the shape that was hit.
        primitive: Non-owning reference to the primitive, set by the primitive.
        shading: The shading frame.
        dpdx, dpdy, dudx, dvdx, dudy, dvdy: Screen-space derivatives filled by
            :meth:`compute_differentials`; zero until then.
    """

    def __init__(
        self,
        p: Point3,
        p_error: Vec3,
        uv: Point2,
        wo: Vec3,
        dpdu: Vec3,
        dpdv: Vec3,
        dndu: Normal3,
        dndv: Normal3,
        time: float = 0.0,
        shape: Any = None,
    ) -> None:
        n = Normal3.from_vector(normalize(cross(dpdu, dpdv)))
        super().__init__(p, n, p_error, wo, time, None)
        self.uv = uv
        self.dpdu = dpdu
        self.dpdv = dpdv
        self.dndu = dndu
        self.dndv = dndv
        self.shape = shape
        self.primitive = None
        self.shading = Shading(n=n, dpdu=dpdu, dpdv=dpdv, dndu=dndu, dndv=dndv)

        self.dpdx = Vec3()
        self.dpdy = Vec3()
        self.dudx = 0.0
        self.dvdx = 0.0
        self.dudy = 0.0
        self.dvdy = 0.0

        if self._flips_orientation():
            self.n = -self.n
            self.shading.n = -self.shading.n

    def _flips_orientation(self) -> bool:
        shape = self.shape
        if shape is None:
            return False
        return shape.reverse_orientation != shape.transform_swaps_handedness

    def set_shading_geometry(
        self,
        dpdus: Vec3,
        dpdvs: Vec3,
        dndus: Normal3,
        dndvs: Normal3,
        orientation_is_authoritative: bool,
    ) -> None:
        """Replace the shading frame and reconcile it with the geometric normal.

        The shading normal is rebuilt from the new tangents and gets the same
        orientation flip as the geometric normal. Then the two normals are put
        in the same hemisphere: when ``orientation_is_authoritative`` is True
        the geometric normal is flipped toward the shading normal, otherwise
        the shading normal is flipped toward the geometric normal.

        Args:
            dpdus: Shading partial derivative of position with respect to u.
            dpdvs: Shading partial derivative of position with respect to v.
            dndus: Shading partial derivative of the normal with respect to u.
            dndvs: Shading partial derivative of the normal with respect to v.
            orientation_is_authoritative: Whether the shading normal decides
                which side of the surface is "outside".
        """
        shading_n = Normal3.from_vector(normalize(cross(dpdus, dpdvs)))
        if self._flips_orientation():
            shading_n = -shading_n
        if orientation_is_authoritative:
            self.n = face_forward(self.n, shading_n)
        else:
            shading_n = face_forward(shading_n, self.n)
        self.shading = Shading(n=shading_n, dpdu=dpdus, dpdv=dpdvs, dndu=dndus, dndv=dndvs)

    def compute_differentials(self, ray: RayDifferential) -> None:
        """Estimate screen-space derivatives from the ray's auxiliary rays.

        The auxiliary rays are intersected with the tangent plane at ``p``; the
        offsets of those points give ``dpdx``/``dpdy``, and a 2x2 least-squares
        system over the two best-conditioned axes gives the (u, v) derivatives.
        Without differentials, or when an auxiliary ray is parallel to the
        plane, everything is set to zero.
        """
        if not getattr(ray, "has_differentials", False):
            self._clear_differentials()
            return

        n = self.n
        d = dot(n, self.p.to_vector())
        tx = -(dot(n, ray.rx_origin.to_vector()) - d) * reciprocal(dot(n, ray.rx_direction))
        ty = -(dot(n, ray.ry_origin.to_vector()) - d) * reciprocal(dot(n, ray.ry_direction))
        if not (math.isfinite(tx) and math.isfinite(ty)):
            self._clear_differentials()
            return
        px = ray.rx_origin + ray.rx_direction * tx
        py = ray.ry_origin + ray.ry_direction * ty
        self.dpdx = px - self.p
        self.dpdy = py - self.p

        # Drop the axis along which the normal is largest
        if abs(n.x) > abs(n.y) and abs(n.x) > abs(n.z):
            dim = (1, 2)
        elif abs(n.y) > abs(n.z):
            dim = (0, 2)
        else:
            dim = (0, 1)

        a = (
            (self.dpdu[dim[0]], self.dpdv[dim[0]]),
            (self.dpdu[dim[1]], self.dpdv[dim[1]]),
        )
        bx = (px[dim[0]] - self.p[dim[0]], px[dim[1]] - self.p[dim[1]])
        by = (py[dim[0]] - self.p[dim[0]], py[dim[1]] - self.p[dim[1]])
        self.dudx, self.dvdx = _solve_linear_system_2x2(a, bx)
        self.dudy, self.dvdy = _solve_linear_system_2x2(a, by)

    def _clear_differentials(self) -> None:
        self.dpdx = Vec3()
        self.dpdy = Vec3()
        self.dudx = self.dvdx = self.dudy = self.dvdy = 0.0


def _solve_linear_system_2x2(a, b) -> tuple[float, float]:
    """Solve ``a @ x = b``; returns ``(0, 0)`` for near-singular systems."""
    det = a[0][0] * a[1][1] - a[0][1] * a[1][0]
    if abs(det) < 1e-10:
        return 0.0, 0.0
    x0 = (a[1][1] * b[0] - a[0][1] * b[1]) / det
    x1 = (a[0][0] * b[1] - a[1][0] * b[0]) / det
    if math.isnan(x0) or math.isnan(x1):
        return 0.0, 0.0
    return x0, x1
