"""Unit tests for the sphere shape.

Tests cover:
- Construction and parameter validation
- Ray hitting the sphere from outside and from inside
- Misses, t_max cut-off and rays pointing away
- z and phi clipping with the far-root retry
- Differential geometry and normal orientation
- Transformed spheres
- Packet intersection agreement with the scalar path
"""

import math

import numpy as np
import pytest


def _ray(o, d, t_max=math.inf):
    from tracecore.core.ray import Ray
    from tracecore.core.vector import Point3, Vec3

    return Ray(Point3(*o), Vec3(*d), t_max=t_max)


class TestSphereConstruction:
    """Tests for Sphere parameters."""

    def test_make_sphere_defaults(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(radius=2.0)
        assert sphere.radius == 2.0
        assert sphere.z_min == -2.0
        assert sphere.z_max == 2.0
        assert abs(sphere.phi_max - 2.0 * math.pi) < 1e-15
        assert abs(sphere.theta_min - math.pi) < 1e-15
        assert sphere.theta_max == 0.0

    def test_z_range_is_ordered_and_clamped(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(radius=1.0, z_min=3.0, z_max=-0.5)
        assert sphere.z_min == -0.5
        assert sphere.z_max == 1.0

    def test_phi_max_is_clamped(self):
        from tracecore.geometry.sphere import make_sphere

        assert make_sphere(phi_max=10.0).phi_max == 2.0 * math.pi

    @pytest.mark.parametrize("radius", [0.0, -1.0])
    def test_non_positive_radius_is_built_with_warning(self, radius, caplog):
        """Degenerate radii are left to the caller; only a diagnostic is logged."""
        from tracecore.geometry.sphere import make_sphere

        with caplog.at_level("WARNING", logger="tracecore.geometry.sphere"):
            sphere = make_sphere(radius=radius)
        assert sphere.radius == radius
        assert "not positive" in caplog.text

    def test_zero_radius_misses_off_axis_ray(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(radius=0.0)
        assert not sphere.intersect(_ray((0.5, 0.0, 5.0), (0.0, 0.0, -1.0))).hit

    def test_zero_phi_max_is_built_with_warning(self, caplog):
        from tracecore.geometry.sphere import make_sphere

        with caplog.at_level("WARNING", logger="tracecore.geometry.sphere"):
            sphere = make_sphere(phi_max=0.0)
        assert sphere.phi_max == 0.0
        assert sphere.area() == 0.0
        assert "phi_max" in caplog.text
        # Both roots lie at phi > 0 and are clipped away
        assert not sphere.intersect(_ray((5.0, 0.5, 0.0), (-1.0, 0.0, 0.0))).hit

    def test_full_sphere_area(self):
        from tracecore.geometry.sphere import make_sphere

        assert abs(make_sphere().area() - 4.0 * math.pi) < 1e-12

    def test_partial_sphere_area(self):
        """A hemisphere cut in half by phi has a quarter of the area."""
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(radius=2.0, z_min=0.0, phi_max=math.pi)
        assert abs(sphere.area() - 4.0 * math.pi) < 1e-12

    def test_bounds(self):
        from tracecore.core.transform import translate
        from tracecore.core.vector import Point3, Vec3
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(translate(Vec3(0.0, 0.0, -5.0)), radius=1.0, z_max=0.5)
        ob = sphere.object_bound()
        assert ob.p_min == Point3(-1.0, -1.0, -1.0)
        assert ob.p_max == Point3(1.0, 1.0, 0.5)
        wb = sphere.world_bound()
        assert wb.p_min == Point3(-1.0, -1.0, -6.0)
        assert wb.p_max == Point3(1.0, 1.0, -4.5)


class TestSphereIntersection:
    """Tests for scalar ray-sphere intersection."""

    def test_direct_hit_from_outside(self):
        """Ray from z=5 toward the origin hits the unit sphere at t=4."""
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere()
        rec = sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)))
        assert rec.hit
        assert abs(rec.t_hit - 4.0) < 1e-12

        si = rec.interaction
        # The pole is nudged off the z axis by 1e-5 * radius
        assert abs(si.p.x) < 1e-4
        assert abs(si.p.y) < 1e-12
        assert abs(si.p.z - 1.0) < 1e-9
        assert abs(si.n.z - 1.0) < 1e-6
        assert abs(si.wo.z - 1.0) < 1e-12
        assert si.shape is sphere
        assert si.p_error.z > 0.0

    def test_miss(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere()
        ray = _ray((5.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        rec = sphere.intersect(ray)
        assert not rec.hit
        assert rec.interaction is None
        assert not sphere.intersect_p(ray)

    def test_origin_inside_uses_far_root(self):
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere().intersect(_ray((0.0, 0.0, 0.5), (0.0, 0.0, -1.0)))
        assert rec.hit
        assert abs(rec.t_hit - 1.5) < 1e-12
        # Normals point outward regardless of the ray side
        assert rec.interaction.n.z < -0.999

    def test_sphere_behind_ray_misses(self):
        from tracecore.geometry.sphere import make_sphere

        assert not make_sphere().intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))).hit

    def test_t_max_limits_hits(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere()
        assert not sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=3.0)).hit
        assert sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=4.0)).hit

    def test_ray_is_not_modified(self):
        from tracecore.geometry.sphere import make_sphere

        ray = _ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        make_sphere().intersect(ray)
        assert ray.t_max == math.inf

    def test_unnormalized_direction(self):
        """t is measured in multiples of the direction vector."""
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere().intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -2.0)))
        assert abs(rec.t_hit - 2.0) < 1e-12


class TestSphereClipping:
    """Tests for partial spheres."""

    def test_z_clip_retries_far_root(self):
        """The near hit at z=1 is cut away; the far hit at z=-1 is kept."""
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere(z_max=0.5).intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)))
        assert rec.hit
        assert abs(rec.t_hit - 6.0) < 1e-12
        assert abs(rec.interaction.p.z + 1.0) < 1e-9

    def test_z_band_misses_axial_ray(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(z_min=-0.5, z_max=0.5)
        assert not sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))).hit

    def test_z_band_hits_equatorial_ray(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(z_min=-0.5, z_max=0.5)
        rec = sphere.intersect(_ray((5.0, 0.0, 0.0), (-1.0, 0.0, 0.0)))
        assert rec.hit
        assert abs(rec.t_hit - 4.0) < 1e-12

    def test_phi_clip_retries_far_root(self):
        """With phi_max = pi only the y >= 0 half remains."""
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(phi_max=math.pi)
        rec = sphere.intersect(_ray((0.0, -5.0, 0.0), (0.0, 1.0, 0.0)))
        assert rec.hit
        assert abs(rec.t_hit - 6.0) < 1e-12
        assert abs(rec.interaction.p.y - 1.0) < 1e-9

    def test_far_root_beyond_t_max_misses(self):
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(z_max=0.5)
        assert not sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=5.0)).hit

    def test_clipped_inside_ray_misses(self):
        """From inside, the only candidate is the far root; if clipped, it's a miss."""
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(z_max=0.5)
        assert not sphere.intersect(_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))).hit

    def test_degenerate_band_is_logged(self, caplog):
        import logging

        from tracecore.geometry.sphere import make_sphere

        with caplog.at_level(logging.WARNING, logger="tracecore.geometry.sphere"):
            sphere = make_sphere(z_min=0.3, z_max=0.3)
        assert sphere.area() == 0.0
        assert "no area" in caplog.text


class TestSphereDifferentialGeometry:
    """Tests for the surface interaction built at a hit."""

    def test_equator_partials(self):
        """For the unit sphere the normal derivatives equal the position derivatives."""
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere().intersect(_ray((5.0, 0.0, 0.0), (-1.0, 0.0, 0.0)))
        si = rec.interaction
        assert abs(si.uv.x) < 1e-12
        assert abs(si.uv.y - 0.5) < 1e-12
        assert abs(si.dpdu.y - 2.0 * math.pi) < 1e-9
        assert abs(si.dpdv.z - math.pi) < 1e-9
        assert abs(si.dndu.y - si.dpdu.y) < 1e-9
        assert abs(si.dndv.z - si.dpdv.z) < 1e-9
        assert abs(si.n.x - 1.0) < 1e-12

    def test_normal_is_perpendicular_to_tangents(self):
        from tracecore.core.vector import dot, normalize
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere(radius=1.5).intersect(_ray((3.0, 2.0, 1.0), (-3.0, -2.0, -1.2)))
        si = rec.interaction
        assert rec.hit
        assert abs(dot(si.n, normalize(si.dpdu))) < 1e-9
        assert abs(dot(si.n, normalize(si.dpdv))) < 1e-9
        assert abs(si.n.length() - 1.0) < 1e-12

    def test_reverse_orientation_flips_normal(self):
        from tracecore.geometry.sphere import make_sphere

        rec = make_sphere(reverse_orientation=True).intersect(
            _ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        )
        assert rec.interaction.n.z < -0.999
        assert rec.interaction.shading.n.z < -0.999

    def test_handedness_swap_follows_world_partials(self):
        """Under a mirror, n stays aligned with cross(dpdu, dpdv) in world space."""
        from tracecore.core.transform import scale
        from tracecore.core.vector import cross, dot
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(scale(1.0, 1.0, -1.0))
        assert sphere.transform_swaps_handedness
        si = sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))).interaction
        assert dot(si.n, cross(si.dpdu, si.dpdv)) > 0.0
        assert si.n.z < -0.999

    def test_reverse_and_handedness_cancel(self):
        from tracecore.core.transform import scale
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(scale(1.0, 1.0, -1.0), reverse_orientation=True)
        si = sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))).interaction
        assert si.n.z > 0.999


class TestTransformedSphere:
    """Tests for spheres placed by a non-identity transform."""

    def test_translated_sphere(self):
        from tracecore.core.transform import translate
        from tracecore.core.vector import Vec3
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(translate(Vec3(0.0, 0.0, -5.0)))
        rec = sphere.intersect(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)))
        assert rec.hit
        assert abs(rec.t_hit - 4.0) < 1e-12
        assert abs(rec.interaction.p.z + 4.0) < 1e-9
        assert abs(rec.interaction.n.z - 1.0) < 1e-6

    def test_scaled_sphere(self):
        from tracecore.core.transform import scale
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(scale(2.0, 2.0, 2.0))
        rec = sphere.intersect(_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)))
        assert abs(rec.t_hit - 3.0) < 1e-12
        assert abs(rec.interaction.p.z - 2.0) < 1e-9

    def test_rotated_sphere_keeps_clipping_in_object_space(self):
        """Rotating a z-clipped bowl by 90 degrees about x moves the cut to -y."""
        from tracecore.core.transform import rotate_x
        from tracecore.geometry.sphere import make_sphere

        sphere = make_sphere(rotate_x(90.0), z_min=0.0)
        # World +y is object -z, which is cut away
        rec = sphere.intersect(_ray((0.0, 5.0, 0.0), (0.0, -1.0, 0.0)))
        assert rec.hit
        assert abs(rec.t_hit - 6.0) < 1e-9


class TestSpherePacket:
    """Tests for the Taichi packet kernel."""

    def test_packet_direct_hit(self):
        from tracecore.geometry.sphere import make_sphere

        hits, t_hit = make_sphere().intersect_packet([[0.0, 0.0, 5.0]], [[0.0, 0.0, -1.0]])
        assert hits[0]
        assert abs(t_hit[0] - 4.0) < 1e-12

    def test_packet_miss_is_infinite(self):
        from tracecore.geometry.sphere import make_sphere

        hits, t_hit = make_sphere().intersect_packet([[5.0, 0.0, 0.0]], [[0.0, 0.0, -1.0]])
        assert not hits[0]
        assert t_hit[0] == math.inf

    def test_packet_matches_scalar(self):
        from tracecore.core.ray import Ray
        from tracecore.core.transform import rotate, translate
        from tracecore.core.vector import Point3, Vec3
        from tracecore.geometry.sphere import make_sphere

        placement = translate(Vec3(0.5, -0.25, 1.0)) @ rotate(30.0, Vec3(1.0, 1.0, 0.0))
        sphere = make_sphere(placement, radius=1.25, z_min=-0.8, z_max=0.9, phi_max=math.radians(290.0))
        rng = np.random.default_rng(11)
        n = 256
        origins = rng.uniform(-4.0, 4.0, size=(n, 3))
        targets = rng.uniform(-1.0, 1.0, size=(n, 3)) + np.array([0.5, -0.25, 1.0])
        directions = targets - origins
        t_max = rng.uniform(0.2, 2.0, size=n)

        hits, t_hit = sphere.intersect_packet(origins, directions, t_max)
        assert hits.any()
        assert not hits.all()
        for i in range(n):
            ray = Ray(Point3(*origins[i]), Vec3(*directions[i]), t_max=float(t_max[i]))
            rec = sphere.intersect(ray)
            assert bool(hits[i]) == rec.hit
            if rec.hit:
                assert abs(t_hit[i] - rec.t_hit) < 1e-9

    def test_packet_clipping_retry(self):
        from tracecore.geometry.sphere import make_sphere

        hits, t_hit = make_sphere(z_max=0.5).intersect_packet(
            [[0.0, 0.0, 5.0], [0.0, 0.0, 0.0]], [[0.0, 0.0, -1.0], [0.0, 0.0, 1.0]]
        )
        assert hits[0]
        assert abs(t_hit[0] - 6.0) < 1e-12
        assert not hits[1]
