"""Unit tests for primitives and the flat primitive list.

Tests cover:
- t_max narrowing on hit
- Back-reference from the surface interaction to the primitive
- Medium assignment
- Closest-hit search over several primitives
"""

import math


def _ray(o, d, t_max=math.inf, medium=None):
    from tracecore.core.ray import Ray
    from tracecore.core.vector import Point3, Vec3

    return Ray(Point3(*o), Vec3(*d), t_max=t_max, medium=medium)


def _sphere_at(z, radius=1.0):
    from tracecore.core.transform import translate
    from tracecore.core.vector import Vec3
    from tracecore.geometry.sphere import make_sphere

    return make_sphere(translate(Vec3(0.0, 0.0, z)), radius=radius)


class TestGeometricPrimitive:
    """Tests for a single shape wrapped as a primitive."""

    def test_hit_narrows_t_max(self):
        from tracecore.scene.primitive import GeometricPrimitive

        prim = GeometricPrimitive(_sphere_at(-5.0))
        ray = _ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        hit, si = prim.intersect(ray)
        assert hit
        assert abs(ray.t_max - 4.0) < 1e-12

    def test_miss_leaves_ray_alone(self):
        from tracecore.scene.primitive import GeometricPrimitive

        prim = GeometricPrimitive(_sphere_at(-5.0))
        ray = _ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_max=100.0)
        hit, si = prim.intersect(ray)
        assert not hit
        assert si is None
        assert ray.t_max == 100.0

    def test_interaction_points_back_to_primitive(self):
        from tracecore.scene.primitive import GeometricPrimitive

        shape = _sphere_at(-5.0)
        prim = GeometricPrimitive(shape)
        _, si = prim.intersect(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)))
        assert si.primitive is prim
        assert si.shape is shape

    def test_handles_are_returned_verbatim(self):
        from tracecore.scene.primitive import GeometricPrimitive

        material = object()
        light = object()
        prim = GeometricPrimitive(_sphere_at(0.0), material=material, area_light=light)
        assert prim.get_material() is material
        assert prim.get_area_light() is light
        assert GeometricPrimitive(_sphere_at(0.0)).get_material() is None

    def test_medium_comes_from_ray_without_interface(self):
        from tracecore.scene.primitive import GeometricPrimitive

        medium = object()
        _, si = GeometricPrimitive(_sphere_at(-5.0)).intersect(
            _ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), medium=medium)
        )
        assert si.medium is medium

    def test_medium_interface_overrides_ray(self):
        from tracecore.scene.primitive import GeometricPrimitive

        interface = object()
        prim = GeometricPrimitive(_sphere_at(-5.0), medium_interface=interface)
        _, si = prim.intersect(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), medium=object()))
        assert si.medium is interface

    def test_intersect_p_does_not_narrow(self):
        from tracecore.scene.primitive import GeometricPrimitive

        prim = GeometricPrimitive(_sphere_at(-5.0))
        ray = _ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert prim.intersect_p(ray)
        assert ray.t_max == math.inf

    def test_world_bound(self):
        from tracecore.core.vector import Point3
        from tracecore.scene.primitive import GeometricPrimitive

        b = GeometricPrimitive(_sphere_at(-5.0)).world_bound()
        assert b.p_min == Point3(-1.0, -1.0, -6.0)
        assert b.p_max == Point3(1.0, 1.0, -4.0)


class TestPrimitiveList:
    """Tests for closest-hit search over a list."""

    def test_closest_hit_wins_regardless_of_order(self):
        from tracecore.scene.primitive import GeometricPrimitive, PrimitiveList

        near = GeometricPrimitive(_sphere_at(-5.0))
        far = GeometricPrimitive(_sphere_at(-10.0))
        for prims in ([near, far], [far, near]):
            scene = PrimitiveList(prims)
            ray = _ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
            hit, si = scene.intersect(ray)
            assert hit
            assert si.primitive is near
            assert abs(ray.t_max - 4.0) < 1e-12

    def test_empty_list_misses(self):
        from tracecore.scene.primitive import PrimitiveList

        scene = PrimitiveList()
        hit, si = scene.intersect(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)))
        assert not hit
        assert si is None
        assert scene.world_bound().is_empty()

    def test_world_bound_is_union(self):
        from tracecore.core.vector import Point3
        from tracecore.scene.primitive import GeometricPrimitive, PrimitiveList

        scene = PrimitiveList([GeometricPrimitive(_sphere_at(-5.0))])
        scene.add(GeometricPrimitive(_sphere_at(3.0, radius=0.5)))
        assert len(scene) == 2
        b = scene.world_bound()
        assert b.p_min == Point3(-1.0, -1.0, -6.0)
        assert b.p_max == Point3(1.0, 1.0, 3.5)

    def test_intersect_p(self):
        from tracecore.scene.primitive import GeometricPrimitive, PrimitiveList

        scene = PrimitiveList([GeometricPrimitive(_sphere_at(-5.0))])
        assert scene.intersect_p(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)))
        assert not scene.intersect_p(_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_max=2.0))
