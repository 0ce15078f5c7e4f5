"""Unit tests for vector, point and normal algebra.

Tests cover:
- Type-specific arithmetic (points vs vectors vs normals)
- Dot/cross products and normalization
- IEEE behavior of degenerate operations
- Orthonormal basis construction
"""

import math

import pytest


class TestVectorArithmetic:
    """Tests for the arithmetic allowed between the value types."""

    def test_point_minus_point_is_vector(self):
        """Subtracting two points yields a displacement."""
        from tracecore.core.vector import Point3, Vec3

        v = Point3(3.0, 2.0, 1.0) - Point3(1.0, 1.0, 1.0)
        assert type(v) is Vec3
        assert v == Vec3(2.0, 1.0, 0.0)

    def test_point_plus_vector_is_point(self):
        from tracecore.core.vector import Point3, Vec3

        p = Point3(1.0, 2.0, 3.0) + Vec3(0.0, 0.0, 1.0)
        assert type(p) is Point3
        assert p == Point3(1.0, 2.0, 4.0)

    def test_normal_plus_vector_raises(self):
        """Normals and vectors transform differently and cannot be added."""
        from tracecore.core.vector import Normal3, Vec3

        with pytest.raises(TypeError):
            Normal3(0.0, 0.0, 1.0) + Vec3(1.0, 0.0, 0.0)
        with pytest.raises(TypeError):
            Vec3(1.0, 0.0, 0.0) + Normal3(0.0, 0.0, 1.0)

    def test_scalar_multiply_and_divide(self):
        from tracecore.core.vector import Vec3

        v = Vec3(1.0, -2.0, 4.0)
        assert v * 2.0 == Vec3(2.0, -4.0, 8.0)
        assert 2.0 * v == Vec3(2.0, -4.0, 8.0)
        assert v / 2.0 == Vec3(0.5, -1.0, 2.0)

    def test_divide_by_zero_gives_infinity(self):
        """Division by zero follows IEEE instead of raising."""
        from tracecore.core.vector import Vec3

        v = Vec3(1.0, -1.0, 0.0) / 0.0
        assert v.x == math.inf
        assert v.y == -math.inf
        assert math.isnan(v.z)

    def test_values_are_immutable_and_hashable(self):
        from tracecore.core.vector import Point3

        p = Point3(1.0, 2.0, 3.0)
        with pytest.raises(AttributeError):
            p.x = 5.0
        assert hash(p) == hash(Point3(1.0, 2.0, 3.0))

    def test_indexing_and_permute(self):
        from tracecore.core.vector import Vec3

        v = Vec3(1.0, 5.0, 3.0)
        assert v[1] == 5.0
        assert v.max_dimension() == 1
        assert v.permute(2, 0, 1) == Vec3(3.0, 1.0, 5.0)
        with pytest.raises(IndexError):
            v[3]


class TestProducts:
    """Tests for dot, cross and normalization."""

    def test_cross_right_handed(self):
        """x cross y is z."""
        from tracecore.core.vector import Vec3, cross

        assert cross(Vec3(1.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0)) == Vec3(0.0, 0.0, 1.0)

    def test_cross_of_two_normals_is_a_vector(self):
        from tracecore.core.vector import Normal3, Vec3, cross

        result = cross(Normal3(1.0, 0.0, 0.0), Normal3(0.0, 1.0, 0.0))
        assert type(result) is Vec3
        assert result == Vec3(0.0, 0.0, 1.0)
        assert cross(Normal3(0.0, 2.0, 0.0), Vec3(0.0, 0.0, 3.0)) == Vec3(6.0, 0.0, 0.0)

    def test_dot_mixes_vectors_and_normals(self):
        from tracecore.core.vector import Normal3, Vec3, abs_dot, dot

        assert dot(Vec3(1.0, 2.0, 3.0), Normal3(0.0, 0.0, -1.0)) == -3.0
        assert abs_dot(Vec3(1.0, 2.0, 3.0), Normal3(0.0, 0.0, -1.0)) == 3.0

    def test_normalize(self):
        from tracecore.core.vector import Vec3, normalize

        n = normalize(Vec3(3.0, 0.0, 4.0))
        assert abs(n.length() - 1.0) < 1e-12
        assert abs(n.x - 0.6) < 1e-12

    def test_normalize_zero_vector_is_nan(self):
        """Normalizing a zero vector does not raise; it yields NaNs."""
        from tracecore.core.vector import Vec3, normalize

        assert normalize(Vec3()).has_nans()

    def test_face_forward(self):
        from tracecore.core.vector import Normal3, Vec3, face_forward

        n = Normal3(0.0, 0.0, 1.0)
        assert face_forward(n, Vec3(0.0, 0.0, -1.0)) == Normal3(0.0, 0.0, -1.0)
        assert face_forward(n, Vec3(0.0, 1.0, 0.5)) == n


class TestCoordinateSystem:
    """Tests for orthonormal basis construction."""

    @pytest.mark.parametrize(
        "axis",
        [(1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0), (0.6, 0.0, 0.8), (0.48, 0.6, 0.64)],
    )
    def test_basis_is_orthonormal(self, axis):
        from tracecore.core.vector import Vec3, coordinate_system, dot

        v1 = Vec3(*axis)
        v2, v3 = coordinate_system(v1)
        assert abs(dot(v1, v2)) < 1e-12
        assert abs(dot(v1, v3)) < 1e-12
        assert abs(dot(v2, v3)) < 1e-12
        assert abs(v2.length() - 1.0) < 1e-12
        assert abs(v3.length() - 1.0) < 1e-12


class TestComponentwise:
    """Tests for componentwise helpers and distances."""

    def test_min_max_components(self):
        from tracecore.core.vector import Point3, max_components, min_components

        a = Point3(1.0, 5.0, -2.0)
        b = Point3(3.0, 0.0, -1.0)
        assert min_components(a, b) == Point3(1.0, 0.0, -2.0)
        assert max_components(a, b) == Point3(3.0, 5.0, -1.0)

    def test_distance(self):
        from tracecore.core.vector import Point3, distance, distance_squared

        assert distance(Point3(0.0, 0.0, 0.0), Point3(3.0, 4.0, 0.0)) == 5.0
        assert distance_squared(Point3(0.0, 0.0, 0.0), Point3(3.0, 4.0, 0.0)) == 25.0

    def test_lerp_point(self):
        from tracecore.core.vector import Point3, lerp_point

        mid = lerp_point(0.5, Point3(0.0, 0.0, 0.0), Point3(2.0, 4.0, 6.0))
        assert mid == Point3(1.0, 2.0, 3.0)

    def test_point2_algebra(self):
        from tracecore.core.vector import Point2, Vec2

        v = Point2(3.0, 4.0) - Point2(0.0, 0.0)
        assert type(v) is Vec2
        assert v.length() == 5.0
