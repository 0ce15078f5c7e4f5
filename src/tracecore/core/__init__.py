"""Core geometric types.

Components:
    numerics: Error-bound constants, IEEE-safe reciprocal, robust quadratic
    vector: Vec3/Point3/Normal3 and their 2-D counterparts
    transform: Matrix4x4, Transform and the transform builders
    bounds: Bounds3/Bounds2 and the slab test
    ray: Ray and RayDifferential
    interaction: Interaction and SurfaceInteraction

Points, vectors and normals are distinct types because they transform
differently: points are translated, vectors are not, and normals use the
inverse transpose.
"""

from .bounds import Bounds2, Bounds3, expand, intersect, overlaps, slab_test, union
from .interaction import Interaction, Shading, SurfaceInteraction, offset_ray_origin
from .numerics import MACHINE_EPSILON, gamma, quadratic, reciprocal
from .ray import Ray, RayDifferential, as_packet, pack_rays
from .transform import (
    Matrix4x4,
    Transform,
    look_at,
    rotate,
    rotate_x,
    rotate_y,
    rotate_z,
    scale,
    translate,
)
from .vector import (
    Normal3,
    Point2,
    Point3,
    Vec2,
    Vec3,
    coordinate_system,
    cross,
    distance,
    dot,
    face_forward,
    normalize,
)

__all__ = [
    # Numerics
    "MACHINE_EPSILON",
    "gamma",
    "quadratic",
    "reciprocal",
    # Vectors
    "Vec2",
    "Vec3",
    "Point2",
    "Point3",
    "Normal3",
    "dot",
    "cross",
    "normalize",
    "face_forward",
    "coordinate_system",
    "distance",
    # Transforms
    "Matrix4x4",
    "Transform",
    "translate",
    "scale",
    "rotate",
    "rotate_x",
    "rotate_y",
    "rotate_z",
    "look_at",
    # Bounds
    "Bounds2",
    "Bounds3",
    "union",
    "intersect",
    "overlaps",
    "expand",
    "slab_test",
    # Rays
    "Ray",
    "RayDifferential",
    "pack_rays",
    "as_packet",
    # Interactions
    "Interaction",
    "SurfaceInteraction",
    "Shading",
    "offset_ray_origin",
]
