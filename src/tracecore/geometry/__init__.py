"""Geometry module for shapes.

Components:
    shape: Abstract Shape interface and the HitRecord result type
    sphere: Partial sphere with scalar and packet ray intersection

Scalar intersection returns a world-space SurfaceInteraction; the packet
path (``@ti.func`` hit_sphere) returns hit flags and distances only.
"""

from .shape import MISS, HitRecord, Shape
from .sphere import Sphere, hit_sphere, make_sphere

__all__ = [
    "Shape",
    "HitRecord",
    "MISS",
    "Sphere",
    "hit_sphere",
    "make_sphere",
]
