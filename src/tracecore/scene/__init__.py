"""Scene module: primitives and flat aggregates."""

from .primitive import GeometricPrimitive, Primitive, PrimitiveList

__all__ = ["Primitive", "GeometricPrimitive", "PrimitiveList"]
