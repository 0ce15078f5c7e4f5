"""Geometric core of a physically based ray tracer.

This package provides the building blocks that every ray-tracing query needs:

Subpackages:
    core: Vector algebra, 4x4 transforms, bounding boxes, rays and
        surface interactions
    geometry: The shape interface and the analytic sphere
    scene: Primitives binding shapes to material and light handles
    preview: Depth and normal map export for packet query results
    utils: Logging

Scalar queries are plain Python and need no setup. The packet kernels
(``Bounds3.intersect_packet``, ``Sphere.intersect_packet``) run on Taichi and
require :func:`init` to be called once per process.
"""

import taichi as ti

from tracecore import config
from tracecore.utils.logger import get_logger

__version__ = "0.1.0"

logger = get_logger(__name__)

# Backend names accepted by init(), matching the Taichi arch attributes
ARCH_NAMES = frozenset(
    {"cpu", "gpu", "x64", "arm64", "cuda", "amdgpu", "vulkan", "metal", "opengl", "gles", "dx11", "dx12"}
)


def init(arch: str | None = None) -> None:
    """Initialize the Taichi runtime in double precision with IEEE arithmetic.

    ``fast_math`` is turned off so that zero direction components produce
    infinities in the packet kernels exactly as in the scalar code.

    Args:
        arch: Taichi backend name ("cpu", "gpu", "cuda", "vulkan", ...).
            Defaults to ``config.ARCH``.

    Raises:
        ValueError: If the name is not one of ``ARCH_NAMES``.
    """
    name = (arch or config.ARCH).lower()
    backend = getattr(ti, name, None) if name in ARCH_NAMES else None
    if backend is None:
        raise ValueError(f"Unknown Taichi arch: {name!r}")
    ti.init(arch=backend, default_fp=ti.f64, fast_math=False)
    logger.info("Initialized Taichi (arch=%s, default_fp=f64)", name)
