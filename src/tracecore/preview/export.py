"""Image export for intersection results.

Packet queries return flat per-ray arrays. The helpers here reshape them into
images for inspection:

    - depth_to_image: hit distances to an 8-bit grayscale depth map
    - normals_to_image: unit normals to an 8-bit RGB normal map
    - save_png_from_array: write either of the above with Pillow

Rays are assumed to be laid out row-major, first row at the top of the image.

Example:
    >>> hits, t_hit = sphere.intersect_packet(origins, directions)
    >>> save_png_from_array(depth_to_image(t_hit, 64, 48), "depth.png")
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from tracecore.utils.logger import get_logger

logger = get_logger(__name__)

# Brightness of the farthest hit, keeping it distinct from misses (black)
FAR_BRIGHTNESS = 0.2


def depth_to_image(
    t_hit: npt.ArrayLike,
    width: int,
    height: int,
    *,
    max_depth: float | None = None,
) -> npt.NDArray[np.uint8]:
    """Convert per-ray hit distances into a grayscale depth map.

    The nearest hit is white, hits at ``max_depth`` or beyond are dark gray
    and rays that missed (non-finite distance) are black.

    Args:
        t_hit: Hit distances, ``width * height`` values.
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Distance mapped to the darkest gray. Defaults to the
            farthest hit.

    Returns:
        Image array of shape (height, width) with dtype uint8.

    Raises:
        ValueError: If the number of distances does not match the image size,
            or ``max_depth`` is not positive.
    """
    depth = np.asarray(t_hit, dtype=np.float64)
    if depth.size != width * height:
        raise ValueError(f"Expected {width * height} distances, got {depth.size}")
    if max_depth is not None and max_depth <= 0.0:
        raise ValueError(f"max_depth must be positive, got {max_depth}")
    depth = depth.reshape(height, width)

    image = np.zeros((height, width), dtype=np.uint8)
    hit = np.isfinite(depth)
    if not hit.any():
        logger.warning("Depth map has no hits; image is black")
        return image

    near = float(depth[hit].min())
    far = float(max_depth) if max_depth is not None else float(depth[hit].max())
    span = far - near
    if span <= 0.0:
        shade = np.ones_like(depth)
    else:
        shade = 1.0 - np.clip((depth - near) / span, 0.0, 1.0)

    brightness = FAR_BRIGHTNESS + (1.0 - FAR_BRIGHTNESS) * shade[hit]
    image[hit] = (brightness * 255).astype(np.uint8)
    return image


def normals_to_image(
    normals: npt.ArrayLike,
    width: int,
    height: int,
) -> npt.NDArray[np.uint8]:
    """Map unit normals to RGB, ``[-1, 1]`` onto ``[0, 255]`` per channel.

    Rows containing NaN (rays that missed) are black.

    Args:
        normals: Normals of shape ``(width * height, 3)``.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Image array of shape (height, width, 3) with dtype uint8.

    Raises:
        ValueError: If the array shape does not match the image size.
    """
    n = np.asarray(normals, dtype=np.float64)
    if n.shape != (width * height, 3):
        raise ValueError(f"Expected normals of shape ({width * height}, 3), got {n.shape}")
    valid = ~np.isnan(n).any(axis=1)
    rgb = np.zeros_like(n)
    rgb[valid] = np.clip((n[valid] + 1.0) * 0.5, 0.0, 1.0)
    return image_to_uint8(rgb.reshape(height, width, 3))


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a float image in ``[0, 1]`` to uint8, clipping out-of-range values."""
    return (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)


def save_png_from_array(image: npt.NDArray, filepath: str) -> None:
    """Save a NumPy image as a PNG file.

    Args:
        image: Grayscale ``(H, W)`` or RGB ``(H, W, 3)`` array. uint8 arrays
            are written as-is; float arrays are taken to be in ``[0, 1]``.
        filepath: Output file path (should end in .png).

    Raises:
        ValueError: If the array is not a 2-D grayscale or 3-channel image.
    """
    image = np.asarray(image)
    if not (image.ndim == 2 or (image.ndim == 3 and image.shape[2] == 3)):
        raise ValueError(f"Expected an (H, W) or (H, W, 3) image, got shape {image.shape}")
    if image.dtype != np.uint8:
        image = image_to_uint8(image.astype(np.float64))

    pil_image = PILImage.fromarray(np.ascontiguousarray(image))
    pil_image.save(filepath)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)
