"""Preview module for exporting packet query results as images.

Example:
    >>> from tracecore.preview import depth_to_image, save_png_from_array
    >>> save_png_from_array(depth_to_image(t_hit, 64, 48), "depth.png")
"""

from tracecore.preview.export import (
    depth_to_image,
    image_to_uint8,
    normals_to_image,
    save_png_from_array,
)

__all__ = [
    "depth_to_image",
    "normals_to_image",
    "image_to_uint8",
    "save_png_from_array",
]
