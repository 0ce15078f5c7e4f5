#!/usr/bin/env python3
"""Render a depth map (and optionally a normal map) of a clipped sphere.

This script shows the two intersection paths side by side. Camera rays are
generated from a ``look_at`` transform, the depth map is computed with the
Taichi packet kernel, and the normal map uses the scalar intersection through
a primitive list.

Usage:
    python examples/render_sphere_depth.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 256)
    --height HEIGHT     Image height in pixels (default: 256)
    --fov FOV           Vertical field of view in degrees (default: 40)
    --z-max ZMAX        Upper clipping height of the unit sphere (default: 0.6)
    --phi-max PHI       Azimuthal sweep in degrees (default: 300)
    --output OUTPUT     Output file path (default: sphere_depth.png)
    --normals PATH      Also write a normal map to PATH (scalar path, slower)
    --arch ARCH         Taichi backend (default: TRACECORE_ARCH or cpu)

Example:
    python examples/render_sphere_depth.py --width 128 --height 128 --normals normals.png
"""

from __future__ import annotations

import argparse
import math
import sys
import time
from pathlib import Path

import numpy as np


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a depth map of a clipped sphere.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=256, help="Image width in pixels (default: 256)")
    parser.add_argument("--height", type=int, default=256, help="Image height in pixels (default: 256)")
    parser.add_argument(
        "--fov", type=float, default=40.0, help="Vertical field of view in degrees (default: 40)"
    )
    parser.add_argument(
        "--z-max", type=float, default=0.6, help="Upper clipping height (default: 0.6)"
    )
    parser.add_argument(
        "--phi-max", type=float, default=300.0, help="Azimuthal sweep in degrees (default: 300)"
    )
    parser.add_argument(
        "--output", type=str, default="sphere_depth.png", help="Output file path"
    )
    parser.add_argument("--normals", type=str, default=None, help="Optional normal map path")
    parser.add_argument("--arch", type=str, default=None, help="Taichi backend")
    return parser.parse_args()


def generate_camera_rays(
    width: int, height: int, fov: float, camera_to_world
) -> tuple[np.ndarray, np.ndarray]:
    """Pinhole camera rays, row-major with the first row at the top.

    The camera looks down +z in camera space, as set up by ``look_at``.

    Returns:
        Tuple ``(origins, directions)`` of shape ``(width * height, 3)``.
    """
    half_height = math.tan(math.radians(fov) * 0.5)
    half_width = half_height * width / height

    xs = ((np.arange(width) + 0.5) / width * 2.0 - 1.0) * half_width
    ys = (1.0 - (np.arange(height) + 0.5) / height * 2.0) * half_height
    px, py = np.meshgrid(xs, ys)
    dirs_cam = np.stack([px.ravel(), py.ravel(), np.ones(width * height)], axis=1)

    m = camera_to_world.m.to_numpy()
    directions = dirs_cam @ m[:3, :3].T
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    origins = np.broadcast_to(m[:3, 3] / m[3, 3], directions.shape).copy()
    return origins, directions


def render_sphere_depth(
    width: int = 256,
    height: int = 256,
    fov: float = 40.0,
    z_max: float = 0.6,
    phi_max_deg: float = 300.0,
    output_path: str = "sphere_depth.png",
    normals_path: str | None = None,
) -> Path:
    """Render the depth map (and optional normal map) and save to file.

    Returns:
        Path to the saved depth map.
    """
    # Lazy imports so Taichi is initialized first
    from tracecore.core.ray import Ray
    from tracecore.core.transform import look_at
    from tracecore.core.vector import Point3, Vec3
    from tracecore.geometry.sphere import make_sphere
    from tracecore.preview.export import depth_to_image, normals_to_image, save_png_from_array
    from tracecore.scene.primitive import GeometricPrimitive, PrimitiveList

    world_to_camera = look_at(Point3(3.0, 2.0, 3.0), Point3(0.0, 0.0, 0.0), Vec3(0.0, 0.0, 1.0))
    camera_to_world = world_to_camera.inverse()
    sphere = make_sphere(radius=1.0, z_max=z_max, phi_max=math.radians(phi_max_deg))

    origins, directions = generate_camera_rays(width, height, fov, camera_to_world)

    start_time = time.time()
    hits, t_hit = sphere.intersect_packet(origins, directions)
    print(f"Packet query: {hits.sum()}/{hits.size} hits in {time.time() - start_time:.3f}s")

    output_file = Path(output_path)
    save_png_from_array(depth_to_image(t_hit, width, height), str(output_file))
    print(f"Saved depth map to: {output_file.absolute()}")

    if normals_path is not None:
        scene = PrimitiveList([GeometricPrimitive(sphere)])
        normals = np.full((width * height, 3), np.nan)
        start_time = time.time()
        for i in range(width * height):
            ray = Ray(Point3(*origins[i]), Vec3(*directions[i]))
            hit, si = scene.intersect(ray)
            if hit:
                normals[i] = tuple(si.n)
        print(f"Scalar query: {time.time() - start_time:.3f}s")
        save_png_from_array(normals_to_image(normals, width, height), normals_path)
        print(f"Saved normal map to: {Path(normals_path).absolute()}")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    import tracecore

    tracecore.init(args.arch)

    try:
        render_sphere_depth(
            width=args.width,
            height=args.height,
            fov=args.fov,
            z_max=args.z_max,
            phi_max_deg=args.phi_max,
            output_path=args.output,
            normals_path=args.normals,
        )
        return 0
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
