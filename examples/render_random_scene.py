#!/usr/bin/env python3
"""Render the procedural random scene through the Python API.

This script builds the default scene (metal ground, a grid of small random
spheres and a metal block), points a thin-lens camera at it and renders it
row by row with a progress readout.

Usage:
    python examples/render_random_scene.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 300)
    --samples SAMPLES   Number of samples per pixel (default: 20)
    --depth DEPTH       Maximum bounces per sample (default: 20)
    --seed SEED         Seed for both the scene and the render (default: 1)
    --output OUTPUT     Output file path (default: random_scene.png)
    --quiet             Suppress progress output

Example:
    python examples/render_random_scene.py --width 200 --samples 10
"""

import argparse
import sys
import time
from pathlib import Path

ASPECT_RATIO = 1.5


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the procedural random scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=300, help="Image width (default: 300)")
    parser.add_argument(
        "--samples", type=int, default=20, help="Samples per pixel (default: 20)"
    )
    parser.add_argument("--depth", type=int, default=20, help="Maximum bounces (default: 20)")
    parser.add_argument("--seed", type=int, default=1, help="Scene and render seed (default: 1)")
    parser.add_argument(
        "--output",
        type=str,
        default="random_scene.png",
        help="Output file path (default: random_scene.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_random_scene(
    width: int = 300,
    num_samples: int = 20,
    max_depth: int = 20,
    seed: int = 1,
    output_path: str = "random_scene.png",
    quiet: bool = False,
) -> Path:
    """Render the random scene and save it as a PNG.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    from pathtracer.core.renderer import Renderer, RenderSettings
    from pathtracer.output.export import save_png
    from pathtracer.scene.random_scene import create_random_scene

    scene = create_random_scene(seed=seed)
    if not quiet:
        print(
            f"Scene: {scene.get_sphere_count()} spheres, {scene.get_plane_count()} planes, "
            f"{scene.get_material_count()} materials"
        )

    setup_camera(
        ThinLensCamera(
            vfov=20.0,
            aspect_ratio=ASPECT_RATIO,
            look_from=(13.0, 2.0, 3.0),
            look_at=(0.0, 0.0, 0.0),
            vup=(0.0, 1.0, 0.0),
            aperture=0.1,
            focus_dist=10.0,
        )
    )

    height = int(width / ASPECT_RATIO)
    renderer = Renderer(
        RenderSettings(
            width=width,
            height=height,
            samples_per_pixel=num_samples,
            max_depth=max_depth,
            seed=seed,
        )
    )

    start_time = time.time()

    def progress_callback(rows_remaining: int, total_rows: int) -> None:
        if not quiet:
            done = total_rows - rows_remaining
            print(f"\r  Rows: {done}/{total_rows}", end="", flush=True)

    image = renderer.render(callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(output_file, image)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    from pathtracer.core.backend import init_taichi

    try:
        init_taichi()
        render_random_scene(
            width=args.width,
            num_samples=args.samples,
            max_depth=args.depth,
            seed=args.seed,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
