"""Command-line entry point: render a preset to an image file.

Usage:
    pathtracer PRESET OUTPUT [options]

Options:
    --seed SEED         Render seed (overrides the preset seed)
    --threads N         Number of CPU worker threads (default: all cores)
    --quiet             Suppress progress output
    --verbose           Log scene and render details

The output format follows the OUTPUT extension: ``.ppm`` writes a plain-text
pixmap row by row as rendering proceeds, ``.png`` writes the finished image.

Example:
    pathtracer examples/presets/three_spheres.json out.ppm --seed 7
"""

import argparse
import logging
import sys
from pathlib import Path

from pathtracer.core.backend import init_taichi

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = (".ppm", ".png")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pathtracer",
        description="Render a JSON preset with the Monte Carlo path tracer.",
    )
    parser.add_argument("preset", type=Path, help="Path to the JSON preset")
    parser.add_argument("output", type=Path, help="Output image path (.ppm or .png)")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Render seed; overrides the preset seed (default: random)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Number of CPU worker threads (default: all cores)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log scene and render details",
    )
    return parser.parse_args(argv)


def render_preset(
    preset_path: Path,
    output_path: Path,
    seed: int | None = None,
    quiet: bool = False,
) -> None:
    """Load a preset, render it and write the image.

    Taichi must already be initialized.

    Raises:
        OSError: If the preset cannot be read or the output cannot be written.
        ValueError: If the preset or the output format is invalid.
    """
    # Modules that declare Taichi fields can only be imported after init
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.integrator import DEFAULT_SKY_COLOR, set_sky_color
    from pathtracer.core.renderer import Renderer, RenderSettings
    from pathtracer.output.export import save_png, write_ppm
    from pathtracer.scene.preset import build_scene, load_preset

    suffix = output_path.suffix.lower()
    if suffix not in OUTPUT_FORMATS:
        raise ValueError(
            f"Unsupported output format '{output_path.suffix}' "
            f"(expected one of {', '.join(OUTPUT_FORMATS)})"
        )

    preset = load_preset(preset_path)
    if seed is not None:
        preset.seed = seed

    build_scene(preset)
    setup_camera(preset.camera.to_camera())
    set_sky_color(preset.sky_color or DEFAULT_SKY_COLOR)

    renderer = Renderer(
        RenderSettings(
            width=preset.image_width,
            height=preset.image_height,
            samples_per_pixel=preset.samples_per_pixel,
            max_depth=preset.max_depth,
            seed=preset.seed,
        )
    )

    def progress_callback(rows_remaining: int, total_rows: int) -> None:
        print(f"Scanlines remaining: {rows_remaining}", file=sys.stderr, flush=True)

    callback = None if quiet else progress_callback

    if suffix == ".ppm":
        with open(output_path, "w", encoding="ascii") as f:
            rows = (row for _, row in renderer.render_rows(callback))
            write_ppm(f, renderer.width, renderer.height, rows)
    else:
        save_png(output_path, renderer.render(callback))

    if not quiet:
        print("Done.", file=sys.stderr)
    logger.info("Saved %s (seed %d)", output_path, renderer.seed)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.seed is not None and args.seed < 0:
            raise ValueError(f"--seed must be non-negative, got {args.seed}")
        init_taichi(threads=args.threads)
        render_preset(args.preset, args.output, seed=args.seed, quiet=args.quiet)
        return 0
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
