#!/usr/bin/env python3
"""Render one of the built-in scenes.

Usage:
    python examples/render_scene.py [options]

Options:
    --scene {cornell,balls}  Scene to render (default: cornell)
    --width WIDTH            Image width in pixels (default: 400)
    --height HEIGHT          Image height in pixels (default: 400)
    --samples SAMPLES        Samples per pixel (default: 100)
    --depth DEPTH            Bounce budget (default: 50)
    --seed SEED              Random seed (default: 0)
    --output OUTPUT          Output file, .ppm or .png (default: render.ppm)
    --batch-size SIZE        Samples per progress update (default: 10)
    --log-level LEVEL        Logging level (default: INFO)
    --cpu                    Force the CPU backend

Example:
    python examples/render_scene.py --scene balls --width 320 --height 180 --samples 32
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a built-in scene with the path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", choices=("cornell", "balls"), default="cornell")
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels (default: 400)")
    parser.add_argument("--height", type=int, default=400, help="Image height in pixels (default: 400)")
    parser.add_argument("--samples", type=int, default=100, help="Samples per pixel (default: 100)")
    parser.add_argument("--depth", type=int, default=50, help="Bounce budget (default: 50)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--output",
        type=str,
        default="render.ppm",
        help="Output file path, .ppm or .png (default: render.ppm)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
    )
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    return parser.parse_args(argv)


def render_scene(
    scene_name: str = "cornell",
    width: int = 400,
    height: int = 400,
    num_samples: int = 100,
    max_depth: int = 50,
    seed: int = 0,
    output_path: str = "render.ppm",
    batch_size: int = 10,
) -> Path:
    """Render a built-in scene and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so Taichi is initialized first
    from raytrace.camera import setup_camera
    from raytrace.config import RenderSettings
    from raytrace.core.progressive import ProgressiveRenderer
    from raytrace.core.utils import get_logger
    from raytrace.preview.export import save_image
    from raytrace.scene.scenes import create_ball_scene, create_cornell_box_scene

    logger = get_logger()
    aspect_ratio = width / height

    logger.info("Building %s scene (%dx%d)", scene_name, width, height)
    if scene_name == "balls":
        scene, camera = create_ball_scene(seed=seed, aspect_ratio=aspect_ratio)
    else:
        scene, camera = create_cornell_box_scene(aspect_ratio=aspect_ratio)
    setup_camera(camera)

    settings = RenderSettings(max_depth=max_depth, seed=seed)
    renderer = ProgressiveRenderer(width, height, settings)

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.time() - start_time
        rate = current / elapsed if elapsed > 0 else 0.0
        logger.info("Progress: %d/%d samples (%.1f spp/s)", current, target, rate)

    renderer.render(num_samples=num_samples, batch_size=batch_size, callback=progress_callback)

    output_file = Path(output_path)
    save_image(renderer, output_file)
    logger.info("Saved %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    from raytrace.core.utils import get_logger

    get_logger().setLevel(args.log_level)

    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        # Use GPU if available, fall back to CPU
        try:
            ti.init(arch=ti.gpu)
        except Exception:
            ti.init(arch=ti.cpu)

    try:
        render_scene(
            scene_name=args.scene,
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            max_depth=args.depth,
            seed=args.seed,
            output_path=args.output,
            batch_size=args.batch_size,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
