"""
CLI entry point for image protection.

Usage:
    pixelveil <image> [options]
    python -m pixelveil <image> [options]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from pixelveil.core.buffer import InvalidInputError
from pixelveil.core.filters import MAX_STRENGTH, MIN_STRENGTH
from pixelveil.io.image_io import FORMATS, load_image, save_image
from pixelveil.pipeline import (
    DEFAULT_STRENGTH,
    ProtectConfig,
    ProtectionMode,
    ProtectionPipeline,
)
from pixelveil.watermark import WatermarkConfig, apply_image_watermark, apply_text_watermark

MODE_CHOICES = [mode.name.lower() for mode in ProtectionMode]


def setup_logging(verbosity: int = 0) -> None:
    level = [logging.WARNING, logging.INFO, logging.DEBUG][min(verbosity, 2)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  pass {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        print(f"{pct:5.1f}%  pass {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixelveil",
        description="Perturb an image so feature extractors misread it while people do not",
    )

    parser.add_argument(
        "image",
        type=Path,
        help="Input image (png, jpg, webp, bmp, tiff)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output path (default: <image>_protected.png)",
    )

    # Protection
    parser.add_argument(
        "-m", "--mode", type=str, default="balanced",
        choices=MODE_CHOICES,
        help="Protection mode (default: balanced)",
    )
    parser.add_argument(
        "-s", "--strength", type=int, default=DEFAULT_STRENGTH,
        help=f"Strength {MIN_STRENGTH}-{MAX_STRENGTH} (default: {DEFAULT_STRENGTH})",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Generator seed (default: random, printed so the run can be repeated)",
    )

    # Watermark
    parser.add_argument("--watermark", type=Path, default=None, help="Watermark image to blend on top")
    parser.add_argument("--text", type=str, default=None, help="Tile this text across the image in rings")
    parser.add_argument(
        "--opacity", type=float, default=0.5,
        help="Watermark opacity 0-1 (default: 0.5)",
    )
    parser.add_argument(
        "--position", type=float, nargs=2, default=(0.0, 0.0), metavar=("X", "Y"),
        help="Watermark top-left corner in image pixels (default: 0 0)",
    )
    parser.add_argument(
        "--scale", type=float, default=1.0,
        help="Watermark resize factor (default: 1.0)",
    )

    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v, -vv)")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.image.exists():
        print(f"Error: Image not found: {args.image}", file=sys.stderr)
        sys.exit(1)
    if args.watermark is not None and not args.watermark.exists():
        print(f"Error: Watermark not found: {args.watermark}", file=sys.stderr)
        sys.exit(1)

    output = args.output
    if output is None:
        output = args.image.with_name(f"{args.image.stem}_protected.png")
    if output.suffix.lower() not in FORMATS:
        print(f"Error: Unsupported output format: {output.suffix or output.name}", file=sys.stderr)
        sys.exit(1)

    try:
        config = ProtectConfig(mode=args.mode, strength=args.strength, seed=args.seed).validate()
        mark_cfg = WatermarkConfig(
            opacity=args.opacity,
            x=args.position[0],
            y=args.position[1],
            scale=args.scale,
        ).validate()
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    seed = config.resolve_seed()

    # Both images are decoded before any pass runs
    try:
        buffer = load_image(args.image)
        mark = load_image(args.watermark) if args.watermark is not None else None
    except OSError as e:
        print(f"Error: Could not read image: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Protecting {args.image} ({buffer.width}x{buffer.height})")
    print(f"  Mode: {config.mode.name.lower()}, Strength: {config.strength}, Seed: {seed}")

    t0 = time.time()
    pipeline = ProtectionPipeline(config.mode, config.strength)
    pipeline.run(buffer, seed, progress_callback=_progress_bar)

    if mark is not None:
        buffer = apply_image_watermark(
            buffer,
            mark,
            opacity=mark_cfg.opacity,
            x=mark_cfg.x,
            y=mark_cfg.y,
            scale=mark_cfg.scale,
        )
    if args.text:
        buffer = apply_text_watermark(buffer, args.text, opacity=mark_cfg.opacity)

    try:
        save_image(buffer, output)
    except (InvalidInputError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nDone in {time.time() - t0:.1f}s")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
