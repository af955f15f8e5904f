"""Convert a directory of images with the default rasterkit recipe.

Resizes to 25%, rotates 180 degrees and converts to 8-bit grayscale.

Usage:
    python examples/batch_convert.py photos/
    python examples/batch_convert.py photos/ --pattern "*.png" --format tiff
"""

from __future__ import annotations

import argparse
import logging
import sys

from rasterkit import ContainerFormat, PipelineSettings, ResampleMode, convert_directory


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resize, rotate and grayscale every matching image under a directory."
    )
    parser.add_argument("root", help="Directory searched recursively")
    parser.add_argument(
        "--pattern",
        default="*.jpg",
        help="Glob for input files. Default: *.jpg",
    )
    parser.add_argument(
        "--format",
        default="png",
        choices=[c.name.lower() for c in ContainerFormat if c != ContainerFormat.RAW],
        help="Output container. Default: png",
    )
    parser.add_argument(
        "--resample",
        default="bicubic",
        choices=[m.name.lower() for m in ResampleMode],
        help="Interpolation for resize/rotate. Default: bicubic",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = PipelineSettings(resample_mode=ResampleMode[args.resample.upper()])
    result = convert_directory(args.root, pattern=args.pattern, target=args.format, settings=settings)

    print(f"converted={len(result.converted)} failed={len(result.failed)}")
    for path, err in sorted(result.failed.items()):
        print(f"  {path}: {err}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
