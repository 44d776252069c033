#!/usr/bin/env python3
"""
photo_sheet.py

Apply PixelSuite filters to a photo and either export it or lay it out as a
4x6" (300 dpi, 1200x1800) passport photo sheet:
- Bakes brightness/contrast/saturation/sepia/grayscale/blur/sharpness into pixels
- Export mode writes a full-resolution PNG (optionally with the vignette pass)
- Sheet mode places 3, 6 or 9 cover-cropped 3.5:4.5 copies on the sheet

Usage:
  python photo_sheet.py --input in.jpg --output out.png --contrast 120 --sharpness 30
  python photo_sheet.py --input in.jpg --output sheet.jpg --mode sheet --count 6 --height-in 1.8
  python photo_sheet.py -i in.jpg -o sheet.jpg --mode sheet --count 9 --border --gradient
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

HERE = os.path.dirname(os.path.abspath(__file__))
SRC = os.path.join(HERE, "src")
if os.path.isdir(SRC) and SRC not in sys.path:
    sys.path.insert(0, SRC)

from pixelsuite.app.export import write_export
from pixelsuite.app.state import EditSession
from pixelsuite.config import Settings
from pixelsuite.core.errors import PixelSuiteError
from pixelsuite.core.models import FILTER_RANGES, VALID_PHOTO_COUNTS, FilterModel, SheetOptions
from pixelsuite.utils.logging import logger, set_level


def build_session(args: argparse.Namespace) -> EditSession:
    session = EditSession()
    session.load_image(args.input)
    session.filters = FilterModel.from_mapping(
        {name: getattr(args, name) for name in FILTER_RANGES}
    )
    session.passport_mode = args.mode == "sheet"
    session.sheet = SheetOptions(
        photo_height_in=args.height_in,
        photo_count=args.count,
        add_border=args.border,
        use_gradient_background=args.gradient,
    )
    return session


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Filter a photo and export it, or build a 4x6 passport photo sheet.")
    p.add_argument("--input", "-i", required=True, help="Path to input image (jpg/png/webp, etc.)")
    p.add_argument("--output", "-o", required=True, help="Path to output image")
    p.add_argument("--mode", choices=("export", "sheet"), default="export",
                   help="export: filtered full-res PNG; sheet: 1200x1800 passport sheet JPEG")

    g = p.add_argument_group("filters (out-of-range values are clamped)")
    for name, (_low, _high, default) in FILTER_RANGES.items():
        g.add_argument(f"--{name}", type=float, default=default, help=f"default: {default:g}")
    g.add_argument("--vignette-bake", action="store_true",
                   help="Bake the vignette into export-mode output (never applied to sheets)")

    s = p.add_argument_group("sheet")
    s.add_argument("--count", type=int, choices=VALID_PHOTO_COUNTS, default=6, help="Photos per sheet (default: 6)")
    s.add_argument("--height-in", type=float, default=1.8, help="Photo height in inches (default: 1.8)")
    s.add_argument("--border", action="store_true", help="Outline each photo with a black border")
    s.add_argument("--gradient", action="store_true", help="Dark gray to black background instead of white")

    p.add_argument("--log-level", default=None, help="Override PIXELSUITE_LOG_LEVEL (e.g. DEBUG)")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        set_level(args.log_level or settings.log_level)
        logger.debug("Settings: %s", settings.describe())
        session = build_session(args)
        output = Path(args.output)
        write_export(session, output.parent, filename=output.name, include_vignette=args.vignette_bake)
    except (PixelSuiteError, OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print(f"Saved: {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
