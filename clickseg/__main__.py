#!/usr/bin/env python3
"""Command-line interface replaying a click sequence through a segmentation session."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import SessionConfig, load_session_config
from .data_loader import load_image, stream_directory_images
from .errors import ClickSegError
from .inference_engine import build_inference_engine
from .session import SegmentationSession
from .session_types import ImageFrame, PointType
from .utils import LOGGER, ensure_directory, save_json, save_mask, save_rgb, setup_logging

Click = Tuple[float, float, PointType]


def parse_click(text: str) -> Click:
    """Parse ``x,y`` or ``x,y,pos|neg`` into a click tuple."""

    parts = [part.strip() for part in text.split(",")]
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected 'x,y' or 'x,y,pos|neg', got '{text}'")
    try:
        x, y = float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Click coordinates must be numbers: '{text}'") from exc
    kind = PointType.POSITIVE
    if len(parts) == 3:
        polarity = parts[2].lower()
        if polarity in {"neg", "negative", "0"}:
            kind = PointType.NEGATIVE
        elif polarity not in {"pos", "positive", "1"}:
            raise argparse.ArgumentTypeError(f"Unknown click polarity '{parts[2]}'")
    return x, y, kind


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Interactive SAM2 point-prompt segmentation, replayed from the command line"
    )

    subparsers = parser.add_subparsers(dest="mode", required=True, help="Input mode")

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--output", required=True, help="Output directory")
        sub.add_argument("--config", required=True, help="Session config YAML")
        sub.add_argument(
            "--click",
            dest="clicks",
            action="append",
            type=parse_click,
            required=True,
            help="Click as x,y[,pos|neg] in image pixels; repeat in click order",
        )
        sub.add_argument("--verbose", action="store_true", help="Enable debug logging")

    image_parser = subparsers.add_parser("image", help="Segment a single image")
    image_parser.add_argument("--input", required=True, help="Path to input image")
    add_common(image_parser)

    dir_parser = subparsers.add_parser("directory", help="Apply the same clicks to every image in a directory")
    dir_parser.add_argument("--input", required=True, help="Input directory")
    add_common(dir_parser)

    return parser.parse_args(argv)


def process_and_save(
    session: SegmentationSession,
    frame: ImageFrame,
    clicks: Sequence[Click],
    output_dir: Path,
) -> dict:
    """Load ``frame``, replay ``clicks`` and write the composite, overlay and mask."""

    session.load_image(frame)
    failures: List[str] = []
    for x, y, kind in clicks:
        try:
            session.add_prompt_and_predict(x, y, kind)
        except ClickSegError as exc:
            LOGGER.warning("Click (%g, %g) failed: %s", x, y, exc)
            failures.append(f"({x:g}, {y:g}): {exc}")

    ensure_directory(output_dir)
    composite = session.renderer.rasterize(session.render())
    save_rgb(output_dir / "composite.png", composite)

    overlay = session.overlay
    if overlay is not None:
        save_rgb(output_dir / "overlay.png", overlay)
        save_mask(output_dir / "mask.png", overlay[:, :, 3] > 0)

    summary = {
        "image": frame.source,
        "width": frame.width,
        "height": frame.height,
        "status": session.status.value,
        "points": [
            {"x": p.x, "y": p.y, "type": p.type.name.lower()} for p in session.current_prompts()
        ],
        "mask_pixels": int(np.count_nonzero(overlay[:, :, 3])) if overlay is not None else 0,
        "failures": failures,
    }
    save_json(output_dir / "summary.json", summary)
    LOGGER.info("Wrote results for %s to %s", frame.source or "image", output_dir)
    return summary


def build_session(config: SessionConfig) -> SegmentationSession:
    engine = build_inference_engine(config.engine)
    return SegmentationSession(engine, config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_session_config(args.config)
    setup_logging(logging.DEBUG if args.verbose else config.log_level)

    output_root = ensure_directory(args.output)
    try:
        session = build_session(config)
        if args.mode == "image":
            process_and_save(session, load_image(args.input), args.clicks, output_root)
        else:
            for frame in stream_directory_images(args.input):
                stem = Path(frame.source or "image").stem
                process_and_save(session, frame, args.clicks, output_root / stem)
    except (ClickSegError, FileNotFoundError, NotADirectoryError) as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
