"""Utilities for loading images into :class:`ImageFrame` objects."""
from __future__ import annotations

import os
from typing import Iterable, Iterator

import cv2
import numpy as np
from PIL import Image

from .errors import InvalidImageError
from .session_types import ImageFrame


def load_image(path: str, keep_alpha: bool = True) -> ImageFrame:
    """Load an RGB(A) image from disk.

    Args:
        path: Path to an image readable by OpenCV.
        keep_alpha: Keep a fourth channel when the file has one.

    Returns:
        ``ImageFrame`` holding RGB or RGBA pixels.
    """

    if not os.path.isfile(path):
        raise FileNotFoundError(f"Image file not found: {path}")

    flags = cv2.IMREAD_UNCHANGED if keep_alpha else cv2.IMREAD_COLOR
    raw = cv2.imread(path, flags)
    if raw is None:
        raise InvalidImageError(f"Failed to read image file: {path}")
    return ImageFrame(pixels=_to_rgb_order(raw), source=path)


def decode_image(data: bytes, source: str = "<bytes>") -> ImageFrame:
    """Decode an encoded image (PNG, JPEG, ...) held in memory."""

    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise InvalidImageError("Cannot decode an empty byte string")
    raw = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if raw is None:
        raise InvalidImageError(f"Failed to decode image data from {source}")
    return ImageFrame(pixels=_to_rgb_order(raw), source=source)


def image_from_pil(image: Image.Image) -> ImageFrame:
    """Convert a PIL image, keeping alpha when present."""

    mode = "RGBA" if "A" in image.getbands() else "RGB"
    converted = image.convert(mode)
    return ImageFrame(pixels=np.array(converted), source=getattr(image, "filename", None) or None)


def _to_rgb_order(raw: np.ndarray) -> np.ndarray:
    if raw.dtype != np.uint8:
        # 16-bit PNG/TIFF: keep the high byte.
        raw = (raw.astype(np.uint32) >> 8).astype(np.uint8) if raw.dtype == np.uint16 else raw.astype(np.uint8)
    if raw.ndim == 2:
        return raw
    if raw.shape[2] == 4:
        return cv2.cvtColor(raw, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(raw, cv2.COLOR_BGR2RGB)


def stream_directory_images(
    directory: str,
    valid_suffixes: Iterable[str] = (".png", ".jpg", ".jpeg"),
) -> Iterator[ImageFrame]:
    """Yield ``ImageFrame`` objects from a directory lazily."""

    if not os.path.isdir(directory):
        raise NotADirectoryError(f"Not a directory: {directory}")

    suffixes = tuple(s.lower() for s in valid_suffixes)
    for entry in sorted(os.listdir(directory)):
        if entry.lower().endswith(suffixes):
            yield load_image(os.path.join(directory, entry))
