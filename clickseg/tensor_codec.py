"""Conversions between images, prompts, and the tensors the SAM2 graphs exchange.

The encoder consumes a square ``[1, 3, S, S]`` float32 tensor with every byte
mapped to ``[-1, 1]`` and the channels laid out planar (R plane, G plane,
B plane). The decoder returns per-pixel scores at its own low resolution,
which are thresholded into an RGBA overlay and scaled back to the source
image so the overlay lines up with what the user clicked on.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Sequence, Tuple

import cv2
import numpy as np

from .errors import InvalidImageError, InvalidTensorError
from .session_types import ImageFrame, Point

DEFAULT_INPUT_SIZE = 1024


def to_input_tensor(image: ImageFrame, input_size: int = DEFAULT_INPUT_SIZE) -> np.ndarray:
    """Resample ``image`` to ``input_size`` x ``input_size`` and normalise it.

    Aspect ratio is not preserved; every source image is stretched to the
    square encoder input.
    """

    if not isinstance(image, ImageFrame):
        image = ImageFrame(np.asarray(image))
    if input_size <= 0:
        raise ValueError("input_size must be positive")

    rgb = np.ascontiguousarray(image.rgb())
    resized = cv2.resize(rgb, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    normalized = (resized.astype(np.float64) / 255.0) * 2.0 - 1.0
    planar = np.transpose(normalized, (2, 0, 1))
    return np.ascontiguousarray(planar[None, ...], dtype=np.float32)


def validate_mask_tensor(mask_tensor: np.ndarray, mask_index: int = 0) -> np.ndarray:
    """Return the ``(H, W)`` score plane selected from a ``[1, C, H, W]`` tensor."""

    scores = np.asarray(mask_tensor)
    if scores.ndim != 4:
        raise InvalidTensorError(f"Mask tensor must be 4-D [1, C, H, W], got shape {scores.shape}")
    if any(dim == 0 for dim in scores.shape):
        raise InvalidTensorError(f"Mask tensor has a zero dimension: {scores.shape}")
    if scores.shape[0] != 1:
        raise InvalidTensorError(f"Mask tensor batch must be 1, got {scores.shape[0]}")
    if not 0 <= mask_index < scores.shape[1]:
        raise InvalidTensorError(
            f"Mask index {mask_index} out of range for {scores.shape[1]} mask channel(s)"
        )
    if not np.issubdtype(scores.dtype, np.number) and scores.dtype != np.bool_:
        raise InvalidTensorError(f"Mask tensor must be numeric, got {scores.dtype}")
    return scores[0, mask_index]


def mask_to_overlay(
    mask_tensor: np.ndarray,
    target_width: int,
    target_height: int,
    *,
    threshold: float = 0.0,
    color: Tuple[int, int, int] = (255, 0, 0),
    alpha: int = 128,
    mask_index: int = 0,
) -> np.ndarray:
    """Threshold mask scores into an RGBA overlay of ``target_height x target_width``.

    Scores above ``threshold`` become ``(*color, alpha)``; everything else is
    fully transparent. The low-resolution overlay is scaled with
    nearest-neighbour so cells stay crisp.
    """

    if target_width <= 0 or target_height <= 0:
        raise InvalidTensorError(f"Overlay target size must be positive, got {target_width}x{target_height}")
    plane = validate_mask_tensor(mask_tensor, mask_index=mask_index)

    inside = plane > threshold
    low_res = np.zeros(plane.shape + (4,), dtype=np.uint8)
    low_res[inside] = (color[0], color[1], color[2], alpha)

    if low_res.shape[:2] == (target_height, target_width):
        return low_res
    return cv2.resize(low_res, (int(target_width), int(target_height)), interpolation=cv2.INTER_NEAREST)


def points_to_decoder_inputs(
    points: Sequence[Point],
    image_width: int,
    image_height: int,
    *,
    input_size: int = DEFAULT_INPUT_SIZE,
    coord_space: str = "encoder",
) -> Tuple[np.ndarray, np.ndarray]:
    """Pack prompt points as ``point_coords [1, N, 2]`` and ``point_labels [1, N]``.

    ``coord_space`` selects the decoder's coordinate convention:

    * ``"encoder"``: pixel coordinates of the resampled encoder input, each
      axis scaled independently (``x * S / width``, ``y * S / height``).
    * ``"normalized"``: ``x / width`` and ``y / height`` in ``[0, 1)``.
    * ``"pixel"``: source-image pixels, unchanged.
    """

    if image_width <= 0 or image_height <= 0:
        raise InvalidImageError(f"Image has zero size ({image_width}x{image_height})")

    coords = np.array([[p.x, p.y] for p in points], dtype=np.float32).reshape(-1, 2)
    labels = np.array([p.label for p in points], dtype=np.float32)

    if coord_space == "encoder":
        coords *= np.array([input_size / image_width, input_size / image_height], dtype=np.float32)
    elif coord_space == "normalized":
        coords /= np.array([image_width, image_height], dtype=np.float32)
    elif coord_space != "pixel":
        raise ValueError(f"Unknown coordinate space '{coord_space}'")

    return coords[None, ...], labels[None, ...]


def is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(float(value))


@dataclass
class TensorCodec:
    """Bundles the codec functions with one session's settings."""

    input_size: int = DEFAULT_INPUT_SIZE
    coord_space: str = "encoder"
    threshold: float = 0.0
    color: Tuple[int, int, int] = (255, 0, 0)
    alpha: int = 128
    mask_index: int = 0

    def to_input_tensor(self, image: ImageFrame) -> np.ndarray:
        return to_input_tensor(image, self.input_size)

    def mask_to_overlay(self, mask_tensor: np.ndarray, target_width: int, target_height: int) -> np.ndarray:
        return mask_to_overlay(
            mask_tensor,
            target_width,
            target_height,
            threshold=self.threshold,
            color=self.color,
            alpha=self.alpha,
            mask_index=self.mask_index,
        )

    def points_to_decoder_inputs(
        self, points: Sequence[Point], image_width: int, image_height: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        return points_to_decoder_inputs(
            points,
            image_width,
            image_height,
            input_size=self.input_size,
            coord_space=self.coord_space,
        )

    def select_mask(self, mask_tensor: np.ndarray) -> np.ndarray:
        """Validate ``mask_tensor`` and return it as a ``[1, 1, H, W]`` array."""

        plane = validate_mask_tensor(mask_tensor, mask_index=self.mask_index)
        return np.asarray(plane)[None, None, ...]
