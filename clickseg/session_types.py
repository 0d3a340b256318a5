"""Core dataclasses shared across the interactive segmentation session."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np

from .errors import InvalidImageError

_SUPPORTED_CHANNELS = (1, 3, 4)


@dataclass(frozen=True, eq=False)
class ImageFrame:
    """Decoded pixel grid owned by one loaded-image session.

    ``pixels`` is a row-major ``(H, W, C)`` uint8 array with ``C`` in
    ``{1, 3, 4}``; a 2-D array is treated as grayscale. The frame keeps its
    own read-only copy so later edits to the caller's array are not observed.
    """

    pixels: np.ndarray
    source: Optional[str] = None

    def __post_init__(self) -> None:
        array = np.asarray(self.pixels)
        if array.ndim == 2:
            array = array[:, :, None]
        if array.ndim != 3:
            raise InvalidImageError(f"Image must be (H, W) or (H, W, C), got shape {array.shape}")
        height, width, channels = array.shape
        if height == 0 or width == 0:
            raise InvalidImageError(f"Image has zero size ({width}x{height})")
        if channels not in _SUPPORTED_CHANNELS:
            raise InvalidImageError(f"Unsupported channel count {channels}")
        if array.dtype != np.uint8:
            if not np.issubdtype(array.dtype, np.integer):
                raise InvalidImageError(f"Image pixels must be 8-bit integers, got {array.dtype}")
            array = np.clip(array, 0, 255).astype(np.uint8)
        frozen = np.array(array, dtype=np.uint8, copy=True)
        frozen.flags.writeable = False
        object.__setattr__(self, "pixels", frozen)

    @classmethod
    def from_buffer(
        cls,
        buffer: Union[bytes, bytearray, memoryview],
        width: int,
        height: int,
        channels: int = 4,
        source: Optional[str] = None,
    ) -> "ImageFrame":
        """Wrap a row-major RGBA/RGB byte buffer."""

        if width <= 0 or height <= 0:
            raise InvalidImageError(f"Image has zero size ({width}x{height})")
        expected = width * height * channels
        data = np.frombuffer(buffer, dtype=np.uint8)
        if data.size != expected:
            raise InvalidImageError(
                f"Buffer holds {data.size} bytes, expected {expected} for {width}x{height}x{channels}"
            )
        return cls(pixels=data.reshape(height, width, channels), source=source)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    def rgb(self) -> np.ndarray:
        """Return an ``(H, W, 3)`` view/copy with alpha dropped and gray expanded."""

        if self.channels == 1:
            return np.repeat(self.pixels, 3, axis=2)
        return self.pixels[:, :, :3]


class PointType(enum.IntEnum):
    """Prompt polarity; the integer value is the decoder label."""

    NEGATIVE = 0
    POSITIVE = 1

    @classmethod
    def coerce(cls, value: Union["PointType", int, str, bool]) -> "PointType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown point type '{value}'") from exc
        return cls(int(value))


@dataclass(frozen=True)
class Point:
    """A click in source-image pixel coordinates."""

    x: float
    y: float
    type: PointType = PointType.POSITIVE

    @property
    def label(self) -> int:
        return int(self.type)


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    IMAGE_LOADED = "image_loaded"
    ENCODING = "encoding"
    READY = "ready"
    DECODING = "decoding"
    ERROR = "error"


RGBColor = Tuple[int, int, int]


@dataclass(frozen=True, eq=False)
class DrawImage:
    """Draw the base image at the origin."""

    pixels: np.ndarray


@dataclass(frozen=True, eq=False)
class BlendOverlay:
    """Alpha-blend an RGBA overlay of the base image's size on top."""

    pixels: np.ndarray


@dataclass(frozen=True)
class DrawMarker:
    """Filled circle with an outline, centred on a prompt point."""

    x: float
    y: float
    radius: int
    fill: RGBColor
    outline: RGBColor
    outline_width: int
    point_type: PointType


DrawOp = Union[DrawImage, BlendOverlay, DrawMarker]


@dataclass(frozen=True)
class DrawPlan:
    """Ordered drawing instructions produced by the overlay renderer."""

    width: int
    height: int
    ops: Tuple[DrawOp, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.ops)

    def __len__(self) -> int:
        return len(self.ops)

    @property
    def markers(self) -> Tuple[DrawMarker, ...]:
        return tuple(op for op in self.ops if isinstance(op, DrawMarker))
