"""Ordered point prompts collected for the currently loaded image."""
from __future__ import annotations

from typing import List, Optional, Tuple, Union

from .errors import InvalidPointError
from .session_types import Point, PointType
from .tensor_codec import is_finite_number


class PromptAccumulator:
    """Stores user clicks for SAM2 in the order they were made.

    A new accumulator is created for every loaded image; coordinates are
    checked against that image's bounds and never rescaled in place.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Prompt bounds must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._points: List[Point] = []

    def reset(self) -> None:
        self._points = []

    def add_point(self, x: float, y: float, point_type: Union[PointType, int, str] = PointType.POSITIVE) -> Point:
        if not (is_finite_number(x) and is_finite_number(y)):
            raise InvalidPointError(f"Point coordinates must be finite numbers, got ({x!r}, {y!r})")
        x, y = float(x), float(y)
        if not (0.0 <= x < self.width and 0.0 <= y < self.height):
            raise InvalidPointError(
                f"Point ({x:g}, {y:g}) lies outside the {self.width}x{self.height} image"
            )
        try:
            kind = PointType.coerce(point_type)
        except (TypeError, ValueError) as exc:
            raise InvalidPointError(str(exc)) from exc

        point = Point(x=x, y=y, type=kind)
        self._points.append(point)
        return point

    def pop_last(self) -> Optional[Point]:
        if not self._points:
            return None
        return self._points.pop()

    def current_prompts(self) -> Tuple[Point, ...]:
        return tuple(self._points)

    def labels(self) -> Tuple[int, ...]:
        return tuple(point.label for point in self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"PromptAccumulator({self.width}x{self.height}, points={len(self._points)})"
