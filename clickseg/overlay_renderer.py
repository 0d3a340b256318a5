"""Draw plans for the image, the mask overlay, and the prompt markers."""
from __future__ import annotations

from typing import Optional, Sequence

import cv2
import numpy as np

from .config import MarkerConfig
from .errors import InvalidTensorError
from .session_types import BlendOverlay, DrawImage, DrawMarker, DrawPlan, ImageFrame, Point, PointType


class OverlayRenderer:
    """Turns session outputs into drawing instructions.

    :meth:`render` is a pure function of its arguments; :meth:`rasterize`
    executes a plan into a fresh RGB array for headless use.
    """

    def __init__(self, markers: Optional[MarkerConfig] = None) -> None:
        self.markers = markers or MarkerConfig()

    def _marker(self, point: Point) -> DrawMarker:
        fill = self.markers.positive_color if point.type == PointType.POSITIVE else self.markers.negative_color
        return DrawMarker(
            x=point.x,
            y=point.y,
            radius=self.markers.radius,
            fill=tuple(fill),
            outline=tuple(self.markers.outline_color),
            outline_width=self.markers.outline_width,
            point_type=point.type,
        )

    def render(self, base_image: ImageFrame, overlay: Optional[np.ndarray], points: Sequence[Point]) -> DrawPlan:
        ops = [DrawImage(pixels=base_image.pixels)]
        if overlay is not None:
            if overlay.shape != (base_image.height, base_image.width, 4):
                raise InvalidTensorError(
                    f"Overlay shape {overlay.shape} does not match the "
                    f"{base_image.width}x{base_image.height} RGBA image"
                )
            ops.append(BlendOverlay(pixels=overlay))
        ops.extend(self._marker(point) for point in points)
        return DrawPlan(width=base_image.width, height=base_image.height, ops=tuple(ops))

    @staticmethod
    def rasterize(plan: DrawPlan) -> np.ndarray:
        canvas = np.zeros((plan.height, plan.width, 3), dtype=np.uint8)
        for op in plan:
            if isinstance(op, DrawImage):
                canvas = ImageFrame(op.pixels).rgb().copy()
            elif isinstance(op, BlendOverlay):
                alpha = op.pixels[:, :, 3:4].astype(np.float32) / 255.0
                color = op.pixels[:, :, :3].astype(np.float32)
                blended = canvas.astype(np.float32) * (1.0 - alpha) + color * alpha
                canvas = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
            elif isinstance(op, DrawMarker):
                center = (int(round(op.x)), int(round(op.y)))
                cv2.circle(canvas, center, op.radius, op.fill, thickness=-1, lineType=cv2.LINE_AA)
                cv2.circle(canvas, center, op.radius, op.outline, thickness=op.outline_width, lineType=cv2.LINE_AA)
        return canvas
