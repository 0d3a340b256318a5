"""Interactive segmentation session: one image, one cached embedding, many clicks.

State transitions::

    IDLE -> IMAGE_LOADED -> ENCODING -> READY <-> DECODING
                                  \\-> ERROR (encode failed; load a new image)

Engine calls run outside the session lock. Each call is tagged with the
generation of the image it was issued for, and a result whose generation is
no longer current is dropped instead of being applied.

``load_image`` and ``add_prompt_and_predict`` block the calling thread until
the engine returns. UI code should call them from a worker thread and poll
:attr:`SegmentationSession.busy`; a newer ``load_image`` from any thread
supersedes the in-flight call.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .config import SessionConfig
from .errors import (
    DecodeFailedError,
    EncodeFailedError,
    InvalidTensorError,
    NotReadyError,
    SessionBusyError,
    SupersededError,
)
from .inference_engine import InferenceEngine, describe_engine
from .overlay_renderer import OverlayRenderer
from .prompt_accumulator import PromptAccumulator
from .sam2_segmenter import SAM2Segmenter
from .session_types import DrawPlan, ImageFrame, Point, PointType, SessionStatus
from .tensor_codec import TensorCodec
from .utils import LOGGER


class SegmentationSession:
    """Owns the loaded image, its embedding, the prompts, and the last overlay."""

    def __init__(self, engine: InferenceEngine, config: Optional[SessionConfig] = None) -> None:
        self.config = config or SessionConfig()
        sam2_cfg = self.config.sam2
        overlay_cfg = self.config.overlay
        self.codec = TensorCodec(
            input_size=sam2_cfg.input_size,
            coord_space=sam2_cfg.point_coord_space,
            threshold=overlay_cfg.threshold,
            color=tuple(overlay_cfg.color),
            alpha=overlay_cfg.alpha,
            mask_index=sam2_cfg.mask_index,
        )
        self.segmenter = SAM2Segmenter(engine, sam2_cfg)
        self.renderer = OverlayRenderer(self.config.markers)

        self._lock = threading.RLock()
        self._status = SessionStatus.IDLE
        self._generation = 0
        self._image: Optional[ImageFrame] = None
        self._embedding: Optional[Dict[str, np.ndarray]] = None
        self._prompts: Optional[PromptAccumulator] = None
        self._overlay: Optional[np.ndarray] = None
        self._last_error: Optional[BaseException] = None
        self.negative_mode = False

        LOGGER.debug("Segmentation session created with %s", describe_engine(engine))

    # ------------------------------------------------------------------
    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def busy(self) -> bool:
        return self._status in (SessionStatus.IMAGE_LOADED, SessionStatus.ENCODING, SessionStatus.DECODING)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def image(self) -> Optional[ImageFrame]:
        return self._image

    @property
    def has_embedding(self) -> bool:
        return self._embedding is not None

    @property
    def overlay(self) -> Optional[np.ndarray]:
        return self._overlay

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    def current_prompts(self) -> Tuple[Point, ...]:
        with self._lock:
            if self._prompts is None:
                return ()
            return self._prompts.current_prompts()

    # ------------------------------------------------------------------
    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            LOGGER.warning(
                "Discarding result for image #%d; image #%d is now loaded", generation, self._generation
            )
            raise SupersededError(generation, self._generation)

    def load_image(self, image: Union[ImageFrame, np.ndarray]) -> None:
        """Replace the current image and encode it.

        Blocks until the encoder returns. Raises :class:`SupersededError` if a
        later ``load_image`` replaced this image while it was being encoded.
        """

        frame = image if isinstance(image, ImageFrame) else ImageFrame(np.asarray(image))
        input_tensor = self.codec.to_input_tensor(frame)

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._image = frame
            self._embedding = None
            self._overlay = None
            self._last_error = None
            self._prompts = PromptAccumulator(frame.width, frame.height)
            self._status = SessionStatus.IMAGE_LOADED
            LOGGER.info(
                "Loaded image #%d (%dx%d%s)",
                generation,
                frame.width,
                frame.height,
                f", {frame.source}" if frame.source else "",
            )
            self._status = SessionStatus.ENCODING

        try:
            embedding = self.segmenter.encode(input_tensor)
        except Exception as exc:
            with self._lock:
                self._check_current(generation)
                self._status = SessionStatus.ERROR
                self._last_error = exc
            LOGGER.error("Encoding image #%d failed: %s", generation, exc)
            raise EncodeFailedError(f"Encoding image #{generation} failed: {exc}") from exc

        with self._lock:
            self._check_current(generation)
            self._embedding = embedding
            self._status = SessionStatus.READY
        LOGGER.info("Image #%d encoded", generation)

    def add_prompt_and_predict(
        self, x: float, y: float, point_type: Union[PointType, int, str] = PointType.POSITIVE
    ) -> np.ndarray:
        """Record a click and return the decoder's ``[1, 1, H, W]`` mask scores.

        The overlay for the returned mask is available from :attr:`overlay`.
        """

        with self._lock:
            if self._status == SessionStatus.DECODING:
                raise SessionBusyError("A prediction is already running for this image")
            if self._embedding is None or self._prompts is None or self._image is None:
                raise NotReadyError(f"No encoded image available (status: {self._status.value})")
            point = self._prompts.add_point(x, y, point_type)
            generation = self._generation
            embedding = self._embedding
            frame = self._image
            prompts = self._prompts.current_prompts()
            self._status = SessionStatus.DECODING

        LOGGER.debug(
            "Predicting image #%d with %d point(s), latest %s at (%g, %g)",
            generation,
            len(prompts),
            point.type.name.lower(),
            point.x,
            point.y,
        )
        try:
            coords, labels = self.codec.points_to_decoder_inputs(prompts, frame.width, frame.height)
            raw = self.segmenter.decode(embedding, coords, labels)
            mask = self.codec.select_mask(raw)
            overlay = self.codec.mask_to_overlay(raw, frame.width, frame.height)
        except InvalidTensorError as exc:
            self._finish_failed_decode(generation, exc)
            raise
        except Exception as exc:
            self._finish_failed_decode(generation, exc)
            raise DecodeFailedError(f"Decoding image #{generation} failed: {exc}") from exc

        with self._lock:
            self._check_current(generation)
            self._overlay = overlay
            self._status = SessionStatus.READY
        return mask

    def _finish_failed_decode(self, generation: int, exc: BaseException) -> None:
        with self._lock:
            self._check_current(generation)
            self._status = SessionStatus.READY
            self._last_error = exc
        LOGGER.error("Decoding image #%d failed: %s", generation, exc)

    def click(self, x: float, y: float) -> np.ndarray:
        """Predict with the polarity selected by :attr:`negative_mode`."""

        point_type = PointType.NEGATIVE if self.negative_mode else PointType.POSITIVE
        return self.add_prompt_and_predict(x, y, point_type)

    def toggle_negative_mode(self) -> bool:
        self.negative_mode = not self.negative_mode
        return self.negative_mode

    def pop_last_point(self) -> Optional[Point]:
        """Drop the most recent prompt, e.g. after a failed decode."""

        with self._lock:
            if self._status == SessionStatus.DECODING:
                raise SessionBusyError("Cannot edit prompts while a prediction is running")
            if self._prompts is None:
                return None
            return self._prompts.pop_last()

    def reset(self) -> None:
        """Clear prompts and overlay; the embedding stays valid."""

        with self._lock:
            if self._status == SessionStatus.DECODING:
                raise SessionBusyError("Cannot reset while a prediction is running")
            if self._status not in (SessionStatus.READY, SessionStatus.ERROR) or self._prompts is None:
                raise NotReadyError(f"Nothing to reset (status: {self._status.value})")
            self._prompts.reset()
            self._overlay = None
            if self._embedding is not None:
                self._status = SessionStatus.READY
        LOGGER.debug("Prompts cleared for image #%d", self._generation)

    def render(self) -> DrawPlan:
        with self._lock:
            if self._image is None:
                raise NotReadyError("No image loaded")
            return self.renderer.render(self._image, self._overlay, self.current_prompts())
