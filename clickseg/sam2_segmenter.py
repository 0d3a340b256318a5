"""SAM2 encoder/decoder stage calls routed through an inference engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Mapping

import numpy as np

from .errors import InvalidTensorError
from .utils import LOGGER

if TYPE_CHECKING:  # pragma: no cover
    from .inference_engine import InferenceEngine

Embedding = Mapping[str, np.ndarray]


@dataclass
class Sam2Config:
    encoder_model_id: str = "encoder"
    decoder_model_id: str = "decoder"
    input_size: int = 1024

    image_input_name: str = "image"
    point_coords_name: str = "point_coords"
    point_labels_name: str = "point_labels"
    mask_output_name: str = "masks"

    # SAM2 decoders accept a previous low-res mask; an all-zero one disables it.
    include_mask_input: bool = True
    mask_input_name: str = "mask_input"
    has_mask_input_name: str = "has_mask_input"
    mask_input_size: int = 256

    point_coord_space: str = "encoder"
    mask_index: int = 0


class SAM2Segmenter:
    """Builds the feeds for the exported SAM2 graphs and unpacks their outputs.

    The embedding is treated as opaque: every encoder output is kept and
    forwarded to the decoder, so exports that also emit high-resolution
    feature maps work without extra wiring.
    """

    def __init__(self, engine: "InferenceEngine", config: Sam2Config) -> None:
        self.engine = engine
        self.config = config

    def encode(self, input_tensor: np.ndarray) -> Dict[str, np.ndarray]:
        feeds = {self.config.image_input_name: input_tensor}
        outputs = self.engine.run(self.config.encoder_model_id, feeds)
        if not outputs:
            raise InvalidTensorError("Encoder returned no outputs")
        embedding = {str(name): np.asarray(value) for name, value in outputs.items()}
        LOGGER.debug(
            "Encoder outputs: %s",
            ", ".join(f"{name}{tuple(value.shape)}" for name, value in embedding.items()),
        )
        return embedding

    def _prompt_feeds(self, point_coords: np.ndarray, point_labels: np.ndarray) -> Dict[str, np.ndarray]:
        feeds = {
            self.config.point_coords_name: point_coords.astype(np.float32, copy=False),
            self.config.point_labels_name: point_labels.astype(np.float32, copy=False),
        }
        if self.config.include_mask_input:
            size = self.config.mask_input_size
            feeds[self.config.mask_input_name] = np.zeros((1, 1, size, size), dtype=np.float32)
            feeds[self.config.has_mask_input_name] = np.zeros((1,), dtype=np.float32)
        return feeds

    def decode(self, embedding: Embedding, point_coords: np.ndarray, point_labels: np.ndarray) -> np.ndarray:
        feeds: Dict[str, np.ndarray] = dict(embedding)
        feeds.update(self._prompt_feeds(point_coords, point_labels))
        outputs = self.engine.run(self.config.decoder_model_id, feeds)
        name = self.config.mask_output_name
        if name not in outputs:
            raise InvalidTensorError(
                f"Decoder output '{name}' missing; got {sorted(outputs)}"
            )
        return np.asarray(outputs[name])
