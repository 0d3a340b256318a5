"""Public API for interactive point-prompt segmentation with SAM2 exports."""
from .config import (
    EngineConfig,
    MarkerConfig,
    OverlayConfig,
    SessionConfig,
    load_session_config,
    make_session_config,
)
from .data_loader import decode_image, image_from_pil, load_image
from .errors import (
    ClickSegError,
    DecodeFailedError,
    EncodeFailedError,
    EngineConfigurationError,
    InvalidImageError,
    InvalidPointError,
    InvalidTensorError,
    NotReadyError,
    SessionBusyError,
    SupersededError,
)
from .inference_engine import InferenceEngine, OnnxRuntimeEngine, TorchScriptEngine, build_inference_engine
from .overlay_renderer import OverlayRenderer
from .prompt_accumulator import PromptAccumulator
from .sam2_segmenter import SAM2Segmenter, Sam2Config
from .session import SegmentationSession
from .session_types import (
    BlendOverlay,
    DrawImage,
    DrawMarker,
    DrawPlan,
    ImageFrame,
    Point,
    PointType,
    SessionStatus,
)
from .tensor_codec import TensorCodec, mask_to_overlay, points_to_decoder_inputs, to_input_tensor

__all__ = [
    "EngineConfig",
    "MarkerConfig",
    "OverlayConfig",
    "SessionConfig",
    "load_session_config",
    "make_session_config",
    "decode_image",
    "image_from_pil",
    "load_image",
    "ClickSegError",
    "DecodeFailedError",
    "EncodeFailedError",
    "EngineConfigurationError",
    "InvalidImageError",
    "InvalidPointError",
    "InvalidTensorError",
    "NotReadyError",
    "SessionBusyError",
    "SupersededError",
    "InferenceEngine",
    "OnnxRuntimeEngine",
    "TorchScriptEngine",
    "build_inference_engine",
    "OverlayRenderer",
    "PromptAccumulator",
    "SAM2Segmenter",
    "Sam2Config",
    "SegmentationSession",
    "BlendOverlay",
    "DrawImage",
    "DrawMarker",
    "DrawPlan",
    "ImageFrame",
    "Point",
    "PointType",
    "SessionStatus",
    "TensorCodec",
    "mask_to_overlay",
    "points_to_decoder_inputs",
    "to_input_tensor",
]
