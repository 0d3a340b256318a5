"""Configuration dataclasses for the interactive segmentation session."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence, Tuple

from .sam2_segmenter import Sam2Config

_BACKENDS = {"onnxruntime", "torchscript"}
_COORD_SPACES = {"encoder", "normalized", "pixel"}


@dataclass
class EngineConfig:
    """Where the encoder/decoder graphs live and how to execute them."""

    backend: str = "onnxruntime"
    models: Dict[str, str] = field(default_factory=dict)
    providers: Sequence[str] = ("CPUExecutionProvider",)
    device: str = "cpu"
    dtype: str = "float32"
    # TorchScript modules take positional tensors and may return tuples.
    input_order: Dict[str, Sequence[str]] = field(default_factory=dict)
    output_names: Dict[str, Sequence[str]] = field(default_factory=dict)


@dataclass
class OverlayConfig:
    """Colour and threshold used when turning mask scores into an overlay."""

    threshold: float = 0.0
    color: Tuple[int, int, int] = (255, 0, 0)
    alpha: int = 128


@dataclass
class MarkerConfig:
    """Appearance of the prompt point markers."""

    radius: int = 5
    positive_color: Tuple[int, int, int] = (0, 128, 0)
    negative_color: Tuple[int, int, int] = (255, 0, 0)
    outline_color: Tuple[int, int, int] = (255, 255, 255)
    outline_width: int = 2


@dataclass
class SessionConfig:
    """Top-level configuration describing one interactive session."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    sam2: Sam2Config = field(default_factory=Sam2Config)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    markers: MarkerConfig = field(default_factory=MarkerConfig)
    log_level: str = "INFO"


def _coerce_mapping(data: Mapping[str, Any], key: str) -> MutableMapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"Configuration section '{key}' must be a mapping")
    return dict(value)


def _parse_color(value: Any, key: str) -> Tuple[int, int, int]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 3:
        raise ValueError(f"'{key}' must be an RGB triple, got {value!r}")
    channels = tuple(int(c) for c in value)
    if any(c < 0 or c > 255 for c in channels):
        raise ValueError(f"'{key}' channels must lie in [0, 255], got {value!r}")
    return channels  # type: ignore[return-value]


def _parse_dtype(name: str) -> str:
    name = name.lower()
    if name not in {"float32", "float16", "bfloat16"}:
        raise ValueError(f"Unsupported dtype '{name}' in engine config")
    return name


def make_session_config(config_dict: Mapping[str, Any]) -> SessionConfig:
    """Construct :class:`SessionConfig` from a raw mapping."""

    engine_dict = _coerce_mapping(config_dict, "engine")
    sam2_dict = _coerce_mapping(config_dict, "sam2")
    overlay_dict = _coerce_mapping(config_dict, "overlay")
    marker_dict = _coerce_mapping(config_dict, "markers")

    if "backend" in engine_dict:
        backend = str(engine_dict["backend"]).lower()
        if backend not in _BACKENDS:
            raise ValueError(f"Unknown engine backend '{backend}', expected one of {sorted(_BACKENDS)}")
        engine_dict["backend"] = backend
    if "dtype" in engine_dict:
        engine_dict["dtype"] = _parse_dtype(str(engine_dict["dtype"]))
    if "providers" in engine_dict:
        engine_dict["providers"] = tuple(str(p) for p in engine_dict["providers"])
    if "models" in engine_dict:
        engine_dict["models"] = {str(k): str(v) for k, v in engine_dict["models"].items()}

    if "point_coord_space" in sam2_dict:
        space = str(sam2_dict["point_coord_space"]).lower()
        if space not in _COORD_SPACES:
            raise ValueError(f"Unknown point_coord_space '{space}', expected one of {sorted(_COORD_SPACES)}")
        sam2_dict["point_coord_space"] = space
    if int(sam2_dict.get("input_size", 1024)) <= 0:
        raise ValueError("sam2.input_size must be positive")

    if "color" in overlay_dict:
        overlay_dict["color"] = _parse_color(overlay_dict["color"], "overlay.color")
    if not 0 <= int(overlay_dict.get("alpha", 128)) <= 255:
        raise ValueError("overlay.alpha must lie in [0, 255]")

    for key in ("positive_color", "negative_color", "outline_color"):
        if key in marker_dict:
            marker_dict[key] = _parse_color(marker_dict[key], f"markers.{key}")

    return SessionConfig(
        engine=EngineConfig(**engine_dict),
        sam2=Sam2Config(**sam2_dict),
        overlay=OverlayConfig(**overlay_dict),
        markers=MarkerConfig(**marker_dict),
        log_level=str(config_dict.get("log_level", "INFO")),
    )


def load_session_config(path: str, overrides: Optional[Mapping[str, Any]] = None) -> SessionConfig:
    """Load a session configuration from a YAML file."""

    from .utils import load_yaml

    raw = load_yaml(path)
    if overrides:
        raw = {**raw, **overrides}
    config = make_session_config(raw)

    # Model paths in the YAML are relative to the file itself.
    base_dir = Path(path).resolve().parent
    config.engine.models = {
        model_id: str(model_path if Path(model_path).is_absolute() else base_dir / model_path)
        for model_id, model_path in config.engine.models.items()
    }
    return config
