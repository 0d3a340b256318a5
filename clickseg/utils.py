"""Miscellaneous utility helpers for configuration, logging, and output files."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import numpy as np
import torch
import yaml


LOGGER = logging.getLogger("clickseg")


def setup_logging(level: int | str = logging.INFO) -> None:
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_yaml(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """Read a YAML mapping; an empty file yields ``{}``."""

    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"Expected a mapping at the root of {path}, got {type(data).__name__}")
    return data


def ensure_directory(path: str | os.PathLike[str]) -> Path:
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


TORCH_DTYPES = {
    "float16": torch.float16,
    "float32": torch.float32,
    "bfloat16": torch.bfloat16,
}


def to_torch_dtype(dtype: str | torch.dtype) -> torch.dtype:
    """Map an engine config dtype name to the tensor dtype fed to TorchScript modules."""

    if isinstance(dtype, torch.dtype):
        return dtype
    key = str(dtype).lower()
    if key not in TORCH_DTYPES:
        raise ValueError(f"Unsupported dtype '{dtype}'; expected one of {sorted(TORCH_DTYPES)}")
    return TORCH_DTYPES[key]


def save_mask(path: str | os.PathLike[str], mask: np.ndarray) -> None:
    """Write a binary mask as a 0/255 grayscale image, or raw 0/1 values for ``.npy``."""

    binary = np.asarray(mask).astype(bool)
    if binary.ndim != 2:
        raise ValueError(f"Mask must be 2-D, got shape {binary.shape}")
    path = Path(path)
    if path.suffix.lower() == ".npy":
        np.save(str(path), binary.astype(np.uint8))
        return

    import cv2

    if not cv2.imwrite(str(path), np.where(binary, 255, 0).astype(np.uint8)):
        raise OSError(f"Failed to write mask to {path}")


def save_rgb(path: str | os.PathLike[str], image: np.ndarray) -> None:
    import cv2

    if image.ndim == 3 and image.shape[2] == 4:
        converted = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    else:
        converted = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    if not cv2.imwrite(str(path), converted):
        raise OSError(f"Failed to write image to {path}")


def _json_default(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def save_json(path: str | os.PathLike[str], payload: Dict[str, Any]) -> None:
    """Dump ``payload`` as indented JSON; numpy scalars and arrays become plain values."""

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, default=_json_default)
