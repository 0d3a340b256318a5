"""Tests for the YAML, dtype and output-file helpers."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest
import torch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from clickseg.config import load_session_config
from clickseg.utils import load_yaml, save_json, save_mask, to_torch_dtype


def test_empty_yaml_loads_as_defaults(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_yaml(path) == {}
    assert load_session_config(str(path)).sam2.input_size == 1024


def test_yaml_root_must_be_a_mapping(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- encoder\n- decoder\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_yaml(path)


def test_torch_dtype_names():
    assert to_torch_dtype("Float16") is torch.float16
    assert to_torch_dtype(torch.bfloat16) is torch.bfloat16
    with pytest.raises(ValueError):
        to_torch_dtype("int8")


def test_save_mask_writes_binary_png_and_npy(tmp_path: Path):
    mask = np.zeros((4, 6), dtype=bool)
    mask[1:3, 2:5] = True

    save_mask(tmp_path / "mask.png", mask)
    save_mask(tmp_path / "mask.npy", mask)

    written = cv2.imread(str(tmp_path / "mask.png"), cv2.IMREAD_GRAYSCALE)
    assert set(np.unique(written)) == {0, 255}
    assert np.array_equal(written == 255, mask)
    assert np.array_equal(np.load(tmp_path / "mask.npy"), mask.astype(np.uint8))
    with pytest.raises(ValueError):
        save_mask(tmp_path / "bad.png", np.zeros((2, 2, 2), dtype=bool))


def test_save_json_accepts_numpy_values(tmp_path: Path):
    path = tmp_path / "summary.json"
    save_json(path, {"pixels": np.int64(12), "score": np.float32(0.5), "shape": np.array([2, 3])})

    assert json.loads(path.read_text(encoding="utf-8")) == {"pixels": 12, "score": 0.5, "shape": [2, 3]}
