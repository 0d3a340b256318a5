"""End-to-end test of the command-line replay with a fake engine."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import clickseg.__main__ as cli
from clickseg.session_types import PointType


class _FakeEngine:
    def __init__(self) -> None:
        self.decoder_calls = 0

    def run(self, model_id, inputs):
        if model_id == "encoder":
            return {"image_embed": np.zeros((1, 4, 2, 2), dtype=np.float32)}
        self.decoder_calls += 1
        mask = np.full((1, 1, 8, 8), -1.0, dtype=np.float32)
        mask[..., :4, :4] = 1.0
        return {"masks": mask}


def _write_config(tmp_path: Path) -> Path:
    path = tmp_path / "session.yaml"
    path.write_text(
        "engine:\n"
        "  models:\n"
        "    encoder: encoder.onnx\n"
        "    decoder: decoder.onnx\n",
        encoding="utf-8",
    )
    return path


def test_parse_click():
    assert cli.parse_click("10,20") == (10.0, 20.0, PointType.POSITIVE)
    assert cli.parse_click("1.5, 2, neg") == (1.5, 2.0, PointType.NEGATIVE)
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_click("10")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_click("a,b")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_click("1,2,maybe")


def test_image_mode_writes_outputs(tmp_path: Path, monkeypatch):
    engine = _FakeEngine()
    monkeypatch.setattr(cli, "build_inference_engine", lambda config: engine)

    image_path = tmp_path / "input.png"
    cv2.imwrite(str(image_path), np.full((64, 80, 3), 40, dtype=np.uint8))
    output_dir = tmp_path / "out"

    code = cli.main(
        [
            "image",
            "--input",
            str(image_path),
            "--output",
            str(output_dir),
            "--config",
            str(_write_config(tmp_path)),
            "--click",
            "10,10",
            "--click",
            "70,40,neg",
            "--click",
            "500,500",
        ]
    )

    assert code == 0
    assert engine.decoder_calls == 2
    summary = json.loads((output_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["width"] == 80 and summary["height"] == 64
    assert [p["type"] for p in summary["points"]] == ["positive", "negative"]
    assert len(summary["failures"]) == 1
    assert summary["mask_pixels"] == 40 * 32
    assert (output_dir / "composite.png").is_file()
    assert (output_dir / "overlay.png").is_file()

    mask = cv2.imread(str(output_dir / "mask.png"), cv2.IMREAD_GRAYSCALE)
    assert mask.shape == (64, 80)
    assert mask[0, 0] == 255 and mask[63, 79] == 0


def test_directory_mode_reuses_session(tmp_path: Path, monkeypatch):
    engine = _FakeEngine()
    monkeypatch.setattr(cli, "build_inference_engine", lambda config: engine)

    images = tmp_path / "images"
    images.mkdir()
    for name in ("a.png", "b.jpg"):
        cv2.imwrite(str(images / name), np.zeros((20, 30, 3), dtype=np.uint8))

    code = cli.main(
        [
            "directory",
            "--input",
            str(images),
            "--output",
            str(tmp_path / "out"),
            "--config",
            str(_write_config(tmp_path)),
            "--click",
            "5,5",
        ]
    )

    assert code == 0
    for stem in ("a", "b"):
        summary = json.loads((tmp_path / "out" / stem / "summary.json").read_text(encoding="utf-8"))
        assert len(summary["points"]) == 1


def test_missing_input_returns_error_code(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(cli, "build_inference_engine", lambda config: _FakeEngine())
    code = cli.main(
        [
            "image",
            "--input",
            str(tmp_path / "nope.png"),
            "--output",
            str(tmp_path / "out"),
            "--config",
            str(_write_config(tmp_path)),
            "--click",
            "1,1",
        ]
    )
    assert code == 1
