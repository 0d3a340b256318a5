"""Inference engine backends that execute the exported SAM2 encoder/decoder graphs.

An engine is anything with ``run(model_id, inputs) -> outputs`` over named
numpy arrays. Sessions are created lazily per model id so an engine can be
built before the weights are needed.
"""
from __future__ import annotations

import os
import threading
from typing import Any, Dict, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np

from .config import EngineConfig
from .errors import EngineConfigurationError
from .utils import LOGGER, to_torch_dtype


@runtime_checkable
class InferenceEngine(Protocol):
    def run(self, model_id: str, inputs: Mapping[str, np.ndarray]) -> Mapping[str, np.ndarray]:
        ...


class _LazyModelEngine:
    """Shared model-path bookkeeping for the file-backed engines."""

    def __init__(self, models: Mapping[str, str]) -> None:
        self.models = dict(models)
        self._sessions: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _model_path(self, model_id: str) -> str:
        if model_id not in self.models:
            raise EngineConfigurationError(
                f"No model registered for '{model_id}'; known models: {sorted(self.models)}"
            )
        path = self.models[model_id]
        if not os.path.isfile(path):
            raise EngineConfigurationError(f"Model file for '{model_id}' not found: {path}")
        return path

    def _session(self, model_id: str) -> Any:
        with self._lock:
            session = self._sessions.get(model_id)
            if session is None:
                session = self._create_session(model_id, self._model_path(model_id))
                self._sessions[model_id] = session
            return session

    def _create_session(self, model_id: str, path: str) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError

    def warmup(self) -> None:
        """Create every registered session up front."""

        for model_id in self.models:
            self._session(model_id)


class OnnxRuntimeEngine(_LazyModelEngine):
    """Runs ONNX exports through :class:`onnxruntime.InferenceSession`."""

    def __init__(self, models: Mapping[str, str], providers: Sequence[str] = ("CPUExecutionProvider",)) -> None:
        super().__init__(models)
        self.providers = list(providers)

    def _create_session(self, model_id: str, path: str) -> Any:
        try:
            import onnxruntime as ort
        except ImportError as exc:
            raise EngineConfigurationError(
                "onnxruntime is required for the 'onnxruntime' backend. Install it with `pip install onnxruntime`."
            ) from exc

        LOGGER.info("Loading %s model from %s", model_id, path)
        available = set(ort.get_available_providers())
        providers = [p for p in self.providers if p in available] or ["CPUExecutionProvider"]
        session = ort.InferenceSession(path, providers=providers)
        LOGGER.info("%s session created (providers: %s)", model_id, ", ".join(session.get_providers()))
        return session

    def run(self, model_id: str, inputs: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        session = self._session(model_id)
        declared = {meta.name for meta in session.get_inputs()}
        missing = declared - set(inputs)
        if missing:
            raise KeyError(f"{model_id} requires inputs {sorted(missing)} that were not provided")
        # SAM2 exports differ in which optional inputs they declare.
        feeds = {name: np.ascontiguousarray(value) for name, value in inputs.items() if name in declared}
        output_names = [meta.name for meta in session.get_outputs()]
        results = session.run(output_names, feeds)
        return dict(zip(output_names, results))


class TorchScriptEngine(_LazyModelEngine):
    """Runs TorchScript exports loaded with :func:`torch.jit.load`.

    TorchScript modules take positional tensors, so ``input_order`` lists the
    feed names per model; tuple outputs are named through ``output_names``.
    """

    def __init__(
        self,
        models: Mapping[str, str],
        input_order: Mapping[str, Sequence[str]],
        output_names: Mapping[str, Sequence[str]],
        device: str = "cpu",
        dtype: str = "float32",
    ) -> None:
        super().__init__(models)
        self.input_order = {k: list(v) for k, v in input_order.items()}
        self.output_names = {k: list(v) for k, v in output_names.items()}
        self.device = device
        self.dtype = dtype

    def _create_session(self, model_id: str, path: str) -> Any:
        import torch

        if model_id not in self.input_order:
            raise EngineConfigurationError(f"TorchScript backend needs engine.input_order['{model_id}']")
        LOGGER.info("Loading %s TorchScript module from %s", model_id, path)
        module = torch.jit.load(path, map_location=self.device)
        module.eval()
        return module

    def run(self, model_id: str, inputs: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        import torch

        module = self._session(model_id)
        dtype = to_torch_dtype(self.dtype)
        tensors = []
        for name in self.input_order[model_id]:
            if name not in inputs:
                raise KeyError(f"{model_id} requires input '{name}' that was not provided")
            tensor = torch.from_numpy(np.ascontiguousarray(inputs[name])).to(self.device)
            if tensor.is_floating_point():
                tensor = tensor.to(dtype)
            tensors.append(tensor)

        with torch.inference_mode():
            outputs = module(*tensors)

        if isinstance(outputs, Mapping):
            named = dict(outputs)
        else:
            if isinstance(outputs, torch.Tensor):
                outputs = (outputs,)
            names = self.output_names.get(model_id) or [f"output_{i}" for i in range(len(outputs))]
            if len(names) != len(outputs):
                raise ValueError(f"{model_id} returned {len(outputs)} outputs but {len(names)} names are configured")
            named = dict(zip(names, outputs))
        return {name: value.detach().float().cpu().numpy() for name, value in named.items()}


def build_inference_engine(config: EngineConfig) -> InferenceEngine:
    """Instantiate the backend named by ``config.backend``."""

    if not config.models:
        raise EngineConfigurationError("engine.models must map model ids to exported graph files")
    if config.backend == "onnxruntime":
        return OnnxRuntimeEngine(config.models, providers=config.providers)
    if config.backend == "torchscript":
        return TorchScriptEngine(
            config.models,
            input_order=config.input_order,
            output_names=config.output_names,
            device=config.device,
            dtype=config.dtype,
        )
    raise EngineConfigurationError(f"Unknown engine backend '{config.backend}'")


def describe_engine(engine: InferenceEngine) -> str:
    if isinstance(engine, _LazyModelEngine):
        return f"{type(engine).__name__}({', '.join(sorted(engine.models))})"
    return type(engine).__name__
