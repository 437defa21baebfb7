"""
ONNX Runtime inference engine.

Loads a model artifact once (local path or http(s) URL, downloaded into a
cache directory) and runs it on preprocessed tensors, returning raw outputs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import numpy as np
import onnxruntime as ort
import requests

from .backend import InferenceEngine, InferenceError, ModelLoadError

DEFAULT_INPUT_SIZE = (640, 640)


@dataclass(frozen=True)
class OnnxConfig:
    model: str
    providers: Sequence[str] = field(default_factory=lambda: ("CPUExecutionProvider",))
    cache_dir: str = "data/models"
    download_timeout: float = 60.0


def is_url(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def resolve_model_path(source: str, cache_dir: str, timeout: float = 60.0) -> str:
    """
    Return a local path for the model source, downloading URLs once.

    Raises:
        ModelLoadError: If the file is missing or the download fails.
    """
    if not source:
        raise ModelLoadError("No model source configured")

    if not is_url(source):
        if not os.path.exists(source):
            raise ModelLoadError(f"Model file not found: {source}")
        return source

    filename = os.path.basename(urlparse(source).path) or "model.onnx"
    dest = os.path.join(cache_dir, filename)
    if os.path.exists(dest):
        logging.info(f"Using cached model: {dest}")
        return dest

    os.makedirs(cache_dir, exist_ok=True)
    tmp_path = dest + ".part"
    logging.info(f"Downloading model: {source}")
    try:
        with requests.get(source, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with open(tmp_path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1024 * 256):
                    f.write(chunk)
        os.replace(tmp_path, dest)
    except (requests.RequestException, OSError) as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ModelLoadError(f"Failed to download model from {source}: {e}") from e

    logging.info(f"Model saved to {dest}")
    return dest


def infer_input_geometry(shape: Sequence[Any]) -> Tuple[Tuple[int, int], str]:
    """
    Derive ((height, width), layout) from a declared input shape.

    Dynamic dimensions fall back to 640x640.
    """
    if len(shape) != 4:
        return DEFAULT_INPUT_SIZE, "nchw"

    if shape[1] in (1, 3):
        layout = "nchw"
        height, width = shape[2], shape[3]
    elif shape[3] in (1, 3):
        layout = "nhwc"
        height, width = shape[1], shape[2]
    else:
        layout = "nchw"
        height, width = shape[2], shape[3]

    if isinstance(height, int) and isinstance(width, int) and height > 0 and width > 0:
        return (height, width), layout
    return DEFAULT_INPUT_SIZE, layout


class OnnxEngine(InferenceEngine):
    def __init__(self, cfg: OnnxConfig):
        self.cfg = cfg
        path = resolve_model_path(cfg.model, cfg.cache_dir, cfg.download_timeout)

        available = ort.get_available_providers()
        providers = [p for p in cfg.providers if p in available] or ["CPUExecutionProvider"]
        try:
            self._session = ort.InferenceSession(path, providers=providers)
        except Exception as e:
            raise ModelLoadError(f"Failed to load model {path}: {e}") from e

        model_input = self._session.get_inputs()[0]
        self._input_name = model_input.name
        self._input_size, self._input_layout = infer_input_geometry(model_input.shape)
        self._output_names = [o.name for o in self._session.get_outputs()]

        logging.info(
            f"Model loaded: path={path}, provider={self._session.get_providers()[0]}, "
            f"input={self._input_name}{list(model_input.shape)}, outputs={self._output_names}"
        )

    @property
    def input_size(self) -> Tuple[int, int]:
        return self._input_size

    @property
    def input_layout(self) -> str:
        return self._input_layout

    @property
    def output_names(self) -> List[str]:
        return list(self._output_names)

    def run(self, tensor: np.ndarray, output_names: Optional[Sequence[str]] = None) -> List[np.ndarray]:
        names = list(output_names) if output_names else None
        try:
            outputs = self._session.run(names, {self._input_name: tensor})
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e
        return [np.asarray(o) for o in outputs]
