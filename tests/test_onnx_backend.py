"""
Tests for the ONNX Runtime engine and model artifact resolution.
"""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests

from inference.backend import InferenceError, ModelLoadError
from inference.onnx_backend import (
    OnnxConfig,
    OnnxEngine,
    infer_input_geometry,
    is_url,
    resolve_model_path,
)


def _mock_response(chunks):
    resp = MagicMock()
    resp.iter_content.return_value = chunks
    resp.raise_for_status.return_value = None
    return resp


def _mock_session(input_shape, outputs=("output0",)):
    session = MagicMock()
    session.get_inputs.return_value = [SimpleNamespace(name="images", shape=input_shape)]
    session.get_outputs.return_value = [SimpleNamespace(name=n) for n in outputs]
    session.get_providers.return_value = ["CPUExecutionProvider"]
    session.run.return_value = [np.zeros((1, 84, 8400), dtype=np.float32)]
    return session


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.onnx"
    path.write_bytes(b"onnx")
    return str(path)


class TestInputGeometry:
    def test_nchw(self):
        assert infer_input_geometry([1, 3, 320, 416]) == ((320, 416), "nchw")

    def test_nhwc(self):
        assert infer_input_geometry([1, 224, 224, 3]) == ((224, 224), "nhwc")

    def test_dynamic_dims_fall_back(self):
        assert infer_input_geometry(["batch", 3, "height", "width"]) == ((640, 640), "nchw")
        assert infer_input_geometry([1, 3, None, None]) == ((640, 640), "nchw")

    def test_unexpected_rank(self):
        assert infer_input_geometry([1, 1000]) == ((640, 640), "nchw")


class TestResolveModelPath:
    def test_is_url(self):
        assert is_url("https://example.com/yolov8n.onnx")
        assert is_url("http://10.0.0.2/model.onnx")
        assert not is_url("data/models/yolov8n.onnx")

    def test_local_path(self, model_file, tmp_path):
        assert resolve_model_path(model_file, str(tmp_path / "cache")) == model_file

    def test_missing_local_path(self, tmp_path):
        with pytest.raises(ModelLoadError, match="not found"):
            resolve_model_path(str(tmp_path / "nope.onnx"), str(tmp_path))

    def test_empty_source(self, tmp_path):
        with pytest.raises(ModelLoadError):
            resolve_model_path("", str(tmp_path))

    def test_download_to_cache(self, tmp_path):
        cache = tmp_path / "cache"
        url = "https://example.com/models/yolov8n.onnx"

        with patch("inference.onnx_backend.requests.get") as mock_get:
            mock_get.return_value.__enter__.return_value = _mock_response([b"abc", b"def"])
            path = resolve_model_path(url, str(cache), timeout=5)

        assert path == os.path.join(str(cache), "yolov8n.onnx")
        with open(path, "rb") as f:
            assert f.read() == b"abcdef"
        assert mock_get.call_args.kwargs["timeout"] == 5
        assert not os.path.exists(path + ".part")

    def test_cached_download_reused(self, tmp_path):
        cache = tmp_path / "cache"
        cache.mkdir()
        (cache / "yolov8n.onnx").write_bytes(b"cached")

        with patch("inference.onnx_backend.requests.get") as mock_get:
            path = resolve_model_path("https://example.com/yolov8n.onnx", str(cache))

        mock_get.assert_not_called()
        assert path.endswith("yolov8n.onnx")

    def test_download_failure(self, tmp_path):
        cache = tmp_path / "cache"

        with patch(
            "inference.onnx_backend.requests.get",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            with pytest.raises(ModelLoadError, match="Failed to download"):
                resolve_model_path("https://example.com/yolov8n.onnx", str(cache))

        assert not os.path.exists(cache / "yolov8n.onnx")
        assert not os.path.exists(cache / "yolov8n.onnx.part")


class TestOnnxEngine:
    def test_session_geometry(self, model_file):
        session = _mock_session([1, 3, 320, 320], outputs=("output0", "features"))

        with patch("inference.onnx_backend.ort") as mock_ort:
            mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
            mock_ort.InferenceSession.return_value = session
            engine = OnnxEngine(OnnxConfig(model=model_file))

        assert engine.input_size == (320, 320)
        assert engine.input_layout == "nchw"
        assert engine.output_names == ["output0", "features"]

    def test_unavailable_providers_fall_back_to_cpu(self, model_file):
        with patch("inference.onnx_backend.ort") as mock_ort:
            mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
            mock_ort.InferenceSession.return_value = _mock_session([1, 3, 640, 640])
            OnnxEngine(OnnxConfig(model=model_file, providers=("CUDAExecutionProvider",)))

        assert mock_ort.InferenceSession.call_args.kwargs["providers"] == ["CPUExecutionProvider"]

    def test_run_feeds_input_by_name(self, model_file):
        session = _mock_session([1, 3, 640, 640])

        with patch("inference.onnx_backend.ort") as mock_ort:
            mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
            mock_ort.InferenceSession.return_value = session
            engine = OnnxEngine(OnnxConfig(model=model_file))

        tensor = np.zeros((1, 3, 640, 640), dtype=np.float32)
        outputs = engine.run(tensor, ["output0"])

        names, feeds = session.run.call_args[0]
        assert names == ["output0"]
        assert feeds["images"] is tensor
        assert outputs[0].shape == (1, 84, 8400)

    def test_session_creation_failure(self, model_file):
        with patch("inference.onnx_backend.ort") as mock_ort:
            mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
            mock_ort.InferenceSession.side_effect = RuntimeError("invalid protobuf")

            with pytest.raises(ModelLoadError, match="invalid protobuf"):
                OnnxEngine(OnnxConfig(model=model_file))

    def test_run_failure(self, model_file):
        session = _mock_session([1, 3, 640, 640])
        session.run.side_effect = RuntimeError("shape mismatch")

        with patch("inference.onnx_backend.ort") as mock_ort:
            mock_ort.get_available_providers.return_value = ["CPUExecutionProvider"]
            mock_ort.InferenceSession.return_value = session
            engine = OnnxEngine(OnnxConfig(model=model_file))

        with pytest.raises(InferenceError, match="shape mismatch"):
            engine.run(np.zeros((1, 3, 640, 640), dtype=np.float32))
