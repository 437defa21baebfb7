"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30
  facing_mode: "user"

model:
  source: "data/models/yolov8n.onnx"
  mode: "detection"

postprocess:
  conf_threshold: 0.5
  iou_threshold: 0.45
  max_detections: 20

loop:
  interval_ms: 100

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
            "facing_mode": "user",
        },
        "model": {
            "source": "data/models/yolov8n.onnx",
            "mode": "detection",
            "providers": ["CPUExecutionProvider"],
        },
        "preprocess": {
            "interpolation": "bilinear",
            "normalization": "unit",
        },
        "postprocess": {
            "conf_threshold": 0.5,
            "iou_threshold": 0.45,
            "max_detections": 20,
            "top_k": 3,
        },
        "loop": {
            "interval_ms": 100,
        },
        "render": {
            "jpeg_quality": 80,
        },
        "web": {
            "enabled": False,
            "port": 5000,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
