"""
Typed models for the vision loop.

Frames, results, configuration and status values shared by every stage.
"""

from .frame import FrameData
from .detection import BoundingBox, Detection, DetectionResult, Prediction
from .labels import COCO_CLASSES, load_labels
from .status import LoopState, ModelStatus, CameraStatus
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    PreprocessConfig,
    PostprocessConfig,
    LoopConfig,
    RenderConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Results
    "BoundingBox",
    "Detection",
    "DetectionResult",
    "Prediction",
    # Labels
    "COCO_CLASSES",
    "load_labels",
    # Status
    "LoopState",
    "ModelStatus",
    "CameraStatus",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "PreprocessConfig",
    "PostprocessConfig",
    "LoopConfig",
    "RenderConfig",
    "WebConfig",
]
