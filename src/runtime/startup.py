"""
Startup: load the model and start the camera, reporting progress as status
strings on the runtime context.

Neither step raises. Failures are logged, surfaced as status messages, and
leave the context not ready so the loop never starts.
"""

from __future__ import annotations

import logging
from typing import Callable

from inference.backend import InferenceEngine, ModelLoadError
from inference.features import FeatureInspector
from models.config import ModelConfig
from models.labels import load_labels
from models.status import CameraStatus, ModelStatus
from postprocessing.classification import ClassificationPostprocessor
from postprocessing.detection import DetectionPostprocessor
from preprocessing.transforms import Preprocessor
from rendering.overlay import OverlayRenderer
from runtime.context import RuntimeContext

EngineFactory = Callable[[ModelConfig], InferenceEngine]


def create_onnx_engine(model_cfg: ModelConfig) -> InferenceEngine:
    from inference.onnx_backend import OnnxConfig, OnnxEngine

    return OnnxEngine(
        OnnxConfig(
            model=model_cfg.source,
            providers=tuple(model_cfg.providers),
            cache_dir=model_cfg.cache_dir,
            download_timeout=float(model_cfg.download_timeout),
        )
    )


def load_model(ctx: RuntimeContext, engine_factory: EngineFactory = create_onnx_engine) -> bool:
    """
    Load the engine and build the stages that depend on its input geometry.

    Returns:
        True if the model is ready.
    """
    cfg = ctx.config
    ctx.set_model_status(ModelStatus.LOADING)
    try:
        engine = engine_factory(cfg.model)
        preprocessor = Preprocessor(cfg.preprocess, engine.input_size, engine.input_layout)
        labels = load_labels(cfg.model.labels_file)
        if cfg.model.mode == "classification":
            postprocessor = ClassificationPostprocessor(cfg.postprocess, labels)
        else:
            postprocessor = DetectionPostprocessor(cfg.postprocess)
    except (ModelLoadError, ValueError, OSError) as e:
        # Unreadable labels (bad encoding, a directory) fail the load too
        logging.error(f"Failed to load model: {e}")
        ctx.set_model_status(ModelStatus.FAILED)
        return False

    ctx.labels = labels
    ctx.engine = engine
    ctx.preprocessor = preprocessor
    ctx.postprocessor = postprocessor
    ctx.inspector = FeatureInspector(cfg.model.feature_layer, engine.output_names)
    if ctx.renderer is None:
        ctx.renderer = OverlayRenderer(cfg.render, mirror=cfg.mirror)

    ctx.set_model_status(ModelStatus.READY)
    return True


def start_camera(ctx: RuntimeContext) -> bool:
    """
    Open the capture source and wait for the first decodable frame.

    Returns:
        True if the camera is ready.
    """
    if ctx.source is None:
        logging.error("No capture source configured")
        ctx.set_camera_status(CameraStatus.FAILED)
        return False

    ctx.set_camera_status(CameraStatus.STARTING)
    try:
        ctx.source.open()
    except RuntimeError as e:
        logging.error(f"Failed to start webcam: {e}")
        ctx.set_camera_status(CameraStatus.FAILED)
        return False

    if ctx.source.read() is None:
        logging.error("Camera opened but produced no frame")
        ctx.source.close()
        ctx.set_camera_status(CameraStatus.FAILED)
        return False

    ctx.set_camera_status(CameraStatus.READY)
    return True
