from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from inference.features import FeatureInspector
from inference.tensors import TensorRegistry
from models.config import Config
from models.status import CameraStatus, ModelStatus
from observation.base import ObservationSource
from preprocessing.transforms import Preprocessor
from rendering.overlay import OverlayRenderer


@dataclass
class RuntimeContext:
    """Holds runtime state and component references; avoids global singletons."""

    config: Config
    source: Optional[ObservationSource] = None
    engine: Any = None
    preprocessor: Optional[Preprocessor] = None
    postprocessor: Any = None
    renderer: Optional[OverlayRenderer] = None
    inspector: Optional[FeatureInspector] = None
    labels: List[str] = field(default_factory=list)
    tensors: TensorRegistry = field(default_factory=TensorRegistry)
    web_state: Any = None

    model_status: str = ModelStatus.AWAITING
    camera_status: str = CameraStatus.AWAITING

    @property
    def mode(self) -> str:
        return self.config.model.mode

    @property
    def model_ready(self) -> bool:
        return (
            self.engine is not None
            and self.preprocessor is not None
            and self.postprocessor is not None
        )

    @property
    def camera_ready(self) -> bool:
        return self.source is not None and self.source.is_open

    @property
    def video_ready(self) -> bool:
        """Frames are decodable right now."""
        return self.source is not None and self.source.is_ready

    @property
    def is_ready(self) -> bool:
        return self.model_ready and self.camera_ready

    def set_model_status(self, status: str) -> None:
        self.model_status = status
        logging.info(f"Model status: {status}")
        self._push_status()

    def set_camera_status(self, status: str) -> None:
        self.camera_status = status
        logging.info(f"Camera status: {status}")
        self._push_status()

    def _push_status(self) -> None:
        if self.web_state is not None:
            self.web_state.update_status(
                model_status=self.model_status,
                camera_status=self.camera_status,
            )

    def publish(self, result: Any, annotated: Optional[np.ndarray]) -> None:
        """Hand the latest tick output to the web preview."""
        if self.web_state is None:
            return
        jpeg = None
        if annotated is not None and self.renderer is not None:
            jpeg = self.renderer.encode_jpeg(annotated)
        self.web_state.set_result(result.to_dict(), jpeg)
