"""
Frame-to-tensor preprocessing.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from inference.tensors import Tensor, TensorScope
from models.config import PreprocessConfig
from models.frame import FrameData

INTERPOLATIONS = {
    "bilinear": cv2.INTER_LINEAR,
    "nearest": cv2.INTER_NEAREST,
}
NORMALIZATIONS = ("unit", "symmetric", "meanstd")
LAYOUTS = ("nchw", "nhwc")

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


class Preprocessor:
    """
    Converts a BGR frame into a float32 model input with a batch dimension.

    Args:
        config: Preprocess settings. config.input_size / config.layout override
            the values declared by the model.
        input_size: Model input (height, width).
        layout: Model input layout, 'nchw' or 'nhwc'.
    """

    def __init__(self, config: PreprocessConfig, input_size: Tuple[int, int], layout: str = "nchw"):
        if config.interpolation not in INTERPOLATIONS:
            raise ValueError(f"Unknown interpolation: {config.interpolation}")
        if config.normalization not in NORMALIZATIONS:
            raise ValueError(f"Unknown normalization: {config.normalization}")

        self.config = config
        self.input_size = tuple(config.input_size) if config.input_size else tuple(input_size)
        self.layout = (config.layout or layout).lower()
        if self.layout not in LAYOUTS:
            raise ValueError(f"Unknown layout: {self.layout}")

        self._interpolation = INTERPOLATIONS[config.interpolation]
        mean = config.mean if config.mean is not None else IMAGENET_MEAN
        std = config.std if config.std is not None else IMAGENET_STD
        self._mean = np.asarray(mean, dtype=np.float32).reshape(1, 1, 3)
        self._std = np.asarray(std, dtype=np.float32).reshape(1, 1, 3)

    def to_array(self, frame: np.ndarray) -> np.ndarray:
        """Resize, normalize and batch one HxWx3 BGR image."""
        height, width = self.input_size
        resized = cv2.resize(frame, (width, height), interpolation=self._interpolation)
        if self.config.rgb:
            resized = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)

        data = resized.astype(np.float32)
        norm = self.config.normalization
        if norm == "unit":
            data /= 255.0
        elif norm == "symmetric":
            data = data / 127.5 - 1.0
        else:
            data = (data / 255.0 - self._mean) / self._std

        if self.layout == "nchw":
            data = data.transpose(2, 0, 1)
        return np.ascontiguousarray(data[np.newaxis, ...], dtype=np.float32)

    def process(self, frame_data: Optional[FrameData], scope: TensorScope) -> Optional[Tensor]:
        """
        Produce the input tensor for one tick inside the given scope.

        Returns None when the frame is not decodable yet; the tick is skipped.
        """
        if frame_data is None or not frame_data.is_decodable:
            logging.debug("Frame not decodable, skipping preprocessing")
            return None
        return scope.track(self.to_array(frame_data.frame), name="input")

    def scale_ratios(self, frame_width: int, frame_height: int) -> Tuple[float, float]:
        """(width_ratio, height_ratio) mapping model coordinates back to the frame."""
        height, width = self.input_size
        return frame_width / width, frame_height / height
