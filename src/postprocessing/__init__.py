"""
Postprocessing: raw model outputs to ranked predictions or suppressed detections.
"""

from .classification import ClassificationPostprocessor, softmax, top_k
from .detection import (
    DetectionPostprocessor,
    box_iou,
    decode_proposals,
    iou,
    non_max_suppression,
)

__all__ = [
    "ClassificationPostprocessor",
    "softmax",
    "top_k",
    "DetectionPostprocessor",
    "box_iou",
    "decode_proposals",
    "iou",
    "non_max_suppression",
]
