"""
Detection postprocessing for YOLO-style proposal matrices.

The raw output is transposed: (num_attributes, num_proposals), optionally with
a leading batch dimension of 1. Each proposal column is
[cx, cy, w, h, class_score_0 .. class_score_N] in model input pixels.

Boxes leave this module in original frame pixels as (x, y, width, height).
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from models.config import PostprocessConfig
from models.detection import DetectionResult


def box_iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU between one (x, y, w, h) box and an (N, 4) array of boxes.

    Boxes with zero union area have IoU 0.
    """
    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    x1 = np.maximum(box[0], boxes[:, 0])
    y1 = np.maximum(box[1], boxes[:, 1])
    x2 = np.minimum(box[0] + box[2], boxes[:, 0] + boxes[:, 2])
    y2 = np.minimum(box[1] + box[3], boxes[:, 1] + boxes[:, 3])

    inter = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)
    area = max(0.0, float(box[2])) * max(0.0, float(box[3]))
    areas = np.maximum(0.0, boxes[:, 2]) * np.maximum(0.0, boxes[:, 3])
    union = area + areas - inter

    out = np.zeros(boxes.shape[0], dtype=np.float32)
    np.divide(inter, union, out=out, where=union > 0)
    return out


def iou(a, b) -> float:
    """IoU of two (x, y, w, h) boxes."""
    return float(box_iou(np.asarray(a, dtype=np.float32), np.asarray([b], dtype=np.float32))[0])


def _proposal_matrix(output: np.ndarray) -> np.ndarray:
    arr = np.asarray(output, dtype=np.float32)
    while arr.ndim > 2 and arr.shape[0] == 1:
        arr = arr[0]
    if arr.ndim != 2 or arr.shape[0] < 5:
        raise ValueError(f"Expected (num_attributes>=5, num_proposals) output, got {np.shape(output)}")
    return arr.T


def decode_proposals(
    output: np.ndarray,
    width_ratio: float,
    height_ratio: float,
    conf_threshold: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Pick each proposal's best class, drop those below the threshold and
    convert surviving center-form boxes to scaled corner form.

    Returns:
        (boxes (N, 4) as x, y, w, h), scores (N,), class_ids (N,)
    """
    proposals = _proposal_matrix(output)
    class_scores = proposals[:, 4:]
    class_ids = np.argmax(class_scores, axis=1)
    scores = class_scores[np.arange(class_scores.shape[0]), class_ids]

    mask = scores >= conf_threshold
    if not np.any(mask):
        return (
            np.zeros((0, 4), dtype=np.float32),
            np.zeros((0,), dtype=np.float32),
            np.zeros((0,), dtype=np.int64),
        )

    cx, cy, w, h = proposals[mask, :4].T
    boxes = np.stack(
        [
            (cx - w / 2) * width_ratio,
            (cy - h / 2) * height_ratio,
            w * width_ratio,
            h * height_ratio,
        ],
        axis=1,
    ).astype(np.float32)
    return boxes, scores[mask].astype(np.float32), class_ids[mask].astype(np.int64)


def non_max_suppression(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float,
    max_output: int,
) -> np.ndarray:
    """
    Greedy NMS over (x, y, w, h) boxes.

    Keeps the highest-scoring box, discards any remaining box whose IoU with
    it is above iou_threshold, and repeats until max_output boxes are kept.

    Returns:
        Indices of kept boxes, highest score first.
    """
    if len(scores) == 0 or max_output <= 0:
        return np.zeros((0,), dtype=np.int64)

    order = np.argsort(-np.asarray(scores), kind="stable")
    keep = []
    while order.size > 0 and len(keep) < max_output:
        best = order[0]
        keep.append(best)
        rest = order[1:]
        if rest.size == 0:
            break
        overlaps = box_iou(boxes[best], boxes[rest])
        order = rest[overlaps <= iou_threshold]
    return np.asarray(keep, dtype=np.int64)


class DetectionPostprocessor:
    """Turns a raw proposal matrix into suppressed detections."""

    def __init__(self, config: PostprocessConfig):
        self.config = config

    def process(self, output: np.ndarray, width_ratio: float = 1.0, height_ratio: float = 1.0) -> DetectionResult:
        boxes, scores, class_ids = decode_proposals(
            output, width_ratio, height_ratio, self.config.conf_threshold
        )
        if len(scores) == 0:
            return DetectionResult.empty()

        keep = non_max_suppression(
            boxes, scores, self.config.iou_threshold, self.config.max_detections
        )
        logging.debug(f"NMS kept {len(keep)}/{len(scores)} candidates")
        return DetectionResult(
            boxes=boxes[keep],
            scores=scores[keep],
            class_ids=class_ids[keep],
        )
