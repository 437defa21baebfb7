"""
Result models for classification and object detection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates, corner-plus-size form.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width.
        height: Box height.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x, y, width, height) tuple."""
        return (int(self.x), int(self.y), int(self.width), int(self.height))

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x, self.y, self.x2, self.y2)

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "BoundingBox":
        """Create from (center_x, center_y, width, height) format."""
        return cls(x=cx - w / 2, y=cy - h / 2, width=w, height=h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from (x1, y1, x2, y2) format."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


@dataclass(frozen=True)
class Detection:
    """
    A single detection produced by the detection postprocessor.

    Attributes:
        bbox: Bounding box in original frame pixel coordinates.
        class_id: Class index from the model.
        confidence: Detection confidence score (0-1).
        class_name: Optional human-readable class name.
    """
    bbox: BoundingBox
    class_id: int
    confidence: float
    class_name: Optional[str] = None

    @property
    def label(self) -> str:
        name = self.class_name if self.class_name is not None else str(self.class_id)
        return f"{name}: {self.confidence:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bbox": list(self.bbox.as_tuple()),
            "class_id": self.class_id,
            "class_name": self.class_name,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Prediction:
    """A ranked classification result."""
    class_name: str
    probability: float

    @property
    def label(self) -> str:
        return f"{self.class_name} ({round(self.probability * 100)}%)"

    def to_dict(self) -> Dict[str, Any]:
        return {"class_name": self.class_name, "probability": self.probability}


@dataclass
class DetectionResult:
    """
    Detection output as parallel arrays.

    Attributes:
        boxes: Array of shape (N, 4) with [x, y, width, height] rows.
        scores: Array of shape (N,) with confidences.
        class_ids: Array of shape (N,) with integer class ids.
    """
    boxes: np.ndarray = field(default_factory=lambda: np.zeros((0, 4), dtype=np.float32))
    scores: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.float32))
    class_ids: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.int64))

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls()

    def to_detections(self, labels: Optional[Sequence[str]] = None) -> List[Detection]:
        """Convert to a list of Detection objects, naming classes from labels."""
        out: List[Detection] = []
        for (x, y, w, h), score, class_id in zip(self.boxes, self.scores, self.class_ids):
            class_id = int(class_id)
            class_name = None
            if labels is not None:
                class_name = labels[class_id] if 0 <= class_id < len(labels) else str(class_id)
            out.append(
                Detection(
                    bbox=BoundingBox(x=float(x), y=float(y), width=float(w), height=float(h)),
                    class_id=class_id,
                    confidence=float(score),
                    class_name=class_name,
                )
            )
        return out
