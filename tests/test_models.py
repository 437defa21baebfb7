"""
Tests for frame, result and label models.
"""

import time

import numpy as np
import pytest

from models.detection import BoundingBox, Detection, DetectionResult, Prediction
from models.frame import FrameData
from models.labels import COCO_CLASSES, load_labels


class TestBoundingBox:
    """Tests for BoundingBox model."""

    def test_basic_properties(self):
        bbox = BoundingBox(x=10, y=20, width=100, height=50)

        assert bbox.x2 == 110
        assert bbox.y2 == 70
        assert bbox.center == (60.0, 45.0)
        assert bbox.area == 5000

    def test_negative_size_has_zero_area(self):
        assert BoundingBox(x=0, y=0, width=-5, height=10).area == 0

    def test_from_center(self):
        """Center form converts to corner form."""
        bbox = BoundingBox.from_center(100, 100, 50, 50)

        assert bbox.as_tuple() == (75.0, 75.0, 50, 50)

    def test_from_xyxy(self):
        bbox = BoundingBox.from_xyxy(10, 20, 110, 70)

        assert bbox.as_tuple() == (10, 20, 100, 50)
        assert bbox.as_xyxy() == (10, 20, 110, 70)

    def test_as_int_tuple(self):
        bbox = BoundingBox(x=10.7, y=20.2, width=99.9, height=50.5)

        assert bbox.as_int_tuple() == (10, 20, 99, 50)


class TestDetection:
    """Tests for Detection and Prediction labels."""

    def test_label_uses_class_name(self):
        det = Detection(
            bbox=BoundingBox(0, 0, 10, 10),
            class_id=0,
            confidence=0.8712,
            class_name="person",
        )

        assert det.label == "person: 0.87"

    def test_label_falls_back_to_class_id(self):
        det = Detection(bbox=BoundingBox(0, 0, 10, 10), class_id=7, confidence=0.5)

        assert det.label == "7: 0.50"

    def test_to_dict(self):
        det = Detection(
            bbox=BoundingBox(1, 2, 3, 4),
            class_id=2,
            confidence=0.9,
            class_name="car",
        )

        assert det.to_dict() == {
            "bbox": [1, 2, 3, 4],
            "class_id": 2,
            "class_name": "car",
            "confidence": 0.9,
        }

    def test_prediction_label_rounds_percentage(self):
        assert Prediction("tabby cat", 0.876).label == "tabby cat (88%)"
        assert Prediction("dog", 0.004).label == "dog (0%)"


class TestDetectionResult:
    """Tests for the array-backed DetectionResult."""

    def test_empty(self):
        result = DetectionResult.empty()

        assert len(result) == 0
        assert result.boxes.shape == (0, 4)
        assert result.to_detections(COCO_CLASSES) == []

    def test_to_detections_names_classes(self):
        result = DetectionResult(
            boxes=np.array([[10, 20, 30, 40], [0, 0, 5, 5]], dtype=np.float32),
            scores=np.array([0.9, 0.6], dtype=np.float32),
            class_ids=np.array([2, 999]),
        )

        detections = result.to_detections(COCO_CLASSES)

        assert len(result) == 2
        assert detections[0].class_name == "car"
        assert detections[0].bbox.as_tuple() == (10.0, 20.0, 30.0, 40.0)
        assert detections[0].confidence == pytest.approx(0.9)
        # Out-of-range ids are named by their index
        assert detections[1].class_name == "999"

    def test_to_detections_without_labels(self):
        result = DetectionResult(
            boxes=np.array([[0, 0, 1, 1]], dtype=np.float32),
            scores=np.array([0.5], dtype=np.float32),
            class_ids=np.array([3]),
        )

        det = result.to_detections()[0]

        assert det.class_name is None
        assert isinstance(det.class_id, int)


class TestFrameData:
    """Tests for FrameData model."""

    def test_from_numpy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        fd = FrameData.from_numpy(frame, timestamp=time.time(), frame_index=5, source="webcam")

        assert fd.width == 640
        assert fd.height == 480
        assert fd.size == (640, 480)
        assert fd.shape == (480, 640, 3)
        assert fd.frame_index == 5
        assert fd.source == "webcam"

    def test_is_decodable(self):
        color = FrameData.from_numpy(np.zeros((4, 4, 3), dtype=np.uint8), timestamp=0.0)
        gray = FrameData.from_numpy(np.zeros((4, 4), dtype=np.uint8), timestamp=0.0)
        empty = FrameData.from_numpy(np.zeros((0, 0, 3), dtype=np.uint8), timestamp=0.0)

        assert color.is_decodable is True
        assert gray.is_decodable is False
        assert empty.is_decodable is False


class TestLabels:
    """Tests for label loading."""

    def test_coco_table(self):
        assert len(COCO_CLASSES) == 80
        assert COCO_CLASSES[0] == "person"
        assert COCO_CLASSES[79] == "toothbrush"

    def test_no_path_uses_coco(self):
        assert load_labels(None) == COCO_CLASSES

    def test_missing_file_falls_back(self, tmp_path, caplog):
        labels = load_labels(str(tmp_path / "missing.txt"))

        assert labels == COCO_CLASSES
        assert "not found" in caplog.text

    def test_loads_file_skipping_blank_lines(self, tmp_path):
        path = tmp_path / "labels.txt"
        path.write_text("tabby cat\n\ngolden retriever\n  \nespresso\n")

        assert load_labels(str(path)) == ["tabby cat", "golden retriever", "espresso"]
