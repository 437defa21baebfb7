"""
Overlay rendering for detections and classification results.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from models.config import RenderConfig
from models.detection import Detection, Prediction


def mirror_box_x(x: float, width: float, canvas_width: int) -> float:
    """x of a box after flipping the canvas horizontally."""
    return canvas_width - x - width


class OverlayRenderer:
    """
    Draws results onto a fresh copy of the frame every tick.

    With mirror=True the frame is flipped horizontally and box x coordinates
    are mirrored to match, as a front-facing camera preview expects.
    """

    FONT = cv2.FONT_HERSHEY_SIMPLEX

    def __init__(self, config: Optional[RenderConfig] = None, mirror: bool = False):
        self.config = config or RenderConfig()
        self.mirror = mirror
        self._color = tuple(int(c) for c in self.config.color)
        self._text_color = tuple(int(c) for c in self.config.text_color)

    def render(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection] = (),
        predictions: Sequence[Prediction] = (),
    ) -> np.ndarray:
        canvas = cv2.flip(frame, 1) if self.mirror else frame.copy()
        for det in detections:
            self._draw_detection(canvas, det)
        if predictions:
            self._draw_predictions(canvas, predictions)
        return canvas

    def box_origin(self, det: Detection, canvas_width: int) -> Tuple[int, int]:
        """Top-left corner where the detection box is drawn."""
        x, y, w, _ = det.bbox.as_tuple()
        if self.mirror:
            x = mirror_box_x(x, w, canvas_width)
        return int(round(x)), int(round(y))

    def _draw_detection(self, canvas: np.ndarray, det: Detection) -> None:
        x, y = self.box_origin(det, canvas.shape[1])
        w, h = int(round(det.bbox.width)), int(round(det.bbox.height))
        cfg = self.config

        cv2.rectangle(canvas, (x, y), (x + w, y + h), self._color, cfg.line_width)

        # Label with background, kept inside the top edge
        label = det.label
        (tw, th), _ = cv2.getTextSize(label, self.FONT, cfg.font_scale, 1)
        label_y = y if y > th + 4 else th + 4
        cv2.rectangle(canvas, (x, label_y - th - 4), (x + tw + 4, label_y + 2), self._color, -1)
        cv2.putText(canvas, label, (x + 2, label_y - 2), self.FONT, cfg.font_scale, self._text_color, 1)

    def _draw_predictions(self, canvas: np.ndarray, predictions: Sequence[Prediction]) -> None:
        cfg = self.config
        y = 10
        for pred in predictions:
            (tw, th), _ = cv2.getTextSize(pred.label, self.FONT, cfg.font_scale, 1)
            y += th + 8
            cv2.rectangle(canvas, (8, y - th - 4), (12 + tw, y + 4), self._color, -1)
            cv2.putText(canvas, pred.label, (10, y), self.FONT, cfg.font_scale, self._text_color, 1)

    def encode_jpeg(self, image: np.ndarray) -> Optional[bytes]:
        ok, buf = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(self.config.jpeg_quality)])
        if not ok:
            return None
        return buf.tobytes()
