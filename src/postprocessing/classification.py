"""
Classification postprocessing: ranked top-K predictions.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from models.config import PostprocessConfig
from models.detection import Prediction


def softmax(scores: np.ndarray) -> np.ndarray:
    shifted = scores - np.max(scores)
    exp_scores = np.exp(shifted)
    return exp_scores / np.sum(exp_scores)


def top_k(probabilities: np.ndarray, labels: Sequence[str], k: int = 3) -> List[Prediction]:
    """
    Pair each probability with its label and return the k best, descending.

    Indices without a label are named by their index.
    """
    flat = np.asarray(probabilities, dtype=np.float32).reshape(-1)
    if flat.size == 0 or k <= 0:
        return []
    order = np.argsort(-flat, kind="stable")[:k]
    return [
        Prediction(
            class_name=labels[i] if i < len(labels) else str(int(i)),
            probability=float(flat[i]),
        )
        for i in order
    ]


class ClassificationPostprocessor:
    def __init__(self, config: PostprocessConfig, labels: Sequence[str]):
        self.config = config
        self.labels = list(labels)

    def process(self, output: np.ndarray) -> List[Prediction]:
        flat = np.asarray(output, dtype=np.float32).reshape(-1)
        if self.config.softmax and flat.size:
            flat = softmax(flat)
        return top_k(flat, self.labels, self.config.top_k)
