"""
Inference engine interface.

Engines are opaque: they take a preprocessed input tensor and return the
model's raw output tensors. Decoding those outputs is the postprocessor's job.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np


class ModelLoadError(RuntimeError):
    """Raised when a model artifact cannot be fetched or loaded."""


class InferenceError(RuntimeError):
    """Raised when a single inference call fails."""


class InferenceEngine(Protocol):
    @property
    def input_size(self) -> Tuple[int, int]:
        """Model input (height, width)."""
        ...

    @property
    def input_layout(self) -> str:
        """'nchw' or 'nhwc'."""
        ...

    @property
    def output_names(self) -> List[str]:
        ...

    def run(self, tensor: np.ndarray, output_names: Optional[Sequence[str]] = None) -> List[np.ndarray]:
        ...
