"""
Intermediate-feature inspection.

Fetches a named internal layer alongside the primary output and measures how
well it survives symmetric int8 quantization (the payload size a split
deployment would ship between devices).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class FeatureStats:
    layer: str
    shape: Tuple[int, ...]
    float_bytes: int
    int8_bytes: int
    scale: float
    max_abs_error: float

    @property
    def compression_ratio(self) -> float:
        return self.float_bytes / self.int8_bytes if self.int8_bytes else 0.0

    def to_dict(self) -> dict:
        return {
            "layer": self.layer,
            "shape": list(self.shape),
            "float_bytes": self.float_bytes,
            "int8_bytes": self.int8_bytes,
            "scale": self.scale,
            "max_abs_error": self.max_abs_error,
            "compression_ratio": self.compression_ratio,
        }


def quantize_int8(x: np.ndarray) -> Tuple[np.ndarray, float]:
    """Symmetric per-tensor quantization: scale = max|x| / 127."""
    x = np.asarray(x, dtype=np.float32)
    max_abs = float(np.max(np.abs(x))) if x.size else 0.0
    scale = max_abs / 127.0 if max_abs > 0 else 1.0
    q = np.clip(np.round(x / scale), -127, 127).astype(np.int8)
    return q, scale


def dequantize_int8(q: np.ndarray, scale: float) -> np.ndarray:
    return q.astype(np.float32) * np.float32(scale)


class FeatureInspector:
    """
    Inspects one named intermediate output of the model.

    Disabled when no layer is configured, or with a warning when the model
    does not expose the layer. The primary output is never affected.
    """

    def __init__(self, layer_name: Optional[str], available_outputs: Sequence[str]):
        self.layer_name = layer_name
        self.enabled = False
        if not layer_name:
            return
        if layer_name not in available_outputs:
            logging.warning(
                f"Feature layer '{layer_name}' not found in model outputs "
                f"{list(available_outputs)}; feature inspection disabled"
            )
            return
        self.enabled = True
        logging.info(f"Feature inspection enabled for layer '{layer_name}'")

    @property
    def output_names(self) -> List[str]:
        return [self.layer_name] if self.enabled else []

    def inspect(self, feature: np.ndarray) -> FeatureStats:
        q, scale = quantize_int8(feature)
        restored = dequantize_int8(q, scale)
        err = float(np.max(np.abs(restored - feature))) if feature.size else 0.0
        return FeatureStats(
            layer=self.layer_name or "",
            shape=tuple(feature.shape),
            float_bytes=int(feature.size * 4),
            int8_bytes=int(q.nbytes),
            scale=scale,
            max_abs_error=err,
        )
