"""
Tensor handles with explicit lifetimes.

Every tensor produced during a loop tick is acquired through a TensorScope.
Leaving the scope releases whatever it still owns, on normal exit and on
exceptions alike, so the registry's live count returns to its baseline
between ticks.

Example:
    registry = TensorRegistry()
    with TensorScope(registry) as scope:
        t = scope.track(np.zeros((1, 3, 640, 640), dtype=np.float32), "input")
        outputs = engine.run(t.array)
    assert registry.live_count == 0
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np


class TensorReleasedError(RuntimeError):
    """Raised when a released tensor is accessed."""


class TensorRegistry:
    """Counts live tensor handles and the bytes they hold."""

    def __init__(self):
        self._live = 0
        self._live_bytes = 0
        self._peak = 0
        self._total_allocated = 0

    @property
    def live_count(self) -> int:
        return self._live

    @property
    def live_bytes(self) -> int:
        return self._live_bytes

    @property
    def peak_count(self) -> int:
        return self._peak

    @property
    def total_allocated(self) -> int:
        return self._total_allocated

    def _on_alloc(self, nbytes: int) -> None:
        self._live += 1
        self._live_bytes += nbytes
        self._total_allocated += 1
        self._peak = max(self._peak, self._live)

    def _on_release(self, nbytes: int) -> None:
        self._live -= 1
        self._live_bytes -= nbytes

    def snapshot(self) -> dict:
        return {
            "live": self._live,
            "live_bytes": self._live_bytes,
            "peak": self._peak,
            "total_allocated": self._total_allocated,
        }


class Tensor:
    """A tracked numeric buffer. Access after release() raises."""

    __slots__ = ("_array", "_registry", "_nbytes", "name")

    def __init__(self, array: np.ndarray, registry: TensorRegistry, name: Optional[str] = None):
        self._array: Optional[np.ndarray] = array
        self._registry = registry
        self._nbytes = int(array.nbytes)
        self.name = name
        registry._on_alloc(self._nbytes)

    @property
    def array(self) -> np.ndarray:
        if self._array is None:
            raise TensorReleasedError(f"Tensor {self.name or '<unnamed>'} was already released")
        return self._array

    @property
    def released(self) -> bool:
        return self._array is None

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.array.shape

    @property
    def dtype(self) -> np.dtype:
        return self.array.dtype

    @property
    def nbytes(self) -> int:
        return self._nbytes

    def release(self) -> None:
        """Drop the buffer. Releasing twice is a no-op."""
        if self._array is None:
            return
        self._array = None
        self._registry._on_release(self._nbytes)

    def __repr__(self) -> str:
        if self._array is None:
            return f"Tensor(name={self.name!r}, released)"
        return f"Tensor(name={self.name!r}, shape={self._array.shape}, dtype={self._array.dtype})"


class TensorScope:
    """
    Scoped acquisition of tensors.

    Tensors created through track() belong to the scope until keep() hands
    one off to the caller, who then owns its release.
    """

    def __init__(self, registry: TensorRegistry):
        self._registry = registry
        self._owned: List[Tensor] = []
        self._closed = False

    def track(self, array: np.ndarray, name: Optional[str] = None) -> Tensor:
        if self._closed:
            raise RuntimeError("TensorScope is closed")
        tensor = Tensor(np.asarray(array), self._registry, name=name)
        self._owned.append(tensor)
        return tensor

    def keep(self, tensor: Tensor) -> Tensor:
        """Transfer ownership of a tensor out of this scope."""
        self._owned = [t for t in self._owned if t is not tensor]
        return tensor

    @property
    def owned_count(self) -> int:
        return len(self._owned)

    def close(self) -> None:
        while self._owned:
            self._owned.pop().release()
        self._closed = True

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            logging.debug(f"Releasing {len(self._owned)} tensors after error: {exc_type.__name__}")
        self.close()
