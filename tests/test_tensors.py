"""
Tests for tensor handles, scopes and the live-tensor registry.
"""

import numpy as np
import pytest

from inference.tensors import Tensor, TensorRegistry, TensorReleasedError, TensorScope


class TestTensor:
    def test_allocation_is_counted(self):
        registry = TensorRegistry()
        t = Tensor(np.zeros((2, 3), dtype=np.float32), registry, name="x")

        assert registry.live_count == 1
        assert registry.live_bytes == 24
        assert t.shape == (2, 3)
        assert t.dtype == np.float32
        assert t.nbytes == 24

    def test_release_is_idempotent(self):
        registry = TensorRegistry()
        t = Tensor(np.ones(4), registry)

        t.release()
        t.release()

        assert t.released
        assert registry.live_count == 0
        assert registry.live_bytes == 0

    def test_access_after_release_raises(self):
        registry = TensorRegistry()
        t = Tensor(np.ones(4), registry, name="input")
        t.release()

        with pytest.raises(TensorReleasedError, match="input"):
            _ = t.array
        assert "released" in repr(t)


class TestTensorScope:
    def test_scope_releases_on_exit(self):
        registry = TensorRegistry()

        with TensorScope(registry) as scope:
            a = scope.track(np.zeros(10), "a")
            b = scope.track(np.zeros(10), "b")
            assert registry.live_count == 2
            assert scope.owned_count == 2

        assert registry.live_count == 0
        assert a.released and b.released

    def test_scope_releases_on_exception(self):
        """Tensors are released even when the body raises."""
        registry = TensorRegistry()

        with pytest.raises(ValueError):
            with TensorScope(registry) as scope:
                scope.track(np.zeros(10), "a")
                raise ValueError("inference failed")

        assert registry.live_count == 0

    def test_keep_transfers_ownership(self):
        registry = TensorRegistry()

        with TensorScope(registry) as scope:
            kept = scope.keep(scope.track(np.zeros(3), "kept"))
            scope.track(np.zeros(3), "temp")

        assert not kept.released
        assert registry.live_count == 1

        kept.release()
        assert registry.live_count == 0

    def test_closed_scope_rejects_tracking(self):
        scope = TensorScope(TensorRegistry())
        scope.close()

        with pytest.raises(RuntimeError, match="closed"):
            scope.track(np.zeros(1))


class TestTensorRegistry:
    def test_peak_and_totals(self):
        registry = TensorRegistry()

        for _ in range(3):
            with TensorScope(registry) as scope:
                scope.track(np.zeros(4))
                scope.track(np.zeros(4))

        snap = registry.snapshot()
        assert snap["live"] == 0
        assert snap["live_bytes"] == 0
        assert snap["peak"] == 2
        assert snap["total_allocated"] == 6
