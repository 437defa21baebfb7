"""
Loop controller for the capture -> preprocess -> infer -> postprocess ->
render cycle.

Ticks run one at a time on the scheduler's thread. A tick schedules its
successor only after it finishes, so no two ticks ever overlap; stop()
cancels the pending successor and lets an in-flight tick complete.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from inference.features import FeatureStats
from inference.tensors import TensorScope
from models.config import LoopConfig
from models.detection import Detection, Prediction
from models.frame import FrameData
from models.status import LoopState
from pipeline.scheduler import Scheduler
from runtime.context import RuntimeContext


@dataclass
class TickResult:
    """Output of one processed tick."""
    frame_index: int
    timestamp: float
    detections: List[Detection] = field(default_factory=list)
    predictions: List[Prediction] = field(default_factory=list)
    features: Optional[FeatureStats] = None
    timings_ms: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_index": self.frame_index,
            "timestamp": self.timestamp,
            "detections": [d.to_dict() for d in self.detections],
            "predictions": [p.to_dict() for p in self.predictions],
            "features": self.features.to_dict() if self.features else None,
            "timings_ms": dict(self.timings_ms),
        }


@dataclass
class LoopStats:
    """Runtime statistics for the loop."""
    ticks: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    reentrant: int = 0
    last_tick_ms: float = 0.0
    avg_tick_ms: float = 0.0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    @property
    def fps(self) -> float:
        elapsed = time.time() - self.start_time
        return self.processed / elapsed if elapsed > 0 else 0.0

    def record_duration(self, ms: float) -> None:
        self.last_tick_ms = ms
        # EMA, alpha 0.1
        self.avg_tick_ms = ms if self.ticks <= 1 else 0.9 * self.avg_tick_ms + 0.1 * ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "last_tick_ms": self.last_tick_ms,
            "avg_tick_ms": self.avg_tick_ms,
            "fps": self.fps,
        }


class LoopController:
    """
    Drives the inference loop at a fixed cadence.

    Example:
        scheduler = SchedScheduler()
        controller = LoopController(ctx, scheduler, LoopConfig(interval_ms=100))
        if controller.start():
            scheduler.run()
    """

    def __init__(self, ctx: RuntimeContext, scheduler: Scheduler, config: Optional[LoopConfig] = None):
        self.ctx = ctx
        self.scheduler = scheduler
        self.config = config or LoopConfig()
        self.state = LoopState.IDLE
        self.stats = LoopStats()
        self.last_result: Optional[TickResult] = None
        self._in_tick = False
        self._pending: Any = None
        self._callbacks: List[Callable[[TickResult], None]] = []

    @property
    def is_running(self) -> bool:
        return self.state is LoopState.RUNNING

    @property
    def in_tick(self) -> bool:
        return self._in_tick

    def add_callback(self, callback: Callable[[TickResult], None]) -> None:
        """
        Add a callback to be called after each processed tick.

        Args:
            callback: Function taking the TickResult.
        """
        self._callbacks.append(callback)

    def start(self) -> bool:
        """
        Start ticking once both model and camera are ready.

        Returns:
            True if this call started the loop. Starting a running loop is a no-op.
        """
        if self.is_running:
            logging.debug("Loop already running, ignoring start()")
            return False
        if not self.ctx.model_ready:
            logging.warning(f"Loop not started: model not ready ({self.ctx.model_status})")
            return False
        if not self.ctx.camera_ready:
            logging.warning(f"Loop not started: camera not ready ({self.ctx.camera_status})")
            return False

        self.state = LoopState.RUNNING
        self.stats = LoopStats()
        self._publish_state()
        logging.info(f"Loop started: interval={self.config.interval_ms}ms, mode={self.ctx.mode}")

        # An in-flight tick reschedules itself when it finishes
        if self._pending is None and not self._in_tick:
            self._schedule(0.0)
        return True

    def stop(self) -> None:
        """Cancel the pending tick. An in-flight tick finishes and does not reschedule."""
        if not self.is_running:
            return
        self.state = LoopState.IDLE
        self._cancel_pending()
        self._publish_state()
        logging.info(
            f"Loop stopped: ticks={self.stats.ticks}, processed={self.stats.processed}, "
            f"skipped={self.stats.skipped}, errors={self.stats.errors}"
        )

    def tick(self) -> Optional[TickResult]:
        """Run one cycle, then schedule the next while running."""
        if self._in_tick:
            self.stats.reentrant += 1
            logging.warning("Tick already in progress, ignoring re-entrant call")
            return None
        # A direct call replaces the scheduled tick
        self._cancel_pending()
        if not self.is_running:
            return None

        self._in_tick = True
        started = time.perf_counter()
        result: Optional[TickResult] = None
        try:
            result = self._run_once()
        except Exception as e:
            self.stats.errors += 1
            logging.error(f"Tick {self.stats.ticks + 1} failed: {e}")
        finally:
            self._in_tick = False

        elapsed = time.perf_counter() - started
        self.stats.ticks += 1
        self.stats.record_duration(elapsed * 1000.0)
        if result is not None:
            self.stats.processed += 1
            self.last_result = result
            self._notify(result)

        self._handle_periodic_tasks()

        if self.config.max_ticks is not None and self.stats.ticks >= self.config.max_ticks:
            logging.info(f"Reached max_ticks={self.config.max_ticks}")
            self.stop()

        if self.is_running:
            interval_s = self.config.interval_ms / 1000.0
            self._schedule(max(0.0, interval_s - elapsed))
        return result

    def _schedule(self, delay_s: float) -> None:
        self._cancel_pending()
        self._pending = self.scheduler.call_later(delay_s, self._on_timer)

    def _on_timer(self) -> None:
        self._pending = None
        self.tick()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
            self._pending = None

    def _skip(self, reason: str) -> None:
        self.stats.skipped += 1
        logging.debug(f"Tick skipped: {reason}")

    def _run_once(self) -> Optional[TickResult]:
        ctx = self.ctx
        if ctx.engine is None or ctx.preprocessor is None:
            self._skip("model not ready")
            return None
        if not ctx.video_ready:
            self._skip("video not ready")
            return None

        frame_data = ctx.source.read()
        if frame_data is None:
            self._skip("no frame")
            return None

        timings: Dict[str, float] = {}
        features: Optional[FeatureStats] = None
        with TensorScope(ctx.tensors) as scope:
            t0 = time.perf_counter()
            input_tensor = ctx.preprocessor.process(frame_data, scope)
            if input_tensor is None:
                self._skip("frame not decodable")
                return None
            t1 = time.perf_counter()

            primary = ctx.engine.output_names[:1]
            inspect_primary = False
            output_names = None
            if ctx.inspector is not None and ctx.inspector.enabled:
                if ctx.inspector.layer_name in primary:
                    inspect_primary = True
                else:
                    output_names = primary + ctx.inspector.output_names
            outputs = [
                scope.track(out, name=f"output{i}")
                for i, out in enumerate(ctx.engine.run(input_tensor.array, output_names))
            ]
            if not outputs:
                raise RuntimeError("Model returned no outputs")
            t2 = time.perf_counter()

            detections, predictions = self._postprocess(outputs[0].array, frame_data)
            if inspect_primary:
                features = ctx.inspector.inspect(outputs[0].array)
            elif output_names is not None and len(outputs) > 1:
                features = ctx.inspector.inspect(outputs[1].array)
            t3 = time.perf_counter()

        annotated = None
        if ctx.renderer is not None:
            annotated = ctx.renderer.render(frame_data.frame, detections, predictions)
        t4 = time.perf_counter()

        timings["preprocess"] = (t1 - t0) * 1000.0
        timings["inference"] = (t2 - t1) * 1000.0
        timings["postprocess"] = (t3 - t2) * 1000.0
        timings["render"] = (t4 - t3) * 1000.0

        result = TickResult(
            frame_index=frame_data.frame_index,
            timestamp=frame_data.timestamp,
            detections=detections,
            predictions=predictions,
            features=features,
            timings_ms=timings,
        )
        ctx.publish(result, annotated)
        return result

    def _postprocess(self, output, frame_data: FrameData):
        ctx = self.ctx
        if ctx.mode == "classification":
            return [], ctx.postprocessor.process(output)

        width_ratio, height_ratio = ctx.preprocessor.scale_ratios(frame_data.width, frame_data.height)
        result = ctx.postprocessor.process(output, width_ratio, height_ratio)
        return result.to_detections(ctx.labels), []

    def _notify(self, result: TickResult) -> None:
        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

    def _publish_state(self) -> None:
        if self.ctx.web_state is not None:
            self.ctx.web_state.update_status(loop_state=self.state.value)

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if self.ctx.web_state is not None:
            self.ctx.web_state.update_status(stats=self.stats.to_dict(), tensors=self.ctx.tensors.snapshot())

        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Loop stats: ticks={self.stats.ticks}, processed={self.stats.processed}, "
                f"skipped={self.stats.skipped}, errors={self.stats.errors}, "
                f"fps={self.stats.fps:.1f}, avg_tick={self.stats.avg_tick_ms:.1f}ms, "
                f"live_tensors={self.ctx.tensors.live_count}"
            )
            self.stats.last_stats_log_time = now
