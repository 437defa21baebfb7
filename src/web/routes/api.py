from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from models.status import CameraStatus, ModelStatus
from ..api_models import ResultsResponse, StatusResponse
from ..state import WebState

router = APIRouter()


def get_web_state(request: Request) -> WebState:
    return request.app.state.web_state


def _derive_status(status: Dict[str, Any], now: float) -> Tuple[str, str, List[str]]:
    """
    Lightweight status classifier used by /api/status.

    Failed model/camera => offline. Loop idle => starting.
    Running: >10s since last frame => offline; >2s => degraded;
    more than half the ticks failing => degraded.
    """
    model_status = status.get("model_status")
    camera_status = status.get("camera_status")
    warnings: List[str] = []

    if model_status == ModelStatus.FAILED:
        return "offline", model_status, ["model_failed"]
    if camera_status == CameraStatus.FAILED:
        return "offline", camera_status, ["camera_failed"]

    if status.get("loop_state") != "running":
        if model_status != ModelStatus.READY:
            return "starting", model_status or ModelStatus.AWAITING, warnings
        return "starting", camera_status or CameraStatus.STARTING, warnings

    level = "running"
    message = "Detecting."
    last_frame_ts = status.get("last_frame_ts")
    last_frame_age = now - last_frame_ts if last_frame_ts else None
    if last_frame_age is None or last_frame_age > 10:
        level = "offline"
        warnings.append("camera_offline")
    elif last_frame_age > 2:
        level = "degraded"
        warnings.append("camera_stale")

    stats = status.get("stats") or {}
    ticks = stats.get("ticks", 0)
    if ticks and stats.get("errors", 0) / ticks > 0.5:
        warnings.append("inference_errors")
        if level == "running":
            level = "degraded"

    return level, message, warnings


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    now = time.time()
    sys_status = get_web_state(request).get_status_copy()
    level, message, warnings = _derive_status(sys_status, now)

    start_time = sys_status.get("start_time")
    last_frame_ts = sys_status.get("last_frame_ts")
    tensors = sys_status.get("tensors") or {}
    return {
        "status": level,
        "message": message,
        "model_status": sys_status.get("model_status"),
        "camera_status": sys_status.get("camera_status"),
        "loop_state": sys_status.get("loop_state", "idle"),
        "last_frame_age_s": now - last_frame_ts if last_frame_ts else None,
        "uptime_seconds": int(now - start_time) if start_time else None,
        "stats": sys_status.get("stats") or {},
        "live_tensors": tensors.get("live", 0),
        "warnings": warnings,
    }


@router.get("/results", response_model=ResultsResponse)
def results(request: Request):
    result = get_web_state(request).get_result()
    if result is None:
        raise HTTPException(status_code=404, detail="No results yet")
    return result


@router.get("/snapshot.jpg")
def snapshot(request: Request):
    jpeg = get_web_state(request).get_jpeg()
    if jpeg is None:
        raise HTTPException(status_code=503, detail="No frame available yet")
    return Response(content=jpeg, media_type="image/jpeg")


def mjpeg_stream(state: WebState, fps: int = 10, max_frames: Optional[int] = None) -> Iterable[bytes]:
    """Yield MJPEG multipart chunks of the latest annotated frame."""
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps
    sent = 0
    while max_frames is None or sent < max_frames:
        jpg = state.get_jpeg()
        if jpg is not None:
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            sent += 1
        time.sleep(delay)


@router.get("/stream.mjpg")
def stream(request: Request, fps: Optional[int] = None):
    state = get_web_state(request)
    fps = fps or request.app.state.stream_fps
    return StreamingResponse(
        mjpeg_stream(state, fps=fps),
        media_type="multipart/x-mixed-replace; boundary=frame",
    )
