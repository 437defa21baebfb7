from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LoopStatsModel(BaseModel):
    ticks: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    last_tick_ms: float = 0.0
    avg_tick_ms: float = 0.0
    fps: float = 0.0


class StatusResponse(BaseModel):
    """Status polled by the preview page."""
    status: str = Field(..., description="running|starting|degraded|offline")
    message: str = Field(..., description="Human-readable status line")
    model_status: Optional[str] = None
    camera_status: Optional[str] = None
    loop_state: str = "idle"
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last processed frame")
    uptime_seconds: Optional[int] = None
    stats: LoopStatsModel = Field(default_factory=LoopStatsModel)
    live_tensors: int = 0
    warnings: List[str] = Field(default_factory=list)


class DetectionModel(BaseModel):
    bbox: List[float]
    class_id: int
    class_name: Optional[str] = None
    confidence: float


class PredictionModel(BaseModel):
    class_name: str
    probability: float


class FeatureStatsModel(BaseModel):
    layer: str
    shape: List[int]
    float_bytes: int
    int8_bytes: int
    scale: float
    max_abs_error: float
    compression_ratio: float


class ResultsResponse(BaseModel):
    frame_index: int
    timestamp: float
    detections: List[DetectionModel] = Field(default_factory=list)
    predictions: List[PredictionModel] = Field(default_factory=list)
    features: Optional[FeatureStatsModel] = None
    timings_ms: Dict[str, float] = Field(default_factory=dict)
