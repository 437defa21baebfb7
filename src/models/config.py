"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    facing_mode: str = "user"
    buffer_size: int = 1
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            facing_mode=d.get("facing_mode", "user"),
            buffer_size=d.get("buffer_size", 1),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "facing_mode": self.facing_mode,
            "buffer_size": self.buffer_size,
            "max_retries": self.max_retries,
        }


@dataclass
class ModelConfig:
    """Model artifact and engine configuration."""
    source: str = ""
    mode: str = "detection"
    cache_dir: str = "data/models"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    labels_file: Optional[str] = None
    feature_layer: Optional[str] = None
    download_timeout: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            source=d.get("source", ""),
            mode=d.get("mode", "detection"),
            cache_dir=d.get("cache_dir", "data/models"),
            providers=d.get("providers") or ["CPUExecutionProvider"],
            labels_file=d.get("labels_file"),
            feature_layer=d.get("feature_layer"),
            download_timeout=d.get("download_timeout", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "source": self.source,
            "mode": self.mode,
            "cache_dir": self.cache_dir,
            "providers": self.providers,
            "download_timeout": self.download_timeout,
        }
        if self.labels_file is not None:
            d["labels_file"] = self.labels_file
        if self.feature_layer is not None:
            d["feature_layer"] = self.feature_layer
        return d


@dataclass
class PreprocessConfig:
    """
    Frame-to-tensor conversion settings.

    input_size and layout default to what the model declares.
    """
    input_size: Optional[List[int]] = None
    interpolation: str = "bilinear"
    normalization: str = "unit"
    mean: Optional[List[float]] = None
    std: Optional[List[float]] = None
    layout: Optional[str] = None
    rgb: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PreprocessConfig":
        return cls(
            input_size=d.get("input_size"),
            interpolation=d.get("interpolation", "bilinear"),
            normalization=d.get("normalization", "unit"),
            mean=d.get("mean"),
            std=d.get("std"),
            layout=d.get("layout"),
            rgb=d.get("rgb", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "interpolation": self.interpolation,
            "normalization": self.normalization,
            "rgb": self.rgb,
        }
        if self.input_size is not None:
            d["input_size"] = self.input_size
        if self.mean is not None:
            d["mean"] = self.mean
        if self.std is not None:
            d["std"] = self.std
        if self.layout is not None:
            d["layout"] = self.layout
        return d


@dataclass
class PostprocessConfig:
    """Thresholds for detection and classification postprocessing."""
    conf_threshold: float = 0.5
    iou_threshold: float = 0.45
    max_detections: int = 20
    top_k: int = 3
    softmax: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PostprocessConfig":
        return cls(
            conf_threshold=d.get("conf_threshold", 0.5),
            iou_threshold=d.get("iou_threshold", 0.45),
            max_detections=d.get("max_detections", 20),
            top_k=d.get("top_k", 3),
            softmax=d.get("softmax", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "max_detections": self.max_detections,
            "top_k": self.top_k,
            "softmax": self.softmax,
        }


@dataclass
class LoopConfig:
    """Loop cadence settings."""
    interval_ms: float = 100.0
    max_ticks: Optional[int] = None
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            interval_ms=d.get("interval_ms", 100.0),
            max_ticks=d.get("max_ticks"),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "interval_ms": self.interval_ms,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.max_ticks is not None:
            d["max_ticks"] = self.max_ticks
        return d


@dataclass
class RenderConfig:
    """Overlay drawing settings. Colors are BGR."""
    mirror: Optional[bool] = None
    color: List[int] = field(default_factory=lambda: [74, 163, 22])
    text_color: List[int] = field(default_factory=lambda: [255, 255, 255])
    line_width: int = 3
    font_scale: float = 0.6
    jpeg_quality: int = 80

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RenderConfig":
        return cls(
            mirror=d.get("mirror"),
            color=d.get("color", [74, 163, 22]),
            text_color=d.get("text_color", [255, 255, 255]),
            line_width=d.get("line_width", 3),
            font_scale=d.get("font_scale", 0.6),
            jpeg_quality=d.get("jpeg_quality", 80),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "color": self.color,
            "text_color": self.text_color,
            "line_width": self.line_width,
            "font_scale": self.font_scale,
            "jpeg_quality": self.jpeg_quality,
        }
        if self.mirror is not None:
            d["mirror"] = self.mirror
        return d


@dataclass
class WebConfig:
    """Web preview server settings."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000
    stream_fps: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
            stream_fps=d.get("stream_fps", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
            "stream_fps": self.stream_fps,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    postprocess: PostprocessConfig = field(default_factory=PostprocessConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/vision_loop.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            preprocess=PreprocessConfig.from_dict(d.get("preprocess", {}) or {}),
            postprocess=PostprocessConfig.from_dict(d.get("postprocess", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            render=RenderConfig.from_dict(d.get("render", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/vision_loop.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "preprocess": self.preprocess.to_dict(),
            "postprocess": self.postprocess.to_dict(),
            "loop": self.loop.to_dict(),
            "render": self.render.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }

    @property
    def mirror(self) -> bool:
        """Mirror the preview when configured, else when the camera faces the user."""
        if self.render.mirror is not None:
            return bool(self.render.mirror)
        return self.camera.facing_mode == "user"
