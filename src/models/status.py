"""
Loop state and user-facing status strings.
"""

from __future__ import annotations

from enum import Enum


class LoopState(str, Enum):
    """Loop controller states."""
    IDLE = "idle"
    RUNNING = "running"


class ModelStatus:
    """Status messages shown while the model loads."""
    AWAITING = "Awaiting model..."
    LOADING = "Loading model..."
    READY = "Model loaded."
    FAILED = "Failed to load model."


class CameraStatus:
    """Status messages shown while the camera starts."""
    AWAITING = "Awaiting model..."
    STARTING = "Starting camera..."
    READY = "Webcam ready."
    FAILED = "Failed to start webcam."
