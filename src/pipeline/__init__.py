"""
Pipeline module for the vision loop.

The pipeline orchestrates one tick at a time:
- Frame acquisition from the observation source
- Preprocessing into a model tensor
- Inference and postprocessing
- Overlay rendering and publishing
"""

from .controller import LoopController, LoopStats, TickResult
from .scheduler import ManualScheduler, SchedScheduler, Scheduler

__all__ = [
    "LoopController",
    "LoopStats",
    "TickResult",
    "ManualScheduler",
    "SchedScheduler",
    "Scheduler",
]
