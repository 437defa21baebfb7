"""
FastAPI application factory for the preview server.

Routes:
- / -> preview page
- /api/status, /api/results -> JSON
- /api/snapshot.jpg, /api/stream.mjpg -> annotated frames
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from .routes import api, pages
from .state import WebState


def create_app(web_state: Optional[WebState] = None, stream_fps: int = 10) -> FastAPI:
    """Create the FastAPI app bound to one WebState."""
    app = FastAPI(
        title="Vision Loop",
        version="0.1.0",
        description="Real-time webcam inference preview",
    )
    app.state.web_state = web_state or WebState()
    app.state.stream_fps = stream_fps

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)
    return app
