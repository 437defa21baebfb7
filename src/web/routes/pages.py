"""
Page routes for the preview interface.

A single page: the annotated MJPEG stream plus a polled status line.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

INDEX_HTML = """<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>Real-Time Object Detection</title>
  <style>
    body { background: #111827; color: #fff; font-family: sans-serif; text-align: center; }
    img { max-width: 100%; border-radius: 8px; }
    #status { color: #9ca3af; margin-top: 1em; }
  </style>
</head>
<body>
  <h1>Real-Time Object Detection</h1>
  <img src="/api/stream.mjpg" alt="live preview">
  <p id="status">Loading...</p>
  <script>
    async function poll() {
      try {
        const res = await fetch("/api/status");
        const s = await res.json();
        document.getElementById("status").textContent =
          s.message + " (" + s.status + ", " + s.stats.fps.toFixed(1) + " fps)";
      } catch (e) {
        document.getElementById("status").textContent = "Server unreachable.";
      }
    }
    poll();
    setInterval(poll, 2000);
  </script>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def index():
    """Preview page."""
    return HTMLResponse(content=INDEX_HTML)
