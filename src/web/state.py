import threading
import time
from typing import Any, Dict, Optional


class WebState:
    """
    Latest loop output shared with the web server thread.

    The loop writes, request handlers read copies. One instance is created
    at startup and handed to both sides.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._jpeg: Optional[bytes] = None
        self._result: Optional[Dict[str, Any]] = None
        self._status: Dict[str, Any] = {
            "model_status": None,
            "camera_status": None,
            "loop_state": "idle",
            "stats": {},
            "tensors": {},
            "start_time": time.time(),
            "last_frame_ts": None,
        }

    def set_result(self, result: Dict[str, Any], jpeg: Optional[bytes]) -> None:
        """Store the latest tick result and its annotated JPEG."""
        with self._lock:
            self._result = result
            if jpeg is not None:
                self._jpeg = jpeg
            self._status["last_frame_ts"] = time.time()

    def get_result(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._result) if self._result is not None else None

    def get_jpeg(self) -> Optional[bytes]:
        with self._lock:
            return self._jpeg

    def update_status(self, **fields: Any) -> None:
        with self._lock:
            self._status.update(fields)

    def get_status_copy(self) -> Dict[str, Any]:
        """Return a shallow copy of the current status."""
        with self._lock:
            return dict(self._status)
