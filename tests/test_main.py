"""
Tests for the application entry point's shutdown handling.
"""

import signal
import sys
from unittest.mock import MagicMock, patch

import pytest

import main


@pytest.fixture
def restore_sigterm():
    previous = signal.getsignal(signal.SIGTERM)
    yield
    signal.signal(signal.SIGTERM, previous)


def _send_sigterm(seconds):
    signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)


class TestShutdown:
    def test_sigterm_handler_interrupts(self):
        with pytest.raises(KeyboardInterrupt):
            main._handle_sigterm(signal.SIGTERM, None)

    def test_sigterm_ends_failure_wait(self, temp_config_dir, restore_sigterm):
        """With the loop not started, SIGTERM still reaches cleanup."""
        source = MagicMock()
        argv = ["main.py", "--config", str(temp_config_dir / "config.yaml")]

        with patch.object(sys, "argv", argv), \
                patch("main.setup_logging"), \
                patch("main.start_web_server") as mock_web, \
                patch("main.create_source_from_config", return_value=source), \
                patch("main.load_model", return_value=False), \
                patch("main.start_camera", return_value=False), \
                patch("main.time.sleep", side_effect=_send_sigterm) as mock_sleep:
            main.main()

        mock_web.assert_called_once()
        mock_sleep.assert_called_once_with(1)
        source.close.assert_called_once()
