"""
Real-time webcam inference loop with a browser preview.

Loads a pretrained model, starts the camera, and runs the
capture -> preprocess -> infer -> postprocess -> render loop. Annotated frames
and status are served at http://<host>:<port>/.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --model: Override model.source
    --no-web: Do not start the preview server
    --max-ticks: Stop after this many loop ticks
"""

import argparse
import logging
import os
import signal
import sys
import threading
import time
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from models.config import Config
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline import LoopController, SchedScheduler
from preprocessing import INTERPOLATIONS, LAYOUTS, NORMALIZATIONS
from rendering import OverlayRenderer
from runtime.context import RuntimeContext
from runtime.startup import load_model, start_camera
from web.app import create_app
from web.state import WebState

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_size_pair(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) == 2
        and all(isinstance(x, int) and not isinstance(x, bool) and x > 0 for x in value)
    )


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    device_id = camera['device_id']
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (URL/path)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera and not _is_size_pair(camera['resolution']):
        return False, "camera.resolution must be a list of two positive integers [width, height]"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"
    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"
    if camera.get('facing_mode', 'user') not in ('user', 'environment'):
        return False, "camera.facing_mode must be one of: user, environment"

    # Model
    model = config.get('model') or {}
    if not isinstance(model.get('source'), str) or not model.get('source'):
        return False, "model.source is required (path or URL)"
    if model.get('mode', 'detection') not in ('detection', 'classification'):
        return False, "model.mode must be one of: detection, classification"
    providers = model.get('providers')
    if providers is not None and (
        not isinstance(providers, list) or not all(isinstance(p, str) for p in providers)
    ):
        return False, "model.providers must be a list of strings"
    if model.get('feature_layer') is not None and not isinstance(model['feature_layer'], str):
        return False, "model.feature_layer must be a string"

    # Preprocess
    pre = config.get('preprocess') or {}
    if pre.get('interpolation', 'bilinear') not in INTERPOLATIONS:
        return False, f"preprocess.interpolation must be one of: {', '.join(INTERPOLATIONS)}"
    if pre.get('normalization', 'unit') not in NORMALIZATIONS:
        return False, f"preprocess.normalization must be one of: {', '.join(NORMALIZATIONS)}"
    if pre.get('layout') is not None and pre['layout'] not in LAYOUTS:
        return False, f"preprocess.layout must be one of: {', '.join(LAYOUTS)}"
    if pre.get('input_size') is not None and not _is_size_pair(pre['input_size']):
        return False, "preprocess.input_size must be a list of two positive integers [height, width]"
    for key in ('mean', 'std'):
        value = pre.get(key)
        if value is not None and (
            not isinstance(value, list) or len(value) != 3 or not all(_is_number(v) for v in value)
        ):
            return False, f"preprocess.{key} must be a list of three numbers"
    if pre.get('std') is not None and any(v == 0 for v in pre['std']):
        return False, "preprocess.std values must be non-zero"

    # Postprocess
    post = config.get('postprocess') or {}
    for key in ('conf_threshold', 'iou_threshold'):
        if key in post:
            value = post[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"postprocess.{key} must be between 0 and 1"
    for key in ('max_detections', 'top_k'):
        if key in post:
            value = post[key]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                return False, f"postprocess.{key} must be a positive integer"

    # Loop
    loop = config.get('loop') or {}
    if 'interval_ms' in loop and (not _is_number(loop['interval_ms']) or loop['interval_ms'] < 0):
        return False, "loop.interval_ms must be a non-negative number"
    max_ticks = loop.get('max_ticks')
    if max_ticks is not None and (not isinstance(max_ticks, int) or max_ticks <= 0):
        return False, "loop.max_ticks must be a positive integer"

    # Render
    render = config.get('render') or {}
    if render.get('mirror') is not None and not isinstance(render['mirror'], bool):
        return False, "render.mirror must be true, false or omitted"
    if 'jpeg_quality' in render:
        quality = render['jpeg_quality']
        if not isinstance(quality, int) or not (1 <= quality <= 100):
            return False, "render.jpeg_quality must be an integer between 1 and 100"

    # Web
    web = config.get('web') or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be an integer between 1 and 65535"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def build_context(config: Dict[str, Any], web_state: Optional[WebState] = None) -> RuntimeContext:
    """Create the runtime context with capture source and renderer; model is loaded later."""
    cfg = Config.from_dict(config)
    source = create_source_from_config(config['camera'], source_id="webcam")
    return RuntimeContext(
        config=cfg,
        source=source,
        renderer=OverlayRenderer(cfg.render, mirror=cfg.mirror),
        web_state=web_state,
    )


def start_web_server(web_state: WebState, cfg: Config) -> threading.Thread:
    def run_web_app():
        uvicorn.run(
            create_app(web_state, stream_fps=cfg.web.stream_fps),
            host=cfg.web.host,
            port=cfg.web.port,
            log_level="warning",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Web preview started on http://{cfg.web.host}:{cfg.web.port}/")
    return web_thread


def _handle_sigterm(signum, frame):
    """Treat SIGTERM like Ctrl+C so every wait ends in the same cleanup."""
    logging.info("Received SIGTERM, shutting down")
    raise KeyboardInterrupt


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Real-time webcam inference loop')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--model', type=str, default=None,
                        help='Override model.source (path or URL)')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the web preview server')
    parser.add_argument('--max-ticks', type=int, default=None,
                        help='Stop after this many loop ticks')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.model:
        config.setdefault('model', {})['source'] = args.model
    if args.max_ticks is not None:
        config.setdefault('loop', {})['max_ticks'] = args.max_ticks
    if args.no_web:
        config.setdefault('web', {})['enabled'] = False

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting vision loop")

    web_state = WebState()
    ctx = build_context(config, web_state=web_state)
    cfg = ctx.config
    if cfg.web.enabled:
        start_web_server(web_state, cfg)

    scheduler = SchedScheduler()
    controller = LoopController(ctx, scheduler, cfg.loop)
    signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        load_model(ctx)
        start_camera(ctx)

        if controller.start():
            scheduler.run()
        else:
            logging.error(
                f"Loop not started (model: {ctx.model_status}, camera: {ctx.camera_status})"
            )
            if cfg.web.enabled:
                # Keep serving the failure status until interrupted or terminated
                while True:
                    time.sleep(1)
    except KeyboardInterrupt:
        logging.info("Interrupted, stopping loop")
        controller.stop()
    finally:
        if ctx.source is not None:
            ctx.source.close()
        logging.info(f"Vision loop stopped (live tensors: {ctx.tensors.live_count})")


if __name__ == "__main__":
    main()
