from __future__ import annotations

import atexit
import contextlib
import dataclasses
import logging
import signal
import threading
from typing import Any

from flask import Flask, jsonify

from irrigation.config import load_config, setup_logging

# Import the handlers subpackage before binding the SocketIO instance below:
# loading ``irrigation.socketio`` sets it as a package attribute, which would
# otherwise shadow the ``socketio`` server instance exported here.
from irrigation.socketio import register_handlers
from irrigation.extensions import init_extensions, socketio  # noqa: E402


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    mqtt_client=None,
    notifier=None,
    start_worker: bool = True,
    install_signal_handlers: bool = True,
) -> Flask:
    config = load_config()
    if config_overrides:
        config = _apply_overrides(config, config_overrides)

    # Configure logging early so MQTT connect and subscriptions show up in irrigation.log
    setup_logging(debug=config.DEBUG, log_level=config.log_level)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    # Initialize Socket.IO BEFORE building ServiceContainer (EmitterService needs it)
    init_extensions(flask_app, config.socketio_cors_origins)

    from irrigation.services.container import ServiceContainer

    container = ServiceContainer.build(
        config,
        socketio,
        mqtt_client=mqtt_client,
        notifier=notifier,
        start_worker=start_worker,
    )
    flask_app.config["CONTAINER"] = container

    # ── Graceful shutdown handlers ──────────────────────────────────
    _shutdown_lock = threading.Lock()
    _shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal _shutdown_done
        with _shutdown_lock:
            if _shutdown_done:
                return
            _shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        try:
            container.shutdown()
        except Exception as exc:
            logging.warning("Error during graceful shutdown: %s", exc)

    def _signal_handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logging.info("Received %s, shutting down", sig_name)
        _graceful_shutdown(sig_name)
        raise SystemExit(0)

    flask_app.extensions["irrigation_shutdown"] = _graceful_shutdown
    atexit.register(_graceful_shutdown, "atexit")

    if install_signal_handlers:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(OSError, ValueError):
                signal.signal(sig, _signal_handler)

    @flask_app.get("/api/health")
    def health():
        report = container.health()
        status = 200 if report["status"] == "ok" else 503
        return jsonify(report), status

    # Register Socket.IO event handlers (must be after socketio init)
    register_handlers()

    logger = logging.getLogger(__name__)
    logger.info("Irrigation bridge initialized (device %s, %s decisions)", config.device_id, config.decision_mode)

    return flask_app


def _apply_overrides(config, overrides: dict[str, Any]):
    """Return a copy of ``config`` with ``overrides`` applied; keys match field names case-insensitively."""
    names = {f.name.lower(): f.name for f in dataclasses.fields(config) if f.init}
    unknown = sorted(key for key in overrides if key.lower() not in names)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return dataclasses.replace(config, **{names[key.lower()]: value for key, value in overrides.items()})


__all__ = ["create_app", "socketio"]
