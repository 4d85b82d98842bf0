from __future__ import annotations

import os
import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game import service
from .routes.health import bp as health_bp
from .routes.libraries import bp as libraries_bp
from .routes.prompts import bp as prompts_bp
from .routes.rooms import bp as rooms_bp
from .realtime.handlers import register_socketio_handlers
from .store import create_store


def create_app(config_overrides: dict | None = None) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    store = app.config.get("STORE") or create_store(app.config.get("STORE_URL", "memory://"))
    service.use_store(store)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = (app.config.get("SOCKETIO_ASYNC_MODE") or os.environ.get("SOCKETIO_ASYNC_MODE", "")).strip()
    if not async_mode:
        # eventlet is unreliable on Windows and on Python >= 3.13
        if sys.platform.startswith("win") or sys.version_info >= (3, 13):
            async_mode = "threading"
        else:
            async_mode = "eventlet"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(prompts_bp, url_prefix="/api")
    app.register_blueprint(libraries_bp, url_prefix="/api")

    register_socketio_handlers(
        socketio,
        generate=app.config.get("ANSWER_GENERATOR"),
        referee_enabled=app.config.get("REFEREE_ENABLED", True),
    )

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
