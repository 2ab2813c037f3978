from __future__ import annotations

import atexit
import weakref
from typing import Callable
from uuid import uuid4

from flask import Flask, g, request

from src.chessacademy.domain.chess import Scheduler, ThreadingScheduler
from src.chessacademy.domain.lessons import LessonService
from src.chessacademy.domain.profiles import ProfileService
from src.chessacademy.infrastructure.config import AppConfig, load_config
from src.chessacademy.infrastructure.persistence import (
    Base,
    RecordStore,
    create_engine_from_config,
    create_session_factory,
)
from src.chessacademy.interface.http.common import TRACE_HEADER, current_user_id
from src.chessacademy.interface.http.dashboard_routes import dashboard_bp
from src.chessacademy.interface.http.gameplay_routes import gameplay_bp
from src.chessacademy.interface.http.lesson_routes import lesson_bp
from src.chessacademy.interface.http.session_registry import SessionRegistry
from src.chessacademy.interface.telemetry.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)


# Session registries of the apps created so far, held weakly.
_LIVE_REGISTRIES: "weakref.WeakSet[SessionRegistry]" = weakref.WeakSet()


@atexit.register
def _close_live_registries() -> None:
    for registry in list(_LIVE_REGISTRIES):
        registry.close_all()


def create_app(
    config: AppConfig | None = None,
    *,
    record_store: RecordStore | None = None,
    scheduler_factory: Callable[[], Scheduler] = ThreadingScheduler,
) -> Flask:
    """Instantiate Flask application with shared configuration."""
    cfg = config or load_config()

    setup_logging(
        cfg.additional.get("STRUCTLOG_LEVEL", "INFO"),
        json_output=cfg.flask_env != "development",
    )
    logger = get_logger("chessacademy.app")

    app = Flask(__name__)
    app.config.update(
        DATABASE_URL=cfg.database_url,
        ENV=cfg.flask_env,
        APP_CONFIG=cfg,
    )

    if record_store is None:
        engine = create_engine_from_config(cfg)
        Base.metadata.create_all(bind=engine)
        record_store = RecordStore(create_session_factory(engine=engine))

    profiles = ProfileService(record_store)
    registry = SessionRegistry(
        profiles=profiles,
        scheduler_factory=scheduler_factory,
        reply_delay_seconds=cfg.ai_reply_delay_seconds,
        retention_seconds=cfg.session_retention_seconds,
    )
    app.extensions["record_store"] = record_store
    app.extensions["profile_service"] = profiles
    app.extensions["lesson_service"] = LessonService(record_store)
    app.extensions["session_registry"] = registry
    _LIVE_REGISTRIES.add(registry)

    @app.before_request
    def _bind_trace():
        g.trace_id = request.headers.get(TRACE_HEADER) or uuid4().hex
        bind_request_context(g.trace_id, current_user_id())

    @app.teardown_request
    def _clear_trace(_exc):
        clear_request_context()

    app.register_blueprint(gameplay_bp, url_prefix="/api/v1/sessions")
    app.register_blueprint(dashboard_bp, url_prefix="/api/v1/dashboard")
    app.register_blueprint(lesson_bp, url_prefix="/api/v1/lessons")

    @app.get("/healthz")
    def healthcheck():
        registry.evict_finished()
        return {"status": "ok", "liveSessions": len(registry)}, 200

    logger.info(
        "flask_app_initialized",
        env=cfg.flask_env,
        default_time_control=cfg.default_time_control,
        ai_reply_delay_seconds=cfg.ai_reply_delay_seconds,
    )
    return app


__all__ = ["create_app"]
