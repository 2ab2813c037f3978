from __future__ import annotations

import logging
import sys
import structlog


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = "INFO", *, json_output: bool = True) -> None:
    """Configure structlog for JSON logs carrying request-scoped context.

    Anything bound through :func:`bind_request_context` (trace id, user id)
    is merged into every event emitted while handling the request, including
    events from domain modules.
    """
    min_level = _resolve_level(level)
    logging.basicConfig(
        format="%(message)s",
        level=min_level,
        stream=sys.stdout,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None):
    """Return a structlog logger bound to the provided name."""
    return structlog.get_logger(name or "chessacademy")


def bind_request_context(trace_id: str, user_id: str | None = None) -> None:
    structlog.contextvars.clear_contextvars()
    context = {"trace_id": trace_id}
    if user_id:
        context["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "bind_request_context",
    "clear_request_context",
    "get_logger",
    "setup_logging",
]
