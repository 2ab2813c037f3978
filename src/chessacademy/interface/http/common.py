from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import g, jsonify, request

USER_HEADER = "X-User-Id"
TRACE_HEADER = "X-Trace-Id"


def current_user_id() -> str | None:
    """Identity asserted by the upstream auth provider, if any."""
    value = request.headers.get(USER_HEADER, "").strip()
    return value or None


def trace_id() -> str | None:
    return g.get("trace_id")


def domain_error(code: str, message: str, status: int = 400, detail: Any | None = None):
    payload: dict[str, Any] = {"code": code, "message": message, "traceId": trace_id()}
    if detail is not None:
        payload["detail"] = detail
    return jsonify(payload), status


def unauthenticated():
    return domain_error("unauthenticated", f"{USER_HEADER} header is required.", status=401)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


__all__ = [
    "TRACE_HEADER",
    "USER_HEADER",
    "current_user_id",
    "domain_error",
    "isoformat",
    "trace_id",
    "unauthenticated",
]
