from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from src.chessacademy.domain.profiles import ProfileService
from src.chessacademy.interface.http.common import current_user_id, domain_error, unauthenticated
from src.chessacademy.interface.telemetry.logging import get_logger

dashboard_bp = Blueprint("dashboard", __name__)
logger = get_logger("chessacademy.api.dashboard")


def _profiles() -> ProfileService:
    return current_app.extensions["profile_service"]


@dashboard_bp.get("")
def get_dashboard():
    user_id = current_user_id()
    if user_id is None:
        return unauthenticated()

    result = _profiles().dashboard(user_id)
    if result.error == "not_found":
        return domain_error("profile_not_found", "No profile exists for this user.", status=404)
    if not result.ok:
        logger.warning("profile_fetch_failed", error=result.error)
        return domain_error("profile_unavailable", "Failed to load profile data", status=502)
    return jsonify(result.data), 200


@dashboard_bp.put("/profile")
def put_profile():
    user_id = current_user_id()
    if user_id is None:
        return unauthenticated()

    payload = request.get_json(silent=True) or {}
    username = payload.get("username")
    display_name = payload.get("displayName")
    for field_name, value in (("username", username), ("displayName", display_name)):
        if value is not None and (not isinstance(value, str) or not value.strip()):
            return domain_error("invalid_profile", f"{field_name} must be a non-empty string.")

    result = _profiles().ensure_profile(
        user_id,
        username=username.strip() if username else None,
        display_name=display_name.strip() if display_name else None,
    )
    if not result.ok:
        logger.warning("profile_upsert_failed", error=result.error)
        return domain_error("profile_unavailable", "Failed to save profile", status=502)

    logger.info("profile_saved", username=result.data.get("username"))
    return get_dashboard()


__all__ = ["dashboard_bp"]
