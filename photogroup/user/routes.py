"""Routes for the user blueprint."""

from flask import jsonify, request

from photogroup.extensions import get_db, get_profile_cache

from . import bp
from .decorators import profile_required
from .services import UserService


@bp.route("/profile", methods=["POST"])
def create_profile():
    """Create a user and cache it as this device's profile."""
    payload = request.get_json(silent=True) or request.form
    profile = UserService.create_profile(
        get_db(), get_profile_cache(), payload.get("name", "")
    )
    return jsonify({"success": True, "user": profile}), 201


@bp.route("/profile", methods=["GET"])
@profile_required
def get_profile():
    """Return the cached profile."""
    return jsonify({"success": True, "user": get_profile_cache().load()})


@bp.route("/profile", methods=["DELETE"])
def clear_profile():
    """Forget the cached profile."""
    UserService.clear_user_data(get_profile_cache())
    return jsonify({"success": True})


@bp.route("/stats", methods=["GET"])
@profile_required
def user_stats():
    """Return the profile summary shown on overview screens."""
    cache = get_profile_cache()
    is_valid, reason = UserService.validate_user(cache)
    return jsonify(
        {
            "success": True,
            "stats": UserService.get_user_stats(cache),
            "valid": is_valid,
            "reason": reason,
        }
    )
