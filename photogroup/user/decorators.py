"""Decorators for routes acting as the device user."""

from functools import wraps

from flask import g, jsonify

from photogroup.extensions import get_profile_cache


def profile_required(f):
    """Load the cached profile into ``g.user`` or reject the request.

    Usage:
    @profile_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        profile = get_profile_cache().load()
        if not profile or not profile.get("id"):
            return jsonify({"success": False, "error": "User not found."}), 401
        g.user = profile
        return f(*args, **kwargs)

    return decorated_function
