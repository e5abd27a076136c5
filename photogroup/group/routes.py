"""Routes for the group blueprint."""

from flask import g, jsonify, request

from photogroup.errors import NotFoundError
from photogroup.extensions import get_db, get_profile_cache
from photogroup.user.decorators import profile_required

from . import bp
from .services import GroupService


@bp.route("/create", methods=["POST"])
@profile_required
def create_group():
    """Create a group and join it as its owner."""
    payload = request.get_json(silent=True) or request.form
    db = get_db()
    group = GroupService.create_group(
        db,
        payload.get("code", ""),
        name=payload.get("name", ""),
        description=payload.get("description", ""),
        owner_id=g.user["id"],
    )
    group = GroupService.join_group(db, get_profile_cache(), group["id"])
    return jsonify({"success": True, "group": group}), 201


@bp.route("/join", methods=["POST"])
@profile_required
def join_group():
    """Join an existing group by its code."""
    payload = request.get_json(silent=True) or request.form
    group = GroupService.join_group(
        get_db(), get_profile_cache(), payload.get("code", "")
    )
    return jsonify({"success": True, "group": group})


@bp.route("/mine", methods=["GET"])
@profile_required
def my_groups():
    """Return the groups the cached user belongs to."""
    groups = GroupService.get_user_groups(get_db(), get_profile_cache())
    return jsonify({"success": True, "groups": groups})


@bp.route("/<string:group_id>", methods=["GET"])
def view_group(group_id):
    """Return a group's details."""
    group = GroupService.get_group(get_db(), group_id)
    if group is None:
        raise NotFoundError("Group not found.")
    return jsonify({"success": True, "group": group})
