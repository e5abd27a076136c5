"""Routes for the post blueprint."""

from flask import g, jsonify, request

from photogroup.errors import ValidationError
from photogroup.extensions import (
    get_bucket,
    get_db,
    get_profile_cache,
    get_upload_config,
)
from photogroup.feed import build_feed_view
from photogroup.media.sources import declared_type, encode_data_uri, ensure_within_limit
from photogroup.user.decorators import profile_required

from . import bp
from .services import PostService


def _image_ref(payload, field, config):
    """Return an image reference from an uploaded file or a submitted URI.

    Uploaded files are carried as ``data:`` URIs with the type the client
    declared for them.
    """
    file_storage = request.files.get(field)
    if file_storage and file_storage.filename:
        data = file_storage.stream.read(config.max_bytes + 1)
        ensure_within_limit(len(data), config)
        content_type = declared_type(file_storage.mimetype, file_storage.filename)
        return encode_data_uri(data, content_type)
    image_ref = payload.get(field) or None
    if image_ref is not None and not isinstance(image_ref, str):
        raise ValidationError(f"{field} must be a string.")
    return image_ref


@bp.route("/", methods=["POST"])
@profile_required
def create_post():
    """Create a single or dual camera post as the cached user."""
    payload = request.get_json(silent=True) or request.form
    config = get_upload_config().for_requests()
    post = PostService.create_post(
        get_db(),
        get_bucket(),
        get_profile_cache(),
        _image_ref(payload, "back_image", config),
        payload.get("caption", ""),
        g.user.get("name", ""),
        g.user["id"],
        payload.get("group_id", ""),
        front_image=_image_ref(payload, "front_image", config),
        config=config,
    )
    return jsonify({"success": True, "post": post}), 201


@bp.route("/<string:post_id>", methods=["GET"])
def view_post(post_id):
    """Return a single post."""
    return jsonify({"success": True, "post": PostService.get_post(get_db(), post_id)})


@bp.route("/group/<string:group_id>", methods=["GET"])
def group_feed(group_id):
    """Return a group's posts with the viewer's lock state."""
    posts = PostService.get_group_posts(get_db(), group_id)
    view = build_feed_view(get_profile_cache().load(), group_id, posts)
    return jsonify({"success": True, **view.to_dict()})


@bp.route("/user/<string:user_id>", methods=["GET"])
def user_posts(user_id):
    """Return a user's posts across all groups."""
    return jsonify(
        {"success": True, "posts": PostService.get_user_posts(get_db(), user_id)}
    )


@bp.route("/user/<string:user_id>/stats", methods=["GET"])
def user_posting_stats(user_id):
    """Return a user's posting summary."""
    stats = PostService.get_user_posting_stats(get_db(), user_id)
    return jsonify({"success": True, "stats": stats})


@bp.route("/user/<string:user_id>/group/<string:group_id>", methods=["GET"])
def user_posts_in_group(user_id, group_id):
    """Return a user's posts in one group and whether there are any."""
    posts = PostService.get_user_posts_in_group(get_db(), user_id, group_id)
    return jsonify({"success": True, "posts": posts, "has_posted": bool(posts)})


@bp.route("/liked", methods=["GET"])
@profile_required
def liked_posts():
    """Return the posts the cached user has liked."""
    posts = PostService.get_liked_posts(get_db(), g.user["id"])
    return jsonify({"success": True, "posts": posts})


@bp.route("/<string:post_id>/like", methods=["POST"])
@profile_required
def like_post(post_id):
    """Like a post as the cached user."""
    PostService.like_post(get_db(), post_id, g.user["id"])
    return jsonify({"success": True})


@bp.route("/<string:post_id>/unlike", methods=["POST"])
@profile_required
def unlike_post(post_id):
    """Remove the cached user's like from a post."""
    PostService.unlike_post(get_db(), post_id, g.user["id"])
    return jsonify({"success": True})


@bp.route("/<string:post_id>/comments", methods=["POST"])
@profile_required
def add_comment(post_id):
    """Comment on a post as the cached user."""
    payload = request.get_json(silent=True) or request.form
    text = payload.get("text", "")
    if not text:
        raise ValidationError("Comment cannot be empty.")
    comment = PostService.add_comment(
        get_db(), post_id, g.user["id"], g.user.get("name", ""), text
    )
    return jsonify({"success": True, "comment": comment}), 201
