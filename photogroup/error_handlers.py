from flask import Blueprint, current_app, jsonify

from .errors import (
    AppError,
    DuplicateResourceError,
    NotFoundError,
    StoreWriteError,
    UploadError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code, **extra):
    return jsonify({"success": False, "error": message, **extra}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(UploadError)
def handle_upload_error(error):
    """Handles image upload failures; the user should retake the photo."""
    current_app.logger.error(f"Upload Error: {error.message}")
    return _error_response(
        error.user_message, error.status_code, stage="upload", detail=error.reason
    )


@error_handlers_bp.app_errorhandler(StoreWriteError)
def handle_store_write_error(error):
    """Handles post persistence failures; the user should resubmit."""
    current_app.logger.error(f"Store Write Error: {error.message}")
    return _error_response(error.user_message, error.status_code, stage="save")


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(413)
def handle_413(e):
    """Handles request bodies larger than MAX_CONTENT_LENGTH."""
    return _error_response("Upload is too large.", 413)
