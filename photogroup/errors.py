"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when caller input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UploadError(AppError):
    """Raised when an image could not be turned into a stored blob."""

    user_message = "Your photo could not be uploaded. Please retake it and try again."

    def __init__(self, reason="Upload failed."):
        """Initialize the error."""
        super().__init__(f"Image upload failed: {reason}", 502)
        self.reason = reason


class StoreWriteError(AppError):
    """Raised when a post document could not be persisted."""

    user_message = (
        "Your photo was uploaded but the post could not be saved. "
        "Please try submitting again."
    )

    def __init__(self, message="Failed to save post."):
        """Initialize the error."""
        super().__init__(message, 503)


class StatisticsError(AppError):
    """Raised when denormalized counters could not be updated."""

    def __init__(self, message="Failed to update statistics."):
        """Initialize the error."""
        super().__init__(message, 500)


class ReadError(AppError):
    """Raised when a document store query fails."""

    def __init__(self, message="Failed to read from the document store."):
        """Initialize the error."""
        super().__init__(message, 500)
