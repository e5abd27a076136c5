"""Global constants for the photogroup application."""

# Collection names
USERS_COLLECTION = "users"
GROUPS_COLLECTION = "groups"
POSTS_COLLECTION = "posts"

# Local cache
PROFILE_CACHE_KEY = "@PhotoGroupApp:user"
ACTIVITY_LOG_LIMIT = 50

# Upload limits
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")
FILE_RETRY_DELAY = 0.5
HTTP_TIMEOUT = 15
DOWNLOAD_CHUNK_BYTES = 64 * 1024

# Image references accepted from HTTP clients
REQUEST_REMOTE_SCHEMES = ("https",)

# Group codes double as document ids
GROUP_CODE_PATTERN = r"^[A-Za-z0-9]{3,20}$"

# Activity types
ACTIVITY_FIRST_POST = "first_post_in_group"
ACTIVITY_POSTED = "posted_in_group"
ACTIVITY_JOINED_GROUP = "joined_group"

CAPTION_EXCERPT_LENGTH = 50
