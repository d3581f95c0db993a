"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# Event bus envelope
EVENT_ORIGINATOR = "member-api"
EVENT_MIME_TYPE = "application/json"

# Search hosts matching this pattern are managed AWS domains
MANAGED_SEARCH_HOST_PATTERN = r".*amazonaws.*"

# Replaced with the object key in the photo URL template
PHOTO_URL_KEY_PLACEHOLDER = "<key>"
