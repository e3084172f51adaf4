"""HTTP constants for the fetch layer."""

HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Maximum retry delay cap for rate limiting (seconds)
MAX_RETRY_AFTER_SECONDS = 60
