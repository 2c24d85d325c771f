"""Shared constants for the VuFind AJAX service."""

ENV_DEVELOPMENT = "development"
ENV_PRODUCTION = "production"
LOCALHOST = "localhost"

DEFAULT_SEARCH_BACKEND = "Solr"
DEFAULT_LANGUAGE = "en"

DEFAULT_SESSION_TTL_SECONDS = 3600
DEFAULT_SESSION_COOKIE_NAME = "VUFIND_SESSION"
SESSION_KEY_PREFIX = "session"

DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 300

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

# Internal (semantic) response statuses, independent of the HTTP code
STATUS_OK = "OK"
STATUS_ERROR = "ERROR"
STATUS_NEED_AUTH = "NEED_AUTH"

# Separator between call number prefix and call number; the client splits on it
CALLNUMBER_PREFIX_SEPARATOR = "::::"

# Separator used when several values are shown in "all" mode
MULTI_VALUE_SEPARATOR = ",\t"

LOGIN_REQUIRED_MESSAGE = "You must be logged in first"
GENERIC_ERROR_MESSAGE = "An error has occurred"

SESSION_CLOSED_BROADCASTS = "closed_broadcasts"
SESSION_INAPPROPRIATE_COMMENTS = "inappropriate_comments"
