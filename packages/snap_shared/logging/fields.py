"""Canonical logging field names shared by boot stages and request handling."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EXCEPTION = "exception"

# Boot sequence fields.
STAGE = "stage"
OUTCOME = "outcome"
CAPABILITY = "capability"
REVISION = "revision"
USER_NAME = "user_name"
ERROR_CODE = "error_code"
ERROR_CATEGORY = "error_category"

# Request handling fields.
METHOD = "method"
PATH = "path"

# Common service-level fields.
SERVICE = "service"
PROFILE = "profile"
