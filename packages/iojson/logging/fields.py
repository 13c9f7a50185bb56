"""Canonical logging field names for envelope and transport logs.

Keeping names centralized prevents drift between the envelope core, the
transport adapter, and the CLI.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"

# Envelope fields.
STATUS = "status"
ERROR_COUNT = "error_count"
OBJECT_COUNT = "object_count"
DATA_COUNT = "data_count"
ERROR_CODE = "error_code"
BYTES = "bytes"
LIMIT = "limit"

# Transport fields.
HTTP_METHOD = "http_method"
HTTP_PATH = "http_path"
HANDLER = "handler"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
