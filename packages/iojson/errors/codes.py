"""Shared error code constants.

Codes are stable machine-readable identifiers attached to every envelope
exception type. Log fields and adapter diagnostics use them instead of class
names so renames do not break downstream filters.
"""

# Serialization
ENCODING_ERROR = "ENCODING_ERROR"

# Inbound decoding
DECODE_ERROR = "DECODE_ERROR"
SIZE_LIMIT_EXCEEDED = "SIZE_LIMIT_EXCEEDED"

# Lookup
KEY_NOT_FOUND = "KEY_NOT_FOUND"
INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
NIL_FRAGMENT = "NIL_FRAGMENT"

# Lifecycle
ENVELOPE_FINALIZED = "ENVELOPE_FINALIZED"

# Internal
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
