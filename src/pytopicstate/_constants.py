"""Internal constants shared across the library."""

DEFAULT_PROTOCOL = "wc"
DEFAULT_VERSION = 2
DEFAULT_CONTEXT = "client"

#: Number of trailing logger-name segments used as the store's nested context.
NESTED_CONTEXT_DEPTH = 2

# ------------------------------------------------------------------
# Storage key layout: "{protocol}@{version}:{context}//{nested}"
# ------------------------------------------------------------------

STORAGE_KEY_SEPARATOR = "//"
NESTED_KEY_JOINER = ":"
NESTED_LABEL_JOINER = " "
