"""HTTP policy constants and defaults.

Defines the identifying header, redirect bounds, timeout defaults, and pooling
parameters shared by the request builder, the transport factory, and the
redirect-resolving executor.  Values that operators may want to tune are
mirrored as fields on :class:`FetchKit.settings.FetchSettings`.
"""

from importlib import metadata as importlib_metadata

try:  # pragma: no cover - metadata may be unavailable during development
    PACKAGE_VERSION = importlib_metadata.version("fetchkit")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - local source tree
    PACKAGE_VERSION = "0.0.0"


# ============================================================================
# Identification
# ============================================================================

#: Default identifying header sent with every request unless headers are replaced
DEFAULT_USER_AGENT = f"fetchkit/{PACKAGE_VERSION}"

#: Content type attached when the body comes from a JSON payload
JSON_CONTENT_TYPE = "application/json"


# ============================================================================
# Redirects
# ============================================================================

#: Maximum number of exchanges in one redirect chain (RFC 1945 suggests 5)
MAX_REDIRECT_HOPS = 5

#: Status codes that trigger redirect resolution when a Location is present
REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})


# ============================================================================
# Timeout Budgets (seconds)
# ============================================================================

#: Zero means "no explicit limit" for both budgets
DEFAULT_CONNECT_TIMEOUT = 0.0
DEFAULT_READ_TIMEOUT = 0.0


# ============================================================================
# Connection Pooling (owned by the transport)
# ============================================================================

MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 20
KEEPALIVE_EXPIRY = 5.0


# ============================================================================
# Async execution
# ============================================================================

#: Worker threads backing the ``*_async`` call variants
ASYNC_WORKERS = 8


__all__ = [
    "PACKAGE_VERSION",
    "DEFAULT_USER_AGENT",
    "JSON_CONTENT_TYPE",
    "MAX_REDIRECT_HOPS",
    "REDIRECT_STATUS_CODES",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_READ_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "KEEPALIVE_EXPIRY",
    "ASYNC_WORKERS",
]
