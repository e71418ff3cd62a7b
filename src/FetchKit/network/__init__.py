"""Network subsystem: request descriptors, transport, and redirect resolution.

Modules:
- policy: constants (identifying header, hop bound, redirect codes, pooling)
- redirect: tri-state redirect policy and Location resolution
- request: immutable request descriptors and their builder
- transport: process-wide HTTPX transport and the per-hop adapter
- instrumentation: structured hop logging with URL redaction
- executor: the redirect-resolving hop loop

Example:
    >>> from FetchKit.network import CallOptions, build_request, execute
    >>> response = execute(build_request("GET", "https://example.org"), CallOptions())
"""

from .executor import execute
from .policy import DEFAULT_USER_AGENT, MAX_REDIRECT_HOPS, REDIRECT_STATUS_CODES
from .redirect import RedirectPolicy, format_audit_trail, is_redirect, resolve_location
from .request import RequestDescriptor, build_request
from .transport import (
    CallOptions,
    FinalResponse,
    RedirectPending,
    TransportAdapter,
    close_http_transport,
    configure_http_transport,
    get_http_transport,
    reset_http_transport,
)

__all__ = [
    "DEFAULT_USER_AGENT",
    "MAX_REDIRECT_HOPS",
    "REDIRECT_STATUS_CODES",
    "RedirectPolicy",
    "format_audit_trail",
    "is_redirect",
    "resolve_location",
    "RequestDescriptor",
    "build_request",
    "CallOptions",
    "FinalResponse",
    "RedirectPending",
    "TransportAdapter",
    "get_http_transport",
    "configure_http_transport",
    "close_http_transport",
    "reset_http_transport",
    "execute",
]
