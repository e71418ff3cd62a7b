# === NAVMAP v1 ===
# {
#   "module": "FetchKit.network.transport",
#   "purpose": "Process-wide HTTPX transport factory and the per-hop transport adapter.",
#   "sections": [
#     {
#       "id": "calloptions",
#       "name": "CallOptions",
#       "anchor": "class-calloptions",
#       "kind": "class"
#     },
#     {
#       "id": "finalresponse",
#       "name": "FinalResponse",
#       "anchor": "class-finalresponse",
#       "kind": "class"
#     },
#     {
#       "id": "redirectpending",
#       "name": "RedirectPending",
#       "anchor": "class-redirectpending",
#       "kind": "class"
#     },
#     {
#       "id": "transportadapter",
#       "name": "TransportAdapter",
#       "anchor": "class-transportadapter",
#       "kind": "class"
#     },
#     {
#       "id": "get-http-transport",
#       "name": "get_http_transport",
#       "anchor": "function-get-http-transport",
#       "kind": "function"
#     },
#     {
#       "id": "configure-http-transport",
#       "name": "configure_http_transport",
#       "anchor": "function-configure-http-transport",
#       "kind": "function"
#     },
#     {
#       "id": "close-http-transport",
#       "name": "close_http_transport",
#       "anchor": "function-close-http-transport",
#       "kind": "function"
#     },
#     {
#       "id": "reset-http-transport",
#       "name": "reset_http_transport",
#       "anchor": "function-reset-http-transport",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX transport factory and per-hop transport adapter.

The transport (``httpx.HTTPTransport`` in production) owns connection pooling,
TLS, and socket I/O. It is shared process-wide and carries **no** per-call
state: redirect policy, cookie jar, and timeouts travel with each call in a
:class:`CallOptions` value handed to :class:`TransportAdapter.exchange`.

Key design:
- **Lazy initialization**: Transport created on first use, not at import time.
- **PID-aware**: If the process forks, the child rebuilds the transport on
  first use to avoid sharing sockets with the parent.
- **Thread-safe**: A lock guards creation, swap, and close.
- **Tagged hop results**: An exchange yields :class:`FinalResponse` or
  :class:`RedirectPending`; network failures raise
  :class:`~FetchKit.errors.TransportError`. A redirect is never reported
  through the error channel.

Example:
    >>> from FetchKit.network.transport import TransportAdapter, get_http_transport
    >>> adapter = TransportAdapter(get_http_transport())
"""

from __future__ import annotations

import logging
import os
import ssl
import threading
from dataclasses import dataclass, field
from typing import Optional, Union

import certifi
import httpx

from ..cancellation import CancellationScope
from ..errors import CallTimeout, TransportError
from .redirect import RedirectPolicy, is_redirect
from .request import RequestDescriptor

logger = logging.getLogger(__name__)


# ============================================================================
# Per-call configuration and hop results
# ============================================================================


@dataclass(frozen=True)
class CallOptions:
    """Per-call transport configuration, built fresh for every call."""

    redirect_policy: RedirectPolicy = RedirectPolicy.UNSET
    cookie_jar: Optional[httpx.Cookies] = None
    read_timeout: Optional[float] = None
    scope: CancellationScope = field(default_factory=CancellationScope)

    def hop_scope(self) -> CancellationScope:
        """Start the read deadline of one exchange; unbounded without a read timeout."""
        return CancellationScope(self.read_timeout)

    def hop_timeout(self, hop_scope: Optional[CancellationScope] = None) -> httpx.Timeout:
        """Timeout budget for the next exchange.

        Connection setup, writes, and pool waits are bounded by what is left of
        the call's scope; reads take the tightest of the read timeout, the
        hop's remaining read deadline, and the remaining scope.
        """

        remaining = self.scope.remaining()
        limits = [self.read_timeout or None, remaining]
        if hop_scope is not None:
            limits.append(hop_scope.remaining())
        bounded = [limit for limit in limits if limit is not None]
        read = min(bounded) if bounded else None
        return httpx.Timeout(connect=remaining, read=read, write=remaining, pool=remaining)


@dataclass(frozen=True)
class FinalResponse:
    """The exchange produced the response the caller will see."""

    response: httpx.Response


@dataclass(frozen=True)
class RedirectPending:
    """The exchange produced a redirect the executor must follow."""

    response: httpx.Response
    location: str


HopResult = Union[FinalResponse, RedirectPending]


class TransportAdapter:
    """Runs single request/response exchanges against an HTTPX transport."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport

    @property
    def transport(self) -> httpx.BaseTransport:
        return self._transport if self._transport is not None else get_http_transport()

    def exchange(
        self,
        descriptor: RequestDescriptor,
        options: CallOptions,
        hop_scope: Optional[CancellationScope] = None,
    ) -> HopResult:
        """Send ``descriptor`` once and classify the response.

        ``hop_scope`` is the read deadline of this exchange, when the executor
        tracks one.

        Raises:
            TransportError: On DNS, connection, protocol, or timeout failures.
        """

        request = descriptor.to_httpx()
        request.extensions["timeout"] = options.hop_timeout(hop_scope).as_dict()
        if options.cookie_jar is not None:
            options.cookie_jar.set_cookie_header(request)

        try:
            response = self.transport.handle_request(request)
        except httpx.TimeoutException as exc:
            if options.scope.is_cancelled():
                raise CallTimeout(
                    f"connect timeout of {options.scope.timeout:g}s exceeded",
                    url=str(descriptor.url),
                ) from exc
            raise TransportError(
                f"{descriptor.method} {descriptor.url} timed out: {exc}", url=str(descriptor.url)
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                f"{descriptor.method} {descriptor.url} failed: {exc}", url=str(descriptor.url)
            ) from exc

        response.request = request
        if options.cookie_jar is not None:
            options.cookie_jar.extract_cookies(response)

        if options.redirect_policy.follows and is_redirect(response):
            return RedirectPending(response=response, location=response.headers["location"])
        return FinalResponse(response=response)


# ============================================================================
# Global Transport State
# ============================================================================

_transport: Optional[httpx.BaseTransport] = None
_transport_lock = threading.Lock()
_transport_bind_pid: Optional[int] = None


def get_http_transport() -> httpx.BaseTransport:
    """Get or create the shared HTTPX transport.

    Behavior:
        - First call: Creates the transport and binds it to the current PID.
        - Subsequent calls: Returns the same transport (thread-safe).
        - Process forked: Child detects the PID change and rebuilds.
    """
    global _transport, _transport_bind_pid

    if _transport is not None and _transport_bind_pid == os.getpid():
        return _transport

    with _transport_lock:
        if _transport is not None and _transport_bind_pid == os.getpid():
            return _transport

        if _transport is not None:
            logger.debug("Process forked; discarding inherited HTTP transport.")
            _transport = None

        _transport = _create_http_transport()
        _transport_bind_pid = os.getpid()
        return _transport


def configure_http_transport(transport: httpx.BaseTransport) -> None:
    """Install ``transport`` as the process-wide transport (tests, custom stacks)."""
    global _transport, _transport_bind_pid

    with _transport_lock:
        _transport = transport
        _transport_bind_pid = os.getpid()
    logger.debug(
        "HTTP transport configured",
        extra={"transport": type(transport).__name__},
    )


def close_http_transport() -> None:
    """Close the shared transport and release pooled connections.

    Safe to call multiple times or when no transport has been created.
    """
    global _transport

    with _transport_lock:
        if _transport is not None:
            try:
                _transport.close()
                logger.debug("HTTP transport closed")
            except (OSError, RuntimeError) as exc:
                logger.error(f"Error closing HTTP transport: {exc}")
            finally:
                _transport = None


def reset_http_transport() -> None:
    """Close the transport and forget its PID binding (test isolation)."""
    global _transport_bind_pid

    close_http_transport()
    _transport_bind_pid = None


# ============================================================================
# Implementation Details
# ============================================================================


def _create_ssl_context(verify: bool) -> ssl.SSLContext:
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED (development only!)")
        return ctx
    return ssl.create_default_context(cafile=certifi.where())


def _create_http_transport() -> httpx.HTTPTransport:
    # Import settings here to avoid circular dependency at module load time
    from ..settings import get_settings

    settings = get_settings()
    transport = httpx.HTTPTransport(
        verify=_create_ssl_context(settings.verify_tls),
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
            keepalive_expiry=settings.keepalive_expiry,
        ),
    )
    logger.debug(
        "HTTPX transport created",
        extra={
            "max_connections": settings.max_connections,
            "max_keepalive": settings.max_keepalive_connections,
            "verify_tls": settings.verify_tls,
        },
    )
    return transport


__all__ = [
    "CallOptions",
    "FinalResponse",
    "RedirectPending",
    "HopResult",
    "TransportAdapter",
    "get_http_transport",
    "configure_http_transport",
    "close_http_transport",
    "reset_http_transport",
]
