"""Exception hierarchy shared by request building, transport, and redirect handling.

A single call spans parameter validation, URL assembly, one or more transport
exchanges, and response decoding.  This module groups those failure modes so
caller code can react to broad categories (for example, any
:class:`TransportError`) while still having access to the specialised
subclasses when finer-grained handling is required.
"""

from __future__ import annotations

from typing import Optional, Sequence

__all__ = [
    "FetchKitError",
    "ConfigurationError",
    "MalformedURL",
    "EncodingError",
    "DecodingError",
    "TransportError",
    "CallTimeout",
    "TooManyRedirects",
]


class FetchKitError(RuntimeError):
    """Base exception for every failure surfaced by a FetchKit call."""


class ConfigurationError(FetchKitError):
    """Raised when request parameters or settings are invalid."""


class MalformedURL(FetchKitError, ValueError):
    """Raised when a request URL or a redirect ``Location`` cannot be used."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Malformed URL {url!r}: {reason}")


class EncodingError(FetchKitError, ValueError):
    """Raised when a JSON payload cannot be serialised."""


class DecodingError(FetchKitError, ValueError):
    """Raised when a response body cannot be decoded (content encoding or JSON)."""


class TransportError(FetchKitError):
    """Raised when the underlying transport fails to complete an exchange."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class CallTimeout(TransportError):
    """Raised when the connect-timeout scope of a call expires."""


class TooManyRedirects(FetchKitError):
    """Raised when a redirect chain exceeds the configured hop bound."""

    def __init__(self, max_hops: int, visited: Sequence[str]) -> None:
        self.max_hops = max_hops
        self.visited = tuple(visited)
        super().__init__(
            f"Redirect chain exceeded {max_hops} hops. Hops: {' -> '.join(self.visited)}"
        )
