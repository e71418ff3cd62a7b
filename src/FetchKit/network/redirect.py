# === NAVMAP v1 ===
# {
#   "module": "FetchKit.network.redirect",
#   "purpose": "Redirect policy and Location resolution for manually followed redirect chains.",
#   "sections": [
#     {
#       "id": "redirectpolicy",
#       "name": "RedirectPolicy",
#       "anchor": "class-redirectpolicy",
#       "kind": "class"
#     },
#     {
#       "id": "is-redirect",
#       "name": "is_redirect",
#       "anchor": "function-is-redirect",
#       "kind": "function"
#     },
#     {
#       "id": "resolve-location",
#       "name": "resolve_location",
#       "anchor": "function-resolve-location",
#       "kind": "function"
#     },
#     {
#       "id": "format-audit-trail",
#       "name": "format_audit_trail",
#       "anchor": "function-format-audit-trail",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Redirect policy and Location resolution.

The transport never follows redirects on its own. Each call carries a
tri-state :class:`RedirectPolicy` that decides how a redirect response is
reported back to the executor:

- ``UNSET`` / ``ALLOW``: the response is surfaced as *redirect pending* and the
  executor dispatches the next hop itself.
- ``DENY``: the first response is final, whatever its status.

Example:
    >>> from FetchKit.network.redirect import RedirectPolicy, resolve_location
    >>> RedirectPolicy.coerce(False)
    <RedirectPolicy.DENY: 'deny'>
    >>> str(resolve_location("https://example.org/a/b", "../c"))
    'https://example.org/c'
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional, Tuple, Union

import httpx

from ..errors import MalformedURL
from .policy import REDIRECT_STATUS_CODES

__all__ = [
    "RedirectPolicy",
    "is_redirect",
    "resolve_location",
    "format_audit_trail",
]


class RedirectPolicy(str, enum.Enum):
    """Tri-state redirect decision attached to a single call."""

    UNSET = "unset"
    ALLOW = "allow"
    DENY = "deny"

    @property
    def follows(self) -> bool:
        """Return ``True`` when redirects are resolved internally."""
        return self is not RedirectPolicy.DENY

    @classmethod
    def coerce(cls, value: Union["RedirectPolicy", bool, str, None]) -> "RedirectPolicy":
        """Normalise ``None``, booleans, and names into a policy member."""

        if value is None:
            return cls.UNSET
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.ALLOW if value else cls.DENY
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unsupported redirect policy: {value!r}")


def is_redirect(response: httpx.Response) -> bool:
    """Return ``True`` when ``response`` is a redirect carrying a Location."""

    return response.status_code in REDIRECT_STATUS_CODES and "location" in response.headers


def resolve_location(base: Union[httpx.URL, str], location: Optional[str]) -> httpx.URL:
    """Resolve a ``Location`` header against the URL of the request that produced it.

    Args:
        base: URL of the request that received the redirect.
        location: Raw ``Location`` header value, absolute or relative.

    Returns:
        The absolute URL of the next hop.

    Raises:
        MalformedURL: If the location is missing or cannot be joined into an
            absolute ``http``/``https`` URL.
    """

    if not location:
        raise MalformedURL(str(base), "redirect response has an empty Location header")
    try:
        target = httpx.URL(base).join(location.strip())
    except (httpx.InvalidURL, ValueError, TypeError) as exc:
        raise MalformedURL(location, f"invalid redirect location: {exc}") from exc
    if target.scheme not in {"http", "https"} or not target.host:
        raise MalformedURL(str(target), "redirect target is not an absolute http(s) URL")
    return target


def format_audit_trail(audit_trail: Iterable[Tuple[str, int]]) -> str:
    """Format a redirect chain for logging.

    Returns:
        A string like ``"http://a (301) -> http://b (200)"``.
    """
    return " -> ".join(f"{url} ({status})" for url, status in audit_trail)
