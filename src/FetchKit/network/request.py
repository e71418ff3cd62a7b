"""Request descriptor construction.

:func:`build_request` turns a method, a URL string, optional query parameters
and optional :class:`~FetchKit.params.RequestParams` into an immutable
:class:`RequestDescriptor`.  The descriptor is what the executor re-targets on
each redirect hop and what :attr:`FetchKit.response.Response.history` records;
a fresh :class:`httpx.Request` is materialised from it for every exchange so
that transport-managed headers (``Host``, ``Content-Length``, ``Cookie``) are
always recomputed for the current target.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence, Tuple, Union

import httpx

from ..errors import EncodingError, MalformedURL
from .policy import DEFAULT_USER_AGENT, JSON_CONTENT_TYPE

if TYPE_CHECKING:  # pragma: no cover - import cycle guard for type checkers only
    from ..params import RequestParams

__all__ = ["QueryParamTypes", "RequestDescriptor", "build_request"]

QueryParamTypes = Union[
    httpx.QueryParams,
    Mapping[str, Any],
    Sequence[Tuple[str, Any]],
    str,
]


@dataclass(frozen=True)
class RequestDescriptor:
    """Immutable outbound request: method, target, headers, and body bytes."""

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: Optional[bytes] = None

    def with_url(self, url: httpx.URL) -> "RequestDescriptor":
        """Return a copy aimed at ``url`` with method, headers and body preserved."""
        return replace(self, url=url, headers=httpx.Headers(self.headers))

    def to_httpx(self) -> httpx.Request:
        """Materialise a fresh :class:`httpx.Request` for one exchange."""
        return httpx.Request(
            self.method,
            self.url,
            headers=httpx.Headers(self.headers),
            content=self.content,
        )

    def __str__(self) -> str:
        return f"{self.method} {self.url}"


def _parse_url(url: Union[str, httpx.URL]) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise MalformedURL(str(url), str(exc)) from exc
    if parsed.scheme not in {"http", "https"}:
        raise MalformedURL(str(url), "URL must use the http or https scheme")
    if not parsed.host:
        raise MalformedURL(str(url), "URL has no host")
    return parsed


def _merge_query(url: httpx.URL, query: QueryParamTypes) -> httpx.URL:
    try:
        params = httpx.QueryParams(query)
    except (TypeError, ValueError) as exc:
        raise MalformedURL(str(url), f"invalid query parameters: {exc}") from exc
    # An empty mapping clears the existing query string.
    return url.copy_with(params=params)


def _encode_body(params: Optional["RequestParams"]) -> Tuple[Optional[bytes], bool]:
    """Return ``(content, is_json)`` following body precedence."""

    if params is None:
        return None, False
    if params.body is not None:
        return params.body, False
    if params.json_payload is not None:
        try:
            encoded = json.dumps(params.json_payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"JSON payload could not be serialised: {exc}") from exc
        return encoded.encode("utf-8"), True
    return None, False


def _basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_request(
    method: str,
    url: Union[str, httpx.URL],
    query: Optional[QueryParamTypes] = None,
    params: Optional["RequestParams"] = None,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
) -> RequestDescriptor:
    """Assemble an outbound :class:`RequestDescriptor`.

    Args:
        method: HTTP method; normalised to upper case.
        url: Absolute ``http``/``https`` URL.
        query: Query parameters replacing the URL's query string when given.
        params: Optional body, header, and auth configuration.
        user_agent: Value of the default identifying header.

    Returns:
        The descriptor for the first hop of the call.

    Raises:
        MalformedURL: If ``url`` cannot be parsed or is not absolute http(s).
        EncodingError: If ``params.json_payload`` cannot be serialised.
    """

    target = _parse_url(url)
    if query is not None:
        target = _merge_query(target, query)

    content, is_json = _encode_body(params)

    headers = httpx.Headers({"User-Agent": user_agent})
    if is_json:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    if params is not None:
        if params.headers is not None:
            headers = httpx.Headers(params.headers)
        if params.auth is not None:
            headers["Authorization"] = _basic_auth_header(
                params.auth.username, params.auth.password.get_secret_value()
            )

    return RequestDescriptor(
        method=method.upper(),
        url=target,
        headers=headers,
        content=content,
    )
