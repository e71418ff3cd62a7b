# === NAVMAP v1 ===
# {
#   "module": "FetchKit.response",
#   "purpose": "Immutable response snapshot and received-cookie values returned by every call.",
#   "sections": [
#     {
#       "id": "cookie",
#       "name": "Cookie",
#       "anchor": "class-cookie",
#       "kind": "class"
#     },
#     {
#       "id": "parse-set-cookie-headers",
#       "name": "parse_set_cookie_headers",
#       "anchor": "function-parse-set-cookie-headers",
#       "kind": "function"
#     },
#     {
#       "id": "response",
#       "name": "Response",
#       "anchor": "class-response",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Immutable response snapshot returned by every call.

A :class:`Response` is assembled exactly once per call, after the final hop's
body has been read into memory, and is never mutated afterwards.  Besides the
final status, headers and body it carries the request history of the redirect
chain and every cookie received along the way.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from http.cookiejar import parse_ns_headers
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, overload

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import DecodingError
from .network.request import RequestDescriptor

__all__ = ["Cookie", "Response", "parse_set_cookie_headers"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Cookie:
    """A cookie received through a ``Set-Cookie`` response header.

    ``expires`` is the ``Expires`` attribute as seconds since the epoch.
    """

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[int] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None
    raw: str = ""

    @classmethod
    def from_set_cookie(cls, header_value: str) -> "Cookie":
        """Parse one ``Set-Cookie`` header value.

        The first ``name=value`` pair names the cookie; recognised attributes
        are mapped onto fields and anything else is ignored.

        Raises:
            ValueError: If the header does not start with a ``name=value`` pair.
        """
        parsed = parse_ns_headers([header_value])
        if not parsed:
            raise ValueError("Invalid Set-Cookie header: no cookie pair")
        (name, value), *attributes = parsed[0]
        if value is None:
            raise ValueError(f"Invalid Set-Cookie header: {name!r} has no value")

        fields: Dict[str, Any] = {}
        for key, attr_value in attributes:
            lowered = key.lower()
            if lowered == "domain" and attr_value:
                fields["domain"] = attr_value
            elif lowered == "path" and attr_value:
                fields["path"] = attr_value
            elif lowered == "expires" and attr_value is not None:
                fields["expires"] = int(attr_value)
            elif lowered == "max-age" and attr_value:
                try:
                    fields["max_age"] = int(attr_value)
                except ValueError:
                    continue
            elif lowered == "secure":
                fields["secure"] = True
            elif lowered == "httponly":
                fields["http_only"] = True
            elif lowered == "samesite" and attr_value:
                fields["same_site"] = attr_value
        return cls(name=name, value=value, raw=header_value, **fields)


def parse_set_cookie_headers(response: httpx.Response) -> List[Cookie]:
    """Return the cookies set by ``response`` in header order.

    Unparseable headers are skipped.
    """
    cookies: List[Cookie] = []
    for header_value in response.headers.get_list("set-cookie"):
        try:
            cookies.append(Cookie.from_set_cookie(header_value))
        except ValueError as exc:
            logger.debug(
                "skipping unparseable Set-Cookie header",
                extra={"url": str(response.request.url), "reason": str(exc)},
            )
    return cookies


@dataclass(frozen=True)
class Response:
    """Final outcome of a call, including the redirect chain that led to it."""

    url: httpx.URL
    status_code: int
    reason_phrase: str
    headers: httpx.Headers
    content: bytes
    encoding: str = "utf-8"
    history: Tuple[RequestDescriptor, ...] = ()
    cookies: Tuple[Cookie, ...] = ()
    content_length: int = -1
    http_version: str = "HTTP/1.1"
    _text: Optional[str] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_httpx(
        cls,
        response: httpx.Response,
        *,
        url: httpx.URL,
        history: Tuple[RequestDescriptor, ...] = (),
        cookies: Tuple[Cookie, ...] = (),
        content: Optional[bytes] = None,
    ) -> "Response":
        """Snapshot ``response``; pass ``content`` when the body was streamed separately."""

        length = response.headers.get("content-length")
        try:
            content_length = int(length) if length is not None else -1
        except ValueError:
            content_length = -1
        return cls(
            url=url,
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=httpx.Headers(response.headers),
            content=response.content if content is None else content,
            encoding=response.encoding or "utf-8",
            history=tuple(history),
            cookies=tuple(cookies),
            content_length=content_length,
            http_version=response.http_version,
        )

    @property
    def status(self) -> str:
        """Status line without the protocol, e.g. ``"200 OK"``."""
        return f"{self.status_code} {self.reason_phrase}".rstrip()

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        if self._text is None:
            object.__setattr__(self, "_text", self.content.decode(self.encoding, errors="replace"))
        return self._text  # type: ignore[return-value]

    def raw(self) -> io.BytesIO:
        """Return a fresh readable stream over the body."""
        return io.BytesIO(self.content)

    @overload
    def json(self) -> Any: ...

    @overload
    def json(self, into: Type[T]) -> T: ...

    def json(self, into: Any = None) -> Any:
        """Decode the body as JSON, optionally validating it into ``into``.

        Args:
            into: Any type pydantic can validate (models, dataclasses,
                ``TypedDict``, ``list[int]``...). ``None`` returns plain
                Python objects.

        Raises:
            DecodingError: If the body is not valid JSON or does not match ``into``.
        """
        if into is None:
            try:
                return json.loads(self.content)
            except ValueError as exc:
                raise DecodingError(
                    f"Response body from {self.url} is not valid JSON: {exc}"
                ) from exc
        try:
            return TypeAdapter(into).validate_json(self.content)
        except PydanticValidationError as exc:
            raise DecodingError(
                f"Response body from {self.url} does not match {into!r}: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self.url}>"
