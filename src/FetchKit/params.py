"""Caller-supplied request parameters.

:class:`RequestParams` bundles every optional knob of a call: the raw or JSON
body, a replacement header set, the cookie jar, basic-auth credentials,
timeouts, and the redirect policy.  Instances are immutable; the engine only
reads them.
"""

from __future__ import annotations

import http.cookiejar
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .errors import ConfigurationError
from .network import policy
from .network.redirect import RedirectPolicy

__all__ = ["Auth", "Timeout", "RequestParams"]


class Auth(BaseModel):
    """HTTP basic-auth credentials."""

    username: str
    password: SecretStr = SecretStr("")

    model_config = ConfigDict(frozen=True)


class Timeout(BaseModel):
    """Per-call timeout budgets in seconds; ``0`` means no explicit limit.

    ``connect`` bounds the time to obtain a response across every hop of the
    call. ``read`` bounds the time spent waiting on a given response.
    """

    connect: float = Field(default=policy.DEFAULT_CONNECT_TIMEOUT, ge=0.0)
    read: float = Field(default=policy.DEFAULT_READ_TIMEOUT, ge=0.0)

    model_config = ConfigDict(frozen=True)


class RequestParams(BaseModel):
    """Optional configuration for a single call."""

    body: Optional[bytes] = None
    json_payload: Any = None
    headers: Optional[httpx.Headers] = None
    cookie_jar: Optional[httpx.Cookies] = None
    auth: Optional[Auth] = None
    timeout: Optional[Timeout] = None
    allow_redirects: RedirectPolicy = RedirectPolicy.UNSET

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("body", mode="before")
    @classmethod
    def _coerce_body(cls, value: Any) -> Any:
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        read = getattr(value, "read", None)
        if callable(read):
            data = read()
            return data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> Any:
        if value is None or isinstance(value, httpx.Headers):
            return value
        return httpx.Headers(value)

    @field_validator("cookie_jar", mode="before")
    @classmethod
    def _coerce_cookie_jar(cls, value: Any) -> Any:
        # Wrapping a stdlib jar keeps the caller's object as the backing store.
        if isinstance(value, http.cookiejar.CookieJar):
            return httpx.Cookies(value)
        return value

    @field_validator("allow_redirects", mode="before")
    @classmethod
    def _coerce_redirects(cls, value: Any) -> RedirectPolicy:
        return RedirectPolicy.coerce(value)

    @model_validator(mode="after")
    def _reject_ambiguous_body(self) -> "RequestParams":
        if self.body is not None and self.json_payload is not None:
            raise ConfigurationError("body and json_payload are mutually exclusive")
        return self

    @property
    def connect_timeout(self) -> float:
        return self.timeout.connect if self.timeout is not None else policy.DEFAULT_CONNECT_TIMEOUT

    @property
    def read_timeout(self) -> float:
        return self.timeout.read if self.timeout is not None else policy.DEFAULT_READ_TIMEOUT
