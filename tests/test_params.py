"""Tests for caller-supplied request parameters."""

import http.cookiejar
import io

import httpx
import pytest
from pydantic import ValidationError

from FetchKit.errors import ConfigurationError
from FetchKit.network import policy
from FetchKit.network.redirect import RedirectPolicy
from FetchKit.params import Auth, RequestParams, Timeout


def test_defaults():
    params = RequestParams()
    assert params.body is None
    assert params.json_payload is None
    assert params.headers is None
    assert params.cookie_jar is None
    assert params.allow_redirects is RedirectPolicy.UNSET
    assert params.connect_timeout == 0.0
    assert params.read_timeout == 0.0


@pytest.mark.parametrize(
    "body, expected",
    [
        ("text", b"text"),
        (bytearray(b"abc"), b"abc"),
        (memoryview(b"view"), b"view"),
        (io.BytesIO(b"stream"), b"stream"),
        (io.StringIO("chars"), b"chars"),
    ],
)
def test_body_coercion(body, expected):
    assert RequestParams(body=body).body == expected


def test_headers_coerced_to_httpx_headers():
    params = RequestParams(headers={"X-A": "1"})
    assert isinstance(params.headers, httpx.Headers)
    assert params.headers["x-a"] == "1"


def test_stdlib_cookie_jar_is_wrapped_not_copied():
    jar = http.cookiejar.CookieJar()
    params = RequestParams(cookie_jar=jar)
    assert isinstance(params.cookie_jar, httpx.Cookies)
    assert params.cookie_jar.jar is jar


def test_httpx_cookie_jar_is_used_directly():
    jar = httpx.Cookies()
    assert RequestParams(cookie_jar=jar).cookie_jar is jar


@pytest.mark.parametrize(
    "value, expected",
    [(True, RedirectPolicy.ALLOW), (False, RedirectPolicy.DENY), ("deny", RedirectPolicy.DENY)],
)
def test_redirect_policy_coercion(value, expected):
    assert RequestParams(allow_redirects=value).allow_redirects is expected


def test_unknown_redirect_policy():
    with pytest.raises(ValidationError):
        RequestParams(allow_redirects="sometimes")


def test_body_and_json_are_mutually_exclusive():
    with pytest.raises(ConfigurationError):
        RequestParams(body=b"raw", json_payload={"a": 1})


def test_negative_timeouts_rejected():
    with pytest.raises(ValidationError):
        Timeout(connect=-1)
    with pytest.raises(ValidationError):
        Timeout(read=-0.5)


def test_timeout_accessors():
    params = RequestParams(timeout=Timeout(connect=1.5, read=3))
    assert params.connect_timeout == 1.5
    assert params.read_timeout == 3.0


def test_timeout_defaults_follow_policy():
    timeout = Timeout()
    assert timeout.connect == policy.DEFAULT_CONNECT_TIMEOUT
    assert timeout.read == policy.DEFAULT_READ_TIMEOUT

    params = RequestParams()
    assert params.connect_timeout == policy.DEFAULT_CONNECT_TIMEOUT
    assert params.read_timeout == policy.DEFAULT_READ_TIMEOUT


def test_timeout_defaults_track_patched_policy(monkeypatch):
    monkeypatch.setattr(policy, "DEFAULT_READ_TIMEOUT", 7.5)
    assert RequestParams().read_timeout == 7.5


def test_params_are_frozen():
    params = RequestParams()
    with pytest.raises(ValidationError):
        params.body = b"late"  # type: ignore[misc]


def test_auth_password_is_secret():
    auth = Auth(username="user", password="hunter2")
    assert "hunter2" not in repr(auth)
    assert auth.password.get_secret_value() == "hunter2"
