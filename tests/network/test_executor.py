# === NAVMAP v1 ===
# {
#   "module": "tests.network.test_executor",
#   "purpose": "Redirect chains, cookie accumulation, hop bounds and scope checks in the executor.",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Redirect chains, cookie accumulation, hop bounds and scope checks in the executor."""

from __future__ import annotations

import logging
import time

import httpx
import pytest

from FetchKit.cancellation import CancellationScope
from FetchKit.errors import (
    CallTimeout,
    DecodingError,
    MalformedURL,
    TooManyRedirects,
    TransportError,
)
from FetchKit.network.executor import execute
from FetchKit.network.redirect import RedirectPolicy
from FetchKit.network.request import build_request
from FetchKit.network.transport import CallOptions, TransportAdapter
from FetchKit.params import RequestParams


def _chain_handler(length: int):
    """Serve ``/hop/N`` redirecting to ``/hop/N-1`` until ``/hop/0`` answers 200."""

    def handler(request: httpx.Request) -> httpx.Response:
        remaining = int(request.url.path.rsplit("/", 1)[-1])
        if remaining == 0:
            return httpx.Response(200, text="done")
        return httpx.Response(302, headers={"Location": f"/hop/{remaining - 1}"})

    return handler, f"https://example.org/hop/{length}"


def _adapter(handler) -> TransportAdapter:
    return TransportAdapter(httpx.MockTransport(handler))


@pytest.mark.parametrize("redirects", [0, 1, 2, 3, 4])
def test_follows_redirect_chain(redirects):
    handler, start = _chain_handler(redirects)
    response = execute(
        build_request("GET", start), CallOptions(), adapter=_adapter(handler), max_hops=5
    )

    assert response.status_code == 200
    assert response.text == "done"
    assert len(response.history) == redirects
    assert str(response.url) == "https://example.org/hop/0"
    assert [str(item.url) for item in response.history] == [
        f"https://example.org/hop/{n}" for n in range(redirects, 0, -1)
    ]


@pytest.mark.parametrize("redirects", [5, 6])
def test_chain_beyond_hop_bound_fails(redirects):
    handler, start = _chain_handler(redirects)
    with pytest.raises(TooManyRedirects) as excinfo:
        execute(build_request("GET", start), CallOptions(), adapter=_adapter(handler), max_hops=5)

    assert excinfo.value.max_hops == 5
    assert len(excinfo.value.visited) == 5
    assert excinfo.value.visited[0] == start


def test_custom_hop_bound():
    handler, start = _chain_handler(2)
    with pytest.raises(TooManyRedirects):
        execute(build_request("GET", start), CallOptions(), adapter=_adapter(handler), max_hops=2)


def test_hop_bound_defaults_to_setting(monkeypatch):
    monkeypatch.setenv("FETCHKIT_MAX_REDIRECT_HOPS", "2")
    handler, start = _chain_handler(1)
    response = execute(build_request("GET", start), CallOptions(), adapter=_adapter(handler))
    assert len(response.history) == 1

    handler, start = _chain_handler(2)
    with pytest.raises(TooManyRedirects):
        execute(build_request("GET", start), CallOptions(), adapter=_adapter(handler))


def test_deny_returns_first_redirect():
    handler, start = _chain_handler(3)
    response = execute(
        build_request("GET", start),
        CallOptions(redirect_policy=RedirectPolicy.DENY),
        adapter=_adapter(handler),
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/hop/2"
    assert response.history == ()
    assert str(response.url) == start


def test_cookies_accumulate_in_order_with_duplicates():
    def handler(request):
        if request.url.path == "/one":
            return httpx.Response(
                302, headers=[("Location", "/two"), ("Set-Cookie", "a=1; Path=/")]
            )
        if request.url.path == "/two":
            return httpx.Response(
                302,
                headers=[
                    ("Location", "/three"),
                    ("Set-Cookie", "a=1; Path=/"),
                    ("Set-Cookie", "b=2; Path=/"),
                ],
            )
        return httpx.Response(200, headers=[("Set-Cookie", "c=3; HttpOnly")])

    response = execute(
        build_request("GET", "https://example.org/one"), CallOptions(), adapter=_adapter(handler)
    )

    assert [(cookie.name, cookie.value) for cookie in response.cookies] == [
        ("a", "1"),
        ("a", "1"),
        ("b", "2"),
        ("c", "3"),
    ]
    assert response.cookies[-1].http_only


def test_unparseable_set_cookie_is_skipped():
    def handler(request):
        return httpx.Response(200, headers=[("Set-Cookie", "garbage"), ("Set-Cookie", "ok=1")])

    response = execute(
        build_request("GET", "https://example.org/"), CallOptions(), adapter=_adapter(handler)
    )
    assert [cookie.name for cookie in response.cookies] == ["ok"]


def test_redirect_preserves_method_headers_and_body():
    seen = []

    def handler(request):
        seen.append(
            (request.method, str(request.url), request.headers.get("x-trace"), request.content)
        )
        if request.url.path == "/submit":
            return httpx.Response(303, headers={"Location": "https://other.example.org/done"})
        return httpx.Response(201)

    params = RequestParams(body=b"form=1", headers={"X-Trace": "t-1"})
    response = execute(
        build_request("POST", "https://example.org/submit", params=params),
        CallOptions(),
        adapter=_adapter(handler),
    )

    assert response.status_code == 201
    assert seen == [
        ("POST", "https://example.org/submit", "t-1", b"form=1"),
        ("POST", "https://other.example.org/done", "t-1", b"form=1"),
    ]
    assert response.history[0].method == "POST"


def test_host_header_follows_redirect_target():
    hosts = []

    def handler(request):
        hosts.append(request.headers["host"])
        if request.url.host == "a.example.org":
            return httpx.Response(307, headers={"Location": "https://b.example.org/"})
        return httpx.Response(200)

    execute(
        build_request("GET", "https://a.example.org/"), CallOptions(), adapter=_adapter(handler)
    )
    assert hosts == ["a.example.org", "b.example.org"]


def test_relative_location_resolution():
    def handler(request):
        if request.url.path == "/a/b":
            return httpx.Response(301, headers={"Location": "../c?x=1"})
        return httpx.Response(200)

    response = execute(
        build_request("GET", "https://example.org/a/b"), CallOptions(), adapter=_adapter(handler)
    )
    assert str(response.url) == "https://example.org/c?x=1"


def test_unusable_location_aborts_call():
    def handler(request):
        return httpx.Response(302, headers={"Location": "ftp://example.org/file"})

    with pytest.raises(MalformedURL):
        execute(
            build_request("GET", "https://example.org/"), CallOptions(), adapter=_adapter(handler)
        )


def test_transport_failure_mid_chain_aborts_call():
    def handler(request):
        if request.url.path == "/start":
            return httpx.Response(302, headers={"Location": "/broken"})
        raise httpx.ConnectError("reset", request=request)

    with pytest.raises(TransportError):
        execute(
            build_request("GET", "https://example.org/start"),
            CallOptions(),
            adapter=_adapter(handler),
        )


class TestScopeExpiry:
    """The connect-timeout scope spans every hop and the final body read."""

    def test_scope_expiring_between_hops(self):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            time.sleep(0.1)
            return httpx.Response(302, headers={"Location": "/next"})

        options = CallOptions(scope=CancellationScope(0.05))
        with pytest.raises(CallTimeout):
            execute(
                build_request("GET", "https://example.org/start"),
                options,
                adapter=_adapter(handler),
            )
        assert calls == ["/start"]

    def test_scope_expiring_on_final_hop(self):
        def handler(request):
            time.sleep(0.1)
            return httpx.Response(200, text="late")

        with pytest.raises(CallTimeout):
            execute(
                build_request("GET", "https://example.org/"),
                CallOptions(scope=CancellationScope(0.05)),
                adapter=_adapter(handler),
            )

    def test_generous_scope_completes(self):
        handler, start = _chain_handler(2)
        response = execute(
            build_request("GET", start),
            CallOptions(scope=CancellationScope(30.0)),
            adapter=_adapter(handler),
        )
        assert response.status_code == 200


class _DripStream(httpx.SyncByteStream):
    """Yield ``chunks`` with a pause before each one."""

    def __init__(self, chunks, pause: float) -> None:
        self.chunks = chunks
        self.pause = pause
        self.closed = False

    def __iter__(self):
        for chunk in self.chunks:
            time.sleep(self.pause)
            yield chunk

    def close(self) -> None:
        self.closed = True


class TestBodyRead:
    """The final body is streamed under the hop's read deadline."""

    def test_read_deadline_bounds_slow_body(self):
        stream = _DripStream([b"x"] * 20, pause=0.05)

        def handler(request):
            return httpx.Response(200, stream=stream)

        started = time.monotonic()
        with pytest.raises(TransportError) as excinfo:
            execute(
                build_request("GET", "https://example.org/"),
                CallOptions(read_timeout=0.2),
                adapter=_adapter(handler),
            )
        assert not isinstance(excinfo.value, CallTimeout)
        assert "read timeout of 0.2s" in str(excinfo.value)
        assert time.monotonic() - started < 0.9
        assert stream.closed

    def test_slow_body_within_read_deadline(self):
        def handler(request):
            return httpx.Response(200, stream=_DripStream([b"ab", b"cd"], pause=0.01))

        response = execute(
            build_request("GET", "https://example.org/"),
            CallOptions(read_timeout=5.0),
            adapter=_adapter(handler),
        )
        assert response.content == b"abcd"

    def test_read_deadline_restarts_each_hop(self):
        def handler(request):
            if request.url.path == "/start":
                time.sleep(0.15)
                return httpx.Response(302, headers={"Location": "/body"})
            return httpx.Response(200, stream=_DripStream([b"ok"], pause=0.1))

        response = execute(
            build_request("GET", "https://example.org/start"),
            CallOptions(read_timeout=0.2),
            adapter=_adapter(handler),
        )
        assert response.content == b"ok"

    def test_broken_content_encoding(self, caplog):
        def handler(request):
            return httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip")
            )

        caplog.set_level(logging.WARNING, logger="FetchKit")
        with pytest.raises(DecodingError) as excinfo:
            execute(
                build_request("GET", "https://example.org/"),
                CallOptions(),
                adapter=_adapter(handler),
            )
        assert isinstance(excinfo.value.__cause__, httpx.DecodingError)
        failures = [r for r in caplog.records if r.getMessage() == "fetchkit-call-failed"]
        assert [record.error for record in failures] == ["DecodingError"]

    def test_stream_failure_mid_body(self):
        class _BrokenStream(httpx.SyncByteStream):
            def __iter__(self):
                yield b"partial"
                raise httpx.ReadError("connection reset")

        def handler(request):
            return httpx.Response(200, stream=_BrokenStream())

        with pytest.raises(TransportError) as excinfo:
            execute(
                build_request("GET", "https://example.org/"),
                CallOptions(),
                adapter=_adapter(handler),
            )
        assert not isinstance(excinfo.value, CallTimeout)
        assert isinstance(excinfo.value.__cause__, httpx.ReadError)


def test_hop_records_are_logged(caplog):
    handler, _ = _chain_handler(1)
    caplog.set_level(logging.DEBUG, logger="FetchKit.network")

    execute(
        build_request("GET", "https://example.org/hop/1", {"token": "secret"}),
        CallOptions(),
        adapter=_adapter(handler),
    )

    hops = [record for record in caplog.records if record.getMessage() == "fetchkit-hop"]
    assert [record.hop for record in hops] == [1, 2]
    assert hops[0].status == 302
    assert hops[0].url_redacted == "https://example.org/hop/1"
    assert hops[0].redirect_to == "https://example.org/hop/0"
    assert hops[1].redirect_to is None
    assert all("secret" not in record.url_redacted for record in hops)


def test_failures_are_logged(caplog):
    handler, start = _chain_handler(3)
    caplog.set_level(logging.WARNING, logger="FetchKit")

    with pytest.raises(TooManyRedirects):
        execute(build_request("GET", start), CallOptions(), adapter=_adapter(handler), max_hops=2)

    messages = [record.getMessage() for record in caplog.records]
    assert "Redirect chain exceeded hop bound" in messages
