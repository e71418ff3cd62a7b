"""Testing utilities for exercising FetchKit without external services.

Provides a threaded loopback HTTP server that replays queued responses and
records every request it receives, plus a helper that temporarily swaps the
process-wide transport for an :class:`httpx.MockTransport`.
"""

from __future__ import annotations

import contextlib
import http.server
import json
import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .network.transport import configure_http_transport, reset_http_transport

__all__ = [
    "ResponseSpec",
    "RequestRecord",
    "LoopbackServer",
    "use_mock_transport",
]


@contextlib.contextmanager
def use_mock_transport(
    handler: Union[httpx.BaseTransport, Any],
) -> Iterator[httpx.BaseTransport]:
    """Temporarily install ``handler`` (a transport or a MockTransport handler)."""

    if isinstance(handler, httpx.BaseTransport):
        transport = handler
    else:
        transport = httpx.MockTransport(handler)
    configure_http_transport(transport)
    try:
        yield transport
    finally:
        reset_http_transport()


@dataclass
class ResponseSpec:
    """HTTP response definition served by the loopback test server.

    ``headers`` may repeat a name (e.g. several ``Set-Cookie`` values) when
    given as a sequence of pairs.
    """

    status: int = 200
    body: Union[bytes, str, Any] = b""
    headers: Union[Mapping[str, str], Sequence[Tuple[str, str]]] = field(default_factory=dict)
    delay_sec: Optional[float] = None
    trickle_sec: Optional[float] = None

    def serialise_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body).encode("utf-8")

    def header_items(self) -> List[Tuple[str, str]]:
        if isinstance(self.headers, Mapping):
            return list(self.headers.items())
        return list(self.headers)


@dataclass
class RequestRecord:
    """Captured HTTP request received by the loopback server."""

    method: str
    path: str
    query: str
    headers: Mapping[str, str]
    body: bytes


class _ThreadedHTTPServer(http.server.ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, RequestHandlerClass, *, env) -> None:
        super().__init__(server_address, RequestHandlerClass)
        self.env = env


class _RequestHandler(http.server.BaseHTTPRequestHandler):
    server_version = "FetchKitTestServer/1.0"
    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):  # noqa: D401  (silence default logging)
        return

    def _handle(self) -> None:
        env: LoopbackServer = self.server.env  # type: ignore[attr-defined]
        path, _, query = self.path.partition("?")
        record = RequestRecord(
            method=self.command,
            path=path,
            query=query,
            headers={key: value for key, value in self.headers.items()},
            body=self.rfile.read(int(self.headers.get("Content-Length", "0") or "0")),
        )
        env._record(record)
        response = env._dequeue_response(path)
        if response is None:
            body = b"No response queued for path"
            self.send_response(404)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)
            return
        if response.delay_sec:
            time.sleep(response.delay_sec)
        body = response.serialise_body()
        headers = response.header_items()
        if not any(name.lower() == "content-length" for name, _ in headers):
            headers.append(("Content-Length", str(len(body))))
        self.send_response(response.status)
        for key, value in headers:
            self.send_header(key, value)
        self.end_headers()
        if self.command == "HEAD":
            return
        if not response.trickle_sec:
            self.wfile.write(body)
            return
        # One byte per write, paced by trickle_sec.
        try:
            for index in range(len(body)):
                self.wfile.write(body[index : index + 1])
                self.wfile.flush()
                time.sleep(response.trickle_sec)
        except (BrokenPipeError, ConnectionResetError):
            # Client gave up mid-body.
            self.close_connection = True

    do_HEAD = _handle
    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_PATCH = _handle
    do_DELETE = _handle
    do_OPTIONS = _handle


class LoopbackServer(contextlib.AbstractContextManager["LoopbackServer"]):
    """Context manager running a threaded HTTP server on ``127.0.0.1``.

    Responses are queued per path with :meth:`queue` and served in FIFO
    order; the last queued response for a path is replayed once the queue
    would otherwise run dry.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("FetchKit.testing")
        self._lock = threading.Lock()
        self._responses: Dict[str, Deque[ResponseSpec]] = defaultdict(deque)
        self.requests: List[RequestRecord] = []
        self._server: Optional[_ThreadedHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "LoopbackServer":
        self._server = _ThreadedHTTPServer(("127.0.0.1", 0), _RequestHandler, env=self)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="fetchkit-loopback",
            daemon=True,
        )
        self._thread.start()
        self._logger.debug("loopback server started", extra={"base_url": self.base_url})
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None

    @property
    def base_url(self) -> str:
        if self._server is None:
            raise RuntimeError("LoopbackServer is not running")
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def url(self, path: str = "/") -> str:
        return f"{self.base_url}{path if path.startswith('/') else '/' + path}"

    def queue(self, path: str, *responses: ResponseSpec) -> None:
        with self._lock:
            self._responses[path].extend(responses)

    def _record(self, record: RequestRecord) -> None:
        with self._lock:
            self.requests.append(record)

    def _dequeue_response(self, path: str) -> Optional[ResponseSpec]:
        with self._lock:
            pending = self._responses.get(path)
            if not pending:
                return None
            if len(pending) > 1:
                return pending.popleft()
            return pending[0]
