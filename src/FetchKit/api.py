# === NAVMAP v1 ===
# {
#   "module": "FetchKit.api",
#   "purpose": "Public synchronous and asynchronous call layer, one function per HTTP method.",
#   "sections": [
#     {
#       "id": "send",
#       "name": "send",
#       "anchor": "function-send",
#       "kind": "function"
#     },
#     {
#       "id": "send-async",
#       "name": "send_async",
#       "anchor": "function-send-async",
#       "kind": "function"
#     },
#     {
#       "id": "shutdown-async-executor",
#       "name": "shutdown_async_executor",
#       "anchor": "function-shutdown-async-executor",
#       "kind": "function"
#     },
#     {
#       "id": "method-helpers",
#       "name": "head/get/post/put/patch/delete/options (+ *_async)",
#       "anchor": "method-helpers",
#       "kind": "api"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public call layer.

Each HTTP method has a blocking function returning a
:class:`~FetchKit.response.Response` and an ``*_async`` twin returning a
:class:`concurrent.futures.Future` that resolves to the same value::

    >>> import FetchKit
    >>> response = FetchKit.get("https://httpbin.org/get", {"k1": "v1"})
    >>> future = FetchKit.get_async("https://httpbin.org/get")
    >>> future.result().status_code
    200

A future is resolved exactly once, with either the response or the exception
the blocking call would have raised. Futures can be awaited from asyncio code
through :func:`asyncio.wrap_future`.

Per-call state (redirect policy, cookie jar, timeouts) is captured in a fresh
:class:`~FetchKit.network.transport.CallOptions` for every call, so concurrent
calls with different settings never interfere.
"""

from __future__ import annotations

import logging
import threading
from concurrent import futures
from typing import Optional

from .cancellation import CancellationScope
from .network.executor import execute
from .network.request import QueryParamTypes, build_request
from .network.transport import CallOptions
from .params import RequestParams
from .response import Response
from .settings import get_settings

__all__ = [
    "send",
    "send_async",
    "shutdown_async_executor",
    "head",
    "head_async",
    "get",
    "get_async",
    "post",
    "post_async",
    "put",
    "put_async",
    "patch",
    "patch_async",
    "delete",
    "delete_async",
    "options",
    "options_async",
]

logger = logging.getLogger(__name__)

_EXECUTOR: Optional[futures.ThreadPoolExecutor] = None
_EXECUTOR_LOCK = threading.Lock()


def _call_options(params: Optional[RequestParams]) -> CallOptions:
    if params is None:
        return CallOptions()
    return CallOptions(
        redirect_policy=params.allow_redirects,
        cookie_jar=params.cookie_jar,
        read_timeout=params.read_timeout or None,
        scope=CancellationScope(params.connect_timeout or None),
    )


def send(
    method: str,
    url: str,
    query: Optional[QueryParamTypes] = None,
    params: Optional[RequestParams] = None,
) -> Response:
    """Issue ``method`` against ``url`` and return the final response.

    Args:
        method: HTTP method name.
        url: Absolute ``http``/``https`` URL.
        query: Query parameters replacing the URL's query string.
        params: Optional body, headers, cookie jar, auth, timeouts and
            redirect policy.

    Raises:
        MalformedURL: If ``url`` or a redirect ``Location`` is unusable.
        EncodingError: If the JSON payload cannot be serialised.
        TransportError: If an exchange fails or the connect timeout expires.
        TooManyRedirects: If the redirect chain exceeds the hop bound.
    """

    settings = get_settings()
    call_options = _call_options(params)
    descriptor = build_request(method, url, query, params, user_agent=settings.user_agent)
    return execute(descriptor, call_options, max_hops=settings.max_redirect_hops)


def _get_executor() -> futures.ThreadPoolExecutor:
    global _EXECUTOR  # noqa: PLW0603

    with _EXECUTOR_LOCK:
        if _EXECUTOR is None:
            workers = get_settings().async_workers
            _EXECUTOR = futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="fetchkit-call"
            )
            logger.debug("async executor started", extra={"workers": workers})
        return _EXECUTOR


def send_async(
    method: str,
    url: str,
    query: Optional[QueryParamTypes] = None,
    params: Optional[RequestParams] = None,
) -> "futures.Future[Response]":
    """Run :func:`send` on the shared worker pool and return its future."""

    return _get_executor().submit(send, method, url, query, params)


def shutdown_async_executor(wait: bool = True) -> None:
    """Shut down the worker pool backing the ``*_async`` functions.

    A new pool is created on the next async call.
    """
    global _EXECUTOR  # noqa: PLW0603

    with _EXECUTOR_LOCK:
        executor, _EXECUTOR = _EXECUTOR, None
    if executor is not None:
        executor.shutdown(wait=wait)


def head(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) HEAD request."""
    return send("HEAD", url, query, params)


def head_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) HEAD request."""
    return send_async("HEAD", url, query, params)


def get(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) GET request."""
    return send("GET", url, query, params)


def get_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) GET request."""
    return send_async("GET", url, query, params)


def post(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) POST request."""
    return send("POST", url, query, params)


def post_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) POST request."""
    return send_async("POST", url, query, params)


def put(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) PUT request."""
    return send("PUT", url, query, params)


def put_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) PUT request."""
    return send_async("PUT", url, query, params)


def patch(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) PATCH request."""
    return send("PATCH", url, query, params)


def patch_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) PATCH request."""
    return send_async("PATCH", url, query, params)


def delete(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) DELETE request."""
    return send("DELETE", url, query, params)


def delete_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) DELETE request."""
    return send_async("DELETE", url, query, params)


def options(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> Response:
    """Make an HTTP(S) OPTIONS request."""
    return send("OPTIONS", url, query, params)


def options_async(
    url: str, query: Optional[QueryParamTypes] = None, params: Optional[RequestParams] = None
) -> "futures.Future[Response]":
    """Make an asynchronous HTTP(S) OPTIONS request."""
    return send_async("OPTIONS", url, query, params)
