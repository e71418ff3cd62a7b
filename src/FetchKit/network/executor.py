# === NAVMAP v1 ===
# {
#   "module": "FetchKit.network.executor",
#   "purpose": "Redirect-resolving executor: drives a bounded hop loop and assembles the Response.",
#   "sections": [
#     {
#       "id": "execute",
#       "name": "execute",
#       "anchor": "function-execute",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Redirect-resolving executor.

Follows redirects manually, one hop at a time:

1. Check the call's cancellation scope.
2. Exchange the current descriptor through the :class:`TransportAdapter`.
3. On :class:`RedirectPending`: record the sent request in the history,
   resolve ``Location`` against the current URL, keep the hop's cookies,
   close the intermediate response, and re-dispatch with the same method,
   headers and body.
4. On :class:`FinalResponse`: keep its cookies, stream the body under the
   hop's read deadline, and assemble the :class:`~FetchKit.response.Response`
   with the current URL.

The loop is bounded by ``max_hops`` exchanges. Any error aborts the call; no
partial response is produced and nothing is retried.

Example:
    >>> from FetchKit.network.executor import execute
    >>> from FetchKit.network.request import build_request
    >>> from FetchKit.network.transport import CallOptions
    >>> response = execute(build_request("GET", "https://example.org"), CallOptions())
    >>> print(response.status_code, len(response.history))
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Tuple

import httpx

from ..cancellation import CancellationScope
from ..errors import DecodingError, FetchKitError, TooManyRedirects, TransportError
from ..response import Cookie, Response, parse_set_cookie_headers
from .instrumentation import log_call_failure, log_hop
from .redirect import format_audit_trail, resolve_location
from .request import RequestDescriptor
from .transport import CallOptions, FinalResponse, TransportAdapter

logger = logging.getLogger(__name__)

__all__ = ["execute"]


def _read_body(
    response: httpx.Response,
    descriptor: RequestDescriptor,
    options: CallOptions,
    hop_scope: CancellationScope,
) -> bytes:
    """Stream the body, enforcing the call scope and the hop's read deadline per chunk."""

    url = str(descriptor.url)
    chunks: List[bytes] = []
    try:
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            options.scope.raise_if_cancelled(url)
            if hop_scope.is_cancelled():
                raise TransportError(
                    f"{descriptor.method} {descriptor.url} exceeded the read timeout of "
                    f"{hop_scope.timeout:g}s while reading the body",
                    url=url,
                )
    except httpx.DecodingError as exc:
        raise DecodingError(
            f"{descriptor.method} {descriptor.url} returned an undecodable body: {exc}"
        ) from exc
    except (httpx.TransportError, httpx.StreamError) as exc:
        options.scope.raise_if_cancelled(url)
        raise TransportError(
            f"{descriptor.method} {descriptor.url} failed while reading the body: {exc}",
            url=url,
        ) from exc
    finally:
        response.close()
    return b"".join(chunks)


def execute(
    descriptor: RequestDescriptor,
    options: CallOptions,
    *,
    adapter: Optional[TransportAdapter] = None,
    max_hops: Optional[int] = None,
) -> Response:
    """Run ``descriptor`` to completion, following redirects per ``options``.

    Args:
        descriptor: Request for the first hop.
        options: Per-call redirect policy, cookie jar, timeouts and scope.
        adapter: Transport adapter; defaults to one over the shared transport.
        max_hops: Maximum exchanges in the chain; defaults to the
            ``max_redirect_hops`` setting.

    Returns:
        The assembled :class:`Response`.

    Raises:
        TransportError: If any exchange fails or the call's scope expires.
        MalformedURL: If a ``Location`` header cannot be resolved.
        TooManyRedirects: If the last permitted exchange is still a redirect.
        DecodingError: If the final body fails its ``Content-Encoding``.
    """

    if max_hops is None:
        from ..settings import get_settings

        max_hops = get_settings().max_redirect_hops
    adapter = adapter or TransportAdapter()

    current = descriptor
    history: List[RequestDescriptor] = []
    cookies: List[Cookie] = []
    audit_trail: List[Tuple[str, int]] = []

    for hop in range(1, max_hops + 1):
        started = time.perf_counter()
        try:
            options.scope.raise_if_cancelled(str(current.url))
            hop_scope = options.hop_scope()
            result = adapter.exchange(current, options, hop_scope)

            if isinstance(result, FinalResponse):
                response = result.response
                cookies.extend(parse_set_cookie_headers(response))
                content = _read_body(response, current, options, hop_scope)
                options.scope.raise_if_cancelled(str(current.url))
                log_hop(current, response, hop=hop, started=started)
                return Response.from_httpx(
                    response,
                    url=current.url,
                    history=tuple(history),
                    cookies=tuple(cookies),
                    content=content,
                )

            # Otherwise the hop is a RedirectPending.
            response = result.response
            audit_trail.append((str(current.url), response.status_code))
            try:
                target = resolve_location(current.url, result.location)
                cookies.extend(parse_set_cookie_headers(response))
            finally:
                response.close()
            log_hop(current, response, hop=hop, started=started, redirect_to=target)
        except FetchKitError as exc:
            log_call_failure(current, exc, hop=hop)
            raise

        history.append(current)
        current = current.with_url(target)

    logger.warning(
        "Redirect chain exceeded hop bound",
        extra={
            "max_hops": max_hops,
            "chain": format_audit_trail(audit_trail),
        },
    )
    raise TooManyRedirects(max_hops, [url for url, _ in audit_trail])
