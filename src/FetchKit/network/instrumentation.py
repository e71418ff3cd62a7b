"""Structured log records for each hop of a call.

Emits ``fetchkit-hop`` and ``fetchkit-call-failed`` records through the standard
:mod:`logging` machinery, capturing method, redacted URL, status, hop number
and timings. Query strings are stripped so credentials passed as parameters
never reach log sinks.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import urlparse, urlunparse

import httpx

from .request import RequestDescriptor

logger = logging.getLogger(__name__)


def redact_url(url: object) -> str:
    """Strip query, fragment and userinfo from ``url``.

    Keeps only scheme + host + path.
    """
    try:
        parsed = urlparse(str(url))
        netloc = parsed.hostname or ""
        if parsed.port:
            netloc = f"{netloc}:{parsed.port}"
        return urlunparse((parsed.scheme, netloc, parsed.path, "", "", ""))
    except ValueError:
        return "[URL_REDACTION_FAILED]"


def log_hop(
    descriptor: RequestDescriptor,
    response: httpx.Response,
    *,
    hop: int,
    started: float,
    redirect_to: Optional[httpx.URL] = None,
) -> None:
    """Log one completed exchange at DEBUG level."""

    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug(
        "fetchkit-hop",
        extra={
            "method": descriptor.method,
            "url_redacted": redact_url(descriptor.url),
            "status": response.status_code,
            "hop": hop,
            "redirect_to": redact_url(redirect_to) if redirect_to is not None else None,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 3),
        },
    )


def log_call_failure(descriptor: RequestDescriptor, exc: BaseException, *, hop: int) -> None:
    """Log a call that aborted before producing a response."""

    logger.warning(
        "fetchkit-call-failed",
        extra={
            "method": descriptor.method,
            "url_redacted": redact_url(descriptor.url),
            "hop": hop,
            "error": type(exc).__name__,
            "reason": str(exc),
        },
    )


__all__ = ["redact_url", "log_hop", "log_call_failure"]
