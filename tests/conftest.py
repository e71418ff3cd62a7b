# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "isolate-fetchkit-state",
#       "name": "_isolate_fetchkit_state",
#       "anchor": "function-isolate-fetchkit-state",
#       "kind": "function"
#     },
#     {
#       "id": "loopback",
#       "name": "loopback",
#       "anchor": "function-loopback",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Every test starts from a clean process state: no ``FETCHKIT_*`` variables,
no memoised settings, no shared transport and no async worker pool. Tests that
need a real socket use the ``loopback`` fixture.
"""

from __future__ import annotations

import logging
import os
from typing import Iterator

import pytest

from FetchKit.api import shutdown_async_executor
from FetchKit.network.transport import reset_http_transport
from FetchKit.settings import invalidate_settings_cache
from FetchKit.testing import LoopbackServer


@pytest.fixture(autouse=True)
def _isolate_fetchkit_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in list(os.environ):
        if key.upper().startswith("FETCHKIT_"):
            monkeypatch.delenv(key, raising=False)
    invalidate_settings_cache()
    reset_http_transport()

    package_logger = logging.getLogger("FetchKit")
    saved = (package_logger.level, package_logger.propagate, list(package_logger.handlers))
    yield
    shutdown_async_executor(wait=True)
    reset_http_transport()
    invalidate_settings_cache()

    level, propagate, handlers = saved
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(level)
    package_logger.propagate = propagate


@pytest.fixture
def loopback() -> Iterator[LoopbackServer]:
    """Yield a running loopback HTTP server."""

    with LoopbackServer() as server:
        yield server
