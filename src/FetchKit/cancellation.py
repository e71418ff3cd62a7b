"""Cooperative cancellation scope bounding a whole call.

A call configured with a connect timeout gets one :class:`CancellationScope`
whose deadline covers every hop of its redirect chain.  The executor checks
the scope before dispatching each hop and after reading the final body, and
derives the per-hop transport budget from :meth:`CancellationScope.remaining`.
The implementation avoids thread interruption in favour of explicit checks.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import CallTimeout

__all__ = ["CancellationScope"]


class CancellationScope:
    """Thread-safe cancellation scope with an optional deadline.

    Examples:
        >>> scope = CancellationScope(timeout=2.5)
        >>> scope.raise_if_cancelled()  # no-op while the budget lasts
        >>> unbounded = CancellationScope()
        >>> unbounded.remaining() is None
        True
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        """Create a scope; ``timeout`` of ``None`` or ``0`` means unbounded."""
        self._timeout = timeout if timeout else None
        self._deadline = (
            time.monotonic() + self._timeout if self._timeout is not None else None
        )
        self._cancelled = threading.Event()

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def cancel(self) -> None:
        """Signal that the call should stop before its next hop."""
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def is_cancelled(self) -> bool:
        """Return ``True`` once cancelled explicitly or past the deadline."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, url: Optional[str] = None) -> None:
        """Raise :class:`CallTimeout` when the scope is no longer live."""
        if self._cancelled.is_set():
            raise CallTimeout("call cancelled", url=url)
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise CallTimeout(
                f"connect timeout of {self._timeout:g}s exceeded", url=url
            )
