"""FetchKit: a small HTTP client facade with manual redirect resolution.

Every HTTP method is exposed as a blocking function and an ``*_async`` twin::

    >>> import FetchKit
    >>> from FetchKit import RequestParams, Timeout
    >>> response = FetchKit.get(
    ...     "https://httpbin.org/get",
    ...     {"k1": "v1"},
    ...     RequestParams(timeout=Timeout(connect=5, read=10)),
    ... )
    >>> response.status_code, len(response.history)
    (200, 0)

Redirects are followed by FetchKit itself (up to five exchanges) so the
response carries the full request history and every cookie received along the
chain. Pass ``RequestParams(allow_redirects=False)`` to get the first redirect
response back unmodified.
"""

from .api import (
    delete,
    delete_async,
    get,
    get_async,
    head,
    head_async,
    options,
    options_async,
    patch,
    patch_async,
    post,
    post_async,
    put,
    put_async,
    send,
    send_async,
    shutdown_async_executor,
)
from .errors import (
    CallTimeout,
    ConfigurationError,
    DecodingError,
    EncodingError,
    FetchKitError,
    MalformedURL,
    TooManyRedirects,
    TransportError,
)
from .logging_utils import setup_logging
from .network.policy import PACKAGE_VERSION
from .network.redirect import RedirectPolicy
from .params import Auth, RequestParams, Timeout
from .response import Cookie, Response

__version__ = PACKAGE_VERSION

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
    "RequestParams",
    "Auth",
    "Timeout",
    "RedirectPolicy",
    "Response",
    "Cookie",
    "FetchKitError",
    "ConfigurationError",
    "MalformedURL",
    "EncodingError",
    "DecodingError",
    "TransportError",
    "CallTimeout",
    "TooManyRedirects",
    "setup_logging",
    "__version__",
]
