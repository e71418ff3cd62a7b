"""Structured logging helpers for FetchKit.

The library itself only creates module loggers under the ``FetchKit``
namespace and attaches structured fields through ``extra``. Applications that
want those records rendered call :func:`setup_logging`, which installs a
console handler and, optionally, a rotating JSON-lines file handler whose
records have credentials masked.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

__all__ = ["JSONFormatter", "mask_sensitive_data", "setup_logging"]

_MASK = "***masked***"
_SENSITIVE_KEYS = {"authorization", "cookie", "set-cookie", "password", "token", "secret"}
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9+/=_-]{32,}$")

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Return a copy of ``payload`` with credential-like values masked."""

    def _mask_value(value: object, key_hint: Optional[str] = None) -> object:
        if isinstance(value, dict):
            return {
                sub_key: _mask_value(sub_value, str(sub_key).lower())
                for sub_key, sub_value in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [_mask_value(item, key_hint) for item in value]
        if isinstance(value, str):
            if key_hint in _SENSITIVE_KEYS:
                return _MASK
            lowered = value.lower()
            if lowered.startswith(("basic ", "bearer ")):
                return _MASK
            if _TOKEN_PATTERN.fullmatch(value):
                return _MASK
        return value

    masked: Dict[str, object] = {}
    for key, value in payload.items():
        lower = key.lower()
        if lower in _SENSITIVE_KEYS:
            masked[key] = _MASK
        else:
            masked[key] = _mask_value(value, lower)
    return masked


class JSONFormatter(logging.Formatter):
    """Formatter emitting masked JSON log entries."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string including its ``extra`` fields."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


def setup_logging(
    *,
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    json_console: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``FetchKit`` logger hierarchy.

    Args:
        level: Logging level; defaults to the ``logging.level`` setting.
        log_dir: When given, also write JSON lines to ``fetchkit.jsonl`` there,
            rotated per the ``logging`` settings.
        json_console: Render console output as JSON instead of plain text.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured ``FetchKit`` logger.
    """
    from .settings import get_settings

    config = get_settings().logging
    resolved_level = (level or config.level).upper()

    logger = logging.getLogger("FetchKit")
    logger.setLevel(getattr(logging, resolved_level, logging.WARNING))

    for handler in list(logger.handlers):
        if getattr(handler, "_fetchkit_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler):
                stream = getattr(handler, "stream", None)
                if stream in (sys.stdout, sys.stderr):
                    continue
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if json_console:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    stream_handler._fetchkit_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "fetchkit.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._fetchkit_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
