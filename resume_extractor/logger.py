"""Logging utilities for resume-extractor."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# Request ID and active strategy, carried across calls within one extraction
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
strategy_var: ContextVar[Optional[str]] = ContextVar("strategy", default=None)


class ContextLogger:
    """Logger wrapper that appends structured data and extraction context."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def _format_extra_data(extra_data: Optional[dict[str, Any]]) -> str:
        if not extra_data:
            return ""
        parts = [f"{k}={v}" for k, v in extra_data.items()]
        return " [" + ", ".join(parts) + "]"

    def _log(self, level: int, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        if not self.logger.isEnabledFor(level):
            return

        extra_data = dict(extra_data or {})
        strategy = strategy_var.get()
        if strategy and "strategy" not in extra_data:
            extra_data["strategy"] = strategy
        request_id = request_id_var.get()
        if request_id:
            extra_data["request_id"] = request_id

        self.logger.log(level, msg + self._format_extra_data(extra_data), **kwargs)

    def debug(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.ERROR, msg, extra_data, **kwargs)


# Third-party loggers that are chatty at INFO (httpx logs every OCR request)
QUIET_LOGGERS = ("httpx", "httpcore", "PIL")


def setup_logging(log_level: str = "INFO"):
    """Send all records to stdout with one plain-text handler.

    Args:
        log_level: Level name for the root logger; unknown names mean INFO
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> ContextLogger:
    """Wrap ``logging.getLogger(name)`` so calls accept ``extra_data``."""
    return ContextLogger(logging.getLogger(name))


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind an id to the current extraction so every log line carries it.

    Args:
        request_id: Id supplied by the caller (e.g. an ``x-request-id``
            header). A short random id is generated when None.

    Returns:
        The id now bound to the context
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    request_id_var.set(request_id)
    return request_id


class Timer:
    """Measures wall time of a ``with`` block in milliseconds.

    ``get_elapsed_ms`` can be read inside the block as well as after it.
    """

    def __init__(self, name: str):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[int] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = self._since_start()

    def _since_start(self) -> int:
        if self.start_time is None:
            return 0
        return int((time.perf_counter() - self.start_time) * 1000)

    def get_elapsed_ms(self) -> int:
        return self.elapsed_ms if self.elapsed_ms is not None else self._since_start()
