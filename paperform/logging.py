"""
Structured JSON logging for PaperForm.

One JSON object per line, so the service and CLI logs can be shipped to
CloudWatch, ELK or DataDog unchanged. Context passed through ``extra=``
(form_id, total_errors, request_id, ...) becomes top-level keys.

Example usage:
    >>> from paperform.logging import get_logger, setup_logging
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Form validated", extra={"form_id": "form-1", "total_errors": 0})
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line with its extra context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def request_context(request: Request) -> Dict[str, Any]:
    """Log fields describing an HTTP request: id, method, path and client."""
    context: Dict[str, Any] = {"method": request.method, "path": request.url.path}

    request_id = getattr(request.state, "request_id", None)
    if request_id:
        context["request_id"] = request_id
    if request.client:
        context["client_ip"] = request.client.host

    return context


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a short id and log its outcome.

    The id is stored on ``request.state`` for handlers and returned to the
    client in the X-Request-ID header. One line is logged per request, with
    status and duration.
    """

    def __init__(self, app, logger_name: str = "paperform.requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                f"{request.method} {request.url.path} failed",
                extra={**request_context(request), "status": 500, "duration_ms": _elapsed_ms(started)},
            )
            raise

        self.logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                **request_context(request),
                "status": response.status_code,
                "duration_ms": _elapsed_ms(started),
            },
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def setup_logging(level: str = "INFO", format_type: str = "json", logger_name: Optional[str] = None) -> None:
    """
    Send a logger's output to stdout as JSON or plain text.

    Calling it again replaces the handler instead of adding a second one.
    Unknown level names fall back to INFO.

    Args:
        level: Level name such as "DEBUG" or "warning"
        format_type: "json" or "text"
        logger_name: Logger to configure; the root logger when None
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if format_type.lower() == "json" else logging.Formatter(TEXT_FORMAT))

    logger = logging.getLogger(logger_name)
    logger.handlers = [handler]
    logger.setLevel(numeric_level)
    # A named logger owns its output; the root handler must not repeat it
    if logger_name:
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request: Optional[Request] = None,
    **fields: Any
) -> None:
    """
    Log at the named level, adding the request's context when one is given.

    Example:
        >>> log_with_context(logger, "info", "Form completed", request=request, form_id="form-1")
    """
    extra = dict(fields)
    if request is not None:
        extra.update(request_context(request))

    getattr(logger, level.lower(), logger.info)(message, extra=extra)
