"""Structured JSON logging and request ID middleware."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# ``extra=`` keys copied into the JSON payload when present on a record.
_EXTRA_KEYS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "intervals",
    "currency",
    "inverter_mode",
)

# Successful requests to these paths are not access-logged.
_QUIET_PATHS = frozenset({"/health"})


class JSONFormatter(logging.Formatter):
    """One JSON object per line, tagged with the current request ID."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        rid = request_id_var.get("")
        if rid:
            entry["request_id"] = rid

        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        if record.exc_info and record.exc_info[1]:
            entry["exc_type"] = type(record.exc_info[1]).__name__
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an X-Request-ID and logs its status and timing.

    Client errors (4xx) log at WARNING, server errors at ERROR.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)

        try:
            return await self._timed(request, call_next, rid)
        finally:
            request_id_var.reset(token)

    async def _timed(self, request: Request, call_next, rid: str) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["Server-Timing"] = f"app;dur={duration_ms}"

        path = request.url.path
        if path in _QUIET_PATHS and response.status_code < 400:
            return response

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logging.getLogger("batterysim.access").log(
            level,
            "%s %s -> %s (%.1fms) [%s]",
            request.method,
            path,
            response.status_code,
            duration_ms,
            rid,
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


def setup_logging(json_format: bool = False, level: int | str = logging.INFO) -> None:
    """Install a single stream handler on the root logger.

    Parameters
    ----------
    json_format : bool
        Emit :class:`JSONFormatter` lines (production) instead of plain text.
    level : int or str
        Root level, e.g. ``logging.DEBUG`` or ``"DEBUG"``.  ``DEBUG`` also
        shows the per-run dispatch summaries of the engine.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
