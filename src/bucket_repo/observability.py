"""Request-scoped logging and metric hooks.

Log records are written as one JSON object per line. While a request is
being served, every record carries that request's id, principal, method
and path; call sites add artifact details (key, size, content type)
through ``context=``.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Callable, MutableMapping

PACKAGE_LOGGER = "bucket_repo"

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class RequestContext:
    """The request currently being served, visible to every log record.

    Example:
        async with RequestContext(principal="deployer", method="PUT", path="/libs/app-1.0.jar"):
            logger.info("Artifact stored", context={"key": "libs/app-1.0.jar"})
    """

    def __init__(
        self,
        request_id: str | None = None,
        principal: str | None = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        self.request_id = request_id or uuid.uuid4().hex
        self.principal = principal
        self.method = method
        self.path = path
        self._token: Token["RequestContext | None"] | None = None

    @classmethod
    def current(cls) -> "RequestContext | None":
        return _current_request.get()

    def fields(self) -> dict[str, str]:
        """Non-empty request fields, as written to the log."""
        values = {
            "request_id": self.request_id,
            "principal": self.principal,
            "method": self.method,
            "path": self.path,
        }
        return {name: value for name, value in values.items() if value}

    def __enter__(self) -> "RequestContext":
        self._token = _current_request.set(self)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _current_request.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "RequestContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


_current_request: ContextVar[RequestContext | None] = ContextVar("bucket_repo_request", default=None)


class JSONFormatter(logging.Formatter):
    """One JSON object per record: request fields, call-site context, error."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request = RequestContext.current()
        if request is not None:
            data["request"] = request.fields()

        context = getattr(record, "context", None)
        if context:
            data["context"] = context

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 3)

        if record.exc_info and record.exc_info[0] is not None:
            data["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(data, default=str)


class RepositoryLogger(logging.LoggerAdapter):
    """Logger accepting ``context``, ``duration_ms`` and ``error`` keywords.

    Example:
        logger.info("Artifact stored", context={"key": key, "size": 3}, duration_ms=1.2)
        logger.error("Download failed", context={"key": key}, error=exc)
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        context = kwargs.pop("context", None)
        if context:
            extra["context"] = context
        duration_ms = kwargs.pop("duration_ms", None)
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        error = kwargs.pop("error", None)
        if error is not None:
            kwargs["exc_info"] = (type(error), error, error.__traceback__)
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> RepositoryLogger:
    """Logger for a module, writing through the package logger's handlers."""
    return RepositoryLogger(logging.getLogger(name), {})


def configure_logging(level: str = "INFO", format: str = "json") -> None:
    """Install a single stdout handler on the package logger.

    Args:
        level: Minimum level name, case-insensitive
        format: "json" for JSONFormatter, anything else for plain text
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level.upper())
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if format == "json" else logging.Formatter(TEXT_FORMAT))
    package_logger.addHandler(handler)


class Timer:
    """Wall-clock duration of a block, in milliseconds.

    Example:
        with Timer() as timer:
            await store.put(key, content)
        emit_timer("repository.upload", timer.duration_ms)
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._stopped: float | None = None

    @property
    def duration_ms(self) -> float:
        if self._started is None:
            return 0.0
        stopped = self._stopped if self._stopped is not None else time.perf_counter()
        return (stopped - self._started) * 1000

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def __exit__(self, *args: Any) -> None:
        self._stopped = time.perf_counter()


# Receives (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Forward counters and timers to an external metrics system."""
    _metric_callbacks.append(callback)


def clear_metric_callbacks() -> None:
    _metric_callbacks.clear()


def _emit(name: str, value: float, labels: dict[str, Any] | None) -> None:
    labels = dict(labels or {})
    request = RequestContext.current()
    if request is not None and request.method:
        labels.setdefault("method", request.method)

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, labels)
        except Exception:
            logging.getLogger(__name__).debug("Metric callback %r failed", callback, exc_info=True)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Count one occurrence of an event."""
    _emit(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    """Record how long an operation took."""
    _emit(name, duration_ms, labels)
