"""
Application Logger

Every Axon module logs through a child of the "axon" logger
(``app_logger.getChild("content.selector")`` and so on), so one call to
``configure_logger`` at startup decides level, format and destination for
the whole service.

Records may carry structured context as ``extra={"data": {...}}``; the JSON
formatter merges it into the emitted object.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import asyncio
from typing import Any, Callable, Optional, TypeVar, Union

APP_LOGGER_NAME = "axon"

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'APP_LOGGER_NAME',
    'JsonFormatter',
    'configure_logger',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.datetime.utcfromtimestamp(record.created).isoformat() + "Z",
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}"
        }

        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry.update(data)

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(entry, default=str)


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    format_string: str = DEFAULT_LOG_FORMAT,
    use_json: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    (Re)configure the named logger.

    Existing handlers are replaced, so calling this again (for example from
    each ``create_app``) never duplicates output.

    Args:
        name: Logger to configure, the application root by default
        level: Level name or number
        format_string: ``logging`` format used when not writing JSON
        use_json: Emit records through ``JsonFormatter``
        log_file: Also append to this file when given

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = JsonFormatter() if use_json else logging.Formatter(format_string, DEFAULT_DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        directory = os.path.dirname(log_file)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            logger.warning(f"Log file {log_file} unavailable, logging to stdout only: {e}")

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def _default_app_logger() -> logging.Logger:
    logger = logging.getLogger(APP_LOGGER_NAME)
    if logger.handlers:
        return logger
    return configure_logger(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        use_json=os.environ.get("LOG_JSON", "false").lower() == "true",
        log_file=os.environ.get("LOG_FILE")
    )


app_logger = _default_app_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Log how long each call of the decorated function takes.

    Successful calls are logged at DEBUG, failures at ERROR before the
    exception is re-raised. Only coroutine functions can be decorated.
    """
    log = logger or app_logger

    def report(name: str, started: float, error: Optional[Exception] = None) -> None:
        elapsed = time.perf_counter() - started
        if error is None:
            log.debug(f"{name} took {elapsed:.3f}s")
        else:
            log.error(f"{name} failed after {elapsed:.3f}s: {error}")

    def decorator(func: F) -> F:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"log_execution_time expects a coroutine function, got {func!r}")

        @functools.wraps(func)
        async def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                report(func.__name__, started, e)
                raise
            report(func.__name__, started)
            return result

        return timed

    return decorator
