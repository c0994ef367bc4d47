"""
Error Handling System for Axon

Every failure the service reports on purpose is an ``AxonError``. The
subclass decides how the API answers (see ``axon.api``); the code, severity,
details and context travel with it into logs.

Besides the hierarchy this module holds the helpers the services share:
mapping storage integrity failures, converting foreign exceptions, retrying
coroutines with backoff and logging errors with their context.
"""

import logging
import asyncio
import random
import functools
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Type, TypeVar, Union, cast
from datetime import datetime
from pydantic import BaseModel, Field

F = TypeVar('F', bound=Callable)

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """How loudly an error should be reported"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Machine-readable error kinds"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"

    # Content
    CATALOG_LOAD_ERROR = "catalog_load_error"

    # Exercise flow
    DUPLICATE_RECALL = "duplicate_recall"
    INVALID_TRANSITION = "invalid_transition"

    # Storage
    DATABASE_ERROR = "database_error"
    DUPLICATE_RECORD = "duplicate_record"
    INVALID_REFERENCE = "invalid_reference"


class ErrorInfo(BaseModel):
    """Serializable snapshot of an AxonError"""
    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    details: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    exception_type: Optional[str] = None

    class Config:
        use_enum_values = True


class AxonError(Exception):
    """Base exception class for all Axon errors"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_error_info(self) -> ErrorInfo:
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}

        return ErrorInfo(
            code=self.code,
            message=self.message,
            severity=self.severity,
            timestamp=self.timestamp,
            details=details,
            context=self.context,
            exception_type=type(self).__name__
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.to_error_info().dict()

    def __str__(self) -> str:
        text = f"{self.code.value}: {self.message}"
        if self.details:
            text += f" {self.details}"
        if self.cause is not None:
            text += f" (cause: {type(self.cause).__name__}: {self.cause})"
        return text


class ValidationError(AxonError):
    """Input rejected before any work was done"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if field is not None:
            details["field"] = field
        super().__init__(
            message,
            code=ErrorCode.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details,
            context=context
        )
        self.field = field


class CatalogLoadError(AxonError):
    """A word corpus file is missing or malformed"""

    def __init__(
        self,
        tier: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Failed to load {tier} words: {message}",
            code=ErrorCode.CATALOG_LOAD_ERROR,
            details={**(details or {}), "tier": tier},
            cause=cause
        )
        self.tier = tier


class TrainingError(AxonError):
    """Base class for exercise-flow errors"""


class DuplicateRecallError(TrainingError):
    """The same word was entered twice during recall"""

    def __init__(self, word: str):
        super().__init__(
            "You already entered that word!",
            code=ErrorCode.DUPLICATE_RECALL,
            severity=ErrorSeverity.INFO,
            details={"word": word}
        )
        self.word = word


class InvalidTransitionError(TrainingError):
    """The exercise cannot move to the requested phase from its current one"""

    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        message = f"Cannot move from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            code=ErrorCode.INVALID_TRANSITION,
            severity=ErrorSeverity.WARNING,
            details={"current": current, "target": target}
        )


class PersistenceError(AxonError):
    """A write to storage failed"""

    def __init__(
        self,
        message: str = "Failed to save training session",
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code=code, cause=cause, context=context)


class DuplicateRecordError(PersistenceError):
    """A write violated a uniqueness constraint"""

    def __init__(
        self,
        message: str = "Duplicate session detected",
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code=ErrorCode.DUPLICATE_RECORD, cause=cause, context=context)


class InvalidReferenceError(PersistenceError):
    """A write referenced a row that does not exist"""

    def __init__(
        self,
        message: str = "Invalid reference in session data",
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, code=ErrorCode.INVALID_REFERENCE, cause=cause, context=context)


UNIQUE_MARKERS = ("unique", "duplicate")
FOREIGN_KEY_MARKERS = ("foreign key", "foreign_key")


def map_integrity_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None
) -> PersistenceError:
    """
    Classify a driver integrity failure by its message.

    SQLite and PostgreSQL word their violations differently but both mention
    "unique"/"duplicate" or "foreign key". The driver text is kept as the
    cause only; the returned message is safe to show to clients.
    """
    text = str(getattr(exception, "orig", None) or exception).lower()

    if any(marker in text for marker in UNIQUE_MARKERS):
        return DuplicateRecordError(cause=exception, context=context)
    if any(marker in text for marker in FOREIGN_KEY_MARKERS):
        return InvalidReferenceError(cause=exception, context=context)
    return PersistenceError(cause=exception, context=context)


def convert_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: Optional[Dict[str, Any]] = None
) -> AxonError:
    """Wrap a foreign exception; AxonErrors are returned as-is with the context merged."""
    if isinstance(exception, AxonError):
        exception.context.update(context or {})
        return exception
    return AxonError(str(exception) or default_message, cause=exception, context=context)


def _backoff_delays(retry_delay: float, backoff_factor: float, jitter: float) -> Iterator[float]:
    delay = retry_delay
    while True:
        yield max(0.0, delay * random.uniform(1 - jitter, 1 + jitter))
        delay *= backoff_factor


def retry(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ignore_exceptions: Tuple[Type[BaseException], ...] = (),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
):
    """
    Retry the decorated coroutine function with exponential backoff.

    The function runs once plus up to ``max_retries`` more times. Exceptions
    in ``ignore_exceptions`` are re-raised at once; after the last attempt
    the final exception propagates. Waits use ``asyncio.sleep``.

    Args:
        max_retries: Attempts after the first one
        retry_delay: Delay before the first retry, in seconds
        backoff_factor: Multiplier applied to the delay after each retry
        jitter: Relative random spread applied to each delay
        retry_exceptions: Exception types that trigger a retry
        ignore_exceptions: Exception types never retried
        on_retry: Called with (retry number, error, delay) before sleeping
    """
    def should_retry(attempt: int, error: Exception) -> bool:
        return not isinstance(error, ignore_exceptions) and attempt <= max_retries

    def announce(name: str, attempt: int, error: Exception, delay: float) -> None:
        if on_retry:
            on_retry(attempt, error, delay)
        logger.warning(
            f"{name} failed ({type(error).__name__}: {error}); "
            f"retry {attempt}/{max_retries} in {delay:.2f}s"
        )

    def decorator(func: F) -> F:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"retry expects a coroutine function, got {func!r}")

        @functools.wraps(func)
        async def retrying(*args, **kwargs):
            delays = _backoff_delays(retry_delay, backoff_factor, jitter)
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_exceptions as e:
                    attempt += 1
                    if not should_retry(attempt, e):
                        raise
                    delay = next(delays)
                    announce(func.__name__, attempt, e, delay)
                    await asyncio.sleep(delay)

        return cast(F, retrying)

    return decorator


def log_error(
    error: Union[AxonError, Exception],
    level: int = logging.ERROR,
    include_stack_trace: bool = True,
    context: Optional[Dict[str, Any]] = None,
    log: Optional[logging.Logger] = None
) -> None:
    """
    Write one line describing ``error`` with its code, context and cause.

    Args:
        error: Error to report; foreign exceptions are wrapped first
        level: Logging level
        include_stack_trace: Attach the traceback of the underlying cause
        context: Extra identifiers (user id, task name...) merged into the error
        log: Logger to write to, this module's logger by default
    """
    error = convert_exception(error, context=context)

    parts = [f"[{error.code.value}] {error.message}"]
    if error.context:
        parts.append(", ".join(f"{key}={value}" for key, value in error.context.items()))
    if error.cause is not None:
        parts.append(f"cause {type(error.cause).__name__}: {error.cause}")

    exc_info = None
    if include_stack_trace and error.cause is not None:
        exc_info = (type(error.cause), error.cause, error.cause.__traceback__)

    (log or logger).log(level, " | ".join(parts), exc_info=exc_info, extra={"data": dict(error.context)})
