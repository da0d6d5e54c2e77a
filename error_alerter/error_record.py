"""
Normalized, immutable description of one error occurrence.

Each call site has its own constructor and all of them produce the same
``ErrorRecord`` shape:

- ``from_exception``: arbitrary application code, with a free-form context
- ``from_request``: an unhandled exception raised while serving a web request
- ``from_job``: a background job that exhausted its retries

The message is truncated to ``max_error_length`` here, before anything else
sees the record.
"""

import traceback
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from error_alerter.configuration import DEFAULT_MAX_ERROR_LENGTH

SOURCE_APPLICATION = "Application"
SOURCE_CONTROLLER = "Controller"
SOURCE_WORKER = "Worker"


@dataclass(frozen=True)
class ErrorRecord:
    source: str
    source_detail: Optional[str]
    error_class: str
    error_message: str
    queue: Optional[str] = None
    # Captured for callers and logs; not rendered in the alert payload
    job_id: Optional[str] = None
    backtrace: Optional[Tuple[str, ...]] = None


def new_record(
    *,
    error_class: str,
    error_message: Any,
    source: str = SOURCE_WORKER,
    source_detail: Optional[str] = None,
    worker_class: Optional[str] = None,
    queue: Optional[str] = None,
    job_id: Optional[str] = None,
    backtrace: Optional[Sequence[str]] = None,
    max_error_length: int = DEFAULT_MAX_ERROR_LENGTH,
) -> ErrorRecord:
    """
    Build a record from already-extracted fields.

    ``source_detail`` falls back to ``worker_class`` when not given, and the
    message is cut to ``max_error_length`` characters.
    """
    message = '' if error_message is None else str(error_message)
    return ErrorRecord(
        source=source,
        source_detail=source_detail if source_detail is not None else worker_class,
        error_class=str(error_class),
        error_message=message[:max(int(max_error_length), 0)],
        queue=queue,
        job_id=job_id,
        backtrace=tuple(backtrace) if backtrace is not None else None,
    )


def error_class_name(error: BaseException) -> str:
    """Qualified class name, without the module for builtins."""
    cls = type(error)
    module = getattr(cls, '__module__', None)
    if not module or module == 'builtins':
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


def extract_backtrace(error: BaseException) -> Optional[Tuple[str, ...]]:
    """
    Frames of the exception's traceback, outermost first.

    Returns:
        Tuple of "path:line:in function" strings, or None when the exception
        was never raised (no traceback attached)
    """
    tb = getattr(error, '__traceback__', None)
    if tb is None:
        return None
    return tuple(
        f"{frame.filename}:{frame.lineno}:in {frame.name}"
        for frame in traceback.extract_tb(tb)
    )


def _max_length(settings: Any) -> int:
    return getattr(settings, 'max_error_length', DEFAULT_MAX_ERROR_LENGTH)


def from_exception(
    error: BaseException,
    settings: Any = None,
    context: Optional[Mapping[str, Any]] = None,
) -> ErrorRecord:
    """
    Record for an error raised anywhere in the application.

    Recognized context keys: ``source`` (default "Application"),
    ``source_detail`` and ``queue``.
    """
    context = context or {}
    return new_record(
        source=context.get('source') or SOURCE_APPLICATION,
        source_detail=context.get('source_detail'),
        error_class=error_class_name(error),
        error_message=str(error),
        backtrace=extract_backtrace(error),
        queue=context.get('queue'),
        max_error_length=_max_length(settings),
    )


def from_request(
    error: BaseException,
    handler_name: str,
    action_name: str,
    settings: Any = None,
) -> ErrorRecord:
    """Record for an unhandled error in a web request handler ("Handler#action")."""
    return new_record(
        source=SOURCE_CONTROLLER,
        source_detail=f"{handler_name}#{action_name}",
        error_class=error_class_name(error),
        error_message=str(error),
        backtrace=extract_backtrace(error),
        max_error_length=_max_length(settings),
    )


def from_job(
    job: Mapping[str, Any],
    error: BaseException,
    settings: Any = None,
) -> ErrorRecord:
    """
    Record for a job that reached its permanently-failed state.

    ``job`` uses queue-agnostic keys: ``class`` (job class name), ``jid``
    (job id), ``queue`` and optionally ``source_detail``.
    """
    return new_record(
        source=SOURCE_WORKER,
        source_detail=job.get('source_detail'),
        worker_class=job.get('class'),
        job_id=job.get('jid'),
        queue=job.get('queue'),
        error_class=error_class_name(error),
        error_message=str(error),
        backtrace=extract_backtrace(error),
        max_error_length=_max_length(settings),
    )
