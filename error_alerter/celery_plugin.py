"""
Celery integration: alert when a task fails for good.

Celery sends ``task_failure`` only once a task is finished failing (retries
go through ``task_retry`` instead), which makes it the death handler for
the alerting pipeline. Receiver failures are logged and swallowed so that
alerting can never interfere with the worker's own bookkeeping.

Usage:
    celery_app = Celery("billing", broker=...)
    celery_plugin.install(settings=Configuration.from_env())
"""

import logging
from typing import Any, Mapping, Optional

from celery.signals import task_failure

from error_alerter.logging_utils import LOG_PREFIX, describe_error, get_logger, safe_log
from error_alerter.notifier import Notifier

# One receiver per app filter; None is the receiver for every app
_receivers = {}


def install(app: Any = None, settings: Any = None, notifier: Optional[Notifier] = None) -> Notifier:
    """
    Connect the failure receiver for ``app``.

    Installing again for the same app replaces its receiver; receivers for
    other apps stay connected.

    Args:
        app: Celery app; when given only its tasks are reported
        settings: Configuration; defaults to the process-wide instance
        notifier: Pre-built notifier (takes precedence over settings)

    Returns:
        The notifier used by the receiver
    """
    if notifier is None:
        notifier = Notifier(_resolve_settings(settings))

    def _on_task_failure(sender: Any = None, task_id: Any = None, exception: Optional[BaseException] = None, **kwargs: Any) -> None:
        if app is not None and getattr(sender, 'app', app) is not app:
            return
        handle_task_failure(notifier, sender, task_id, exception)

    _disconnect(app)
    task_failure.connect(_on_task_failure, weak=False)
    _receivers[app] = _on_task_failure
    return notifier


def uninstall(app: Any = None) -> None:
    """Disconnect the receiver installed for ``app``, or every receiver when no app is given."""
    for key in ([app] if app is not None else list(_receivers)):
        _disconnect(key)


def _disconnect(app: Any) -> None:
    receiver = _receivers.pop(app, None)
    if receiver is not None:
        task_failure.disconnect(receiver)


def job_from_task(sender: Any, task_id: Any) -> dict:
    """Queue-agnostic job mapping for a Celery task."""
    request = getattr(sender, 'request', None)
    delivery_info = getattr(request, 'delivery_info', None) or {}
    return {
        'class': getattr(sender, 'name', None) or type(sender).__name__,
        'jid': str(task_id) if task_id is not None else None,
        'queue': delivery_info.get('routing_key'),
    }


def handle_task_failure(notifier: Notifier, sender: Any, task_id: Any, exception: BaseException) -> bool:
    try:
        return notifier.notify_job_failure(job_from_task(sender, task_id), exception)
    except Exception as e:
        safe_log(
            get_logger(notifier.settings, 'celery_plugin'),
            logging.ERROR,
            f"{LOG_PREFIX} death handler failed: {describe_error(e)}",
        )
        return False


def handle_death(job: Mapping[str, Any], exception: BaseException, settings: Any = None) -> bool:
    """
    Death handler for any job queue that can describe a dead job as a mapping
    with ``class``, ``jid`` and ``queue`` keys.
    """
    try:
        return Notifier(_resolve_settings(settings)).notify_job_failure(job, exception)
    except Exception as e:
        safe_log(
            get_logger(settings, 'celery_plugin'),
            logging.ERROR,
            f"{LOG_PREFIX} death handler failed: {describe_error(e)}",
        )
        return False


def _resolve_settings(settings: Any) -> Any:
    if settings is not None:
        return settings
    import error_alerter
    return error_alerter.configuration()
