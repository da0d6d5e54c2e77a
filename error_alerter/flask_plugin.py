"""
Flask integration.

Subscribes to ``got_request_exception``, which Flask sends for every
unhandled exception before it builds its own 500 response (or re-raises
when PROPAGATE_EXCEPTIONS is on). The alert is a side channel: the host's
error handling and response are exactly what they would be without it.

Usage:
    app = Flask(__name__)
    flask_plugin.init_app(app, settings=Configuration.from_env())
"""

import logging
from typing import Any, Optional, Tuple

from flask import Flask, got_request_exception, request

from error_alerter.logging_utils import LOG_PREFIX, describe_error, get_logger, safe_log
from error_alerter.notifier import Notifier

EXTENSION_NAME = 'error_alerter'


def init_app(app: Flask, settings: Any = None, notifier: Optional[Notifier] = None) -> Notifier:
    """
    Register the alerting receiver for ``app``.

    Args:
        app: Flask application
        settings: Configuration; defaults to the process-wide instance
        notifier: Pre-built notifier (takes precedence over settings)

    Returns:
        The notifier used by the receiver
    """
    if notifier is None:
        if settings is None:
            import error_alerter
            settings = error_alerter.configuration()
        notifier = Notifier(settings)

    def _on_request_exception(sender: Flask, exception: BaseException, **extra: Any) -> None:
        handle_request_exception(notifier, sender, exception)

    # Blinker keeps weak references by default; the closure has no other owner
    got_request_exception.connect(_on_request_exception, app, weak=False)
    app.extensions[EXTENSION_NAME] = {
        'notifier': notifier,
        'receiver': _on_request_exception,
    }
    return notifier


def handle_request_exception(notifier: Notifier, app: Flask, exception: BaseException) -> bool:
    """Notify for one request exception; failures are logged, never raised."""
    try:
        handler_name, action_name = describe_endpoint(app)
        return notifier.notify_request_error(exception, handler_name, action_name)
    except Exception as e:
        safe_log(
            get_logger(notifier.settings, 'flask_plugin'),
            logging.ERROR,
            f"{LOG_PREFIX} request notify failed: {describe_error(e)}",
        )
        return False


def describe_endpoint(app: Flask) -> Tuple[str, str]:
    """
    Handler and action names for the current request.

    Class-based views give ("ViewClass", "<http method>"); function views
    give ("<blueprint or app name>", "<function name>").
    """
    endpoint = request.endpoint
    view = app.view_functions.get(endpoint) if endpoint else None

    view_class = getattr(view, 'view_class', None)
    if view_class is not None:
        return view_class.__name__, request.method.lower()

    handler_name = request.blueprint or app.name
    if view is not None:
        action_name = getattr(view, '__name__', None) or endpoint.rsplit('.', 1)[-1]
    elif endpoint:
        action_name = endpoint.rsplit('.', 1)[-1]
    else:
        action_name = request.method.lower()
    return handler_name, action_name
