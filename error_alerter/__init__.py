"""
error_alerter - deduplicated chat alerts for application errors.

Explicit use::

    from error_alerter import Configuration, Notifier

    notifier = Notifier(Configuration(webhook_url=url, redis=redis_client))
    notifier.notify_exception(error, context={"source": "Cron", "source_detail": "nightly:sync"})

Process-wide default::

    import error_alerter

    error_alerter.configure(webhook_url=url, app_name="Billing")
    error_alerter.notify(error)
"""

from typing import Any, Mapping, Optional

from error_alerter.configuration import Configuration, ConfigurationError
from error_alerter.deduplicator import Deduplicator
from error_alerter.error_record import ErrorRecord, from_exception, from_job, from_request, new_record
from error_alerter.notifier import Notifier
from error_alerter.webhook_client import WebhookClient

__version__ = "1.0.0"

__all__ = [
    "Configuration",
    "ConfigurationError",
    "Deduplicator",
    "ErrorRecord",
    "Notifier",
    "WebhookClient",
    "configuration",
    "configure",
    "from_exception",
    "from_job",
    "from_request",
    "new_record",
    "notify",
    "reset",
]

_configuration: Optional[Configuration] = None


def configuration() -> Configuration:
    """The process-wide default settings (created on first use)."""
    global _configuration
    if _configuration is None:
        _configuration = Configuration()
    return _configuration


def configure(**overrides: Any) -> Configuration:
    """Update the default settings; unknown names raise ConfigurationError."""
    return configuration().update(**overrides)


def reset() -> Configuration:
    """Replace the default settings with a fresh instance."""
    global _configuration
    _configuration = Configuration()
    return _configuration


def notify(error: BaseException, context: Optional[Mapping[str, Any]] = None) -> bool:
    """Notify through the default settings. Never raises."""
    return Notifier(configuration()).notify_exception(error, context=context)
