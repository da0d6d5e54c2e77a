#!/usr/bin/env python3
"""
=====================================================================
Error Alerter - Notification Pipeline
=====================================================================
Turns an error record into at most one chat alert:

    record -> [enabled?] -> [duplicate?] -> build payload -> deliver -> bool

- Disabled settings short-circuit before the cache or network is touched
- Dedup is always consulted before any outbound request
- Nothing raised inside the pipeline escapes ``notify``; the caller only
  ever sees True (delivered) or False (not delivered)

Calls block for up to open_timeout + read_timeout; hosts that cannot
afford that must dispatch ``notify`` onto their own background executor.
=====================================================================
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from error_alerter import metrics
from error_alerter.deduplicator import Deduplicator
from error_alerter.error_record import ErrorRecord, from_exception, from_job, from_request
from error_alerter.logging_utils import LOG_PREFIX, describe_error, get_logger, safe_log
from error_alerter.payload_builder import build_payload, format_timestamp, utc_now
from error_alerter.webhook_client import WebhookClient


class Notifier:
    """
    Notification pipeline bound to one settings object.

    Args:
        settings: Configuration (read on every call, so reconfiguring takes
            effect on the next notification)
        deduplicator: Dedup strategy (default: Redis SET NX EX)
        client_factory: Builds the delivery client from settings
        clock: Returns the current time for the Time field
    """

    def __init__(
        self,
        settings: Any,
        deduplicator: Optional[Deduplicator] = None,
        client_factory: Callable[[Any], Any] = WebhookClient.from_settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.deduplicator = deduplicator or Deduplicator()
        self.client_factory = client_factory
        self.clock = clock

    def notify(self, record: ErrorRecord) -> bool:
        """
        Run the pipeline for one record.

        Returns:
            True if the alert was delivered, False otherwise
        """
        settings = self.settings
        try:
            if not settings.enabled():
                metrics.record_outcome('disabled')
                return False

            if self.deduplicator.is_duplicate(record, settings):
                metrics.record_outcome('duplicate')
                safe_log(
                    get_logger(settings, 'notifier'),
                    logging.DEBUG,
                    f"{LOG_PREFIX} duplicate suppressed: {record.error_class} from {record.source_detail}",
                )
                return False

            timestamp = format_timestamp(settings, self.clock)
            payload = build_payload(record, settings, timestamp)
            delivered = bool(self.client_factory(settings).post(payload))
        except Exception as e:
            metrics.record_outcome('error')
            safe_log(
                get_logger(settings, 'notifier'),
                logging.ERROR,
                f"{LOG_PREFIX} notify failed: {describe_error(e)}",
            )
            return False

        metrics.record_outcome('sent' if delivered else 'failed')
        return delivered

    def notify_exception(self, error: BaseException, context: Optional[Mapping[str, Any]] = None) -> bool:
        """Notify for an error raised in arbitrary application code."""
        return self._notify_with(lambda: from_exception(error, self.settings, context))

    def notify_request_error(self, error: BaseException, handler_name: str, action_name: str) -> bool:
        """Notify for an unhandled error raised while serving a web request."""
        return self._notify_with(lambda: from_request(error, handler_name, action_name, self.settings))

    def notify_job_failure(self, job: Mapping[str, Any], error: BaseException) -> bool:
        """Notify for a job that exhausted its retries."""
        return self._notify_with(lambda: from_job(job, error, self.settings))

    def _notify_with(self, build_record: Callable[[], ErrorRecord]) -> bool:
        try:
            record = build_record()
        except Exception as e:
            metrics.record_outcome('error')
            safe_log(
                get_logger(self.settings, 'notifier'),
                logging.ERROR,
                f"{LOG_PREFIX} could not build error record: {describe_error(e)}",
            )
            return False
        return self.notify(record)
