#!/usr/bin/env python3
"""
Webhook delivery client.

Posts one JSON document to the chat webhook. At-most-once, best-effort:
no retries, no queueing. Every failure (timeout, connection error, non-2xx,
unserializable payload) is logged as a warning and reported as False.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from error_alerter import metrics
from error_alerter.configuration import DEFAULT_OPEN_TIMEOUT, DEFAULT_READ_TIMEOUT
from error_alerter.logging_utils import LOG_PREFIX, describe_error, get_logger, safe_log

RESPONSE_PREVIEW_LENGTH = 200


class WebhookClient:
    """
    POSTs payloads to a single webhook URL.

    Usage:
        client = WebhookClient(url=settings.webhook_url)
        delivered = client.post(payload)
    """

    def __init__(
        self,
        url: Optional[str],
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = str(url or '').strip()
        self.open_timeout = open_timeout
        self.read_timeout = read_timeout
        self.logger = logger or get_logger(name='webhook_client')

    @classmethod
    def from_settings(cls, settings: Any) -> "WebhookClient":
        return cls(
            url=settings.webhook_url,
            open_timeout=settings.open_timeout,
            read_timeout=settings.read_timeout,
            logger=get_logger(settings, 'webhook_client'),
        )

    def post(self, payload: Dict[str, Any]) -> bool:
        """
        Send ``payload`` as JSON.

        Returns:
            True iff the webhook answered with a 2xx status
        """
        if not self.url:
            metrics.record_webhook_request('skipped')
            return False

        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            return self._fail('fail_encoding', f"payload encoding failed: {describe_error(e)}")

        start_time = time.time()
        try:
            response = requests.post(
                self.url,
                data=body.encode('utf-8'),
                headers={'Content-Type': 'application/json'},
                timeout=(self.open_timeout, self.read_timeout),
            )
        except requests.exceptions.Timeout as e:
            return self._fail('fail_timeout', f"webhook post timed out: {describe_error(e)}")
        except requests.exceptions.ConnectionError as e:
            return self._fail('fail_connection', f"webhook post failed: {describe_error(e)}")
        except Exception as e:
            return self._fail('fail_other', f"webhook post failed: {describe_error(e)}")

        latency = time.time() - start_time

        if 200 <= response.status_code < 300:
            metrics.record_webhook_request('success', latency)
            safe_log(self.logger, logging.INFO, f"{LOG_PREFIX} alert delivered (latency: {latency:.2f}s)")
            return True

        metrics.record_webhook_request('fail_http', latency)
        safe_log(
            self.logger,
            logging.WARNING,
            f"{LOG_PREFIX} webhook rejected alert: HTTP {response.status_code} - "
            f"{_preview(response)}",
        )
        return False

    def _fail(self, status: str, message: str) -> bool:
        metrics.record_webhook_request(status)
        safe_log(self.logger, logging.WARNING, f"{LOG_PREFIX} {message}")
        return False


def _preview(response: Any) -> str:
    try:
        return str(response.text)[:RESPONSE_PREVIEW_LENGTH]
    except Exception:
        return ''
