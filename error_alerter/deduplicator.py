#!/usr/bin/env python3
"""
Alert deduplication backed by Redis.

An error's fingerprint is claimed with a single ``SET key 1 NX EX ttl``.
The first occurrence inside the window wins the claim and is delivered;
every later occurrence with the same fingerprint finds the key already
present and is suppressed until it expires.

Fingerprints hash the literal message text, so messages embedding ids or
timestamps do not collapse into one another.
"""

import hashlib
import logging
from typing import Any

from error_alerter import metrics
from error_alerter.error_record import ErrorRecord
from error_alerter.logging_utils import LOG_PREFIX, describe_error, get_logger, safe_log

KEY_PREFIX = "error_alerter"


def fingerprint(record: ErrorRecord) -> str:
    """MD5 hex digest over "error_class:source_detail:error_message"."""
    source_detail = '' if record.source_detail is None else record.source_detail
    raw = f"{record.error_class}:{source_detail}:{record.error_message}"
    # Lone surrogates (surrogateescape-decoded bytes) must still hash
    return hashlib.md5(raw.encode('utf-8', 'surrogatepass')).hexdigest()


def dedup_key(record: ErrorRecord) -> str:
    return f"{KEY_PREFIX}:{fingerprint(record)}"


class Deduplicator:
    """
    Claim-or-detect-duplicate against the configured cache.

    Usage:
        dedup = Deduplicator()
        if dedup.is_duplicate(record, settings):
            return False  # already alerted inside the window
    """

    def is_duplicate(self, record: ErrorRecord, settings: Any) -> bool:
        """
        Returns:
            True if an identical error was already claimed inside the dedup
            window. False on first occurrence, when no cache is configured,
            or when the cache operation fails (fail open).
        """
        cache = getattr(settings, 'cache', None)
        if cache is None:
            return False

        try:
            key = dedup_key(record)
            claimed = cache.set(key, "1", nx=True, ex=int(settings.dedup_ttl))
            return not claimed
        except Exception as e:
            metrics.record_dedup_failure()
            safe_log(
                get_logger(settings, 'deduplicator'),
                logging.WARNING,
                f"{LOG_PREFIX} dedup check failed, proceeding: {describe_error(e)}",
            )
            return False
