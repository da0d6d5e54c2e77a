#!/usr/bin/env python3
"""
Redis connector for the dedup cache.

Builds a client with short socket timeouts so a slow or unreachable Redis
bounds the time the dedup check can add to a notification. An unreachable
server at startup is logged but the client is still returned: redis-py
reconnects on the next command, and each dedup check fails open on its own
until then. Only a blank or unparseable URL yields None.
"""

from typing import Optional
import logging
import redis

from error_alerter.logging_utils import LOG_PREFIX, describe_error, safe_log

DEFAULT_SOCKET_TIMEOUT = 1.0
DEFAULT_MAX_CONNECTIONS = 10


def get_redis_client(
    url: str,
    *,
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    verify: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Optional[redis.Redis]:
    """
    Build a Redis client for dedup claims.

    Args:
        url: Redis URL (redis://, rediss:// or unix://)
        socket_timeout: Connect and read timeout in seconds
        max_connections: Pool size
        verify: PING the server before returning the client
        logger: Logger for the connection warning

    Returns:
        Redis client (even when the PING fails), or None if the URL is blank
        or cannot be parsed
    """
    log = logger or logging.getLogger(__name__)

    if not (url or '').strip():
        return None

    try:
        pool = redis.ConnectionPool.from_url(
            url.strip(),
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            max_connections=max_connections,
        )
        client = redis.Redis(connection_pool=pool)
    except Exception as e:
        safe_log(
            log,
            logging.WARNING,
            f"{LOG_PREFIX} invalid dedup cache URL, deduplication disabled: {describe_error(e)}",
        )
        return None

    if verify:
        try:
            client.ping()
        except Exception as e:
            safe_log(
                log,
                logging.WARNING,
                f"{LOG_PREFIX} dedup cache unreachable, will retry per notification: {describe_error(e)}",
            )
            return client
    safe_log(log, logging.INFO, f"{LOG_PREFIX} dedup cache connected")
    return client
