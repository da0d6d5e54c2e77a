#!/usr/bin/env python3
"""
Error Alerter - Configuration

Plain settings holder for the notification pipeline. A ``Configuration`` is
passed explicitly to ``Notifier``; ``error_alerter.configure()`` only edits a
process-wide default instance of this same class.

Environment Variables (``Configuration.from_env``):
    ERROR_ALERTER_WEBHOOK_URL: Chat webhook URL (blank disables alerting)
    ERROR_ALERTER_DEDUP_TTL: Dedup window in seconds (default: 300)
    ERROR_ALERTER_MAX_BACKTRACE_LINES: Trace lines rendered (default: 5)
    ERROR_ALERTER_MAX_ERROR_LENGTH: Message truncation length (default: 500)
    ERROR_ALERTER_APP_NAME: Header prefix (default: unset)
    ERROR_ALERTER_APP_ROOT: Application root used to filter frames (default: cwd)
    ERROR_ALERTER_TIME_ZONE: IANA zone for the Time field (default: UTC)
    ERROR_ALERTER_OPEN_TIMEOUT: Webhook connect timeout in seconds (default: 4)
    ERROR_ALERTER_READ_TIMEOUT: Webhook read timeout in seconds (default: 6)
    ERROR_ALERTER_REDIS_URL: Dedup cache URL (default: unset, dedup off)
"""

import os
import logging
from typing import Any, Dict, List, Mapping, Optional

ENV_PREFIX = 'ERROR_ALERTER_'

DEFAULT_DEDUP_TTL = 300  # 5 minutes
DEFAULT_MAX_BACKTRACE_LINES = 5
DEFAULT_MAX_ERROR_LENGTH = 500
DEFAULT_TIME_ZONE = 'UTC'
DEFAULT_OPEN_TIMEOUT = 4
DEFAULT_READ_TIMEOUT = 6


class ConfigurationError(AttributeError):
    """Raised when configure() is given a setting name that does not exist."""
    pass


class Configuration:
    """
    Settings for the notification pipeline.

    Attributes:
        webhook_url: Chat webhook target; alerting is active iff non-blank
        dedup_ttl: Seconds an error fingerprint stays claimed in the cache
        max_backtrace_lines: Maximum application frames rendered
        max_error_length: Maximum characters kept from the error message
        app_name: Optional label prefixed to the alert header
        redis: Optional dedup cache handle (absent => no dedup)
        logger: Optional logger for best-effort diagnostics
        app_root: Application root path used to keep and relativize frames
        time_zone: IANA zone name used for the Time field
        open_timeout: Webhook connect timeout in seconds
        read_timeout: Webhook read timeout in seconds
    """

    SETTINGS = (
        'webhook_url',
        'dedup_ttl',
        'max_backtrace_lines',
        'max_error_length',
        'app_name',
        'redis',
        'logger',
        'app_root',
        'time_zone',
        'open_timeout',
        'read_timeout',
    )

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        dedup_ttl: int = DEFAULT_DEDUP_TTL,
        max_backtrace_lines: int = DEFAULT_MAX_BACKTRACE_LINES,
        max_error_length: int = DEFAULT_MAX_ERROR_LENGTH,
        app_name: Optional[str] = None,
        redis: Any = None,
        logger: Optional[logging.Logger] = None,
        app_root: Optional[str] = None,
        time_zone: str = DEFAULT_TIME_ZONE,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.webhook_url = webhook_url
        self.dedup_ttl = dedup_ttl
        self.max_backtrace_lines = max_backtrace_lines
        self.max_error_length = max_error_length
        self.app_name = app_name
        self.redis = redis
        self.logger = logger
        self.app_root = app_root
        self.time_zone = time_zone
        self.open_timeout = open_timeout
        self.read_timeout = read_timeout

    @property
    def cache(self) -> Any:
        """The dedup cache handle (alias of ``redis``)."""
        return self.redis

    @cache.setter
    def cache(self, value: Any) -> None:
        self.redis = value

    def enabled(self) -> bool:
        """True iff a non-blank webhook URL is configured."""
        return len(str(self.webhook_url or '').strip()) > 0

    def update(self, **overrides: Any) -> "Configuration":
        """
        Set several settings at once.

        Raises:
            ConfigurationError: If a name is not a known setting
        """
        for name in overrides:
            if name not in self.SETTINGS and name != 'cache':
                raise ConfigurationError(f"Unknown error_alerter setting: {name}")
        for name, value in overrides.items():
            setattr(self, name, value)
        return self

    def validate(self) -> List[str]:
        """
        Check the settings for values that will not work as intended.

        Returns:
            List of warning strings (empty when everything looks fine)
        """
        warnings = []
        url = str(self.webhook_url or '').strip()
        if url and not url.lower().startswith(('http://', 'https://')):
            warnings.append("webhook_url must start with http:// or https://.")
        for name in ('dedup_ttl', 'max_backtrace_lines', 'max_error_length'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                warnings.append(f"{name} must be a positive integer.")
        for name in ('open_timeout', 'read_timeout'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                warnings.append(f"{name} must be a positive number.")
        return warnings

    def as_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        """Printable view of the settings; the webhook URL carries a secret token."""
        url = self.webhook_url
        if mask_secrets and url:
            url = _mask_url(str(url))
        return {
            'enabled': self.enabled(),
            'webhook_url': url,
            'dedup_ttl': self.dedup_ttl,
            'dedup_cache': 'configured' if self.redis is not None else 'none',
            'max_backtrace_lines': self.max_backtrace_lines,
            'max_error_length': self.max_error_length,
            'app_name': self.app_name,
            'app_root': self.app_root,
            'time_zone': self.time_zone,
            'open_timeout': self.open_timeout,
            'read_timeout': self.read_timeout,
        }

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, connect_redis: bool = True) -> "Configuration":
        """
        Build settings from ERROR_ALERTER_* environment variables.

        Malformed numbers fall back to their defaults. When
        ERROR_ALERTER_REDIS_URL is set and ``connect_redis`` is true, a Redis
        client is created; an unreachable server is logged and retried on each
        dedup check.
        """
        env = os.environ if environ is None else environ

        def _get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None or value.strip() == '':
                return default
            return value.strip()

        config = cls(
            webhook_url=_get('WEBHOOK_URL'),
            dedup_ttl=_env_int(_get('DEDUP_TTL'), DEFAULT_DEDUP_TTL),
            max_backtrace_lines=_env_int(_get('MAX_BACKTRACE_LINES'), DEFAULT_MAX_BACKTRACE_LINES),
            max_error_length=_env_int(_get('MAX_ERROR_LENGTH'), DEFAULT_MAX_ERROR_LENGTH),
            app_name=_get('APP_NAME'),
            app_root=_get('APP_ROOT', os.getcwd()),
            time_zone=_get('TIME_ZONE', DEFAULT_TIME_ZONE),
            open_timeout=_env_float(_get('OPEN_TIMEOUT'), DEFAULT_OPEN_TIMEOUT),
            read_timeout=_env_float(_get('READ_TIMEOUT'), DEFAULT_READ_TIMEOUT),
        )

        redis_url = _get('REDIS_URL')
        if redis_url and connect_redis:
            from error_alerter.redis_connector import get_redis_client
            config.redis = get_redis_client(redis_url)

        return config

    def __repr__(self) -> str:
        return f"Configuration(enabled={self.enabled()}, app_name={self.app_name!r})"


def _env_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (ValueError, TypeError):
        return default


def _env_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (ValueError, TypeError):
        return default


def _mask_url(url: str) -> str:
    # Slack-style webhook URLs carry the credential in the path
    scheme, sep, rest = url.partition('://')
    if not sep:
        return '***'
    host = rest.split('/', 1)[0]
    return f"{scheme}://{host}/***"
