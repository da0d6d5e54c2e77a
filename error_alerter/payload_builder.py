"""
Builds the chat webhook document for one error record.

Wire shape (Block Kit style)::

    {
        "icon_emoji": ":rotating_light:",
        "username": "Error Alerts",
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": "<header>", "emoji": true}},
            {"type": "section", "fields": [<Source>, <Error>, <Time>, (<Queue>)]},
            {"type": "section", "text": {"type": "mrkdwn", "text": "*Message:*\\n```...```"}},
            ({"type": "section", "text": {"type": "mrkdwn", "text": "*Backtrace:*\\n```...```"}})
        ]
    }

The builder is a pure function of the record, the settings and an already
formatted timestamp; ``format_timestamp`` owns the clock and time zone.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from error_alerter.configuration import DEFAULT_MAX_BACKTRACE_LINES, DEFAULT_TIME_ZONE
from error_alerter.error_record import ErrorRecord
from error_alerter.logging_utils import LOG_PREFIX, get_logger, safe_log

ICON_EMOJI = ':rotating_light:'
USERNAME = 'Error Alerts'


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(
    settings: Any = None,
    clock: Callable[[], datetime] = utc_now,
) -> str:
    """
    Render "Mon DD, YYYY H:MM AM TZ" for the configured time zone.

    An unknown zone name falls back to UTC.
    """
    zone_name = getattr(settings, 'time_zone', None) or DEFAULT_TIME_ZONE
    try:
        zone = ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError):
        safe_log(
            get_logger(settings, 'payload_builder'),
            logging.WARNING,
            f"{LOG_PREFIX} unknown time zone {zone_name!r}, using UTC",
        )
        zone = timezone.utc

    now = clock()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(zone)
    hour = local.hour % 12 or 12
    return f"{local:%b %d, %Y} {hour}:{local:%M %p} {local.tzname()}"


def clean_backtrace(backtrace: Sequence[str], app_root: Optional[str]) -> List[str]:
    """
    Keep only frames inside the application root, relative to that root.

    Matching is a literal substring test on ``app_root``; no root means no
    frames are kept.
    """
    if not app_root:
        return []
    prefix = app_root.rstrip('/') + '/'
    return [
        line.replace(prefix, '', 1)
        for line in backtrace
        if app_root in line
    ]


def _field(label: str, value: str) -> Dict[str, str]:
    return {'type': 'mrkdwn', 'text': f"*{label}:*\n{value}"}


def build_payload(record: ErrorRecord, settings: Any, timestamp: str) -> Dict[str, Any]:
    """
    Build the webhook document for ``record``.

    Args:
        record: Normalized error (message already truncated)
        settings: Configuration (app_name, app_root, max_backtrace_lines)
        timestamp: Pre-formatted time string for the Time field

    Returns:
        JSON-serializable dict
    """
    source_detail = '' if record.source_detail is None else record.source_detail
    fields = [
        _field('Source', f"`{source_detail}`"),
        _field('Error', f"`{record.error_class}`"),
        _field('Time', timestamp),
    ]
    if record.queue:
        fields.append(_field('Queue', record.queue))

    header = f"{record.source} Failed"
    app_name = getattr(settings, 'app_name', None)
    if app_name:
        header = f"{app_name}: {header}"

    blocks = [
        {'type': 'header', 'text': {'type': 'plain_text', 'text': header, 'emoji': True}},
        {'type': 'section', 'fields': fields},
        {'type': 'section', 'text': {'type': 'mrkdwn', 'text': f"*Message:*\n```{record.error_message}```"}},
    ]

    if record.backtrace:
        cleaned = clean_backtrace(record.backtrace, getattr(settings, 'app_root', None))
        if cleaned:
            max_lines = getattr(settings, 'max_backtrace_lines', DEFAULT_MAX_BACKTRACE_LINES)
            trace_text = "\n".join(cleaned[:max_lines])
            blocks.append(
                {'type': 'section', 'text': {'type': 'mrkdwn', 'text': f"*Backtrace:*\n```{trace_text}```"}}
            )

    return {'icon_emoji': ICON_EMOJI, 'username': USERNAME, 'blocks': blocks}
