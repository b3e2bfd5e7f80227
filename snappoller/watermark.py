"""Conversions for last-polled timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime

from .errors import InvalidWatermark
from .models import Watermark

_MISSING_MESSAGE = "`last_polled_at` must be given."


def to_datetime(value: Watermark) -> datetime:
    """Normalise a watermark into an aware UTC ``datetime``.

    Integers and floats are epoch milliseconds, matching what the repository
    directory stores. Naive datetimes are assumed to be UTC.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidWatermark(_MISSING_MESSAGE)
    if isinstance(value, bool):
        raise InvalidWatermark(f"Unsupported watermark value: {value!r}")
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidWatermark(f"Watermark out of range: {value!r}") from exc
    elif isinstance(value, str):
        moment = _parse_iso(value.strip())
    else:
        raise InvalidWatermark(f"Unsupported watermark value: {value!r}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def iso_instant(moment: datetime) -> str:
    """Render as ``2017-08-03T12:13:20.000Z`` for the ``since`` parameter."""
    utc = moment.astimezone(timezone.utc)
    millis = utc.microsecond // 1000
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def http_date(moment: datetime) -> str:
    """Render as an RFC 1123 date for ``If-Modified-Since``."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp returned by the GitHub API."""
    return to_datetime(value)


def _parse_iso(text: str) -> datetime:
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000.0, tz=timezone.utc)
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise InvalidWatermark(f"Unparseable watermark: {text!r}") from exc


__all__ = ["http_date", "iso_instant", "parse_timestamp", "to_datetime"]
