"""
Canonical record normalizer.

Converts raw items from any provider family into CanonicalRecord instances.
Every function here is pure apart from reading the current time, which can be
injected through the `now` argument.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union
from urllib.parse import parse_qs, urlparse

from .config import APP_NAME
from .constants import Placeholders
from .models import CanonicalRecord

logger = logging.getLogger(APP_NAME + ".normalizer")

# Values above this are treated as milliseconds since the epoch
_MILLISECOND_THRESHOLD = 10 ** 11

_TIME_UNITS = (
    # (unit, size of the unit in the previous unit, ceiling in this unit)
    ("second", 1, 60),
    ("minute", 60, 60),
    ("hour", 60, 24),
    ("day", 24, 30),
    ("month", 30, 12),
)


def _dig(raw: Mapping[str, Any], path: str) -> Any:
    """Fetch a dotted path such as 'snippet.title' from nested mappings."""
    current: Any = raw
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _first_present(raw: Mapping[str, Any], paths: Iterable[str]) -> Any:
    for path in paths:
        value = _dig(raw, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def extract_identifier(raw: Mapping[str, Any]) -> str:
    """
    Find the video identifier of a raw provider item.

    Checks `videoId`, then `id` (string or nested mapping), then derives it
    from a `url` field. Returns an empty string when none is found.
    """
    video_id = raw.get("videoId")
    if isinstance(video_id, str) and video_id.strip():
        return video_id.strip()

    nested = raw.get("id")
    if isinstance(nested, str) and nested.strip():
        return nested.strip()
    if isinstance(nested, Mapping):
        for key in ("videoId", "id"):
            value = nested.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

    url = raw.get("url")
    if isinstance(url, str) and url.strip():
        return _identifier_from_url(url.strip())

    return ""


def _identifier_from_url(url: str) -> str:
    """Pull the id out of /watch?v=<id>, /shorts/<id> or youtu.be/<id> forms."""
    parsed = urlparse(url)
    candidates = parse_qs(parsed.query).get("v")
    if candidates and candidates[0]:
        return candidates[0]
    segments = [segment for segment in parsed.path.split("/") if segment]
    if segments and segments[-1] != "watch":
        return segments[-1]
    return ""


def _parse_number(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        cleaned = raw.strip().replace(",", "").replace("_", "")
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def format_view_count(raw: Any) -> str:
    """
    Render a view count for display.

    Examples:
        999 -> "999 views", 1000 -> "1.0K views", 1000000 -> "1.0M views"
    """
    count = _parse_number(raw)
    if count is None or count != count or count < 0:  # NaN check
        return Placeholders.VIEWS

    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M views"
    if count >= 1000:
        return f"{count / 1000:.1f}K views"
    return f"{int(count)} views"


def parse_publish_date(value: Any) -> Optional[datetime]:
    """
    Parse a machine-readable publish date into an aware UTC datetime.

    Accepts unix seconds, unix milliseconds and ISO-8601 strings.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        timestamp = float(value)
        if timestamp > _MILLISECOND_THRESHOLD:
            timestamp /= 1000
        try:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        number = _parse_number(text)
        if number is not None:
            return parse_publish_date(number)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable publish date: {value!r}")
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    return None


def format_time_ago(
    published: Union[datetime, int, float, str, None], now: Optional[datetime] = None
) -> str:
    """Render the age of `published` as e.g. "5 minutes ago"."""
    moment = parse_publish_date(published)
    if moment is None:
        return Placeholders.TIMESTAMP

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    elapsed = int((current - moment).total_seconds())
    if elapsed < 0:
        elapsed = 0

    amount = elapsed
    for unit, size, ceiling in _TIME_UNITS:
        amount //= size
        if amount < ceiling:
            return _pluralize(amount, unit)
    return _pluralize(amount // 12, "year")


def _pluralize(amount: int, unit: str) -> str:
    if amount == 1:
        return f"1 {unit} ago"
    return f"{amount} {unit}s ago"


def normalize_item(
    raw: Mapping[str, Any], now: Optional[datetime] = None
) -> Optional[CanonicalRecord]:
    """
    Build a CanonicalRecord from one raw provider item.

    Returns None when the item carries no identifier.
    """
    video_id = extract_identifier(raw)
    if not video_id:
        return None

    title = _first_present(raw, ("title", "snippet.title"))
    author = _first_present(
        raw, ("author", "uploaderName", "uploader", "snippet.channelTitle")
    )
    views = _first_present(raw, ("viewCount", "views", "statistics.viewCount"))

    rendered_age = _first_present(raw, ("publishedText", "uploadedDate"))
    if isinstance(rendered_age, str):
        timestamp = rendered_age.strip()
    else:
        published = _first_present(
            raw, ("published", "uploaded", "publishedAt", "snippet.publishedAt")
        )
        timestamp = format_time_ago(published, now=now)

    return CanonicalRecord(
        id=video_id,
        title=str(title) if title is not None else Placeholders.TITLE,
        channel=str(author) if author is not None else Placeholders.CHANNEL,
        views=format_view_count(views),
        timestamp=timestamp,
    )


def normalize_items(
    items: Iterable[Any], now: Optional[datetime] = None
) -> List[CanonicalRecord]:
    """Normalize a batch, skipping non-mapping items and items without an id."""
    records = []
    skipped = 0
    for item in items:
        if not isinstance(item, Mapping):
            skipped += 1
            continue
        record = normalize_item(item, now=now)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug(f"Skipped {skipped} unusable items while normalizing")
    return records
