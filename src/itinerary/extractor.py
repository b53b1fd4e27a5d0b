from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import BlockParseError
from .models import DEFAULT_COLOR, DEFAULT_TEXT_COLOR, DEFAULT_TITLE, EventRecord

logger = logging.getLogger(__name__)

EVENT_BLOCK_RE = re.compile(r"```itinerary-event\n([^`]*)\n```")
VIEW_BLOCK_RE = re.compile(r"```itinerary\n([^`]*)\n```")

# Keys consumed by normalization; anything else stays in EventRecord.extra.
_KNOWN_KEYS = {
    "title",
    "start",
    "end",
    "allDay",
    "timeZone",
    "startTimeZone",
    "endTimeZone",
    "tag",
    "tags",
    "color",
    "backgroundColor",
    "borderColor",
    "textColor",
    "hidden",
}


def parse_event_block(text: str) -> Mapping[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise BlockParseError(f"Could not parse itinerary event: {exc}") from exc
    if not isinstance(data, dict):
        raise BlockParseError("Could not parse itinerary event: expected a mapping")
    return data


def _zone(name: Any) -> Optional[ZoneInfo]:
    if name in (None, ""):
        return None
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BlockParseError(f"Unknown time zone '{name}'") from exc


def _parse_when(value: Any, key: str) -> datetime | date:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise BlockParseError(f"Invalid '{key}' value '{value}'") from exc
    raise BlockParseError(f"Invalid '{key}' value {value!r}")


def _as_all_day(value: datetime | date, default_tz: ZoneInfo) -> datetime:
    try:
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(default_tz)
            value = value.date()
        return datetime.combine(value, datetime.min.time(), tzinfo=default_tz)
    except (OverflowError, ValueError) as exc:
        raise BlockParseError(f"Date {value} is out of range") from exc


def _as_instant(value: datetime | date, zone: ZoneInfo) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    try:
        return value.astimezone(zone)
    except (OverflowError, ValueError) as exc:
        raise BlockParseError(f"Timestamp {value.isoformat()} is out of range in {zone.key}") from exc


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise BlockParseError(f"'{key}' must be true or false, not {value!r}")
    return value


def _tags(data: Mapping[str, Any]) -> Tuple[str, ...]:
    out: List[str] = []
    for key in ("tag", "tags"):
        value = data.get(key)
        if value is None:
            continue
        values = value if isinstance(value, list) else [value]
        for v in values:
            tag = str(v)
            if tag not in out:
                out.append(tag)
    return tuple(out)


def normalize_event(data: Mapping[str, Any], default_tz: ZoneInfo) -> EventRecord:
    """Build an EventRecord from a parsed event block.

    Timed events are pinned to ``timeZone`` (or the per-edge
    ``startTimeZone``/``endTimeZone``), falling back to ``default_tz``; naive
    timestamps are read as wall time in that zone. All-day events start at
    local midnight in ``default_tz``.
    """
    if data.get("start") in (None, ""):
        raise BlockParseError("Event is missing 'start'")
    all_day = _flag(data, "allDay")
    start_raw = _parse_when(data["start"], "start")
    end_raw = _parse_when(data["end"], "end") if data.get("end") not in (None, "") else None

    if all_day:
        start = _as_all_day(start_raw, default_tz)
        end = _as_all_day(end_raw, default_tz) if end_raw is not None else None
    else:
        block_zone = _zone(data.get("timeZone"))
        start_zone = _zone(data.get("startTimeZone")) or block_zone or default_tz
        end_zone = _zone(data.get("endTimeZone")) or block_zone or default_tz
        start = _as_instant(start_raw, start_zone)
        end = _as_instant(end_raw, end_zone) if end_raw is not None else None

    color = data.get("color")
    title = data.get("title")
    return EventRecord(
        title=str(title) if title not in (None, "") else DEFAULT_TITLE,
        start=start,
        end=end,
        all_day=all_day,
        tags=_tags(data),
        background_color=str(data.get("backgroundColor") or color or DEFAULT_COLOR),
        border_color=str(data.get("borderColor") or color or DEFAULT_COLOR),
        text_color=str(data.get("textColor") or DEFAULT_TEXT_COLOR),
        hidden=_flag(data, "hidden"),
        extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
    )


def extract_events(text: str, default_tz: ZoneInfo) -> Tuple[EventRecord, ...]:
    events: List[EventRecord] = []
    for idx, match in enumerate(EVENT_BLOCK_RE.finditer(text)):
        try:
            events.append(normalize_event(parse_event_block(match.group(1)), default_tz))
        except BlockParseError as exc:
            # Nothing upstream can show this; the block's own inline validator reports it.
            logger.debug("Skipping event block #%d: %s", idx, exc)
    return tuple(events)


def validate_event_block(text: str, default_tz: Optional[ZoneInfo] = None) -> Optional[str]:
    """Return the error message for a malformed event block, or None if it is valid."""
    try:
        normalize_event(parse_event_block(text), default_tz or ZoneInfo("UTC"))
    except BlockParseError as exc:
        return str(exc)
    return None


def find_view_blocks(text: str) -> List[str]:
    return [m.group(1) for m in VIEW_BLOCK_RE.finditer(text)]


def find_event_blocks(text: str) -> List[str]:
    return [m.group(1) for m in EVENT_BLOCK_RE.finditer(text)]
