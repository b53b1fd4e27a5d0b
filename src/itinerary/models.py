from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo

import yaml

from .errors import SpecParseError

DEFAULT_TITLE = "Untitled Event"
DEFAULT_COLOR = "#3788d8"
DEFAULT_TEXT_COLOR = "#ffffff"

# Keys a view block understands; everything else is handed to the presentation layer.
VIEW_SPEC_KEYS = ("source", "filter", "debug")


def _zone_name(dt: datetime) -> Optional[str]:
    tz = dt.tzinfo
    if isinstance(tz, ZoneInfo):
        return tz.key
    return None


@dataclass(frozen=True)
class EventRecord:
    title: str
    start: datetime             # timezone-aware
    end: Optional[datetime]     # timezone-aware
    all_day: bool = False
    tags: Tuple[str, ...] = ()
    background_color: str = DEFAULT_COLOR
    border_color: str = DEFAULT_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    hidden: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def as_mapping(self) -> Dict[str, Any]:
        """Render the record back into event block vocabulary.

        Feeding the result to ``normalize_event`` again yields the same
        instants, and it is what filter expressions are evaluated against.
        """
        data: Dict[str, Any] = dict(self.extra)
        if self.all_day:
            data["start"] = self.start.date().isoformat()
            data["end"] = self.end.date().isoformat() if self.end else None
        else:
            data["start"] = self.start.isoformat()
            data["end"] = self.end.isoformat() if self.end else None
            start_zone = _zone_name(self.start)
            end_zone = _zone_name(self.end) if self.end else None
            if start_zone:
                data["startTimeZone"] = start_zone
            if end_zone:
                data["endTimeZone"] = end_zone
        data.update(
            {
                "title": self.title,
                "allDay": self.all_day,
                "tag": list(self.tags),
                "tags": list(self.tags),
                "backgroundColor": self.background_color,
                "borderColor": self.border_color,
                "textColor": self.text_color,
                "hidden": self.hidden,
            }
        )
        return data


@dataclass(frozen=True)
class ViewSpec:
    sources: Tuple[str, ...]
    filters: Tuple[str, ...] = ()
    debug: bool = False
    options: Mapping[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ViewResult:
    view_id: str
    events: Tuple[EventRecord, ...]
    changed: bool
    options: Mapping[str, Any] = field(default_factory=dict, hash=False)
    messages: Tuple[str, ...] = ()


def _string_list(key: str, value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise SpecParseError(
        f"Could not parse itinerary spec: '{key}' must be a string or a list of strings"
    )


def parse_view_spec(raw: Union[str, Mapping[str, Any], None], host_path: Optional[str] = None) -> ViewSpec:
    if raw is None or isinstance(raw, Mapping):
        data = dict(raw or {})
    else:
        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise SpecParseError(f"Could not parse itinerary spec: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise SpecParseError("Could not parse itinerary spec: expected a mapping of options")
        data = loaded

    sources = _string_list("source", data.get("source"))
    if not sources:
        if not host_path:
            raise SpecParseError("Could not parse itinerary spec: no 'source' given and no host document")
        sources = (host_path,)

    filters = _string_list("filter", data.get("filter"))

    debug = data.get("debug", False)
    if not isinstance(debug, bool):
        raise SpecParseError("Could not parse itinerary spec: 'debug' must be true or false")

    options = {k: v for k, v in data.items() if k not in VIEW_SPEC_KEYS}
    return ViewSpec(sources=sources, filters=filters, debug=debug, options=options)
