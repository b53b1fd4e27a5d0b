from __future__ import annotations
import sys
from datetime import datetime
from typing import Optional, TextIO

from .models import EventRecord, ViewResult

def _fmt_date(dt: datetime) -> str:
    return dt.strftime("%B %-d, %Y")

def _fmt_datetime(dt: datetime) -> str:
    return f"{_fmt_date(dt)} {dt.strftime('%-I:%M %p').lower()} {dt.tzname() or ''}".rstrip()

def _event_sort_key(e: EventRecord):
    # all-day first within a day, then start time, then title
    return (e.start.date(), 0 if e.all_day else 1, e.start, e.title.lower())

def format_event(e: EventRecord) -> str:
    if e.all_day:
        if e.end is None or e.end == e.start:
            when = f"{_fmt_date(e.start)} (all day)"
        else:
            when = f"{_fmt_date(e.start)} - {_fmt_date(e.end)} (all day)"
    elif e.end is None or e.end == e.start:
        when = _fmt_datetime(e.start)
    else:
        when = f"{_fmt_datetime(e.start)} - {_fmt_datetime(e.end)}"

    line = f"{when}  {e.title}"
    if e.tags:
        line += "  " + " ".join(f"#{t}" for t in e.tags)
    return line


class TextSink:
    """Plain text stand-in for a calendar widget."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream

    def _write(self, text: str) -> None:
        print(text, file=self.stream or sys.stdout)

    def render(self, result: ViewResult) -> None:
        if not result.changed and not result.messages:
            return

        if result.changed:
            visible = sorted((e for e in result.events if not e.hidden), key=_event_sort_key)
            self._write(f"== {result.view_id} ({len(visible)} events)")
            for e in visible:
                self._write(f"  {format_event(e)}")

        for message in result.messages:
            self._write(f"  [debug] {message}")

    def render_error(self, view_id: str, message: str) -> None:
        self._write(f"!! {view_id}: {message}")
