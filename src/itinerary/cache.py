from __future__ import annotations

import logging
from typing import Dict, Tuple
from zoneinfo import ZoneInfo

from .errors import ExtractionError
from .extractor import extract_events
from .models import EventRecord
from .sources import DocumentStore

logger = logging.getLogger(__name__)


class SourceCache:
    """Latest normalized events per source document.

    Entries are tuples that get replaced wholesale on refresh, so any reader
    holding the previous tuple keeps a consistent snapshot.
    """

    def __init__(self, store: DocumentStore, default_tz: ZoneInfo) -> None:
        self.store = store
        self.default_tz = default_tz
        self._entries: Dict[str, Tuple[EventRecord, ...]] = {}

    def refresh(self, source: str) -> Tuple[EventRecord, ...]:
        try:
            text = self.store.read(source)
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(source, str(exc)) from exc
        events = extract_events(text, self.default_tz)
        self._entries[source] = events
        logger.debug("Cached %d events from %s", len(events), source)
        return events

    def get(self, source: str) -> Tuple[EventRecord, ...]:
        return self._entries.get(source, ())

    def is_loaded(self, source: str) -> bool:
        return source in self._entries

    def forget(self, source: str) -> None:
        self._entries.pop(source, None)
