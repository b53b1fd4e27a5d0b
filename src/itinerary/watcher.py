from __future__ import annotations

import hashlib
import logging
from typing import Callable, Dict, List, Optional

from .sources import DocumentStore

logger = logging.getLogger(__name__)


def _fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class DirectoryWatcher:
    """Polling change feed: compares document fingerprints between polls."""

    def __init__(self, store: DocumentStore, notify: Optional[Callable[[str], object]] = None) -> None:
        self.store = store
        self.notify = notify
        self._fingerprints: Optional[Dict[str, str]] = None

    def _snapshot(self) -> Dict[str, str]:
        snapshot: Dict[str, str] = {}
        for path in self.store.list_documents():
            try:
                snapshot[path] = _fingerprint(self.store.read(path))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Could not read %s: %s", path, exc)
        return snapshot

    def poll(self) -> List[str]:
        current = self._snapshot()
        previous = self._fingerprints
        self._fingerprints = current
        if previous is None:
            return []

        changed = [p for p, sig in current.items() if previous.get(p) != sig]
        changed.extend(p for p in previous if p not in current)
        for path in changed:
            logger.debug("File %s changed", path)
            if self.notify is not None:
                self.notify(path)
        return changed
