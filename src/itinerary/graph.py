from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

# (view_id, generation); a view re-created under the same id gets a new generation.
Subscriber = Tuple[str, int]
LivenessCheck = Callable[[str, int], bool]


class DependencyGraph:
    """Reverse index from source document to the views that consume it."""

    def __init__(self, is_alive: Optional[LivenessCheck] = None) -> None:
        self._is_alive = is_alive
        # dict keys double as an insertion-ordered set
        self._subscribers: Dict[str, Dict[Subscriber, None]] = {}

    def subscribe(self, source: str, view_id: str, generation: int = 0) -> None:
        self._subscribers.setdefault(source, {})[(view_id, generation)] = None

    def unsubscribe(self, view_id: str) -> None:
        for source in list(self._subscribers):
            members = self._subscribers[source]
            for key in [k for k in members if k[0] == view_id]:
                del members[key]
            if not members:
                del self._subscribers[source]

    def subscribers_of(self, source: str) -> Tuple[str, ...]:
        members = self._subscribers.get(source)
        if not members:
            return ()
        live: List[str] = []
        for key in list(members):
            view_id, generation = key
            if self._is_alive is not None and not self._is_alive(view_id, generation):
                del members[key]
                continue
            if view_id not in live:
                live.append(view_id)
        if not members:
            del self._subscribers[source]
        return tuple(live)

    def sources_of(self, view_id: str) -> Tuple[str, ...]:
        return tuple(s for s, members in self._subscribers.items() if any(k[0] == view_id for k in members))

    def sources(self) -> Tuple[str, ...]:
        return tuple(self._subscribers)
