from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from .cache import SourceCache
from .errors import ExtractionError
from .graph import DependencyGraph

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerLoop(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class RefreshScheduler:
    """Coalesces change notifications into one recompute per view after a quiet window."""

    def __init__(
        self,
        cache: SourceCache,
        graph: DependencyGraph,
        on_fire: Callable[[str], Any],
        quiet_window: float,
        loop: Optional[TimerLoop] = None,
    ) -> None:
        self.cache = cache
        self.graph = graph
        self.on_fire = on_fire
        self.quiet_window = quiet_window
        self._loop = loop
        self._timers: Dict[str, TimerHandle] = {}

    @property
    def loop(self) -> TimerLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def notify_changed(self, source: str) -> bool:
        try:
            self.cache.refresh(source)
        except ExtractionError as exc:
            logger.warning("%s; keeping previously cached events", exc)
            return False

        subscribers = self.graph.subscribers_of(source)
        if not subscribers:
            logger.debug("%s is not an event source", source)
            return True

        logger.debug("%s is an event source for %s, scheduling refresh", source, ", ".join(subscribers))
        for view_id in subscribers:
            self.schedule(view_id)
        return True

    def schedule(self, view_id: str) -> None:
        self.cancel(view_id)
        self._timers[view_id] = self.loop.call_later(self.quiet_window, self._fire, view_id)

    def cancel(self, view_id: str) -> None:
        handle = self._timers.pop(view_id, None)
        if handle is not None:
            handle.cancel()

    def pending(self) -> Tuple[str, ...]:
        return tuple(self._timers)

    def _fire(self, view_id: str) -> None:
        self._timers.pop(view_id, None)
        logger.debug("Refreshing %s (from schedule)", view_id)
        self.on_fire(view_id)
