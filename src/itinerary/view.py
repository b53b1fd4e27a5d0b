from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Tuple

from .cache import SourceCache
from .filters import FilterChain
from .models import EventRecord, ViewResult, ViewSpec

logger = logging.getLogger(__name__)


class ViewState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


class ViewSubscription:
    """One aggregation consumer: its sources, its filters and the last inputs it rendered."""

    def __init__(self, view_id: str, generation: int, spec: ViewSpec) -> None:
        self.view_id = view_id
        self.generation = generation
        self.spec = spec
        self.state = ViewState.UNINITIALIZED
        self.sources: Tuple[str, ...] = ()
        self.loaded = False
        self.messages: List[str] = []
        # (filter index, event) for each rejection in the latest recompute, debug only
        self.rejections: List[Tuple[int, EventRecord]] = []
        self._last_inputs: Optional[Tuple[Tuple[EventRecord, ...], ...]] = None
        self.filters = FilterChain(spec.filters, log=self.log)

    @property
    def debug(self) -> bool:
        return self.spec.debug

    @property
    def active(self) -> bool:
        return self.state is ViewState.ACTIVE

    def log(self, message: str) -> None:
        if self.debug:
            logger.debug("[%s] %s", self.view_id, message)
            self.messages.append(message)

    def _accepts(self, event: EventRecord) -> bool:
        if not len(self.filters):
            return True
        idx = self.filters.first_rejection(event.as_mapping())
        if idx is None:
            self.log(f"Event '{event.title}' passed all filters")
            return True
        self.log(f"Event '{event.title}' failed filter #{idx}")
        if self.debug:
            self.rejections.append((idx, event))
        return False

    def recompute(self, cache: SourceCache) -> Optional[ViewResult]:
        if self.state is not ViewState.ACTIVE:
            return None

        inputs = tuple(cache.get(source) for source in self.sources)
        changed = self._last_inputs is None or any(
            new is not old for new, old in zip(inputs, self._last_inputs)
        )
        self._last_inputs = inputs
        self.rejections = []

        events = tuple(event for events in inputs for event in events if self._accepts(event))
        messages = tuple(self.messages)
        self.messages = []
        return ViewResult(
            view_id=self.view_id,
            events=events,
            changed=changed,
            options=dict(self.spec.options),
            messages=messages,
        )

    def tear_down(self) -> None:
        self.state = ViewState.TORN_DOWN
        self.loaded = False
        self._last_inputs = None
