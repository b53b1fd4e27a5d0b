from __future__ import annotations

from typing import Any, Callable, List

import pytest

from itinerary.models import ViewResult


class FakeTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Manual stand-in for asyncio's call_later; time only moves on advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target

    def active(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]


class RecordingSink:
    def __init__(self) -> None:
        self.results: List[ViewResult] = []
        self.errors: List[tuple[str, str]] = []

    def render(self, result: ViewResult) -> None:
        self.results.append(result)

    def render_error(self, view_id: str, message: str) -> None:
        self.errors.append((view_id, message))

    def titles(self, index: int = -1) -> List[str]:
        return [e.title for e in self.results[index].events]


@pytest.fixture
def loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
