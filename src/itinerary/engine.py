from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from .cache import SourceCache
from .config import AppConfig
from .errors import ExtractionError
from .graph import DependencyGraph
from .models import ViewResult, parse_view_spec
from .scheduler import RefreshScheduler, TimerLoop
from .sources import DocumentStore, resolve_source
from .view import ViewState, ViewSubscription

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    def render(self, result: ViewResult) -> None:
        ...

    def render_error(self, view_id: str, message: str) -> None:
        ...


class NullSink:
    def render(self, result: ViewResult) -> None:
        pass

    def render_error(self, view_id: str, message: str) -> None:
        pass


class ItineraryEngine:
    """Owns the source cache, the dependency graph and the refresh timers for one host session."""

    def __init__(
        self,
        store: DocumentStore,
        sink: Optional[PresentationSink] = None,
        config: Optional[AppConfig] = None,
        loop: Optional[TimerLoop] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store
        self.sink = sink or NullSink()
        self.cache = SourceCache(store, self.config.tz)
        self.graph = DependencyGraph(is_alive=self._is_alive)
        self.scheduler = RefreshScheduler(
            self.cache,
            self.graph,
            on_fire=self.recompute,
            quiet_window=self.config.refresh.quiet_window,
            loop=loop,
        )
        self._views: Dict[str, ViewSubscription] = {}
        self._generations = itertools.count(1)
        self._anonymous = itertools.count(1)

    def _is_alive(self, view_id: str, generation: int) -> bool:
        view = self._views.get(view_id)
        return view is not None and view.generation == generation and view.active

    def view(self, view_id: str) -> Optional[ViewSubscription]:
        return self._views.get(view_id)

    def views(self) -> List[ViewSubscription]:
        return list(self._views.values())

    def create_view(
        self,
        spec: Union[str, Mapping[str, Any], None],
        view_id: Optional[str] = None,
        host_path: Optional[str] = None,
    ) -> ViewSubscription:
        if view_id is None:
            view_id = host_path or f"view-{next(self._anonymous)}"
        try:
            view = self._build_view(spec, view_id, host_path)
            self._load_sources(view)
        except Exception as exc:
            self.sink.render_error(view_id, str(exc))
            raise

        previous = self._views.get(view_id)
        if previous is not None:
            self.teardown_view(previous)

        for source in view.sources:
            self.graph.subscribe(source, view.view_id, view.generation)
        self._views[view_id] = view
        view.state = ViewState.ACTIVE

        try:
            self.recompute(view_id)
        except Exception as exc:
            self.teardown_view(view)
            self.sink.render_error(view_id, str(exc))
            raise
        view.loaded = True
        return view

    def _load_sources(self, view: ViewSubscription) -> None:
        for source in view.sources:
            if self.cache.is_loaded(source):
                continue
            try:
                self.cache.refresh(source)
            except ExtractionError as exc:
                logger.warning("%s; view %s starts without its events", exc, view.view_id)

    def _build_view(
        self,
        spec: Union[str, Mapping[str, Any], None],
        view_id: str,
        host_path: Optional[str],
    ) -> ViewSubscription:
        parsed = parse_view_spec(spec, host_path=host_path)
        view = ViewSubscription(view_id, next(self._generations), parsed)
        view.state = ViewState.SUBSCRIBING
        sources: List[str] = []
        for source in parsed.sources:
            resolved = resolve_source(source, self.store, host_path)
            if resolved not in sources:
                sources.append(resolved)
        view.sources = tuple(sources)
        return view

    def teardown_view(self, view: Union[ViewSubscription, str]) -> None:
        view_id = view if isinstance(view, str) else view.view_id
        current = self._views.get(view_id)
        if isinstance(view, ViewSubscription):
            view.tear_down()
            if current is not view:
                return
        elif current is not None:
            current.tear_down()
        self.scheduler.cancel(view_id)
        self.graph.unsubscribe(view_id)
        self._views.pop(view_id, None)

    def notify_changed(self, source: str) -> bool:
        return self.scheduler.notify_changed(source)

    def recompute(self, view_id: str) -> Optional[ViewResult]:
        view = self._views.get(view_id)
        if view is None:
            return None
        result = view.recompute(self.cache)
        if result is not None:
            self.sink.render(result)
        return result
