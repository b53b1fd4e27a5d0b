from __future__ import annotations

import asyncio
import logging
import os
from typing import Dict, List, Optional, Set

from dotenv import load_dotenv

from .config import AppConfig, load_config
from .engine import ItineraryEngine
from .extractor import find_event_blocks, find_view_blocks, validate_event_block
from .render import TextSink
from .sources import DocumentStore, FileDocumentStore
from .watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


class ViewHost:
    """Creates one view per ```itinerary block and keeps them in step with their documents."""

    def __init__(self, engine: ItineraryEngine, store: DocumentStore) -> None:
        self.engine = engine
        self.store = store
        self._blocks: Dict[str, List[str]] = {}
        # block indexes per document whose view failed to initialize
        self._failed: Dict[str, Set[int]] = {}

    def scan(self) -> int:
        created = 0
        for path in self.store.list_documents():
            created += self.sync_document(path)
        return created

    def sync_document(self, path: str) -> int:
        try:
            text = self.store.read(path) if self.store.exists(path) else ""
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return 0

        self._report_event_blocks(path, text)

        blocks = find_view_blocks(text)
        previous = self._blocks.get(path, [])
        if blocks == previous:
            return self._retry(path)

        for idx in range(len(previous)):
            self.engine.teardown_view(f"{path}#{idx}")
        self._blocks[path] = blocks
        self._failed.pop(path, None)

        created = 0
        for idx in range(len(blocks)):
            created += self._create(path, idx)
        return created

    def _create(self, path: str, idx: int) -> int:
        try:
            self.engine.create_view(self._blocks[path][idx], view_id=f"{path}#{idx}", host_path=path)
        except Exception as exc:
            logger.debug("View %s#%d failed to initialize: %s", path, idx, exc)
            self._failed.setdefault(path, set()).add(idx)
            return 0
        self._failed.get(path, set()).discard(idx)
        return 1

    def _retry(self, path: str) -> int:
        return sum(self._create(path, idx) for idx in sorted(self._failed.get(path, ())))

    def _report_event_blocks(self, path: str, text: str) -> None:
        for idx, block in enumerate(find_event_blocks(text)):
            error = validate_event_block(block, self.engine.config.tz)
            if error is not None:
                self.engine.sink.render_error(f"{path}#event-{idx}", error)

    def failed_views(self) -> List[str]:
        return [f"{path}#{idx}" for path, failed in self._failed.items() for idx in sorted(failed)]

    def on_change(self, path: str) -> None:
        self.engine.notify_changed(path)
        self.sync_document(path)
        # a view waiting on a missing source may resolve now
        for other in [p for p, failed in self._failed.items() if failed and p != path]:
            self._retry(other)


def build(cfg: AppConfig, vault: Optional[str] = None) -> tuple[ItineraryEngine, ViewHost]:
    store = FileDocumentStore(vault or cfg.vault)
    engine = ItineraryEngine(store, sink=TextSink(), config=cfg)
    return engine, ViewHost(engine, store)


async def watch(cfg: AppConfig, vault: Optional[str] = None, max_polls: Optional[int] = None) -> None:
    engine, host = build(cfg, vault)
    watcher = DirectoryWatcher(engine.store, notify=host.on_change)
    watcher.poll()
    count = host.scan()
    print(f"Watching {engine.store.root} with {count} views; quiet window {cfg.refresh.debounce_ms} ms")

    polls = 0
    while max_polls is None or polls < max_polls:
        await asyncio.sleep(cfg.refresh.poll_interval_seconds)
        watcher.poll()
        polls += 1


def run_once(config_path: Optional[str] = None, vault: Optional[str] = None) -> int:
    load_dotenv()
    cfg = load_config(config_path or os.environ.get("ITINERARY_CONFIG"))
    engine, host = build(cfg, vault or os.environ.get("ITINERARY_VAULT"))
    count = host.scan()
    print(f"Rendered {count} views from {engine.store.root}")
    return count


def main():
    import argparse

    ap = argparse.ArgumentParser(description="Aggregate itinerary events from markdown notes")
    ap.add_argument("--config", default=None)
    ap.add_argument("--vault", default=None)
    ap.add_argument("--watch", action="store_true")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.watch:
        run_once(config_path=args.config, vault=args.vault)
        return

    load_dotenv()
    cfg = load_config(args.config or os.environ.get("ITINERARY_CONFIG"))
    try:
        asyncio.run(watch(cfg, args.vault or os.environ.get("ITINERARY_VAULT")))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
