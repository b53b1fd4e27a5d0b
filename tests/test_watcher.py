from itinerary.sources import MemoryDocumentStore
from itinerary.watcher import DirectoryWatcher


def test_first_poll_is_a_baseline():
    notified = []
    watcher = DirectoryWatcher(MemoryDocumentStore({"a.md": "one"}), notify=notified.append)

    assert watcher.poll() == []
    assert notified == []


def test_poll_reports_changed_new_and_deleted_documents():
    store = MemoryDocumentStore({"a.md": "one", "b.md": "two"})
    notified = []
    watcher = DirectoryWatcher(store, notify=notified.append)
    watcher.poll()

    store.write("a.md", "one, edited")
    store.write("c.md", "three")
    store.delete("b.md")

    assert watcher.poll() == ["a.md", "c.md", "b.md"]
    assert notified == ["a.md", "c.md", "b.md"]
    assert watcher.poll() == []


def test_rewriting_same_content_is_not_a_change():
    store = MemoryDocumentStore({"a.md": "one"})
    watcher = DirectoryWatcher(store)
    watcher.poll()

    store.write("a.md", "one")

    assert watcher.poll() == []
