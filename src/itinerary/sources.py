from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from .errors import SourceResolutionError

DOCUMENT_SUFFIX = ".md"
_REFERENCE_RE = re.compile(r"^\[\[([^\[\]|]+)(?:\|[^\[\]]*)?\]\]$")


class DocumentStore(Protocol):
    def list_documents(self) -> List[str]:
        ...

    def exists(self, path: str) -> bool:
        ...

    def read(self, path: str) -> str:
        ...


class FileDocumentStore:
    """Markdown documents below a vault directory, addressed by posix paths relative to it."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def list_documents(self) -> List[str]:
        try:
            paths = sorted(self.root.rglob(f"*{DOCUMENT_SUFFIX}"))
        except OSError:
            return []
        return [p.relative_to(self.root).as_posix() for p in paths if p.is_file()]

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")


class MemoryDocumentStore:
    def __init__(self, documents: Optional[Dict[str, str]] = None) -> None:
        self.documents: Dict[str, str] = dict(documents or {})

    def list_documents(self) -> List[str]:
        return sorted(self.documents)

    def exists(self, path: str) -> bool:
        return path in self.documents

    def read(self, path: str) -> str:
        try:
            return self.documents[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write(self, path: str, text: str) -> None:
        self.documents[path] = text

    def delete(self, path: str) -> None:
        self.documents.pop(path, None)


def is_reference(source: str) -> bool:
    return bool(_REFERENCE_RE.match(source.strip()))


def _strip_suffix(path: str) -> str:
    if path.lower().endswith(DOCUMENT_SUFFIX):
        return path[: -len(DOCUMENT_SUFFIX)]
    return path


def resolve_reference(reference: str, documents: Iterable[str], host_path: Optional[str] = None) -> str:
    """Resolve ``[[name]]`` against the known documents.

    An exact folder + name match (from the vault root, or next to the host
    document) wins over a name-only match; otherwise exactly one document
    must carry the name.
    """
    match = _REFERENCE_RE.match(reference.strip())
    if not match:
        raise SourceResolutionError(reference, f"'{reference}' is not a document reference")
    target = _strip_suffix(match.group(1).strip()).strip("/")
    docs = list(documents)
    by_stem = {_strip_suffix(d): d for d in docs}

    exact_candidates = [target]
    if host_path:
        host_dir = posixpath.dirname(host_path)
        if host_dir:
            exact_candidates.insert(0, posixpath.normpath(posixpath.join(host_dir, target)))
    for candidate in exact_candidates:
        if candidate in by_stem:
            return by_stem[candidate]

    name = posixpath.basename(target)
    suffix = "/" + target
    matches = [
        d for d in docs
        if posixpath.basename(_strip_suffix(d)) == name
        and ("/" not in target or ("/" + _strip_suffix(d)).endswith(suffix))
    ]
    if not matches:
        raise SourceResolutionError(reference, f"Itinerary source '{reference}' could not be found.")
    if len(matches) > 1:
        raise SourceResolutionError(
            reference,
            f"Itinerary source '{reference}' is ambiguous; it matches {', '.join(matches)}.",
        )
    return matches[0]


def resolve_source(source: str, store: DocumentStore, host_path: Optional[str] = None) -> str:
    if is_reference(source):
        return resolve_reference(source, store.list_documents(), host_path)
    if not store.exists(source):
        raise SourceResolutionError(source, f"Itinerary source '{source}' could not be found.")
    return source
