"""Read-only access to the content collections produced by a site build."""

from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

__all__ = [
    "ContentRecord",
    "Collection",
    "ContentStore",
    "MemoryContentStore",
    "JsonContentStore",
]

ContentRecord = Mapping[str, Any]

# Keys that may wrap the record list when a collection file is an object.
_CONTAINER_KEYS = ("items", "posts", "data", "nodes")


@dataclass(frozen=True)
class Collection:
    """One named group of content records (``posts``, ``pages`` ...)."""

    type_id: str
    data: Sequence[ContentRecord] = field(default_factory=tuple)


class ContentStore(Protocol):
    def get_collection(self, type_id: str) -> Collection:
        ...


class MemoryContentStore:
    """Content store backed by an in-memory mapping of type id to records."""

    def __init__(self, collections: Mapping[str, Iterable[ContentRecord]] | None = None) -> None:
        self._collections: Dict[str, tuple] = {
            type_id: tuple(records) for type_id, records in (collections or {}).items()
        }

    def get_collection(self, type_id: str) -> Collection:
        return Collection(type_id, self._collections.get(type_id, ()))

    def type_ids(self) -> List[str]:
        return sorted(self._collections)


def _extract_records(payload: Any) -> List[ContentRecord]:
    candidates: Iterable[Any]
    if isinstance(payload, dict):
        for key in _CONTAINER_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                candidates = value
                break
        else:
            candidates = []
    elif isinstance(payload, list):
        candidates = payload
    else:
        candidates = []

    return [entry for entry in candidates if isinstance(entry, dict)]


def load_json_records(path: pathlib.Path) -> List[ContentRecord]:
    """Load the records stored in *path*, returning an empty list if it is missing."""

    if not path.exists():
        return []

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON payload in {path}: {exc}") from exc

    return _extract_records(payload)


class JsonContentStore:
    """Content store reading ``<data_dir>/<type_id>.json`` files.

    A file may hold a JSON array of records or an object wrapping the array
    under ``items``, ``posts``, ``data`` or ``nodes``. Collections are read
    lazily and cached, since a type may be listed by several feeds.
    """

    def __init__(self, data_dir: pathlib.Path) -> None:
        self.data_dir = pathlib.Path(data_dir)
        self._cache: Dict[str, Collection] = {}

    def path_for(self, type_id: str) -> pathlib.Path:
        return self.data_dir / f"{type_id}.json"

    def get_collection(self, type_id: str) -> Collection:
        cached = self._cache.get(type_id)
        if cached is None:
            cached = Collection(type_id, tuple(load_json_records(self.path_for(type_id))))
            self._cache[type_id] = cached
        return cached
