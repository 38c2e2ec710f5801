"""Helpers for writing feed build report files."""

from __future__ import annotations

import json
import pathlib
from typing import Iterable, Sequence

from .dates import utc_now

__all__ = ["BuildReport"]


def _utc_now_iso() -> str:
    """Return a second-precision UTC timestamp with a ``Z`` suffix."""

    return utc_now().isoformat().replace("+00:00", "Z")


def _coerce_errors(messages: Sequence[str], *, limit: int = 20) -> list[str]:
    """Clean and deduplicate error strings while preserving order."""

    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in messages:
        text = str(raw or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        cleaned.append(text)
        if len(cleaned) >= limit:
            break
    return cleaned


class BuildReport:
    """Accumulate feed build results and persist them to ``<health_dir>/<name>.json``."""

    def __init__(self, name: str, *, health_dir: pathlib.Path) -> None:
        self.name = name
        self.health_dir = pathlib.Path(health_dir)
        self.errors: list[str] = []
        self.files: list[str] = []
        self.feeds_count = 0
        self.items_written = 0

    # Public API ---------------------------------------------------------
    def record_error(self, message: str) -> None:
        text = str(message or "").strip()
        if text:
            self.errors.append(text)

    def extend_errors(self, messages: Iterable[str]) -> None:
        for message in messages:
            self.record_error(str(message))

    def record_feed(self, items: int, files: Iterable[str]) -> None:
        self.feeds_count += 1
        self.items_written += max(0, int(items))
        self.files.extend(str(path) for path in files)

    @property
    def has_errors(self) -> bool:
        return bool(_coerce_errors(self.errors))

    @property
    def path(self) -> pathlib.Path:
        return self.health_dir / f"{self.name}.json"

    def write(self, *, last_build: str | None = None) -> pathlib.Path:
        payload = {
            "last_build": last_build or _utc_now_iso(),
            "feeds_count": self.feeds_count,
            "items_written": self.items_written,
            "files": sorted(self.files),
            "errors": _coerce_errors(self.errors),
        }

        self.health_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        return self.path
