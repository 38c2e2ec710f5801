"""Write serialized feeds to the build output directory."""

from __future__ import annotations

import pathlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import FORMAT_EXTENSIONS, FeedDefinition
from .errors import FeedGenerationError
from .feed import Feed
from .urls import ensure_extension

__all__ = ["FORMAT_LABELS", "EmitResult", "output_file", "emit", "emit_formats"]

FORMAT_LABELS: Dict[str, str] = {"rss": "RSS", "atom": "Atom", "json": "JSON"}

_SERIALIZERS: Dict[str, Callable[[Feed], str]] = {
    "rss": Feed.rss2,
    "atom": Feed.atom1,
    "json": Feed.json1,
}


@dataclass
class EmitResult:
    """Outcome of writing one format of one feed."""

    fmt: str
    output: str
    path: Optional[pathlib.Path] = None
    error: Optional[FeedGenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def output_file(output_dir: pathlib.Path, output_path: str) -> pathlib.Path:
    """Return where *output_path* lands inside *output_dir*.

    Output paths are site-root relative, so a leading ``/`` does not make them
    filesystem-absolute.
    """

    relative = output_path.replace("\\", "/").lstrip("/")
    return pathlib.Path(output_dir) / relative


def emit(fmt: str, feed: Feed, output_dir: pathlib.Path, output_path: str, *, feed_name: str = "") -> pathlib.Path:
    """Serialize *feed* as *fmt* and write it under *output_dir*.

    Any failure while serializing, creating the directory or writing the file
    is raised as a single :class:`FeedGenerationError` chained to its cause.
    """

    if fmt not in _SERIALIZERS:
        raise KeyError(fmt)

    output = ensure_extension(output_path, FORMAT_EXTENSIONS[fmt])
    target = output_file(output_dir, output)
    try:
        content = _SERIALIZERS[fmt](feed)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
    except (OSError, ValueError) as exc:
        raise FeedGenerationError(feed=feed_name, fmt=fmt) from exc

    print(f"Generate {FORMAT_LABELS[fmt]} feed at {output}")
    return target


def emit_formats(feed: Feed, definition: FeedDefinition, output_dir: pathlib.Path) -> List[EmitResult]:
    """Write every enabled format of *definition* concurrently.

    Each format is independent: one failing does not stop the others. Every
    write has completed (or failed) when this returns; results follow the
    rss, atom, json order.
    """

    formats = definition.enabled_formats
    if not formats:
        return []

    def write(fmt: str) -> EmitResult:
        output = definition.output_path(fmt)
        result = EmitResult(fmt, output)
        try:
            result.path = emit(fmt, feed, output_dir, output, feed_name=definition.name)
        except FeedGenerationError as exc:
            result.error = exc
        return result

    with ThreadPoolExecutor(max_workers=len(formats)) as pool:
        futures = [pool.submit(write, fmt) for fmt in formats]
        return [future.result() for future in futures]
