"""After-build entry point: generate every configured feed."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .assembler import assemble_feed
from .config import FeedDefinition, PluginOptions, SiteConfig
from .emitter import EmitResult, emit_formats
from .store import ContentStore

__all__ = ["FeedResult", "default_options", "generate_feed", "after_build"]


@dataclass
class FeedResult:
    """What one feed definition produced."""

    name: str
    items: int = 0
    outputs: List[EmitResult] = field(default_factory=list)

    @property
    def failures(self) -> List[EmitResult]:
        return [output for output in self.outputs if not output.ok]

    @property
    def ok(self) -> bool:
        return not self.failures


def default_options() -> Dict[str, Any]:
    return {"feeds": []}


def generate_feed(
    definition: FeedDefinition,
    site: SiteConfig,
    store: ContentStore,
    *,
    now: Optional[_dt.datetime] = None,
) -> FeedResult:
    """Assemble *definition* and write each of its enabled formats."""

    feed = assemble_feed(definition, site, store, now=now)
    outputs = emit_formats(feed, definition, site.output_dir)
    return FeedResult(definition.name, len(feed.items), outputs)


def after_build(
    site: SiteConfig,
    options: PluginOptions | Mapping[str, Any],
    store: ContentStore,
    *,
    now: Optional[_dt.datetime] = None,
) -> List[FeedResult]:
    """Generate all feeds once the site build has finished.

    The site configuration and every feed definition are validated before
    anything is written: a missing ``site_url``, a feed without content types
    or two feeds sharing a name raise
    :class:`~sitefeed.errors.ConfigurationError` and no file is produced.
    Write failures do not raise; they are reported per format in the returned
    results.
    """

    site.validate()
    if not isinstance(options, PluginOptions):
        options = PluginOptions.from_mapping(options)
    definitions = options.resolve()

    return [generate_feed(definition, site, store, now=now) for definition in definitions]
