"""Assemble one feed definition into a :class:`~sitefeed.feed.Feed`.

The steps run in a fixed order:

1. configure - :func:`~sitefeed.config.resolve_feed_definition`;
2. collect - project every record of every configured content type;
3. sort/truncate - newest first, stable, capped at ``max_items``;
4. rewrite - turn relative links inside HTML fields into absolute ones;
5. finalize - hand the items to the feed object in their final order.
"""

from __future__ import annotations

import datetime as _dt
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import FeedDefinition, SiteConfig, resolve_feed_definition
from .dates import coerce_datetime, utc_now
from .feed import GENERATOR, Feed, FeedMetadata
from .projector import FeedItem, project_record
from .store import ContentStore
from .urls import convert_to_site_urls, url_with_base

__all__ = [
    "site_href",
    "build_feed_metadata",
    "collect_items",
    "sort_and_truncate",
    "rewrite_html_fields",
    "assemble_feed",
]

# Keys that always come from the system, whatever the user passes.
_RESERVED_FEED_OPTIONS = ("feed_links", "feedLinks")


def site_href(site: SiteConfig, enforce_trailing_slashes: bool = False) -> str:
    """Return the absolute URL of the site root including its path prefix."""

    return url_with_base(site.path_prefix, site.site_url, enforce_trailing_slashes)


def build_feed_metadata(definition: FeedDefinition, site: SiteConfig) -> FeedMetadata:
    """Compute feed-level metadata for *definition*.

    User ``feed_options`` override the computed generator, id, link and
    title; the per-format self links are always computed here.
    """

    href = site_href(site, definition.enforce_trailing_slashes)
    values: Dict[str, Any] = {
        "generator": GENERATOR,
        "id": href,
        "link": href,
        "title": site.site_name or definition.name,
    }
    values.update(definition.feed_options)
    for key in _RESERVED_FEED_OPTIONS:
        values.pop(key, None)

    feed_links = {
        fmt: url_with_base(f"{site.path_prefix}{definition.output_path(fmt)}", site.site_url)
        for fmt in definition.enabled_formats
    }
    return FeedMetadata(MappingProxyType(values), MappingProxyType(feed_links))


def collect_items(
    definition: FeedDefinition,
    site: SiteConfig,
    store: ContentStore,
    *,
    now: Optional[_dt.datetime] = None,
) -> List[FeedItem]:
    """Project the records of every configured content type into feed items.

    Missing or empty collections are skipped. Each item's ``date`` is coerced
    to an aware UTC datetime; records without a usable date get *now* (the
    build time) so they are never dropped.
    """

    if now is None:
        now = utc_now()

    items: List[FeedItem] = []
    for type_id in definition.content_types:
        collection = store.get_collection(type_id)
        if collection is None or not collection.data:
            continue

        for record in collection.data:
            item = project_record(
                record,
                filter_nodes=definition.filter_nodes,
                node_to_feed_item=definition.node_to_feed_item,
                site_url=site.site_url,
                path_prefix=site.path_prefix,
                enforce_trailing_slashes=definition.enforce_trailing_slashes,
            )
            if item is None:
                continue
            item["date"] = coerce_datetime(item.get("date")) or now
            items.append(item)
    return items


def sort_and_truncate(items: Sequence[FeedItem], max_items: Optional[int]) -> List[FeedItem]:
    """Return *items* newest first, keeping at most *max_items* of them.

    Python's sort is stable, so items sharing a date keep their relative
    order. A cap of ``None`` or anything below 1 keeps every item.
    """

    ordered = sorted(items, key=lambda item: item["date"], reverse=True)
    if max_items and max_items > 0 and len(ordered) > max_items:
        ordered = ordered[:max_items]
    return ordered


def rewrite_html_fields(
    items: Sequence[FeedItem],
    html_fields: Sequence[str],
    enforce_trailing_slashes: bool = False,
) -> None:
    """Make relative links inside each item's HTML fields absolute, in place.

    Links resolve against the item's own ``link``. Absent or empty fields are
    left alone.
    """

    for item in items:
        for field_name in html_fields:
            value = item.get(field_name)
            if not value:
                continue
            item[field_name] = convert_to_site_urls(str(value), item["link"], enforce_trailing_slashes)  # type: ignore[literal-required]


def assemble_feed(
    options: Mapping[str, Any] | FeedDefinition,
    site: SiteConfig,
    store: ContentStore,
    *,
    now: Optional[_dt.datetime] = None,
) -> Feed:
    """Run every assembly step for one feed and return the populated feed."""

    definition = resolve_feed_definition(options)
    site.validate()

    metadata = build_feed_metadata(definition, site)
    items = collect_items(definition, site, store, now=now)
    items = sort_and_truncate(items, definition.max_items)
    rewrite_html_fields(items, definition.html_fields, definition.enforce_trailing_slashes)

    feed = Feed(metadata)
    for item in items:
        feed.add_item(item)
    return feed
