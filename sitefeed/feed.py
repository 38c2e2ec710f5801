"""Feed document encoding.

:class:`Feed` collects feed-level metadata and items and serializes them as
RSS 2.0 and Atom 1.0 through ``feedgen``, and as JSON Feed 1 with
:mod:`json`. A fresh ``FeedGenerator`` is built per format so each document
carries its own ``rel="self"`` link.
"""

from __future__ import annotations

import datetime as _dt
import json
import mimetypes
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from feedgen.feed import FeedGenerator

from .dates import coerce_datetime, utc_now
from .projector import FeedItem

__all__ = ["GENERATOR", "JSON_FEED_VERSION", "FeedMetadata", "Feed"]

GENERATOR = "sitefeed"
JSON_FEED_VERSION = "https://jsonfeed.org/version/1"

_SELF_LINK_TYPES = {
    "rss": "application/rss+xml",
    "atom": "application/atom+xml",
    "json": "application/feed+json",
}


@dataclass(frozen=True)
class FeedMetadata:
    """Feed-level values: generator, id, link, title, user options and self links."""

    values: Mapping[str, Any]
    feed_links: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    @property
    def id(self) -> str:
        return str(self.values.get("id") or self.link)

    @property
    def link(self) -> str:
        return str(self.values.get("link") or "")

    @property
    def title(self) -> str:
        return str(self.values.get("title") or "")

    @property
    def generator(self) -> str:
        return str(self.values.get("generator") or GENERATOR)


def _people(value: Any) -> List[Dict[str, str]]:
    """Normalise author-like values to ``[{"name": ..., "email": ..., "uri": ...}]``."""

    if not value:
        return []
    if isinstance(value, (str, Mapping)):
        value = [value]

    people: List[Dict[str, str]] = []
    for entry in value:
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, Mapping):
            continue
        name = str(entry.get("name") or "").strip()
        if not name:
            continue
        person = {"name": name}
        email = str(entry.get("email") or "").strip()
        if email:
            person["email"] = email
        uri = str(entry.get("uri") or entry.get("link") or entry.get("url") or "").strip()
        if uri:
            person["uri"] = uri
        people.append(person)
    return people


def _categories(value: Any) -> List[Dict[str, str]]:
    if not value:
        return []
    if isinstance(value, (str, Mapping)):
        value = [value]

    categories: List[Dict[str, str]] = []
    for entry in value:
        if isinstance(entry, Mapping):
            term = str(entry.get("term") or entry.get("name") or "").strip()
        else:
            term = str(entry or "").strip()
        if term:
            categories.append({"term": term, "label": term})
    return categories


def _image(value: Any) -> Optional[Dict[str, str]]:
    if not value:
        return None
    if isinstance(value, str):
        value = {"url": value}
    if not isinstance(value, Mapping) or not value.get("url"):
        return None

    url = str(value["url"])
    mime = value.get("type") or mimetypes.guess_type(url)[0] or "image/jpeg"
    return {"url": url, "type": str(mime), "length": str(value.get("length") or 0)}


def _iso(value: Optional[_dt.datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _drop_empty(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value not in (None, "", [], {})}


class Feed:
    """An ordered set of feed items plus the metadata describing the feed."""

    def __init__(self, metadata: FeedMetadata, items: Iterable[FeedItem] = ()) -> None:
        self.metadata = metadata
        self.items: List[FeedItem] = list(items)

    def add_item(self, item: FeedItem) -> None:
        self.items.append(item)

    # Serialization ------------------------------------------------------
    def rss2(self) -> str:
        return self._generator("rss").rss_str(pretty=True).decode("utf-8")

    def atom1(self) -> str:
        return self._generator("atom").atom_str(pretty=True).decode("utf-8")

    def json1(self) -> str:
        meta = self.metadata
        authors = _people(meta.get("author"))
        image = meta.get("image")

        document = _drop_empty(
            {
                "version": JSON_FEED_VERSION,
                "title": meta.title,
                "home_page_url": meta.link,
                "feed_url": meta.feed_links.get("json"),
                "description": meta.get("description"),
                "icon": image.get("url") if isinstance(image, Mapping) else image,
                "favicon": meta.get("favicon"),
                "author": self._json_author(authors),
            }
        )
        document["items"] = [self._json_item(item) for item in self.items]
        return json.dumps(document, ensure_ascii=False, indent=2) + "\n"

    # Helpers ------------------------------------------------------------
    def updated(self) -> _dt.datetime:
        """Return the feed's last update: the configured value or the newest item date."""

        configured = coerce_datetime(self.metadata.get("updated"))
        if configured is not None:
            return configured
        dates = [coerce_datetime(item.get("date")) for item in self.items]
        dates = [value for value in dates if value is not None]
        return max(dates) if dates else utc_now()

    @staticmethod
    def _json_author(authors: List[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not authors:
            return None
        return _drop_empty({"name": authors[0]["name"], "url": authors[0].get("uri")})

    def _json_item(self, item: FeedItem) -> Dict[str, Any]:
        date = coerce_datetime(item.get("date"))
        published = coerce_datetime(item.get("published")) or date
        image = _image(item.get("image"))
        return _drop_empty(
            {
                "id": item.get("id") or item.get("link"),
                "url": item.get("link"),
                "title": item.get("title"),
                "summary": item.get("description"),
                "content_html": item.get("content"),
                "image": image["url"] if image else None,
                "date_published": _iso(published),
                "date_modified": _iso(date),
                "author": self._json_author(_people(item.get("author"))),
                "tags": [category["term"] for category in _categories(item.get("category"))],
            }
        )

    def _generator(self, fmt: str) -> FeedGenerator:
        meta = self.metadata
        title = meta.title or meta.link

        fg = FeedGenerator()
        fg.id(meta.id)
        fg.title(title)
        # The alternate link goes last: RSS takes its channel link from it.
        self_link = meta.feed_links.get(fmt)
        if self_link:
            fg.link(href=self_link, rel="self", type=_SELF_LINK_TYPES[fmt])
        fg.link(href=meta.link, rel="alternate")
        fg.description(meta.get("description") or title)
        fg.generator(meta.generator)
        fg.updated(self.updated())

        if meta.get("language"):
            fg.language(meta.get("language"))
        if meta.get("copyright"):
            fg.rights(meta.get("copyright"))
        image = _image(meta.get("image"))
        if image:
            fg.image(url=image["url"], title=title, link=meta.link)
            fg.logo(image["url"])
        if meta.get("favicon"):
            fg.icon(meta.get("favicon"))
        authors = _people(meta.get("author"))
        if authors:
            fg.author(authors)

        for item in self.items:
            self._add_entry(fg, item, fmt)
        return fg

    @staticmethod
    def _add_entry(fg: FeedGenerator, item: FeedItem, fmt: str) -> None:
        link = item.get("link") or ""
        identifier = item.get("id") or link
        guid = item.get("guid") or identifier
        date = coerce_datetime(item.get("date")) or utc_now()
        published = coerce_datetime(item.get("published")) or date

        entry = fg.add_entry(order="append")
        # guid() and id() share one slot in feedgen, so set only the one
        # this format reads.
        if fmt == "rss":
            entry.guid(guid, permalink=guid == link)
        else:
            entry.id(identifier)
        entry.title(item.get("title") or link)
        entry.link(href=link, rel="alternate")
        entry.updated(date)
        entry.published(published)

        # description() before content(): without isSummary it would also
        # claim the Atom content slot.
        if item.get("description"):
            entry.description(item["description"], isSummary=True)
        if item.get("content"):
            entry.content(item["content"], type="html")

        authors = _people(item.get("author"))
        if authors:
            entry.author(authors)
        contributors = _people(item.get("contributor"))
        if contributors:
            entry.contributor(contributors)
        categories = _categories(item.get("category"))
        if categories:
            entry.category(categories)
        image = _image(item.get("image"))
        if image:
            entry.enclosure(image["url"], image["length"], image["type"])
