"""Project content records into feed items."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, TypedDict, Union

from .urls import is_absolute_url, url_with_base

__all__ = [
    "FeedItem",
    "FilterFn",
    "ProjectFn",
    "accept_all",
    "default_node_to_feed_item",
    "absolute_link",
    "project_record",
]

ContentRecord = Mapping[str, Any]


class FeedItem(TypedDict, total=False):
    """A feed-ready item. Extra keys are passed through to the encoder."""

    title: str
    date: Any
    link: str
    id: str
    guid: str
    description: str
    content: str
    published: Any
    author: Union[str, Mapping[str, str], List[Mapping[str, str]]]
    contributor: Union[str, Mapping[str, str], List[Mapping[str, str]]]
    category: Union[str, Mapping[str, str], List[Any]]
    image: Union[str, Mapping[str, Any]]


FilterFn = Callable[[ContentRecord], bool]
ProjectFn = Callable[[ContentRecord], FeedItem]


def accept_all(record: ContentRecord) -> bool:
    return True


def default_node_to_feed_item(record: ContentRecord) -> FeedItem:
    """Map ``title``, ``date`` (falling back to ``fields.date``) and ``content``."""

    fields = record.get("fields")
    date = record.get("date")
    if not date and isinstance(fields, Mapping):
        date = fields.get("date")

    return {
        "title": record.get("title"),
        "date": date,
        "content": record.get("content"),
    }


def absolute_link(
    link: str,
    *,
    site_url: str,
    path_prefix: str = "",
    enforce_trailing_slashes: bool = False,
) -> str:
    """Return *link* as an absolute URL on the site.

    Root-relative links get the path prefix in front; other relative links
    resolve against the prefixed site root.
    """

    if is_absolute_url(link):
        return link
    if link.startswith("/") and not link.startswith("//"):
        return url_with_base(f"{path_prefix}{link}", site_url, enforce_trailing_slashes)
    site_root = url_with_base(f"{path_prefix}/", site_url)
    return url_with_base(link, site_root, enforce_trailing_slashes)


def project_record(
    record: ContentRecord,
    *,
    filter_nodes: FilterFn = accept_all,
    node_to_feed_item: ProjectFn = default_node_to_feed_item,
    site_url: str,
    path_prefix: str = "",
    enforce_trailing_slashes: bool = False,
) -> Optional[FeedItem]:
    """Return the feed item for *record*, or ``None`` when the filter rejects it.

    The item gets a ``link`` built from the record's ``path`` when the
    projection did not supply one, and ``id`` falls back to that link.
    """

    if not filter_nodes(record):
        return None

    projected = node_to_feed_item(record)
    item: Dict[str, Any] = dict(projected or {})

    link = item.get("link")
    if link:
        item["link"] = absolute_link(
            str(link),
            site_url=site_url,
            path_prefix=path_prefix,
            enforce_trailing_slashes=enforce_trailing_slashes,
        )
    else:
        path = str(record.get("path") or "")
        if path and not path.startswith("/"):
            path = f"/{path}"
        item["link"] = url_with_base(f"{path_prefix}{path}", site_url, enforce_trailing_slashes)

    if not item.get("id"):
        item["id"] = item["link"]
    return item  # type: ignore[return-value]
