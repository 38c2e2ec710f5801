import datetime as _dt

import pytest

from sitefeed.assembler import (
    assemble_feed,
    build_feed_metadata,
    collect_items,
    rewrite_html_fields,
    site_href,
    sort_and_truncate,
)
from sitefeed.config import SiteConfig, resolve_feed_definition
from sitefeed.errors import ConfigurationError
from sitefeed.store import MemoryContentStore

UTC = _dt.timezone.utc
NOW = _dt.datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
SITE = SiteConfig(site_url="https://ex.com", path_prefix="/", site_name="Example")


def _definition(**overrides):
    options = {"name": "blog", "content_types": ["posts"]}
    options.update(overrides)
    return resolve_feed_definition(options)


def test_site_href():
    assert site_href(SITE) == "https://ex.com/"
    assert site_href(SiteConfig(site_url="https://ex.com", path_prefix="/docs")) == "https://ex.com/docs"
    assert site_href(SiteConfig(site_url="https://ex.com", path_prefix="/docs"), True) == "https://ex.com/docs/"


def test_metadata_defaults_and_feed_links():
    definition = _definition(atom=True)
    metadata = build_feed_metadata(definition, SITE)

    assert metadata.generator == "sitefeed"
    assert metadata.id == "https://ex.com/"
    assert metadata.link == "https://ex.com/"
    assert metadata.title == "Example"
    assert dict(metadata.feed_links) == {
        "rss": "https://ex.com/blog.xml",
        "atom": "https://ex.com/blog.atom",
    }


def test_metadata_title_falls_back_to_feed_name():
    metadata = build_feed_metadata(_definition(), SiteConfig(site_url="https://ex.com"))
    assert metadata.title == "blog"


def test_feed_links_include_path_prefix():
    site = SiteConfig(site_url="https://ex.com", path_prefix="/docs/")
    metadata = build_feed_metadata(_definition(json=True, rss=False), site)
    assert dict(metadata.feed_links) == {"json": "https://ex.com/docs/blog.json"}


def test_user_feed_options_override_defaults_but_not_feed_links():
    definition = _definition(
        feed_options={
            "title": "Custom",
            "id": "urn:feed",
            "generator": "mine",
            "feed_links": {"rss": "https://evil.example/rss"},
            "feedLinks": {"rss": "https://evil.example/rss"},
        }
    )
    metadata = build_feed_metadata(definition, SITE)

    assert metadata.title == "Custom"
    assert metadata.id == "urn:feed"
    assert metadata.generator == "mine"
    assert "feed_links" not in metadata.values
    assert "feedLinks" not in metadata.values
    assert metadata.feed_links["rss"] == "https://ex.com/blog.xml"


def test_collect_items_across_content_types_and_skips_missing():
    store = MemoryContentStore(
        {
            "posts": [{"title": "P", "date": "2023-01-01", "path": "/p"}],
            "notes": [{"title": "N", "date": "2023-02-01", "path": "/n"}],
            "empty": [],
        }
    )
    definition = _definition(content_types=["posts", "missing", "empty", "notes"])

    items = collect_items(definition, SITE, store, now=NOW)

    assert [item["title"] for item in items] == ["P", "N"]
    assert items[0]["date"] == _dt.datetime(2023, 1, 1, tzinfo=UTC)
    assert items[1]["link"] == "https://ex.com/n"


def test_records_without_usable_date_get_build_time():
    store = MemoryContentStore({"posts": [{"title": "A", "path": "/a"}, {"title": "B", "date": "soon", "path": "/b"}]})
    items = collect_items(_definition(), SITE, store, now=NOW)
    assert [item["date"] for item in items] == [NOW, NOW]


def test_filter_is_applied_while_collecting():
    store = MemoryContentStore(
        {"posts": [{"title": "Live", "path": "/live"}, {"title": "Draft", "draft": True, "path": "/draft"}]}
    )
    definition = _definition(filter_nodes=lambda record: not record.get("draft"))
    assert [item["title"] for item in collect_items(definition, SITE, store, now=NOW)] == ["Live"]


def _item(title, day):
    return {"title": title, "date": _dt.datetime(2023, 1, day, tzinfo=UTC), "link": f"https://ex.com/{title}"}


def test_sort_is_newest_first_and_stable():
    items = [_item("a", 1), _item("b", 3), _item("c", 1), _item("d", 3)]
    assert [item["title"] for item in sort_and_truncate(items, None)] == ["b", "d", "a", "c"]


@pytest.mark.parametrize("max_items, expected", [(2, ["b", "d"]), (10, ["b", "d", "a", "c"]), (None, ["b", "d", "a", "c"]), (0, ["b", "d", "a", "c"])])
def test_truncate(max_items, expected):
    items = [_item("a", 1), _item("b", 3), _item("c", 1), _item("d", 3)]
    assert [item["title"] for item in sort_and_truncate(items, max_items)] == expected


def test_rewrite_html_fields_uses_item_link_as_base():
    items = [
        {
            "link": "https://ex.com/posts/one/",
            "content": '<img src="./pic.png"><a href="/about">About</a>',
            "description": '<a href="../two">Two</a>',
            "title": '<a href="/about">not html</a>',
        },
        {"link": "https://ex.com/posts/two/", "content": ""},
    ]

    rewrite_html_fields(items, ("description", "content"), True)

    assert items[0]["content"] == '<img src="https://ex.com/posts/one/pic.png"><a href="https://ex.com/about/">About</a>'
    assert items[0]["description"] == '<a href="https://ex.com/posts/two/">Two</a>'
    assert items[0]["title"] == '<a href="/about">not html</a>'
    assert items[1]["content"] == ""
    assert "description" not in items[1]


def test_assemble_feed_runs_every_step():
    store = MemoryContentStore(
        {
            "posts": [
                {"title": "Jan", "date": "2023-01-01", "path": "/jan", "content": '<a href="/x">x</a>'},
                {"title": "Mar", "date": "2023-03-01", "path": "/mar"},
                {"title": "Feb", "date": "2023-02-01", "path": "/feb"},
            ]
        }
    )

    feed = assemble_feed({"name": "blog", "content_types": ["posts"], "max_items": 2}, SITE, store, now=NOW)

    assert [item["title"] for item in feed.items] == ["Mar", "Feb"]
    assert feed.metadata.title == "Example"


def test_assemble_feed_validates_site_and_options():
    store = MemoryContentStore({})
    with pytest.raises(ConfigurationError):
        assemble_feed({"content_types": ["posts"]}, SiteConfig(), store)
    with pytest.raises(ConfigurationError):
        assemble_feed({"name": "x"}, SITE, store)
