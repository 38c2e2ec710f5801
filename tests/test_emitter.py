import json
import pathlib
from types import MappingProxyType

import pytest

from sitefeed.config import resolve_feed_definition
from sitefeed.emitter import emit, emit_formats, output_file
from sitefeed.errors import FeedGenerationError
from sitefeed.feed import Feed, FeedMetadata


def _feed():
    metadata = FeedMetadata(
        MappingProxyType({"id": "https://ex.com/", "link": "https://ex.com/", "title": "Example"}),
        MappingProxyType({"json": "https://ex.com/feed.json"}),
    )
    return Feed(metadata)


@pytest.mark.parametrize(
    "output_path, expected",
    [("/feed.xml", "feed.xml"), ("feeds/blog.xml", "feeds/blog.xml"), ("//nested/feed.json", "nested/feed.json")],
)
def test_output_file_stays_inside_output_dir(tmp_path, output_path, expected):
    assert output_file(tmp_path, output_path) == tmp_path / pathlib.Path(expected)


def test_emit_writes_file_with_canonical_extension(tmp_path, capsys):
    path = emit("json", _feed(), tmp_path, "/feeds/blog/")

    assert path == tmp_path / "feeds" / "blog.json"
    assert json.loads(path.read_text(encoding="utf-8"))["title"] == "Example"
    assert "Generate JSON feed at /feeds/blog.json" in capsys.readouterr().out


def test_emit_failure_is_wrapped(tmp_path):
    (tmp_path / "feeds").write_text("not a directory", encoding="utf-8")

    with pytest.raises(FeedGenerationError) as excinfo:
        emit("atom", _feed(), tmp_path, "/feeds/blog.atom", feed_name="blog")

    assert str(excinfo.value) == "Couldn't generate the output feed"
    assert excinfo.value.feed == "blog"
    assert excinfo.value.fmt == "atom"
    assert isinstance(excinfo.value.__cause__, OSError)


def test_only_enabled_formats_are_written(tmp_path):
    definition = resolve_feed_definition({"content_types": ["posts"], "rss": False, "json": True})

    results = emit_formats(_feed(), definition, tmp_path)

    assert [result.fmt for result in results] == ["json"]
    assert sorted(path.name for path in tmp_path.iterdir()) == ["feed.json"]


def test_all_formats_are_written_in_order(tmp_path, capsys):
    definition = resolve_feed_definition({"name": "blog", "content_types": ["posts"], "atom": True, "json": True})

    results = emit_formats(_feed(), definition, tmp_path)

    assert [result.fmt for result in results] == ["rss", "atom", "json"]
    assert all(result.ok for result in results)
    assert sorted(path.name for path in tmp_path.iterdir()) == ["blog.atom", "blog.json", "blog.xml"]
    out = capsys.readouterr().out
    assert "Generate RSS feed at /blog.xml" in out
    assert "Generate Atom feed at /blog.atom" in out


def test_one_failing_format_does_not_stop_the_others(tmp_path):
    (tmp_path / "blocked").write_text("", encoding="utf-8")
    definition = resolve_feed_definition(
        {
            "name": "blog",
            "content_types": ["posts"],
            "atom": {"enabled": True, "output": "/blocked/[name].atom"},
            "json": True,
        }
    )

    results = emit_formats(_feed(), definition, tmp_path)
    by_format = {result.fmt: result for result in results}

    assert by_format["rss"].ok and by_format["json"].ok
    assert not by_format["atom"].ok
    assert str(by_format["atom"].error) == "Couldn't generate the output feed"
    assert (tmp_path / "blog.xml").exists()
    assert (tmp_path / "blog.json").exists()


def test_no_enabled_formats(tmp_path):
    definition = resolve_feed_definition({"content_types": ["posts"], "rss": False})
    assert emit_formats(_feed(), definition, tmp_path) == []
    assert list(tmp_path.iterdir()) == []
