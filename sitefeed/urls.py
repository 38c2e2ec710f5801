"""URL helpers: absolute site URLs, HTML link rewriting and output names."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

from .errors import ConfigurationError

__all__ = ["url_with_base", "convert_to_site_urls", "ensure_extension", "is_absolute_url"]

# A dot followed by 1-4 letters at the end of a path looks like a file name.
_EXTENSION_RE = re.compile(r"\.[a-z]{1,4}$", re.IGNORECASE)

# Start tags, with quoted attribute values consumed whole so a ``>`` inside
# a value does not end the tag early. A ``<`` ends the scan anywhere, which
# keeps unclosed quotes from running on to the end of the document.
_TAG_RE = re.compile(r"""<[A-Za-z][^\s/<>"']*(?:[^<>"']|"[^"<]*"|'[^'<]*')*>""")

# One attribute inside a tag. Values are consumed as a unit which keeps
# ``href=`` text inside another attribute's value out of reach.
_ATTRIBUTE_RE = re.compile(
    r"""(?P<name>[^\s"'<>/=]+)(?:(?P<eq>\s*=\s*)(?P<value>"[^"]*"|'[^']*'|[^\s"'>]+))?"""
)

# ``./x``, ``../x`` and ``/x`` but not the scheme-relative ``//host/x``.
_RELATIVE_RE = re.compile(r"^(?:\.{1,2}/|/(?!/))")

_URL_ATTRIBUTES = {"href", "src"}


def is_absolute_url(value: str) -> bool:
    """Return ``True`` when *value* carries both a scheme and a host."""

    if not isinstance(value, str) or not value.strip():
        return False
    parts = urlsplit(value.strip())
    return bool(parts.scheme and parts.netloc)


def _with_trailing_slash(path: str) -> str:
    cut = len(path)
    for separator in ("?", "#"):
        index = path.find(separator)
        if index != -1:
            cut = min(cut, index)

    head, tail = path[:cut], path[cut:]
    if head.endswith("/") or _EXTENSION_RE.search(head):
        return path
    return f"{head}/{tail}"


def url_with_base(path: str, base: str, enforce_trailing_slashes: bool = False) -> str:
    """Resolve *path* against *base* and return an absolute URL.

    With ``enforce_trailing_slashes`` a ``/`` is appended to the path portion
    of *path* unless it already ends with one or ends in something that looks
    like a file extension (``/feed.xml``, ``/photo.jpeg``).
    """

    if not is_absolute_url(base):
        raise ConfigurationError(f"Expected an absolute base URL, got {base!r}")

    path = path or ""
    if enforce_trailing_slashes:
        path = _with_trailing_slash(path)

    resolved = urljoin(base.strip(), path)
    parts = urlsplit(resolved)
    if not parts.path and parts.scheme in ("http", "https"):
        resolved = urlunsplit(parts._replace(path="/"))
    return resolved


def convert_to_site_urls(html: str, base_url: str, enforce_trailing_slashes: bool = False) -> str:
    """Rewrite relative ``href``/``src`` attribute values in *html* to absolute URLs.

    Only explicitly relative references (``./``, ``../``) and site-root
    references (``/``) written as ``href="..."`` or ``src='...'`` are touched.
    Absolute, scheme-relative, fragment and query-only values are kept as is,
    as is everything outside the rewritten values.
    """

    if not html:
        return html

    def replace_attribute(match: re.Match) -> str:
        value = match.group("value")
        if (
            match.group("name").lower() not in _URL_ATTRIBUTES
            or match.group("eq") != "="
            or not value
            or value[0] not in ("'", '"')
        ):
            return match.group(0)

        quote, target = value[0], value[1:-1]
        if not _RELATIVE_RE.match(target):
            return match.group(0)

        absolute = url_with_base(target, base_url, enforce_trailing_slashes)
        return f"{match.group('name')}={quote}{absolute}{quote}"

    def replace_tag(match: re.Match) -> str:
        return _ATTRIBUTE_RE.sub(replace_attribute, match.group(0))

    return _TAG_RE.sub(replace_tag, html)


def ensure_extension(path: str, extension: str) -> str:
    """Return *path* ending in *extension* (``/feed/`` -> ``/feed.xml``)."""

    if path.endswith(extension):
        return path
    if path.endswith("/"):
        return f"{path[:-1]}{extension}"
    return f"{path}{extension}"
