"""Site and feed configuration.

Feed definitions come from ``config.json`` (or straight from Python) as loose
mappings. :func:`resolve_feed_definition` turns one of them into an immutable
:class:`FeedDefinition` with every default filled in, so nothing downstream
has to care about missing keys and no default object is ever shared or
mutated between feeds.

Environment variables ``SITE_URL``, ``PATH_PREFIX``, ``OUTPUT_DIR`` and
``SITE_NAME`` override the ``site`` section of the configuration file.
"""

from __future__ import annotations

import importlib
import json
import os
import pathlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .projector import FilterFn, ProjectFn, accept_all, default_node_to_feed_item
from .urls import ensure_extension, is_absolute_url

__all__ = [
    "FORMATS",
    "FORMAT_EXTENSIONS",
    "DEFAULT_MAX_ITEMS",
    "DEFAULT_HTML_FIELDS",
    "FormatOptions",
    "FeedDefinition",
    "SiteConfig",
    "PluginOptions",
    "resolve_feed_definition",
    "check_unique_names",
    "load_config",
]

FORMATS: Tuple[str, ...] = ("rss", "atom", "json")
FORMAT_EXTENSIONS: Mapping[str, str] = MappingProxyType({"rss": ".xml", "atom": ".atom", "json": ".json"})

DEFAULT_NAME = "feed"
DEFAULT_MAX_ITEMS = 25
DEFAULT_HTML_FIELDS: Tuple[str, ...] = ("description", "content")
NAME_PLACEHOLDER = "[name]"

SITE_ENV_VARS: Mapping[str, str] = MappingProxyType(
    {
        "site_url": "SITE_URL",
        "path_prefix": "PATH_PREFIX",
        "output_dir": "OUTPUT_DIR",
        "site_name": "SITE_NAME",
    }
)

# camelCase spellings accepted for compatibility with existing plugin configs.
_FEED_KEY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "contentTypes": "content_types",
        "feedOptions": "feed_options",
        "maxItems": "max_items",
        "htmlFields": "html_fields",
        "enforceTrailingSlashes": "enforce_trailing_slashes",
        "filterNodes": "filter_nodes",
        "nodeToFeedItem": "node_to_feed_item",
    }
)
_SITE_KEY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "siteUrl": "site_url",
        "pathPrefix": "path_prefix",
        "outputDir": "output_dir",
        "siteName": "site_name",
    }
)
_FEED_KEYS = frozenset(
    {
        "name",
        "content_types",
        "feed_options",
        "max_items",
        "html_fields",
        "enforce_trailing_slashes",
        "filter_nodes",
        "node_to_feed_item",
        *FORMATS,
    }
)


@dataclass(frozen=True)
class FormatOptions:
    """Whether one output format is written, and where."""

    enabled: bool
    output: str


_DEFAULT_FORMATS: Mapping[str, FormatOptions] = MappingProxyType(
    {
        "rss": FormatOptions(True, "/[name].xml"),
        "atom": FormatOptions(False, "/[name].atom"),
        "json": FormatOptions(False, "/[name].json"),
    }
)


@dataclass(frozen=True)
class FeedDefinition:
    """A fully resolved feed configuration."""

    name: str
    content_types: Tuple[str, ...]
    rss: FormatOptions
    atom: FormatOptions
    json: FormatOptions
    max_items: Optional[int] = DEFAULT_MAX_ITEMS
    html_fields: Tuple[str, ...] = DEFAULT_HTML_FIELDS
    enforce_trailing_slashes: bool = False
    filter_nodes: FilterFn = accept_all
    node_to_feed_item: ProjectFn = default_node_to_feed_item
    feed_options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def format_options(self, fmt: str) -> FormatOptions:
        if fmt not in FORMATS:
            raise KeyError(fmt)
        return getattr(self, fmt)

    @property
    def enabled_formats(self) -> List[str]:
        return [fmt for fmt in FORMATS if self.format_options(fmt).enabled]

    def output_path(self, fmt: str) -> str:
        """Return the site-relative output path for *fmt* with its canonical extension."""

        return ensure_extension(self.format_options(fmt).output, FORMAT_EXTENSIONS[fmt])


def _normalise_keys(data: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    normalised: Dict[str, Any] = {}
    for key, value in data.items():
        normalised[aliases.get(key, key)] = value
    return normalised


def _coerce_name(value: Any) -> str:
    if value is None:
        return DEFAULT_NAME
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Feed name must be a non-empty string, got {value!r}")
    return value.strip()


def _as_list(value: Any, key: str, name: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping) or not isinstance(value, Sequence):
        raise ConfigurationError(f"Feed {name!r}: '{key}' must be a list, got {type(value).__name__}")
    return list(value)


def _coerce_content_types(value: Any, name: str) -> Tuple[str, ...]:
    types: List[str] = []
    for entry in _as_list(value, "content_types", name):
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigurationError(f"Feed {name!r}: content types must be non-empty strings, got {entry!r}")
        types.append(entry.strip())
    if not types:
        raise ConfigurationError(f"Feed {name!r} is missing required field 'content_types'")
    return tuple(types)


def _resolve_format(fmt: str, value: Any, name: str) -> FormatOptions:
    default = _DEFAULT_FORMATS[fmt]
    if value is None:
        value = {}
    elif isinstance(value, bool):
        value = {"enabled": value}
    elif isinstance(value, FormatOptions):
        value = {"enabled": value.enabled, "output": value.output}
    elif not isinstance(value, Mapping):
        raise ConfigurationError(f"Feed {name!r}: '{fmt}' must be an object, got {type(value).__name__}")

    enabled = value.get("enabled", default.enabled)
    if not isinstance(enabled, bool):
        raise ConfigurationError(f"Feed {name!r}: '{fmt}.enabled' must be true or false")

    output = value.get("output", default.output)
    if not isinstance(output, str) or not output.strip():
        raise ConfigurationError(f"Feed {name!r}: '{fmt}.output' must be a non-empty path")

    return FormatOptions(enabled, output.strip().replace(NAME_PLACEHOLDER, name))


def _coerce_max_items(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Feed {name!r}: 'max_items' must be a number")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ConfigurationError(f"Feed {name!r}: 'max_items' must be a number, got {value!r}")
    return value if value > 0 else None


def _coerce_flag(value: Any, key: str, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"Feed {name!r}: '{key}' must be true or false")
    return value


def _coerce_html_fields(value: Any, name: str) -> Tuple[str, ...]:
    if value is None:
        return DEFAULT_HTML_FIELDS
    fields = tuple(_as_list(value, "html_fields", name))
    if not all(isinstance(entry, str) and entry for entry in fields):
        raise ConfigurationError(f"Feed {name!r}: 'html_fields' must be a list of field names")
    return fields


def _import_callable(import_path: str, key: str, name: str) -> Callable:
    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Feed {name!r}: '{key}' must look like 'package.module:function', got {import_path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Feed {name!r}: cannot import {module_name!r} for '{key}'") from exc

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigurationError(f"Feed {name!r}: {import_path!r} not found for '{key}'") from exc
    if not callable(target):
        raise ConfigurationError(f"Feed {name!r}: {import_path!r} is not callable")
    return target


def _resolve_callable(value: Any, default: Callable, key: str, name: str) -> Callable:
    if value is None:
        return default
    if isinstance(value, str):
        return _import_callable(value.strip(), key, name)
    if callable(value):
        return value
    raise ConfigurationError(f"Feed {name!r}: '{key}' must be a callable or an import path")


def resolve_feed_definition(options: Mapping[str, Any] | FeedDefinition) -> FeedDefinition:
    """Merge one feed's options over the defaults.

    Raises :class:`ConfigurationError` when ``content_types`` is missing or
    empty, when an option has the wrong type or when an unknown key is
    present.
    """

    if isinstance(options, FeedDefinition):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(f"Feed options must be an object, got {type(options).__name__}")

    raw = _normalise_keys(options, _FEED_KEY_ALIASES)
    name = _coerce_name(raw.get("name"))

    unknown = sorted(set(raw) - _FEED_KEYS)
    if unknown:
        raise ConfigurationError(f"Feed {name!r}: unknown option(s) {', '.join(unknown)}")

    feed_options = raw.get("feed_options") or {}
    if not isinstance(feed_options, Mapping):
        raise ConfigurationError(f"Feed {name!r}: 'feed_options' must be an object")

    return FeedDefinition(
        name=name,
        content_types=_coerce_content_types(raw.get("content_types"), name),
        rss=_resolve_format("rss", raw.get("rss"), name),
        atom=_resolve_format("atom", raw.get("atom"), name),
        json=_resolve_format("json", raw.get("json"), name),
        max_items=_coerce_max_items(raw.get("max_items", DEFAULT_MAX_ITEMS), name),
        html_fields=_coerce_html_fields(raw.get("html_fields"), name),
        enforce_trailing_slashes=_coerce_flag(raw.get("enforce_trailing_slashes"), "enforce_trailing_slashes", name),
        filter_nodes=_resolve_callable(raw.get("filter_nodes"), accept_all, "filter_nodes", name),
        node_to_feed_item=_resolve_callable(
            raw.get("node_to_feed_item"), default_node_to_feed_item, "node_to_feed_item", name
        ),
        feed_options=MappingProxyType(dict(feed_options)),
    )


def check_unique_names(definitions: Iterable[FeedDefinition]) -> None:
    seen = set()
    for definition in definitions:
        if definition.name in seen:
            raise ConfigurationError(f"Each feed has to have a unique name (duplicate: {definition.name!r})")
        seen.add(definition.name)


def normalise_path_prefix(value: Any) -> str:
    """Return *value* as ``/prefix`` without a trailing slash, or ``""``."""

    text = str(value or "").strip()
    if not text or text == "/":
        return ""
    text = text.rstrip("/")
    if not text.startswith("/"):
        text = f"/{text}"
    return text


@dataclass(frozen=True)
class SiteConfig:
    """The parts of the site build configuration feeds depend on."""

    site_url: str = ""
    path_prefix: str = ""
    output_dir: pathlib.Path = pathlib.Path("dist")
    site_name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "site_url", str(self.site_url or "").strip())
        object.__setattr__(self, "path_prefix", normalise_path_prefix(self.path_prefix))
        object.__setattr__(self, "output_dir", pathlib.Path(self.output_dir))
        object.__setattr__(self, "site_name", str(self.site_name or "").strip())

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any] | None,
        *,
        env: Mapping[str, str] | None = None,
        base_dir: pathlib.Path | None = None,
    ) -> "SiteConfig":
        """Build a config from a ``site`` mapping, letting *env* override it.

        A relative ``output_dir`` is taken relative to *base_dir* when given.
        """

        values = _normalise_keys(dict(data or {}), _SITE_KEY_ALIASES)
        for key, variable in SITE_ENV_VARS.items():
            override = (env or {}).get(variable, "").strip()
            if override:
                values[key] = override

        output_dir = pathlib.Path(values.get("output_dir") or "dist").expanduser()
        if base_dir is not None and not output_dir.is_absolute():
            output_dir = base_dir / output_dir

        return cls(
            site_url=values.get("site_url") or "",
            path_prefix=values.get("path_prefix") or "",
            output_dir=output_dir,
            site_name=values.get("site_name") or "",
        )

    def validate(self) -> None:
        if not self.site_url:
            raise ConfigurationError("Missing required field 'site_url' in the site configuration")
        if not is_absolute_url(self.site_url):
            raise ConfigurationError(f"'site_url' must be an absolute URL, got {self.site_url!r}")


@dataclass(frozen=True)
class PluginOptions:
    """The ``feeds`` section of the configuration, still unresolved."""

    feeds: Tuple[Mapping[str, Any], ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "PluginOptions":
        feeds = (data or {}).get("feeds") or []
        if isinstance(feeds, Mapping) or not isinstance(feeds, Sequence) or isinstance(feeds, str):
            raise ConfigurationError("'feeds' must be a list of feed definitions")
        return cls(tuple(feeds))

    def resolve(self) -> List[FeedDefinition]:
        """Resolve every feed and check the names are unique."""

        definitions = [resolve_feed_definition(options) for options in self.feeds]
        check_unique_names(definitions)
        return definitions


def load_config(
    path: pathlib.Path,
    *,
    env: Mapping[str, str] | None = None,
) -> Tuple[SiteConfig, PluginOptions]:
    """Read ``config.json`` at *path* into site and plugin options."""

    path = pathlib.Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected an object in {path}, got {type(data).__name__}")

    site = data.get("site") or {}
    if not isinstance(site, Mapping):
        raise ConfigurationError(f"'site' must be an object in {path}")

    if env is None:
        env = os.environ
    site_config = SiteConfig.from_mapping(site, env=env, base_dir=path.parent)
    return site_config, PluginOptions.from_mapping(data)
