"""Generate RSS, Atom and JSON feeds from a built site's content collections."""

from .assembler import assemble_feed
from .config import FeedDefinition, PluginOptions, SiteConfig, load_config, resolve_feed_definition
from .errors import ConfigurationError, FeedGenerationError, SitefeedError
from .plugin import after_build, generate_feed
from .store import JsonContentStore, MemoryContentStore
from .urls import convert_to_site_urls, ensure_extension, url_with_base

__all__ = [
    "assemble_feed",
    "after_build",
    "generate_feed",
    "load_config",
    "resolve_feed_definition",
    "FeedDefinition",
    "PluginOptions",
    "SiteConfig",
    "JsonContentStore",
    "MemoryContentStore",
    "ConfigurationError",
    "FeedGenerationError",
    "SitefeedError",
    "url_with_base",
    "convert_to_site_urls",
    "ensure_extension",
]
