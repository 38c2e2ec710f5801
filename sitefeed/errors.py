"""Exception types raised while generating site feeds."""

from __future__ import annotations

__all__ = ["SitefeedError", "ConfigurationError", "FeedGenerationError"]


class SitefeedError(Exception):
    """Base class for every error raised by :mod:`sitefeed`."""


class ConfigurationError(SitefeedError):
    """The site or feed configuration cannot be used.

    Raised before any output is written so a bad configuration never leaves
    a half-generated set of feeds behind.
    """


class FeedGenerationError(SitefeedError):
    """Writing one feed format to disk failed."""

    def __init__(self, message: str = "Couldn't generate the output feed", *, feed: str = "", fmt: str = "") -> None:
        super().__init__(message)
        self.feed = feed
        self.fmt = fmt
