#!/usr/bin/env python3
"""Generate RSS, Atom and JSON feeds for an already built site.

Usage:
  sitefeed-build --config config.json
  python -m sitefeed.build_feeds --site-url "https://example.com" --output-dir dist

Content collections are read from ``<data-dir>/<content type>.json`` and the
feeds are written below the site's output directory. Exit status is 0 on
success, 1 when a feed file could not be written and 2 for configuration
errors (nothing is written in that case).
"""

from __future__ import annotations

import argparse
import dataclasses
import pathlib
import sys
from typing import List, Sequence

from .config import load_config
from .errors import ConfigurationError
from .health import BuildReport
from .plugin import FeedResult, after_build
from .store import JsonContentStore

DEFAULT_CONFIG = pathlib.Path("config.json")
REPORT_NAME = "feeds"


def _report_results(results: Sequence[FeedResult], report: BuildReport | None) -> int:
    written = 0
    failures = 0
    for result in results:
        files = [output.output for output in result.outputs if output.ok]
        written += len(files)
        for failure in result.failures:
            failures += 1
            message = f"{result.name} ({failure.fmt} -> {failure.output}): {failure.error}"
            print(f"ERROR: {message}", file=sys.stderr)
            if report is not None:
                report.record_error(message)
        if report is not None:
            report.record_feed(result.items, files)

    print(f"Generated {written} feed file(s) for {len(results)} feed(s).")
    return failures


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write site feeds after a build.")
    parser.add_argument("--config", type=pathlib.Path, default=DEFAULT_CONFIG, help="Path to config.json")
    parser.add_argument("--data-dir", type=pathlib.Path, help="Directory holding <content type>.json collections")
    parser.add_argument("--output-dir", type=pathlib.Path, help="Build output directory (overrides config)")
    parser.add_argument("--site-url", help="Absolute site URL (overrides config)")
    parser.add_argument("--path-prefix", help="Site path prefix (overrides config)")
    parser.add_argument("--health-dir", type=pathlib.Path, help="Write a build report to <dir>/feeds.json")

    args = parser.parse_args(argv)

    try:
        site, options = load_config(args.config)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    overrides = {}
    if args.site_url:
        overrides["site_url"] = args.site_url
    if args.path_prefix is not None:
        overrides["path_prefix"] = args.path_prefix
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if overrides:
        site = dataclasses.replace(site, **overrides)

    data_dir = args.data_dir or args.config.parent / "data"
    store = JsonContentStore(data_dir)
    report = BuildReport(REPORT_NAME, health_dir=args.health_dir) if args.health_dir else None

    try:
        results = after_build(site, options, store)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        if report is not None:
            report.record_error(str(exc))
            report.write()
        return 1

    failures = _report_results(results, report)
    if report is not None:
        report.write()
    return 1 if failures else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
