#!/usr/bin/env python3
"""
sesbundle CLI.

Bundles a JavaScript entry module with browserify and postprocesses the
result for evaluation inside SES.

Usage:
    sesbundle build -s src/index.js -d dist/bundle.js [--strip-comments]
    sesbundle watch -s src/index.js -d dist/bundle.js [--interval 0.5]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import shlex
import sys
from collections.abc import Sequence

from .build import bundle
from .config import BundleConfig, load_config
from .core.errors import ConfigValidationError
from .core.logging import BuildLogger, configure_structlog
from .core.models import BuildMode
from .producer import BrowserifyProducer
from .watch import watch

# Get version from installed metadata
try:
    import importlib.metadata

    __version__ = importlib.metadata.version("sesbundle")
except importlib.metadata.PackageNotFoundError:
    __version__ = "unknown"


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-s", "--src", metavar="FILE", help="Entry-point JavaScript module")
    parser.add_argument("-d", "--dest", metavar="FILE", help="Output bundle path")
    parser.add_argument(
        "--source-maps",
        action="store_true",
        default=None,
        help="Embed inline source maps (browserify --debug)",
    )
    parser.add_argument(
        "--strip-comments",
        action="store_true",
        default=None,
        help="Remove comments before postprocessing",
    )
    parser.add_argument(
        "--config",
        default="sesbundle.toml",
        metavar="FILE",
        help="Configuration file (default: sesbundle.toml, optional)",
    )
    parser.add_argument(
        "--browserify",
        metavar="CMD",
        help='Bundler command line, e.g. "node_modules/.bin/browserify"',
    )
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sesbundle",
        description="Bundle JavaScript for evaluation in a SES sandbox",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build the bundle once")
    _add_common_arguments(build_parser)

    watch_parser = subparsers.add_parser("watch", help="Rebuild whenever a source file changes")
    _add_common_arguments(watch_parser)
    watch_parser.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Polling interval (default: 1.0)",
    )

    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> BundleConfig:
    """Merge the configuration file with command-line overrides."""
    overrides: dict[str, object] = {
        "source": args.src,
        "dest": args.dest,
        "source_maps": args.source_maps,
        "strip_comments": args.strip_comments,
    }
    if args.browserify:
        overrides["browserify"] = {"command": shlex.split(args.browserify)}
    if getattr(args, "interval", None) is not None:
        overrides["watch"] = {"interval": args.interval}
    return load_config(args.config, **overrides)


async def async_main(args: argparse.Namespace, config: BundleConfig) -> int:
    """Run the selected command; returns the process exit status."""
    logger = BuildLogger()
    producer = BrowserifyProducer(command=config.browserify.command, logger=logger)
    options = config.bundle_options()

    if args.command == "watch":
        await watch(
            config.source,
            config.dest,
            options,
            producer=producer,
            interval=config.watch.interval,
            logger=logger,
        )
        return 0

    await bundle(config.source, config.dest, options, producer=producer, mode=BuildMode.ONCE, logger=logger)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    configure_structlog(
        level=logging.DEBUG if args.verbose else logging.INFO,
        use_json=args.log_json,
    )

    try:
        config = resolve_config(args)
    except ConfigValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        sys.exit(asyncio.run(async_main(args, config)))
    except KeyboardInterrupt:
        print("\nStopped.", file=sys.stderr)


if __name__ == "__main__":
    main()
