"""Watch mode: rebuild the bundle whenever a source file changes.

Polls modification times under the entry module's directory from a worker
thread, keeping the event loop free for the bundler subprocess. Every build
runs with BuildMode.WATCH, so a failing build is reported and the
destination removed, but the loop keeps going until it is stopped.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from sesbundle.build import bundle
from sesbundle.core.errors import EmptyBundleError, WriteError
from sesbundle.core.logging import BuildLogger
from sesbundle.core.models import BuildMode, BundleOptions
from sesbundle.producer import BundleProducer

WATCHED_SUFFIXES = frozenset({".js", ".mjs", ".cjs", ".json"})
IGNORED_DIRS = frozenset({"node_modules", ".git"})


def snapshot(root: Path, exclude: Path | None = None) -> dict[str, float]:
    """Map every watched file under ``root`` to its modification time.

    Args:
        root: Directory to scan recursively
        exclude: File to leave out, typically the bundle destination

    Returns:
        dict of relative POSIX path -> st_mtime
    """
    excluded = exclude.resolve() if exclude is not None else None
    mtimes: dict[str, float] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in IGNORED_DIRS]
        for name in filenames:
            path = Path(dirpath) / name
            if path.suffix not in WATCHED_SUFFIXES:
                continue
            if excluded is not None and path.resolve() == excluded:
                continue
            try:
                mtimes[path.relative_to(root).as_posix()] = path.stat().st_mtime
            except OSError:
                # deleted between walk and stat; picked up by the next scan
                continue
    return mtimes


def changed_files(before: dict[str, float], after: dict[str, float]) -> list[str]:
    """Return sorted paths added, removed or modified between two snapshots."""
    changed = {p for p, mtime in after.items() if before.get(p) != mtime}
    changed.update(p for p in before if p not in after)
    return sorted(changed)


async def watch(
    source: Path | str,
    dest: Path | str,
    options: BundleOptions | None = None,
    *,
    producer: BundleProducer | None = None,
    interval: float = 1.0,
    stop: asyncio.Event | None = None,
    max_builds: int | None = None,
    logger: BuildLogger | None = None,
) -> int:
    """Build once, then rebuild on every change until stopped.

    Args:
        source: Entry-point module
        dest: Output bundle path (excluded from the watched set)
        options: BundleOptions forwarded to each build
        producer: Bundler to use (BrowserifyProducer if None)
        interval: Seconds between scans
        stop: Event that ends the loop when set
        max_builds: Stop after this many builds (None = unbounded)
        logger: BuildLogger (default logger if None)

    Returns:
        int: Number of builds attempted
    """
    logger = logger or BuildLogger()
    source, dest = Path(source), Path(dest)
    root = source.parent
    stop = stop or asyncio.Event()

    logger.log_watch_start(str(source), str(root), interval)

    builds = 0

    async def rebuild() -> None:
        nonlocal builds
        builds += 1
        try:
            await bundle(source, dest, options, producer=producer, mode=BuildMode.WATCH, logger=logger)
        except (EmptyBundleError, WriteError):
            # already reported by bundle(); the next change triggers another attempt
            pass

    def done() -> bool:
        return stop.is_set() or (max_builds is not None and builds >= max_builds)

    previous = await asyncio.to_thread(snapshot, root, dest)
    await rebuild()

    while not done():
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
        if stop.is_set():
            break

        current = await asyncio.to_thread(snapshot, root, dest)
        changed = changed_files(previous, current)
        previous = current
        if changed:
            logger.log_watch_change(changed)
            await rebuild()

    logger.log_watch_stop(builds)
    return builds
