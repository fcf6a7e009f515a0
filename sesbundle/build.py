"""Build entry point: bundle, postprocess and write a SES-ready bundle.

A build is a three-stage pipeline:

1. the producer bundles the entry module (awaits a subprocess),
2. the postprocessor rewrites the text (synchronous, pure),
3. the result is written to the destination (awaits a worker thread).

Every failure is terminal for that attempt and removes the destination file.
Whether a failure also ends the process is decided by the explicit BuildMode
argument: ONCE exits with status 1, WATCH reports and carries on.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from pathlib import Path

from sesbundle.core.errors import BuildError, EmptyBundleError, WriteError
from sesbundle.core.logging import BuildLogger
from sesbundle.core.models import BuildMode, BuildResult, BundleOptions
from sesbundle.postprocess import postprocess
from sesbundle.producer import BrowserifyProducer, BundleProducer

BUILD_ERROR_PREFIX = "Build error:"
WRITE_ERROR_PREFIX = "Write error:"


def remove_destination(dest: Path | str, logger: BuildLogger | None = None) -> bool:
    """Best-effort unlink of the destination file.

    Returns:
        bool: True if a file was removed
    """
    removed = False
    with contextlib.suppress(OSError):
        Path(dest).unlink()
        removed = True
    if logger is not None:
        logger.log_cleanup(os.fspath(dest), removed)
    return removed


def report_error(
    prefix: str,
    error: BaseException,
    dest: Path | str | None,
    *,
    mode: BuildMode = BuildMode.ONCE,
    logger: BuildLogger | None = None,
) -> None:
    """Log an error, remove the destination file and exit unless watching.

    Args:
        prefix: Message prefix such as "Build error:"; a space is appended if missing
        error: The original error
        dest: Destination file to remove (None to skip cleanup)
        mode: BuildMode.WATCH keeps the process alive
        logger: BuildLogger (default logger if None)

    Raises:
        SystemExit: With status 1 when mode is BuildMode.ONCE
    """
    logger = logger or BuildLogger()

    if not prefix.endswith(" "):
        prefix += " "

    logger.log_build_error(prefix + str(error), error, os.fspath(dest) if dest is not None else None)
    if dest is not None:
        remove_destination(dest, logger)

    if mode is not BuildMode.WATCH:
        raise SystemExit(1)


async def write_bundle(dest: Path | str, text: str) -> int:
    """Write bundle text to ``dest`` as UTF-8, replacing any existing file.

    Returns:
        int: Number of bytes written

    Raises:
        WriteError: If the file cannot be written
    """
    data = text.encode("utf-8")
    try:
        await asyncio.to_thread(Path(dest).write_bytes, data)
    except OSError as e:
        raise WriteError(f"Cannot write '{dest}': {e.strerror or e}") from e
    return len(data)


async def _produce_text(
    source: Path, options: BundleOptions, producer: BundleProducer
) -> str | None:
    """Run the producer, raising its BuildError on failure."""
    result = await producer.produce(source, source_maps=options.source_maps)
    if result.error is not None:
        if isinstance(result.error, BuildError):
            raise result.error
        raise BuildError(str(result.error)) from result.error
    return result.text


async def _finish(
    dest: Path, text: str | None, options: BundleOptions, logger: BuildLogger
) -> int:
    """Postprocess and write; returns bytes written."""
    processed = postprocess(text, options.postprocess_options())
    if processed is None:
        raise EmptyBundleError("Bundler returned no output.")
    logger.log_postprocess_complete(len(text or ""), len(processed))
    return await write_bundle(dest, processed)


def _resolve(
    options: BundleOptions | None,
    producer: BundleProducer | None,
    logger: BuildLogger | None,
) -> tuple[BundleOptions, BundleProducer, BuildLogger]:
    logger = logger or BuildLogger()
    return options or BundleOptions(), producer or BrowserifyProducer(logger=logger), logger


async def _run_build(
    source: Path,
    dest: Path,
    options: BundleOptions,
    producer: BundleProducer,
    logger: BuildLogger,
    *,
    mode: BuildMode,
    reraise: bool,
) -> BuildResult:
    """Produce, postprocess and write one bundle.

    Failures are reported through report_error() with ``mode``. Write-stage
    errors are re-raised after reporting when ``reraise`` is set; otherwise
    every failure comes back as an unsuccessful BuildResult.
    """
    start = time.perf_counter()
    logger.log_build_start(str(source), str(dest), options.source_maps, options.strip_comments)

    def failed(kind: str, error: BaseException) -> BuildResult:
        return BuildResult(
            success=False, source=str(source), dest=str(dest),
            duration_ms=(time.perf_counter() - start) * 1000,
            error_kind=kind, error_message=str(error),
        )

    try:
        text = await _produce_text(source, options, producer)
    except BuildError as e:
        report_error(BUILD_ERROR_PREFIX, e, dest, mode=mode, logger=logger)
        return failed("build", e)

    try:
        written = await _finish(dest, text, options, logger)
    except (EmptyBundleError, WriteError) as e:
        report_error(WRITE_ERROR_PREFIX, e, dest, mode=mode, logger=logger)
        if reraise:
            raise
        return failed("write", e)

    duration = (time.perf_counter() - start) * 1000
    logger.log_build_success(str(source), str(dest), written, duration)
    return BuildResult(
        success=True, source=str(source), dest=str(dest), bytes_written=written, duration_ms=duration
    )


async def build_once(
    source: Path | str,
    dest: Path | str,
    options: BundleOptions | None = None,
    *,
    producer: BundleProducer | None = None,
    logger: BuildLogger | None = None,
) -> BuildResult:
    """Run one build and describe the outcome instead of exiting.

    Failures are logged and the destination is removed, but nothing is
    raised; the returned BuildResult says what went wrong.

    Args:
        source: Entry-point module
        dest: Output bundle path
        options: BundleOptions (defaults if None)
        producer: Bundler to use (BrowserifyProducer if None)
        logger: BuildLogger (default logger if None)

    Returns:
        BuildResult with success flag, size, duration and error details
    """
    options, producer, logger = _resolve(options, producer, logger)
    return await _run_build(
        Path(source), Path(dest), options, producer, logger, mode=BuildMode.WATCH, reraise=False
    )


async def bundle(
    source: Path | str,
    dest: Path | str,
    options: BundleOptions | None = None,
    *,
    producer: BundleProducer | None = None,
    mode: BuildMode = BuildMode.ONCE,
    logger: BuildLogger | None = None,
) -> bool:
    """Build a SES-compatible bundle file from its JavaScript source.

    Build errors are reported with a "Build error:" prefix, the destination is
    removed and True is still returned (in watch mode). Postprocessing and
    write failures are reported with a "Write error:" prefix; in watch mode
    they are then re-raised, which is the only way this coroutine fails.
    Outside watch mode every failure exits the process with status 1.

    Args:
        source: Entry-point module path
        dest: Output bundle path
        options: BundleOptions with source_maps and strip_comments
        producer: Bundler to use (BrowserifyProducer if None)
        mode: BuildMode.ONCE exits on failure, BuildMode.WATCH does not
        logger: BuildLogger (default logger if None)

    Returns:
        True once the destination has been written or cleaned up

    Raises:
        SystemExit: On any failure when mode is BuildMode.ONCE
        WriteError, EmptyBundleError: On write-stage failures in watch mode
    """
    options, producer, logger = _resolve(options, producer, logger)
    await _run_build(Path(source), Path(dest), options, producer, logger, mode=mode, reraise=True)
    return True
