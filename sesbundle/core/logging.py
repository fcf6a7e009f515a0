"""Structured logging for bundle builds and watch-mode rebuilds.

Provides BuildLogger, which uses structlog for structured event emission
(build.start, build.success, build.error, watch.change). Configures structlog
with console rendering by default but allows JSON output.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog


def configure_structlog(level: int = logging.INFO, use_json: bool = False) -> None:
    """Configure structlog with sensible defaults for build logging.

    Args:
        level: Minimum log level (default: logging.INFO)
        use_json: If True, use JSON renderer; otherwise use console renderer
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


class BuildLogger:
    """Wrapper for structured logging of build events.

    Accepts either structlog or standard logging.Logger instances and normalizes
    emission so callers do not need to care which backend is in use.
    """

    def __init__(self, logger: Any = None) -> None:
        """Initialize BuildLogger with optional custom logger.

        Args:
            logger: Optional structlog BoundLogger, logging.Logger, or string name.
                    If None, a default structlog logger named 'sesbundle' is created.
        """
        if logger is None:
            self._logger = structlog.get_logger("sesbundle")
        elif isinstance(logger, str):
            self._logger = structlog.get_logger(logger)
        else:
            self._logger = logger

    @property
    def logger(self) -> Any:
        """Expose the underlying logger instance (structlog or logging.Logger)."""
        return self._logger

    def _emit(self, level: int, event: str, **fields: Any) -> None:
        """Emit a log record regardless of logger backend."""
        if isinstance(self._logger, logging.Logger):
            extra = dict(fields)
            exc_info = extra.pop("exc_info", None)
            extra["event_type"] = event
            self._logger.log(level, event, exc_info=exc_info, extra=extra)
            return

        method_name = logging.getLevelName(level).lower()
        log_method = getattr(self._logger, method_name, None)
        if not callable(log_method):
            log_method = self._logger.info
        log_method(event, **fields)

    def log_build_start(self, source: str, dest: str, source_maps: bool, strip_comments: bool) -> None:
        """Log the start of a build with its options."""
        self._emit(
            logging.INFO,
            "build.start",
            source=source,
            dest=dest,
            source_maps=source_maps,
            strip_comments=strip_comments,
        )

    def log_build_success(self, source: str, dest: str, bytes_written: int, duration_ms: float) -> None:
        """Log a completed build.

        The message mirrors the classic CLI line
        ``Build success: '<src>' bundled as '<dest>'!``.
        """
        self._emit(
            logging.INFO,
            "build.success",
            summary=f"Build success: '{source}' bundled as '{dest}'!",
            source=source,
            dest=dest,
            bytes_written=bytes_written,
            duration_ms=duration_ms,
        )

    def log_build_error(self, message: str, error: BaseException, dest: str | None = None) -> None:
        """Log a prefixed failure message together with the original error.

        Args:
            message: Prefixed message, e.g. "Build error: Cannot find module"
            error: The original exception object
            dest: Destination path that is about to be cleaned up
        """
        fields: dict[str, Any] = {
            "summary": message,
            "error": str(error),
            "error_type": type(error).__name__,
            "exc_info": error,
        }
        stderr = getattr(error, "stderr", None)
        if stderr:
            fields["stderr"] = stderr
        if dest is not None:
            fields["dest"] = dest
        self._emit(logging.ERROR, "build.error", **fields)

    def log_cleanup(self, dest: str, removed: bool) -> None:
        self._emit(logging.DEBUG, "build.cleanup", dest=dest, removed=removed)

    def log_producer_exec(self, argv: list[str], cwd: str | None) -> None:
        """Log the bundler command line about to be executed."""
        self._emit(logging.DEBUG, "producer.exec", argv=argv, cwd=cwd)

    def log_postprocess_complete(self, input_bytes: int, output_bytes: int) -> None:
        self._emit(
            logging.DEBUG,
            "postprocess.complete",
            input_bytes=input_bytes,
            output_bytes=output_bytes,
        )

    def log_watch_start(self, source: str, root: str, interval: float) -> None:
        self._emit(logging.INFO, "watch.start", source=source, root=root, interval=interval)

    def log_watch_change(self, changed: list[str]) -> None:
        """Log the files whose modification time changed since the last scan."""
        self._emit(logging.INFO, "watch.change", changed=changed, changed_count=len(changed))

    def log_watch_stop(self, builds: int) -> None:
        self._emit(logging.INFO, "watch.stop", builds=builds)
