"""Bundle producers: turn a JavaScript entry point into one script.

Provides the BundleProducer ABC and two implementations:

- BrowserifyProducer runs the browserify CLI in a subprocess and captures
  the bundle from stdout.
- StaticProducer returns fixed text or a fixed error; useful for embedding
  the postprocessor in other tooling and for tests.

Producers never raise for build failures. A failed build comes back as a
ProducerResult carrying a BuildError so the caller decides how to report it.
"""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from sesbundle.core.errors import BuildError
from sesbundle.core.models import ProducerResult

if TYPE_CHECKING:
    from sesbundle.core.logging import BuildLogger

DEFAULT_BROWSERIFY_COMMAND: tuple[str, ...] = ("npx", "browserify")


class BundleProducer(ABC):
    """Abstract base class for bundlers.

    Implementations resolve the module graph of ``entry`` and return the
    concatenated script text.
    """

    @abstractmethod
    async def produce(self, entry: Path, *, source_maps: bool = False) -> ProducerResult:
        """Bundle ``entry`` and its transitive dependencies.

        Args:
            entry: Path to the entry-point module
            source_maps: Whether to embed inline source maps

        Returns:
            ProducerResult with either the bundle text or a BuildError
        """
        pass


class BrowserifyProducer(BundleProducer):
    """Runs ``browserify <entry> [--debug]`` and captures stdout.

    Attributes:
        command: Executable plus leading arguments, e.g. ("npx", "browserify")
        cwd: Working directory for the subprocess (None = current directory)
        logger: BuildLogger for the producer.exec debug event
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_BROWSERIFY_COMMAND,
        cwd: Path | str | None = None,
        logger: BuildLogger | None = None,
    ) -> None:
        if not command:
            raise ValueError("Bundler command must not be empty")
        self.command = tuple(command)
        self.cwd = cwd
        if logger is None:
            from sesbundle.core.logging import BuildLogger
            logger = BuildLogger()
        self.logger = logger

    def build_argv(self, entry: Path, source_maps: bool) -> list[str]:
        """Return the full argument vector for one bundler run."""
        argv = [*self.command, os.fspath(entry)]
        if source_maps:
            argv.append("--debug")
        return argv

    async def produce(self, entry: Path, *, source_maps: bool = False) -> ProducerResult:
        entry = Path(entry)
        if not entry.is_file():
            return ProducerResult(error=BuildError(f"Cannot find entry module '{entry}'"))

        argv = self.build_argv(entry, source_maps)
        cwd = os.fspath(self.cwd) if self.cwd is not None else None
        self.logger.log_producer_exec(argv, cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except FileNotFoundError as e:
            return ProducerResult(
                error=BuildError(f"Bundler executable not found: {argv[0]}", stderr=str(e))
            )
        except OSError as e:
            # not executable, a directory, bad interpreter line
            return ProducerResult(
                error=BuildError(f"Cannot run bundler {argv[0]}: {e}", stderr=str(e))
            )

        stdout, stderr = await proc.communicate()
        stderr_text = stderr.decode("utf-8", errors="replace").strip()

        if proc.returncode != 0:
            first_line = stderr_text.splitlines()[0] if stderr_text else "no output"
            return ProducerResult(
                error=BuildError(
                    f"Bundler exited with code {proc.returncode}: {first_line}",
                    exit_code=proc.returncode,
                    stderr=stderr_text,
                )
            )

        try:
            text = stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            return ProducerResult(error=BuildError(f"Bundler output is not valid UTF-8: {e}"))
        return ProducerResult(text=text)


class StaticProducer(BundleProducer):
    """Producer that returns pre-computed text or a pre-computed error."""

    def __init__(self, text: str | None = None, error: BaseException | None = None) -> None:
        self._result = ProducerResult(text=text, error=error)
        self.calls: list[tuple[Path, bool]] = []

    async def produce(self, entry: Path, *, source_maps: bool = False) -> ProducerResult:
        self.calls.append((Path(entry), source_maps))
        return self._result
