"""Exception classes for bundle build, postprocessing and write failures.

Provides domain-specific exceptions so callers can tell a bundler failure
from a destination write failure, plus validation errors for options and
configuration files.
"""

from __future__ import annotations


class SesBundleError(Exception):
    """Base class for all sesbundle failures."""

    pass


class BuildError(SesBundleError):
    """Raised when the bundler could not produce output.

    Typical causes are an unresolved module, a syntax error in the source
    or a missing bundler executable. The bundler's exit code and stderr
    are kept for reporting.

    Attributes:
        exit_code: Bundler process exit code (None if it never ran)
        stderr: Captured bundler stderr text
    """

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class WriteError(SesBundleError):
    """Raised when the destination file could not be written."""

    pass


class EmptyBundleError(SesBundleError):
    """Raised when bundle text is empty after the substitution chain.

    Indicates the bundler returned no usable code. Callers clean up the
    destination exactly as they do for a WriteError.
    """

    pass


class OptionsValidationError(SesBundleError):
    """Raised when bundle or postprocess options are invalid.

    Wraps Pydantic ValidationError (unknown keys, wrong types) with a
    domain-specific name.
    """

    pass


class ConfigValidationError(SesBundleError):
    """Raised when a sesbundle.toml configuration file holds invalid values."""

    pass
