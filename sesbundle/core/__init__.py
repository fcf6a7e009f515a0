"""Core sesbundle abstractions and models.

This module provides the foundational types for the bundler: Pydantic
models for options and results, the exception hierarchy and the
structured build logger.
"""

from __future__ import annotations

from .errors import (
    BuildError,
    ConfigValidationError,
    EmptyBundleError,
    OptionsValidationError,
    SesBundleError,
    WriteError,
)
from .logging import BuildLogger, configure_structlog
from .models import BuildMode, BuildResult, BundleOptions, PostProcessOptions, ProducerResult

__all__ = [
    "BuildError",
    "BuildLogger",
    "BuildMode",
    "BuildResult",
    "BundleOptions",
    "ConfigValidationError",
    "EmptyBundleError",
    "OptionsValidationError",
    "PostProcessOptions",
    "ProducerResult",
    "SesBundleError",
    "WriteError",
    "configure_structlog",
]
