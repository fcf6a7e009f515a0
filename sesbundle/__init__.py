"""sesbundle: bundle JavaScript modules for evaluation inside SES.

Public API::

    from sesbundle import bundle, postprocess, BundleOptions

    postprocess("foo.eval(bar)")     # '() => (1, foo.eval)(bar)'
    await bundle("src/index.js", "dist/bundle.js", BundleOptions(strip_comments=True))
"""

from __future__ import annotations

from .build import build_once, bundle, report_error
from .comments import strip_comments
from .config import BundleConfig, load_config
from .core import (
    BuildError,
    BuildLogger,
    BuildMode,
    BuildResult,
    BundleOptions,
    ConfigValidationError,
    EmptyBundleError,
    OptionsValidationError,
    PostProcessOptions,
    ProducerResult,
    SesBundleError,
    WriteError,
    configure_structlog,
)
from .postprocess import REWRITE_RULES, postprocess
from .producer import BrowserifyProducer, BundleProducer, StaticProducer
from .watch import watch

__all__ = [
    "REWRITE_RULES",
    "BrowserifyProducer",
    "BuildError",
    "BuildLogger",
    "BuildMode",
    "BuildResult",
    "BundleConfig",
    "BundleOptions",
    "BundleProducer",
    "ConfigValidationError",
    "EmptyBundleError",
    "OptionsValidationError",
    "PostProcessOptions",
    "ProducerResult",
    "SesBundleError",
    "StaticProducer",
    "WriteError",
    "build_once",
    "bundle",
    "configure_structlog",
    "load_config",
    "postprocess",
    "report_error",
    "strip_comments",
    "watch",
]
