"""Configuration loading for sesbundle.

Provides default settings and TOML-based configuration loading
(``sesbundle.toml``) for the build and watch commands.
"""

from __future__ import annotations

import os
import tomllib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sesbundle.core.errors import ConfigValidationError
from sesbundle.core.models import BundleOptions
from sesbundle.producer import DEFAULT_BROWSERIFY_COMMAND

DEFAULT_CONFIG: dict[str, Any] = {
    # Entry module and output bundle
    "source": "index.js",
    "dest": "dist/bundle.js",

    # Inline source maps (browserify --debug)
    "source_maps": False,

    # Remove comments before the rewrite chain runs
    "strip_comments": False,

    "browserify": {
        "command": list(DEFAULT_BROWSERIFY_COMMAND),
    },

    "watch": {
        "interval": 1.0,
    },
}


class BrowserifyConfig(BaseModel):
    """How to invoke the bundler."""

    model_config = ConfigDict(extra="forbid")

    command: list[str] = Field(min_length=1)


class WatchConfig(BaseModel):
    """Watch-mode polling settings."""

    model_config = ConfigDict(extra="forbid")

    interval: float = Field(default=1.0, gt=0)


class BundleConfig(BaseModel):
    """Validated sesbundle configuration.

    Attributes:
        source: Entry-point module path
        dest: Output bundle path
        source_maps: Emit inline source maps
        strip_comments: Strip comments before postprocessing
        browserify: Bundler invocation
        watch: Watch-mode settings
    """

    model_config = ConfigDict(extra="forbid")

    source: str
    dest: str
    source_maps: bool = False
    strip_comments: bool = False
    browserify: BrowserifyConfig
    watch: WatchConfig = WatchConfig()

    def bundle_options(self) -> BundleOptions:
        """Return the BundleOptions described by this configuration."""
        return BundleOptions(source_maps=self.source_maps, strip_comments=self.strip_comments)


def load_config(path: str = "sesbundle.toml", **overrides: Any) -> BundleConfig:
    """Load and merge user configuration with defaults.

    Performs a shallow merge of the TOML file over DEFAULT_CONFIG; the
    ``browserify`` and ``watch`` tables are merged one level deeper so a file
    can change one key without restating the rest. Keyword overrides (CLI
    flags) are applied last; None values are ignored.

    Args:
        path: Path to the TOML file. A missing file yields the defaults.
        **overrides: Top-level keys that take precedence over the file

    Returns:
        BundleConfig: Validated configuration

    Raises:
        ConfigValidationError: If the merged configuration is invalid
        tomllib.TOMLDecodeError: If the TOML file is malformed
        OSError: If the file exists but cannot be read
    """
    data: dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "rb") as f:
            data = tomllib.load(f)

    config = DEFAULT_CONFIG | data
    for table in ("browserify", "watch"):
        if isinstance(data.get(table), dict):
            config[table] = DEFAULT_CONFIG[table] | data[table]

    config |= {key: value for key, value in overrides.items() if value is not None}

    try:
        return BundleConfig(**config)
    except ValidationError as e:
        raise ConfigValidationError(f"Configuration validation failed: {e}") from e
