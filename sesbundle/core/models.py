"""Pydantic models for bundle options, producer output and build results.

Options are closed records: unknown keys are rejected so a typo in a
config file or call site fails loudly instead of being ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from sesbundle.core.errors import OptionsValidationError


class BuildMode(str, Enum):
    """How a build reacts to fatal errors.

    ONCE: a single build; fatal errors terminate the process
    WATCH: continuous rebuilds; fatal errors are reported and survived
    """
    ONCE = "once"
    WATCH = "watch"


class _ClosedOptions(BaseModel):
    """Base for option records that reject unknown fields."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise OptionsValidationError(f"Invalid {type(self).__name__}: {e}") from e


class PostProcessOptions(_ClosedOptions):
    """Options recognised by the sandbox postprocessor.

    Attributes:
        strip_comments: Remove // and /* */ comments before any rewrite
    """

    strip_comments: bool = Field(
        default=False,
        description="Remove comments before the rewrite chain runs"
    )


class BundleOptions(_ClosedOptions):
    """Options for a full bundle build.

    Attributes:
        source_maps: Ask the bundler for inline source maps (browserify --debug)
        strip_comments: Forwarded to the postprocessor
    """

    source_maps: bool = Field(
        default=False,
        description="Emit inline source maps"
    )

    strip_comments: bool = Field(
        default=False,
        description="Remove comments before the rewrite chain runs"
    )

    def postprocess_options(self) -> PostProcessOptions:
        """Derive the postprocessor's options from these build options."""
        return PostProcessOptions(strip_comments=self.strip_comments)


class ProducerResult(BaseModel):
    """Outcome of a bundler run: either text or an error, never both.

    Attributes:
        text: Raw bundle text (None on failure)
        error: The failure (None on success)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    text: str | None = None
    error: BaseException | None = None

    @model_validator(mode="after")
    def check_exclusive(self) -> ProducerResult:
        """Ensure exactly one of text/error is set."""
        if (self.text is None) == (self.error is None):
            raise ValueError("ProducerResult needs exactly one of text or error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class BuildResult(BaseModel):
    """Structured outcome of one build attempt.

    Attributes:
        success: Whether the destination now holds a postprocessed bundle
        source: Entry point path
        dest: Destination path
        bytes_written: UTF-8 size of the written bundle (0 on failure)
        duration_ms: Wall-clock time of the whole attempt
        error_kind: "build" or "write" when the attempt failed
        error_message: Human readable failure message
    """

    success: bool = Field(
        description="Whether the destination now holds a postprocessed bundle"
    )

    source: str

    dest: str

    bytes_written: int = Field(default=0, ge=0)

    duration_ms: float = Field(default=0.0, ge=0)

    error_kind: str | None = Field(
        default=None,
        description='"build" for bundler failures, "write" for postprocess/write failures'
    )

    error_message: str | None = None
