"""Domain-specific exceptions for the stage export pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from . import ValidationResult


class InvalidImageError(ValueError):
    """Raised when an image is missing, unreadable or empty."""

    def __init__(self, source: Path | str, reason: str | None = None):
        message = f"Invalid image: {source}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.source = source
        self.reason = reason


class ValidationError(ValueError):
    """Raised when user-provided settings fail validation."""


class SFFFormatError(ValueError):
    """Raised when a sprite container cannot be parsed."""


class ExportError(RuntimeError):
    """Base class for failures of an export run."""

    kind = "export"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ExportBlockedError(ExportError):
    """Raised when validation reports errors; nothing is written."""

    kind = "validation"

    def __init__(self, result: "ValidationResult"):
        lines = "; ".join(issue.message for issue in result.errors)
        super().__init__(f"Cannot export stage: {lines}")
        self.result = result


class ExportCancelledError(ExportError):
    """Raised when warnings were reported and not confirmed."""

    kind = "cancelled"

    def __init__(self, result: "ValidationResult"):
        lines = "; ".join(issue.message for issue in result.warnings)
        super().__init__(f"Export cancelled with unconfirmed warnings: {lines}")
        self.result = result


class SpriteEncodingError(ExportError):
    """Raised when an image cannot be turned into a sprite."""

    kind = "encoding"

    def __init__(self, role: str, reason: str):
        super().__init__(f"Failed to create {role} sprite: {reason}")
        self.role = role


class ExportIOError(ExportError):
    """Raised when writing or publishing the exported files fails."""

    kind = "io"
