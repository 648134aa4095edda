"""
Formats component - Data models.

Import/export of redirect rules as JSON, CSV or Terraform.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.components.redirects.models import RedirectRule


class FileFormat(str, Enum):
    """Supported rule file formats."""

    JSON = "json"
    CSV = "csv"
    TERRAFORM = "terraform"

    @classmethod
    def from_filename(cls, filename: str) -> FileFormat:
        """Infer the format from a file extension."""
        lowered = filename.lower()
        if lowered.endswith(".json"):
            return cls.JSON
        if lowered.endswith(".csv"):
            return cls.CSV
        if lowered.endswith(".tf") or lowered.endswith(".hcl"):
            return cls.TERRAFORM
        raise FormatError(f"Cannot infer format from file name: {filename}")

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_CONTENT_TYPES = {
    FileFormat.JSON: "application/json",
    FileFormat.CSV: "text/csv",
    FileFormat.TERRAFORM: "text/plain",
}

_EXTENSIONS = {
    FileFormat.JSON: "json",
    FileFormat.CSV: "csv",
    FileFormat.TERRAFORM: "tf",
}


class FormatError(ValueError):
    """Raised when rule content cannot be parsed or exported."""


# --- Input Models ---


@dataclass(frozen=True)
class ParseContentInput:
    """Input for parsing uploaded rule content."""

    content: str
    format: FileFormat


@dataclass(frozen=True)
class ExportRulesInput:
    """Input for exporting rules."""

    rules: tuple[RedirectRule, ...]
    format: FileFormat


# --- Output Models ---


@dataclass(frozen=True)
class ParseContentOutput:
    """Parsed rules, or the reason parsing failed."""

    rules: tuple[RedirectRule, ...] = ()
    errors: list[str] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ExportRulesOutput:
    """Rendered export document."""

    content: str
    format: FileFormat
    filename: str
