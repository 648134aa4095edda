"""
Formats component - JSON, CSV and Terraform rule files.
"""

from ._impl import CSV_COLUMNS, export_rules, parse_content
from .component import run_export, run_parse
from .models import (
    ExportRulesInput,
    ExportRulesOutput,
    FileFormat,
    FormatError,
    ParseContentInput,
    ParseContentOutput,
)

__all__ = [
    # Entry points
    "run_export",
    "run_parse",
    # Models
    "ExportRulesInput",
    "ExportRulesOutput",
    "FileFormat",
    "FormatError",
    "ParseContentInput",
    "ParseContentOutput",
    # Helpers
    "CSV_COLUMNS",
    "export_rules",
    "parse_content",
]
