"""
Formats component - rule file import and export.

Invariants:
- Parsing never writes; imported rules still go through bulk validation
- Export column order and value encoding are stable across calls
"""

from __future__ import annotations

from ._impl import export_rules, parse_content
from .models import (
    ExportRulesInput,
    ExportRulesOutput,
    FormatError,
    ParseContentInput,
    ParseContentOutput,
)


def run_parse(inp: ParseContentInput) -> ParseContentOutput:
    """
    Parse uploaded content into rules.

    Args:
        inp: Raw content and its declared format.

    Returns:
        ParseContentOutput with rules, or errors when parsing failed.
    """
    try:
        rules = parse_content(inp.content, inp.format)
    except FormatError as e:
        return ParseContentOutput(errors=[str(e)], success=False)

    return ParseContentOutput(rules=tuple(rules))


def run_export(inp: ExportRulesInput) -> ExportRulesOutput:
    """Render rules as a downloadable document."""
    return ExportRulesOutput(
        content=export_rules(inp.rules, inp.format),
        format=inp.format,
        filename=f"redirects.{inp.format.extension}",
    )
