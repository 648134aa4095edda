"""
Rule file parsing and rendering.

JSON accepts a bare list, {"redirects": [...]} or a source->rule map.
CSV requires source and destination columns. Terraform reads the item
blocks of a cloudflare_list of kind "redirect".
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError

from src.components.redirects._validation import sanitize_csv_value
from src.components.redirects.models import RedirectRule, RuleListAdapter

from .models import FileFormat, FormatError

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "source",
    "destination",
    "statusCode",
    "enabled",
    "preserveQueryParams",
    "preserveHash",
    "description",
    "hostname",
)

_TF_ITEM_RE = re.compile(r"item\s*\{([^}]*)\}")
_TF_SOURCE_RE = re.compile(r'source_url\s*=\s*"([^"]*)"')
_TF_TARGET_RE = re.compile(r'target_url\s*=\s*"([^"]*)"')
_TF_STATUS_RE = re.compile(r"status_code\s*=\s*(\d+)")
_TF_PRESERVE_QUERY_RE = re.compile(r'preserve_query_string\s*=\s*"([^"]*)"')
_TF_SUBPATH_RE = re.compile(r'subpath_matching\s*=\s*"([^"]*)"')


# --- Parsing ---


def parse_content(content: str, fmt: FileFormat) -> list[RedirectRule]:
    """
    Parse rule file content.

    Raises:
        FormatError: if the content is malformed or a rule fails schema
            validation.
    """
    try:
        if fmt == FileFormat.JSON:
            return _parse_json(content)
        if fmt == FileFormat.CSV:
            return _parse_csv(content)
        if fmt == FileFormat.TERRAFORM:
            return _parse_terraform(content)
    except FormatError:
        raise
    except (ValueError, ValidationError) as e:
        logger.error("Error parsing %s content: %s", fmt.value, e)
        raise FormatError(f"Failed to parse {fmt.value} content: {e}") from e

    raise FormatError(f"Unsupported format: {fmt}")


def _parse_json(content: str) -> list[RedirectRule]:
    parsed = json.loads(content)

    items: Any
    if isinstance(parsed, list):
        items = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("redirects"), list):
        items = parsed["redirects"]
    elif isinstance(parsed, dict):
        items = list(parsed.values())
    else:
        raise FormatError("Invalid JSON format: expected array or object with redirects")

    return RuleListAdapter.validate_python(items)


def _is_true(value: str | None) -> bool:
    """Any value other than "false" counts as true."""
    return (value or "").strip().lower() != "false"


def _parse_csv(content: str) -> list[RedirectRule]:
    reader = csv.DictReader(io.StringIO(content.strip()))
    if reader.fieldnames is None:
        return []

    reader.fieldnames = [name.strip() for name in reader.fieldnames]
    if "source" not in reader.fieldnames or "destination" not in reader.fieldnames:
        raise FormatError("CSV missing required headers: source and destination")

    rules: list[RedirectRule] = []
    for line_no, row in enumerate(reader, start=2):
        values = {k: (v or "").strip() for k, v in row.items() if k is not None}
        if not any(values.values()):
            continue

        status = values.get("statusCode") or "301"
        try:
            status_code = int(status)
        except ValueError as e:
            raise FormatError(f"Line {line_no}: invalid statusCode {status!r}") from e

        data: dict[str, Any] = {
            "source": values.get("source", ""),
            "destination": values.get("destination", ""),
            "statusCode": status_code,
            "enabled": _is_true(values.get("enabled")),
            "preserveQueryParams": _is_true(values.get("preserveQueryParams")),
            "preserveHash": _is_true(values.get("preserveHash")),
        }
        if values.get("description"):
            data["description"] = values["description"]
        if values.get("hostname"):
            data["conditions"] = {"hostname": values["hostname"]}

        try:
            rules.append(RedirectRule.model_validate(data))
        except ValidationError as e:
            raise FormatError(f"Line {line_no}: {e}") from e

    return rules


def _parse_terraform(content: str) -> list[RedirectRule]:
    rules: list[RedirectRule] = []

    for item in _TF_ITEM_RE.finditer(content):
        body = item.group(1)
        source_match = _TF_SOURCE_RE.search(body)
        target_match = _TF_TARGET_RE.search(body)
        if source_match is None or target_match is None:
            continue

        source = source_match.group(1)
        destination = target_match.group(1)

        status_match = _TF_STATUS_RE.search(body)
        preserve_match = _TF_PRESERVE_QUERY_RE.search(body)
        subpath_match = _TF_SUBPATH_RE.search(body)
        subpath = subpath_match is not None and subpath_match.group(1) == "enabled"

        if "*" in destination and "*" not in source and subpath:
            source = f"{source}*" if source.endswith("/") else f"{source}/*"

        data: dict[str, Any] = {
            "source": source,
            "destination": destination,
            "statusCode": int(status_match.group(1)) if status_match else 301,
            "enabled": True,
            "preserveQueryParams": (
                preserve_match.group(1) == "enabled" if preserve_match else True
            ),
            "preserveHash": True,
        }

        if source.lower().startswith("http"):
            hostname = urlsplit(source).hostname
            if hostname:
                data["conditions"] = {"hostname": hostname}
            else:
                logger.warning("No hostname in Terraform source_url %s", source)

        rules.append(RedirectRule.model_validate(data))

    return rules


# --- Export ---


def export_rules(rules: Iterable[RedirectRule], fmt: FileFormat) -> str:
    """Render rules in the requested format."""
    batch = list(rules)
    if fmt == FileFormat.JSON:
        return _export_json(batch)
    if fmt == FileFormat.CSV:
        return _export_csv(batch)
    if fmt == FileFormat.TERRAFORM:
        return _export_terraform(batch)
    raise FormatError(f"Unsupported export format: {fmt}")


def _export_json(rules: list[RedirectRule]) -> str:
    return json.dumps({"redirects": [rule.to_wire() for rule in rules]}, indent=2)


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _export_csv(rules: list[RedirectRule]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    for rule in rules:
        hostname = rule.conditions.hostname if rule.conditions else None
        writer.writerow(
            [
                sanitize_csv_value(rule.source),
                sanitize_csv_value(rule.destination),
                str(rule.status_code),
                _bool(rule.enabled),
                _bool(rule.preserve_query_params),
                _bool(rule.preserve_hash),
                sanitize_csv_value(rule.description or ""),
                sanitize_csv_value(hostname or ""),
            ]
        )

    return buffer.getvalue()


def _enabled(flag: bool) -> str:
    return "enabled" if flag else "disabled"


def _export_terraform(rules: list[RedirectRule]) -> str:
    lines = [
        'resource "cloudflare_list" "redirects" {',
        '  kind        = "redirect"',
        '  name        = "redirects"',
        '  description = "Generated by Redirector"',
        "",
    ]

    for rule in rules:
        has_wildcard = "*" in rule.source
        subpath = has_wildcard or ":" in rule.source.split("://", 1)[-1]
        conditions = rule.conditions
        include_subdomains = bool(
            conditions
            and conditions.hostname
            and rule.source.lower().startswith("http")
            and not has_wildcard
        )
        preserve_suffix = has_wildcard and "*" not in rule.destination

        lines += [
            "  item {",
            "    value {",
            "      redirect {",
            f'        source_url            = "{rule.source}"',
            f'        target_url            = "{rule.destination}"',
            f"        status_code           = {rule.status_code}",
            f'        preserve_query_string = "{_enabled(rule.preserve_query_params)}"',
            f'        preserve_path_suffix  = "{_enabled(preserve_suffix)}"',
            f'        include_subdomains    = "{_enabled(include_subdomains)}"',
            f'        subpath_matching      = "{_enabled(subpath)}"',
        ]

        if conditions is not None:
            if conditions.hostname:
                lines.append(f"        # Hostname condition: {conditions.hostname}")
            if conditions.query_params:
                lines.append(
                    f"        # Query param conditions: {json.dumps(conditions.query_params)}"
                )
            if conditions.headers:
                lines.append(f"        # Header conditions: {json.dumps(conditions.headers)}")
        if rule.description:
            lines.append(f"        # {rule.description}")

        lines += ["      }", "    }", "  }", ""]

    lines.append("}")
    return "\n".join(lines) + "\n"
