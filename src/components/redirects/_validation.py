"""
Safety validators for redirect patterns and destinations.

Both validators run when a rule is written. validate_destination runs
again at resolution time against the fully substituted destination,
since parameter substitution can change the authority of the URL.

Key behaviors:
- Patterns: max 200 chars, URL-safe character whitelist, no nested
  quantifiers, no consecutive wildcards
- Destinations: relative URLs are always allowed; absolute URLs must be
  http(s) and either on the allow-list, or same-host unless external
  redirects are enabled
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from .models import ValidationResult

logger = logging.getLogger(__name__)

MAX_PATTERN_LENGTH = 200

_ALLOWED_PATTERN_RE = re.compile(r"^[a-zA-Z0-9:/*_.\-?&=#+%@!~]+$")
_NESTED_QUANTIFIER_RE = re.compile(r"\([^)]*[*+][^)]*\)[*+]")
_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_PLACEHOLDER_RE = re.compile(r":[A-Za-z_][A-Za-z0-9_]*|\*")

DANGEROUS_SCHEMES = ("javascript", "data", "file", "vbscript", "about", "blob", "ftp")
ALLOWED_SCHEMES = ("http", "https")


def parse_allowed_domains(config: str | None) -> list[str]:
    """Split a comma-separated allow-list, dropping blanks."""
    if not config:
        return []
    return [d.strip() for d in config.split(",") if d.strip()]


def is_hostname_allowed(hostname: str, allowed_domains: list[str]) -> bool:
    """
    Check a hostname against the allow-list.

    Entries may be exact hosts, "*.example.com" (any subdomain or the base
    domain itself), or bare domains, which also admit their "www." host.
    """
    host = hostname.lower()

    for entry in allowed_domains:
        pattern = entry.lower()

        if host == pattern:
            return True

        if pattern.startswith("*."):
            base = pattern[2:]
            if host.endswith(f".{base}") or host == base:
                return True
        elif not pattern.startswith("*") and host == f"www.{pattern}":
            return True

    return False


def validate_pattern(pattern: str) -> ValidationResult:
    """Validate a source pattern before it may be compiled into a matcher."""
    if len(pattern) > MAX_PATTERN_LENGTH:
        return ValidationResult(
            valid=False,
            reason=f"Pattern exceeds maximum length of {MAX_PATTERN_LENGTH} characters",
        )

    if not _ALLOWED_PATTERN_RE.match(pattern):
        return ValidationResult(
            valid=False,
            reason=(
                "Pattern contains invalid characters. Only alphanumeric, :, /, *, _, -, ., "
                "and common URL characters are allowed"
            ),
        )

    if _NESTED_QUANTIFIER_RE.search(pattern):
        return ValidationResult(
            valid=False,
            reason="Pattern contains nested quantifiers which could cause performance issues",
        )

    if "**" in pattern:
        return ValidationResult(
            valid=False,
            reason="Pattern contains consecutive wildcards which are not allowed",
        )

    return ValidationResult(valid=True)


def validate_destination(
    destination: str,
    request_origin: str | None,
    allowed_domains: list[str] | None = None,
    allow_external: bool = False,
) -> ValidationResult:
    """
    Validate a destination URL against open-redirect abuse.

    request_origin is the origin the rule is served from. When it is None
    no absolute destination can be same-host, so only allow-listed hosts
    (or any host, with allow_external) are accepted.
    """
    scheme_match = _SCHEME_RE.match(destination)
    if scheme_match is None:
        # Relative URLs cannot leave the origin
        return ValidationResult(valid=True)

    scheme = scheme_match.group(1).lower()

    if scheme in DANGEROUS_SCHEMES:
        logger.warning("Blocked dangerous URL scheme %s: %s", scheme, destination)
        return ValidationResult(
            valid=False,
            reason=f"Destination URL uses blocked scheme: {scheme}:",
        )

    if scheme not in ALLOWED_SCHEMES:
        logger.warning("Blocked non-HTTP(S) URL scheme %s: %s", scheme, destination)
        return ValidationResult(
            valid=False,
            reason="Only HTTP and HTTPS protocols are allowed",
        )

    try:
        hostname = urlsplit(destination).hostname
    except ValueError:
        hostname = None

    if not hostname:
        # Host placeholder in a template: decided after substitution
        if _PLACEHOLDER_RE.search(destination, scheme_match.end()):
            return ValidationResult(valid=True)
        return ValidationResult(valid=False, reason="Destination URL has no host")

    if allowed_domains:
        if not is_hostname_allowed(hostname, allowed_domains):
            logger.warning(
                "Blocked redirect to non-whitelisted domain %s (allowed: %s)",
                hostname,
                allowed_domains,
            )
            return ValidationResult(
                valid=False,
                reason="Destination domain not in allowed list",
            )
        return ValidationResult(valid=True)

    if not allow_external:
        source_host = urlsplit(request_origin).hostname if request_origin else None
        if source_host is None or hostname != source_host.lower():
            logger.warning(
                "Blocked external redirect from %s to %s",
                source_host,
                hostname,
            )
            return ValidationResult(
                valid=False,
                reason=(
                    "External redirects are not allowed. "
                    "Destination must be on the same domain."
                ),
            )

    return ValidationResult(valid=True)


def sanitize_csv_value(value: str) -> str:
    """Defuse spreadsheet formula injection in exported cells."""
    if not value:
        return ""
    if value[0] in "=+@-":
        return f"'{value}"
    return value
