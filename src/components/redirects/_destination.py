"""
Destination construction for a matched rule.

Substitutes captured params into the destination template, resolves it
against the request origin, re-validates the final URL and merges the
preserved query string and fragment.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import SplitResult, parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from ._patterns import SPLAT_ALIAS, SPLAT_PREFIX, TOKEN_RE
from ._validation import validate_destination
from .models import PERMANENT_STATUS_CODES, DestinationResult, RedirectRule

logger = logging.getLogger(__name__)

PERMANENT_MAX_AGE = 31536000  # 1 year
TEMPORARY_MAX_AGE = 3600  # 1 hour

_LEFTOVER_PLACEHOLDER_RE = re.compile(r":[A-Za-z_][A-Za-z0-9_]*\*?")
_AUTHORITY_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*://[^/?#]*)(.*)$", re.DOTALL)
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def cache_ttl_for_status(
    status_code: int,
    permanent_max_age: int = PERMANENT_MAX_AGE,
    temporary_max_age: int = TEMPORARY_MAX_AGE,
) -> int:
    """Pick the response cache lifetime for a redirect status code."""
    if status_code in PERMANENT_STATUS_CODES:
        return permanent_max_age
    return temporary_max_age


def request_origin(url: SplitResult) -> str:
    return f"{url.scheme}://{url.netloc}"


def _find_bare_star(destination: str) -> int | None:
    """Index of the first "*" that is not part of a ":name*" placeholder."""
    for token in TOKEN_RE.finditer(destination):
        if token.group(1) is None:
            return token.start()
    return None


def substitute_params(destination: str, params: dict[str, str]) -> str:
    """Fill placeholders in a destination template from captured params."""
    has_star_in_template = _find_bare_star(destination) is not None
    has_splat = f"{SPLAT_PREFIX}0" in params or SPLAT_ALIAS in params

    for key, value in params.items():
        named_wildcard = re.compile(rf":{re.escape(key)}\*")
        if named_wildcard.search(destination):
            destination = named_wildcard.sub(lambda _m, v=value: v, destination)
            continue

        destination = re.sub(rf":{re.escape(key)}\b", lambda _m, v=value: v, destination)

        if key.startswith(SPLAT_PREFIX):
            star = _find_bare_star(destination)
            if star is not None:
                destination = destination[:star] + value + destination[star + 1 :]

    if has_splat and not has_star_in_template and destination.endswith("/"):
        destination += params.get(SPLAT_ALIAS) or params.get(f"{SPLAT_PREFIX}0") or ""

    # Optional params that were never captured
    destination = _LEFTOVER_PLACEHOLDER_RE.sub("", destination)
    return collapse_slashes(destination)


def collapse_slashes(destination: str) -> str:
    """Collapse runs of "/" outside the scheme separator."""
    authority = _AUTHORITY_RE.match(destination)
    if authority is None:
        return re.sub(r"/{2,}", "/", destination)
    return authority.group(1) + re.sub(r"/{2,}", "/", authority.group(2))


def _merge_query(destination: SplitResult, original: SplitResult) -> str:
    """Append request query pairs whose keys the destination does not set."""
    present = {key for key, _ in parse_qsl(destination.query, keep_blank_values=True)}
    added: list[tuple[str, str]] = []

    for key, value in parse_qsl(original.query, keep_blank_values=True):
        if key not in present:
            added.append((key, value))
            present.add(key)

    if not added:
        return destination.query
    extra = urlencode(added)
    return f"{destination.query}&{extra}" if destination.query else extra


def build_destination(
    rule: RedirectRule,
    params: dict[str, str],
    url: SplitResult,
    allowed_domains: list[str] | None = None,
    allow_external: bool = False,
) -> DestinationResult:
    """
    Turn a matched rule into a fully-qualified redirect target.

    Returns a blocked result when either the raw template or the final,
    substituted URL fails destination validation.
    """
    origin = request_origin(url)

    raw_check = validate_destination(rule.destination, origin, allowed_domains, allow_external)
    if not raw_check.valid:
        logger.error(
            "Blocked unsafe redirect %s -> %s: %s",
            rule.source,
            rule.destination,
            raw_check.reason,
        )
        return DestinationResult(url=None, blocked=True, reason=raw_check.reason)

    destination = substitute_params(rule.destination, params)

    if not _SCHEME_RE.match(destination):
        destination = urljoin(origin + "/", destination)

    final_check = validate_destination(destination, origin, allowed_domains, allow_external)
    if not final_check.valid:
        logger.error(
            "Blocked unsafe redirect %s -> %s after substitution: %s",
            rule.source,
            destination,
            final_check.reason,
        )
        return DestinationResult(url=None, blocked=True, reason=final_check.reason)

    target = urlsplit(destination)
    if not target.hostname:
        return DestinationResult(url=None, blocked=True, reason="Destination URL has no host")

    query = _merge_query(target, url) if rule.preserve_query_params else target.query
    fragment = url.fragment if rule.preserve_hash and url.fragment else target.fragment

    final = urlunsplit((target.scheme, target.netloc, target.path or "/", query, fragment))
    logger.debug("Processed redirect %s -> %s (params=%s)", url.path, final, params)
    return DestinationResult(url=final)
