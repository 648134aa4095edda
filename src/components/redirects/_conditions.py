"""
Condition evaluation for candidate rules.

All present sub-conditions must hold. Hostname, query and header values
are compared exactly as configured, without normalization.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from urllib.parse import SplitResult, parse_qsl

from .models import RedirectRule


def _first_query_values(query: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        values.setdefault(key, value)
    return values


def evaluate_conditions(
    rule: RedirectRule,
    url: SplitResult,
    headers: Mapping[str, str],
    now: datetime,
) -> bool:
    """
    Check whether a rule applies to this request.

    headers must be keyed by lower-cased header name.
    """
    if not rule.enabled:
        return False

    conditions = rule.conditions
    if conditions is None:
        return True

    if conditions.hostname and url.hostname != conditions.hostname:
        return False

    if conditions.query_params:
        query = _first_query_values(url.query)
        for key, expected in conditions.query_params.items():
            if query.get(key) != expected:
                return False

    if conditions.headers:
        for key, expected in conditions.headers.items():
            if headers.get(key.lower()) != expected:
                return False

    if conditions.date_range:
        start, end = conditions.date_range.start, conditions.date_range.end
        if start is not None and now < start:
            return False
        if end is not None and now > end:
            return False

    return True
