"""
Redirects component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class KeyValueStorePort(Protocol):
    """Durable store holding the encoded rule table under a single key."""

    async def get(self, key: str) -> str | None:
        """Return the stored text, or None if absent."""
        ...

    async def put(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


class ClockPort(Protocol):
    """Wall-clock time provider (date-range conditions)."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class RulesPort(Protocol):
    """Port for redirect engine configuration."""

    def get_allowed_domains(self) -> list[str]:
        """Destination host allow-list; empty means none configured."""
        ...

    def allow_external_redirects(self) -> bool:
        """Check if off-origin destinations are allowed without an allow-list."""
        ...

    def get_public_origin(self) -> str | None:
        """Origin used for write-time same-origin checks, if known."""
        ...

    def get_cache_ttl_seconds(self) -> int:
        """Lifetime of the cached rule table."""
        ...

    def get_cache_max_size(self) -> int:
        """Capacity of the bounded cache."""
        ...
