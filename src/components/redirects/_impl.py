"""
RedirectService - rule storage and request resolution.

Handles rule validation and persistence, rule-table caching, matching
and destination processing.

Key behaviors:
- The whole rule table lives as one JSON blob in the durable store
- The decoded table is cached in a bounded LRU cache (TTL-bounded staleness)
- Exact lookups (path, full URL, host+path) run before pattern iteration
- Pattern iteration follows table order; the first rule that matches and
  passes its conditions wins
- Every mutation invalidates the cached table and all compiled patterns
- Resolution never raises: bad data degrades to no-match, unsafe
  destinations to a blocked outcome

Caches are process-local. Another process sharing the store may serve a
stale table until its own cache entry expires.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import SplitResult, urlsplit

from pydantic import ValidationError

from ._cache import CacheStats, LRUCache
from ._conditions import evaluate_conditions
from ._destination import (
    PERMANENT_MAX_AGE,
    TEMPORARY_MAX_AGE,
    build_destination,
    cache_ttl_for_status,
)
from ._patterns import PatternCompiler
from ._validation import validate_destination, validate_pattern
from .models import (
    MatchResult,
    RedirectMapAdapter,
    RedirectRule,
    RedirectValidationError,
    ResolveOutput,
    RuleValidationError,
)
from .ports import ClockPort, KeyValueStorePort

logger = logging.getLogger(__name__)

REDIRECTS_STORE_KEY = "redirects"
RULE_TABLE_CACHE_KEY = "redirect_map"


# --- Configuration ---


@dataclass(frozen=True)
class RedirectConfig:
    """Redirect engine configuration from rules."""

    allowed_domains: tuple[str, ...] = ()
    allow_external_redirects: bool = False
    public_origin: str | None = None

    cache_ttl_seconds: float = 60
    cache_max_size: int = 1000

    permanent_max_age: int = PERMANENT_MAX_AGE
    temporary_max_age: int = TEMPORARY_MAX_AGE

    store_key: str = REDIRECTS_STORE_KEY


DEFAULT_CONFIG = RedirectConfig()


class _UTCClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)


# --- Rule Table ---


class RuleTable:
    """
    Ordered mapping of lower-cased source -> rule.

    Iteration order is insertion order and is the tie-break order for
    pattern matching. Replacing an existing key keeps its position.
    """

    def __init__(self, rules: Iterable[RedirectRule] = ()) -> None:
        self._rules: dict[str, RedirectRule] = {}
        for rule in rules:
            self.upsert(rule)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[RedirectRule]:
        return iter(self._rules.values())

    def __contains__(self, source: object) -> bool:
        return isinstance(source, str) and source.lower() in self._rules

    def get(self, source: str) -> RedirectRule | None:
        return self._rules.get(source.lower())

    def upsert(self, rule: RedirectRule) -> None:
        self._rules[rule.key] = rule

    def remove(self, source: str) -> RedirectRule | None:
        return self._rules.pop(source.lower(), None)

    def copy(self) -> RuleTable:
        return RuleTable(self)

    def encode(self) -> str:
        return json.dumps({rule.source: rule.to_wire() for rule in self})

    @classmethod
    def decode(cls, payload: str) -> RuleTable:
        """Parse and schema-validate a stored table (raises on bad data)."""
        data = json.loads(payload)
        return cls(RedirectMapAdapter.validate_python(data).values())


# --- Request Helpers ---


@dataclass(frozen=True)
class RequestView:
    """Read-only view of an inbound request used during resolution."""

    url: SplitResult
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_url(cls, url: str, headers: Mapping[str, str] | None = None) -> RequestView:
        lowered = {k.lower(): v for k, v in (headers or {}).items()}
        return cls(url=urlsplit(url), headers=lowered)

    @property
    def path(self) -> str:
        return (self.url.path or "/").lower()

    @property
    def full_url(self) -> str:
        return self.url._replace(path=self.url.path or "/").geturl().lower()

    @property
    def host_and_path(self) -> str:
        return f"{self.url.hostname or ''}{self.path}".lower()


# --- Redirect Service ---


class RedirectService:
    """
    Redirect resolution engine.

    Owns the bounded rule-table cache and the compiled-pattern cache; both
    may be injected for deterministic tests.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        config: RedirectConfig | None = None,
        cache: LRUCache[RuleTable] | None = None,
        patterns: PatternCompiler | None = None,
        clock: ClockPort | None = None,
    ) -> None:
        """Initialize service."""
        self._store = store
        self._config = config or DEFAULT_CONFIG
        if cache is None:
            cache = LRUCache[RuleTable](
                max_size=self._config.cache_max_size,
                ttl_seconds=self._config.cache_ttl_seconds,
            )
        self._cache = cache
        self._patterns = patterns if patterns is not None else PatternCompiler()
        self._clock = clock or _UTCClock()

        if self._config.allowed_domains:
            logger.info(
                "Configured allowed domains for redirects: %s",
                list(self._config.allowed_domains),
            )
        logger.info(
            "Redirect cache initialized (ttl=%ss, max_size=%d)",
            self._config.cache_ttl_seconds,
            self._config.cache_max_size,
        )

    @property
    def config(self) -> RedirectConfig:
        return self._config

    # --- Rule table access ---

    async def _fetch_table(self) -> RuleTable | None:
        """Read and decode the table from the store, bypassing the cache."""
        payload = await self._store.get(self._config.store_key)
        if not payload:
            return None

        try:
            return RuleTable.decode(payload)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Failed to parse stored redirects: %s", e)
            return None

    async def get_rule_table(self) -> RuleTable | None:
        """Return the rule table, from cache when fresh."""
        cached = self._cache.get(RULE_TABLE_CACHE_KEY)
        if cached is not None:
            return cached

        table = await self._fetch_table()
        if table is not None:
            self._cache.set(RULE_TABLE_CACHE_KEY, table)
        return table

    async def list_rules(self) -> list[RedirectRule]:
        table = await self.get_rule_table()
        return list(table) if table is not None else []

    async def get(self, source: str) -> RedirectRule | None:
        table = await self.get_rule_table()
        return table.get(source) if table is not None else None

    # --- Validation ---

    def _write_origin(self, origin: str | None) -> str | None:
        return origin or self._config.public_origin

    def validate_rule(
        self, rule: RedirectRule, origin: str | None = None
    ) -> list[RedirectValidationError]:
        """
        Run both safety validators against a candidate rule.

        origin is the origin of the write request; the configured public
        origin is used when the caller has none.
        """
        errors: list[RedirectValidationError] = []

        pattern_check = validate_pattern(rule.source)
        if not pattern_check.valid:
            errors.append(
                RedirectValidationError(
                    code="invalid_pattern",
                    message=f"{rule.source}: {pattern_check.reason}",
                    field="source",
                )
            )

        destination_check = validate_destination(
            rule.destination,
            self._write_origin(origin),
            list(self._config.allowed_domains),
            self._config.allow_external_redirects,
        )
        if not destination_check.valid:
            errors.append(
                RedirectValidationError(
                    code="invalid_destination",
                    message=f"{rule.destination}: {destination_check.reason}",
                    field="destination",
                )
            )

        return errors

    def _validate_all(self, rules: Iterable[RedirectRule], origin: str | None) -> None:
        errors: list[RedirectValidationError] = []
        for rule in rules:
            errors.extend(self.validate_rule(rule, origin))
        if errors:
            logger.error("Rejected redirect write: %s", [e.message for e in errors])
            raise RuleValidationError(errors)

    # --- Mutations ---

    async def _write(self, table: RuleTable) -> None:
        await self._store.put(self._config.store_key, table.encode())
        self._invalidate()

    def _invalidate(self) -> None:
        self._cache.delete(RULE_TABLE_CACHE_KEY)
        self._patterns.clear()

    async def save(self, rule: RedirectRule, origin: str | None = None) -> RedirectRule:
        """
        Create or replace one rule.

        Raises:
            RuleValidationError: if the source or destination is unsafe.
        """
        self._validate_all([rule], origin)

        table = await self._fetch_table() or RuleTable()
        table.upsert(rule)
        await self._write(table)

        logger.info("Saved redirect %s", rule.source)
        return rule

    async def save_bulk(self, rules: Iterable[RedirectRule], origin: str | None = None) -> int:
        """
        Save many rules; nothing is written if any rule is invalid.

        Raises:
            RuleValidationError: listing every rejected rule.
        """
        batch = list(rules)
        self._validate_all(batch, origin)

        table = await self._fetch_table() or RuleTable()
        for rule in batch:
            table.upsert(rule)
        await self._write(table)

        logger.info("Saved %d redirects in bulk", len(batch))
        return len(batch)

    async def replace_all(self, rules: Iterable[RedirectRule], origin: str | None = None) -> int:
        """Replace the whole table atomically (same validation as save_bulk)."""
        batch = list(rules)
        self._validate_all(batch, origin)

        table = RuleTable(batch)
        await self._write(table)

        logger.info("Replaced redirect table (%d rules)", len(table))
        return len(table)

    async def update(
        self,
        source: str,
        updates: Mapping[str, Any],
        origin: str | None = None,
    ) -> RedirectRule | None:
        """
        Apply a partial update to an existing rule.

        Returns None when no rule has this source.

        Raises:
            RuleValidationError: if the merged rule is invalid, or a rename
                would collide with another rule's source.
        """
        table = await self._fetch_table()
        current = table.get(source) if table is not None else None
        if table is None or current is None:
            return None

        aliases = {f.alias: name for name, f in RedirectRule.model_fields.items() if f.alias}
        merged = current.model_dump(by_alias=False)
        merged.update({aliases.get(k, k): v for k, v in updates.items()})
        try:
            updated = RedirectRule.model_validate(merged)
        except ValidationError as e:
            raise RuleValidationError(
                [
                    RedirectValidationError(
                        code="invalid_rule",
                        message=err["msg"],
                        field=".".join(str(p) for p in err["loc"]) or None,
                    )
                    for err in e.errors()
                ]
            ) from e

        self._validate_all([updated], origin)

        if updated.key != current.key:
            if updated.key in table:
                logger.error("Rejected rename of %s to existing source %s", current.source, updated.source)
                raise RuleValidationError(
                    [
                        RedirectValidationError(
                            code="duplicate_source",
                            message=f"A redirect for {updated.source} already exists",
                            field="source",
                        )
                    ]
                )
            table.remove(current.source)
        table.upsert(updated)
        await self._write(table)

        logger.info("Updated redirect %s", updated.source)
        return updated

    async def delete(self, source: str) -> bool:
        """Delete a rule by source; False when it does not exist."""
        table = await self._fetch_table()
        if table is None or table.remove(source) is None:
            return False

        await self._write(table)
        logger.info("Deleted redirect %s", source)
        return True

    # --- Resolution ---

    def _conditions_hold(self, rule: RedirectRule, request: RequestView) -> bool:
        return evaluate_conditions(rule, request.url, request.headers, self._clock.now_utc())

    def _match_rule_pattern(self, rule: RedirectRule, request: RequestView) -> dict[str, str] | None:
        pattern = rule.source
        if pattern.lower().startswith("http"):
            return self._patterns.match(request.full_url, pattern)
        if pattern.startswith("/"):
            return self._patterns.match(request.path, pattern)

        params = self._patterns.match(request.host_and_path, pattern)
        if params is None:
            params = self._patterns.match(request.path, pattern)
        return params

    async def match(self, request: RequestView) -> MatchResult:
        """Select the rule for a request without building the destination."""
        table = await self.get_rule_table()
        if table is None:
            return MatchResult(matched=False)

        candidates = (request.path, request.full_url, request.host_and_path)
        logger.debug("Trying to match URL candidates %s", candidates)

        for candidate in candidates:
            rule = table.get(candidate)
            if rule is not None and self._conditions_hold(rule, request):
                logger.debug("Exact match %s -> %s", candidate, rule.destination)
                return MatchResult(matched=True, rule=rule)

        for rule in table:
            if not rule.enabled:
                continue
            params = self._match_rule_pattern(rule, request)
            if params is not None and self._conditions_hold(rule, request):
                logger.debug("Pattern match %s (params=%s)", rule.source, params)
                return MatchResult(matched=True, rule=rule, params=params)

        logger.debug("No redirect match for %s", request.path)
        return MatchResult(matched=False)

    def process(self, result: MatchResult, request: RequestView) -> ResolveOutput:
        """Build the redirect decision for a match."""
        if not result.matched or result.rule is None:
            return ResolveOutput.no_match()

        rule = result.rule
        destination = build_destination(
            rule,
            result.params,
            request.url,
            list(self._config.allowed_domains),
            self._config.allow_external_redirects,
        )

        if destination.blocked:
            return ResolveOutput(
                matched=True,
                blocked=True,
                rule=rule,
                params=result.params,
                reason=destination.reason,
            )

        return ResolveOutput(
            matched=True,
            rule=rule,
            params=result.params,
            target_url=destination.url,
            status_code=rule.status_code,
            cache_ttl=cache_ttl_for_status(
                rule.status_code,
                self._config.permanent_max_age,
                self._config.temporary_max_age,
            ),
        )

    async def resolve(self, url: str, headers: Mapping[str, str] | None = None) -> ResolveOutput:
        """Resolve an inbound request URL to a redirect decision."""
        try:
            request = RequestView.from_url(url, headers)
        except ValueError as e:
            logger.warning("Unparsable request URL %r: %s", url, e)
            return ResolveOutput.no_match()

        result = await self.match(request)
        return self.process(result, request)

    # --- Diagnostics ---

    def get_cache_stats(self) -> dict[str, Any]:
        stats: CacheStats = self._cache.stats()
        return {
            "redirect_cache": {
                "size": stats.size,
                "max_size": stats.capacity,
                "ttl_seconds": stats.ttl_seconds,
                "hits": stats.hits,
                "misses": stats.misses,
                "hit_rate": stats.hit_rate,
            },
            "pattern_cache_size": len(self._patterns),
        }

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_pattern_cache(self) -> int:
        return self._patterns.clear()

    def prune_cache(self) -> int:
        return self._cache.prune()


# --- Factory ---


def create_redirect_service(
    store: KeyValueStorePort,
    config: RedirectConfig | None = None,
    clock: ClockPort | None = None,
) -> RedirectService:
    """Create a RedirectService."""
    return RedirectService(store=store, config=config, clock=clock)
