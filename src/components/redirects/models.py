"""
Redirects component input/output models.

Rules are pydantic models because they cross the durable-store boundary
as JSON and must be schema-validated on every decode. Inputs and outputs
of the component entry points are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

PERMANENT_STATUS_CODES = frozenset({301, 308})

TtlClass = Literal["permanent", "temporary"]

# --- Validation Error ---


@dataclass(frozen=True)
class RedirectValidationError:
    """Redirect validation error."""

    code: str
    message: str
    field: str | None = None


class RuleValidationError(Exception):
    """Raised when a rule (or a batch of rules) is rejected at write time."""

    def __init__(self, errors: list[RedirectValidationError]) -> None:
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a safety validator."""

    valid: bool
    reason: str | None = None


# --- Rule Model ---


class DateRange(BaseModel):
    """Window during which a rule is active."""

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class RuleConditions(BaseModel):
    """Optional predicates that must all hold for a rule to apply."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hostname: str | None = None
    query_params: dict[str, str] | None = Field(default=None, alias="queryParams")
    headers: dict[str, str] | None = None
    date_range: DateRange | None = Field(default=None, alias="dateRange")


class RedirectRule(BaseModel):
    """A single redirect rule, keyed by its source pattern."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    source: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    status_code: int = Field(default=301, ge=300, le=399, alias="statusCode")
    enabled: bool = True
    description: str | None = None
    conditions: RuleConditions | None = None
    preserve_query_params: bool = Field(default=True, alias="preserveQueryParams")
    preserve_hash: bool = Field(default=True, alias="preserveHash")

    @property
    def key(self) -> str:
        """Rule table key (sources are case-insensitive)."""
        return self.source.lower()

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


RedirectMapAdapter = TypeAdapter(dict[str, RedirectRule])
RuleListAdapter = TypeAdapter(list[RedirectRule])


# --- Derived Models ---


@dataclass(frozen=True)
class MatchResult:
    """Rule selected by the matching stage, before destination processing."""

    matched: bool
    rule: RedirectRule | None = None
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DestinationResult:
    """Fully-qualified destination or the reason it was blocked."""

    url: str | None
    blocked: bool = False
    reason: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateRedirectInput:
    """Input for creating (or replacing) one rule."""

    rule: RedirectRule
    origin: str | None = None


@dataclass(frozen=True)
class BulkCreateRedirectsInput:
    """Input for an all-or-nothing batch save."""

    rules: tuple[RedirectRule, ...]
    replace: bool = False
    origin: str | None = None


@dataclass(frozen=True)
class UpdateRedirectInput:
    """Input for a partial update of an existing rule."""

    source: str
    updates: dict[str, Any]
    origin: str | None = None


@dataclass(frozen=True)
class DeleteRedirectInput:
    """Input for deleting a rule by source."""

    source: str


@dataclass(frozen=True)
class GetRedirectInput:
    """Input for getting a rule by source."""

    source: str


@dataclass(frozen=True)
class ListRedirectsInput:
    """Input for listing all rules."""

    pass


@dataclass(frozen=True)
class ResolveRedirectInput:
    """Inbound request to resolve: absolute URL plus request headers."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


# --- Output Models ---


@dataclass(frozen=True)
class RedirectOutput:
    """Output containing a single rule."""

    rule: RedirectRule | None
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RedirectListOutput:
    """Output containing all rules in table order."""

    rules: tuple[RedirectRule, ...]
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RedirectOperationOutput:
    """Output for mutations (create, bulk, update, delete)."""

    rule: RedirectRule | None = None
    count: int = 0
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ResolveOutput:
    """
    Redirect decision handed to the HTTP shell.

    Exactly one of three shapes: no match, blocked, or a redirect with
    target URL, status and cache lifetime.
    """

    matched: bool
    blocked: bool = False
    rule: RedirectRule | None = None
    params: dict[str, str] = field(default_factory=dict)
    target_url: str | None = None
    status_code: int | None = None
    cache_ttl: int | None = None
    reason: str | None = None

    @classmethod
    def no_match(cls) -> ResolveOutput:
        return cls(matched=False)

    @property
    def cache_ttl_class(self) -> TtlClass | None:
        if self.status_code is None or self.blocked:
            return None
        return "permanent" if self.status_code in PERMANENT_STATUS_CODES else "temporary"

    @property
    def cache_control(self) -> str | None:
        """Value for Cache-Control and its CDN mirror header."""
        if self.cache_ttl is None:
            return None
        return f"public, max-age={self.cache_ttl}"
