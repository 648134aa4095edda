"""
Redirects component - redirect rule storage, matching and resolution.
"""

from ._cache import CacheStats, LRUCache
from ._conditions import evaluate_conditions
from ._destination import build_destination, cache_ttl_for_status, substitute_params
from ._impl import (
    RedirectConfig,
    RedirectService,
    RequestView,
    RuleTable,
    create_redirect_service,
)
from ._patterns import CompiledPattern, PatternCompiler, compile_pattern
from ._validation import (
    is_hostname_allowed,
    parse_allowed_domains,
    sanitize_csv_value,
    validate_destination,
    validate_pattern,
)
from .component import (
    run,
    run_bulk_create,
    run_create,
    run_delete,
    run_get,
    run_list,
    run_resolve,
    run_update,
)
from .models import (
    BulkCreateRedirectsInput,
    CreateRedirectInput,
    DateRange,
    DeleteRedirectInput,
    GetRedirectInput,
    ListRedirectsInput,
    MatchResult,
    RedirectListOutput,
    RedirectOperationOutput,
    RedirectOutput,
    RedirectRule,
    RedirectValidationError,
    ResolveOutput,
    ResolveRedirectInput,
    RuleConditions,
    RuleValidationError,
    UpdateRedirectInput,
    ValidationResult,
)
from .ports import ClockPort, KeyValueStorePort, RulesPort

__all__ = [
    # Entry points
    "run",
    "run_bulk_create",
    "run_create",
    "run_delete",
    "run_get",
    "run_list",
    "run_resolve",
    "run_update",
    # Input models
    "BulkCreateRedirectsInput",
    "CreateRedirectInput",
    "DeleteRedirectInput",
    "GetRedirectInput",
    "ListRedirectsInput",
    "ResolveRedirectInput",
    "UpdateRedirectInput",
    # Rule and output models
    "DateRange",
    "MatchResult",
    "RedirectListOutput",
    "RedirectOperationOutput",
    "RedirectOutput",
    "RedirectRule",
    "RedirectValidationError",
    "ResolveOutput",
    "RuleConditions",
    "RuleValidationError",
    "ValidationResult",
    # Ports
    "ClockPort",
    "KeyValueStorePort",
    "RulesPort",
    # Engine
    "CacheStats",
    "CompiledPattern",
    "LRUCache",
    "PatternCompiler",
    "RedirectConfig",
    "RedirectService",
    "RequestView",
    "RuleTable",
    "build_destination",
    "cache_ttl_for_status",
    "compile_pattern",
    "create_redirect_service",
    "evaluate_conditions",
    "is_hostname_allowed",
    "parse_allowed_domains",
    "sanitize_csv_value",
    "substitute_params",
    "validate_destination",
    "validate_pattern",
]
