"""
Redirects component - redirect rule management and resolution.

Entry points wrap RedirectService and convert write-time validation
failures into outputs with success=False.

Invariants:
- Sources are unique (case-insensitive) within the rule table
- Every stored rule passed validate_pattern and validate_destination
- Bulk writes are all-or-nothing
- Resolution always completes with no-match, blocked, or a redirect
"""

from __future__ import annotations

from ._impl import RedirectService
from .models import (
    BulkCreateRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    GetRedirectInput,
    ListRedirectsInput,
    RedirectListOutput,
    RedirectOperationOutput,
    RedirectOutput,
    RedirectValidationError,
    ResolveOutput,
    ResolveRedirectInput,
    RuleValidationError,
    UpdateRedirectInput,
)

# --- Component Entry Points ---


async def run_create(
    inp: CreateRedirectInput,
    *,
    service: RedirectService,
) -> RedirectOperationOutput:
    """
    Create or replace a single rule.

    Args:
        inp: Input containing the rule.
        service: Redirect service.

    Returns:
        RedirectOperationOutput with the saved rule or errors.
    """
    try:
        rule = await service.save(inp.rule, inp.origin)
    except RuleValidationError as e:
        return RedirectOperationOutput(errors=e.errors, success=False)

    return RedirectOperationOutput(rule=rule, count=1)


async def run_bulk_create(
    inp: BulkCreateRedirectsInput,
    *,
    service: RedirectService,
) -> RedirectOperationOutput:
    """
    Save a batch of rules, or none of them.

    With inp.replace the batch becomes the whole table.
    """
    try:
        if inp.replace:
            count = await service.replace_all(inp.rules, inp.origin)
        else:
            count = await service.save_bulk(inp.rules, inp.origin)
    except RuleValidationError as e:
        return RedirectOperationOutput(errors=e.errors, success=False)

    return RedirectOperationOutput(count=count)


async def run_update(
    inp: UpdateRedirectInput,
    *,
    service: RedirectService,
) -> RedirectOperationOutput:
    """Apply a partial update to an existing rule."""
    try:
        rule = await service.update(inp.source, inp.updates, inp.origin)
    except RuleValidationError as e:
        return RedirectOperationOutput(errors=e.errors, success=False)

    if rule is None:
        return RedirectOperationOutput(
            errors=[
                RedirectValidationError(
                    code="not_found",
                    message=f"Redirect {inp.source} not found",
                )
            ],
            success=False,
        )

    return RedirectOperationOutput(rule=rule, count=1)


async def run_delete(
    inp: DeleteRedirectInput,
    *,
    service: RedirectService,
) -> RedirectOperationOutput:
    """Delete a rule by source."""
    deleted = await service.delete(inp.source)

    if not deleted:
        return RedirectOperationOutput(
            errors=[
                RedirectValidationError(
                    code="not_found",
                    message=f"Redirect {inp.source} not found",
                )
            ],
            success=False,
        )

    return RedirectOperationOutput(count=1)


async def run_get(
    inp: GetRedirectInput,
    *,
    service: RedirectService,
) -> RedirectOutput:
    """Get a rule by source."""
    rule = await service.get(inp.source)

    if rule is None:
        return RedirectOutput(
            rule=None,
            errors=[
                RedirectValidationError(
                    code="not_found",
                    message="Redirect not found",
                )
            ],
            success=False,
        )

    return RedirectOutput(rule=rule)


async def run_list(
    inp: ListRedirectsInput,
    *,
    service: RedirectService,
) -> RedirectListOutput:
    """List all rules in table order."""
    rules = await service.list_rules()
    return RedirectListOutput(rules=tuple(rules))


async def run_resolve(
    inp: ResolveRedirectInput,
    *,
    service: RedirectService,
) -> ResolveOutput:
    """
    Resolve an inbound request.

    Args:
        inp: Absolute request URL and request headers.
        service: Redirect service.

    Returns:
        ResolveOutput: no match, blocked, or the redirect to issue.
    """
    return await service.resolve(inp.url, inp.headers)


async def run(
    inp: (
        CreateRedirectInput
        | BulkCreateRedirectsInput
        | UpdateRedirectInput
        | DeleteRedirectInput
        | GetRedirectInput
        | ListRedirectsInput
        | ResolveRedirectInput
    ),
    *,
    service: RedirectService,
) -> RedirectOutput | RedirectListOutput | RedirectOperationOutput | ResolveOutput:
    """
    Main entry point for the redirects component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, CreateRedirectInput):
        return await run_create(inp, service=service)
    elif isinstance(inp, BulkCreateRedirectsInput):
        return await run_bulk_create(inp, service=service)
    elif isinstance(inp, UpdateRedirectInput):
        return await run_update(inp, service=service)
    elif isinstance(inp, DeleteRedirectInput):
        return await run_delete(inp, service=service)
    elif isinstance(inp, GetRedirectInput):
        return await run_get(inp, service=service)
    elif isinstance(inp, ListRedirectsInput):
        return await run_list(inp, service=service)
    elif isinstance(inp, ResolveRedirectInput):
        return await run_resolve(inp, service=service)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
