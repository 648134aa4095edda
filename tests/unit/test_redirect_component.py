"""
Tests for the redirects component entry points.
"""

from __future__ import annotations

import pytest

from src.components.redirects import (
    BulkCreateRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    GetRedirectInput,
    ListRedirectsInput,
    RedirectRule,
    RedirectService,
    ResolveRedirectInput,
    UpdateRedirectInput,
    run,
    run_bulk_create,
    run_create,
    run_delete,
    run_get,
    run_list,
    run_resolve,
    run_update,
)


class TestRunCreate:
    @pytest.mark.asyncio
    async def test_success(self, service: RedirectService) -> None:
        rule = RedirectRule(source="/old", destination="/new")

        result = await run_create(CreateRedirectInput(rule=rule), service=service)

        assert result.success
        assert result.rule == rule
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_rejected(self, service: RedirectService) -> None:
        rule = RedirectRule(source="/old", destination="vbscript:msgbox")

        result = await run_create(CreateRedirectInput(rule=rule), service=service)

        assert not result.success
        assert result.errors[0].code == "invalid_destination"

    @pytest.mark.asyncio
    async def test_origin_admits_same_host_destination(self, service: RedirectService) -> None:
        rule = RedirectRule(source="/go", destination="https://example.com/landing")

        rejected = await run_create(CreateRedirectInput(rule=rule), service=service)
        accepted = await run_create(
            CreateRedirectInput(rule=rule, origin="https://example.com"), service=service
        )

        assert not rejected.success
        assert rejected.errors[0].code == "invalid_destination"
        assert accepted.success


class TestRunBulkCreate:
    @pytest.mark.asyncio
    async def test_merge(self, service: RedirectService) -> None:
        await run_create(
            CreateRedirectInput(rule=RedirectRule(source="/a", destination="/b")),
            service=service,
        )

        result = await run_bulk_create(
            BulkCreateRedirectsInput(rules=(RedirectRule(source="/c", destination="/d"),)),
            service=service,
        )

        assert result.success
        assert result.count == 1
        listed = await run_list(ListRedirectsInput(), service=service)
        assert [r.source for r in listed.rules] == ["/a", "/c"]

    @pytest.mark.asyncio
    async def test_replace(self, service: RedirectService) -> None:
        await run_create(
            CreateRedirectInput(rule=RedirectRule(source="/a", destination="/b")),
            service=service,
        )

        result = await run_bulk_create(
            BulkCreateRedirectsInput(
                rules=(RedirectRule(source="/c", destination="/d"),), replace=True
            ),
            service=service,
        )

        assert result.success
        listed = await run_list(ListRedirectsInput(), service=service)
        assert [r.source for r in listed.rules] == ["/c"]

    @pytest.mark.asyncio
    async def test_collects_all_errors(self, service: RedirectService) -> None:
        rules = (
            RedirectRule(source="/ok", destination="/fine"),
            RedirectRule(source="/bad path", destination="/x"),
            RedirectRule(source="/y", destination="ftp://files.example.com/"),
        )

        result = await run_bulk_create(BulkCreateRedirectsInput(rules=rules), service=service)

        assert not result.success
        assert len(result.errors) == 2
        listed = await run_list(ListRedirectsInput(), service=service)
        assert listed.rules == ()


class TestRunUpdateDelete:
    @pytest.mark.asyncio
    async def test_update_not_found(self, service: RedirectService) -> None:
        result = await run_update(
            UpdateRedirectInput(source="/missing", updates={"destination": "/x"}),
            service=service,
        )

        assert not result.success
        assert result.errors[0].code == "not_found"

    @pytest.mark.asyncio
    async def test_update_success(self, service: RedirectService) -> None:
        await service.save(RedirectRule(source="/old", destination="/new"))

        result = await run_update(
            UpdateRedirectInput(source="/old", updates={"enabled": False}),
            service=service,
        )

        assert result.success
        assert result.rule is not None
        assert result.rule.enabled is False

    @pytest.mark.asyncio
    async def test_update_rename_collision(self, service: RedirectService) -> None:
        await service.save_bulk(
            [
                RedirectRule(source="/old", destination="/new"),
                RedirectRule(source="/other", destination="/elsewhere"),
            ]
        )

        result = await run_update(
            UpdateRedirectInput(source="/old", updates={"source": "/other"}),
            service=service,
        )

        assert not result.success
        assert result.errors[0].code == "duplicate_source"

    @pytest.mark.asyncio
    async def test_delete(self, service: RedirectService) -> None:
        await service.save(RedirectRule(source="/old", destination="/new"))

        first = await run_delete(DeleteRedirectInput(source="/old"), service=service)
        second = await run_delete(DeleteRedirectInput(source="/old"), service=service)

        assert first.success
        assert not second.success
        assert second.errors[0].code == "not_found"


class TestRunGetResolve:
    @pytest.mark.asyncio
    async def test_get(self, service: RedirectService) -> None:
        await service.save(RedirectRule(source="/old", destination="/new"))

        found = await run_get(GetRedirectInput(source="/OLD"), service=service)
        missing = await run_get(GetRedirectInput(source="/nope"), service=service)

        assert found.rule is not None
        assert found.rule.source == "/old"
        assert missing.rule is None
        assert not missing.success

    @pytest.mark.asyncio
    async def test_resolve(self, service: RedirectService) -> None:
        await service.save(RedirectRule(source="/old", destination="/new", status_code=307))

        result = await run_resolve(
            ResolveRedirectInput(url="https://example.com/old"), service=service
        )

        assert result.matched
        assert result.status_code == 307
        assert result.target_url == "https://example.com/new"


class TestRunDispatch:
    @pytest.mark.asyncio
    async def test_dispatches_by_input_type(self, service: RedirectService) -> None:
        rule = RedirectRule(source="/old", destination="/new")

        created = await run(CreateRedirectInput(rule=rule), service=service)
        listed = await run(ListRedirectsInput(), service=service)

        assert created.success
        assert len(listed.rules) == 1  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_unknown_input(self, service: RedirectService) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            await run("not an input", service=service)  # type: ignore[arg-type]
