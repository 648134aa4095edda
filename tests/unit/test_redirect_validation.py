"""
Tests for the redirect safety validators.
"""

from __future__ import annotations

import pytest

from src.components.redirects import (
    is_hostname_allowed,
    parse_allowed_domains,
    sanitize_csv_value,
    validate_destination,
    validate_pattern,
)

ORIGIN = "https://example.com"


class TestValidatePattern:
    """Tests for source pattern validation."""

    @pytest.mark.parametrize(
        "pattern",
        ["/", "/path/*/file", "/api/:v/users/:id?format=json", "/blog/:path*"],
    )
    def test_accepts_safe_patterns(self, pattern: str) -> None:
        assert validate_pattern(pattern).valid

    def test_rejects_nested_quantifier_group(self) -> None:
        result = validate_pattern("/(a+)+")
        assert not result.valid
        assert result.reason

    def test_rejects_consecutive_wildcards(self) -> None:
        result = validate_pattern("/path/**/file")
        assert not result.valid
        assert "consecutive wildcards" in (result.reason or "")

    def test_rejects_overlong_pattern(self) -> None:
        result = validate_pattern("/" + "a" * 200)
        assert not result.valid
        assert "maximum length" in (result.reason or "")

    def test_accepts_pattern_at_length_limit(self) -> None:
        assert validate_pattern("/" + "a" * 199).valid

    def test_rejects_invalid_characters(self) -> None:
        result = validate_pattern("/path with spaces")
        assert not result.valid
        assert "invalid characters" in (result.reason or "")

    def test_rejects_angle_brackets(self) -> None:
        assert not validate_pattern("/<script>").valid


class TestValidateDestination:
    """Tests for open-redirect protection."""

    @pytest.mark.parametrize(
        "destination",
        [
            "javascript:alert(1)",
            "data:text/html,<script>alert(1)</script>",
            "file:///etc/passwd",
            "vbscript:msgbox",
            "ftp://files.example.com/x",
        ],
    )
    def test_blocks_dangerous_schemes(self, destination: str) -> None:
        result = validate_destination(destination, ORIGIN, ["*"], allow_external=True)
        assert not result.valid
        assert "blocked scheme" in (result.reason or "")

    def test_blocks_non_http_scheme(self) -> None:
        result = validate_destination("mailto:someone@example.com", ORIGIN)
        assert not result.valid
        assert "HTTP" in (result.reason or "")

    def test_relative_destination_always_valid(self) -> None:
        assert validate_destination("/new-page", ORIGIN).valid
        assert validate_destination("new-page?x=1", ORIGIN).valid

    def test_same_host_allowed(self) -> None:
        assert validate_destination("https://example.com/x", ORIGIN).valid

    def test_external_blocked_by_default(self) -> None:
        result = validate_destination("https://evil.com/x", ORIGIN)
        assert not result.valid
        assert "External redirects are not allowed" in (result.reason or "")

    def test_external_allowed_when_toggle_enabled(self) -> None:
        assert validate_destination("https://evil.com/x", ORIGIN, allow_external=True).valid

    def test_external_allowed_when_wildcard_whitelisted(self) -> None:
        assert validate_destination("https://evil.com/x", ORIGIN, ["*.evil.com"]).valid

    def test_whitelist_overrides_external_toggle(self) -> None:
        result = validate_destination(
            "https://evil.com/x", ORIGIN, ["partner.com"], allow_external=True
        )
        assert not result.valid
        assert "not in allowed list" in (result.reason or "")

    def test_absolute_destination_rejected_without_origin(self) -> None:
        result = validate_destination("https://evil.com/x", None)
        assert not result.valid
        assert "External redirects are not allowed" in (result.reason or "")

    def test_allow_list_applies_without_origin(self) -> None:
        assert validate_destination("https://partner.com/x", None, ["partner.com"]).valid
        assert validate_destination("https://evil.com/x", None, allow_external=True).valid

    def test_relative_destination_valid_without_origin(self) -> None:
        assert validate_destination("/new-page", None).valid

    def test_host_placeholder_deferred(self) -> None:
        assert validate_destination("https://:host/path", ORIGIN).valid

    def test_missing_host_rejected(self) -> None:
        result = validate_destination("https:///path", ORIGIN)
        assert not result.valid
        assert "no host" in (result.reason or "")


class TestHostnameAllowList:
    """Tests for allow-list matching."""

    def test_exact_match(self) -> None:
        assert is_hostname_allowed("example.com", ["example.com"])

    def test_case_insensitive(self) -> None:
        assert is_hostname_allowed("Example.COM", ["example.com"])

    def test_bare_entry_admits_www(self) -> None:
        assert is_hostname_allowed("www.example.com", ["example.com"])

    def test_bare_entry_rejects_other_subdomains(self) -> None:
        assert not is_hostname_allowed("shop.example.com", ["example.com"])

    def test_wildcard_matches_subdomains_and_base(self) -> None:
        assert is_hostname_allowed("a.b.example.com", ["*.example.com"])
        assert is_hostname_allowed("example.com", ["*.example.com"])

    def test_wildcard_is_suffix_on_label_boundary(self) -> None:
        assert not is_hostname_allowed("badexample.com", ["*.example.com"])

    def test_parse_allowed_domains(self) -> None:
        assert parse_allowed_domains(" a.com, ,*.b.com ") == ["a.com", "*.b.com"]
        assert parse_allowed_domains(None) == []
        assert parse_allowed_domains("") == []


class TestSanitizeCsvValue:
    """Tests for spreadsheet formula defusing."""

    @pytest.mark.parametrize("value", ["=SUM(A1)", "+1", "-1", "@cmd"])
    def test_prefixes_formula_triggers(self, value: str) -> None:
        assert sanitize_csv_value(value) == f"'{value}"

    def test_leaves_plain_values(self) -> None:
        assert sanitize_csv_value("/old-page") == "/old-page"
        assert sanitize_csv_value("") == ""
