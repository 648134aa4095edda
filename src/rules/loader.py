import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.components.redirects import RedirectConfig, parse_allowed_domains
from src.rules.models import Rules


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    # Accept a rules file wrapped in a ```yaml fenced block
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break

        if in_block:
            yaml_lines.append(line)

    clean_content = "\n".join(yaml_lines) if found_block else content

    try:
        data = yaml.safe_load(clean_content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def apply_env_overrides(rules: Rules, environ: Mapping[str, str] | None = None) -> Rules:
    """
    Overlay deployment environment variables on the loaded rules.

    ALLOWED_DOMAINS, ALLOW_EXTERNAL_REDIRECTS, CACHE_TTL, CACHE_MAX_SIZE
    and LOG_LEVEL win over the file when set.
    """
    env = os.environ if environ is None else environ

    redirects = rules.redirects
    if "ALLOWED_DOMAINS" in env:
        redirects = redirects.model_copy(
            update={"allowed_domains": parse_allowed_domains(env["ALLOWED_DOMAINS"])}
        )
    if "ALLOW_EXTERNAL_REDIRECTS" in env:
        redirects = redirects.model_copy(
            update={"allow_external_redirects": env["ALLOW_EXTERNAL_REDIRECTS"].lower() == "true"}
        )

    cache = rules.cache
    ttl = _env_int(env, "CACHE_TTL")
    if ttl is not None:
        cache = cache.model_copy(update={"ttl_seconds": ttl})
    max_size = _env_int(env, "CACHE_MAX_SIZE")
    if max_size is not None:
        cache = cache.model_copy(update={"max_size": max_size})

    logging_rules = rules.logging
    if env.get("LOG_LEVEL"):
        logging_rules = logging_rules.model_copy(update={"level": env["LOG_LEVEL"].upper()})

    storage = rules.storage
    if env.get("REDIRECTOR_DATA_DIR"):
        storage = storage.model_copy(
            update={"path": str(Path(env["REDIRECTOR_DATA_DIR"]) / Path(storage.path).name)}
        )

    # Re-validate so overrides obey the same constraints as the file
    return Rules.model_validate(
        {
            **rules.model_dump(),
            "redirects": redirects.model_dump(),
            "cache": cache.model_dump(),
            "logging": logging_rules.model_dump(),
            "storage": storage.model_dump(),
        }
    )


class RedirectRulesAdapter:
    """Adapter to map generic Rules to the redirects component RulesPort."""

    def __init__(self, rules: Rules):
        self._rules = rules

    def get_allowed_domains(self) -> list[str]:
        return list(self._rules.redirects.allowed_domains)

    def allow_external_redirects(self) -> bool:
        return self._rules.redirects.allow_external_redirects

    def get_public_origin(self) -> str | None:
        return self._rules.redirects.public_origin

    def get_cache_ttl_seconds(self) -> int:
        return self._rules.cache.ttl_seconds

    def get_cache_max_size(self) -> int:
        return self._rules.cache.max_size


def build_redirect_config(rules: Rules) -> RedirectConfig:
    """Translate loaded rules into the redirect engine configuration."""
    port = RedirectRulesAdapter(rules)
    return RedirectConfig(
        allowed_domains=tuple(port.get_allowed_domains()),
        allow_external_redirects=port.allow_external_redirects(),
        public_origin=port.get_public_origin(),
        cache_ttl_seconds=port.get_cache_ttl_seconds(),
        cache_max_size=port.get_cache_max_size(),
        permanent_max_age=rules.cache.permanent_max_age,
        temporary_max_age=rules.cache.temporary_max_age,
        store_key=rules.redirects.store_key,
    )


def get_api_keys(rules: Rules, environ: Mapping[str, str] | None = None) -> tuple[str | None, str | None]:
    """Read (admin_key, read_key) from the env vars named in the rules."""
    env = os.environ if environ is None else environ
    admin_key = env.get(rules.auth.admin_key_env) or None
    read_key = env.get(rules.auth.read_key_env) or None
    return admin_key, read_key
