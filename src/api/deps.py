import os
from functools import lru_cache
from pathlib import Path

from fastapi import Request

from src.adapters.clock import SystemClock
from src.adapters.kv_store import SQLiteKeyValueStore
from src.components.redirects import RedirectService, create_redirect_service
from src.rules.loader import apply_env_overrides, build_redirect_config, get_api_keys, load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(
            os.environ.get("REDIRECTOR_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return apply_env_overrides(load_rules(get_settings().rules_path))


def get_api_key_pair() -> tuple[str | None, str | None]:
    """(admin_key, read_key) from the environment variables named in rules."""
    return get_api_keys(get_rules())


# --- Store ---
@lru_cache
def get_store() -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(get_rules().storage.path)


# --- Component Services ---
@lru_cache
def get_redirect_service() -> RedirectService:
    """
    Process-wide redirect service.

    A single instance so the rule-table and pattern caches live across
    requests.
    """
    return create_redirect_service(
        store=get_store(),
        config=build_redirect_config(get_rules()),
        clock=SystemClock(),
    )


# --- Request ---
def get_request_origin(request: Request) -> str:
    """Origin (scheme://host[:port]) the request was made to."""
    return str(request.base_url).rstrip("/")
