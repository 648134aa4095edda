import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from src.api.deps import get_redirect_service, get_rules
from src.rules.loader import get_api_keys

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules()
    except (FileNotFoundError, ValueError) as e:
        print(f"CRITICAL: Rules load failed: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=rules.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Rules loaded for %s (v%s)", rules.project.slug, rules.project.rules_version)

    admin_key, read_key = get_api_keys(rules)
    if admin_key is None and read_key is None:
        logger.warning("No API keys configured - admin API authentication disabled")

    get_redirect_service()
    yield


app = FastAPI(
    title="Redirector API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok"}


# --- Routers ---
from src.api.routes import admin_redirects, files, public_redirects  # noqa: E402

app.include_router(admin_redirects.router, prefix="/api", tags=["Redirects"])
app.include_router(files.router, prefix="/api", tags=["Files"])
# Catch-all must be registered last
app.include_router(public_redirects.router, tags=["Public Redirects"])
