import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_settings
from src.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
        logger.info(
            "Rules loaded from %s (version %s)", settings.rules_path, rules.project.rules_version
        )
    except Exception as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    # Schema
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))

    yield
    # Shutdown cleanup if needed


app = FastAPI(
    title="HeatMagnet Engagement API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import analytics_ingest, document_analytics  # noqa: E402

app.include_router(analytics_ingest.router, prefix="/api/analytics", tags=["Ingest"])
app.include_router(document_analytics.router, prefix="/api/analytics", tags=["Analytics"])


# CORS (Allow the pages that embed the tracker)
origins = [
    o.strip()
    for o in os.environ.get(
        "HEATMAGNET_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
