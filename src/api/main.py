import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_settings
from src.app_shell.config import validate_environment
from src.rules.loader import load_rules

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules, validate the environment and migrate (fail-fast)
    try:
        load_rules(settings.rules_path)
        problems = validate_environment(settings.data_dir, Path(settings.migrations_dir))
        if problems:
            raise RuntimeError("; ".join(problems))
        SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    except (OSError, ValueError, RuntimeError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="Telehealth Admission API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import auth, public_invites, realtime  # noqa: E402

app.include_router(public_invites.router, prefix="/public/invites", tags=["Public Invites"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(realtime.router, tags=["Realtime"])


# CORS (Allow patient and practitioner frontends)
origins = [
    "http://localhost:4200",
    "http://localhost:4201",
    "http://127.0.0.1:4201",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
