from __future__ import annotations

import logging
import os
from pathlib import Path

# Load .env file from the package directory before anything reads os.getenv
_env_file = Path(__file__).resolve().parent / ".env"
if _env_file.exists():
    for _line in _env_file.read_text(encoding="utf-8").splitlines():
        _line = _line.strip()
        if _line and not _line.startswith("#") and "=" in _line:
            _key, _, _val = _line.partition("=")
            os.environ.setdefault(_key.strip(), _val.strip())

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from portfolio_site.api import register_api_routers
from portfolio_site.api.deps import shutdown_yahoo_client
from portfolio_site.config.catalog import load_catalog
from portfolio_site.config.settings import get_settings
from portfolio_site.core.fixtures import ANALYST_ESTIMATES_DIR, BALANCE_SHEET_DIR, QUARTERLY_DIR

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_api_routers(app)

# Same fixture files the server reads, served for direct browser fetches.
for _folder in (QUARTERLY_DIR, BALANCE_SHEET_DIR, ANALYST_ESTIMATES_DIR):
    app.mount(
        f"/{_folder}",
        StaticFiles(directory=settings.public_dir / _folder, check_dir=False),
        name=_folder,
    )


@app.on_event("startup")
async def on_startup() -> None:
    app.state.catalog = load_catalog()
    logger.info(
        "Loaded %d companies and %d ticker groups; fixtures at %s",
        len(app.state.catalog.companies),
        len(app.state.catalog.groups),
        settings.public_dir,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await shutdown_yahoo_client()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}
