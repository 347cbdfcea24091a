from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

_REPO_ROOT = Path(__file__).resolve().parents[2]


def _default_cors_origins() -> list[str]:
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


class AppSettings(BaseModel):
    app_name: str = "Portfolio Site API"
    app_version: str = "0.1.0"
    cors_origins: list[str] = Field(default_factory=_default_cors_origins)
    public_dir: Path = _REPO_ROOT / "public"
    posts_dir: Path = _REPO_ROOT / "posts"
    quote_base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    quote_timeout_seconds: float = 10.0
    max_tickers: int = 20


def _parse_cors_env(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    vals = [item.strip() for item in raw.split(",")]
    vals = [item for item in vals if item]
    return vals or None


def _env(name: str) -> str | None:
    return os.getenv(f"PORTFOLIO_SITE_{name}")


def _resolve_dir(raw: Any, default: Path) -> Path:
    if not raw:
        return default
    path = Path(str(raw))
    return path if path.is_absolute() else _REPO_ROOT / path


def load_settings(settings_path: Path | None = None) -> AppSettings:
    source = settings_path or (_REPO_ROOT / "config" / "settings.yaml")
    payload: dict[str, Any] = {}
    if source.exists():
        payload = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        payload = {}
    app_cfg = payload.get("app", {}) or {}
    quotes_cfg = payload.get("quotes", {}) or {}
    content_cfg = payload.get("content", {}) or {}
    defaults = AppSettings()
    return AppSettings(
        app_name=_env("APP_NAME") or app_cfg.get("name", defaults.app_name),
        app_version=_env("APP_VERSION") or app_cfg.get("version", defaults.app_version),
        cors_origins=_parse_cors_env(_env("CORS_ORIGINS")) or app_cfg.get("cors_origins", _default_cors_origins()),
        public_dir=_resolve_dir(_env("PUBLIC_DIR") or content_cfg.get("public_dir"), defaults.public_dir),
        posts_dir=_resolve_dir(_env("POSTS_DIR") or content_cfg.get("posts_dir"), defaults.posts_dir),
        quote_base_url=_env("QUOTE_BASE_URL") or quotes_cfg.get("base_url", defaults.quote_base_url),
        quote_timeout_seconds=float(
            _env("QUOTE_TIMEOUT_SECONDS") or quotes_cfg.get("timeout_seconds", defaults.quote_timeout_seconds)
        ),
        max_tickers=int(_env("MAX_TICKERS") or quotes_cfg.get("max_tickers", defaults.max_tickers)),
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()
