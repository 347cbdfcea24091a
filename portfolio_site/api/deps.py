from __future__ import annotations

import asyncio

from fastapi import Request

from portfolio_site.config.catalog import CompanyCatalog, get_catalog
from portfolio_site.config.settings import AppSettings, get_settings
from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.yahoo_client import YahooClient
from portfolio_site.services.blog import BlogRepository

_client_instance: YahooClient | None = None
_client_lock = asyncio.Lock()


async def get_yahoo_client() -> YahooClient:
    global _client_instance
    if _client_instance:
        return _client_instance

    async with _client_lock:
        if _client_instance:
            return _client_instance

        settings = get_settings()
        client = YahooClient(
            base_url=settings.quote_base_url,
            timeout_seconds=settings.quote_timeout_seconds,
        )
        await client.initialize()
        _client_instance = client
        return _client_instance


async def shutdown_yahoo_client() -> None:
    global _client_instance
    if _client_instance:
        await _client_instance.close()
        _client_instance = None


def get_app_settings() -> AppSettings:
    return get_settings()


def get_company_catalog(request: Request) -> CompanyCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    return catalog if isinstance(catalog, CompanyCatalog) else get_catalog()


def get_fixture_store() -> FixtureStore:
    return FixtureStore(get_settings().public_dir)


def get_blog_repository() -> BlogRepository:
    return BlogRepository(get_settings().posts_dir)
