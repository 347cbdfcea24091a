from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from portfolio_site.api.deps import get_app_settings, get_company_catalog, get_fixture_store, get_yahoo_client
from portfolio_site.config.catalog import CompanyCatalog
from portfolio_site.config.settings import AppSettings
from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.models import CatalogResponse, CompanyKpis, ComparisonResponse, TickerGroup
from portfolio_site.core.yahoo_client import YahooClient
from portfolio_site.services.dashboard import build_comparison, company_kpis
from portfolio_site.services.stock_prices import TickerBatchError, parse_tickers

router = APIRouter(prefix="/dashboard")


@router.get("/groups", response_model=CatalogResponse, response_model_by_alias=True)
def get_groups(catalog: CompanyCatalog = Depends(get_company_catalog)) -> CatalogResponse:
    return CatalogResponse(
        groups=[TickerGroup(name=name, tickers=list(members)) for name, members in catalog.groups.items()],
        companies=dict(catalog.companies),
    )


@router.get("/compare", response_model=ComparisonResponse, response_model_by_alias=True)
async def get_comparison(
    tickers: str | None = Query(None, description="Comma-separated tickers"),
    group: str | None = Query(None, description="Predefined group name, e.g. 'Mega Cap Tech'"),
    live: bool = Query(True, description="Include live quotes in the table"),
    settings: AppSettings = Depends(get_app_settings),
    catalog: CompanyCatalog = Depends(get_company_catalog),
    store: FixtureStore = Depends(get_fixture_store),
    client: YahooClient = Depends(get_yahoo_client),
) -> ComparisonResponse:
    if tickers:
        try:
            symbols = parse_tickers(tickers, settings.max_tickers)
        except TickerBatchError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
    elif group:
        members = catalog.group(group)
        if members is None:
            raise HTTPException(status_code=404, detail=f"Unknown group: {group}")
        symbols = list(members)
    else:
        raise HTTPException(status_code=400, detail="Provide either tickers or group")

    return await build_comparison(
        symbols,
        store,
        catalog,
        date.today(),
        client=client if live else None,
        group_name=group if not tickers else None,
    )


@router.get("/company/{ticker}", response_model=CompanyKpis, response_model_by_alias=True)
async def get_company(
    ticker: str,
    catalog: CompanyCatalog = Depends(get_company_catalog),
    store: FixtureStore = Depends(get_fixture_store),
) -> CompanyKpis:
    symbol = ticker.strip().upper()
    company = await store.read_company(symbol)
    if company is None:
        raise HTTPException(status_code=404, detail=f"Failed to load data for {symbol}")
    return company_kpis(company, catalog)
