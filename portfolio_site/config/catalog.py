"""Company catalog: display names, chart colours and predefined ticker groups.

Loaded once at startup and handed to routes through a dependency. The mappings
are read-only views so nothing can mutate them per request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

_CATALOG_PATH = Path(__file__).resolve().parents[2] / "config" / "companies.yaml"

DEFAULT_PALETTE: tuple[str, ...] = (
    "#007aff",
    "#34a853",
    "#ff9900",
    "#dc2626",
    "#8b5cf6",
    "#00d4aa",
    "#f59e0b",
    "#ec4899",
    "#76b900",
    "#6366f1",
    "#ef4444",
    "#10b981",
    "#f97316",
    "#a855f7",
    "#06b6d4",
    "#84cc16",
    "#f43f5e",
    "#8b5a2b",
    "#6b7280",
    "#14b8a6",
)

DEFAULT_COMPANIES: dict[str, str] = {
    "META": "Meta Platforms",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com",
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corp.",
    "NVDA": "NVIDIA Corp.",
    "TSLA": "Tesla Inc.",
    "ADBE": "Adobe Inc.",
    "AMD": "Advanced Micro Devices",
    "NFLX": "Netflix Inc.",
    "COIN": "Coinbase Global Inc.",
    "ETSY": "Etsy Inc.",
    "PINS": "Pinterest Inc.",
    "PLTR": "Palantir Technologies Inc.",
    "RKT": "Rocket Companies Inc.",
    "SHOP": "Shopify Inc.",
    "SNAP": "Snap Inc.",
    "UBER": "Uber Technologies Inc.",
}

DEFAULT_GROUPS: dict[str, tuple[str, ...]] = {
    "Mega Cap Tech": ("AAPL", "MSFT", "GOOGL", "META", "AMZN", "NFLX", "TSLA", "NVDA"),
    "Advertising": ("GOOGL", "META", "PINS", "SNAP"),
    "All Companies": ("AAPL", "MSFT", "GOOGL", "META", "AMZN", "NVDA", "TSLA", "NFLX", "ADBE", "AMD"),
}


@dataclass(frozen=True)
class CompanyCatalog:
    companies: Mapping[str, str]
    groups: Mapping[str, tuple[str, ...]]
    palette: tuple[str, ...] = DEFAULT_PALETTE

    def company_name(self, ticker: str) -> str:
        return self.companies.get(ticker.upper(), ticker.upper())

    def group(self, name: str) -> tuple[str, ...] | None:
        return self.groups.get(name)

    def ticker_colors(self, tickers: list[str]) -> dict[str, str]:
        """Assign palette colours by position, cycling past the palette length."""
        if not self.palette:
            return {}
        return {ticker: self.palette[idx % len(self.palette)] for idx, ticker in enumerate(tickers)}


def build_catalog(
    companies: Mapping[str, str] | None = None,
    groups: Mapping[str, Any] | None = None,
    palette: tuple[str, ...] | list[str] | None = None,
) -> CompanyCatalog:
    company_map = {str(k).upper(): str(v) for k, v in (companies or DEFAULT_COMPANIES).items()}
    group_map = {
        str(name): tuple(str(t).strip().upper() for t in members if str(t).strip())
        for name, members in (groups or DEFAULT_GROUPS).items()
    }
    return CompanyCatalog(
        companies=MappingProxyType(company_map),
        groups=MappingProxyType(group_map),
        palette=tuple(palette) if palette else DEFAULT_PALETTE,
    )


def load_catalog(path: Path | None = None) -> CompanyCatalog:
    source = path or _CATALOG_PATH
    if not source.exists():
        return build_catalog()
    try:
        payload = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Company catalog unreadable at %s, using defaults: %s", source, exc)
        return build_catalog()
    if not isinstance(payload, dict):
        return build_catalog()
    return build_catalog(
        companies=payload.get("companies"),
        groups=payload.get("groups"),
        palette=payload.get("palette"),
    )


@lru_cache(maxsize=1)
def get_catalog() -> CompanyCatalog:
    return load_catalog()
