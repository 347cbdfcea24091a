from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest


# Ensure `import portfolio_site...` works even when pytest is launched from the package dir.
REPO_ROOT = Path(__file__).resolve().parents[2]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)

from portfolio_site.tests.mocks.mock_yahoo import MockYahooClient  # noqa: E402


@pytest.fixture
def fake_yahoo() -> MockYahooClient:
    return MockYahooClient()


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    for folder in ("stock_data", "balance_sheet_data", "analyst_estimates_data"):
        (root / folder).mkdir(parents=True)
    return root


@pytest.fixture
def write_fixture(public_dir: Path) -> Callable[[str, str, Any], Path]:
    suffixes = {
        "stock_data": "quarterly_data",
        "balance_sheet_data": "balance_sheet_quarter",
        "analyst_estimates_data": "analyst_estimates",
    }

    def _write(folder: str, ticker: str, payload: Any) -> Path:
        path = public_dir / folder / f"{ticker}_{suffixes[folder]}.json"
        if isinstance(payload, str):
            path.write_text(payload, encoding="utf-8")
        else:
            path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
