"""
Endpoint Planner
================

Deterministic Query -> ordered list of EndpointDescriptor. No I/O.

Descriptors are appended in rule order; that order is kept through the fetch
stage and is the merge priority later on.
"""

from typing import List

from config.constants import (
    DEFAULT_SYMBOL_BASKET,
    DIVIDEND_ETFS,
    DEFAULT_STATEMENT_SYMBOL,
)
from config.query_config import (
    SECTOR_SCREENER_LABELS,
    GROWTH_TERMS,
    DIVIDEND_TERMS,
    STATEMENT_TERMS,
    SP500_TERMS,
    SECTOR_PERFORMANCE_TERMS,
    LIST_ALL_TERMS,
    LIST_ALL_OBJECTS,
)
from query_engine.models import EndpointDescriptor, Query

# Stable endpoint names used by later stages
PROFILES = "company_profiles"
FINANCIAL_GROWTH = "financial_growth"
DIVIDENDS = "dividends"
ETF_DIVIDENDS = "etf_dividends"
DIVIDEND_SCREENER = "dividend_screener"
INCOME_STATEMENT = "income_statement"
BALANCE_SHEET = "balance_sheet"
SP500_COMPANIES = "sp500_companies"
SP500_ETF_DIVIDEND = "sp500_etf_dividend"
SECTOR_PERFORMANCE = "sector_performance"
ALL_STOCKS_LIST = "all_stocks_list"
STOCK_LIST = "stock_list"


def sector_screener_name(sector: str) -> str:
    return f"{sector}_sector_screener"


def _symbols_or_basket(query: Query) -> str:
    return ",".join(query.potential_symbols or DEFAULT_SYMBOL_BASKET)


def _wants_full_listing(query: Query) -> bool:
    text = query.lowered
    if any(term in text for term in LIST_ALL_TERMS):
        return True
    return "all" in text and any(obj in text for obj in LIST_ALL_OBJECTS)


def plan(query: Query) -> List[EndpointDescriptor]:
    """
    Turn a Query into the ordered list of provider calls.

    The result always holds at least two descriptors: when no rule beyond the
    base profile fires, a generic stock list is added.
    """
    symbols = _symbols_or_basket(query)
    endpoints = [EndpointDescriptor(name=PROFILES, url_template=f"profile/{symbols}")]

    for sector in query.detected_sectors:
        label = SECTOR_SCREENER_LABELS.get(sector, sector)
        endpoints.append(EndpointDescriptor(
            name=sector_screener_name(sector),
            url_template=f"stock-screener?sector={label}&isActivelyTrading=true&limit=100",
        ))

    if query.mentions(GROWTH_TERMS):
        endpoints.append(EndpointDescriptor(name=FINANCIAL_GROWTH, url_template=f"financial-growth/{symbols}"))

    if query.mentions(DIVIDEND_TERMS):
        endpoints.append(EndpointDescriptor(name=DIVIDENDS, url_template=f"stock_dividend/{symbols}"))
        endpoints.append(EndpointDescriptor(name=ETF_DIVIDENDS, url_template=f"etf-dividend/{','.join(DIVIDEND_ETFS)}"))
        endpoints.append(EndpointDescriptor(
            name=DIVIDEND_SCREENER,
            url_template="stock-screener?dividendMoreThan=0&isEtf=false&isActivelyTrading=true&limit=100",
        ))

    if query.mentions(STATEMENT_TERMS):
        symbol = query.potential_symbols[0] if query.potential_symbols else DEFAULT_STATEMENT_SYMBOL
        endpoints.append(EndpointDescriptor(
            name=INCOME_STATEMENT, url_template=f"income-statement/{symbol}?period=quarter&limit=4"))
        endpoints.append(EndpointDescriptor(
            name=BALANCE_SHEET, url_template=f"balance-sheet-statement/{symbol}?period=quarter&limit=4"))

    if query.mentions(SP500_TERMS) or query.detected_index == "s&p 500":
        endpoints.append(EndpointDescriptor(name=SP500_COMPANIES, url_template="sp500_constituent"))
        endpoints.append(EndpointDescriptor(
            name=SP500_ETF_DIVIDEND, url_template="historical-price-full/stock_dividend/SPY?limit=100"))

    if query.mentions(SECTOR_PERFORMANCE_TERMS):
        endpoints.append(EndpointDescriptor(name=SECTOR_PERFORMANCE, url_template="sector-performance"))

    if _wants_full_listing(query) and not query.detected_sectors:
        endpoints.append(EndpointDescriptor(name=ALL_STOCKS_LIST, url_template="stock/list?limit=200"))

    if len(endpoints) == 1:
        endpoints.append(EndpointDescriptor(name=STOCK_LIST, url_template="stock/list?limit=100"))

    return endpoints
