"""
Deterministic Fallback Merger
Rule-based table construction from the raw endpoint results, no external calls.
[INTERNAL PROCESS MODULE] - Used by the Data Structurer when the generated table is rejected.

The merge is an ordered pipeline of pure steps. Each step takes the current
MergeState (an immutable tuple of rows) plus the read-only MergeContext and
returns a new state; a step may mark the state final, which ends the pipeline.

Order (precedence is declared here once):
    terminal:  company-specific rows -> synthetic fallback endpoints
    base:      sector screeners -> S&P 500 constituents -> dividend screener
               -> index constituents -> stock list (if empty) -> profiles (if empty)
    overlays:  financial growth -> dividends -> ETF dividends -> statements
    finishing: derived dividend yield -> built-in dataset (if still empty)

Base layers are unioned by symbol: fields already in the table win, new
fields fill in. Overlays override the fields they carry.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from config.query_config import (
    SECTOR_ROW_TERMS,
    SP500_TERMS,
    DIVIDEND_FALLBACK_TERMS,
    DIVIDEND_TERMS,
    ETF_TERMS,
    STATEMENT_ONLY_TERMS,
)
from data_acquisition.fallback_datasets import select_builtin_dataset
from query_engine import planner
from query_engine.models import INDEX_DATA_SUFFIX, Query, RawEndpointResult, Record, record_symbol
from utils.logger import setup_logger
from utils.numeric_utils import normalize_ratios, percent_of, round_to, to_percentage

logger = setup_logger('fallback_merger')


@dataclass(frozen=True)
class MergeContext:
    """Read-only inputs of the merge."""
    query: Query
    results: Tuple[RawEndpointResult, ...]
    by_name: Dict[str, List[Record]] = field(default_factory=dict)

    @classmethod
    def build(cls, query: Query, results: Sequence[RawEndpointResult]) -> "MergeContext":
        by_name: Dict[str, List[Record]] = {}
        for result in results:
            by_name.setdefault(result.endpoint, result.data)
        return cls(query=query, results=tuple(results), by_name=by_name)

    def rows(self, endpoint: str) -> List[Record]:
        return self.by_name.get(endpoint, [])


@dataclass(frozen=True)
class MergeState:
    rows: Tuple[Record, ...] = ()
    final: bool = False

    def replace(self, rows: Iterable[Record], final: bool = False) -> "MergeState":
        return MergeState(rows=tuple(rows), final=final)


Step = Callable[[MergeState, MergeContext], MergeState]


# --- Row helpers ---

def _pick(source: Record, mapping: Dict[str, Sequence[str]]) -> Record:
    """
    Build a row from `source`: out_key <- first non-None of the candidate keys.
    Keys with no value are left out, so absent data stays absent.
    """
    row = {}
    for out_key, candidates in mapping.items():
        for key in candidates:
            value = source.get(key)
            if value is not None:
                row[out_key] = value
                break
    return row


def _union(table: Sequence[Record], rows: Iterable[Record]) -> List[Record]:
    """Union rows into the table by symbol; existing fields win, missing ones are filled."""
    merged = [dict(r) for r in table]
    index = {record_symbol(r): i for i, r in enumerate(merged) if record_symbol(r)}
    for row in rows:
        symbol = record_symbol(row)
        if symbol and symbol in index:
            target = merged[index[symbol]]
            for key, value in row.items():
                if key not in target or target[key] is None:
                    target[key] = value
            continue
        merged.append(dict(row))
        if symbol:
            index[symbol] = len(merged) - 1
    return merged


def _overlay(table: Sequence[Record], source_rows: Sequence[Record], build: Callable[[Record], Record]) -> List[Record]:
    """Override fields of table rows with `build(source)` for the first source row of the same symbol."""
    by_symbol: Dict[str, Record] = {}
    for source in source_rows:
        symbol = record_symbol(source)
        if symbol and symbol not in by_symbol:
            by_symbol[symbol] = source

    overlaid = []
    for row in table:
        source = by_symbol.get(record_symbol(row))
        if source is None:
            overlaid.append(row)
        else:
            overlaid.append({**row, **build(source)})
    return overlaid


def _matches_sectors(row: Record, sectors: Sequence[str], fields: Sequence[str]) -> bool:
    haystack = " ".join(str(row.get(f) or "") for f in fields).lower()
    return any(term in haystack for sector in sectors for term in SECTOR_ROW_TERMS.get(sector, [sector]))


def _filter_by_sectors(rows: List[Record], sectors: Sequence[str], fields: Sequence[str]) -> List[Record]:
    """Rows matching any detected sector; all rows when none match or no sector was detected."""
    if not sectors:
        return rows
    filtered = [r for r in rows if _matches_sectors(r, sectors, fields)]
    return filtered or rows


def _screener_row(stock: Record) -> Record:
    row = _pick(stock, {
        'symbol': ['symbol'],
        'name': ['companyName', 'name'],
        'price': ['price'],
        'marketCap': ['marketCap', 'mktCap'],
        'sector': ['sector'],
        'industry': ['industry'],
        'beta': ['beta'],
        'dividendYield': ['dividendYield'],
        'lastDividendValue': ['lastAnnualDividend', 'lastDiv'],
    })
    if 'dividendYield' in row:
        row['dividendYield'] = to_percentage(row['dividendYield'])
    return row


# --- Terminal steps ---

def company_specific_rows(state: MergeState, ctx: MergeContext) -> MergeState:
    """Only rows of the requested symbols; placeholders when no source has them."""
    query = ctx.query
    if not query.is_company_specific:
        return state

    wanted = set(query.potential_symbols)
    rows = []
    for result in ctx.results:
        for row in result.data:
            if record_symbol(row) in wanted:
                rows.append(dict(row) if result.reports_percent else normalize_ratios(row))

    if not rows:
        logger.info(f"No source rows for {', '.join(query.potential_symbols)}, returning placeholders")
        rows = [
            {'symbol': s, 'name': f"Company with symbol {s}", 'note': "no data"}
            for s in query.potential_symbols
        ]
    return state.replace(rows, final=True)


def synthetic_fallback_rows(state: MergeState, ctx: MergeContext) -> MergeState:
    """Built-in rows injected by the fetch stage are used verbatim."""
    rows = [dict(r) for result in ctx.results if result.is_synthetic for r in result.data]
    if rows:
        return state.replace(rows, final=True)
    return state


# --- Base layers ---

def sector_screener_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    rows = []
    for sector in ctx.query.detected_sectors:
        rows.extend(_screener_row(s) for s in ctx.rows(planner.sector_screener_name(sector)))
    if not rows:
        return state
    return state.replace(_union(state.rows, rows))


def sp500_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    source = ctx.rows(planner.SP500_COMPANIES)
    if not source or not ctx.query.mentions(SP500_TERMS):
        return state
    rows = [
        _pick(c, {
            'symbol': ['symbol'],
            'name': ['name', 'companyName'],
            'sector': ['sector'],
            'subSector': ['subSector'],
            'headQuarter': ['headQuarter'],
            'dateFirstAdded': ['dateFirstAdded'],
            'cik': ['cik'],
            'founded': ['founded'],
        })
        for c in source
    ]
    rows = _filter_by_sectors(rows, ctx.query.detected_sectors, ('sector', 'subSector'))
    return state.replace(_union(state.rows, rows))


def dividend_screener_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    source = ctx.rows(planner.DIVIDEND_SCREENER)
    if not source or not ctx.query.mentions(DIVIDEND_FALLBACK_TERMS):
        return state
    rows = [_screener_row(s) for s in source]
    rows = _filter_by_sectors(rows, ctx.query.detected_sectors, ('sector', 'industry'))
    return state.replace(_union(state.rows, rows))


def index_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    """Index constituents (dividend yields already in percent)."""
    rows = []
    for result in ctx.results:
        if result.endpoint.endswith(INDEX_DATA_SUFFIX):
            rows.extend(
                _pick(c, {
                    'symbol': ['symbol'],
                    'name': ['name'],
                    'sector': ['sector'],
                    'industry': ['industry'],
                    'marketCap': ['marketCap'],
                    'price': ['price'],
                    'dividendYield': ['dividendYield'],
                    'indexName': ['indexName'],
                })
                for c in result.data
            )
    if not rows:
        return state
    rows = _filter_by_sectors(rows, ctx.query.detected_sectors, ('sector', 'industry'))
    return state.replace(_union(state.rows, rows))


def stock_list_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    if state.rows:
        return state
    source = ctx.rows(planner.ALL_STOCKS_LIST) or ctx.rows(planner.STOCK_LIST)
    rows = [
        _pick(s, {
            'symbol': ['symbol'],
            'name': ['name', 'companyName'],
            'exchange': ['exchange', 'exchangeShortName'],
            'type': ['type'],
            'price': ['price'],
        })
        for s in source
    ]
    return state.replace(rows) if rows else state


def profile_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    if state.rows:
        return state
    source = ctx.rows(planner.PROFILES)
    rows = []
    for profile in source:
        row = _pick(profile, {
            'symbol': ['symbol'],
            'name': ['companyName', 'name'],
            'sector': ['sector'],
            'industry': ['industry'],
            'marketCap': ['mktCap', 'marketCap'],
            'price': ['price'],
            'beta': ['beta'],
            'lastDividendValue': ['lastDiv'],
            'changes': ['changes'],
            'changesPercentage': ['changesPercentage'],
        })
        if 'changesPercentage' in row:
            row['changesPercentage'] = round_to(row['changesPercentage'])
        rows.append(row)
    if not rows:
        return state
    rows = _filter_by_sectors(rows, ctx.query.detected_sectors, ('sector', 'industry'))
    return state.replace(rows)


# --- Overlays ---

def growth_overlay(state: MergeState, ctx: MergeContext) -> MergeState:
    source = ctx.rows(planner.FINANCIAL_GROWTH)
    if not source or not state.rows:
        return state

    def build(growth: Record) -> Record:
        fields = _pick(growth, {
            'revenueGrowth': ['revenueGrowth'],
            'netIncomeGrowth': ['netIncomeGrowth'],
            'epsgrowth': ['epsgrowth'],
        })
        return {k: to_percentage(v) for k, v in fields.items()}

    return state.replace(_overlay(state.rows, source, build))


def dividend_overlay(state: MergeState, ctx: MergeContext) -> MergeState:
    source = ctx.rows(planner.DIVIDENDS)
    if not source or not state.rows:
        return state

    def build(dividend: Record) -> Record:
        fields = _pick(dividend, {
            'dividend': ['dividend', 'adjDividend'],
            'dividendYield': ['dividendYield'],
            'payoutRatio': ['payoutRatio'],
        })
        if 'dividend' in fields:
            fields['dividend'] = round_to(fields['dividend'])
        for key in ('dividendYield', 'payoutRatio'):
            if key in fields:
                fields[key] = to_percentage(fields[key])
        return fields

    return state.replace(_overlay(state.rows, source, build))


def etf_dividend_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    """ETF rows appended when the prompt is about ETFs (or nothing else was found), else overlaid."""
    source = ctx.rows(planner.ETF_DIVIDENDS)
    query = ctx.query
    if not source or not query.mentions(DIVIDEND_TERMS + ETF_TERMS):
        return state

    if query.mentions(ETF_TERMS) or not state.rows:
        rows = []
        for etf in source:
            row = _pick(etf, {
                'symbol': ['symbol'],
                'name': ['name'],
                'dividendYield': ['dividendYield'],
                'expense': ['expense', 'expenseRatio'],
                'price': ['price'],
            })
            if 'dividendYield' in row:
                row['dividendYield'] = to_percentage(row['dividendYield'])
            if 'name' not in row and 'symbol' in row:
                row['name'] = f"{row['symbol']} ETF"
            row['sector'] = "ETF"
            row['industry'] = "Exchange Traded Fund"
            rows.append(row)
        return state.replace(_union(state.rows, rows))

    def build(etf: Record) -> Record:
        fields = _pick(etf, {'dividendYield': ['dividendYield'], 'expense': ['expense', 'expenseRatio']})
        if 'dividendYield' in fields:
            fields['dividendYield'] = to_percentage(fields['dividendYield'])
        return fields

    return state.replace(_overlay(state.rows, source, build))


def statements_layer(state: MergeState, ctx: MergeContext) -> MergeState:
    """
    Pair income statements with balance sheets by position.

    Statement-only prompts get the paired table as the result; otherwise it is
    attached as `financials` to the row of the statement's symbol.
    """
    income = ctx.rows(planner.INCOME_STATEMENT)
    balance = ctx.rows(planner.BALANCE_SHEET)
    if not income or not balance:
        return state

    financials = []
    for position, statement in enumerate(income):
        sheet = balance[position] if position < len(balance) else {}
        row = _pick(statement, {
            'date': ['date'],
            'symbol': ['symbol'],
            'revenue': ['revenue'],
            'netIncome': ['netIncome'],
            'eps': ['eps'],
        })
        row.update(_pick(sheet, {
            'totalAssets': ['totalAssets'],
            'totalLiabilities': ['totalLiabilities'],
            'totalEquity': ['totalStockholdersEquity', 'totalEquity'],
        }))
        financials.append(row)

    if ctx.query.mentions(STATEMENT_ONLY_TERMS):
        return state.replace(financials, final=True)

    symbol = income[0].get('symbol')
    if not symbol:
        return state
    rows = [{**r, 'financials': financials} if r.get('symbol') == symbol else r for r in state.rows]
    return state.replace(rows)


# --- Finishing ---

def derive_dividend_yield(state: MergeState, ctx: MergeContext) -> MergeState:
    """dividendYield = last dividend / price * 100 where the yield is missing."""
    rows = []
    for row in state.rows:
        if row.get('dividendYield') is None and row.get('lastDividendValue') is not None:
            derived = percent_of(row.get('lastDividendValue'), row.get('price'))
            if derived is not None:
                row = {**row, 'dividendYield': derived}
        rows.append(row)
    return state.replace(rows)


def builtin_dataset(state: MergeState, ctx: MergeContext) -> MergeState:
    if state.rows:
        return state
    name, rows = select_builtin_dataset(ctx.query.prompt)
    logger.info(f"No rows from any endpoint, using built-in dataset '{name}'")
    return state.replace(rows, final=True)


MERGE_STEPS: Tuple[Step, ...] = (
    company_specific_rows,
    synthetic_fallback_rows,
    sector_screener_layer,
    sp500_layer,
    dividend_screener_layer,
    index_layer,
    stock_list_layer,
    profile_layer,
    growth_overlay,
    dividend_overlay,
    etf_dividend_layer,
    statements_layer,
    derive_dividend_yield,
    builtin_dataset,
)


def merge(query: Query, results: Sequence[RawEndpointResult], steps: Sequence[Step] = MERGE_STEPS) -> List[Record]:
    """
    Run the merge pipeline.

    Args:
        query: Interpreted prompt
        results: Raw endpoint results in fetch order
        steps: Pipeline override (tests run single steps)

    Returns:
        New list of processed records; inputs are not mutated.
    """
    ctx = MergeContext.build(query, results)
    state = MergeState()
    for step in steps:
        state = step(state, ctx)
        if state.final:
            logger.debug(f"Merge finished at step {step.__name__}")
            break
    logger.info(f"Fallback merge produced {len(state.rows)} rows")
    return [dict(r) for r in state.rows]
