"""
Market Index Service

Constituents of a market index, enriched with price / market cap / dividend
yield from company profiles, cached per (symbol, index) for 24h.

Resolution per index:
1. Fresh cached rows for the index -> returned as-is
2. Constituent endpoint (S&P 500, NASDAQ, Dow Jones)
3. Generic lookup: search the index -> ETF holdings -> country stock screener

Every failure degrades to an empty list; nothing here raises to the caller.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from config import constants
from config.query_config import INDEX_COUNTRIES, INDEX_DIVIDEND_FOCUS_TERMS
from data_acquisition.cache_store import CacheStore
from query_engine.errors import SourceFetchError
from query_engine.models import INDEX_DATA_SUFFIX, Query, RawEndpointResult, Record
from utils.http_utils import FetchFailed, FetchResult, get_json
from utils.logger import setup_logger
from utils.numeric_utils import clean_numeric, percent_of

logger = setup_logger('market_index_service')

# canonical index -> FMP constituent endpoint
CONSTITUENT_ENDPOINTS: Dict[str, str] = {
    "s&p 500": "sp500_constituent",
    "nasdaq": "nasdaq_constituent",
    "dow jones": "dowjones_constituent",
}

SP500 = "s&p 500"


def _dividend_sort_key(row: Record) -> float:
    value = clean_numeric(row.get('dividendYield'))
    return value if value is not None else float('-inf')


def index_endpoint_name(index_name: str) -> str:
    """Raw-corpus endpoint name for an index, e.g. 's&p 500' -> 's&p_500_index_data'."""
    return f"{index_name.replace(' ', '_')}{INDEX_DATA_SUFFIX}"


class MarketIndexService:
    """Index constituents with cached dividend data."""

    def __init__(
        self,
        api_key: str,
        cache: CacheStore,
        fetcher: Optional[Callable[..., FetchResult]] = None,
        base_url: str = constants.FMP_BASE_URL,
        timeout: float = constants.FMP_TIMEOUT_SECONDS,
        enrich_limit: int = constants.INDEX_ENRICH_LIMIT,
        batch_size: int = constants.INDEX_BATCH_SIZE,
        batch_delay: float = constants.INDEX_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.cache = cache
        self.fetcher = fetcher or get_json
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.enrich_limit = enrich_limit
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.sleep = sleep

    # --- HTTP ---

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a provider path; raises SourceFetchError on failure."""
        query = dict(params or {})
        query['apikey'] = self.api_key
        result = self.fetcher(
            f"{self.base_url}/{path}", params=query, timeout=self.timeout, source_name=f"FMP:{path}"
        )
        if isinstance(result, FetchFailed):
            raise SourceFetchError(f"{path}: {result.reason}")
        return result.payload

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Record]:
        payload = self._get(path, params)
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]

    # --- Public API ---

    def get_market_index_data(self, index_name: str) -> List[Record]:
        """
        Constituents of an index, sorted by dividend yield (highest first).

        Args:
            index_name: Canonical index name (e.g. 's&p 500', 'nasdaq', 'ftse')

        Returns:
            Rows with symbol, name, sector, industry, marketCap, price,
            dividendYield (percent) and indexName. Empty list on failure.
        """
        index_name = index_name.lower()
        cached = self.cache.fresh_records(constants.CACHE_NS_INDEX, indexName=index_name)
        if cached:
            logger.info(f"Using cached data for {index_name} ({len(cached)} companies)")
            return sorted(cached, key=_dividend_sort_key, reverse=True)

        logger.info(f"Fetching fresh data for {index_name}")
        try:
            companies = self._fetch_index(index_name)
        except SourceFetchError as e:
            logger.warning(f"Index data unavailable for {index_name}: {e}")
            return []

        self._store(companies, index_name)
        return sorted(companies, key=_dividend_sort_key, reverse=True)

    def get_high_dividend_companies(self, index_name: str, limit: int = constants.HIGH_DIVIDEND_LIMIT) -> List[Record]:
        """Companies of the index paying a dividend, highest yield first."""
        companies = self._companies_for(index_name)
        payers = [c for c in companies if (clean_numeric(c.get('dividendYield')) or 0) > 0]
        payers.sort(key=_dividend_sort_key, reverse=True)
        return payers[:limit]

    def get_sp500_companies(self) -> List[Record]:
        """S&P 500 companies from the sp500 namespace, refreshed when stale or empty."""
        cached = self.cache.fresh_records(constants.CACHE_NS_SP500)
        if cached:
            return sorted(cached, key=_dividend_sort_key, reverse=True)
        return self.get_market_index_data(SP500)

    def _companies_for(self, index_name: str) -> List[Record]:
        if index_name.lower() == SP500:
            return self.get_sp500_companies()
        return self.get_market_index_data(index_name)

    def index_data_for(self, query: Query) -> Optional[RawEndpointResult]:
        """
        Raw-corpus entry for the query's index, or None if no index was detected.

        Dividend-focused prompts get the high-dividend ranking, others the full
        constituent list.
        """
        if not query.detected_index:
            return None
        index_name = query.detected_index
        if query.mentions(INDEX_DIVIDEND_FOCUS_TERMS):
            rows = self.get_high_dividend_companies(index_name)
        else:
            rows = self._companies_for(index_name)
        return RawEndpointResult(endpoint=index_endpoint_name(index_name), data=rows)

    # --- Fetch strategies ---

    def _fetch_index(self, index_name: str) -> List[Record]:
        endpoint = CONSTITUENT_ENDPOINTS.get(index_name)
        if endpoint:
            constituents = self._get_list(endpoint)
            return self._enrich_constituents(constituents, index_name)
        return self._fetch_generic_index(index_name)

    def _fetch_generic_index(self, index_name: str) -> List[Record]:
        """Search the index, use its ETF holdings, else screen by the index's country."""
        search_term = index_name.replace(' ', '').upper()
        needle = search_term.lower()

        results = self._get_list('search', {'query': search_term, 'limit': 10})
        match = next(
            (r for r in results
             if needle in str(r.get('name', '')).lower().replace(' ', '')
             or needle in str(r.get('symbol', '')).lower()),
            None,
        )

        if match and match.get('symbol'):
            try:
                holdings = self._get_list(f"etf-holder/{match['symbol']}")
            except SourceFetchError as e:
                logger.warning(f"ETF holdings unavailable for {match['symbol']}: {e}")
                holdings = []
            if holdings:
                return [
                    {
                        'symbol': h.get('asset'),
                        'name': h.get('name') or h.get('asset'),
                        'sector': h.get('sector'),
                        'indexName': index_name,
                    }
                    for h in holdings if h.get('asset')
                ]

        country = INDEX_COUNTRIES.get(index_name)
        if not country:
            return []
        stocks = self._get_list('stock-screener', {'country': country, 'limit': 50})
        return [
            {
                'symbol': s.get('symbol'),
                'name': s.get('companyName') or s.get('name'),
                'sector': s.get('sector'),
                'industry': s.get('industry'),
                'marketCap': s.get('marketCap'),
                'price': s.get('price'),
                'dividendYield': percent_of(s.get('lastAnnualDividend'), s.get('price')),
                'indexName': index_name,
            }
            for s in stocks if s.get('symbol')
        ]

    def _profile_row(self, company: Record, index_name: str) -> Record:
        """Constituent row merged with its profile; profile failures leave market fields empty."""
        row = {
            'symbol': company.get('symbol'),
            'name': company.get('name') or company.get('companyName'),
            'sector': company.get('sector'),
            'industry': company.get('subSector') or company.get('industry'),
            'marketCap': None,
            'price': None,
            'dividendYield': None,
            'indexName': index_name,
        }
        try:
            profiles = self._get_list(f"profile/{row['symbol']}")
        except SourceFetchError as e:
            logger.debug(f"Profile unavailable for {row['symbol']}: {e}")
            return row

        profile = profiles[0] if profiles else {}
        row['sector'] = row['sector'] or profile.get('sector')
        row['industry'] = row['industry'] or profile.get('industry')
        row['marketCap'] = profile.get('mktCap') or profile.get('marketCap')
        row['price'] = profile.get('price')
        row['dividendYield'] = percent_of(profile.get('lastDiv'), profile.get('price'))
        return row

    def _enrich_constituents(self, constituents: List[Record], index_name: str) -> List[Record]:
        """Profile lookups for the first `enrich_limit` constituents, in throttled batches."""
        selected = [c for c in constituents if c.get('symbol')][:self.enrich_limit]
        companies: List[Record] = []

        for start in range(0, len(selected), self.batch_size):
            batch = selected[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                companies.extend(pool.map(lambda c: self._profile_row(c, index_name), batch))

            if start + self.batch_size < len(selected) and self.batch_delay > 0:
                self.sleep(self.batch_delay)

        logger.info(f"Enriched {len(companies)} {index_name} constituents")
        return companies

    # --- Cache ---

    def _store(self, companies: List[Record], index_name: str) -> None:
        """Upsert rows keyed by (symbol, index); S&P 500 rows also keyed by symbol alone."""
        for company in companies:
            symbol = company.get('symbol')
            if not symbol:
                continue
            try:
                self.cache.put(f"{symbol}:{index_name}", constants.CACHE_NS_INDEX, company)
                if index_name == SP500:
                    self.cache.put(symbol, constants.CACHE_NS_SP500, company)
            except OSError as e:
                logger.warning(f"Failed to cache {symbol} ({index_name}): {e}")
