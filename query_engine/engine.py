"""
Query Engine
============

Entry point of the query resolution pipeline:

    prompt --+-- SQL Synthesizer ------------------------------------------+
             |                                                             |
             +-- Interpreter -> Planner -> Fetch Executor (+ index data) --+--> Structurer -> Enrichment -> QueryResult

The SQL branch and the data branch run concurrently. Only configuration,
generation and empty-result errors reach the caller, as QueryResult.error;
every other failure degrades inside the stage where it happened.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from config import constants
from config.settings import ApiKeys, settings
from data_acquisition.cache_store import CacheStore
from data_acquisition.fetch_executor import FetchExecutor
from data_acquisition.market_index_service import MarketIndexService
from query_engine import interpreter, planner
from query_engine.audit_store import AuditStore
from query_engine.enrichment import EnrichmentLayer
from query_engine.errors import (
    SURFACED_ERRORS,
    ConfigurationError,
    EmptyResultError,
    PersistenceFailure,
)
from query_engine.llm_client import LLMClient
from query_engine.models import Query, QueryResult, RawEndpointResult, Record
from query_engine.sql_synthesizer import SQLSynthesizer
from query_engine.structurer import DataStructurer
from utils.http_utils import FetchResult
from utils.logger import setup_logger

logger = setup_logger('engine')

EMPTY_RESULT_MESSAGE = (
    "No data available for this query. This can happen when the data providers hit "
    "rate limits or do not carry the requested data. Please try a different query "
    "or check your API keys."
)


class QueryEngine:
    """
    Resolves a natural-language financial question into SQL text plus a data table.

    Collaborators are built from the API keys unless injected (tests inject
    fakes for the text-generation client and the HTTP fetcher).
    """

    def __init__(
        self,
        api_keys: Optional[ApiKeys] = None,
        llm=None,
        fetcher: Optional[Callable[..., FetchResult]] = None,
        cache: Optional[CacheStore] = None,
        audit: Optional[AuditStore] = None,
        enrichment_delay: float = constants.ENRICHMENT_BATCH_DELAY_SECONDS,
        index_batch_delay: float = constants.INDEX_BATCH_DELAY_SECONDS,
    ):
        self.api_keys = api_keys if api_keys is not None else settings.api_keys()
        self.cache = cache if cache is not None else CacheStore(settings.cache_dir)
        self.audit = audit if audit is not None else AuditStore(settings.audit_path)

        fmp_key = self.api_keys.financial_modeling_prep
        self.llm = llm if llm is not None else LLMClient(self.api_keys.openai)
        self.sql = SQLSynthesizer(self.llm)
        self.executor = FetchExecutor(fmp_key, fetcher=fetcher)
        self.index_service = MarketIndexService(
            fmp_key, self.cache, fetcher=fetcher, batch_delay=index_batch_delay
        )
        self.structurer = DataStructurer(self.llm)
        self.enrichment = EnrichmentLayer(self.llm, self.cache, batch_delay=enrichment_delay)

    # --- Pipeline stages ---

    def _check_keys(self) -> None:
        missing = self.api_keys.missing()
        if missing:
            raise ConfigurationError(f"Missing required API key(s): {', '.join(missing)}")

    def _collect(self, prompt: str) -> Tuple[Query, List[RawEndpointResult]]:
        """Data branch: interpret, plan, fetch, then append index constituents."""
        query = interpreter.interpret(prompt)
        descriptors = planner.plan(query)
        logger.info(f"Planned {len(descriptors)} endpoints: {', '.join(d.name for d in descriptors)}")

        results = self.executor.fetch_all(descriptors, prompt)
        index_result = self.index_service.index_data_for(query)
        if index_result is not None and not index_result.is_empty:
            logger.info(f"Index data for {query.detected_index}: {len(index_result.data)} companies")
            results.append(index_result)
        return query, results

    def _build_table(self, query: Query, results: List[RawEndpointResult]) -> List[Record]:
        table = self.structurer.structure(query, results)
        if not table:
            raise EmptyResultError(EMPTY_RESULT_MESSAGE)
        return self.enrichment.enrich(table)

    def _persist(self, user_id: str, prompt: str, sql_query: str, data: List[Record]) -> None:
        try:
            self.audit.record(user_id, prompt, sql_query, data)
        except PersistenceFailure as e:
            logger.warning(f"Audit record not saved: {e}")

    # --- Public API ---

    def process(self, prompt: str, user_id: Optional[str] = None) -> QueryResult:
        """
        Answer one prompt.

        Args:
            prompt: Free-text financial question
            user_id: Caller identity; when given, the result is written to the audit log

        Returns:
            QueryResult with data and sqlQuery, or with only an error message
        """
        try:
            self._check_keys()
            logger.info(f"Processing query: {prompt}")

            with ThreadPoolExecutor(max_workers=2) as pool:
                sql_future = pool.submit(self.sql.synthesize, prompt)
                data_future = pool.submit(self._collect, prompt)
                query, results = data_future.result()
                sql_query = sql_future.result()

            table = self._build_table(query, results)
        except SURFACED_ERRORS as e:
            logger.error(f"Query failed: {e}")
            return QueryResult.failure(str(e))

        logger.info(f"Query answered with {len(table)} rows")
        if user_id:
            self._persist(user_id, prompt, sql_query, table)
        return QueryResult.success(table, sql_query)


def process_query(prompt: str, api_keys: Optional[ApiKeys] = None, user_id: Optional[str] = None) -> QueryResult:
    """One-shot helper: build an engine from the given (or environment) keys and answer `prompt`."""
    return QueryEngine(api_keys=api_keys).process(prompt, user_id=user_id)
