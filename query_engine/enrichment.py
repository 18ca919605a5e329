"""
Enrichment Layer

Backfills important-but-missing fields of the structured table:
1. Fresh company cache entry for the symbol -> fill from cache (no network)
2. Otherwise the symbol joins a lookup batch (at most 5 symbols per call)
3. Lookup replies are merged into every row of that symbol and written
   back to the cache keyed by symbol

Batches run sequentially with a fixed delay in between. A failed batch
leaves its fields missing and does not stop the remaining batches.
"""

import time
from typing import Callable, Dict, List, Optional, Sequence, Set

from config import constants
from config.query_config import IMPORTANT_FIELDS, MISSING_MARKERS
from data_acquisition.cache_store import CacheStore
from query_engine.errors import EnrichmentFailure
from query_engine.models import Record, record_symbol
from query_engine.prompts import build_enrichment_prompts
from utils.json_utils import parse_json_object
from utils.logger import setup_logger
from utils.numeric_utils import to_percentage, is_ratio_field

logger = setup_logger('enrichment')


def is_missing(record: Record, field: str) -> bool:
    """A field is missing if absent, None or a missing marker such as "N/A"."""
    value = record.get(field)
    return value is None or (isinstance(value, str) and value.strip() in MISSING_MARKERS)


def missing_fields_of(record: Record) -> List[str]:
    return [field for field in IMPORTANT_FIELDS if is_missing(record, field)]


def detect_missing_fields(table: Sequence[Record]) -> List[str]:
    """Union over all rows of the important fields missing on at least one row, in field order."""
    missing: Set[str] = set()
    for record in table:
        missing.update(missing_fields_of(record))
    return [field for field in IMPORTANT_FIELDS if field in missing]


def _fill_missing(record: Record, values: Record) -> int:
    """Copy non-null `values` into the record's missing important fields. Returns fields filled."""
    filled = 0
    for field in missing_fields_of(record):
        value = values.get(field)
        if value is None or (isinstance(value, str) and value.strip() in MISSING_MARKERS):
            continue
        record[field] = value
        filled += 1
    return filled


class EnrichmentLayer:
    """Cache-first backfill of important fields."""

    def __init__(
        self,
        llm,
        cache: Optional[CacheStore],
        model: tuple = constants.ENRICHMENT_MODEL,
        batch_size: int = constants.ENRICHMENT_BATCH_SIZE,
        batch_delay: float = constants.ENRICHMENT_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.llm = llm
        self.cache = cache
        self.model = model
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.sleep = sleep

    # --- Cache ---

    def _from_cache(self, symbol: str) -> Optional[Record]:
        if self.cache is None:
            return None
        return self.cache.get(symbol, constants.CACHE_NS_COMPANY)

    def _write_back(self, symbol: str, record: Record) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(symbol, constants.CACHE_NS_COMPANY, record)
        except OSError as e:
            logger.warning(f"Failed to cache enrichment for {symbol}: {e}")

    # --- Lookup ---

    def _lookup(self, symbols: List[str], fields: List[str]) -> Dict[str, Record]:
        """
        One generation call for a batch.

        Raises:
            EnrichmentFailure: no reply or no JSON object in it
        """
        model, temperature, max_tokens = self.model
        wanted = {field: IMPORTANT_FIELDS[field] for field in fields}
        system_prompt, user_prompt = build_enrichment_prompts(symbols, wanted)
        text = self.llm.complete(system_prompt, user_prompt, model=model, temperature=temperature, max_tokens=max_tokens)
        if not text:
            raise EnrichmentFailure(f"no reply for {', '.join(symbols)}")
        parsed = parse_json_object(text)
        if parsed is None:
            raise EnrichmentFailure(f"unparseable reply for {', '.join(symbols)}")

        values: Dict[str, Record] = {}
        for symbol in symbols:
            entry = parsed.get(symbol) or parsed.get(symbol.lower())
            if not isinstance(entry, dict):
                continue
            values[symbol] = {
                field: to_percentage(value) if is_ratio_field(field) else value
                for field, value in entry.items()
                if field in wanted and value is not None
            }
        return values

    # --- Public API ---

    def enrich(self, table: List[Record]) -> List[Record]:
        """
        Fill missing important fields in place.

        Returns:
            The same table (rows mutated); rows without a symbol are left as-is.
        """
        missing = detect_missing_fields(table)
        if not table or not missing:
            return table

        rows_by_symbol: Dict[str, List[Record]] = {}
        for record in table:
            symbol = record_symbol(record)
            if symbol and missing_fields_of(record):
                rows_by_symbol.setdefault(symbol, []).append(record)

        pending: List[str] = []
        for symbol, rows in rows_by_symbol.items():
            cached = self._from_cache(symbol)
            if cached is None:
                pending.append(symbol)
                continue
            filled = sum(_fill_missing(row, cached) for row in rows)
            logger.debug(f"Cache hit for {symbol} ({filled} fields filled)")

        if not pending:
            return table

        logger.info(f"Enriching {len(pending)} symbols, fields: {', '.join(missing)}")
        for start in range(0, len(pending), self.batch_size):
            if start > 0 and self.batch_delay > 0:
                self.sleep(self.batch_delay)
            batch = pending[start:start + self.batch_size]
            try:
                values = self._lookup(batch, missing)
            except EnrichmentFailure as e:
                logger.warning(f"Enrichment batch failed: {e}")
                continue

            for symbol, fields in values.items():
                rows = rows_by_symbol[symbol]
                for row in rows:
                    _fill_missing(row, fields)
                self._write_back(symbol, rows[0])
        return table
