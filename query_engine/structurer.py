"""
Data Structurer

Primary path: the raw corpus (capped) plus the prompt go to the generation
model, which returns a JSON table. The table is accepted only if every
post-condition holds; otherwise the Deterministic Fallback Merger builds the
table from the same raw results. A rejected table is never partially used.

Post-conditions:
- the reply parses to an array (or an object whose ``data`` is an array;
  any other object is taken as a single row)
- the array holds at least one object
- company-specific prompts: at least one row for a requested symbol,
  otherwise a targeted single-company lookup replaces the table

Ratio fields reach the model as fractions: rows of endpoints reporting
percentages (built-in datasets, index constituents) are converted back before
serialization, so the single percentage normalization of the reply is exact.
"""

import json
from typing import Any, List, Sequence

from config import constants
from config.query_config import DEFAULT_STATEMENT_KIND
from query_engine import fallback_merger
from query_engine.errors import StructuringFailure
from query_engine.models import IntentKind, Query, RawEndpointResult, Record, record_symbol
from query_engine.prompts import build_structuring_prompts, build_targeted_fetch_prompts
from utils.json_utils import parse_json_array
from utils.logger import setup_logger
from utils.numeric_utils import normalize_ratios, ratios_as_fractions

logger = setup_logger('structurer')


def _corpus_rows(result: RawEndpointResult, max_records: int) -> List[Record]:
    rows = result.data[:max_records]
    if result.reports_percent:
        rows = [ratios_as_fractions(row) for row in rows]
    return rows


def serialize_corpus(
    results: Sequence[RawEndpointResult],
    max_records: int = constants.MAX_RECORDS_PER_ENDPOINT,
    max_chars: int = constants.MAX_PAYLOAD_CHARS,
) -> str:
    """JSON view of the raw results: at most `max_records` rows per endpoint, at most `max_chars` characters."""
    view = [{'endpoint': r.endpoint, 'data': _corpus_rows(r, max_records)} for r in results]
    text = json.dumps(view, ensure_ascii=False, default=str, separators=(',', ':'))
    if len(text) > max_chars:
        text = text[:max_chars] + constants.TRUNCATION_MARKER
    return text


def coerce_table(parsed: Any) -> List[Record]:
    """
    Shape check of a parsed reply.

    Raises:
        StructuringFailure: scalar / string / unparseable reply, or no object rows
    """
    if isinstance(parsed, dict):
        inner = parsed.get('data')
        parsed = inner if isinstance(inner, list) else [parsed]
    if not isinstance(parsed, list):
        raise StructuringFailure(f"reply is not a table ({type(parsed).__name__})")

    rows = [_drop_malformed_symbol(row) for row in parsed if isinstance(row, dict)]
    if not rows:
        raise StructuringFailure("reply table is empty")
    return rows


def _drop_malformed_symbol(row: Record) -> Record:
    """Symbols and tickers are strings; any other value (list, object, number) is dropped."""
    return {k: v for k, v in row.items() if k not in ('symbol', 'ticker') or isinstance(v, str)}


class DataStructurer:
    """Generated table with rule-based fallback."""

    def __init__(
        self,
        llm,
        model: tuple = constants.STRUCTURER_MODEL,
        targeted_model: tuple = constants.TARGETED_FETCH_MODEL,
        max_rows: int = constants.MAX_OUTPUT_RECORDS,
    ):
        self.llm = llm
        self.model = model
        self.targeted_model = targeted_model
        self.max_rows = max_rows

    def _generate(self, system_prompt: str, user_prompt: str, spec: tuple) -> Any:
        model, temperature, max_tokens = spec
        text = self.llm.complete(system_prompt, user_prompt, model=model, temperature=temperature, max_tokens=max_tokens)
        if not text:
            raise StructuringFailure(f"no reply from {model}")
        parsed = parse_json_array(text)
        if parsed is None:
            raise StructuringFailure(f"reply from {model} is not JSON")
        return parsed

    def targeted_fetch(self, query: Query, symbol: str) -> List[Record]:
        """
        Ask the model for one company's figures; every row is forced to `symbol`.

        Raises:
            StructuringFailure: no usable rows
        """
        statement_kind = next(
            (i.value for i in query.intents if i.kind == IntentKind.STATEMENT_TYPE),
            DEFAULT_STATEMENT_KIND,
        )
        logger.info(f"Fetching {statement_kind} for {symbol} directly")
        system_prompt, user_prompt = build_targeted_fetch_prompts(symbol, statement_kind, query.prompt)
        rows = coerce_table(self._generate(system_prompt, user_prompt, self.targeted_model))
        return [normalize_ratios({**row, 'symbol': symbol}) for row in rows]

    def _primary(self, query: Query, results: Sequence[RawEndpointResult]) -> List[Record]:
        corpus = serialize_corpus(results)
        system_prompt, user_prompt = build_structuring_prompts(
            query.prompt, corpus, query.potential_symbols, query.is_company_specific
        )
        rows = coerce_table(self._generate(system_prompt, user_prompt, self.model))
        rows = [normalize_ratios(row) for row in rows]

        if query.is_company_specific and query.potential_symbols:
            wanted = set(query.potential_symbols)
            relevant = [row for row in rows if record_symbol(row) in wanted]
            if not relevant:
                logger.warning("Generated table has no rows for the requested companies")
                return self.targeted_fetch(query, query.potential_symbols[0])
            rows = relevant

        return rows[:self.max_rows]

    def structure(self, query: Query, results: Sequence[RawEndpointResult]) -> List[Record]:
        """
        Build the query-relevant table.

        Returns:
            Processed records with ratio fields in percent. Never raises for a
            bad generation: the fallback merger answers instead.
        """
        try:
            rows = self._primary(query, results)
            logger.info(f"Structured {len(rows)} rows with the generation model")
            return rows
        except StructuringFailure as e:
            logger.warning(f"Structuring failed ({e}), using rule-based merge")
            return fallback_merger.merge(query, results)
