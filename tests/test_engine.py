import json

import pytest

from config.settings import ApiKeys
from query_engine.audit_store import AuditStore
from query_engine.engine import EMPTY_RESULT_MESSAGE, QueryEngine
from query_engine.models import QueryResult

from conftest import FakeFetcher, FakeLLM

KEYS = ApiKeys(openai="sk-test", financialModelingPrep="fmp-test")

SQL = "SELECT symbol, name, dividendYield FROM companies WHERE sector = 'Technology' ORDER BY dividendYield DESC;"

TECH_ROUTES = {
    "stock-screener?sector=Technology": [
        {"symbol": "IBM", "companyName": "IBM", "sector": "Technology", "price": 180.0, "lastAnnualDividend": 6.64},
        {"symbol": "CSCO", "companyName": "Cisco Systems", "sector": "Technology", "price": 50.0,
         "lastAnnualDividend": 1.6},
    ],
    "stock_dividend/": [{"symbol": "IBM", "adjDividend": 1.66, "dividendYield": 0.0369}],
}


def _responder(table_reply):
    def respond(system, user, model):
        if "SQL expert" in system:
            return SQL
        if "financial data analyst" in system:
            return table_reply
        return "{}"
    return respond


def _engine(tmp_path, cache, llm, fetcher=None, keys=KEYS, audit=None):
    return QueryEngine(
        api_keys=keys,
        llm=llm,
        fetcher=fetcher or FakeFetcher(TECH_ROUTES),
        cache=cache,
        audit=audit or AuditStore(tmp_path / "audit.jsonl"),
        enrichment_delay=0,
        index_batch_delay=0,
    )


def test_dividend_yields_for_technology(tmp_path, cache):
    table = json.dumps([
        {"symbol": "IBM", "name": "IBM", "sector": "Technology", "dividendYield": 0.0369},
        {"symbol": "CSCO", "name": "Cisco Systems", "sector": "Technology", "dividendYield": 0.032},
    ])
    engine = _engine(tmp_path, cache, FakeLLM(_responder(table)))

    result = engine.process("Show me dividend yields for technology companies")

    assert result.ok
    assert result.sql_query.startswith("SELECT")
    assert [r["symbol"] for r in result.data] == ["IBM", "CSCO"]
    assert [r["dividendYield"] for r in result.data] == [3.69, 3.2]
    assert all(r["sector"] == "Technology" for r in result.data)


def test_invalid_table_uses_rule_based_merge(tmp_path, cache):
    engine = _engine(tmp_path, cache, FakeLLM(_responder("sorry, no table")))

    result = engine.process("Show me dividend yields for technology companies")

    by_symbol = {r["symbol"]: r for r in result.data}
    assert list(by_symbol) == ["IBM", "CSCO"]
    assert by_symbol["IBM"]["dividendYield"] == 3.69
    assert by_symbol["CSCO"]["dividendYield"] == 3.2


def test_missing_openai_key_fails_before_any_call(tmp_path, cache):
    llm = FakeLLM(_responder("[]"))
    fetcher = FakeFetcher(TECH_ROUTES)
    engine = _engine(tmp_path, cache, llm, fetcher=fetcher, keys=ApiKeys(financialModelingPrep="fmp-test"))

    result = engine.process("Show me dividend yields for technology companies")

    assert not result.ok
    assert "openai" in result.error
    assert result.data == []
    assert result.sql_query == ""
    assert llm.calls == []
    assert fetcher.paths == []


def test_missing_fmp_key(tmp_path, cache):
    engine = _engine(tmp_path, cache, FakeLLM(_responder("[]")), keys=ApiKeys(openai="sk-test"))
    result = engine.process("anything")
    assert "financialModelingPrep" in result.error


def test_company_specific_prompt_only_returns_that_company(tmp_path, cache):
    table = json.dumps([
        {"symbol": "AAPL", "name": "Apple", "revenue": 124_300_000_000},
        {"symbol": "TSLA", "name": "Tesla", "revenue": 25_700_000_000},
    ])
    engine = _engine(tmp_path, cache, FakeLLM(_responder(table)), fetcher=FakeFetcher())

    result = engine.process("Show me the income statement for TSLA")

    assert result.ok
    assert {r["symbol"] for r in result.data} == {"TSLA"}


def test_sql_failure_is_surfaced(tmp_path, cache):
    def respond(system, user, model):
        if "SQL expert" in system:
            return None
        return json.dumps([{"symbol": "IBM"}])

    result = _engine(tmp_path, cache, FakeLLM(respond)).process("technology dividend stocks")

    assert not result.ok
    assert "Failed to generate SQL query" in result.error
    assert result.data == []


def test_all_sources_down_returns_builtin_dataset(tmp_path, cache):
    def respond(system, user, model):
        if "SQL expert" in system:
            return SQL
        return None

    engine = _engine(tmp_path, cache, FakeLLM(respond), fetcher=FakeFetcher())
    result = engine.process("Show me dividend yields for technology companies")

    assert result.ok
    assert len(result.data) == 15
    assert result.data[0]["symbol"] == "VYM"


def test_empty_table_is_surfaced(tmp_path, cache):
    engine = _engine(tmp_path, cache, FakeLLM(_responder("[]")))
    engine.structurer.structure = lambda query, results: []

    result = engine.process("technology companies")

    assert result.error == EMPTY_RESULT_MESSAGE
    assert result.data == []


def test_audit_record_written_for_user(tmp_path, cache):
    table = json.dumps([{"symbol": "IBM", "dividendYield": 0.0369}])
    audit = AuditStore(tmp_path / "audit" / "results.jsonl")
    engine = _engine(tmp_path, cache, FakeLLM(_responder(table)), audit=audit)

    engine.process("technology dividend stocks", user_id="user-1")
    engine.process("technology dividend stocks")

    entries = list(audit.entries())
    assert len(entries) == 1
    assert entries[0]["user_id"] == "user-1"
    assert entries[0]["query_text"] == "technology dividend stocks"
    assert entries[0]["sql_query"] == SQL
    assert entries[0]["result_data"][0]["symbol"] == "IBM"


def test_audit_failure_is_not_surfaced(tmp_path, cache):
    table = json.dumps([{"symbol": "IBM"}])
    # a directory cannot be opened for appending
    engine = _engine(tmp_path, cache, FakeLLM(_responder(table)), audit=AuditStore(tmp_path))

    result = engine.process("technology dividend stocks", user_id="user-1")

    assert result.ok
    assert result.data[0]["symbol"] == "IBM"


def test_index_prompt_adds_constituents(tmp_path, cache):
    routes = {
        "nasdaq_constituent": [{"symbol": "CSCO", "name": "Cisco Systems", "sector": "Technology"}],
        "profile/CSCO": [{"symbol": "CSCO", "price": 50.0, "lastDiv": 1.6, "mktCap": 200_000_000_000}],
        "profile/AAPL": [{"symbol": "AAPL", "companyName": "Apple Inc.", "price": 192.0}],
    }
    llm = FakeLLM(_responder("no table"))
    result = _engine(tmp_path, cache, llm, fetcher=FakeFetcher(routes)).process(
        "highest dividend companies in the nasdaq"
    )

    assert result.ok
    assert result.data[0]["symbol"] == "CSCO"
    assert result.data[0]["dividendYield"] == 3.2
    assert result.data[0]["indexName"] == "nasdaq"


def test_query_result_contract():
    ok = QueryResult.success([{"symbol": "IBM"}], "SELECT 1")
    assert ok.to_dict() == {"data": [{"symbol": "IBM"}], "sqlQuery": "SELECT 1", "error": None}

    failed = QueryResult.failure("boom")
    assert failed.to_dict() == {"data": [], "sqlQuery": "", "error": "boom"}

    with pytest.raises(ValueError):
        QueryResult(data=[{"symbol": "IBM"}], error="boom")


def _copy_rows_of(endpoint_suffix):
    """Model that answers with the raw rows of one endpoint, values untouched."""
    def respond(system, user, model):
        if "SQL expert" in system:
            return SQL
        if "financial data analyst" in system:
            corpus = json.loads(user.split("Raw data by endpoint:\n", 1)[1])
            rows = [r for entry in corpus if entry["endpoint"].endswith(endpoint_suffix) for r in entry["data"]]
            return json.dumps(rows)
        return "{}"
    return respond


def test_sub_percent_index_yield_is_not_rescaled(tmp_path, cache):
    routes = {
        "nasdaq_constituent": [{"symbol": "AAPL", "name": "Apple Inc.", "sector": "Technology"}],
        "profile/AAPL": [{"symbol": "AAPL", "companyName": "Apple Inc.", "price": 200.0, "lastDiv": 1.0}],
    }
    llm = FakeLLM(_copy_rows_of("_index_data"))
    result = _engine(tmp_path, cache, llm, fetcher=FakeFetcher(routes)).process(
        "top dividend companies in the nasdaq"
    )

    assert result.ok
    assert result.data[0]["symbol"] == "AAPL"
    assert result.data[0]["dividendYield"] == 0.5


def test_builtin_dataset_yields_survive_generated_table(tmp_path, cache):
    llm = FakeLLM(_copy_rows_of("dividend_stocks"))
    result = _engine(tmp_path, cache, llm, fetcher=FakeFetcher()).process("high dividend stocks")

    assert result.ok
    assert result.data[0]["symbol"] == "VYM"
    assert all(r["dividendYield"] > 1 for r in result.data)


def test_non_string_symbol_in_generated_table(tmp_path, cache):
    table = json.dumps([{"symbol": ["IBM"], "name": "IBM"}, {"symbol": "CSCO", "name": "Cisco Systems"}])
    engine = _engine(tmp_path, cache, FakeLLM(_responder(table)))

    result = engine.process("technology stocks")

    assert result.ok
    assert result.data[0] == {"name": "IBM"}
    assert result.data[1]["symbol"] == "CSCO"


def test_healthcare_prompt_with_every_source_empty(tmp_path, cache):
    def respond(system, user, model):
        if "SQL expert" in system:
            return SQL
        return None

    engine = _engine(tmp_path, cache, FakeLLM(respond), fetcher=FakeFetcher())
    result = engine.process("Which healthcare companies have the best margins?")

    assert result.ok
    assert result.data
    assert all(r["sector"] == "Healthcare" for r in result.data)
