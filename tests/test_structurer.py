import json

from query_engine import planner
from query_engine.interpreter import interpret
from query_engine.models import RawEndpointResult
from query_engine.structurer import DataStructurer, coerce_table, serialize_corpus
from query_engine.errors import StructuringFailure

from conftest import FakeLLM

import pytest

TARGETED_MARKER = "Return the most recent"


def _results():
    return [
        RawEndpointResult(endpoint=planner.PROFILES, data=[
            {"symbol": "AAPL", "companyName": "Apple Inc.", "lastDiv": 0.96, "price": 192.0},
            {"symbol": "MSFT", "companyName": "Microsoft", "lastDiv": 3.0, "price": 400.0},
        ]),
        RawEndpointResult(endpoint=planner.DIVIDENDS, data=[{"symbol": "AAPL", "dividendYield": 0.005}]),
    ]


def test_serialize_corpus_caps_rows_and_size():
    rows = [{"symbol": f"S{i}"} for i in range(50)]
    text = serialize_corpus([RawEndpointResult(endpoint="big", data=rows)], max_records=20)
    assert json.loads(text)[0]["data"] == rows[:20]

    truncated = serialize_corpus([RawEndpointResult(endpoint="big", data=rows)], max_chars=100)
    assert truncated.endswith("...[truncated]")
    assert len(truncated) == 100 + len("...[truncated]")


def test_coerce_table_shapes():
    assert coerce_table([{"a": 1}, 3]) == [{"a": 1}]
    assert coerce_table({"data": [{"a": 1}]}) == [{"a": 1}]
    assert coerce_table({"symbol": "AAPL"}) == [{"symbol": "AAPL"}]
    for bad in ([], [1, 2], "text", 42, None, {"data": []}):
        with pytest.raises(StructuringFailure):
            coerce_table(bad)


def test_generated_table_is_normalized():
    reply = '```json\n[{"symbol": "AAPL", "name": "Apple", "dividendYield": 0.005, "price": 192.0}]\n```'
    llm = FakeLLM(lambda system, user, model: reply)
    rows = DataStructurer(llm).structure(interpret("dividend yield of big tech"), _results())

    assert rows == [{"symbol": "AAPL", "name": "Apple", "dividendYield": 0.5, "price": 192.0}]
    assert "dividend yield of big tech" in llm.calls[0]["user"]


def test_output_capped_at_twenty_rows():
    reply = json.dumps([{"symbol": f"S{i}"} for i in range(30)])
    rows = DataStructurer(FakeLLM(lambda *a: reply)).structure(interpret("largest companies"), _results())
    assert len(rows) == 20


@pytest.mark.parametrize("reply", [None, "", "I cannot help with that", "[]", "42", '"just a string"'])
def test_invalid_reply_falls_back_to_merger(reply):
    llm = FakeLLM(lambda *a: reply)
    rows = DataStructurer(llm).structure(interpret("largest companies by market cap"), _results())

    assert [r["symbol"] for r in rows] == ["AAPL", "MSFT"]
    assert rows[0]["name"] == "Apple Inc."


def test_company_specific_filters_other_symbols():
    reply = json.dumps([
        {"symbol": "AAPL", "name": "Apple", "revenue": 1},
        {"symbol": "TSLA", "name": "Tesla", "revenue": 2, "profitMargin": 0.08},
    ])
    llm = FakeLLM(lambda *a: reply)
    rows = DataStructurer(llm).structure(interpret("income statement for TSLA"), _results())

    assert rows == [{"symbol": "TSLA", "name": "Tesla", "revenue": 2, "profitMargin": 8.0}]


def test_company_specific_prompt_lists_allowed_symbols():
    llm = FakeLLM(lambda *a: json.dumps([{"symbol": "TSLA"}]))
    DataStructurer(llm).structure(interpret("income statement for TSLA"), _results())
    assert "TSLA" in llm.calls[0]["system"]
    assert "Never substitute other companies" in llm.calls[0]["system"]


def test_off_scope_table_triggers_targeted_lookup():
    targeted_reply = json.dumps([
        {"name": "Tesla", "date": "2024-12-31", "revenue": 25_700_000_000, "grossMargin": 0.162},
    ])

    def respond(system, user, model):
        if TARGETED_MARKER in system:
            return targeted_reply
        return json.dumps([{"symbol": "AAPL", "name": "Apple"}])

    llm = FakeLLM(respond)
    rows = DataStructurer(llm).structure(interpret("Show me the balance sheet for TSLA"), _results())

    assert rows == [{"name": "Tesla", "date": "2024-12-31", "revenue": 25_700_000_000,
                     "grossMargin": 16.2, "symbol": "TSLA"}]
    targeted = llm.calls_for(TARGETED_MARKER)
    assert len(targeted) == 1
    assert "balance sheet" in targeted[0]["system"]


def test_failed_targeted_lookup_falls_back_to_placeholders():
    def respond(system, user, model):
        if TARGETED_MARKER in system:
            return "[]"
        return json.dumps([{"symbol": "AAPL"}])

    rows = DataStructurer(FakeLLM(respond)).structure(interpret("income statement for TSLA"), _results())
    assert rows == [{"symbol": "TSLA", "name": "Company with symbol TSLA", "note": "no data"}]


def test_targeted_fetch_names_statement_and_forces_symbol():
    reply = json.dumps([{"symbol": "TSLA.US", "date": "2024-12-31", "totalAssets": 122070000000, "returnOnEquity": 0.2}])
    llm = FakeLLM(lambda system, user, model: reply)
    query = interpret("Show me the balance sheet of TSLA")

    rows = DataStructurer(llm).targeted_fetch(query, "TSLA")

    assert rows == [{"symbol": "TSLA", "date": "2024-12-31", "totalAssets": 122070000000, "returnOnEquity": 20.0}]
    assert "balance sheet figures for the company with ticker TSLA" in llm.calls[0]["system"]


def test_coerce_table_drops_non_string_symbols():
    rows = coerce_table([{"symbol": ["IBM"], "name": "IBM"}, {"ticker": {"id": 1}, "symbol": "KO"}])
    assert rows == [{"name": "IBM"}, {"symbol": "KO"}]


def test_corpus_presents_percent_rows_as_fractions():
    results = [
        RawEndpointResult(endpoint="nasdaq_index_data", data=[{"symbol": "AAPL", "dividendYield": 0.5, "price": 200.0}]),
        RawEndpointResult(endpoint="fallback_dividend_stocks", data=[{"symbol": "VYM", "dividendYield": 3.1}]),
        RawEndpointResult(endpoint=planner.DIVIDENDS, data=[{"symbol": "IBM", "dividendYield": 0.0369}]),
    ]
    view = {entry["endpoint"]: entry["data"] for entry in json.loads(serialize_corpus(results))}

    assert view["nasdaq_index_data"] == [{"symbol": "AAPL", "dividendYield": 0.005, "price": 200.0}]
    assert view["fallback_dividend_stocks"] == [{"symbol": "VYM", "dividendYield": 0.031}]
    assert view[planner.DIVIDENDS] == [{"symbol": "IBM", "dividendYield": 0.0369}]
    assert results[0].data[0]["dividendYield"] == 0.5
