from query_engine.interpreter import (
    classify,
    detect_index,
    detect_sectors,
    detect_statement_type,
    extract_symbols,
    interpret,
)
from query_engine.models import IntentKind


def test_extract_symbols_skips_jargon_and_keeps_order():
    prompt = "Compare MSFT and AAPL revenue, write the SQL and show EPS for MSFT"
    assert extract_symbols(prompt) == ["MSFT", "AAPL"]


def test_extract_symbols_ignores_s_and_p():
    assert extract_symbols("Top S&P 500 dividend payers") == []


def test_extract_symbols_requires_all_caps_tokens():
    assert extract_symbols("Show me Apple and Tesla") == []


def test_detect_sectors_returns_every_match_in_table_order():
    assert detect_sectors("technology and healthcare dividend stocks") == ["healthcare", "technology"]


def test_detect_sectors_empty_for_plain_prompt():
    assert detect_sectors("largest companies by market cap") == []


def test_detect_index_by_alias():
    assert detect_index("which sp500 companies pay the most") == "s&p 500"
    assert detect_index("highest paying companies in the nasdaq") == "nasdaq"
    assert detect_index("ftse 100 constituents") == "ftse"


def test_detect_index_none():
    assert detect_index("largest companies by market cap") is None


def test_detect_statement_type():
    assert detect_statement_type("balance sheet of AAPL") == "balance sheet"
    assert detect_statement_type("MSFT income statement") == "income statement"
    assert detect_statement_type("cash flow report for AMZN") == "cash flow statement"
    assert detect_statement_type("financial report for AMZN") == "financial statements"
    assert detect_statement_type("dividend yields of tech stocks") is None


def test_classify_tags_metric_categories():
    intents = classify("revenue growth and dividend yield of tech stocks")
    kinds = {(i.kind, i.value) for i in intents}
    assert (IntentKind.SECTOR, "technology") in kinds
    assert (IntentKind.METRIC_CATEGORY, "growth") in kinds
    assert (IntentKind.METRIC_CATEGORY, "dividend") in kinds


def test_interpret_company_specific_statement_prompt():
    query = interpret("Show me the balance sheet for AAPL")
    assert query.potential_symbols == ["AAPL"]
    assert query.is_company_specific is True
    assert query.has_intent(IntentKind.STATEMENT_TYPE, "balance sheet")


def test_interpret_symbols_without_statement_terms_is_not_company_specific():
    query = interpret("AAPL dividend yield")
    assert query.potential_symbols == ["AAPL"]
    assert query.is_company_specific is False


def test_interpret_empty_prompt():
    query = interpret("")
    assert query.potential_symbols == []
    assert query.detected_sectors == []
    assert query.detected_index is None
    assert query.intents == []
