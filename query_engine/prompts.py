"""
AI Prompt Templates
Separated from the stage logic for better maintainability.
"""
import json
from typing import Dict, List, Tuple

from config.constants import MAX_OUTPUT_RECORDS

SQL_SYSTEM_PROMPT = """You are a SQL expert specializing in financial database queries. Convert the user's natural language question into one precise SQL query.
The database contains financial information about companies, including:
- Basic company information (symbol, name, sector, industry)
- Market metrics (market cap, price, PE ratio)
- Financial performance (revenue, profit margins, growth rates)
- Dividend information (yield, payout ratio)
- Sector-specific metrics for retail, healthcare, technology and other industries
Return only the SQL query: no explanation, no markdown formatting."""

SQL_FALLBACK_SYSTEM_PROMPT = """You are a SQL expert. Convert the user's natural language question into a SQL query.
Return only the SQL query without any explanation or markdown formatting."""


def build_structuring_prompts(prompt: str, corpus: str, symbols: List[str], company_specific: bool) -> Tuple[str, str]:
    """
    Instruction + user message asking for a JSON table built from the raw corpus.

    Returns:
        (system_prompt, user_prompt)
    """
    system = f"""You are a financial data analyst. You receive raw data from several financial data endpoints and a user question.
Build a table that answers the question using ONLY the supplied data.

Rules:
- Respond with a JSON array of at most {MAX_OUTPUT_RECORDS} objects and nothing else.
- Every object must include "symbol" and "name" when known.
- Use camelCase field names (marketCap, dividendYield, revenueGrowth, profitMargin, peRatio).
- Keep only fields relevant to the question; merge rows that describe the same symbol.
- Yields, growth rates, margins and payout ratios: copy the raw values, do not convert them to percentages.
- For dividend questions include dividendYield, and dividend / payoutRatio when available.
- If the question names an index (e.g. S&P 500), prefer rows from that index's endpoint."""

    if company_specific and symbols:
        allowed = ", ".join(symbols)
        system += f"""
- The question is about these companies only: {allowed}.
  Return rows ONLY for these symbols. If the data contains none of them, return []. Never substitute other companies."""

    user = f"""Question: {prompt}

Raw data by endpoint:
{corpus}"""
    return system, user


def build_targeted_fetch_prompts(symbol: str, statement_kind: str, prompt: str) -> Tuple[str, str]:
    """Single-company lookup: ask for one symbol's figures of the given statement kind."""
    system = f"""You are a financial data provider. Return the most recent {statement_kind} figures for the company with ticker {symbol}.
Respond with a JSON array of objects (one per reporting period, newest first, at most 4) and nothing else.
Each object must have "symbol": "{symbol}", "name", "date" and camelCase numeric fields (e.g. revenue, netIncome, eps, totalAssets, totalLiabilities, totalEquity, operatingCashFlow).
Yields, growth rates and margins are decimal fractions (0.25 for 25%).
If you do not know the company, return []."""
    user = f"Question: {prompt}\nTicker: {symbol}"
    return system, user


def build_enrichment_prompts(symbols: List[str], fields: Dict[str, str]) -> Tuple[str, str]:
    """Ask for missing metric values of a batch of symbols as a {symbol: {field: value}} map."""
    field_lines = "\n".join(f"- {name}: {description}" for name, description in fields.items())
    example = json.dumps({"AAPL": {"profitMargin": 0.25, "peRatio": 28.5}})
    system = f"""You are a financial data provider. Give the latest known values of these metrics:
{field_lines}

Respond with a single JSON object keyed by ticker symbol, nothing else. Example:
{example}
Margins, growth rates, yields and returns are decimal fractions (0.25 for 25%). Use null for unknown values."""
    user = "Symbols: " + ", ".join(symbols)
    return system, user
