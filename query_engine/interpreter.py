"""
Query Interpreter
=================

Pure classification of a free-text prompt. No I/O, never raises:
a prompt without matches yields empty sets.
"""

import re
from typing import List, Optional

from config.query_config import (
    SYMBOL_STOPWORDS,
    SECTOR_KEYWORDS,
    INDEX_ALIASES,
    COMPANY_SPECIFIC_TERMS,
    GROWTH_TERMS,
    DIVIDEND_TERMS,
    STATEMENT_TERMS,
    STATEMENT_CONTEXT_TERMS,
    STATEMENT_KINDS,
    GENERIC_STATEMENT_KIND,
)
from query_engine.models import Intent, IntentKind, Query
from utils.helpers import contains_any

_SYMBOL_PATTERN = re.compile(r'\b[A-Z]{1,5}\b')
# "S&P" would otherwise yield the tickers "S" and "P"
_SP_PATTERN = re.compile(r'S&P', re.IGNORECASE)


def extract_symbols(prompt: str) -> List[str]:
    """Uppercase 1-5 letter tokens minus jargon stopwords, first occurrence order, no duplicates."""
    text = _SP_PATTERN.sub(" ", prompt or "")
    symbols = []
    for token in _SYMBOL_PATTERN.findall(text):
        if token in SYMBOL_STOPWORDS or token in symbols:
            continue
        symbols.append(token)
    return symbols


def detect_sectors(prompt: str) -> List[str]:
    """Every sector whose keyword list hits the case-folded prompt, in table order."""
    return [sector for sector, keywords in SECTOR_KEYWORDS.items() if contains_any(prompt, keywords)]


def detect_index(prompt: str) -> Optional[str]:
    """Canonical name of the first index (table order) whose name or alias appears in the prompt."""
    lowered = (prompt or "").lower()
    for canonical, aliases in INDEX_ALIASES:
        if canonical in lowered or any(alias in lowered for alias in aliases):
            return canonical
    return None


def detect_statement_type(prompt: str) -> Optional[str]:
    """Statement kind the prompt asks for (e.g. "balance sheet"), or None if it asks for none."""
    lowered = (prompt or "").lower()
    if not any(term in lowered for term in STATEMENT_CONTEXT_TERMS + STATEMENT_TERMS):
        return None
    for kind, terms in STATEMENT_KINDS:
        if any(term in lowered for term in terms):
            return kind
    return GENERIC_STATEMENT_KIND


def classify(prompt: str) -> List[Intent]:
    """
    Classify a prompt into tagged intents.

    Returns one Intent per detected sector, at most one index, at most one
    statement type and one per metric category (growth, dividend).
    """
    lowered = (prompt or "").lower()
    intents = [Intent(kind=IntentKind.SECTOR, value=s) for s in detect_sectors(prompt)]

    index_name = detect_index(prompt)
    if index_name:
        intents.append(Intent(kind=IntentKind.INDEX, value=index_name))

    statement_type = detect_statement_type(prompt)
    if statement_type:
        intents.append(Intent(kind=IntentKind.STATEMENT_TYPE, value=statement_type))

    if any(term in lowered for term in GROWTH_TERMS):
        intents.append(Intent(kind=IntentKind.METRIC_CATEGORY, value="growth"))
    if any(term in lowered for term in DIVIDEND_TERMS):
        intents.append(Intent(kind=IntentKind.METRIC_CATEGORY, value="dividend"))
    return intents


def interpret(prompt: str) -> Query:
    """Build the Query for a prompt."""
    prompt = prompt or ""
    symbols = extract_symbols(prompt)
    intents = classify(prompt)

    company_specific = bool(symbols) and contains_any(prompt, COMPANY_SPECIFIC_TERMS)

    return Query(
        prompt=prompt,
        detected_sectors=[i.value for i in intents if i.kind == IntentKind.SECTOR],
        detected_index=next((i.value for i in intents if i.kind == IntentKind.INDEX), None),
        potential_symbols=symbols,
        is_company_specific=company_specific,
        intents=intents,
    )
