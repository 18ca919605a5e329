"""
Query Configuration
Keyword tables used to classify prompts and to filter/merge rows.

All matching is case-insensitive substring matching against the prompt.
Tables are ordered: declaration order is the tie-break wherever only one
match is taken (e.g. index detection).
"""

from typing import Dict, List, Tuple

# --- Ticker extraction ---
# Uppercase tokens that look like tickers but are finance jargon
SYMBOL_STOPWORDS = {
    "SQL", "API", "ETF", "USA", "GDP",
    "CEO", "CFO", "IPO", "EPS", "NYSE", "REIT", "ROE", "ROA", "YOY", "TTM",
    "US", "UK", "EU", "I", "A",
}

# --- Sector detection ---
# tag -> keywords found in prompts
SECTOR_KEYWORDS: Dict[str, List[str]] = {
    "healthcare": ["healthcare", "health care", "medical", "pharma", "biotech", "health"],
    "technology": ["tech", "technology", "software", "hardware", "semiconductor"],
    "financial": ["financial", "finance", "bank", "insurance", "investment"],
    "energy": ["energy", "oil", "gas", "renewable", "solar", "wind"],
    "consumer": ["consumer", "retail", "food", "beverage", "apparel"],
    "industrial": ["industrial", "manufacturing", "aerospace", "defense"],
    "utilities": ["utilities", "utility", "electric", "water", "gas utility"],
    "real_estate": ["real estate", "reit", "property"],
    "materials": ["materials", "chemical", "mining", "metal"],
    "communication": ["communication", "telecom", "media", "entertainment"],
}

# tag -> sector label understood by the FMP stock screener
SECTOR_SCREENER_LABELS: Dict[str, str] = {
    "healthcare": "Healthcare",
    "technology": "Technology",
    "financial": "Financial Services",
    "energy": "Energy",
    "consumer": "Consumer Cyclical",
    "industrial": "Industrials",
    "utilities": "Utilities",
    "real_estate": "Real Estate",
    "materials": "Basic Materials",
    "communication": "Communication Services",
}

# tag -> terms matched against a row's sector / sub-sector / industry
SECTOR_ROW_TERMS: Dict[str, List[str]] = {
    "healthcare": ["health", "pharma", "biotech", "medical"],
    "technology": ["technology", "tech", "software", "semiconductor"],
    "financial": ["financ", "bank", "insurance"],
    "energy": ["energy", "oil", "gas"],
    "consumer": ["consumer", "retail"],
    "industrial": ["industrial"],
    "utilities": ["utilit"],
    "real_estate": ["real estate", "reit"],
    "materials": ["material", "chemical", "mining"],
    "communication": ["communication", "telecom", "media"],
}

# --- Index detection ---
# (canonical name, aliases), checked in this order
INDEX_ALIASES: List[Tuple[str, List[str]]] = [
    ("s&p 500", ["s&p500", "sp500", "sp 500", "standard & poor's 500"]),
    ("nifty", ["nifty 50", "nse", "national stock exchange"]),
    ("sensex", ["bse", "bombay stock exchange"]),
    ("nasdaq", ["nasdaq composite", "nasdaq index"]),
    ("dow jones", ["djia", "dow", "dow jones industrial average"]),
    ("ftse", ["ftse 100", "financial times stock exchange"]),
    ("dax", ["deutscher aktienindex", "german stock index"]),
    ("nikkei", ["nikkei 225", "nikkei index"]),
    ("hang seng", ["hangseng", "hsi"]),
]

# index -> country used by the screener when no constituent endpoint exists
INDEX_COUNTRIES: Dict[str, str] = {
    "nifty": "india",
    "sensex": "india",
    "ftse": "united kingdom",
    "dax": "germany",
    "nikkei": "japan",
    "hang seng": "hong kong",
}

# --- Keyword families (planner / merger) ---
SP500_TERMS = ["s&p 500", "s&p500", "sp500", "sp 500"]
GROWTH_TERMS = ["revenue", "growth", "income", "profit", "earnings"]
DIVIDEND_TERMS = ["dividend", "yield", "payout"]
STATEMENT_TERMS = ["financial statement", "balance sheet", "income statement", "cash flow"]
STATEMENT_ONLY_TERMS = ["financial statement", "balance sheet", "income statement"]
SECTOR_PERFORMANCE_TERMS = ["sector", "industry", "market performance"]
ETF_TERMS = ["etf"]
LIST_ALL_TERMS = ["list all"]
LIST_ALL_OBJECTS = ["companies", "stocks"]

# Terms that make a prompt with tickers company-specific
COMPANY_SPECIFIC_TERMS = ["financial", "statement", "report", "balance", "income", "cash flow"]

# Index prompts asking for a dividend ranking
INDEX_DIVIDEND_FOCUS_TERMS = ["dividend", "yield", "highest", "top"]

# Built-in dataset selection
HEALTHCARE_FALLBACK_TERMS = SECTOR_KEYWORDS["healthcare"]
DIVIDEND_FALLBACK_TERMS = ["dividend", "yield"]

# Statement kinds named in the single-company lookup.
# A prompt asks for a statement when it has a context term or a statement term;
# the kind is the first entry whose terms match, else the generic kind.
STATEMENT_CONTEXT_TERMS = ["financial", "statement", "report"]
STATEMENT_KINDS: List[Tuple[str, List[str]]] = [
    ("balance sheet", ["balance"]),
    ("income statement", ["income", "profit"]),
    ("cash flow statement", ["cash flow"]),
]
GENERIC_STATEMENT_KIND = "financial statements"
DEFAULT_STATEMENT_KIND = "key financial metrics"

# --- Enrichment ---
# field -> description used in the lookup instruction
IMPORTANT_FIELDS: Dict[str, str] = {
    "profitMargin": "profit margin",
    "grossMargin": "gross margin",
    "operatingMargin": "operating margin",
    "netIncomeMargin": "net income margin",
    "revenueGrowth": "revenue growth (year over year)",
    "earningsGrowth": "earnings growth (year over year)",
    "dividendYield": "dividend yield",
    "peRatio": "price to earnings ratio",
    "pbRatio": "price to book ratio",
    "debtToEquity": "debt to equity ratio",
    "returnOnEquity": "return on equity",
    "returnOnAssets": "return on assets",
}

MISSING_MARKERS = {"N/A"}

# --- Ratio normalization ---
# lower-cased field suffixes / names holding fractional ratios
RATIO_FIELD_SUFFIXES = ("yield", "growth", "margin")
RATIO_FIELD_NAMES = {"payoutratio", "returnonequity", "returnonassets", "roe", "roa"}
