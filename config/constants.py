"""
Centralized constants for the application.
Stores API base URLs, timeouts, batch sizes and other magic numbers.
"""

from typing import List

# --- API Configuration ---

# Financial Modeling Prep (FMP)
FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"
FMP_TIMEOUT_SECONDS = 10

# OpenAI chat completions
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_TIMEOUT_SECONDS = 60

# Models: (model, temperature, max_tokens)
SQL_PRIMARY_MODEL = ("gpt-4o", 0.2, 800)
SQL_FALLBACK_MODEL = ("gpt-4o-mini", 0.3, 500)
STRUCTURER_MODEL = ("gpt-4o", 0.2, 4000)
TARGETED_FETCH_MODEL = ("gpt-4o", 0.1, 2000)
ENRICHMENT_MODEL = ("gpt-4o", 0.2, 2000)

# --- Data Processing ---

MAX_RECORDS_PER_ENDPOINT = 20      # rows per endpoint sent to the structurer
MAX_PAYLOAD_CHARS = 100_000        # serialized corpus cap
MAX_OUTPUT_RECORDS = 20            # rows requested from the structurer
TRUNCATION_MARKER = "...[truncated]"

ENRICHMENT_BATCH_SIZE = 5
ENRICHMENT_BATCH_DELAY_SECONDS = 1.0

INDEX_ENRICH_LIMIT = 50            # constituents enriched with profiles
INDEX_BATCH_SIZE = 5
INDEX_BATCH_DELAY_SECONDS = 1.0
HIGH_DIVIDEND_LIMIT = 20

CACHE_TTL_HOURS = 24

FETCH_MAX_WORKERS = 8

# --- Data Directory Paths (relative to project root) ---
DEFAULT_CACHE_DIR = "data/cache/query"
DEFAULT_AUDIT_PATH = "data/audit/query_results.jsonl"

# Cache namespaces (one JSON file per entity inside each)
CACHE_NS_COMPANY = "company_data"
CACHE_NS_INDEX = "market_index_companies"
CACHE_NS_SP500 = "sp500_companies"

# Large-cap basket used when the prompt names no tickers
DEFAULT_SYMBOL_BASKET: List[str] = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "META", "TSLA", "NVDA", "AMD", "INTC",
    "ORCL", "IBM", "CRM", "ADBE", "CSCO", "PYPL", "NFLX", "WMT", "TGT",
    "COST", "HD", "LOW", "JNJ", "PFE", "MRK", "ABBV", "BMY",
]

DIVIDEND_ETFS: List[str] = ["SPY", "VYM", "HDV", "SPYD", "DVY", "SCHD", "VYMI", "IDV", "DEM", "DGS"]

DEFAULT_STATEMENT_SYMBOL = "AAPL"
