"""
Utilities module for the Query Resolution & Data Aggregation Engine.

=== DEVELOPER GUIDE ===

--- Quick Reference ---

1. Numeric handling (numeric_utils.py) ★ most used
   from utils.numeric_utils import clean_numeric, safe_divide, to_percentage, normalize_ratios
   - clean_numeric(value)        NaN/Inf/None -> None
   - safe_divide(a, b)           division with zero protection
   - to_percentage(0.031)        fraction -> percentage (3.1)
   - normalize_ratios(record)    applies to_percentage to yield/growth/margin fields

2. Type conversion (helpers.py)
   from utils.helpers import safe_float, format_large_number, contains_any

3. Logging (logger.py)
   from utils.logger import setup_logger
   - logger = setup_logger('module_name')
   - LoggingContext / set_logging_mode: switch verbosity (LOG_MODE env var)

4. HTTP (http_utils.py)
   from utils.http_utils import get_json, FetchOk, FetchFailed
   - get_json(url, params, timeout, source_name) -> FetchOk | FetchFailed
   - single attempt, no retries

5. JSON from model output (json_utils.py)
   from utils.json_utils import parse_json_array, parse_json_object, strip_code_fences

6. Console output (console_utils.py)
   from utils.console_utils import symbol, print_step, print_separator, print_header

=== Notes ===
- Use clean_numeric() / safe_divide() for arithmetic on provider values, never bare division
- Use get_json() for provider requests, not requests.get() directly
- Use setup_logger() for logging, not print() (CLI scripts excepted)
"""

from .logger import setup_logger, default_logger, LoggingContext, set_logging_mode, get_logging_mode
from .helpers import safe_float, format_large_number, contains_any

__all__ = [
    'setup_logger',
    'default_logger',
    'LoggingContext',
    'set_logging_mode',
    'get_logging_mode',
    'safe_float',
    'format_large_number',
    'contains_any',
]
