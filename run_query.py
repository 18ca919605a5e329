"""
Query Resolution CLI
Answers a natural-language financial question:
1. SQL statement representing the question
2. Supporting data table aggregated from Financial Modeling Prep + OpenAI

Usage:
    python run_query.py "Show me dividend yields for technology companies"
    python run_query.py "Balance sheet of AAPL" --json
    python run_query.py "Top S&P 500 dividend payers" --csv generated_data/sp500.csv --user alice
"""

import argparse
import json
import logging
import os
import sys

import pandas as pd

# Add project root to path
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

from query_engine.engine import QueryEngine
from query_engine.models import QueryResult
from utils.console_utils import print_header, print_step, symbol as ICON
from utils.helpers import format_large_number, safe_float
from utils.logger import setup_logger

logger = setup_logger('run_query')


def suppress_sub_module_logs():
    """Only show ERROR and above from pipeline stages on the console."""
    noisy_loggers = [
        'llm_client', 'sql_synthesizer', 'structurer', 'enrichment',
        'fetch_executor', 'market_index_service', 'cache_store', 'audit_store',
        'http_utils',
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.ERROR)


def result_frame(result: QueryResult) -> pd.DataFrame:
    """Tabular view of the result; nested values (e.g. financials) are kept as JSON text."""
    frame = pd.DataFrame(result.data)
    for column in frame.columns:
        if frame[column].map(lambda v: isinstance(v, (list, dict))).any():
            frame[column] = frame[column].map(
                lambda v: json.dumps(v, default=str) if isinstance(v, (list, dict)) else v
            )
    return frame


def print_result(result: QueryResult):
    print_step(1, 2, "SQL Query")
    print(result.sql_query)

    print_step(2, 2, f"Data ({len(result.data)} rows)")
    frame = result_frame(result)
    if 'marketCap' in frame.columns:
        frame['marketCap'] = frame['marketCap'].map(
            lambda v: format_large_number(safe_float(v)) if pd.notna(v) else "N/A"
        )
    with pd.option_context('display.max_columns', 12, 'display.width', 160):
        print(frame.to_string(index=False))


def main():
    parser = argparse.ArgumentParser(description='Natural-language financial query to SQL + data')
    parser.add_argument('prompt', nargs='*', help='Question (quote it or pass as words)')
    parser.add_argument('--user', '-u', help='User id; when set, the result is written to the audit log')
    parser.add_argument('--json', action='store_true', help='Print the raw result as JSON')
    parser.add_argument('--csv', help='Export the data table to this CSV path')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show pipeline logs')
    args = parser.parse_args()

    prompt = " ".join(args.prompt).strip()
    if not prompt:
        prompt = input("Enter your question: ").strip()
    if not prompt:
        print("No question provided.")
        return 1

    if not args.verbose:
        suppress_sub_module_logs()

    result = QueryEngine().process(prompt, user_id=args.user)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
        return 0 if result.ok else 1

    if not result.ok:
        print(f"\n  {ICON.FAIL} {result.error}")
        return 1

    print_header(f"QUERY: {prompt}")
    print_result(result)

    if args.csv:
        csv_dir = os.path.dirname(args.csv)
        if csv_dir:
            os.makedirs(csv_dir, exist_ok=True)
        result_frame(result).to_csv(args.csv, index=False)
        print(f"\n  {ICON.OK} Saved table to {args.csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
