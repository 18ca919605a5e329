"""
Cache Cleaner
Removes query-engine cache entries (company data, index constituents)
and optionally the query audit log.

Usage:
    python run_clean_cache.py                          # interactive
    python run_clean_cache.py --stale-only             # only entries older than 24h
    python run_clean_cache.py --namespace company_data
"""

import argparse
import os
import sys

# Setup project root path to import internal modules
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = current_dir

if project_root not in sys.path:
    sys.path.insert(0, project_root)

from config.constants import CACHE_NS_COMPANY, CACHE_NS_INDEX, CACHE_NS_SP500
from config.settings import settings
from data_acquisition.cache_store import CacheStore
from query_engine.audit_store import AuditStore
from utils.console_utils import print_header, print_step, symbol as ICON

NAMESPACES = [CACHE_NS_COMPANY, CACHE_NS_INDEX, CACHE_NS_SP500]


def clean_cache(store: CacheStore, namespace: str = None, stale_only: bool = False) -> int:
    """Purge one namespace (or all of them) and report per namespace."""
    targets = [namespace] if namespace else NAMESPACES
    total = 0
    for ns in targets:
        removed = store.purge(ns, stale_only=stale_only)
        total += removed
        kind = "stale entries" if stale_only else "entries"
        print(f"  {ICON.OK} {ns}: deleted {removed} {kind}")
    return total


def main():
    parser = argparse.ArgumentParser(description='Clean query-engine cache and audit log')
    parser.add_argument('--namespace', '-n', choices=NAMESPACES, help='Only clean this cache namespace')
    parser.add_argument('--stale-only', action='store_true', help='Keep entries still inside the 24h window')
    parser.add_argument('--audit', action='store_true', help='Also delete the audit log without asking')
    parser.add_argument('--yes', '-y', action='store_true', help='Do not ask for confirmation')
    args = parser.parse_args()

    print_header("Cache Cleaner")
    print(f"  Cache Dir: {settings.cache_dir}")
    print(f"  Audit Log: {settings.audit_path}")

    # ==============================================================================
    # STEP 1: Cache Cleanup
    # ==============================================================================
    print_step(1, 2, "Cache Cleanup")
    store = CacheStore(settings.cache_dir)
    total = clean_cache(store, args.namespace, args.stale_only)
    print(f"\n  {ICON.INFO} {total} cache files removed.")

    # ==============================================================================
    # STEP 2: Audit Log Cleanup
    # ==============================================================================
    print_step(2, 2, "Audit Log Cleanup")
    delete_audit = args.audit
    if not delete_audit and not args.yes:
        confirm = input("  Delete the query audit log? (y/N): ").strip().lower()
        delete_audit = confirm in ('y', 'yes')

    if delete_audit:
        if AuditStore(settings.audit_path).clear():
            print(f"  {ICON.OK} Audit log deleted.")
        else:
            print(f"  {ICON.INFO} No audit log found.")
    else:
        print(f"  {ICON.INFO} Skipped audit log cleanup.")

    print("\n" + "=" * 60)
    print("  CLEANUP FINISHED")
    print("=" * 60)


if __name__ == "__main__":
    main()
