"""
Data Acquisition Module

Provider access for the query engine: concurrent endpoint fetching, the
keyed JSON cache, market-index constituents and the built-in datasets used
when every live source is empty.

Main Entry Points:
    - FetchExecutor: concurrent fetch of planned endpoints
    - CacheStore: (entity key, namespace) cache with a 24h staleness window
    - MarketIndexService: index constituents and dividend rankings
"""

from .cache_store import CacheStore, CacheEntry
from .fetch_executor import FetchExecutor
from .market_index_service import MarketIndexService

__all__ = [
    'CacheStore',
    'CacheEntry',
    'FetchExecutor',
    'MarketIndexService',
]
