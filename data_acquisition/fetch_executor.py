"""
Fetch Executor
==============

Issues the planned provider calls concurrently and returns one
RawEndpointResult per descriptor, in descriptor order.

Per-descriptor isolation: a non-2xx response, a network error / timeout, or a
body that is neither a JSON array nor an object becomes ``data = []`` for that
descriptor only. When every descriptor comes back empty, a synthetic
``fallback_*`` result with a built-in dataset is appended.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from config import constants
from data_acquisition.fallback_datasets import select_builtin_dataset
from query_engine.models import EndpointDescriptor, RawEndpointResult, Record
from utils.http_utils import FetchFailed, FetchResult, get_json
from utils.logger import setup_logger

logger = setup_logger('fetch_executor')

Fetcher = Callable[..., FetchResult]


def normalize_payload(payload: Any) -> List[Record]:
    """
    Coerce a decoded provider body into a list of records.

    array -> its object items; object -> [object]; anything else -> [].
    FMP reports errors as 200 + {"Error Message": ...}; that is treated as no data.
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        if 'Error Message' in payload:
            return []
        return [payload]
    return []


class FetchExecutor:
    """Concurrent fan-out / fan-in over endpoint descriptors."""

    def __init__(
        self,
        api_key: str,
        base_url: str = constants.FMP_BASE_URL,
        timeout: float = constants.FMP_TIMEOUT_SECONDS,
        max_workers: int = constants.FETCH_MAX_WORKERS,
        fetcher: Optional[Fetcher] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_workers = max_workers
        self.fetcher = fetcher or get_json

    def _url_for(self, descriptor: EndpointDescriptor) -> str:
        return f"{self.base_url}/{descriptor.url_template}"

    def fetch_one(self, descriptor: EndpointDescriptor) -> RawEndpointResult:
        """Fetch a single descriptor; never raises."""
        try:
            result = self.fetcher(
                self._url_for(descriptor),
                params={'apikey': self.api_key},
                timeout=self.timeout,
                source_name=f"FMP:{descriptor.name}",
            )
        except Exception as e:
            logger.warning(f"Unexpected error fetching {descriptor.name}: {e}")
            return RawEndpointResult(endpoint=descriptor.name)

        if isinstance(result, FetchFailed):
            logger.warning(f"Source fetch failed, using empty result ({descriptor.name}: {result.reason})")
            return RawEndpointResult(endpoint=descriptor.name)
        return RawEndpointResult(endpoint=descriptor.name, data=normalize_payload(result.payload))

    def fetch_all(self, descriptors: List[EndpointDescriptor], prompt: str = "") -> List[RawEndpointResult]:
        """
        Fetch every descriptor concurrently.

        Args:
            descriptors: Planned provider calls
            prompt: Original prompt, used to choose the built-in dataset when all results are empty

        Returns:
            One result per descriptor in input order, plus a synthetic fallback
            result when every descriptor was empty.
        """
        if not descriptors:
            results = []
        else:
            workers = max(1, min(self.max_workers, len(descriptors)))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # map() yields in submission order regardless of completion order
                results = list(pool.map(self.fetch_one, descriptors))

        populated = sum(1 for r in results if not r.is_empty)
        logger.info(f"Fetched {len(results)} endpoints ({populated} with data)")

        if populated == 0:
            name, rows = select_builtin_dataset(prompt)
            logger.warning(f"No data from any endpoint, injecting built-in dataset '{name}'")
            results.append(RawEndpointResult(endpoint=name, data=rows))
        return results
