"""
HTTP Utility module for standardized API requests.
Single-shot GET with timeout; the outcome is an explicit FetchOk / FetchFailed value
so callers match on the result instead of catching exceptions.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from utils.logger import setup_logger

logger = setup_logger('http_utils')


@dataclass(frozen=True)
class FetchOk:
    """Successful fetch: decoded JSON body."""
    payload: Any


@dataclass(frozen=True)
class FetchFailed:
    """Failed fetch: network error, non-2xx status or undecodable body."""
    reason: str
    status_code: Optional[int] = None


FetchResult = Union[FetchOk, FetchFailed]


def get_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10,
    source_name: str = "API"
) -> FetchResult:
    """
    Make a single HTTP GET request and decode the JSON body.

    No retries: a slow or failing source degrades to FetchFailed instead of
    stalling the caller.

    Args:
        url: The full URL to request.
        params: Query parameters dictionary.
        headers: Request headers dictionary.
        timeout: Request timeout in seconds.
        source_name: Name of the data source for logging.

    Returns:
        FetchOk(payload) on a 2xx JSON response, FetchFailed(reason) otherwise.
    """
    try:
        response = requests.get(url, params=params, headers=headers, timeout=timeout)
    except requests.exceptions.Timeout:
        logger.warning(f"{source_name} timed out after {timeout}s")
        return FetchFailed("timeout")
    except requests.exceptions.RequestException as e:
        logger.warning(f"{source_name} connection error: {e}")
        return FetchFailed(f"connection error: {e}")

    status = response.status_code
    if status in (402, 403):
        logger.warning(f"{source_name} {status}: feature not available on current plan or key invalid.")
        return FetchFailed("plan/key restriction", status)
    if status == 404:
        logger.warning(f"{source_name} 404 Not Found")
        return FetchFailed("not found", status)
    if status == 429:
        logger.warning(f"{source_name} 429 rate limited")
        return FetchFailed("rate limited", status)
    if not 200 <= status < 300:
        logger.warning(f"{source_name} HTTP error {status}")
        return FetchFailed(f"http {status}", status)

    try:
        return FetchOk(response.json())
    except ValueError as e:
        logger.warning(f"{source_name} JSON parsing error: {e}")
        return FetchFailed("invalid json", status)
