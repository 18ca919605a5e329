import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.constants import FMP_BASE_URL  # noqa: E402
from data_acquisition.cache_store import CacheStore  # noqa: E402
from utils.http_utils import FetchFailed, FetchOk  # noqa: E402

FIXED_NOW = datetime(2025, 3, 14, 12, 0, 0)


class FakeClock:
    """Settable clock for staleness tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeLLM:
    """
    Stand-in for LLMClient.

    `responder(system_prompt, user_prompt, model)` returns the reply text (or None);
    every call is recorded.
    """

    def __init__(self, responder: Callable[[str, str, str], Optional[str]]):
        self.responder = responder
        self.calls: List[Dict[str, Any]] = []

    def complete(self, system_prompt, user_prompt, model, temperature=0.2, max_tokens=1000):
        self.calls.append({'system': system_prompt, 'user': user_prompt, 'model': model})
        return self.responder(system_prompt, user_prompt, model)

    def calls_for(self, marker: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if marker in c['system']]


class FakeFetcher:
    """
    Stand-in for utils.http_utils.get_json.

    `routes` maps a path prefix (relative to the FMP base URL) to a payload or a
    FetchFailed; the first matching prefix wins, unmatched paths fail with 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.paths: List[str] = []

    def __call__(self, url, params=None, headers=None, timeout=10, source_name="API"):
        path = url[len(FMP_BASE_URL) + 1:] if url.startswith(FMP_BASE_URL) else url
        self.paths.append(path)
        for prefix, payload in self.routes.items():
            if path.startswith(prefix):
                if isinstance(payload, FetchFailed):
                    return payload
                return FetchOk(payload)
        return FetchFailed(reason="Not Found", status_code=404)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock) -> CacheStore:
    return CacheStore(tmp_path / "cache", clock=clock)


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    delays: List[float] = []

    def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep
