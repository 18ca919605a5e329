"""
Cache Store

Keyed JSON-file persistence with a staleness window:
- One file per (namespace, entity key) under ``<root>/<namespace>/``
- Each file holds the record plus its ``cached_at`` timestamp
- An entry is valid while ``now - cached_at < ttl`` (24h by default); stale
  entries read as absent and are left on disk (lazy eviction)

Writes go through a temp file + os.replace, so concurrent writers of the same
key never leave a torn file: last writer wins.
"""

import hashlib
import json
import os
import re
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from config.constants import CACHE_TTL_HOURS
from utils.logger import setup_logger

logger = setup_logger('cache_store')

Clock = Callable[[], datetime]

_SAFE_KEY = re.compile(r'[^A-Za-z0-9_.\-]')


class CacheEntry(BaseModel):
    """One cached record."""
    entity_key: str
    namespace: str
    data: Dict[str, Any] = Field(default_factory=dict)
    cached_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.cached_at < ttl


class CacheStore:
    """File-backed key-value cache with per-entry staleness."""

    def __init__(
        self,
        root: Path,
        ttl: timedelta = timedelta(hours=CACHE_TTL_HOURS),
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            root: Cache directory (created on first write)
            ttl: Staleness window
            clock: Returns "now"; injectable for tests
        """
        self.root = Path(root)
        self.ttl = ttl
        self.clock = clock or datetime.now

    # --- Paths ---

    @staticmethod
    def _file_name(entity_key: str) -> str:
        """Readable file name for simple keys, hashed suffix keeps distinct keys distinct."""
        readable = _SAFE_KEY.sub('_', entity_key)[:80]
        digest = hashlib.sha256(entity_key.encode('utf-8')).hexdigest()[:12]
        return f"{readable}-{digest}.json"

    def _get_cache_path(self, entity_key: str, namespace: str) -> Path:
        return self.root / namespace / self._file_name(entity_key)

    # --- Read ---

    def _read_entry(self, path: Path) -> Optional[CacheEntry]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return CacheEntry.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cache file {path.name}: {e}")
            return None

    def get_entry(self, entity_key: str, namespace: str) -> Optional[CacheEntry]:
        """Fresh entry for the key, or None if missing, unreadable or stale."""
        path = self._get_cache_path(entity_key, namespace)
        if not path.exists():
            return None

        entry = self._read_entry(path)
        if entry is None:
            return None

        if not entry.is_fresh(self.clock(), self.ttl):
            logger.debug(f"Cache expired for {namespace}/{entity_key}")
            return None
        return entry

    def get(self, entity_key: str, namespace: str) -> Optional[Dict[str, Any]]:
        """Cached record for the key while fresh, else None."""
        entry = self.get_entry(entity_key, namespace)
        return dict(entry.data) if entry else None

    def iter_entries(self, namespace: str, include_stale: bool = False) -> Iterator[CacheEntry]:
        """All readable entries of a namespace (fresh only unless include_stale)."""
        directory = self.root / namespace
        if not directory.exists():
            return
        now = self.clock()
        for path in sorted(directory.glob('*.json')):
            entry = self._read_entry(path)
            if entry is None:
                continue
            if include_stale or entry.is_fresh(now, self.ttl):
                yield entry

    def fresh_records(self, namespace: str, **match: Any) -> List[Dict[str, Any]]:
        """Fresh records of a namespace whose fields equal every `match` item."""
        records = []
        for entry in self.iter_entries(namespace):
            if all(entry.data.get(k) == v for k, v in match.items()):
                records.append(dict(entry.data))
        return records

    # --- Write ---

    def put(self, entity_key: str, namespace: str, data: Dict[str, Any]) -> CacheEntry:
        """
        Upsert a record. Raises OSError when the file cannot be written;
        callers that treat caching as best-effort catch it.
        """
        entry = CacheEntry(entity_key=entity_key, namespace=namespace, data=dict(data), cached_at=self.clock())
        path = self._get_cache_path(entity_key, namespace)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix='.tmp-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(entry.model_dump_json(indent=2))
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Cached {namespace}/{entity_key}")
        return entry

    def purge(self, namespace: Optional[str] = None, stale_only: bool = False) -> int:
        """
        Delete cache files. Maintenance only; reads never purge.

        Returns:
            Number of files removed
        """
        if namespace:
            namespaces = [namespace]
        elif self.root.exists():
            namespaces = [p.name for p in self.root.iterdir() if p.is_dir()]
        else:
            namespaces = []
        now = self.clock()
        removed = 0
        for ns in namespaces:
            directory = self.root / ns
            if not directory.exists():
                continue
            for path in directory.glob('*.json'):
                if stale_only:
                    entry = self._read_entry(path)
                    if entry is not None and entry.is_fresh(now, self.ttl):
                        continue
                path.unlink()
                removed += 1
        return removed
