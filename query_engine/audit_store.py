"""
Audit Store

Append-only JSON-lines log of answered queries, one line per result:
{user_id, query_text, sql_query, result_data, created_at}
"""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List

from query_engine.errors import PersistenceFailure
from query_engine.models import Record
from utils.logger import setup_logger

logger = setup_logger('audit_store')


class AuditStore:
    """JSONL audit trail of query results."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record(self, user_id: str, query_text: str, sql_query: str, result_data: List[Record]) -> Dict[str, Any]:
        """
        Append one audit row.

        Raises:
            PersistenceFailure: the log file could not be written
        """
        row = {
            'user_id': user_id,
            'query_text': query_text,
            'sql_query': sql_query,
            'result_data': result_data,
            'created_at': datetime.now().isoformat(),
        }
        line = json.dumps(row, ensure_ascii=False, default=str)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(line + '\n')
        except OSError as e:
            raise PersistenceFailure(f"Failed to write audit record to {self.path}: {e}") from e
        logger.debug(f"Audit record written for user {user_id}")
        return row

    def entries(self) -> Iterator[Dict[str, Any]]:
        """Audit rows in write order; unreadable lines are skipped."""
        if not self.path.exists():
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except ValueError:
                    logger.warning(f"Skipping malformed audit line in {self.path.name}")

    def clear(self) -> bool:
        """Delete the audit log. Returns True if a file was removed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
