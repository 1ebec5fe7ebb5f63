"""Bounded, newest-first log of answered queries."""
from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as SchemaError

from file_search_proxy.core.logging import get_logger
from file_search_proxy.schemas.file_search import QueryHistoryItem, QueryRequest, QueryResponse

logger = get_logger(__name__)

MAX_HISTORY_ITEMS = 50


class QueryHistory:
    """Keeps the most recent answers, evicting the oldest past ``limit``.

    When ``path`` is given the log is stored there as a JSON array and
    reloaded on start. Read or write failures are logged and otherwise
    ignored: losing history never fails a query.
    """

    def __init__(self, path: Optional[str] = None, limit: int = MAX_HISTORY_ITEMS):
        self.path = Path(path) if path else None
        self.limit = limit
        self._lock = threading.Lock()
        self._items: List[QueryHistoryItem] = self._load()

    def items(self) -> List[QueryHistoryItem]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: QueryHistoryItem) -> None:
        with self._lock:
            self._items.insert(0, item)
            del self._items[self.limit:]
            self._save()

    def record(self, request: QueryRequest, response: QueryResponse) -> QueryHistoryItem:
        item = QueryHistoryItem(
            **response.model_dump(),
            question=request.question,
            timestamp=datetime.now(timezone.utc).isoformat(),
            store_names=list(request.store_names),
        )
        self.add(item)
        return item

    def clear(self) -> None:
        with self._lock:
            self._items = []
            if self.path is not None:
                try:
                    self.path.unlink(missing_ok=True)
                except OSError:
                    logger.exception("Failed to remove query history %s", self.path)

    def _load(self) -> List[QueryHistoryItem]:
        if self.path is None or not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                return []
            return [QueryHistoryItem.model_validate(entry) for entry in raw][: self.limit]
        except (OSError, ValueError, SchemaError):
            logger.exception("Failed to load query history from %s", self.path)
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        payload = [item.model_dump(mode="json", by_alias=True) for item in self._items]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError:
            logger.exception("Failed to save query history to %s", self.path)
