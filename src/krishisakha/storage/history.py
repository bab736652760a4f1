"""Query history persistence and background recording."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Protocol, Sequence
from uuid import uuid4

from krishisakha.metrics.observability import get_logger
from krishisakha.models import AdvisoryResponse, utcnow


@dataclass(frozen=True)
class QueryRecord:
    """Stored question and answer for one user."""

    user_id: str
    query_text: str
    original_query_text: str
    detected_language: str
    language: str
    advice: str
    confidence: float
    factual_basis: str
    record_id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_response(
        cls,
        user_id: str,
        original_text: str,
        response: AdvisoryResponse,
    ) -> "QueryRecord":
        return cls(
            user_id=user_id,
            query_text=response.query,
            original_query_text=original_text,
            detected_language=response.detected_language,
            language=response.language,
            advice=response.answer_text,
            confidence=response.confidence,
            factual_basis=response.factual_basis,
        )


class HistoryStore(Protocol):
    """Protocol for query history backends."""

    def insert(self, record: QueryRecord) -> None:
        """Persist a record."""

    def list_recent(self, user_id: str, limit: int = 10) -> Sequence[QueryRecord]:
        """Return the user's most recent records, newest first."""

    def delete(self, record_id: str, user_id: str) -> bool:
        """Delete a record owned by ``user_id``. Returns ``False`` when nothing matched."""


class InMemoryHistoryStore:
    """Process-local history store."""

    def __init__(self) -> None:
        self._records: Dict[str, QueryRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: QueryRecord) -> None:
        with self._lock:
            self._records[record.record_id] = record

    def list_recent(self, user_id: str, limit: int = 10) -> Sequence[QueryRecord]:
        if limit <= 0:
            return []
        with self._lock:
            owned = [record for record in self._records.values() if record.user_id == user_id]
        owned.sort(key=lambda record: record.created_at, reverse=True)
        return owned[:limit]

    def delete(self, record_id: str, user_id: str) -> bool:
        with self._lock:
            record = self._records.get(record_id)
            if record is None or record.user_id != user_id:
                return False
            del self._records[record_id]
            return True

    def __len__(self) -> int:
        return len(self._records)


class HistoryRecorder:
    """Writes records in the background with a bounded number of attempts."""

    def __init__(
        self,
        store: HistoryStore,
        *,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._logger = get_logger("history")

    async def write(self, record: QueryRecord) -> bool:
        """Insert ``record``, retrying failed attempts. Never raises."""

        for attempt in range(1, self._max_attempts + 1):
            try:
                self._store.insert(record)
            except Exception as exc:
                self._logger.warning(
                    "history.insert_failed",
                    record_id=record.record_id,
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt < self._max_attempts:
                    await self._sleep(self._retry_delay)
                continue
            self._logger.info("history.recorded", record_id=record.record_id, attempt=attempt)
            return True
        self._logger.error("history.dropped", record_id=record.record_id, attempts=self._max_attempts)
        return False


__all__ = ["HistoryRecorder", "HistoryStore", "InMemoryHistoryStore", "QueryRecord"]
