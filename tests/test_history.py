from __future__ import annotations

import asyncio
from datetime import timedelta

from krishisakha.models import AdvisoryResponse
from krishisakha.storage import HistoryRecorder, InMemoryHistoryStore, QueryRecord


def _record(user_id: str = "farmer-1", text: str = "wheat prices in punjab", **overrides) -> QueryRecord:
    values = {
        "user_id": user_id,
        "query_text": text,
        "original_query_text": text.title(),
        "detected_language": "eng",
        "language": "eng",
        "advice": "Sell after the rains.",
        "confidence": 0.8,
        "factual_basis": "high",
    }
    values.update(overrides)
    return QueryRecord(**values)


class FlakyStore(InMemoryHistoryStore):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def insert(self, record: QueryRecord) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("database unavailable")
        super().insert(record)


def test_list_recent_is_per_user_and_newest_first():
    store = InMemoryHistoryStore()
    older = _record(text="old question")
    newer = _record(text="new question", created_at=older.created_at + timedelta(minutes=5))
    store.insert(older)
    store.insert(newer)
    store.insert(_record(user_id="farmer-2"))

    assert [record.query_text for record in store.list_recent("farmer-1")] == ["new question", "old question"]
    assert len(store.list_recent("farmer-1", limit=1)) == 1
    assert store.list_recent("farmer-1", limit=0) == []


def test_delete_requires_owner():
    store = InMemoryHistoryStore()
    record = _record()
    store.insert(record)

    assert not store.delete(record.record_id, "someone-else")
    assert store.delete(record.record_id, "farmer-1")
    assert not store.delete(record.record_id, "farmer-1")
    assert len(store) == 0


def test_recorder_retries_until_insert_succeeds(recording_sleep):
    store = FlakyStore(failures=2)
    recorder = HistoryRecorder(store, max_attempts=3, retry_delay=0.5, sleep=recording_sleep)

    assert asyncio.run(recorder.write(_record()))
    assert store.attempts == 3
    assert recording_sleep.calls == [0.5, 0.5]
    assert len(store) == 1


def test_recorder_gives_up_without_raising(recording_sleep):
    store = FlakyStore(failures=10)
    recorder = HistoryRecorder(store, max_attempts=3, sleep=recording_sleep)

    assert asyncio.run(recorder.write(_record())) is False
    assert store.attempts == 3
    assert len(store) == 0


def test_record_from_response():
    response = AdvisoryResponse(
        query="kisan ki fasal",
        answer_text="**Kisan ki fasal**",
        sources=[],
        confidence=0.5,
        factual_basis="low",
        language="hin",
        detected_language="hin-rom",
    )
    record = QueryRecord.from_response("farmer-9", "Kisan ki fasal", response)
    assert record.query_text == "kisan ki fasal"
    assert record.original_query_text == "Kisan ki fasal"
    assert record.detected_language == "hin-rom"
    assert record.language == "hin"
    assert record.advice == "**Kisan ki fasal**"
