"""Persistence for past advisory queries."""

from .history import HistoryRecorder, HistoryStore, InMemoryHistoryStore, QueryRecord

__all__ = ["HistoryRecorder", "HistoryStore", "InMemoryHistoryStore", "QueryRecord"]
