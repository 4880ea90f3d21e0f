"""Shared pytest fixtures and test doubles for insult_bot tests."""

from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from insult_bot.vocab_service import Category, WordCacheCell


class FakeWordStore:
    """In-memory stand-in for DynamoWordStore that counts scans."""

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        scan_error: Exception | None = None,
        put_error: Exception | None = None,
        scan_delay: float = 0.0,
    ) -> None:
        self.records = list(records or [])
        self.scan_error = scan_error
        self.put_error = put_error
        self.scan_delay = scan_delay
        self.scan_calls = 0
        self.puts: list[tuple[str, Category]] = []
        self._lock = threading.Lock()

    def scan(self) -> list[dict[str, Any]]:
        with self._lock:
            self.scan_calls += 1
        if self.scan_delay:
            time.sleep(self.scan_delay)
        if self.scan_error is not None:
            raise self.scan_error
        return list(self.records)

    def put(self, word: str, category: Category) -> None:
        if self.put_error is not None:
            raise self.put_error
        with self._lock:
            self.puts.append((word, category))


class RecordingSink:
    """Reply sink that remembers every (channel, text) it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def send(self, channel: str, text: str) -> bool:
        with self._lock:
            self.sent.append((channel, text))
        return True


def word_records(descriptors: list[str], subjects: list[str]) -> list[dict[str, Any]]:
    """Build remote records in the current {"word", "category"} layout."""
    return [{"word": w, "category": "descriptor"} for w in descriptors] + [
        {"word": w, "category": "subject"} for w in subjects
    ]


@pytest.fixture
def store() -> FakeWordStore:
    """Store holding one descriptor and one subject."""
    return FakeWordStore(word_records(["awful"], ["jerk"]))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def cell(store: FakeWordStore) -> WordCacheCell:
    return WordCacheCell(store)
