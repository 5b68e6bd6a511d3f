"""
Pytest configuration and shared fixtures.
"""

import threading
import time
from typing import List

import pytest

from clearance_engine.models.scoring_config import create_default_scoring_config
from clearance_engine.storage.cache_store import InMemoryCacheStore


EXAMPLE_HEADER = [
    "K_Number", "AC", "PC", "DeviceName", "Statement", "SubmType", "Country", "ProcTimeDays",
]

EXAMPLE_RECORD = [
    "K123456", "OR", "ABC", "Knee Brace with sensor",
    "Indicated for orthopedic support", "Traditional", "US", 165,
]


class FakeEnricher:
    """Stands in for RecapEnricher; records every company it is asked about."""

    configured = True

    def __init__(self, text: str = "Acme makes orthopedic devices.", error: Exception = None,
                 delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def generate(self, company_name: str) -> str:
        with self._lock:
            self.calls.append(company_name)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


class FailingStore(InMemoryCacheStore):
    """Store whose reads and/or writes raise the given error."""

    def __init__(self, rows=(), load_error: Exception = None, save_error: Exception = None):
        super().__init__(rows)
        self.load_error = load_error
        self.save_error = save_error

    def load_all(self):
        if self.load_error is not None:
            raise self.load_error
        return super().load_all()

    def save_all(self, entries):
        if self.save_error is not None:
            raise self.save_error
        super().save_all(entries)


@pytest.fixture
def example_header() -> List[str]:
    return list(EXAMPLE_HEADER)


@pytest.fixture
def example_record() -> list:
    return list(EXAMPLE_RECORD)


@pytest.fixture
def applicant_header() -> List[str]:
    return EXAMPLE_HEADER + ["Applicant"]


@pytest.fixture
def sensor_config():
    """Default configuration with a high-value keyword set of just 'sensor'."""
    return create_default_scoring_config(high_value_keywords=["sensor"])


@pytest.fixture
def fake_enricher() -> FakeEnricher:
    return FakeEnricher()


@pytest.fixture
def memory_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()

