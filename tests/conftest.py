from datetime import datetime, timezone

import pytest

from core.clock import fixed_clock
from services.document_store import InMemoryDocumentStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    return fixed_clock(FIXED_NOW)
