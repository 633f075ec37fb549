"""
Pytest fixtures for the stock tracker tests.

Provides a fixed clock, item factories, an in-memory store and canned HTTP
responses for the text-generation caller.
"""

import json
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from stock_tracker.app import StockTrackerApp
from stock_tracker.identity import StaticIdentity
from stock_tracker.resilient_caller import ResilientCaller
from stock_tracker.schemas import StockItem
from stock_tracker.store import InMemoryStore

# =============================================================================
# TIME & ITEMS
# =============================================================================

NOW = datetime(2024, 3, 10, 9, 30)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_item():
    """Factory for StockItems expiring `days` calendar days after NOW."""
    counter = iter(range(1, 10_000))

    def _make(name: str = "Milk", days: int = 10, alarm_days: int = 7, **overrides) -> StockItem:
        fields = {
            "id": f"item-{next(counter)}",
            "name": name,
            "quantity": 1,
            "expirationDate": (NOW.date() + timedelta(days=days)).isoformat(),
            "alarmDays": alarm_days,
            "category": "Dairy",
        }
        fields.update(overrides)
        return StockItem.model_validate(fields)

    return _make


def item_document(name: str, days: int, alarm_days: int = 7, **overrides) -> dict:
    document = {
        "name": name,
        "quantity": 2,
        "expirationDate": (NOW.date() + timedelta(days=days)).isoformat(),
        "alarmDays": alarm_days,
        "category": "Dairy",
    }
    document.update(overrides)
    return document


# =============================================================================
# HTTP FIXTURES
# =============================================================================

def make_response(status_code: int, body=None, reason: str = "") -> requests.Response:
    """Builds a real requests.Response carrying a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if isinstance(body, (dict, list)):
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = (body or "").encode("utf-8")
    return response


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def mock_session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def mock_sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def caller(mock_session: MagicMock, mock_sleep: MagicMock) -> ResilientCaller:
    return ResilientCaller(
        url="https://example.test/generate",
        api_key="test-key",
        session=mock_session,
        max_attempts=3,
        initial_delay_ms=1000,
        timeout=5,
        sleep=mock_sleep,
    )


# =============================================================================
# APP FIXTURES
# =============================================================================

@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(app_id="test-app")


@pytest.fixture
def app(store: InMemoryStore, caller: ResilientCaller) -> StockTrackerApp:
    tracker = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
    tracker.start()
    yield tracker
    tracker.stop()


@pytest.fixture
def today() -> date:
    return NOW.date()
