from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel, Field

from natours.config import TestingSettings
from natours.db import InMemoryModel

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    # Keep tests independent of the developer's environment
    for name in (
        "APP_ENV",
        "APP_NAME",
        "DEBUG",
        "DATABASE_URL",
        "DEFAULT_PAGE_SIZE",
        "DEFAULT_SORT",
        "STRICT_PAGINATION",
        "REQUEST_LOGGING",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


class TourSchema(BaseModel):
    name: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    difficulty: str = "easy"
    duration: int = 5


def make_tours(count=3):
    """Tours A, B, C... with prices 300, 100, 200 (cycling) and rising createdAt."""
    prices = [300, 100, 200]
    names = [chr(ord("A") + i) for i in range(count)]
    return [
        {
            "_id": f"{i + 1:024x}",
            "name": name,
            "price": prices[i % len(prices)] + 1000 * (i // len(prices)),
            "difficulty": "easy" if i % 2 == 0 else "difficult",
            "duration": 5 + i,
            "createdAt": BASE_TIME + timedelta(days=i),
        }
        for i, name in enumerate(names)
    ]


@pytest.fixture
def tour_schema():
    return TourSchema


@pytest.fixture
def tours():
    """In-memory Tour model seeded with A(300), B(100), C(200)."""
    return InMemoryModel("Tour", schema=TourSchema, unique=("name",), documents=make_tours())


@pytest.fixture
def settings():
    return TestingSettings()


@pytest.fixture
def fake_query():
    """Query mock whose builder methods record calls and return itself."""
    query = MagicMock(name="query")
    for method in ("filter", "sort", "select", "skip", "limit", "populate"):
        getattr(query, method).return_value = query
    return query
