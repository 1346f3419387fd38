"""
Unit tests for the generic resource handlers (natours.api.handlers).

Covers:
- List envelopes, filtering, sorting, projection and pagination end to end
- Read, create, update and delete envelopes and NotFound branches
- Strict pagination
- Module-level handler factories
"""
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from natours.api.handlers import (
    ResourceHandlers,
    create_one,
    delete_one,
    get_all,
    get_one,
    update_one,
)
from natours.config import TestingSettings
from natours.db import InMemoryModel, Relation
from natours.errors import CastError, ExecutionError, NotFoundError, ValidationError
from natours.logging import configure_logging
from natours.schemas import ResourceResponse


@pytest.fixture
def handlers(tours):
    return ResourceHandlers(tours)


@pytest.mark.asyncio
async def test_get_all_end_to_end_projection_and_page():
    model = InMemoryModel(
        "Tour", documents=[{"name": "A", "price": 100}, {"name": "B", "price": 50}]
    )
    params = {"sort": "price", "fields": "name", "limit": "1", "page": "1"}
    envelope = await ResourceHandlers(model).get_all(params)
    assert envelope.to_content() == {
        "status": "success",
        "results": 1,
        "data": {"tour": [{"name": "B"}]},
    }


@pytest.mark.asyncio
async def test_get_all_defaults_newest_first_without_version(handlers):
    envelope = await handlers.get_all({})
    docs = envelope.data["tour"]
    assert [doc["name"] for doc in docs] == ["C", "B", "A"]
    assert all("__v" not in doc for doc in docs)
    assert envelope.results == 3


@pytest.mark.asyncio
async def test_get_all_filters_with_operators(handlers):
    envelope = await handlers.get_all({"price": {"gte": "150"}, "sort": "price"})
    assert [doc["name"] for doc in envelope.data["tour"]] == ["C", "A"]


@pytest.mark.asyncio
async def test_get_all_sorts_descending_then_ascending():
    model = InMemoryModel(
        "Tour",
        documents=[
            {"name": "b", "price": 100},
            {"name": "a", "price": 100},
            {"name": "c", "price": 300},
        ],
    )
    envelope = await ResourceHandlers(model).get_all({"sort": "-price,name"})
    assert [doc["name"] for doc in envelope.data["tour"]] == ["c", "a", "b"]


@pytest.mark.asyncio
async def test_get_all_with_base_filter(handlers):
    envelope = await handlers.get_all({"sort": "name"}, base_filter={"difficulty": "easy"})
    assert [doc["name"] for doc in envelope.data["tour"]] == ["A", "C"]


@pytest.mark.asyncio
async def test_get_all_page_past_the_end_is_empty(handlers):
    envelope = await handlers.get_all({"page": "5", "limit": "2"})
    assert envelope.results == 0
    assert envelope.data == {"tour": []}


@pytest.mark.asyncio
async def test_get_all_strict_pagination_rejects_page_past_the_end(tours):
    handlers = ResourceHandlers(tours, strict_pagination=True)
    with pytest.raises(NotFoundError) as exc:
        await handlers.get_all({"page": "3", "limit": "2"})
    assert exc.value.message == "This page does not exist"
    envelope = await handlers.get_all({"page": "2", "limit": "2"})
    assert envelope.results == 1


@pytest.mark.asyncio
async def test_get_all_strict_pagination_ignores_missing_page(tours):
    handlers = ResourceHandlers(tours, strict_pagination=True)
    envelope = await handlers.get_all({"limit": "2"})
    assert envelope.results == 2


@pytest.mark.asyncio
async def test_get_all_surfaces_malformed_filters(handlers):
    with pytest.raises(ExecutionError):
        await handlers.get_all({"price": {"$where": "1"}})
    with pytest.raises(CastError):
        await handlers.get_all({"price": {"gte": "cheap"}})


@pytest.mark.asyncio
async def test_get_all_with_mocked_model(fake_query):
    fake_query.execute = AsyncMock(return_value=[{"name": "x"}])
    model = MagicMock()
    model.name = "Review"
    model.find.return_value = fake_query

    envelope = await get_all(model)({"rating": {"gte": "4"}})

    model.find.assert_called_once_with(None)
    fake_query.filter.assert_called_once_with({"rating": {"$gte": "4"}})
    assert envelope.results == 1
    assert envelope.data == {"review": [{"name": "x"}]}


@pytest.mark.asyncio
async def test_get_one_returns_document(handlers):
    envelope = await handlers.get_one("2".zfill(24))
    assert isinstance(envelope, ResourceResponse)
    assert envelope.data["tour"]["name"] == "B"
    assert envelope.results is None


@pytest.mark.asyncio
async def test_get_one_missing_raises_not_found(handlers):
    with pytest.raises(NotFoundError) as exc:
        await handlers.get_one("missing")
    assert exc.value.status_code == 404
    assert exc.value.details["resource_id"] == "missing"


@pytest.mark.asyncio
async def test_get_one_populates_configured_paths(tours):
    reviews = InMemoryModel(
        "Review",
        documents=[
            {"review": "Great", "tour": "1".zfill(24)},
            {"review": "Meh", "tour": "2".zfill(24)},
        ],
    )
    tours.relate("reviews", Relation(reviews, foreign_field="tour"))

    handler = get_one(tours, populate={"path": "reviews", "select": "review"})
    envelope = await handler("1".zfill(24))
    assert envelope.data["tour"]["reviews"] == [{"review": "Great"}]


@pytest.mark.asyncio
async def test_create_one_returns_new_document(tours):
    envelope = await create_one(tours)({"name": "D", "price": 50})
    created = envelope.data["tour"]
    assert created["name"] == "D"
    assert len(created["_id"]) == 24
    assert envelope.message == "Tour created"
    assert (await tours.find({"name": "D"}).count()) == 1


@pytest.mark.asyncio
async def test_create_one_validation_failure(tours):
    with pytest.raises(ValidationError) as exc:
        await create_one(tours)({"name": "D", "price": -1})
    assert exc.value.fields[0]["field"] == "price"


@pytest.mark.asyncio
async def test_update_one_returns_updated_document(tours):
    envelope = await update_one(tours)("1".zfill(24), {"price": "999"})
    assert envelope.data["tour"]["price"] == 999
    assert envelope.message == "Tour updated"


@pytest.mark.asyncio
async def test_update_one_missing_raises_not_found(tours):
    with pytest.raises(NotFoundError):
        await update_one(tours)("missing", {"price": 1})


@pytest.mark.asyncio
async def test_update_one_passes_options():
    model = MagicMock()
    model.name = "Tour"
    model.find_by_id_and_update = AsyncMock(return_value={"_id": "1"})
    await ResourceHandlers(model).update_one("1", {"price": 1})
    model.find_by_id_and_update.assert_awaited_once_with(
        "1", {"price": 1}, return_updated=True, run_validators=True
    )


@pytest.mark.asyncio
async def test_delete_one_twice(handlers):
    id = "1".zfill(24)
    envelope = await handlers.delete_one(id)
    assert envelope.data is None
    with pytest.raises(NotFoundError):
        await handlers.delete_one(id)


def test_handlers_key_is_lowercased_model_name(tours):
    assert ResourceHandlers(tours).key == "tour"
    assert repr(ResourceHandlers(tours)) == "ResourceHandlers(model='Tour')"


def test_factories_bind_model(tours):
    for factory in (get_all, get_one, create_one, update_one, delete_one):
        handler = factory(tours)
        assert handler.__self__.model is tours


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.mark.asyncio
async def test_handler_logs_follow_package_logger(tours):
    package = configure_logging(TestingSettings(DEBUG=True))
    recorder = RecordingHandler()
    package.addHandler(recorder)
    try:
        handlers = ResourceHandlers(tours)
        assert handlers.logger.propagate
        assert handlers.logger.getEffectiveLevel() == logging.DEBUG
        await handlers.get_all({})
    finally:
        package.removeHandler(recorder)

    messages = [
        record.getMessage()
        for record in recorder.records
        if record.name == "natours.api.handlers.tour"
    ]
    assert any(message.startswith("Listed 3 tour documents") for message in messages)
