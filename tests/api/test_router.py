"""
Integration tests for the resource router (natours.api.router).

Covers:
- Status codes and envelopes of all five routes
- Query string parsing into the list pipeline
- Alias routes, nested routes with base filters and body defaults
- Error bodies produced by the centralized handlers
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from natours.api.router import create_resource_router, handlers_from_settings
from natours.config import TestingSettings
from natours.db import InMemoryModel
from natours.factory import configure_app

PREFIX = "/api/v1/tours"
FIRST_ID = "1".zfill(24)


def build_app(*routers_and_prefixes, settings=None):
    app = FastAPI()
    configure_app(app, settings or TestingSettings(), use_database=False)
    for router, prefix in routers_and_prefixes:
        app.include_router(router, prefix=prefix)
    return app


@pytest.fixture
def client(tours, settings):
    router = create_resource_router(
        tours,
        settings=settings,
        aliases={"/top-2-cheap": {"limit": "2", "sort": "price", "fields": "name,price"}},
    )
    return TestClient(build_app((router, PREFIX), settings=settings))


def test_list_returns_envelope(client):
    response = client.get(PREFIX)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["results"] == 3
    assert [doc["name"] for doc in body["data"]["tour"]] == ["C", "B", "A"]
    assert "__v" not in body["data"]["tour"][0]
    assert "message" not in body


def test_list_end_to_end_projection_and_page(settings):
    model = InMemoryModel(
        "Tour", documents=[{"name": "A", "price": 100}, {"name": "B", "price": 50}]
    )
    client = TestClient(build_app((create_resource_router(model, settings=settings), PREFIX)))
    response = client.get(PREFIX, params={"sort": "price", "fields": "name", "limit": "1", "page": "1"})
    assert response.json()["data"] == {"tour": [{"name": "B"}]}


def test_list_bracket_operators(client):
    response = client.get(f"{PREFIX}?price[gte]=150&sort=price&fields=name")
    assert response.json()["data"]["tour"] == [{"name": "C"}, {"name": "A"}]


def test_list_repeated_keys_match_any(client):
    response = client.get(f"{PREFIX}?difficulty=easy&difficulty=difficult")
    assert response.json()["results"] == 3


def test_list_uses_settings_page_size(tours):
    settings = TestingSettings(DEFAULT_PAGE_SIZE=2)
    router = create_resource_router(tours, settings=settings)
    client = TestClient(build_app((router, PREFIX), settings=settings))
    assert client.get(PREFIX).json()["results"] == 2


def test_alias_overrides_client_params(client):
    response = client.get(f"{PREFIX}/top-2-cheap", params={"limit": "10", "sort": "-price"})
    assert response.status_code == 200
    assert response.json()["data"]["tour"] == [
        {"name": "B", "price": 100},
        {"name": "C", "price": 200},
    ]


def test_alias_keeps_client_filters(client):
    response = client.get(f"{PREFIX}/top-2-cheap", params={"difficulty": "easy"})
    assert [doc["name"] for doc in response.json()["data"]["tour"]] == ["C", "A"]


def test_create_returns_201(client):
    response = client.post(PREFIX, json={"name": "D", "price": 50})
    assert response.status_code == 201
    body = response.json()
    assert body["data"]["tour"]["name"] == "D"
    assert body["message"] == "Tour created"


def test_create_invalid_body_fails(client):
    response = client.post(PREFIX, json={"price": 50})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["errors"][0]["field"] == "name"
    assert body["message"].startswith("Invalid input data.")


def test_create_duplicate_fails(client):
    response = client.post(PREFIX, json={"name": "A", "price": 50})
    assert response.status_code == 400
    assert response.json()["message"] == "Duplicate field value: A. Please use another value!"


def test_create_rejects_non_object_body(client):
    response = client.post(PREFIX, json=["not", "an", "object"])
    assert response.status_code == 422
    assert response.json()["status"] == "fail"


def test_get_one(client):
    response = client.get(f"{PREFIX}/{FIRST_ID}")
    assert response.status_code == 200
    assert response.json()["data"]["tour"]["name"] == "A"


def test_get_one_missing_is_404(client):
    response = client.get(f"{PREFIX}/nope")
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "fail"
    assert body["message"] == "No tour found with id 'nope'"
    assert body["errors"][0]["code"] == "NOT_FOUND"


def test_update(client):
    response = client.patch(f"{PREFIX}/{FIRST_ID}", json={"price": 10})
    assert response.status_code == 200
    assert response.json()["data"]["tour"]["price"] == 10


def test_update_missing_is_404(client):
    assert client.patch(f"{PREFIX}/nope", json={"price": 10}).status_code == 404


def test_delete_twice(client):
    first = client.delete(f"{PREFIX}/{FIRST_ID}")
    assert first.status_code == 204
    assert first.content == b""
    second = client.delete(f"{PREFIX}/{FIRST_ID}")
    assert second.status_code == 404
    assert client.get(PREFIX).json()["results"] == 2


def test_unsupported_operator_is_400(client):
    response = client.get(f"{PREFIX}?price[$where]=1")
    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "EXECUTION_FAILED"


def test_invalid_value_is_400(client):
    response = client.get(f"{PREFIX}?price[lt]=cheap")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid price: cheap."


def test_nested_router_scopes_and_fills_parent(tours, settings):
    reviews = InMemoryModel(
        "Review",
        documents=[
            {"review": "Great", "tour": "t1"},
            {"review": "Fine", "tour": "t2"},
        ],
    )

    def scope(tour_id: str):
        return {"tour": tour_id}

    nested = create_resource_router(
        reviews, settings=settings, base_filter=scope, body_defaults=scope
    )
    client = TestClient(build_app((nested, "/api/v1/tours/{tour_id}/reviews")))

    listed = client.get("/api/v1/tours/t1/reviews")
    assert [doc["review"] for doc in listed.json()["data"]["review"]] == ["Great"]

    created = client.post("/api/v1/tours/t2/reviews", json={"review": "New"})
    assert created.json()["data"]["review"]["tour"] == "t2"

    explicit = client.post("/api/v1/tours/t2/reviews", json={"review": "X", "tour": "t1"})
    assert explicit.json()["data"]["review"]["tour"] == "t1"


def test_explicit_handlers_are_used(tours):
    handlers = handlers_from_settings(tours, TestingSettings(DEFAULT_SORT="name"))
    router = create_resource_router(tours, handlers=handlers)
    client = TestClient(build_app((router, PREFIX)))
    assert [doc["name"] for doc in client.get(PREFIX).json()["data"]["tour"]] == ["A", "B", "C"]


def test_routes_are_named_after_model(tours, settings):
    router = create_resource_router(tours, settings=settings)
    names = {route.name for route in router.routes}
    assert names == {"list_tour", "create_tour", "get_tour", "update_tour", "delete_tour"}
    assert router.tags == ["Tour"]
