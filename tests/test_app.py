import dataclasses
import json

from fastapi.testclient import TestClient

from todo_api.generate_openapi import generate_openapi
from todo_api.main import create_app
from todo_api.repositories import InMemoryRepository
from todo_api.services import build_services
from todo_api.settings import get_settings


def make_settings(**overrides):
    return dataclasses.replace(get_settings(), **overrides)


def signed_in_client(app, username, password):
    client = TestClient(app)
    nonce = client.post("/api/v1/auth/nonces").json()["data"]["nonce"]
    res = client.post("/api/v1/auth/signin", json={"username": username, "password": password, "nonce": nonce})
    assert res.status_code == 200
    client.headers["Authorization"] = res.json()["data"]["access_token"]
    return client


class TestCreateApp:
    def test_apps_do_not_share_state(self):
        first = signed_in_client(create_app(make_settings()), "test-user", "test-password")
        second = signed_in_client(create_app(make_settings()), "test-user", "test-password")

        assert first.post("/api/v1/todos/", json={"data": {"title": "only in first"}}).status_code == 201
        assert second.get("/api/v1/todos/").json()["data"]["todos"] == []

    def test_token_not_valid_on_other_instance(self):
        settings = make_settings()
        first = signed_in_client(create_app(settings), "test-user", "test-password")
        other = TestClient(create_app(settings))
        res = other.get("/api/v1/todos/", headers={"Authorization": first.headers["Authorization"]})
        assert res.status_code == 401

    def test_injected_services(self):
        settings = make_settings(seed_username=None, seed_password=None)
        services = build_services(settings)
        services.users.add_user("carol", "injected")
        app = create_app(settings, services=services)
        assert app.state.services is services
        client = signed_in_client(app, "carol", "injected")
        assert client.get("/api/v1/todos/").status_code == 200

    def test_sqlite_backend(self, tmp_path):
        settings = make_settings(persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "todos.db"))
        client = signed_in_client(create_app(settings), "test-user", "test-password")
        assert client.get("/").json()["backend"] == "sqlite"
        created = client.post("/api/v1/todos/", json={"data": {"title": "stored", "due_date": "2031-03-04"}})
        assert created.status_code == 201
        todo_id = created.json()["data"]["id"]

        # A fresh app on the same file sees the todo
        reopened = signed_in_client(create_app(settings), "test-user", "test-password")
        fetched = reopened.get(f"/api/v1/todos/{todo_id}").json()["data"]
        assert fetched["title"] == "stored"
        assert fetched["due_date"] == "2031-03-04T00:00:00.000Z"

    def test_sqlite_backend_rejects_out_of_range_id(self, tmp_path):
        settings = make_settings(persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "todos.db"))
        client = signed_in_client(create_app(settings), "test-user", "test-password")
        for method in ("GET", "DELETE"):
            res = client.request(method, "/api/v1/todos/99999999999999999999")
            assert res.status_code == 422
            assert res.json()["status"] is False
        assert client.get(f"/api/v1/todos/{2**63 - 1}").status_code == 404

    def test_unexpected_error_uses_envelope(self):
        settings = make_settings()
        services = build_services(settings)

        class BrokenRepository(InMemoryRepository):
            def list(self, query=None):
                raise RuntimeError("storage offline")

        services.todos = BrokenRepository()
        app = create_app(settings, services=services)
        client = signed_in_client(app, "test-user", "test-password")
        quiet = TestClient(app, raise_server_exceptions=False)
        res = quiet.get("/api/v1/todos/", headers={"Authorization": client.headers["Authorization"]})
        assert res.status_code == 500
        assert res.json() == {"status": False, "message": "Internal server error", "data": None}

    def test_unknown_route_uses_envelope(self):
        client = TestClient(create_app(make_settings()))
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.json()["status"] is False


def test_generate_openapi(tmp_path):
    out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"), app=create_app(make_settings()))
    with open(out, encoding="utf-8") as f:
        schema = json.load(f)
    assert {"/api/v1/auth/nonces", "/api/v1/auth/signin", "/api/v1/todos/", "/api/v1/todos/{todo_id}"} <= set(
        schema["paths"]
    )
    assert {t["name"] for t in schema["tags"]} >= {"health", "auth", "todos"}
