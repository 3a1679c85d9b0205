"""Shared fixtures: a fresh SQLite file and app per test."""

import httpx
import pytest
from fastapi.testclient import TestClient

from chronoline.app import create_app
from chronoline.database.db import init_db


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "chronoline-test.db")


@pytest.fixture
def app(db_path):
    return create_app(database_path=db_path)


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan, which creates the schema.
    with TestClient(app) as test_client:
        yield test_client


def register(client, username="alice", email=None, password="secret123"):
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    return bearer(register(client, "alice")["token"])


@pytest.fixture
def bob(client):
    return bearer(register(client, "bob")["token"])


@pytest.fixture
def timeline(client, alice):
    response = client.post(
        "/api/timelines",
        json={"name": "Trip", "settings": {"pixelsPerDay": 50, "theme": "dark"}},
        headers=alice,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def api_client(app, db_path):
    """An httpx client driving the app in-process (no lifespan, so init the schema here)."""
    await init_db(db_path)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver/api") as http:
        yield http
