import os

# Настройки должны быть в окружении до импорта blog.*
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["CREATE_TABLES"] = "true"
os.environ["REGISTER_RATE_LIMIT"] = "1000/minute"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ.pop("REDIS_URL", None)

from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from blog.main import create_app

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def app() -> FastAPI:
    return create_app()


@pytest.fixture()
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db(app: FastAPI, client: TestClient) -> Generator[Session, None, None]:
    """Сессия к той же in-memory базе, что и у приложения."""
    session = app.state.db.new_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def register(client: TestClient, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "firstName": username.title(),
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "user": body["user"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


def create_post(client: TestClient, headers: dict, **fields) -> dict:
    payload = {"title": "Hello", "content": "World"}
    payload.update(fields)
    response = client.post("/api/v1/posts", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["post"]


@pytest.fixture()
def alice(client: TestClient) -> dict:
    return register(client, "alice")


@pytest.fixture()
def bob(client: TestClient) -> dict:
    return register(client, "bob")
