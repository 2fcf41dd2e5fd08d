"""Регистрация, логин и профиль."""

from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from blog.models import User
from blog.utils.security import create_access_token, decode_token, verify_password

from conftest import DEFAULT_PASSWORD, register


def test_register_returns_user_and_token(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "testuser",
            "email": "test@example.com",
            "password": "password123",
            "firstName": "Test",
            "lastName": "User",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["username"] == "testuser"
    assert body["user"]["firstName"] == "Test"
    assert body["user"]["isActive"] is True
    assert "password" not in body["user"]
    assert "hashedPassword" not in body["user"]
    assert body["tokenType"] == "bearer"
    assert decode_token(body["token"])["sub"] == str(body["user"]["id"])


def test_password_is_stored_hashed(client: TestClient, db: Session, alice: dict):
    user = db.query(User).filter(User.id == alice["user"]["id"]).one()
    assert user.hashed_password != DEFAULT_PASSWORD
    assert verify_password(DEFAULT_PASSWORD, user.hashed_password)


def test_register_duplicate_is_conflict(client: TestClient, alice: dict):
    response = client.post(
        "/api/v1/auth/register",
        json={"username": "alice", "email": "other@example.com", "password": "password123"},
    )
    assert response.status_code == 409

    response = client.post(
        "/api/v1/auth/register",
        json={"username": "alice2", "email": "alice@example.com", "password": "password123"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


def test_register_validation_reports_fields(client: TestClient):
    response = client.post(
        "/api/v1/auth/register",
        json={"username": "a!", "email": "not-an-email", "password": "onlyletters"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation_error"
    fields = {error["field"] for error in body["errors"]}
    assert {"username", "email", "password"} <= fields


def test_login_success_updates_last_login(client: TestClient, alice: dict):
    assert alice["user"]["lastLogin"] is None

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "alice@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == alice["user"]["id"]
    assert body["user"]["lastLogin"] is not None
    assert body["token"]


def test_login_wrong_password(client: TestClient, alice: dict):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "alice@example.com", "password": "wrongpass1"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_inactive_user(client: TestClient, db: Session, alice: dict):
    db.query(User).filter(User.id == alice["user"]["id"]).update({User.is_active: False})
    db.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "alice@example.com", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 401


def test_me_requires_token(client: TestClient):
    response = client.get("/api/v1/users/me")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_me_rejects_bad_token(client: TestClient):
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_me_rejects_token_of_deleted_user(client: TestClient):
    token = create_access_token(999)
    response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_me_and_profile_update(client: TestClient, alice: dict):
    response = client.get("/api/v1/users/me", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"

    response = client.put(
        "/api/v1/users/me",
        json={"lastName": "Liddell", "avatar": "https://example.com/a.png"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["lastName"] == "Liddell"
    assert body["firstName"] == "Alice"
    assert body["avatar"] == "https://example.com/a.png"


def test_profile_update_requires_a_field(client: TestClient, alice: dict):
    response = client.put("/api/v1/users/me", json={}, headers=alice["headers"])
    assert response.status_code == 400


def test_register_helper_gives_distinct_users(client: TestClient):
    first = register(client, "carol")
    second = register(client, "dave")
    assert first["user"]["id"] != second["user"]["id"]


def test_me_rejects_expired_token(client: TestClient, alice: dict):
    token = create_access_token(alice["user"]["id"], expires_delta=timedelta(seconds=-1))
    response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_me_rejects_out_of_range_subject(client: TestClient):
    token = create_access_token(10**19)
    response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
