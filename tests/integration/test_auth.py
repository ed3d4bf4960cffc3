from __future__ import annotations

from fastapi.testclient import TestClient
from jose import jwt

from election_ledger.core.config import get_settings


def _login(client: TestClient, identity: str = "0xvoter") -> tuple[str, str]:
    response = client.post("/api/auth/login", json={"identity": identity, "password": "changeme"})
    assert response.status_code == 200
    body = response.json()
    return body["access_token"], body["refresh_token"]


def test_login_returns_signed_tokens(client: TestClient) -> None:
    access_token, refresh_token = _login(client)

    settings = get_settings()
    access_payload = jwt.decode(access_token, settings.jwt_private_key, algorithms=[settings.jwt_algorithm])
    refresh_payload = jwt.decode(refresh_token, settings.jwt_private_key, algorithms=[settings.jwt_algorithm])

    assert access_payload["sub"] == "0xvoter"
    assert access_payload["type"] == "access"
    assert refresh_payload["type"] == "refresh"


def test_login_rejects_bad_password(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"identity": "0xvoter", "password": "wrong"})
    assert response.status_code == 401


def test_refresh_rotates_and_blacklists_tokens(client: TestClient) -> None:
    _, refresh_token = _login(client)

    first_response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert first_response.status_code == 200
    new_refresh_token = first_response.json()["refresh_token"]

    # Rotation invalidates the token that was just exchanged
    second_response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert second_response.status_code == 401

    third_response = client.post("/api/auth/refresh", json={"refresh_token": new_refresh_token})
    assert third_response.status_code == 200


def test_access_token_cannot_refresh(client: TestClient) -> None:
    access_token, _ = _login(client)

    response = client.post("/api/auth/refresh", json={"refresh_token": access_token})
    assert response.status_code == 400


def test_access_token_identifies_caller(client: TestClient) -> None:
    access_token, refresh_token = _login(client, identity="0xadmin")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert response.json() == {"identity": "0xadmin"}

    refresh_as_access = client.get("/api/auth/me", headers={"Authorization": f"Bearer {refresh_token}"})
    assert refresh_as_access.status_code == 401

    garbage = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert garbage.status_code == 401
