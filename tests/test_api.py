"""Tests for the HTTP endpoints."""

from __future__ import annotations

import pytest
from fastapi import status

from wallet_login import __version__
from tests.conftest import sign

SHORT = "0x123"


def _login(client, wallet) -> dict:
    client.post("/register", json={"address": wallet.address})
    nonce = client.get(f"/users/{wallet.address}/nonce").json()["nonce"]
    response = client.post(
        "/signin",
        json={"address": wallet.address, "nonce": nonce, "signature": sign(wallet, nonce)},
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "healthy", "version": __version__}


def test_end_to_end(client, wallet):
    response = client.post("/register", json={"address": wallet.address})
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["address"] == wallet.address.lower()

    response = client.get(f"/users/{wallet.address}/nonce")
    assert response.status_code == status.HTTP_200_OK
    nonce = response.json()["nonce"]
    assert nonce.isdigit()

    payload = {"address": wallet.address, "nonce": nonce, "signature": sign(wallet, nonce)}
    response = client.post("/signin", json=payload)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["token"]
    assert body["address"] == wallet.address.lower()

    response = client.post("/signin", json=payload)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "nonce_mismatch"


def test_register_conflict(client, wallet):
    assert client.post("/register", json={"address": wallet.address}).status_code == 201
    response = client.post("/register", json={"address": wallet.address.lower()})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "conflict"


def test_nonce_unknown_address(client, wallet):
    response = client.get(f"/users/{wallet.address}/nonce")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_signin_unknown_address(client, wallet):
    response = client.post(
        "/signin",
        json={"address": wallet.address, "nonce": "1", "signature": sign(wallet, "1")},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_signin_wrong_key(client, wallet, other_wallet):
    client.post("/register", json={"address": wallet.address})
    nonce = client.get(f"/users/{wallet.address}/nonce").json()["nonce"]
    response = client.post(
        "/signin",
        json={"address": wallet.address, "nonce": nonce, "signature": sign(other_wallet, nonce)},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "invalid_signature"


def test_signin_wrong_nonce(client, wallet):
    client.post("/register", json={"address": wallet.address})
    response = client.post(
        "/signin",
        json={"address": wallet.address, "nonce": "42", "signature": sign(wallet, "42")},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "nonce_mismatch"


@pytest.mark.parametrize(
    "method,path,payload",
    [
        ("post", "/register", {"address": SHORT}),
        ("get", f"/users/{SHORT}/nonce", None),
        ("post", "/signin", {"address": SHORT, "nonce": "1", "signature": "0x00"}),
    ],
)
def test_short_address_rejected_everywhere(client, method, path, payload):
    kwargs = {"json": payload} if payload is not None else {}
    response = getattr(client, method)(path, **kwargs)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "invalid_address"


def test_missing_field_is_validation_error(client):
    response = client.post("/signin", json={"address": "0x" + "a" * 40})
    assert response.status_code == 422


def test_welcome_requires_session(client):
    assert client.get("/welcome").status_code == status.HTTP_401_UNAUTHORIZED
    response = client.get("/welcome", headers={"Authorization": "Token abc"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    response = client.get("/welcome", headers={"Authorization": "Bearer abc"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "invalid_session"


def test_welcome_and_signout(client, wallet):
    token = _login(client, wallet)["token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = client.get("/welcome", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "address": wallet.address.lower(),
        "message": f"Welcome {wallet.address}",
    }

    assert client.post("/signout", headers=headers).status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/welcome", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED


def test_cors_allows_any_origin(client):
    response = client.get("/health", headers={"Origin": "https://dapp.example"})
    assert response.headers["access-control-allow-origin"] == "*"
