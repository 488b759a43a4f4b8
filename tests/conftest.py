"""Shared fixtures for wallet-login tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from eth_account import Account
from eth_account.signers.local import LocalAccount
from fastapi.testclient import TestClient

from wallet_login.api import app, init_deps
from wallet_login.config import Config
from wallet_login.handshake import AuthHandshake
from wallet_login.sessions import SessionIssuer
from wallet_login.store import MemoryUserStore, SqliteUserStore, UserStore
from wallet_login.verifier import sign_nonce


def sign(wallet: LocalAccount, nonce: str) -> str:
    return sign_nonce(wallet.key, nonce)


@pytest.fixture()
def wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def other_wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> Iterator[UserStore]:
    if request.param == "sqlite":
        s: UserStore = SqliteUserStore(tmp_path / "accounts.db")
    else:
        s = MemoryUserStore()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def handshake(store: UserStore) -> AuthHandshake:
    return AuthHandshake(store=store, sessions=SessionIssuer(ttl_seconds=3600))


@pytest.fixture()
def client(handshake: AuthHandshake) -> TestClient:
    init_deps(Config(), handshake)
    return TestClient(app)
