"""Tests for the administration CLI."""

from __future__ import annotations

import sys

from wallet_login import cli
from wallet_login.store import SqliteUserStore
from wallet_login.verifier import SignatureVerifier


def _run(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["wallet-login-ctl", *argv])
    return cli.main()


def _write_config(tmp_path, backend: str = "sqlite"):
    db_path = tmp_path / "accounts.db"
    config_path = tmp_path / "config.toml"
    config_path.write_text(f'[database]\nbackend = "{backend}"\npath = "{db_path.as_posix()}"\n')
    return config_path, db_path


def test_nonce(monkeypatch, capsys):
    assert _run(monkeypatch, "nonce") == 0
    assert capsys.readouterr().out.strip().isdigit()


def test_sign(monkeypatch, capsys, tmp_path, wallet):
    key_file = tmp_path / "wallet.key"
    key_file.write_text("0x" + bytes(wallet.key).hex() + "\n")

    assert _run(monkeypatch, "sign", "--key-file", str(key_file), "--nonce", "777") == 0

    out = capsys.readouterr().out
    signature = out.split("Signature:")[1].strip()
    assert wallet.address in out
    assert SignatureVerifier().verify(wallet.address, "777", signature)


def test_sign_missing_key(monkeypatch, tmp_path):
    assert _run(monkeypatch, "sign", "-k", str(tmp_path / "absent"), "-n", "1") == 1


def test_accounts_list_and_show(monkeypatch, capsys, tmp_path, wallet):
    config_path, db_path = _write_config(tmp_path)
    store = SqliteUserStore(db_path)
    store.create_if_absent(wallet.address.lower(), "555")
    store.close()

    assert _run(monkeypatch, "-c", str(config_path), "accounts", "list") == 0
    assert wallet.address in capsys.readouterr().out

    assert _run(monkeypatch, "-c", str(config_path), "accounts", "show", wallet.address) == 0
    out = capsys.readouterr().out
    assert "555" in out
    assert "Never" in out


def test_accounts_show_unknown(monkeypatch, tmp_path, wallet):
    config_path, _ = _write_config(tmp_path)
    assert _run(monkeypatch, "-c", str(config_path), "accounts", "show", wallet.address) == 1


def test_accounts_require_sqlite(monkeypatch, tmp_path):
    config_path, _ = _write_config(tmp_path, backend="memory")
    assert _run(monkeypatch, "-c", str(config_path), "accounts", "list") == 1
