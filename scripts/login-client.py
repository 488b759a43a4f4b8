#!/usr/bin/env python3
"""
Wallet Login Client

Walks through the wallet-login handshake against a running server:
register the wallet (if needed), fetch the challenge nonce, sign it with
personal_sign and exchange the signature for a session token.

This script is standalone and does not depend on the wallet-login package.

Usage:
    login-client.py login --wallet-key /path/to/key
    login-client.py login --wallet-key /path/to/key --server http://127.0.0.1:8001
    login-client.py welcome --token <token>

Requirements:
    pip install eth-account
"""

from __future__ import annotations

CLIENT_VERSION = "0.1.0"

import argparse
import json
import os
import sys
import urllib.error
import urllib.request
from pathlib import Path

try:
    from eth_account import Account
    from eth_account.messages import encode_defunct
except ImportError as e:
    print(f"Missing dependency: {e}", file=sys.stderr)
    print("Install with: pip install eth-account", file=sys.stderr)
    sys.exit(1)


DEFAULT_SERVER = "http://127.0.0.1:8001"
DEFAULT_TIMEOUT = 10  # seconds


class ServerError(Exception):
    """Server answered with an error status."""

    def __init__(self, status: int, body: dict):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body.get('detail', body)}")


def call(
    server: str,
    method: str,
    path: str,
    payload: dict | None = None,
    token: str | None = None,
) -> tuple[int, dict]:
    """Send a JSON request and return (status, decoded body)."""
    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    request = urllib.request.Request(f"{server.rstrip('/')}{path}", data=data, method=method)
    request.add_header("Content-Type", "application/json")
    if token:
        request.add_header("Authorization", f"Bearer {token}")

    try:
        with urllib.request.urlopen(request, timeout=DEFAULT_TIMEOUT) as response:
            raw = response.read(65536)
            return response.status, json.loads(raw) if raw else {}
    except urllib.error.HTTPError as e:
        raw = e.read(65536)
        try:
            body = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            body = {"detail": raw.decode("utf-8", "replace")}
        raise ServerError(e.code, body) from None


def cmd_login(args: argparse.Namespace) -> int:
    wallet_key = Path(args.wallet_key).read_text().strip()
    account = Account.from_key(wallet_key)
    address = account.address
    print(f"Wallet: {address}")

    try:
        call(args.server, "POST", "/register", {"address": address})
        print("Registered new account")
    except ServerError as e:
        if e.status != 409:
            print(f"Registration failed: {e}", file=sys.stderr)
            return 1
        print("Account already registered")

    try:
        _, body = call(args.server, "GET", f"/users/{address}/nonce")
        nonce = body["nonce"]
        print(f"Challenge nonce: {nonce}")

        signed = account.sign_message(encode_defunct(text=nonce))
        signature = "0x" + bytes(signed.signature).hex()

        _, body = call(
            args.server,
            "POST",
            "/signin",
            {"address": address, "nonce": nonce, "signature": signature},
        )
    except ServerError as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return 1
    except urllib.error.URLError as e:
        print(f"Could not reach server: {e}", file=sys.stderr)
        return 1

    print(f"Session token: {body['token']}")
    print(f"Expires at:    {body['expires_at']}")
    return 0


def cmd_welcome(args: argparse.Namespace) -> int:
    try:
        _, body = call(args.server, "GET", "/welcome", token=args.token)
    except ServerError as e:
        print(f"Request failed: {e}", file=sys.stderr)
        return 1
    except urllib.error.URLError as e:
        print(f"Could not reach server: {e}", file=sys.stderr)
        return 1

    print(body["message"])
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Wallet Login Client - Authenticate with a wallet signature"
    )
    parser.add_argument(
        "--version", action="version", version=f"login-client {CLIENT_VERSION}",
    )
    parser.add_argument(
        "--server",
        default=os.environ.get("WALLET_LOGIN_SERVER", DEFAULT_SERVER),
        help=f"Server base URL (default: {DEFAULT_SERVER})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Register if needed and sign in")
    login_parser.add_argument(
        "--wallet-key",
        required=True,
        help="Path to wallet private key file",
    )

    welcome_parser = subparsers.add_parser("welcome", help="Call the authenticated welcome endpoint")
    welcome_parser.add_argument(
        "--token",
        required=True,
        help="Session token from login",
    )

    args = parser.parse_args()

    if args.command == "login":
        return cmd_login(args)
    elif args.command == "welcome":
        return cmd_welcome(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
