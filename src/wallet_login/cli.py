"""CLI tool for wallet-login administration."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from eth_account import Account

from .address import to_checksum, validate_address
from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import WalletLoginError
from .nonce import generate_nonce
from .store import UserStore, open_store
from .verifier import sign_nonce


def cmd_accounts_list(store: UserStore, args: argparse.Namespace) -> int:
    """List all registered accounts."""
    accounts = store.list_accounts()

    if not accounts:
        print("No accounts found")
        return 0

    print(f"{'Address':<44} {'Registered':<18} {'Last Login'}")
    print("-" * 80)

    for a in accounts:
        registered = a.created_at.strftime("%Y-%m-%d %H:%M")
        last_login = a.last_login_at.strftime("%Y-%m-%d %H:%M") if a.last_login_at else "Never"
        print(f"{to_checksum(a.address):<44} {registered:<18} {last_login}")

    return 0


def cmd_accounts_show(store: UserStore, args: argparse.Namespace) -> int:
    """Show details of an account."""
    try:
        account = store.get(validate_address(args.address))
    except WalletLoginError as e:
        print(f"{e}", file=sys.stderr)
        return 1

    print(f"Address:      {to_checksum(account.address)}")
    print(f"Nonce:        {account.current_nonce}")
    print(f"Issued:       {account.nonce_issued_at}")
    print(f"Registered:   {account.created_at}")
    print(f"Last Login:   {account.last_login_at or 'Never'}")

    return 0


def cmd_nonce(args: argparse.Namespace) -> int:
    """Print a freshly generated nonce."""
    print(generate_nonce())
    return 0


def cmd_sign(args: argparse.Namespace) -> int:
    """Sign a nonce with a private key file, as a wallet would."""
    try:
        private_key = Path(args.key_file).read_text().strip()
        account = Account.from_key(private_key)
    except (OSError, ValueError) as e:
        print(f"Error loading key: {e}", file=sys.stderr)
        return 1

    print(f"Address:   {account.address}")
    print(f"Signature: {sign_nonce(private_key, args.nonce)}")
    return 0


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Wallet Login Administration",
        prog="wallet-login-ctl",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Account commands
    accounts_parser = subparsers.add_parser("accounts", help="Account inspection")
    accounts_sub = accounts_parser.add_subparsers(dest="accounts_command")

    accounts_sub.add_parser("list", help="List registered accounts")

    accounts_show = accounts_sub.add_parser("show", help="Show account details")
    accounts_show.add_argument("address", help="Address to show")

    # Nonce command
    subparsers.add_parser("nonce", help="Generate a nonce")

    # Sign command
    sign_parser = subparsers.add_parser("sign", help="Sign a nonce with a private key (testing)")
    sign_parser.add_argument("--key-file", "-k", required=True, help="Path to private key file")
    sign_parser.add_argument("--nonce", "-n", required=True, help="Nonce to sign")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "nonce":
        return cmd_nonce(args)
    elif args.command == "sign":
        return cmd_sign(args)

    # Load config and open the account store
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    if config.database.backend != "sqlite":
        print("Account inspection requires the sqlite database backend", file=sys.stderr)
        return 1

    store = open_store(config.database)
    try:
        if args.accounts_command == "list":
            return cmd_accounts_list(store, args)
        elif args.accounts_command == "show":
            return cmd_accounts_show(store, args)
        else:
            accounts_parser.print_help()
            return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
