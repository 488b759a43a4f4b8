"""Main entry point for wallet-login."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from .api import app, init_deps
from .config import Config, DEFAULT_CONFIG_PATH, load_config
from .handshake import AuthHandshake
from .sessions import SessionIssuer
from .store import open_store
from .verifier import SignatureVerifier

logger = logging.getLogger(__name__)


def build_handshake(config: Config) -> AuthHandshake:
    """Wire the handshake components from configuration."""
    return AuthHandshake(
        store=open_store(config.database),
        verifier=SignatureVerifier(),
        sessions=SessionIssuer(ttl_seconds=config.auth.session_ttl_seconds),
        nonce_ttl_seconds=config.auth.nonce_ttl_seconds,
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Wallet challenge-response login server")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate configuration and exit",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Override API listen host",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Override API listen port",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    if args.check_config:
        print("Configuration is valid")
        print(f"  Listen: {config.api.listen_host}:{config.api.listen_port}")
        print(f"  Nonce TTL: {config.auth.nonce_ttl_seconds}s")
        print(f"  Session TTL: {config.auth.session_ttl_seconds}s")
        if config.database.backend == "sqlite":
            print(f"  Storage: sqlite ({config.database.path})")
        else:
            print("  Storage: memory (accounts are lost on restart)")
        return 0

    handshake = build_handshake(config)
    init_deps(config, handshake)

    host = args.host or config.api.listen_host
    port = args.port or config.api.listen_port

    logger.info(f"Starting wallet-login on {host}:{port}")
    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level=args.log_level,
        )
    finally:
        handshake.store.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
