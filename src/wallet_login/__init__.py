"""Wallet login: challenge-response authentication for Ethereum accounts."""

__version__ = "0.1.0"
