"""Account address validation and canonicalization."""

from __future__ import annotations

import re

from web3 import Web3

from .errors import InvalidAddressError

ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")


def is_valid_address(raw: object) -> bool:
    """Check whether raw is a 0x-prefixed 40 hex digit address."""
    return isinstance(raw, str) and ADDRESS_PATTERN.fullmatch(raw) is not None


def validate_address(raw: object) -> str:
    """Validate an address and return its canonical lowercase form.

    Raises:
        InvalidAddressError: If raw is not 0x followed by exactly 40 hex digits.
    """
    if not is_valid_address(raw):
        raise InvalidAddressError(f"Invalid address: {str(raw)[:50]!r}")
    return raw.lower()


def to_checksum(address: str) -> str:
    """Render a validated address in EIP-55 mixed case for display."""
    return Web3.to_checksum_address(validate_address(address))
