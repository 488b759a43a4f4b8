"""Error taxonomy for the login handshake."""

from __future__ import annotations


class WalletLoginError(Exception):
    """Base class for handshake failures.

    Each subclass carries a stable error code and the HTTP status the API
    layer reports it with.
    """

    code = "internal_failure"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__.strip())

    @property
    def message(self) -> str:
        return str(self)


class InvalidAddressError(WalletLoginError):
    """Invalid address."""

    code = "invalid_address"
    status_code = 400


class AccountExistsError(WalletLoginError):
    """User already exists."""

    code = "conflict"
    status_code = 409


class AccountNotFoundError(WalletLoginError):
    """User does not exist."""

    code = "not_found"
    status_code = 404


class NonceMismatchError(WalletLoginError):
    """Nonce is stale, already used or unknown."""

    code = "nonce_mismatch"
    status_code = 401


class InvalidSignatureError(WalletLoginError):
    """Signature does not match address."""

    code = "invalid_signature"
    status_code = 401


class InvalidSessionError(WalletLoginError):
    """Invalid or expired session token."""

    code = "invalid_session"
    status_code = 401


class InternalFailureError(WalletLoginError):
    """Internal failure."""

    code = "internal_failure"
    status_code = 500
