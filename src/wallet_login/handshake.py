"""Register, challenge and login handshake."""

from __future__ import annotations

import enum
import logging
from typing import Callable

from .address import validate_address
from .errors import (
    AccountNotFoundError,
    InvalidSessionError,
    InvalidSignatureError,
    NonceMismatchError,
)
from .nonce import generate_nonce, is_nonce_expired
from .sessions import Session, SessionIssuer
from .store import Account, UserStore
from .verifier import SignatureVerifier

logger = logging.getLogger(__name__)


class HandshakeState(str, enum.Enum):
    """Where an address stands in the handshake."""

    UNREGISTERED = "unregistered"
    NONCE_ISSUED = "nonce_issued"
    AUTHENTICATED = "authenticated"


class AuthHandshake:
    """Composes address validation, the account store, signature
    verification and session issuance into the login flow.

    Every entry point validates the address before touching the store.
    """

    def __init__(
        self,
        store: UserStore,
        verifier: SignatureVerifier | None = None,
        sessions: SessionIssuer | None = None,
        nonce_ttl_seconds: int = 0,
        nonce_factory: Callable[[], str] = generate_nonce,
    ):
        self.store = store
        self.verifier = verifier or SignatureVerifier()
        self.sessions = sessions or SessionIssuer()
        self.nonce_ttl_seconds = nonce_ttl_seconds
        self._new_nonce = nonce_factory

    def register(self, address: str) -> Account:
        """Register an address and issue its first nonce.

        Raises:
            InvalidAddressError: If the address is malformed.
            AccountExistsError: If the address is already registered.
        """
        address = validate_address(address)
        account = self.store.create_if_absent(address, self._new_nonce())
        logger.info(f"Registered {address}")
        return account

    def get_challenge(self, address: str) -> str:
        """Return the current nonce for an address, refreshing it if stale.

        Raises:
            InvalidAddressError: If the address is malformed.
            AccountNotFoundError: If the address is not registered.
        """
        address = validate_address(address)
        account = self.store.get(address)
        if is_nonce_expired(account.nonce_issued_at, self.nonce_ttl_seconds):
            account = self.store.rotate_if_current(address, account.current_nonce, self._new_nonce())
            logger.info(f"Refreshed expired nonce for {address}")
        return account.current_nonce

    def login(self, address: str, nonce: str, signature: str | bytes) -> Session:
        """Verify a signed challenge and issue a session.

        The nonce is consumed before the signature is checked and is not
        restored if verification fails; the client must fetch a new one.

        Raises:
            InvalidAddressError: If the address is malformed.
            AccountNotFoundError: If the address is not registered.
            NonceMismatchError: If the nonce is not current or has expired.
            InvalidSignatureError: If the signature does not recover to address.
        """
        address = validate_address(address)
        try:
            consumed = self.store.consume_and_rotate(address, nonce, self._new_nonce())
        except NonceMismatchError:
            logger.warning(f"Login rejected for {address}: nonce mismatch")
            raise

        if is_nonce_expired(consumed.nonce_issued_at, self.nonce_ttl_seconds):
            logger.warning(f"Login rejected for {address}: nonce expired")
            raise NonceMismatchError("Nonce expired")

        if not self.verifier.verify(address, consumed.current_nonce, signature):
            logger.warning(f"Login rejected for {address}: invalid signature")
            raise InvalidSignatureError()

        self.store.touch_login(address)
        session = self.sessions.issue(address)
        logger.info(f"Login succeeded for {address}")
        return session

    def state(self, address: str) -> HandshakeState:
        """Report the handshake state of an address."""
        address = validate_address(address)
        try:
            account = self.store.get(address)
        except AccountNotFoundError:
            return HandshakeState.UNREGISTERED
        if account.last_login_at is not None:
            return HandshakeState.AUTHENTICATED
        return HandshakeState.NONCE_ISSUED

    def whoami(self, token: str) -> Session:
        """Resolve a session token.

        Raises:
            InvalidSessionError: If the token is unknown or expired.
        """
        session = self.sessions.validate(token)
        if session is None:
            raise InvalidSessionError()
        return session

    def logout(self, token: str) -> None:
        self.sessions.invalidate(token)
