"""Account storage.

The store exclusively owns account records, including each account's current
challenge nonce. Registration and nonce consumption are atomic per address in
every implementation.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .config import DatabaseConfig
from .errors import (
    AccountExistsError,
    AccountNotFoundError,
    InternalFailureError,
    NonceMismatchError,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Account:
    """A registered address and its challenge state.

    Consumption and rotation happen in one step, so a stored account always
    has nonce_consumed False. Only the snapshot returned by
    consume_and_rotate reports True.
    """

    address: str
    current_nonce: str
    nonce_issued_at: datetime
    nonce_consumed: bool
    created_at: datetime
    last_login_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Account":
        return cls(
            address=row["address"],
            current_nonce=row["current_nonce"],
            nonce_issued_at=datetime.fromisoformat(row["nonce_issued_at"]),
            nonce_consumed=bool(row["nonce_consumed"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            last_login_at=datetime.fromisoformat(row["last_login_at"]) if row["last_login_at"] else None,
        )


class UserStore(ABC):
    """Interface for account storage.

    Addresses passed in must already be canonical. Accounts returned are
    snapshots; changing them does not change stored state.
    """

    @abstractmethod
    def create_if_absent(self, address: str, initial_nonce: str) -> Account:
        """Insert a new account.

        Raises:
            AccountExistsError: If the address is already registered.
        """

    @abstractmethod
    def get(self, address: str) -> Account:
        """Get an account.

        Raises:
            AccountNotFoundError: If the address is not registered.
        """

    @abstractmethod
    def consume_and_rotate(self, address: str, presented_nonce: str, next_nonce: str) -> Account:
        """Consume the current nonce and replace it with next_nonce.

        The comparison and the rotation happen as one atomic step. The
        returned snapshot holds the consumed nonce as it was before rotation.

        Raises:
            AccountNotFoundError: If the address is not registered.
            NonceMismatchError: If presented_nonce is not the current nonce.
        """

    @abstractmethod
    def rotate_if_current(self, address: str, observed_nonce: str, next_nonce: str) -> Account:
        """Replace the current nonce with next_nonce if it is still observed_nonce.

        If another caller already replaced it, the account is left unchanged.
        Either way the returned snapshot holds the nonce that is now current.

        Raises:
            AccountNotFoundError: If the address is not registered.
        """

    @abstractmethod
    def touch_login(self, address: str, when: datetime | None = None) -> None:
        """Record a successful login."""

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts ordered by registration time."""

    def close(self) -> None:
        """Release resources held by the store."""


class MemoryUserStore(UserStore):
    """In-memory account store.

    A map lock guards existence checks and inserts. Each account has its own
    lock for nonce compare-and-rotate, so different addresses do not contend.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, Account] = {}
        self._account_locks: dict[str, threading.Lock] = {}

    def _account_lock(self, address: str) -> threading.Lock:
        with self._lock:
            lock = self._account_locks.get(address)
        if lock is None:
            raise AccountNotFoundError(f"User does not exist: {address}")
        return lock

    def create_if_absent(self, address: str, initial_nonce: str) -> Account:
        now = _utcnow()
        with self._lock:
            if address in self._accounts:
                raise AccountExistsError(f"User already exists: {address}")
            account = Account(
                address=address,
                current_nonce=initial_nonce,
                nonce_issued_at=now,
                nonce_consumed=False,
                created_at=now,
            )
            self._accounts[address] = account
            self._account_locks[address] = threading.Lock()
            return replace(account)

    def get(self, address: str) -> Account:
        with self._account_lock(address):
            return replace(self._accounts[address])

    def consume_and_rotate(self, address: str, presented_nonce: str, next_nonce: str) -> Account:
        with self._account_lock(address):
            account = self._accounts[address]
            if account.nonce_consumed or account.current_nonce != presented_nonce:
                raise NonceMismatchError()
            consumed = replace(account, nonce_consumed=True)
            account.current_nonce = next_nonce
            account.nonce_issued_at = _utcnow()
            account.nonce_consumed = False
            return consumed

    def rotate_if_current(self, address: str, observed_nonce: str, next_nonce: str) -> Account:
        with self._account_lock(address):
            account = self._accounts[address]
            if account.current_nonce != observed_nonce:
                return replace(account)
            account.current_nonce = next_nonce
            account.nonce_issued_at = _utcnow()
            account.nonce_consumed = False
            return replace(account)

    def touch_login(self, address: str, when: datetime | None = None) -> None:
        with self._account_lock(address):
            self._accounts[address].last_login_at = when or _utcnow()

    def list_accounts(self) -> list[Account]:
        with self._lock:
            accounts = list(self._accounts.values())
        return sorted((replace(a) for a in accounts), key=lambda a: a.created_at)


class SqliteUserStore(UserStore):
    """SQLite-backed account store.

    One connection is shared across threads behind a lock, and every
    mutating operation runs in a single ``BEGIN IMMEDIATE`` transaction.
    Unlike MemoryUserStore, all addresses share that one lock, so operations
    on different addresses are serialised.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS accounts (
                address TEXT PRIMARY KEY,
                current_nonce TEXT NOT NULL,
                nonce_issued_at TEXT NOT NULL,
                -- always FALSE for stored rows; see Account
                nonce_consumed BOOLEAN DEFAULT FALSE,
                created_at TEXT NOT NULL,
                last_login_at TEXT
            );

            CREATE TABLE IF NOT EXISTS audit_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                action TEXT NOT NULL,
                address TEXT,
                details TEXT
            );
        """)

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block in one immediate transaction.

        Storage errors surface as InternalFailureError; handshake errors
        raised inside the block roll back and propagate unchanged.
        """
        with self._lock:
            try:
                conn = self.conn
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise InternalFailureError(f"Storage failure: {e}") from e
            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                conn.execute("ROLLBACK")
                raise InternalFailureError(f"Storage failure: {e}") from e
            except BaseException:
                conn.execute("ROLLBACK")
                raise

    def _fetch(self, conn: sqlite3.Connection, address: str) -> Account:
        row = conn.execute("SELECT * FROM accounts WHERE address = ?", (address,)).fetchone()
        if not row:
            raise AccountNotFoundError(f"User does not exist: {address}")
        return Account.from_row(row)

    def create_if_absent(self, address: str, initial_nonce: str) -> Account:
        now = _utcnow().isoformat()
        with self._transaction() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO accounts (address, current_nonce, nonce_issued_at, nonce_consumed, created_at)
                    VALUES (?, ?, ?, FALSE, ?)
                    """,
                    (address, initial_nonce, now, now),
                )
            except sqlite3.IntegrityError:
                raise AccountExistsError(f"User already exists: {address}") from None
            self._audit(conn, "register", address, {})
            return self._fetch(conn, address)

    def get(self, address: str) -> Account:
        with self._transaction() as conn:
            return self._fetch(conn, address)

    def consume_and_rotate(self, address: str, presented_nonce: str, next_nonce: str) -> Account:
        with self._transaction() as conn:
            account = self._fetch(conn, address)
            if account.nonce_consumed or account.current_nonce != presented_nonce:
                raise NonceMismatchError()
            conn.execute(
                """
                UPDATE accounts SET current_nonce = ?, nonce_issued_at = ?, nonce_consumed = FALSE
                WHERE address = ?
                """,
                (next_nonce, _utcnow().isoformat(), address),
            )
            self._audit(conn, "consume", address, {})
            return replace(account, nonce_consumed=True)

    def rotate_if_current(self, address: str, observed_nonce: str, next_nonce: str) -> Account:
        with self._transaction() as conn:
            account = self._fetch(conn, address)
            if account.current_nonce != observed_nonce:
                return account
            conn.execute(
                """
                UPDATE accounts SET current_nonce = ?, nonce_issued_at = ?, nonce_consumed = FALSE
                WHERE address = ?
                """,
                (next_nonce, _utcnow().isoformat(), address),
            )
            self._audit(conn, "rotate", address, {})
            return self._fetch(conn, address)

    def touch_login(self, address: str, when: datetime | None = None) -> None:
        when = when or _utcnow()
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE accounts SET last_login_at = ? WHERE address = ?",
                (when.isoformat(), address),
            )
            if cursor.rowcount == 0:
                raise AccountNotFoundError(f"User does not exist: {address}")
            self._audit(conn, "login", address, {})

    def list_accounts(self) -> list[Account]:
        with self._transaction() as conn:
            cursor = conn.execute("SELECT * FROM accounts ORDER BY created_at")
            return [Account.from_row(row) for row in cursor]

    def _audit(self, conn: sqlite3.Connection, action: str, address: str | None, details: dict) -> None:
        """Log an audit event."""
        conn.execute(
            "INSERT INTO audit_log (timestamp, action, address, details) VALUES (?, ?, ?, ?)",
            (_utcnow().isoformat(), action, address, json.dumps(details)),
        )


def open_store(config: DatabaseConfig) -> UserStore:
    """Create the store selected by the database configuration."""
    if config.backend == "sqlite":
        logger.info(f"Using SQLite account store at {config.path}")
        return SqliteUserStore(config.path)
    logger.info("Using in-memory account store")
    return MemoryUserStore()
