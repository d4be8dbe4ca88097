"""
store.py - SQLite-backed Entity Store

The EntityStore owns every persisted entity: users, options and the
ownership links between them. It is the only module that talks to the
database, and the schema it creates carries the integrity rules itself:

    - users.name is UNIQUE
    - options.option_type is CHECKed against ('call', 'put')
    - option_ownership is keyed by (user_id, option_id), and both columns
      are foreign keys with ON DELETE CASCADE

Concurrency:
    One connection, shared by every caller, guarded by one re-entrant lock.
    Each public method holds the lock for its whole duration and releases it
    on error. transaction() holds the lock across several calls.

Every write is committed before the method returns.
"""

from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union
import logging
import os
import sqlite3
import threading

from .core import (
    User, Option, OptionOwnership,
    ConstraintViolation, StorageUnavailable, ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "optionledger.db"
DB_PATH_ENV = "OPTIONLEDGER_DB"
MEMORY_DB = ":memory:"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS options (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL,
        option_type TEXT NOT NULL CHECK(option_type IN ('call', 'put')),
        strike REAL NOT NULL,
        expiration TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS option_ownership (
        user_id INTEGER NOT NULL,
        option_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL,
        PRIMARY KEY (user_id, option_id),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        FOREIGN KEY (option_id) REFERENCES options(id) ON DELETE CASCADE
    )
    """,
)


def resolve_db_path(path: Optional[Union[str, Path]] = None) -> str:
    """
    Pick the database location.

    Explicit path wins, then the OPTIONLEDGER_DB environment variable, then
    DEFAULT_DB_PATH in the working directory.
    """
    if path is None:
        path = os.getenv(DB_PATH_ENV, DEFAULT_DB_PATH)
    return str(path)


class EntityStore:
    """
    Durable, constraint-enforcing storage for users, options and ownership links.

    Implements the LedgerView protocol (list_users, list_options,
    list_ownerships), so it can be handed straight to the matrix projector.

    Example:
        store = EntityStore(":memory:")
        alice = store.insert_user("alice")
        opt = store.insert_option("AAPL", "call", 150.0, "2025-12-19")
        store.upsert_ownership(alice, opt, 3)
        store.list_ownerships()   # [OptionOwnership(user_id=1, option_id=1, quantity=3)]
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Open (creating if needed) the database and its schema.

        Args:
            path: File path or ":memory:". None resolves through
                  OPTIONLEDGER_DB, then DEFAULT_DB_PATH.

        Raises:
            StorageUnavailable: If the database cannot be opened
        """
        self.path = resolve_db_path(path)
        self._lock = threading.RLock()
        self._closed = False
        self._tx_depth = 0

        if self.path != MEMORY_DB:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                self.path,
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            for statement in SCHEMA:
                self._conn.execute(statement)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"Cannot open database {self.path}: {exc}") from exc

        logger.info("Opened entity store at %s", self.path)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the connection. Further calls raise StorageUnavailable."""
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True
                logger.info("Closed entity store at %s", self.path)

    def __enter__(self) -> EntityStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _guarded(self) -> Iterator[sqlite3.Connection]:
        """
        Hold the lock and translate sqlite3 errors into ledger errors.

        IntegrityError (UNIQUE, CHECK, FOREIGN KEY) becomes ConstraintViolation;
        an integer parameter too large for SQLite becomes ValidationError;
        everything else sqlite raises becomes StorageUnavailable.
        """
        with self._lock:
            if self._closed:
                raise StorageUnavailable(f"Entity store at {self.path} is closed")
            try:
                yield self._conn
            except OverflowError as exc:
                logger.warning("Parameter out of range: %s", exc)
                raise ValidationError(str(exc)) from exc
            except sqlite3.IntegrityError as exc:
                logger.warning("Constraint violation: %s", exc)
                raise ConstraintViolation(str(exc)) from exc
            except sqlite3.Error as exc:
                logger.warning("Storage error: %s", exc)
                raise StorageUnavailable(str(exc)) from exc

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        """
        Run several store calls as one atomic unit.

        Holds the lock for the whole block, so other threads see either none
        or all of its writes. A nested block runs inside a SAVEPOINT: if it
        raises, only its own writes are undone and the exception propagates
        to the enclosing block, which may catch it and still commit.
        An exception leaving the outermost block rolls everything back.

        Example:
            with store.transaction():
                if store.get_user(uid) is not None:
                    store.upsert_ownership(uid, oid, 5)
        """
        with self._lock:
            if self._tx_depth:
                savepoint = f"sp_{self._tx_depth}"
                with self._guarded() as conn:
                    conn.execute(f"SAVEPOINT {savepoint}")
                self._tx_depth += 1
                try:
                    yield self
                except BaseException:
                    with self._guarded() as conn:
                        conn.execute(f"ROLLBACK TO {savepoint}")
                        conn.execute(f"RELEASE {savepoint}")
                    raise
                else:
                    with self._guarded() as conn:
                        conn.execute(f"RELEASE {savepoint}")
                finally:
                    self._tx_depth -= 1
                return

            with self._guarded() as conn:
                conn.execute("BEGIN IMMEDIATE")
            self._tx_depth = 1
            try:
                yield self
                self._tx_depth = 0
                with self._guarded() as conn:
                    conn.execute("COMMIT")
            except BaseException:
                self._tx_depth = 0
                self._rollback()
                raise

    def _rollback(self) -> None:
        if self._closed:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            # No transaction left to roll back (sqlite already aborted it)
            logger.warning("Rollback failed: %s", exc)

    # ========================================================================
    # USERS
    # ========================================================================

    def insert_user(self, name: str) -> int:
        """
        Insert a user and return its new id.

        Raises:
            ConstraintViolation: If a user with this name already exists
        """
        with self._guarded() as conn:
            cur = conn.execute("INSERT INTO users (name) VALUES (?)", (name,))
            user_id = cur.lastrowid
        logger.debug("Inserted user %d (%s)", user_id, name)
        return user_id

    def get_user(self, user_id: int) -> Optional[User]:
        with self._guarded() as conn:
            row = conn.execute(
                "SELECT id, name FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return User(*row) if row else None

    def list_users(self) -> List[User]:
        """All users, ascending id."""
        with self._guarded() as conn:
            rows = conn.execute("SELECT id, name FROM users ORDER BY id").fetchall()
        return [User(*row) for row in rows]

    def delete_user(self, user_id: int) -> bool:
        """
        Delete a user and, by cascade, its ownership links.

        Returns True if a user was removed, False if the id was unknown.
        """
        with self._guarded() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            removed = cur.rowcount > 0
        logger.debug("Deleted user %d (removed=%s)", user_id, removed)
        return removed

    # ========================================================================
    # OPTIONS
    # ========================================================================

    def insert_option(self, symbol: str, option_type: str, strike: float, expiration: str) -> int:
        """
        Insert an option and return its new id.

        Raises:
            ConstraintViolation: If option_type is not 'call' or 'put'
        """
        with self._guarded() as conn:
            cur = conn.execute(
                "INSERT INTO options (symbol, option_type, strike, expiration) VALUES (?, ?, ?, ?)",
                (symbol, option_type, strike, expiration),
            )
            option_id = cur.lastrowid
        logger.debug("Inserted option %d (%s %s %s %s)", option_id, symbol, option_type, strike, expiration)
        return option_id

    def get_option(self, option_id: int) -> Optional[Option]:
        with self._guarded() as conn:
            row = conn.execute(
                "SELECT id, symbol, option_type, strike, expiration FROM options WHERE id = ?",
                (option_id,),
            ).fetchone()
        return Option(*row) if row else None

    def list_options(self) -> List[Option]:
        """All options, ascending id."""
        with self._guarded() as conn:
            rows = conn.execute(
                "SELECT id, symbol, option_type, strike, expiration FROM options ORDER BY id"
            ).fetchall()
        return [Option(*row) for row in rows]

    def delete_option(self, option_id: int) -> bool:
        """Delete an option and its ownership links. False if the id was unknown."""
        with self._guarded() as conn:
            cur = conn.execute("DELETE FROM options WHERE id = ?", (option_id,))
            removed = cur.rowcount > 0
        logger.debug("Deleted option %d (removed=%s)", option_id, removed)
        return removed

    # ========================================================================
    # OWNERSHIP
    # ========================================================================

    def upsert_ownership(self, user_id: int, option_id: int, quantity: int) -> None:
        """
        Create or overwrite the single record for (user_id, option_id).

        Raises:
            ConstraintViolation: If user_id or option_id does not exist
        """
        with self._guarded() as conn:
            conn.execute(
                """
                INSERT INTO option_ownership (user_id, option_id, quantity) VALUES (?, ?, ?)
                ON CONFLICT(user_id, option_id) DO UPDATE SET quantity = excluded.quantity
                """,
                (user_id, option_id, quantity),
            )
        logger.debug("Upserted ownership user=%d option=%d quantity=%d", user_id, option_id, quantity)

    def delete_ownership(self, user_id: int, option_id: int) -> bool:
        with self._guarded() as conn:
            cur = conn.execute(
                "DELETE FROM option_ownership WHERE user_id = ? AND option_id = ?",
                (user_id, option_id),
            )
            removed = cur.rowcount > 0
        logger.debug("Deleted ownership user=%d option=%d (removed=%s)", user_id, option_id, removed)
        return removed

    def get_ownership(self, user_id: int, option_id: int) -> Optional[OptionOwnership]:
        with self._guarded() as conn:
            row = conn.execute(
                "SELECT user_id, option_id, quantity FROM option_ownership "
                "WHERE user_id = ? AND option_id = ?",
                (user_id, option_id),
            ).fetchone()
        return OptionOwnership(*row) if row else None

    def list_ownerships(self) -> List[OptionOwnership]:
        """All ownership records, ordered by option id then user id."""
        with self._guarded() as conn:
            rows = conn.execute(
                "SELECT user_id, option_id, quantity FROM option_ownership "
                "ORDER BY option_id, user_id"
            ).fetchall()
        return [OptionOwnership(*row) for row in rows]

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"EntityStore({self.path!r}, {state})"
