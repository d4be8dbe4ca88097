"""
ledger.py - Option Ownership Ledger Service

OptionLedger is the boundary external callers (UI, CLI, scripts) talk to.
It validates every input before storage is touched, then reads or writes the
EntityStore it was constructed with.

Key responsibilities:
    - Reject malformed input with ValidationError (empty names, unknown
      option types, non-integer quantities)
    - Apply the upsert-or-delete rule for ownership quantities as one
      atomic operation
    - Refuse ownership links to users or options that do not exist (NotFound)
    - Build the options x users matrix report on request
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional, Union
import logging

from .core import (
    User, Option, OptionOwnership, MatrixView,
    ValidationError, NotFound,
    validate_name, validate_option_type, validate_text, validate_strike,
    validate_quantity, validate_id,
)
from .matrix import project_matrix
from .store import EntityStore

logger = logging.getLogger(__name__)


class OptionLedger:
    """
    Tracks which users hold how many contracts of which options.

    Design Principles:
        - Always validates: input is checked before it reaches the store, and
          the store's own constraints (UNIQUE, CHECK, foreign keys) back the
          checks up.
        - Only current state: quantities are overwritten, never accumulated,
          and no history is kept.
        - Explicit store: the EntityStore is passed in, never looked up from
          a global.

    Thread Safety:
        Safe to share between threads. Every store call is serialized by the
        store's lock, and set_ownership runs its checks and write in one
        store transaction.

    Example:
        ledger = OptionLedger(EntityStore(":memory:"))
        alice = ledger.create_user("alice")
        call = ledger.create_option("AAPL", "call", 150.0, "2025-12-19")
        ledger.set_ownership(alice.id, call.id, 3)
        ledger.get_matrix_view().rows[0].quantities   # (3,)
    """

    def __init__(self, store: EntityStore, verbose: bool = False):
        """
        Create a ledger service over a store.

        Args:
            store: The EntityStore holding users, options and ownership links
            verbose: Print a one-line confirmation for every change (default: False)
        """
        self.store = store
        self.verbose = verbose

    @classmethod
    def open(cls, path: Optional[Union[str, Path]] = None, verbose: bool = False) -> OptionLedger:
        """
        Open the store at path (or OPTIONLEDGER_DB, or the default file) and wrap it.
        """
        return cls(EntityStore(path), verbose=verbose)

    def close(self) -> None:
        self.store.close()

    def _echo(self, message: str) -> None:
        if self.verbose:
            print(message)

    # ========================================================================
    # USERS
    # ========================================================================

    def create_user(self, name: str) -> User:
        """
        Create a user.

        Args:
            name: Display name (non-empty, unique)

        Returns:
            The new User with its store-assigned id

        Raises:
            ValidationError: If name is empty
            ConstraintViolation: If a user with this name already exists
        """
        try:
            name = validate_name(name)
        except ValidationError as exc:
            logger.debug("Rejected user %r: %s", name, exc)
            raise
        user = User(id=self.store.insert_user(name), name=name)
        self._echo(f"+ user {user.id}: {user.name}")
        return user

    def list_users(self) -> List[User]:
        """All users in creation order."""
        return self.store.list_users()

    def delete_user(self, user_id: int) -> None:
        """
        Delete a user together with all of its ownership links.

        Deleting an unknown id is not an error.
        """
        user_id = validate_id(user_id, "user_id")
        if self.store.delete_user(user_id):
            self._echo(f"- user {user_id}")

    # ========================================================================
    # OPTIONS
    # ========================================================================

    def create_option(self, symbol: str, option_type: str, strike: float, expiration: str) -> Option:
        """
        Create an option.

        Only the option type is checked strictly. Symbol and expiration just
        have to be non-empty and strike has to be a finite number; anything
        else is accepted as entered.

        Args:
            symbol: Ticker or other free text
            option_type: Exactly "call" or "put"
            strike: Strike price
            expiration: Expiration token, e.g. "2025-12-19"

        Returns:
            The new Option with its store-assigned id

        Raises:
            ValidationError: If any field is rejected; nothing is persisted
        """
        try:
            option_type = validate_option_type(option_type)
            symbol = validate_text(symbol, "symbol")
            expiration = validate_text(expiration, "expiration")
            strike = validate_strike(strike)
        except ValidationError as exc:
            logger.debug("Rejected option %r %r %r %r: %s", symbol, option_type, strike, expiration, exc)
            raise
        option_id = self.store.insert_option(symbol, option_type, strike, expiration)
        option = Option(
            id=option_id,
            symbol=symbol,
            option_type=option_type,
            strike=strike,
            expiration=expiration,
        )
        self._echo(f"+ option {option.id}: {option.label}")
        return option

    def list_options(self) -> List[Option]:
        """All options in creation order."""
        return self.store.list_options()

    def delete_option(self, option_id: int) -> None:
        """Delete an option and its ownership links. Unknown ids are ignored."""
        option_id = validate_id(option_id, "option_id")
        if self.store.delete_option(option_id):
            self._echo(f"- option {option_id}")

    # ========================================================================
    # OWNERSHIP
    # ========================================================================

    def set_ownership(self, user_id: int, option_id: int, quantity: int) -> None:
        """
        Set how many contracts of an option a user holds.

        Upsert-or-delete:
            quantity <= 0  -> remove the link if there is one. Never an error,
                              even if the user or option does not exist.
            quantity > 0   -> create the link or overwrite its quantity.

        Raises:
            ValidationError: If an id or the quantity is not an integer
            NotFound: If quantity > 0 and the user or option does not exist
        """
        user_id = validate_id(user_id, "user_id")
        option_id = validate_id(option_id, "option_id")
        quantity = validate_quantity(quantity)

        if quantity <= 0:
            if self.store.delete_ownership(user_id, option_id):
                self._echo(f"- ownership user={user_id} option={option_id}")
            return

        with self.store.transaction():
            if self.store.get_user(user_id) is None:
                raise NotFound(f"User {user_id} not found")
            if self.store.get_option(option_id) is None:
                raise NotFound(f"Option {option_id} not found")
            self.store.upsert_ownership(user_id, option_id, quantity)
        self._echo(f"= ownership user={user_id} option={option_id} quantity={quantity}")

    def get_ownership(self, user_id: int, option_id: int) -> int:
        """Quantity the user holds of the option, 0 if there is no link."""
        link = self.store.get_ownership(validate_id(user_id, "user_id"), validate_id(option_id, "option_id"))
        return link.quantity if link else 0

    def get_ownerships(self) -> List[OptionOwnership]:
        """All ownership links, ordered by option id then user id."""
        return self.store.list_ownerships()

    # ========================================================================
    # REPORTING
    # ========================================================================

    def get_matrix_view(self, consistent: bool = False) -> MatrixView:
        """
        Build the options x users report from the current store contents.

        Args:
            consistent: Take users, options and links in one store
                        transaction. By default the three reads lock the
                        store independently, and a concurrent write between
                        them can make the snapshot momentarily inconsistent.

        Returns:
            MatrixView with rows in option-id order and columns in user-id order
        """
        if consistent:
            with self.store.transaction():
                return project_matrix(self.store)
        return project_matrix(self.store)

    def __repr__(self) -> str:
        return f"OptionLedger({self.store!r})"
