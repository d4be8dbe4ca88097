"""
Core types and pure helpers for the option ownership ledger.

This module provides the foundational data structures for the ledger:
1. Protocols: LedgerView for read-only access to stored entities
2. Immutable data structures: User, Option, OptionOwnership, MatrixRow, MatrixView
3. Exceptions: LedgerError and domain-specific error types
4. Validation helpers: pure functions that normalize caller input

Nothing in this module touches storage. The Entity Store and the service
layer build on these types.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, Sequence, Tuple, runtime_checkable
import math

import numpy as np


# ============================================================================
# CONSTANTS
# ============================================================================

# Option types (strings, not enum, so they match the stored column verbatim).
OPTION_TYPE_CALL = "call"
OPTION_TYPE_PUT = "put"
OPTION_TYPES = (OPTION_TYPE_CALL, OPTION_TYPE_PUT)

# SQLite INTEGER columns hold signed 64-bit values.
INT64_MIN = -2**63
INT64_MAX = 2**63 - 1


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class ValidationError(LedgerError):
    """Raised when caller input is rejected before it reaches storage."""
    pass


class ConstraintViolation(LedgerError):
    """Raised when storage rejects a write (uniqueness, CHECK or foreign key)."""
    pass


class NotFound(LedgerError):
    """Raised when an ownership write references a user or option that does not exist."""
    pass


class StorageUnavailable(LedgerError):
    """Raised when the backing store is closed or cannot be reached."""
    pass


# ============================================================================
# ENTITIES
# ============================================================================

@dataclass(frozen=True, slots=True)
class User:
    """
    A holder of option contracts.

    Attributes:
        id: Store-assigned identifier (ascending in creation order, never reused)
        name: Display name, unique across all users
    """
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True, slots=True)
class Option:
    """
    An options contract that users can hold.

    Attributes:
        id: Store-assigned identifier
        symbol: Free-text ticker (not unique; several strikes share a symbol)
        option_type: "call" or "put"
        strike: Strike price
        expiration: Expiration token, stored as entered
    """
    id: int
    symbol: str
    option_type: str
    strike: float
    expiration: str

    @property
    def label(self) -> str:
        """Short display label, e.g. 'AAPL $150 call 2025-12-19'."""
        return f"{self.symbol} ${_format_strike(self.strike)} {self.option_type} {self.expiration}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "option_type": self.option_type,
            "strike": self.strike,
            "expiration": self.expiration,
        }


@dataclass(frozen=True, slots=True)
class OptionOwnership:
    """
    How many contracts of one option a user holds.

    The (user_id, option_id) pair is unique, and a stored quantity is always
    positive: setting zero or less removes the record instead.
    """
    user_id: int
    option_id: int
    quantity: int

    @property
    def key(self) -> Tuple[int, int]:
        return (self.user_id, self.option_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"user_id": self.user_id, "option_id": self.option_id, "quantity": self.quantity}


@dataclass(frozen=True, slots=True)
class MatrixRow:
    """One option and the quantity each user holds, aligned with MatrixView.users."""
    option: Option
    quantities: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"option": self.option.to_dict(), "quantities": list(self.quantities)}


@dataclass(frozen=True, slots=True)
class MatrixView:
    """
    Options x users report. Derived on every request, never persisted.

    rows[i].quantities[j] is the quantity of rows[i].option held by users[j],
    0 where no ownership record exists.
    """
    users: Tuple[User, ...]
    rows: Tuple[MatrixRow, ...]

    @property
    def options(self) -> Tuple[Option, ...]:
        return tuple(row.option for row in self.rows)

    def to_array(self) -> np.ndarray:
        """
        Quantities as a dense int64 array of shape (len(rows), len(users)).

        An empty report yields an array with a zero-length axis rather than
        a ragged shape, so sums and shapes stay meaningful.
        """
        if not self.rows:
            return np.zeros((0, len(self.users)), dtype=np.int64)
        return np.array([row.quantities for row in self.rows], dtype=np.int64).reshape(
            len(self.rows), len(self.users)
        )

    def user_totals(self) -> Dict[int, int]:
        """Total contracts held per user id, across all options."""
        sums = self.to_array().sum(axis=0)
        return {user.id: int(total) for user, total in zip(self.users, sums)}

    def option_totals(self) -> Dict[int, int]:
        """Total contracts held per option id, across all users."""
        sums = self.to_array().sum(axis=1)
        return {row.option.id: int(total) for row, total in zip(self.rows, sums)}

    def quantity(self, option_id: int, user_id: int) -> int:
        """
        Look up one cell of the report.

        Returns 0 for a pair without a record. Raises KeyError if either id is
        not part of this view.
        """
        col = next((j for j, u in enumerate(self.users) if u.id == user_id), None)
        if col is None:
            raise KeyError(f"User {user_id} not in matrix view")
        for row in self.rows:
            if row.option.id == option_id:
                return row.quantities[col]
        raise KeyError(f"Option {option_id} not in matrix view")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "rows": [r.to_dict() for r in self.rows],
        }


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to the stored entities.

    The matrix projector accepts anything that implements this protocol and
    declares its read-only intent by doing so. EntityStore implements it; for
    testing, tests/fake_view.py provides an in-memory implementation.
    """

    def list_users(self) -> List[User]:
        """Return all users in ascending id order."""
        ...

    def list_options(self) -> List[Option]:
        """Return all options in ascending id order."""
        ...

    def list_ownerships(self) -> List[OptionOwnership]:
        """Return all ownership records, ordered by option id then user id."""
        ...


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def validate_name(name: Any) -> str:
    """Return name unchanged if it is a non-blank string, else raise ValidationError."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("User name cannot be empty")
    return name


def validate_option_type(option_type: Any) -> str:
    """Option type must be exactly 'call' or 'put' (case-sensitive)."""
    if option_type not in OPTION_TYPES:
        raise ValidationError(f"option_type must be 'call' or 'put', got {option_type!r}")
    return option_type


def validate_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} cannot be empty")
    return value


def validate_strike(strike: Any) -> float:
    """
    Coerce strike to float.

    Only finiteness is checked. The sign is left alone so free-form entries
    are accepted as typed.
    """
    if isinstance(strike, bool):
        raise ValidationError(f"strike must be a number, got {strike!r}")
    try:
        value = float(strike)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"strike must be a number, got {strike!r}") from exc
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"strike must be finite, got {strike!r}")
    return value


def validate_quantity(quantity: Any) -> int:
    # bool is an int subclass; True contracts is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, (int, np.integer)):
        raise ValidationError(f"quantity must be an integer, got {quantity!r}")
    return _check_int64(int(quantity), "quantity")


def validate_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}")
    return _check_int64(int(value), field_name)


def _check_int64(value: int, field_name: str) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValidationError(f"{field_name} is out of range, got {value!r}")
    return value


def _format_strike(strike: float) -> str:
    # 150.0 -> "150", 152.5 -> "152.5"
    if float(strike).is_integer():
        return str(int(strike))
    return repr(float(strike))


def sort_by_id(items: Sequence[Any]) -> List[Any]:
    """Return entities sorted by ascending id."""
    return sorted(items, key=lambda item: item.id)
