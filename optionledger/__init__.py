"""
optionledger - Option Ownership Ledger

Tracks which users hold how many contracts of which options, and projects
that into an options x users matrix report.

Usage:
    from optionledger import OptionLedger, render_matrix

    ledger = OptionLedger.open("optionledger.db")
    alice = ledger.create_user("alice")
    bob = ledger.create_user("bob")
    call = ledger.create_option("AAPL", "call", 150.0, "2025-12-19")

    ledger.set_ownership(alice.id, call.id, 7)
    ledger.set_ownership(bob.id, call.id, 0)     # zero removes the link

    print(render_matrix(ledger.get_matrix_view()))
"""

# Core types
from .core import (
    User,
    Option,
    OptionOwnership,
    MatrixRow,
    MatrixView,
    LedgerView,
    LedgerError,
    ValidationError,
    ConstraintViolation,
    NotFound,
    StorageUnavailable,
    OPTION_TYPE_CALL,
    OPTION_TYPE_PUT,
    OPTION_TYPES,
)

# Storage
from .store import (
    EntityStore,
    DEFAULT_DB_PATH,
    DB_PATH_ENV,
    MEMORY_DB,
    resolve_db_path,
)

# Service
from .ledger import OptionLedger

# Reporting
from .matrix import (
    build_matrix_view,
    project_matrix,
    render_matrix,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    'User', 'Option', 'OptionOwnership', 'MatrixRow', 'MatrixView', 'LedgerView',
    'OPTION_TYPE_CALL', 'OPTION_TYPE_PUT', 'OPTION_TYPES',
    # Exceptions
    'LedgerError', 'ValidationError', 'ConstraintViolation', 'NotFound', 'StorageUnavailable',
    # Storage
    'EntityStore', 'DEFAULT_DB_PATH', 'DB_PATH_ENV', 'MEMORY_DB', 'resolve_db_path',
    # Service
    'OptionLedger',
    # Reporting
    'build_matrix_view', 'project_matrix', 'render_matrix',
]
