"""
conftest.py - Shared pytest fixtures for optionledger tests

Provides:
- In-memory stores and services (fresh per test)
- A seeded ledger with two users and two options
- Comparison helpers for ownership state
"""

import pytest
from typing import Dict, Tuple

from optionledger import EntityStore, OptionLedger, MEMORY_DB


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def ownership_map(ledger: OptionLedger) -> Dict[Tuple[int, int], int]:
    """Current links as {(user_id, option_id): quantity}."""
    return {(o.user_id, o.option_id): o.quantity for o in ledger.get_ownerships()}


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def store():
    """Fresh in-memory entity store."""
    s = EntityStore(MEMORY_DB)
    yield s
    s.close()


@pytest.fixture
def ledger(store):
    """Service over an empty in-memory store."""
    return OptionLedger(store)


@pytest.fixture
def seeded_ledger(ledger):
    """
    Ledger with users alice (1), bob (2) and options
    AAPL 150 call (1), MSFT 300 put (2). No ownership links.
    """
    ledger.create_user("alice")
    ledger.create_user("bob")
    ledger.create_option("AAPL", "call", 150.0, "2025-12-19")
    ledger.create_option("MSFT", "put", 300.0, "2026-01-16")
    return ledger
