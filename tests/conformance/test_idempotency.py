"""
Idempotency Conformance Tests

INVARIANT: Ownership sets and deletes converge regardless of repetition.

    ∀ (u, o), q <= 0:
        set_ownership(u, o, q) ⟹ no record for (u, o), whatever came before
    ∀ (u, o), q > 0, N >= 1:
        set_ownership(u, o, q) N times ⟹ exactly one record with quantity q
    ∀ id:
        delete(id) twice = delete(id) once

This guarantees callers can retry any of these operations safely.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from optionledger import EntityStore, OptionLedger, OptionOwnership


def _seeded() -> OptionLedger:
    ledger = OptionLedger(EntityStore(":memory:"))
    ledger.create_user("alice")
    ledger.create_user("bob")
    ledger.create_option("AAPL", "call", 150.0, "2025-12-19")
    ledger.create_option("MSFT", "put", 300.0, "2026-01-16")
    return ledger


class TestIdempotencyProperties:
    """Property-based idempotency tests."""

    @given(
        prior=st.one_of(st.none(), st.integers(min_value=1, max_value=10_000)),
        quantity=st.integers(min_value=-10_000, max_value=0),
    )
    @settings(max_examples=50, deadline=None)
    def test_non_positive_always_removes(self, prior, quantity):
        """
        PROPERTY: A non-positive set leaves no record, whatever the prior state.
        """
        ledger = _seeded()
        if prior is not None:
            ledger.set_ownership(1, 1, prior)

        ledger.set_ownership(1, 1, quantity)

        assert all(o.key != (1, 1) for o in ledger.get_ownerships())
        ledger.close()

    @given(
        quantity=st.integers(min_value=1, max_value=10_000),
        repeats=st.integers(min_value=1, max_value=5),
    )
    @settings(max_examples=50, deadline=None)
    def test_repeated_positive_set_single_record(self, quantity, repeats):
        """
        PROPERTY: Repeating the same positive set yields one record with that quantity.
        """
        ledger = _seeded()
        for _ in range(repeats):
            ledger.set_ownership(2, 1, quantity)

        assert ledger.get_ownerships() == [OptionOwnership(2, 1, quantity)]
        ledger.close()

    @given(st.lists(st.integers(min_value=-5, max_value=50), min_size=1, max_size=20))
    @settings(max_examples=50, deadline=None)
    def test_last_write_wins(self, quantities):
        """
        PROPERTY: After any sequence of sets, the record reflects only the last one.
        Quantities overwrite; they never accumulate.
        """
        ledger = _seeded()
        for q in quantities:
            ledger.set_ownership(1, 2, q)

        last = quantities[-1]
        expected = [OptionOwnership(1, 2, last)] if last > 0 else []
        assert ledger.get_ownerships() == expected
        ledger.close()

    @given(st.integers(min_value=1, max_value=4))
    @settings(max_examples=20, deadline=None)
    def test_repeated_deletes(self, repeats):
        """
        PROPERTY: Deleting a user or option N times equals deleting it once.
        """
        ledger = _seeded()
        ledger.set_ownership(1, 1, 3)
        ledger.set_ownership(2, 2, 4)

        for _ in range(repeats):
            ledger.delete_user(1)
            ledger.delete_option(2)

        assert [u.name for u in ledger.list_users()] == ["bob"]
        assert [o.symbol for o in ledger.list_options()] == ["AAPL"]
        assert ledger.get_ownerships() == []
        ledger.close()


class TestIdempotencyExamples:
    """Explicit idempotency examples."""

    def test_zero_and_negative(self):
        ledger = _seeded()
        ledger.set_ownership(1, 1, 5)
        ledger.set_ownership(1, 1, 0)
        ledger.set_ownership(1, 1, 0)
        ledger.set_ownership(1, 1, -5)
        assert ledger.get_ownerships() == []
        ledger.close()

    def test_five_then_three(self):
        ledger = _seeded()
        ledger.set_ownership(1, 1, 5)
        ledger.set_ownership(1, 1, 3)
        assert ledger.get_ownerships() == [OptionOwnership(1, 1, 3)]
        ledger.close()
