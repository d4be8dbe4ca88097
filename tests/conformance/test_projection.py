"""
Projection Conformance Tests

INVARIANT: The matrix report is a dense, faithful view of the links.

    ∀ state:
        view = get_matrix_view()
        view.users   = list_users()          (ascending id)
        view.options = list_options()        (ascending id)
        view.rows[i].quantities[j] = quantity(users[j], options[i]) or 0
        Σ cells = Σ link quantities

This holds with zero users, zero options, or both.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from optionledger import EntityStore, OptionLedger


links = st.dictionaries(
    keys=st.tuples(st.integers(1, 4), st.integers(1, 3)),
    values=st.integers(min_value=1, max_value=1_000),
    max_size=12,
)


class TestProjectionProperties:
    """Property-based projection tests."""

    @given(
        n_users=st.integers(min_value=0, max_value=4),
        n_options=st.integers(min_value=0, max_value=3),
        holdings=links,
    )
    @settings(max_examples=75, deadline=None)
    def test_cells_match_links(self, n_users, n_options, holdings):
        """
        PROPERTY: Every cell equals its link's quantity, or 0 without a link.
        """
        ledger = OptionLedger(EntityStore(":memory:"))
        for i in range(n_users):
            ledger.create_user(f"user{i}")
        for i in range(n_options):
            ledger.create_option(f"SYM{i}", "call", 10.0 * (i + 1), "2025-12-19")
        applied = {}
        for (u, o), q in holdings.items():
            if u <= n_users and o <= n_options:
                ledger.set_ownership(u, o, q)
                applied[(u, o)] = q

        view = ledger.get_matrix_view()

        assert list(view.users) == ledger.list_users()
        assert list(view.options) == ledger.list_options()
        assert view.to_array().shape == (n_options, n_users)
        for row in view.rows:
            for user, qty in zip(view.users, row.quantities):
                assert qty == applied.get((user.id, row.option.id), 0)
        assert int(view.to_array().sum()) == sum(applied.values())
        assert sum(view.user_totals().values()) == sum(applied.values())
        ledger.close()

    @given(holdings=links)
    @settings(max_examples=30, deadline=None)
    def test_consistent_and_default_agree_without_writers(self, holdings):
        """
        PROPERTY: With no concurrent writers, the consistent snapshot equals the default.
        """
        ledger = OptionLedger(EntityStore(":memory:"))
        for i in range(4):
            ledger.create_user(f"user{i}")
        for i in range(3):
            ledger.create_option(f"SYM{i}", "put", 5.0, "2026-03-20")
        for (u, o), q in holdings.items():
            ledger.set_ownership(u, o, q)

        assert ledger.get_matrix_view(consistent=True) == ledger.get_matrix_view()
        ledger.close()
