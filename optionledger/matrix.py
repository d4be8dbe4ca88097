"""
matrix.py - Pure Functions for the Options x Users Report

Projects the stored facts (users, options, ownership links) into a dense
MatrixView: one row per option, one column per user, each cell the quantity
held. Nothing here mutates state or keeps state between calls; the view is
rebuilt from scratch on every request.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Tuple

from .core import (
    LedgerView, MatrixRow, MatrixView, Option, OptionOwnership, User,
    sort_by_id,
)


def build_matrix_view(
    users: Iterable[User],
    options: Iterable[Option],
    ownerships: Iterable[OptionOwnership],
) -> MatrixView:
    """
    Assemble a MatrixView from plain entity lists.

    Users and options are ordered by ascending id. Each row lists, for every
    user in that order, the quantity from the matching (user_id, option_id)
    link, or 0 when there is none.

    Links are indexed once per call, so the cost is O(U*O + L) rather than a
    scan of the link list for every cell. Links naming a user or option that
    is not in the given lists are ignored.

    Args:
        users: All users to show as columns
        options: All options to show as rows
        ownerships: Ownership links

    Returns:
        MatrixView with len(options) rows, each holding len(users) quantities.
    """
    ordered_users = sort_by_id(list(users))
    ordered_options = sort_by_id(list(options))

    index: Dict[Tuple[int, int], int] = {o.key: o.quantity for o in ownerships}

    rows: List[MatrixRow] = []
    for option in ordered_options:
        quantities = tuple(index.get((user.id, option.id), 0) for user in ordered_users)
        rows.append(MatrixRow(option=option, quantities=quantities))

    return MatrixView(users=tuple(ordered_users), rows=tuple(rows))


def project_matrix(view: LedgerView) -> MatrixView:
    """
    Read users, options and ownerships from a view and build the report.

    The three reads are independent. Against a shared store each takes the
    store lock on its own, so a write that lands between them can show up in
    one read and not another (e.g. a link whose option was just deleted; such
    a link is dropped from the report). Wrap the call in store.transaction()
    for a snapshot that is consistent across all three.
    """
    users = view.list_users()
    options = view.list_options()
    ownerships = view.list_ownerships()
    return build_matrix_view(users, options, ownerships)


def render_matrix(matrix: MatrixView, empty: str = "(no options)") -> str:
    """
    Render the report as a fixed-width text table.

    The first column holds the option label; each following column is one
    user, quantities right-aligned.

    Example:
        Option                    | alice | bob
        --------------------------+-------+----
        AAPL $150 call 2025-12-19 |     7 |   0
    """
    header = ["Option"] + [u.name for u in matrix.users]
    body = [
        [row.option.label] + [str(q) for q in row.quantities]
        for row in matrix.rows
    ]

    widths = [len(h) for h in header]
    for line in body:
        for i, cell in enumerate(line):
            widths[i] = max(widths[i], len(cell))

    def fmt(cells: List[str]) -> str:
        first = cells[0].ljust(widths[0])
        rest = [cell.rjust(widths[i + 1]) for i, cell in enumerate(cells[1:])]
        return " | ".join([first] + rest).rstrip()

    lines = [fmt(header), "-+-".join("-" * w for w in widths)]
    if body:
        lines.extend(fmt(line) for line in body)
    else:
        lines.append(empty)
    return "\n".join(lines)
