#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: The Option Ownership Ledger Step by Step

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-2: Entities    - Users and options, and the rules on creating them
  3-4: Ownership   - Upsert-or-delete quantities, refused dangling links
  5-6: Reporting   - The options x users matrix, cascading deletes

Run:
    python demo.py                 # Interactive, in-memory store
    python demo.py --quick         # Run all steps without pausing
    python demo.py --db ledger.db  # Use (and keep) a fresh database file
"""

from dataclasses import dataclass
import logging
from pathlib import Path
import sys

from optionledger import (
    OptionLedger, MEMORY_DB,
    ValidationError, ConstraintViolation, NotFound,
    render_matrix,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    db_path: str = MEMORY_DB
    users: tuple = ("alice", "bob", "carol")
    alice_calls: int = 7
    bob_puts: int = 3


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def parse_db_path(argv) -> str:
    """Return the --db argument, refusing a missing value or an existing file."""
    if "--db" not in argv:
        return MEMORY_DB
    position = argv.index("--db") + 1
    if position >= len(argv) or argv[position].startswith("--"):
        sys.exit("--db needs a file path")
    path = argv[position]
    if path != MEMORY_DB and Path(path).exists():
        sys.exit(f"{path} already exists; the demo needs a fresh database file")
    return path


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


# ============================================================================
# STEPS
# ============================================================================

def step_01_users(ledger: OptionLedger):
    step_header(1, "Users",
        "Create holders. Names must be non-empty and unique.")

    for name in CONFIG.users:
        ledger.create_user(name)

    section_header("Duplicate and empty names are refused")
    for bad in ("alice", ""):
        try:
            ledger.create_user(bad)
        except (ConstraintViolation, ValidationError) as exc:
            print(f"create_user({bad!r}) -> {type(exc).__name__}: {exc}")

    wait_for_enter()


def step_02_options(ledger: OptionLedger):
    step_header(2, "Options",
        "Create contracts. The type must be exactly 'call' or 'put'.")

    ledger.create_option("AAPL", "call", 150.0, "2025-12-19")
    ledger.create_option("AAPL", "put", 140.0, "2025-12-19")
    ledger.create_option("MSFT", "call", 420.0, "2026-01-16")

    section_header("Anything else is a validation error")
    try:
        ledger.create_option("AAPL", "Call", 150.0, "2025-12-19")
    except ValidationError as exc:
        print(f"create_option(..., 'Call', ...) -> ValidationError: {exc}")

    wait_for_enter()


def step_03_ownership(ledger: OptionLedger):
    step_header(3, "Ownership",
        "Set quantities. Positive overwrites, zero or less removes.")

    alice, bob, carol = ledger.list_users()
    aapl_call, aapl_put, msft_call = ledger.list_options()

    ledger.set_ownership(alice.id, aapl_call.id, 5)
    ledger.set_ownership(alice.id, aapl_call.id, CONFIG.alice_calls)   # overwrite, not add
    ledger.set_ownership(bob.id, aapl_put.id, CONFIG.bob_puts)
    ledger.set_ownership(carol.id, msft_call.id, 2)
    ledger.set_ownership(carol.id, msft_call.id, 0)                    # removes the link

    section_header("Stored links")
    for link in ledger.get_ownerships():
        print(f"  user={link.user_id} option={link.option_id} quantity={link.quantity}")

    wait_for_enter()


def step_04_dangling(ledger: OptionLedger):
    step_header(4, "No Dangling Links",
        "Links to users or options that do not exist are refused.")

    try:
        ledger.set_ownership(999, 1, 4)
    except NotFound as exc:
        print(f"set_ownership(999, 1, 4) -> NotFound: {exc}")

    print("set_ownership(999, 1, 0) -> ok (removing nothing is not an error)")
    ledger.set_ownership(999, 1, 0)

    wait_for_enter()


def step_05_matrix(ledger: OptionLedger):
    step_header(5, "The Matrix",
        "Options as rows, users as columns, 0 where nothing is held.")

    view = ledger.get_matrix_view()
    print(render_matrix(view))

    section_header("Totals")
    names = {u.id: u.name for u in view.users}
    for user_id, total in view.user_totals().items():
        print(f"  {names[user_id]:<8} {total}")

    wait_for_enter()


def step_06_cascade(ledger: OptionLedger):
    step_header(6, "Cascading Deletes",
        "Deleting a user or option removes its links with it.")

    alice = ledger.list_users()[0]
    ledger.delete_user(alice.id)
    ledger.delete_user(alice.id)   # idempotent

    print(render_matrix(ledger.get_matrix_view()))


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    CONFIG.db_path = parse_db_path(sys.argv)

    ledger = OptionLedger.open(CONFIG.db_path, verbose=True)
    try:
        step_01_users(ledger)
        step_02_options(ledger)
        step_03_ownership(ledger)
        step_04_dangling(ledger)
        step_05_matrix(ledger)
        step_06_cascade(ledger)
    finally:
        ledger.close()


if __name__ == "__main__":
    main()
