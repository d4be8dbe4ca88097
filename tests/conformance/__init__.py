"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the option ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. idempotency.py - Upsert-or-delete and deletes are safe to repeat
2. referential_integrity.py - No dangling links at rest, cascades on delete
3. round_trip.py - Listings reflect exactly the net effect of any operation sequence
4. projection.py - The matrix report is a faithful dense view of the links

These tests use hypothesis for property-based testing.
"""
