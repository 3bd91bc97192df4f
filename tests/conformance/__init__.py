"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Every operation commits all of its effects or none
2. reentrancy.py - No mutating call may start while another is running
3. exchange_rate.py - Share value never falls while shares are outstanding
4. conservation.py - Pool operations move value, never create or destroy it

These tests use hypothesis for property-based testing.
"""
