# tests/property/__init__.py
"""Property-based tests for Ferryman.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- core/: Scanner encryption and idempotence, checkpoint round trips, quarantine records
- engine/: Resume pointer and counter invariants of the ordered fold
"""
