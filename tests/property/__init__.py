# tests/property/__init__.py
"""Property-based tests for buildgraph.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- export/: Topological ordering, reference integrity, cycle reporting
"""
