"""
buildgraph: export resolved build dependency graphs as JSON.

Collapses phony aliases, orders real build actions topologically, and
writes a back-reference-consistent document for IDEs and graph tooling.
"""

__version__ = "0.1.0"
