# tests/fixtures/__init__.py
"""Shared graph builders and document helpers for buildgraph tests."""

from tests.fixtures.graphs import (
    build_diamond_graph,
    build_scenario_graph,
    nodes_by_command,
    parse_document,
)

__all__ = [
    "build_diamond_graph",
    "build_scenario_graph",
    "nodes_by_command",
    "parse_document",
]
