"""Graph export: phony collapsing, topological ordering, JSON emission."""

from buildgraph.export.analysis import action_dependency_graph, find_action_cycle
from buildgraph.export.exporter import ExportResult, GraphExporter, export_graph
from buildgraph.export.phony import (
    describe_action,
    resolve_action_dependencies,
    resolve_file_inputs,
    resolve_node_producers,
)
from buildgraph.export.writer import JsonStreamWriter, escape_json

__all__ = [
    "ExportResult",
    "GraphExporter",
    "JsonStreamWriter",
    "action_dependency_graph",
    "describe_action",
    "escape_json",
    "export_graph",
    "find_action_cycle",
    "resolve_action_dependencies",
    "resolve_file_inputs",
    "resolve_node_producers",
]
