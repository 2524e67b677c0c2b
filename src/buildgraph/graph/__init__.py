"""In-memory build graph model and snapshot loading."""

from buildgraph.graph.arena import BuildGraph
from buildgraph.graph.loader import GraphSnapshot, LoadedGraph, build_graph, load_graph
from buildgraph.graph.models import PHONY_RULE, Action, GraphModelError, Node

__all__ = [
    "PHONY_RULE",
    "Action",
    "BuildGraph",
    "GraphModelError",
    "GraphSnapshot",
    "LoadedGraph",
    "Node",
    "build_graph",
    "load_graph",
]
