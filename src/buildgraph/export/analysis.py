"""Whole-graph dependency analysis with NetworkX.

The exporter only discovers cycles reachable from the requested roots. This
module builds the phony-collapsed action graph for the entire arena, which
the ``check`` command uses to validate a snapshot before exporting it.
"""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx

from buildgraph.contracts.graph import BuildAction
from buildgraph.export.phony import describe_action, resolve_action_dependencies


def action_dependency_graph(actions: Iterable[BuildAction]) -> nx.DiGraph[int]:
    """Build a DiGraph over real actions with phony aliases collapsed.

    Nodes are action keys (with a ``label`` attribute); an edge u -> v means
    action v depends on action u. Phony actions are not nodes.
    """
    graph: nx.DiGraph[int] = nx.DiGraph()
    for action in actions:
        if action.is_phony:
            continue
        graph.add_node(action.key, label=describe_action(action))
        for dependency in resolve_action_dependencies(action):
            graph.add_node(dependency.key, label=describe_action(dependency))
            graph.add_edge(dependency.key, action.key)
    return graph


def find_action_cycle(graph: nx.DiGraph[int]) -> list[str] | None:
    """Return one cycle as action labels in dependency order, None if acyclic."""
    if nx.is_directed_acyclic_graph(graph):
        return None
    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return None
    return [graph.nodes[u]["label"] for u, _v in cycle]
