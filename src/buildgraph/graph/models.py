# src/buildgraph/graph/models.py
"""Node and action types for the in-memory build graph.

Leaf module: no intra-package imports beyond contracts (prevents import
cycles between arena.py and loader.py).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from buildgraph.contracts.graph import RSPFILE_BINDING
from buildgraph.contracts.types import ActionKey, NodeKey

PHONY_RULE = "phony"


class GraphModelError(ValueError):
    """Raised when a graph cannot be constructed as described."""

    pass


@dataclass(slots=True, eq=False)
class Node:
    """A file identity owned by a BuildGraph arena.

    Compared by identity: two nodes are the same only if they are the same
    arena entry. Use ``key`` for maps and sets.
    """

    key: NodeKey
    path: str
    producing_action: Action | None = None

    def __repr__(self) -> str:
        return f"Node({self.key}, {self.path!r})"


@dataclass(slots=True, eq=False)
class Action:
    """A build action owned by a BuildGraph arena.

    Frozen in practice after BuildGraph.add_action() returns: inputs and
    outputs are tuples and bindings are a read-only mapping.
    """

    key: ActionKey
    rule_name: str
    inputs: tuple[Node, ...]
    outputs: tuple[Node, ...]
    command: str = ""
    phony: bool = False
    bindings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_phony(self) -> bool:
        return self.phony or self.rule_name == PHONY_RULE

    def evaluated_command(self) -> str:
        return self.command

    def binding(self, name: str) -> str:
        return self.bindings.get(name, "")

    def unescaped_response_file_path(self) -> str:
        # Snapshot bindings are already resolved; no shell escaping remains.
        return self.binding(RSPFILE_BINDING)

    def __repr__(self) -> str:
        first_output = self.outputs[0].path if self.outputs else "<no outputs>"
        return f"Action({self.key}, rule={self.rule_name!r}, {first_output!r})"
