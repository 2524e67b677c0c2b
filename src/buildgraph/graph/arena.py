# src/buildgraph/graph/arena.py
"""BuildGraph arena: owns every node and action and hands out stable keys.

Keys are dense integers assigned in insertion order, so iterating the arena
is deterministic and never depends on object addresses.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from buildgraph.contracts.types import ActionKey, NodeKey
from buildgraph.graph.models import PHONY_RULE, Action, GraphModelError, Node


class BuildGraph:
    """Read-mostly build graph: nodes keyed by path, actions in declaration order.

    The graph is populated once (usually by loader.load_graph()) and then
    treated as immutable by the exporter.

    Example:
        graph = BuildGraph()
        graph.add_action("cc", ["src1.c"], ["obj1.o"], command="cc -c src1.c -o obj1.o")
        graph.add_action("phony", ["obj1.o"], ["objs"])
        graph.node("objs").producing_action.is_phony  # True
    """

    def __init__(self) -> None:
        self._nodes: list[Node] = []
        self._actions: list[Action] = []
        self._node_by_path: dict[str, Node] = {}

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return len(self._nodes)

    @property
    def action_count(self) -> int:
        """Number of actions in the graph (phony included)."""
        return len(self._actions)

    @property
    def nodes(self) -> Sequence[Node]:
        return tuple(self._nodes)

    @property
    def actions(self) -> Sequence[Action]:
        return tuple(self._actions)

    def has_node(self, path: str) -> bool:
        """Check if a node with this path exists."""
        return path in self._node_by_path

    def node(self, path: str) -> Node:
        """Get the node for a path.

        Raises:
            KeyError: If no node has this path
        """
        if path not in self._node_by_path:
            raise KeyError(f"Node not found: {path}")
        return self._node_by_path[path]

    def add_node(self, path: str) -> Node:
        """Return the node for ``path``, creating it on first use.

        Raises:
            GraphModelError: If path is empty
        """
        if not path:
            raise GraphModelError("Node path must not be empty")
        existing = self._node_by_path.get(path)
        if existing is not None:
            return existing
        node = Node(key=NodeKey(len(self._nodes)), path=path)
        self._nodes.append(node)
        self._node_by_path[path] = node
        return node

    def add_action(
        self,
        rule: str,
        inputs: Iterable[str],
        outputs: Iterable[str],
        *,
        command: str = "",
        phony: bool = False,
        bindings: Mapping[str, str] | None = None,
    ) -> Action:
        """Add an action and wire it as the producer of its outputs.

        Args:
            rule: Rule name ("phony" marks the action phony)
            inputs: Input paths in declaration order
            outputs: Output paths in declaration order (at least one)
            command: Fully evaluated command line
            phony: Mark the action phony regardless of rule name
            bindings: Resolved bindings (depfile, rspfile, rspfile_content, ...)

        Returns:
            The new Action

        Raises:
            GraphModelError: If the rule is empty, there are no outputs,
                an output already has a producer, or a phony action
                carries a command or bindings.
        """
        if not rule:
            raise GraphModelError("Action rule name must not be empty")

        output_paths = list(outputs)
        if not output_paths:
            raise GraphModelError(f"Action for rule '{rule}' declares no outputs")

        for path in output_paths:
            if path in self._node_by_path and self._node_by_path[path].producing_action is not None:
                producer = self._node_by_path[path].producing_action
                raise GraphModelError(f"Multiple actions produce '{path}': rule '{producer.rule_name}' and rule '{rule}'")
        if len(set(output_paths)) != len(output_paths):
            raise GraphModelError(f"Action for rule '{rule}' lists an output more than once: {output_paths}")
        if (phony or rule == PHONY_RULE) and (command or bindings):
            raise GraphModelError(f"Phony action producing '{output_paths[0]}' must not carry a command or bindings")

        action = Action(
            key=ActionKey(len(self._actions)),
            rule_name=rule,
            inputs=tuple(self.add_node(path) for path in inputs),
            outputs=tuple(self.add_node(path) for path in output_paths),
            command=command,
            phony=phony,
            bindings=MappingProxyType(dict(bindings or {})),
        )
        for node in action.outputs:
            node.producing_action = action
        self._actions.append(action)
        return action

    def root_nodes(self) -> list[Node]:
        """Outputs that no action consumes, in declaration order.

        These are the default export roots when none are requested.
        """
        consumed = {node.key for action in self._actions for node in action.inputs}
        return [node for action in self._actions for node in action.outputs if node.key not in consumed]
