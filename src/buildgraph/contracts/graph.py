"""Graph model protocols consumed by the exporter.

The exporter never builds or mutates a graph. It reads nodes and actions
through these protocols, so any graph that exposes stable integer keys can
be exported. buildgraph.graph.BuildGraph is the bundled implementation.

Identity:
    Every node and action carries an arena key. All exporter maps and sets
    are keyed by it, never by object identity, which keeps iteration
    deterministic.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from buildgraph.contracts.types import ActionKey, NodeKey

DEPFILE_BINDING = "depfile"
RSPFILE_BINDING = "rspfile"
RSPFILE_CONTENT_BINDING = "rspfile_content"


@runtime_checkable
class BuildNode(Protocol):
    """A file identity in the build graph."""

    @property
    def key(self) -> NodeKey: ...

    @property
    def path(self) -> str: ...

    @property
    def producing_action(self) -> BuildAction | None:
        """The single action that writes this node, None for source files."""
        ...


@runtime_checkable
class BuildAction(Protocol):
    """A build step: one rule invocation with inputs and outputs.

    Phony actions have no real command; they only alias their inputs
    under the names of their outputs.
    """

    @property
    def key(self) -> ActionKey: ...

    @property
    def rule_name(self) -> str: ...

    @property
    def is_phony(self) -> bool: ...

    @property
    def inputs(self) -> Sequence[BuildNode]: ...

    @property
    def outputs(self) -> Sequence[BuildNode]: ...

    def evaluated_command(self) -> str:
        """Fully evaluated shell command (empty for phony actions)."""
        ...

    def binding(self, name: str) -> str:
        """Value of a resolved binding, empty string when unbound."""
        ...

    def unescaped_response_file_path(self) -> str:
        """Response file path with escaping removed, empty when unbound."""
        ...
