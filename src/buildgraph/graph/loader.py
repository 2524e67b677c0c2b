"""Load an already-resolved build graph snapshot from YAML or JSON.

Snapshots are produced by whatever tool owns the build files. They carry
evaluated commands and resolved bindings, so nothing is evaluated here.
PyYAML parses both YAML and JSON (JSON is a YAML subset).

Example snapshot:
    actions:
      - rule: cc
        command: cc -MD -MF obj1.o.d -c src1.c -o obj1.o
        inputs: [src1.c]
        outputs: [obj1.o]
        bindings: {depfile: obj1.o.d}
      - rule: phony
        inputs: [obj1.o, obj2.o]
        outputs: [objs]
    defaults: [app]
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from buildgraph.core.logging import get_logger
from buildgraph.graph.arena import BuildGraph
from buildgraph.graph.models import GraphModelError, Node

logger = get_logger(__name__)


class ActionSnapshot(BaseModel):
    """One resolved build action."""

    model_config = {"frozen": True, "extra": "forbid"}

    rule: str = Field(min_length=1, description="Rule name; 'phony' marks an alias")
    command: str = Field(default="", description="Fully evaluated shell command")
    inputs: list[str] = Field(default_factory=list, description="Explicit, implicit and order-only inputs")
    outputs: list[str] = Field(min_length=1, description="Paths written by the action")
    phony: bool = Field(default=False, description="Alias action regardless of rule name")
    bindings: dict[str, str] = Field(
        default_factory=dict,
        description="Resolved bindings (depfile, rspfile, rspfile_content)",
    )

    @field_validator("inputs", "outputs")
    @classmethod
    def validate_paths(cls, v: list[str]) -> list[str]:
        """Reject empty paths at the trust boundary."""
        for path in v:
            if not path:
                raise ValueError("paths must be non-empty strings")
        return v


class GraphSnapshot(BaseModel):
    """Top-level snapshot document."""

    model_config = {"frozen": True, "extra": "forbid"}

    actions: list[ActionSnapshot] = Field(default_factory=list)
    defaults: list[str] = Field(
        default_factory=list,
        description="Default export roots; empty means every unconsumed output",
    )


@dataclass(frozen=True, slots=True)
class LoadedGraph:
    """A populated BuildGraph plus the snapshot's default roots."""

    graph: BuildGraph
    defaults: tuple[Node, ...]


def build_graph(snapshot: GraphSnapshot) -> LoadedGraph:
    """Populate a BuildGraph from a validated snapshot.

    Raises:
        GraphModelError: If the snapshot describes an invalid graph or a
            default names an unknown path
    """
    graph = BuildGraph()
    for action in snapshot.actions:
        graph.add_action(
            action.rule,
            action.inputs,
            action.outputs,
            command=action.command,
            phony=action.phony,
            bindings=action.bindings,
        )

    defaults: list[Node] = []
    for path in snapshot.defaults:
        if not graph.has_node(path):
            raise GraphModelError(f"Default target '{path}' is not a node of the graph")
        defaults.append(graph.node(path))

    return LoadedGraph(graph=graph, defaults=tuple(defaults))


def load_graph(path: Path) -> LoadedGraph:
    """Load and validate a snapshot file.

    Args:
        path: YAML or JSON snapshot file

    Returns:
        LoadedGraph with the populated arena and default roots

    Raises:
        FileNotFoundError: If the file doesn't exist
        UnicodeDecodeError: If the file is not valid UTF-8
        yaml.YAMLError: If the file is not parseable
        ValidationError: If the document fails Pydantic validation
        GraphModelError: If the snapshot describes an invalid graph
    """
    if not path.exists():
        raise FileNotFoundError(f"Graph snapshot not found: {path}")

    with path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    # An empty file is an empty graph
    snapshot = GraphSnapshot.model_validate(raw if raw is not None else {})
    loaded = build_graph(snapshot)
    logger.debug(
        "graph_snapshot_loaded",
        path=path,
        nodes=loaded.graph.node_count,
        actions=loaded.graph.action_count,
        defaults=len(loaded.defaults),
    )
    return loaded
