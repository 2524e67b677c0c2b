"""Phony alias collapsing.

A phony action has no command; it only renames its inputs. For example,
given action E with inputs p_n01 and n2, where p_n01 is a phony alias of
n0 and n1:

    n0---.--> {phony} --> p_n01-----.---> {E}
    n1--´                          /
                             n2---´

resolve_file_inputs(E) returns [n0, n1, n2] and
resolve_action_dependencies(E) returns the real producers of those nodes.

All functions are pure. Each call keeps its own "seen" set, so a cyclic
phony chain still terminates; ordering cycles among real actions are the
exporter's concern, not this module's. Traversal uses an explicit stack
that pops in the same order a recursive walk would visit, so alias depth
is not limited by the interpreter's recursion limit.
"""

from __future__ import annotations

from buildgraph.contracts.graph import BuildAction, BuildNode
from buildgraph.contracts.types import ActionKey, NodeKey


def resolve_action_dependencies(action: BuildAction) -> list[BuildAction]:
    """Return the real actions ``action`` depends on, phony aliases removed.

    Order follows input declaration order, expanding each phony alias in
    place. The first discovery of an action wins; later rediscoveries are
    dropped.
    """
    result: list[BuildAction] = []
    seen: set[ActionKey] = set()
    pending: list[BuildNode] = list(reversed(action.inputs))

    while pending:
        producer = pending.pop().producing_action
        if producer is None or producer.key in seen:
            # Source file, or dependency already collected
            continue
        seen.add(producer.key)
        if producer.is_phony:
            pending.extend(reversed(producer.inputs))
        else:
            result.append(producer)

    return result


def resolve_file_inputs(action: BuildAction) -> list[BuildNode]:
    """Return the true input files of ``action``, phony aliases removed.

    A node produced by a real action is a true input (the node is listed,
    not its producer). A node produced by a phony action is replaced by the
    phony action's own inputs, recursively. Dedup and order as in
    resolve_action_dependencies().
    """
    result: list[BuildNode] = []
    seen: set[NodeKey] = set()
    pending: list[BuildNode] = list(reversed(action.inputs))

    while pending:
        node = pending.pop()
        if node.key in seen:
            continue
        seen.add(node.key)
        producer = node.producing_action
        if producer is not None and producer.is_phony:
            pending.extend(reversed(producer.inputs))
        else:
            result.append(node)

    return result


def resolve_node_producers(node: BuildNode) -> list[BuildAction]:
    """Return the real actions that ultimately produce ``node``.

    Empty for a source file (or an alias of source files only), the producer
    itself when it is real, and the collapsed producers of a phony alias.
    """
    producer = node.producing_action
    if producer is None:
        return []
    if not producer.is_phony:
        return [producer]
    return resolve_action_dependencies(producer)


def describe_action(action: BuildAction) -> str:
    """Short human-readable label for messages: rule name and first output."""
    first_output = action.outputs[0].path if action.outputs else "<no outputs>"
    return f"{action.rule_name} '{first_output}'"
