"""GraphExporter: topological ordering of build actions and document emission.

An export session registers root targets one at a time. Each registration
inserts the target's real producing actions, and everything they depend on,
into a single list in depth-first post-order. Ids are handed out as actions
finish, so every dependency has a smaller id than its dependents and a
dependency shared by several roots appears once.

flush() is terminal. It validates every reference before writing a single
token, builds the whole document in memory and returns it; nothing reaches
the real output until the document is complete.

Document shape:
    {
      "Graph": {
        "Nodes": [<action>, ...],    # assigned-id order
        "Targets": [<target>, ...]   # registration order
      },
      "FailureReason": ""
    }

On failure the document is {"FailureReason": "<reason>"} with no Graph.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from buildgraph.contracts.errors import (
    CycleDetectedError,
    DanglingReferenceError,
    ExportError,
    ExportSessionClosedError,
    ForwardReferenceError,
    ReferenceIntegrityError,
)
from buildgraph.contracts.graph import DEPFILE_BINDING, RSPFILE_CONTENT_BINDING, BuildAction, BuildNode
from buildgraph.contracts.types import ActionKey, ExportID
from buildgraph.core.config import ExportSettings
from buildgraph.core.logging import bind_export_session, get_logger
from buildgraph.export.phony import (
    describe_action,
    resolve_action_dependencies,
    resolve_file_inputs,
    resolve_node_producers,
)
from buildgraph.export.writer import JsonStreamWriter

logger = get_logger(__name__)


@dataclass(slots=True)
class _Frame:
    """One action on the depth-first insertion stack."""

    action: BuildAction
    dependencies: list[BuildAction]
    next_dependency: int = 0


@dataclass(frozen=True, slots=True)
class _ActionRecord:
    """An action with every reference already resolved to an id."""

    export_id: ExportID
    rule: str
    command: str
    dependency_ids: tuple[ExportID, ...]
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    response_file: tuple[str, str] | None  # (name, content)


@dataclass(frozen=True, slots=True)
class _TargetRecord:
    name: str
    producer_ids: tuple[ExportID, ...]


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome of export_graph().

    Attributes:
        document: Complete JSON text, success or failure shape
        failure: The error that aborted the export, None on success
    """

    document: str
    failure: ExportError | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class GraphExporter:
    """One export session over a read-only build graph.

    Example:
        exporter = GraphExporter()
        exporter.register_root_target(graph.node("app"))
        document = exporter.flush()
    """

    def __init__(self, settings: ExportSettings | None = None) -> None:
        self._settings = settings if settings is not None else ExportSettings()
        self._roots: list[BuildNode] = []
        self._ids: dict[ActionKey, ExportID] = {}
        self._ordered: list[BuildAction] = []
        # Insertion-ordered: the keys are the current DFS path, root first
        self._visiting: dict[ActionKey, BuildAction] = {}
        self._last_id = 0
        self._failure: ExportError | None = None
        self._flushed = False
        self._log = bind_export_session(logger)

    @property
    def roots(self) -> Sequence[BuildNode]:
        """Registered root targets in registration order (duplicates kept)."""
        return tuple(self._roots)

    @property
    def ordered_actions(self) -> Sequence[BuildAction]:
        """Inserted actions in emission (assigned-id) order."""
        return tuple(self._ordered)

    @property
    def failure(self) -> ExportError | None:
        return self._failure

    def export_id(self, action: BuildAction) -> ExportID | None:
        """Id assigned to ``action``, None if it was never inserted."""
        return self._ids.get(action.key)

    def register_root_target(self, node: BuildNode) -> None:
        """Register ``node`` as an export root and insert its producers.

        A phony producer is collapsed first: its real producers are inserted
        instead, so phony actions never receive an id. Once the session has
        failed, roots are still logged but nothing more is inserted.

        Raises:
            CycleDetectedError: If a producer depends on itself through any
                chain of actions. The failure is also recorded on the session.
            ExportSessionClosedError: If the session was already flushed
        """
        self._ensure_open()
        self._roots.append(node)
        if self._failure is not None:
            return

        producers = resolve_node_producers(node)
        for producer in producers:
            if producer.key in self._ids:
                continue
            try:
                self._topological_insert(producer)
            except CycleDetectedError as exc:
                self._failure = exc
                self._log.error("dependency_cycle_detected", target=node.path, cycle=list(exc.cycle))
                raise
            finally:
                self._visiting.clear()

        self._log.debug(
            "root_target_registered",
            target=node.path,
            producers=len(producers),
            actions=len(self._ordered),
        )

    def _topological_insert(self, action: BuildAction) -> None:
        """Insert ``action`` after all of its dependencies (depth-first post-order).

        Raises:
            CycleDetectedError: If a dependency path revisits an action that is
                still being resolved. No action on that path gets an id.
        """
        if action.key in self._ids:
            return

        frames: list[_Frame] = []
        self._enter(action, frames)
        while frames:
            frame = frames[-1]
            if frame.next_dependency < len(frame.dependencies):
                dependency = frame.dependencies[frame.next_dependency]
                frame.next_dependency += 1
                if dependency.key not in self._ids:
                    self._enter(dependency, frames)
                continue

            frames.pop()
            del self._visiting[frame.action.key]
            self._last_id += 1
            self._ids[frame.action.key] = ExportID(self._last_id)
            self._ordered.append(frame.action)

    def _enter(self, action: BuildAction, frames: list[_Frame]) -> None:
        if action.key in self._visiting:
            path = list(self._visiting)
            cycle = path[path.index(action.key) :]
            raise CycleDetectedError([describe_action(self._visiting[key]) for key in cycle])

        dependencies = resolve_action_dependencies(action)
        self._visiting[action.key] = action
        frames.append(_Frame(action=action, dependencies=dependencies))

    def flush(self) -> str:
        """Serialize the session and close it.

        Returns:
            The complete document. A failed session (cycle at registration,
            or a reference integrity violation found here) yields the
            failure shape instead of a partial graph.

        Raises:
            ExportSessionClosedError: If called more than once
        """
        self._ensure_open()
        self._flushed = True

        buffer = io.StringIO()
        writer = JsonStreamWriter(buffer, indent=self._settings.indent)

        actions: list[_ActionRecord] = []
        targets: list[_TargetRecord] = []
        if self._failure is None:
            try:
                actions = [self._resolve_action(action) for action in self._ordered]
                targets = [self._resolve_target(node) for node in self._roots]
            except ReferenceIntegrityError as exc:
                self._failure = exc
                self._log.error("reference_integrity_violation", reason=exc.reason)

        if self._failure is not None:
            self._write_failure(writer, self._failure.reason)
        else:
            self._write_graph(writer, actions, targets)
            self._log.info("graph_exported", actions=len(actions), targets=len(targets))

        buffer.write("\n")
        return buffer.getvalue()

    def _ensure_open(self) -> None:
        if self._flushed:
            raise ExportSessionClosedError("Export session was already flushed")

    def _require_id(self, referrer: str, action: BuildAction) -> ExportID:
        export_id = self._ids.get(action.key)
        if export_id is None:
            raise DanglingReferenceError(referrer, describe_action(action))
        return export_id

    def _resolve_action(self, action: BuildAction) -> _ActionRecord:
        label = describe_action(action)
        export_id = self._ids[action.key]

        dependency_ids: list[ExportID] = []
        for dependency in resolve_action_dependencies(action):
            dependency_id = self._require_id(label, dependency)
            if dependency_id >= export_id:
                raise ForwardReferenceError(label, export_id, describe_action(dependency), dependency_id)
            dependency_ids.append(dependency_id)

        # Only real actions are ever inserted; phony producers are collapsed first
        outputs = [node.path for node in action.outputs]
        # A depfile is written by the command, so it is listed as an output
        depfile = action.binding(DEPFILE_BINDING)
        if depfile:
            outputs.append(depfile)

        response_file: tuple[str, str] | None = None
        rspfile = action.unescaped_response_file_path()
        if rspfile:
            response_file = (rspfile, action.binding(RSPFILE_CONTENT_BINDING))

        return _ActionRecord(
            export_id=export_id,
            rule=action.rule_name,
            command=action.evaluated_command(),
            dependency_ids=tuple(dependency_ids),
            inputs=tuple(node.path for node in resolve_file_inputs(action)),
            outputs=tuple(outputs),
            response_file=response_file,
        )

    def _resolve_target(self, node: BuildNode) -> _TargetRecord:
        referrer = f"target '{node.path}'"
        producer_ids = tuple(self._require_id(referrer, producer) for producer in resolve_node_producers(node))
        return _TargetRecord(name=node.path, producer_ids=producer_ids)

    def _write_graph(
        self,
        writer: JsonStreamWriter,
        actions: list[_ActionRecord],
        targets: list[_TargetRecord],
    ) -> None:
        writer.start_object(False)
        writer.start_object_property("Graph", False)

        writer.start_array_property("Nodes", False)
        for i, record in enumerate(actions):
            self._write_action(writer, record, continued=i > 0)
        writer.end_array()

        writer.start_array_property("Targets", True)
        for i, target in enumerate(targets):
            self._write_target(writer, target, continued=i > 0)
        writer.end_array()

        writer.end_object()
        writer.string_property("FailureReason", "", True)
        writer.end_object()

    @staticmethod
    def _write_failure(writer: JsonStreamWriter, reason: str) -> None:
        writer.start_object(False)
        writer.string_property("FailureReason", reason, False)
        writer.end_object()

    @staticmethod
    def _write_reference(writer: JsonStreamWriter, export_id: ExportID, continued: bool) -> None:
        writer.start_object(continued)
        writer.numerical_string_property("$ref", export_id, False)
        writer.end_object()

    def _write_action(self, writer: JsonStreamWriter, record: _ActionRecord, *, continued: bool) -> None:
        writer.start_object(continued)
        writer.numerical_string_property("$id", record.export_id, False)
        writer.string_property("rule", record.rule, True)
        writer.string_property("command", record.command, True)

        writer.start_array_property("dependencies", True)
        for i, dependency_id in enumerate(record.dependency_ids):
            self._write_reference(writer, dependency_id, i > 0)
        writer.end_array()

        writer.start_array_property("inputs", True)
        for i, path in enumerate(record.inputs):
            writer.string(path, i > 0)
        writer.end_array()

        writer.start_array_property("outputs", True)
        for i, path in enumerate(record.outputs):
            writer.string(path, i > 0)
        writer.end_array()

        if record.response_file is not None:
            name, content = record.response_file
            writer.start_object_property("responseFile", True)
            writer.string_property("name", name, False)
            writer.string_property("content", content, True)
            writer.end_object()

        writer.end_object()

    def _write_target(self, writer: JsonStreamWriter, target: _TargetRecord, *, continued: bool) -> None:
        writer.start_object(continued)
        writer.string_property("name", target.name, False)

        if self._settings.target_producers == "auto" and len(target.producer_ids) == 1:
            writer.start_object_property("producer_node", True)
            writer.numerical_string_property("$ref", target.producer_ids[0], False)
            writer.end_object()
        else:
            writer.start_array_property("producer_nodes", True)
            for i, producer_id in enumerate(target.producer_ids):
                self._write_reference(writer, producer_id, i > 0)
            writer.end_array()

        writer.end_object()


def export_graph(targets: Iterable[BuildNode], settings: ExportSettings | None = None) -> ExportResult:
    """Export the graph reachable from ``targets`` in one session.

    Registration stops at the first cycle; the failure is recorded on the
    session and flush() turns it into the failure document.

    Args:
        targets: Root nodes in the order they should appear under Targets
        settings: Export settings (defaults when None)

    Returns:
        ExportResult with the complete document and the failure, if any
    """
    exporter = GraphExporter(settings)
    try:
        for node in targets:
            exporter.register_root_target(node)
    except CycleDetectedError:
        # Recorded on the session; flush() emits the failure document.
        pass
    document = exporter.flush()
    return ExportResult(document=document, failure=exporter.failure)
