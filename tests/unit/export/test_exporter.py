"""Tests for GraphExporter ordering, id assignment, and document emission."""

from __future__ import annotations

import pytest

from buildgraph.contracts.errors import (
    CycleDetectedError,
    DanglingReferenceError,
    ExportSessionClosedError,
    ForwardReferenceError,
)
from buildgraph.core.config import ExportSettings
from buildgraph.export.exporter import GraphExporter, export_graph
from buildgraph.graph import BuildGraph
from tests.fixtures.graphs import nodes_by_command, parse_document


def _export(graph: BuildGraph, *targets: str, settings: ExportSettings | None = None) -> dict:
    exporter = GraphExporter(settings)
    for target in targets:
        exporter.register_root_target(graph.node(target))
    return parse_document(exporter.flush())


class TestScenarioExport:
    """app <- link <- phony objs <- {obj1.o <- cc1, obj2.o <- cc2}."""

    def test_nodes_in_topological_order(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app")

        commands = [node["command"] for node in parsed["Graph"]["Nodes"]]
        assert commands == ["cc -c src1.c -o obj1.o", "cc -c src2.c -o obj2.o", "ld obj1.o obj2.o -o app"]
        assert [node["$id"] for node in parsed["Graph"]["Nodes"]] == ["1", "2", "3"]

    def test_phony_action_never_emitted(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app")

        assert all(node["rule"] != "phony" for node in parsed["Graph"]["Nodes"])

    def test_link_dependencies_and_inputs(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app")
        link = nodes_by_command(parsed)["ld obj1.o obj2.o -o app"]

        assert link["rule"] == "link"
        assert link["dependencies"] == [{"$ref": "1"}, {"$ref": "2"}]
        assert link["inputs"] == ["obj1.o", "obj2.o"]
        assert link["outputs"] == ["app"]
        assert "responseFile" not in link

    def test_targets_and_failure_reason(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app")

        assert parsed["Graph"]["Targets"] == [{"name": "app", "producer_node": {"$ref": "3"}}]
        assert parsed["FailureReason"] == ""

    def test_document_key_order(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app")

        assert list(parsed) == ["Graph", "FailureReason"]
        assert list(parsed["Graph"]) == ["Nodes", "Targets"]
        assert list(parsed["Graph"]["Nodes"][0]) == ["$id", "rule", "command", "dependencies", "inputs", "outputs"]


class TestSharingAndRegistration:
    """Dedup across roots and the root log."""

    def test_diamond_emits_shared_dependency_once(self, diamond_graph: BuildGraph) -> None:
        parsed = _export(diamond_graph, "app")
        nodes = nodes_by_command(parsed)

        assert len(parsed["Graph"]["Nodes"]) == 4
        gen_id = nodes["idlc schema.idl > gen.h"]["$id"]
        assert nodes["cc -c a.c -o a.o"]["dependencies"] == [{"$ref": gen_id}]
        assert nodes["cc -c b.c -o b.o"]["dependencies"] == [{"$ref": gen_id}]
        assert nodes["cc -c a.c -o a.o"]["inputs"] == ["a.c", "gen.h"]

    def test_two_roots_share_dependencies(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "obj1.o", "app")

        assert len(parsed["Graph"]["Nodes"]) == 3
        assert parsed["Graph"]["Targets"] == [
            {"name": "obj1.o", "producer_node": {"$ref": "1"}},
            {"name": "app", "producer_node": {"$ref": "3"}},
        ]

    def test_duplicate_registration_is_logged_twice(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app", "app")

        assert len(parsed["Graph"]["Nodes"]) == 3
        assert [t["name"] for t in parsed["Graph"]["Targets"]] == ["app", "app"]

    def test_ids_are_exposed_for_inserted_actions(self, scenario_graph: BuildGraph) -> None:
        exporter = GraphExporter()
        exporter.register_root_target(scenario_graph.node("app"))

        assert exporter.export_id(scenario_graph.node("app").producing_action) == 3
        assert exporter.export_id(scenario_graph.node("objs").producing_action) is None
        assert [a.rule_name for a in exporter.ordered_actions] == ["cc", "cc", "link"]
        assert [n.path for n in exporter.roots] == ["app"]

    def test_phony_actions_are_never_inserted(self, scenario_graph: BuildGraph) -> None:
        scenario_graph.add_action("phony", ["objs", "app"], ["all"])
        scenario_graph.add_action("phony", ["all"], ["world"])
        exporter = GraphExporter()
        for target in ("world", "all", "objs"):
            exporter.register_root_target(scenario_graph.node(target))

        assert exporter.ordered_actions
        assert not any(action.is_phony for action in exporter.ordered_actions)
        nodes = parse_document(exporter.flush())["Graph"]["Nodes"]
        assert [node["outputs"] for node in nodes] == [["obj1.o"], ["obj2.o"], ["app"]]


class TestTargetProducers:
    """Root targets whose producer is phony, absent, or real."""

    def test_phony_root_with_several_producers(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "objs")

        assert len(parsed["Graph"]["Nodes"]) == 2
        assert parsed["Graph"]["Targets"] == [
            {"name": "objs", "producer_nodes": [{"$ref": "1"}, {"$ref": "2"}]},
        ]

    def test_phony_root_with_single_producer(self, scenario_graph: BuildGraph) -> None:
        scenario_graph.add_action("phony", ["app"], ["all"])
        parsed = _export(scenario_graph, "all")

        assert parsed["Graph"]["Targets"] == [{"name": "all", "producer_node": {"$ref": "3"}}]

    def test_source_file_root(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "src1.c")

        assert parsed["Graph"]["Nodes"] == []
        assert parsed["Graph"]["Targets"] == [{"name": "src1.c", "producer_nodes": []}]

    def test_list_mode_always_uses_producer_nodes(self, scenario_graph: BuildGraph) -> None:
        parsed = _export(scenario_graph, "app", settings=ExportSettings(target_producers="list"))

        assert parsed["Graph"]["Targets"] == [{"name": "app", "producer_nodes": [{"$ref": "3"}]}]

    def test_every_target_reference_resolves(self, scenario_graph: BuildGraph) -> None:
        scenario_graph.add_action("phony", ["objs", "app"], ["all"])
        parsed = _export(scenario_graph, "all", "objs", "app", "src2.c")

        ids = {node["$id"] for node in parsed["Graph"]["Nodes"]}
        for target in parsed["Graph"]["Targets"]:
            refs = target["producer_nodes"] if "producer_nodes" in target else [target["producer_node"]]
            assert all(ref["$ref"] in ids for ref in refs)


class TestActionFields:
    """Bindings, escaping, and formatting of emitted actions."""

    def test_depfile_and_response_file(self) -> None:
        graph = BuildGraph()
        graph.add_action(
            "cc",
            ["main.c"],
            ["main.o"],
            command="cc @main.o.rsp",
            bindings={
                "depfile": "main.o.d",
                "rspfile": "main.o.rsp",
                "rspfile_content": "-c main.c -o main.o",
            },
        )
        parsed = _export(graph, "main.o")
        node = parsed["Graph"]["Nodes"][0]

        assert node["outputs"] == ["main.o", "main.o.d"]
        assert node["responseFile"] == {"name": "main.o.rsp", "content": "-c main.c -o main.o"}

    def test_response_file_without_content(self) -> None:
        graph = BuildGraph()
        graph.add_action("link", ["a.o"], ["app"], command="ld @app.rsp", bindings={"rspfile": "app.rsp"})
        parsed = _export(graph, "app")

        assert parsed["Graph"]["Nodes"][0]["responseFile"] == {"name": "app.rsp", "content": ""}

    def test_control_characters_survive(self) -> None:
        graph = BuildGraph()
        command = 'printf "a\tb\x1b[0m\n" > out\\x'
        graph.add_action("gen", ["in\x01put"], ["out\\x"], command=command)
        parsed = _export(graph, "out\\x")
        node = parsed["Graph"]["Nodes"][0]

        assert node["command"] == command
        assert node["inputs"] == ["in\x01put"]

    def test_indent_setting(self, scenario_graph: BuildGraph) -> None:
        exporter = GraphExporter(ExportSettings(indent=4))
        exporter.register_root_target(scenario_graph.node("app"))
        document = exporter.flush()

        assert document.splitlines()[1] == '    "Graph": {'
        assert document.endswith("}\n")


class TestCycles:
    """Cycle detection through direct and phony edges."""

    @staticmethod
    def _ring(through_phony: bool) -> BuildGraph:
        graph = BuildGraph()
        first_input = "alias" if through_phony else "c.out"
        graph.add_action("step", [first_input], ["a.out"], command="step a")
        graph.add_action("step", ["a.out"], ["b.out"], command="step b")
        graph.add_action("step", ["b.out"], ["c.out"], command="step c")
        if through_phony:
            graph.add_action("phony", ["c.out"], ["alias"])
        graph.add_action("pack", ["c.out"], ["final"], command="pack")
        return graph

    @pytest.mark.parametrize("through_phony", [False, True])
    def test_cycle_raises_and_assigns_no_ids(self, through_phony: bool) -> None:
        graph = self._ring(through_phony)
        exporter = GraphExporter()

        with pytest.raises(CycleDetectedError) as exc_info:
            exporter.register_root_target(graph.node("final"))

        assert len(exc_info.value.cycle) == 3
        for path in ("a.out", "b.out", "c.out", "final"):
            assert exporter.export_id(graph.node(path).producing_action) is None
        assert exporter.ordered_actions == ()
        assert exporter.failure is exc_info.value

    def test_failed_session_flushes_failure_document(self) -> None:
        graph = self._ring(through_phony=True)
        exporter = GraphExporter()
        with pytest.raises(CycleDetectedError):
            exporter.register_root_target(graph.node("final"))

        parsed = parse_document(exporter.flush())

        assert "Graph" not in parsed
        assert parsed["FailureReason"].startswith("Dependency cycle detected: ")

    def test_self_dependency_through_alias(self) -> None:
        graph = BuildGraph()
        graph.add_action("gen", ["self"], ["x"], command="gen x")
        graph.add_action("phony", ["x"], ["self"])

        with pytest.raises(CycleDetectedError) as exc_info:
            GraphExporter().register_root_target(graph.node("x"))

        assert exc_info.value.cycle == ("gen 'x'",)
        assert exc_info.value.reason == "Dependency cycle detected: gen 'x' -> gen 'x'"

    def test_earlier_roots_keep_ids_but_document_fails(self, scenario_graph: BuildGraph) -> None:
        scenario_graph.add_action("gen", ["loop"], ["loop.out"], command="gen")
        scenario_graph.add_action("phony", ["loop.out"], ["loop"])
        exporter = GraphExporter()
        exporter.register_root_target(scenario_graph.node("app"))

        with pytest.raises(CycleDetectedError):
            exporter.register_root_target(scenario_graph.node("loop.out"))
        # Further registrations are logged but insert nothing
        exporter.register_root_target(scenario_graph.node("obj1.o"))

        assert len(exporter.ordered_actions) == 3
        assert len(exporter.roots) == 3
        assert "Graph" not in parse_document(exporter.flush())

    def test_visiting_state_does_not_leak_between_calls(self, diamond_graph: BuildGraph) -> None:
        """A shared dependency reached again in a later call is not a cycle."""
        exporter = GraphExporter()
        exporter.register_root_target(diamond_graph.node("a.o"))
        exporter.register_root_target(diamond_graph.node("b.o"))
        exporter.register_root_target(diamond_graph.node("app"))

        assert [a.evaluated_command() for a in exporter.ordered_actions] == [
            "idlc schema.idl > gen.h",
            "cc -c a.c -o a.o",
            "cc -c b.c -o b.o",
            "ld a.o b.o -o app",
        ]


class TestReferenceIntegrity:
    """Internal invariant violations fail the document instead of emitting bad refs."""

    def test_dangling_dependency(self, scenario_graph: BuildGraph) -> None:
        exporter = GraphExporter()
        exporter.register_root_target(scenario_graph.node("obj1.o"))
        # Graph changed under the session: cc1 now needs an action that was never inserted
        scenario_graph.add_action("gen", ["x.idl"], ["x.h"], command="idlc")
        cc1 = scenario_graph.node("obj1.o").producing_action
        cc1.inputs = (*cc1.inputs, scenario_graph.node("x.h"))

        parsed = parse_document(exporter.flush())

        assert "Graph" not in parsed
        assert parsed["FailureReason"].startswith("Dangling reference: cc 'obj1.o'")
        assert isinstance(exporter.failure, DanglingReferenceError)

    def test_forward_dependency(self, scenario_graph: BuildGraph) -> None:
        exporter = GraphExporter()
        exporter.register_root_target(scenario_graph.node("obj1.o"))
        exporter.register_root_target(scenario_graph.node("obj2.o"))
        cc1 = scenario_graph.node("obj1.o").producing_action
        cc1.inputs = (*cc1.inputs, scenario_graph.node("obj2.o"))

        parsed = parse_document(exporter.flush())

        assert parsed["FailureReason"].startswith("Forward reference: cc 'obj1.o' (id 1)")
        assert isinstance(exporter.failure, ForwardReferenceError)


class TestSessionLifecycle:
    def test_flush_is_terminal(self, scenario_graph: BuildGraph) -> None:
        exporter = GraphExporter()
        exporter.register_root_target(scenario_graph.node("app"))
        exporter.flush()

        with pytest.raises(ExportSessionClosedError):
            exporter.flush()
        with pytest.raises(ExportSessionClosedError):
            exporter.register_root_target(scenario_graph.node("app"))

    def test_empty_session(self) -> None:
        parsed = parse_document(GraphExporter().flush())

        assert parsed == {"Graph": {"Nodes": [], "Targets": []}, "FailureReason": ""}


class TestExportGraph:
    def test_success(self, scenario_graph: BuildGraph) -> None:
        result = export_graph([scenario_graph.node("app")])

        assert result.ok
        assert parse_document(result.document)["FailureReason"] == ""

    def test_cycle_is_reported_not_raised(self) -> None:
        graph = BuildGraph()
        graph.add_action("step", ["b.out"], ["a.out"], command="a")
        graph.add_action("step", ["a.out"], ["b.out"], command="b")

        result = export_graph([graph.node("a.out"), graph.node("b.out")])

        assert not result.ok
        assert isinstance(result.failure, CycleDetectedError)
        assert parse_document(result.document) == {"FailureReason": result.failure.reason}
