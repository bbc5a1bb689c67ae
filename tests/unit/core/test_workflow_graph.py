# tests/unit/core/test_workflow_graph.py
"""Tests for WorkflowGraph construction and endpoint validation."""

import pytest

from drawflow.contracts.enums import DrawDocumentType, EdgeKind, WorkflowDataNodeType, WorkflowNodeType
from drawflow.contracts.errors import (
    EdgeHasInvalidSourceError,
    EdgeHasInvalidTargetError,
    InvalidNodeTypeError,
    MultipleEndNodesFoundError,
    MultipleStartNodesFoundError,
    NoStartNodeFoundError,
)
from drawflow.contracts.workflow import DrawDocument, WorkflowEdgeRecord, WorkflowNodeRecord
from drawflow.core.graph import WorkflowGraph, find_start_node, parse_node_type


def _chain(*edges: tuple[str, str], data: tuple[str, ...] = ()) -> WorkflowGraph:
    graph = WorkflowGraph()
    ids = dict.fromkeys(n for edge in edges for n in edge)
    for node_id in ids:
        node_type = WorkflowDataNodeType.DRAW_DATA if node_id in data else WorkflowNodeType.NOOP
        graph.add_node(node_id, node_type)
    for index, (source, target) in enumerate(edges):
        graph.add_edge(f"e{index}", source, target)
    return graph


class TestParseNodeType:
    def test_functional_and_data_types(self) -> None:
        assert parse_node_type("n", "WorkflowDrawNode") is WorkflowNodeType.DRAW
        assert parse_node_type("n", "WorkflowNullDataNode") is WorkflowDataNodeType.NULL_DATA

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(InvalidNodeTypeError) as exc_info:
            parse_node_type("n1", "WorkflowMagicNode")

        assert exc_info.value.message_params == (("workflowNodeId", "n1"), ("workflowNodeType", "WorkflowMagicNode"))


class TestEdges:
    def test_edge_kind_follows_source_type(self) -> None:
        graph = WorkflowGraph()
        graph.add_node("d", WorkflowDataNodeType.DRAW_DATA)
        graph.add_node("a", WorkflowNodeType.DRAW)
        graph.add_node("b", WorkflowNodeType.EXPORT)

        assert graph.add_edge("e1", "d", "a") is EdgeKind.OVERRIDE
        assert graph.add_edge("e2", "a", "b") is EdgeKind.FLOW

        node = graph.get_node("a")
        assert node.overrides == ("d",)
        assert node.sources == ()
        assert node.targets == ("b",)

    def test_duplicate_edges_are_kept(self) -> None:
        graph = _chain(("a", "b"), ("a", "b"))

        assert graph.edge_count == 2
        assert graph.get_node("a").targets == ("b", "b")

    def test_unknown_source_and_target(self) -> None:
        graph = WorkflowGraph()
        graph.add_node("a", WorkflowNodeType.NOOP)

        with pytest.raises(EdgeHasInvalidSourceError):
            graph.add_edge("e1", "ghost", "a")
        with pytest.raises(EdgeHasInvalidTargetError):
            graph.add_edge("e2", "a", "ghost")

    def test_get_node_unknown_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            WorkflowGraph().get_node("x")


class TestFromRecords:
    def test_builds_graph_and_attaches_documents(self) -> None:
        nodes = [
            WorkflowNodeRecord(id="hc", workflow_instance_id="i", node_type="WorkflowDrawDataNode"),
            WorkflowNodeRecord(id="draw", workflow_instance_id="i", node_type="WorkflowDrawNode"),
        ]
        edges = [WorkflowEdgeRecord(id="e1", workflow_instance_id="i", source_node_id="hc", target_node_id="draw")]
        document = DrawDocument(
            id="doc",
            organization_id="org",
            name="codes",
            filename="codes.csv",
            content_type="text/csv",
            blob_key="org/codes.csv",
            document_type=DrawDocumentType.HUNT_CODES,
            workflow_node_id="hc",
        )
        orphan = DrawDocument(
            id="orphan",
            organization_id="org",
            name="x",
            filename="x.csv",
            content_type="text/csv",
            blob_key="org/x.csv",
            document_type=DrawDocumentType.APPLICANTS,
            workflow_node_id="elsewhere",
        )

        graph = WorkflowGraph.from_records(nodes, edges, [document, orphan])

        assert graph.node_count == 2
        assert graph.get_node("hc").document == document
        assert graph.get_node("draw").overrides == ("hc",)
        assert graph.functional_node_ids() == ["draw"]

    def test_invalid_node_type_raises(self) -> None:
        nodes = [WorkflowNodeRecord(id="n", workflow_instance_id="i", node_type="Nope")]

        with pytest.raises(InvalidNodeTypeError):
            WorkflowGraph.from_records(nodes, [])


class TestFindStartNode:
    def test_linear_chain(self) -> None:
        assert find_start_node(_chain(("a", "b"), ("b", "c"))) == "a"

    def test_single_node(self) -> None:
        graph = WorkflowGraph()
        graph.add_node("only", WorkflowNodeType.DRAW)

        assert find_start_node(graph) == "only"

    def test_data_nodes_are_not_starts(self) -> None:
        assert find_start_node(_chain(("d", "a"), ("a", "b"), data=("d",))) == "a"

    def test_multiple_starts(self) -> None:
        with pytest.raises(MultipleStartNodesFoundError) as exc_info:
            find_start_node(_chain(("a", "c"), ("b", "c")))

        assert exc_info.value.node_ids == ("a", "b")

    def test_no_start_in_full_cycle(self) -> None:
        with pytest.raises(NoStartNodeFoundError):
            find_start_node(_chain(("a", "b"), ("b", "c"), ("c", "a")))

    def test_no_functional_nodes(self) -> None:
        graph = WorkflowGraph()
        graph.add_node("d", WorkflowDataNodeType.DRAW_DATA)

        with pytest.raises(NoStartNodeFoundError):
            find_start_node(graph)

    def test_multiple_ends(self) -> None:
        with pytest.raises(MultipleEndNodesFoundError) as exc_info:
            find_start_node(_chain(("a", "b"), ("a", "c")))

        assert exc_info.value.node_ids == ("b", "c")
