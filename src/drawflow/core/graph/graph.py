# src/drawflow/core/graph/graph.py
"""WorkflowGraph: the node/edge model of one workflow instance."""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx
from networkx import MultiDiGraph

from drawflow.contracts.enums import EdgeKind, WorkflowDataNodeType, WorkflowNodeType
from drawflow.contracts.errors import (
    EdgeHasInvalidSourceError,
    EdgeHasInvalidTargetError,
    InvalidNodeTypeError,
)
from drawflow.contracts.workflow import DrawDocument, WorkflowEdgeRecord, WorkflowNodeRecord
from drawflow.core.graph.models import GraphNode, NodeInfo, NodeType


def parse_node_type(node_id: str, raw_type: str) -> NodeType:
    """Map stored type text to a functional or data node type.

    Raises:
        InvalidNodeTypeError: If raw_type names neither kind
    """
    try:
        return WorkflowNodeType(raw_type)
    except ValueError:
        pass
    try:
        return WorkflowDataNodeType(raw_type)
    except ValueError:
        raise InvalidNodeTypeError(node_id, raw_type) from None


class WorkflowGraph:
    """Workflow graph of one instance.

    Wraps a NetworkX MultiDiGraph so that duplicate edges between the same
    pair of nodes are kept. Edge keys are the stored edge ids; each edge
    carries a ``kind`` attribute (EdgeKind).
    """

    def __init__(self) -> None:
        self._graph: MultiDiGraph[str] = nx.MultiDiGraph()

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def add_node(self, node_id: str, node_type: NodeType, document: DrawDocument | None = None) -> None:
        self._graph.add_node(node_id, info=NodeInfo(node_id=node_id, node_type=node_type, document=document))

    def attach_document(self, node_id: str, document: DrawDocument) -> None:
        info = self._info(node_id)
        self._graph.nodes[node_id]["info"] = NodeInfo(node_id=info.node_id, node_type=info.node_type, document=document)

    def add_edge(self, edge_id: str, source_id: str, target_id: str) -> EdgeKind:
        """Add an edge; its kind follows from the source node's type.

        Raises:
            EdgeHasInvalidSourceError: If source_id is not a node
            EdgeHasInvalidTargetError: If target_id is not a node
        """
        if not self.has_node(source_id):
            raise EdgeHasInvalidSourceError(edge_id, source_id)
        if not self.has_node(target_id):
            raise EdgeHasInvalidTargetError(edge_id, target_id)
        kind = EdgeKind.FLOW if self._info(source_id).is_functional else EdgeKind.OVERRIDE
        self._graph.add_edge(source_id, target_id, key=edge_id, kind=kind)
        return kind

    def _info(self, node_id: str) -> NodeInfo:
        info: NodeInfo = self._graph.nodes[node_id]["info"]
        return info

    def node_ids(self) -> list[str]:
        return list(self._graph.nodes)

    def functional_node_ids(self) -> list[str]:
        return [n for n in self._graph.nodes if self._info(n).is_functional]

    def targets(self, node_id: str) -> tuple[str, ...]:
        return tuple(t for _, t, kind in self._graph.out_edges(node_id, data="kind") if kind == EdgeKind.FLOW)

    def sources(self, node_id: str) -> tuple[str, ...]:
        return tuple(s for s, _, kind in self._graph.in_edges(node_id, data="kind") if kind == EdgeKind.FLOW)

    def overrides(self, node_id: str) -> tuple[str, ...]:
        return tuple(s for s, _, kind in self._graph.in_edges(node_id, data="kind") if kind == EdgeKind.OVERRIDE)

    def get_node(self, node_id: str) -> GraphNode:
        """Return a view of node_id.

        Raises:
            KeyError: If node_id is not in the graph
        """
        if not self.has_node(node_id):
            raise KeyError(node_id)
        info = self._info(node_id)
        return GraphNode(
            node_id=node_id,
            node_type=info.node_type,
            sources=self.sources(node_id),
            targets=self.targets(node_id),
            overrides=self.overrides(node_id),
            document=info.document,
        )

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[WorkflowNodeRecord],
        edges: Iterable[WorkflowEdgeRecord],
        documents: Iterable[DrawDocument] = (),
    ) -> WorkflowGraph:
        """Build the graph of one instance from stored records.

        Documents linked to a node that is not in the graph are ignored.

        Raises:
            InvalidNodeTypeError: If a node's type is unknown
            EdgeHasInvalidSourceError: If an edge's source is missing
            EdgeHasInvalidTargetError: If an edge's target is missing
        """
        graph = cls()
        for node in nodes:
            graph.add_node(node.id, parse_node_type(node.id, node.node_type))
        for edge in edges:
            graph.add_edge(edge.id, edge.source_node_id, edge.target_node_id)
        for document in documents:
            if document.workflow_node_id is not None and graph.has_node(document.workflow_node_id):
                graph.attach_document(document.workflow_node_id, document)
        return graph
