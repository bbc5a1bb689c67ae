# src/drawflow/core/graph/validation.py
"""Endpoint validation for workflow graphs."""

from __future__ import annotations

from drawflow.contracts.errors import (
    MultipleEndNodesFoundError,
    MultipleStartNodesFoundError,
    NoStartNodeFoundError,
)
from drawflow.core.graph.graph import WorkflowGraph


def find_start_node(graph: WorkflowGraph) -> str:
    """Return the single start node after checking both chain endpoints.

    A start node is a functional node with no incoming flow edge; an end
    node is a functional node with no outgoing flow edge. Data nodes are
    never endpoints.

    Raises:
        MultipleStartNodesFoundError: More than one start node
        NoStartNodeFoundError: No start node
        MultipleEndNodesFoundError: More than one end node
    """
    functional = graph.functional_node_ids()

    starts = [n for n in functional if not graph.sources(n)]
    if len(starts) > 1:
        raise MultipleStartNodesFoundError(starts)
    if not starts:
        raise NoStartNodeFoundError()

    ends = [n for n in functional if not graph.targets(n)]
    if len(ends) > 1:
        raise MultipleEndNodesFoundError(ends)

    return starts[0]
