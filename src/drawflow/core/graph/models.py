# src/drawflow/core/graph/models.py
"""Types for workflow graph operations.

Leaf module: no intra-package imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from drawflow.contracts.enums import WorkflowDataNodeType, WorkflowNodeType
from drawflow.contracts.workflow import DrawDocument

NodeType: TypeAlias = WorkflowNodeType | WorkflowDataNodeType


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """Attributes stored on each graph node under the ``info`` key."""

    node_id: str
    node_type: NodeType
    document: DrawDocument | None = None

    @property
    def is_functional(self) -> bool:
        return isinstance(self.node_type, WorkflowNodeType)


@dataclass(frozen=True, slots=True)
class GraphNode:
    """Read-only view of one node and its neighbourhood.

    sources and targets come from FLOW edges, in edge insertion order;
    duplicate edges appear once per edge. overrides lists the data nodes
    feeding this node.
    """

    node_id: str
    node_type: NodeType
    sources: tuple[str, ...]
    targets: tuple[str, ...]
    overrides: tuple[str, ...]
    document: DrawDocument | None = None

    @property
    def is_functional(self) -> bool:
        return isinstance(self.node_type, WorkflowNodeType)


@dataclass(frozen=True, slots=True)
class GraphValidationWarning:
    """Non-fatal finding reported while compiling.

    Warnings don't prevent compilation.
    """

    code: str
    message: str
    node_ids: tuple[str, ...]
