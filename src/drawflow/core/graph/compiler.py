# src/drawflow/core/graph/compiler.py
"""Compile a workflow graph into a linear task-chain definition.

The walk from the start node uses an explicit stack with three-colour
marking, so arbitrarily long chains compile without recursion. A node met
again while ON_PATH is a cycle. Compilation happens during the walk: each
node is turned into a task when it is first entered.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from drawflow.contracts.enums import WorkflowDataNodeType, WorkflowDomain, WorkflowMimeDataType, WorkflowNodeType
from drawflow.contracts.errors import (
    CycleDetectedError,
    DataNodeHasNoDocumentError,
    InvalidMimeTypeError,
    NoResourceFoundError,
    ParallelNodesNotSupportedError,
)
from drawflow.contracts.task_chain import Task, TaskChainDefinition
from drawflow.contracts.workflow import NodeData, NodeMime
from drawflow.core.graph.graph import WorkflowGraph
from drawflow.core.graph.models import GraphNode, GraphValidationWarning
from drawflow.core.graph.validation import find_start_node
from drawflow.core.logging import get_logger

logger = get_logger(__name__)


class _Color(Enum):
    UNVISITED = 0
    ON_PATH = 1
    DONE = 2


class ResourceRegistry:
    """Closed mapping from functional node type to execution resource reference."""

    def __init__(self, resources: Mapping[WorkflowNodeType, str]) -> None:
        self._resources = dict(resources)

    def resolve(self, node: GraphNode) -> str:
        """Return the resource reference for node.

        Raises:
            NoResourceFoundError: If node's type has no registered resource
        """
        ref = self._resources.get(node.node_type) if isinstance(node.node_type, WorkflowNodeType) else None
        if not ref:
            raise NoResourceFoundError(node.node_id, str(node.node_type))
        return ref

    def as_dict(self) -> dict[WorkflowNodeType, str]:
        return dict(self._resources)


@dataclass(frozen=True, slots=True)
class CompilationResult:
    definition: TaskChainDefinition
    warnings: tuple[GraphValidationWarning, ...] = ()


class TaskChainCompiler:
    """Turns a WorkflowGraph into a TaskChainDefinition.

    Args:
        registry: Resource reference per functional node type
        uri_for: Maps a document's blob key to the URI handed to tasks
    """

    def __init__(self, registry: ResourceRegistry, uri_for: Callable[[str], str]) -> None:
        self._registry = registry
        self._uri_for = uri_for

    def compile(self, graph: WorkflowGraph, organization_id: str) -> CompilationResult:
        """Compile graph for organization_id.

        Raises:
            StructuralGraphError: Endpoint, branching or cycle violations
            DataResolutionError: Unresolvable resource or input override
        """
        start_id = find_start_node(graph)

        color: dict[str, _Color] = {}
        tasks: dict[str, Task] = {}
        # Frames are (node_id, exiting)
        stack: list[tuple[str, bool]] = [(start_id, False)]
        while stack:
            node_id, exiting = stack.pop()
            if exiting:
                color[node_id] = _Color.DONE
                continue
            state = color.get(node_id, _Color.UNVISITED)
            if state is _Color.ON_PATH:
                raise CycleDetectedError(node_id)
            if state is _Color.DONE:
                continue

            node = graph.get_node(node_id)
            if len(node.targets) > 1:
                raise ParallelNodesNotSupportedError(node_id)
            color[node_id] = _Color.ON_PATH
            tasks[node_id] = self._build_task(graph, node, organization_id, is_start=node_id == start_id)

            stack.append((node_id, True))
            for target in reversed(node.targets):
                stack.append((target, False))

        warnings = self._unreachable_warnings(graph, color)
        return CompilationResult(
            definition=TaskChainDefinition(start_node_id=start_id, tasks=tasks),
            warnings=warnings,
        )

    def _unreachable_warnings(self, graph: WorkflowGraph, color: dict[str, _Color]) -> tuple[GraphValidationWarning, ...]:
        unreachable = tuple(n for n in graph.functional_node_ids() if n not in color)
        if not unreachable:
            return ()
        logger.warning("unreachable_nodes_skipped", node_ids=list(unreachable))
        return (
            GraphValidationWarning(
                code="UNREACHABLE_NODES",
                message="Functional nodes not reachable from the start node were not compiled",
                node_ids=unreachable,
            ),
        )

    def _build_task(self, graph: WorkflowGraph, node: GraphNode, organization_id: str, *, is_start: bool) -> Task:
        resource_ref = self._registry.resolve(node)

        context: dict[str, Any] = {
            "organization_id": organization_id,
            "workflow_job_id.$": "$.context.workflow_job_id",
            "node_id": node.node_id,
        }
        parameters: dict[str, Any] = {"context": context}
        if is_start:
            parameters["node_result_data"] = {}
        else:
            context["previous_node_id.$"] = "$.context.previous_node_id"
            parameters["node_result_data.$"] = "$.node_result_data"

        overrides = self._build_overrides(graph, node)
        parameters["node_override_data"] = {node.node_id: [o.to_dict() for o in overrides]} if overrides else {}

        next_id = node.targets[0] if node.targets else None
        return Task(
            resource_ref=resource_ref,
            comment=str(node.node_type),
            parameters=parameters,
            next=next_id,
            terminal=next_id is None,
        )

    def _build_overrides(self, graph: WorkflowGraph, node: GraphNode) -> list[NodeData]:
        overrides: list[NodeData] = []
        for data_node_id in node.overrides:
            data_node = graph.get_node(data_node_id)
            if data_node.node_type == WorkflowDataNodeType.NULL_DATA:
                continue
            document = data_node.document
            if document is None:
                raise DataNodeHasNoDocumentError(data_node_id)
            try:
                mime_type = WorkflowMimeDataType(document.content_type)
            except ValueError:
                raise InvalidMimeTypeError(data_node_id, document.content_type) from None
            overrides.append(
                NodeData(
                    uri=self._uri_for(document.blob_key),
                    mime=NodeMime(type=mime_type, domain=WorkflowDomain.DRAW, domain_model=document.document_type.value),
                )
            )
        return overrides
